from pathlib import Path

from invoice_pipeline.config.settings import Settings
from invoice_pipeline.storage.base import BaseBlobStore
from invoice_pipeline.storage.local_adapter import LocalBlobStore
from invoice_pipeline.storage.s3_adapter import S3BlobStore


class BlobStoreFactory:
    """Creates the blob store selected by ``storage_backend``."""

    BACKENDS = ("s3", "local")

    @classmethod
    def create(cls, settings: Settings) -> BaseBlobStore:
        backend = settings.storage_backend.lower()
        if backend == "s3":
            return S3BlobStore(
                bucket_name=settings.s3_bucket_name,
                region_name=settings.aws_region,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                endpoint_url=settings.s3_endpoint_url,
            )
        if backend == "local":
            return LocalBlobStore(files_root=Path(settings.local_storage_root))
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
