import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from invoice_pipeline.storage.base import BaseBlobStore
from invoice_pipeline.storage.exceptions import InvalidLocatorError, StorageError


class S3BlobStore(BaseBlobStore):
    """Stores invoice files in an S3 (or S3-compatible) bucket."""

    def __init__(
        self,
        *,
        bucket_name: str,
        region_name: str,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._bucket_name = bucket_name
        self._client = boto3.client(
            "s3",
            region_name=region_name,
            aws_access_key_id=aws_access_key_id or None,
            aws_secret_access_key=aws_secret_access_key or None,
            endpoint_url=endpoint_url,
            config=Config(signature_version="s3v4", retries={"max_attempts": 3}),
        )

    def put(self, data: bytes, key: str, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self._bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 upload failed for '{key}': {exc}") from exc
        return f"s3://{self._bucket_name}/{key}"

    def get(self, locator: str) -> bytes:
        key = self._key_from_locator(locator)
        try:
            response = self._client.get_object(Bucket=self._bucket_name, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "NoSuchKey":
                raise FileNotFoundError(f"File not found in S3: {locator}") from exc
            raise StorageError(f"S3 download failed for '{key}': {exc}") from exc

    def delete(self, locator: str) -> None:
        key = self._key_from_locator(locator)
        try:
            self._client.delete_object(Bucket=self._bucket_name, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 delete failed for '{key}': {exc}") from exc

    def _key_from_locator(self, locator: str) -> str:
        prefix = f"s3://{self._bucket_name}/"
        if not locator.startswith(prefix):
            raise InvalidLocatorError(f"Invalid S3 file path: {locator}")
        return locator[len(prefix):]
