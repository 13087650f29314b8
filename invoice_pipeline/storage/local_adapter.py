from pathlib import Path

from invoice_pipeline.storage.base import BaseBlobStore
from invoice_pipeline.storage.exceptions import InvalidLocatorError


class LocalBlobStore(BaseBlobStore):
    """Stores invoice files under a directory on local disk."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def put(self, data: bytes, key: str, content_type: str) -> str:
        _ = content_type
        path = self._files_root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return f"file://{path}"

    def get(self, locator: str) -> bytes:
        """Read blob bytes from disk.

        Raises:
            FileNotFoundError: if the file does not exist at the resolved path.
        """
        path = self._resolve_path(locator)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def delete(self, locator: str) -> None:
        self._resolve_path(locator).unlink(missing_ok=True)

    def _resolve_path(self, locator: str) -> Path:
        if not locator.startswith("file://"):
            raise InvalidLocatorError(f"Invalid local file path: {locator}")
        path = Path(locator[len("file://"):])
        if not path.is_relative_to(self._files_root):
            raise InvalidLocatorError(f"Path outside storage root: {locator}")
        return path
