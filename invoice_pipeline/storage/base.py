import re
import uuid
from abc import ABC, abstractmethod

_EXTENSION = re.compile(r"[a-z0-9]{1,10}")


def build_object_key(user_id: int, file_name: str) -> str:
    """Build a collision-free key: invoices/{user_id}/{uuid}.{ext}"""
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    if not _EXTENSION.fullmatch(extension):
        extension = "bin"
    return f"invoices/{user_id}/{uuid.uuid4()}.{extension}"


class BaseBlobStore(ABC):
    """Contract for storing uploaded invoice files.

    Stores hand back an opaque locator string; callers persist it as-is and
    only ever give it back to the same store.
    """

    @abstractmethod
    def put(self, data: bytes, key: str, content_type: str) -> str:
        """Store ``data`` under ``key`` and return its locator."""

    @abstractmethod
    def get(self, locator: str) -> bytes:
        """Return the bytes stored at ``locator``."""

    @abstractmethod
    def delete(self, locator: str) -> None:
        """Remove the blob at ``locator``.

        Raises:
            InvalidLocatorError: if the locator was not issued by this store.
        """
