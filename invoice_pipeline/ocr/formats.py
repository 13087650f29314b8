"""File format sniffing from leading magic bytes."""

from dataclasses import dataclass

from invoice_pipeline.ocr.exceptions import UnknownFormatError, UnsupportedFormatError


@dataclass(frozen=True)
class FileFormat:
    name: str
    mime: str
    extractable: bool = True


PDF = FileFormat("pdf", "application/pdf")
PNG = FileFormat("png", "image/png")
JPEG = FileFormat("jpeg", "image/jpeg")
GIF = FileFormat("gif", "image/gif", extractable=False)
ZIP = FileFormat("zip", "application/zip", extractable=False)
BMP = FileFormat("bmp", "image/bmp", extractable=False)
OLE = FileFormat("doc", "application/msword", extractable=False)

# Longest signatures first so a short prefix never shadows a longer one.
SIGNATURES: tuple[tuple[bytes, FileFormat], ...] = (
    (bytes.fromhex("25504446"), PDF),
    (bytes.fromhex("89504E47"), PNG),
    (bytes.fromhex("FFD8FFE0"), JPEG),
    (bytes.fromhex("FFD8FFE1"), JPEG),
    (bytes.fromhex("47494638"), GIF),
    (bytes.fromhex("504B0304"), ZIP),
    (bytes.fromhex("D0CF11E0"), OLE),
    (bytes.fromhex("424D"), BMP),
)

IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg"})


def sniff_format(data: bytes) -> FileFormat:
    """Return the format whose signature prefixes ``data``.

    Raises:
        UnknownFormatError: if no signature matches.
    """
    for signature, file_format in SIGNATURES:
        if data.startswith(signature):
            return file_format
    raise UnknownFormatError(
        f"File type could not be determined from header {data[:4].hex().upper() or '<empty>'}"
    )


def detect_format(data: bytes) -> FileFormat:
    """Return the format of ``data`` if text can be extracted from it.

    Raises:
        UnknownFormatError: if no signature matches.
        UnsupportedFormatError: if the format is known but not extractable.
    """
    file_format = sniff_format(data)
    if not file_format.extractable:
        raise UnsupportedFormatError(f"Unsupported file format: {file_format.name}")
    return file_format
