"""
Document Input
==============
Validates an uploaded file before it reaches an extraction strategy.

Features:
    - Declared MIME type normalization ("image/jpg", parameters, casing)
    - Document vs. raster-image classification
    - Size limit check
    - Content type for the layout-analysis submission
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union
import logging

from config import settings
from services.exceptions import UnsupportedFileType, FileTooLarge

logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    """How an input is handled downstream"""
    DOCUMENT = "document"   # page-oriented (PDF)
    IMAGE = "image"         # single raster image


# MIME type -> kind
MIME_KINDS = {
    "application/pdf": DocumentKind.DOCUMENT,
    "image/jpeg": DocumentKind.IMAGE,
    "image/jpg": DocumentKind.IMAGE,
    "image/png": DocumentKind.IMAGE,
}

# Extension -> MIME type
EXTENSION_MIME_TYPES = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lowercase and strip parameters: 'Image/PNG; q=1' -> 'image/png'"""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def guess_content_type(filename: str) -> str:
    """MIME type from a filename extension ('' when unknown)"""
    ext = Path(filename).suffix.lower().lstrip(".")
    return EXTENSION_MIME_TYPES.get(ext, "")


@dataclass
class DocumentInput:
    """An uploaded file blob with its declared content type."""
    content: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def mime_type(self) -> str:
        return normalize_content_type(self.content_type)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "DocumentInput":
        """Read a file from disk, guessing the type from its extension if not given."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return cls(
            content=path.read_bytes(),
            content_type=content_type or guess_content_type(path.name),
            filename=path.name
        )


def classify_document(
    document: DocumentInput,
    allowed_types: Optional[Iterable[str]] = None
) -> DocumentKind:
    """
    Decide whether the input is a page-oriented document or a raster image.

    Raises:
        UnsupportedFileType: declared type is not an accepted PDF/JPEG/PNG type
    """
    allowed = set(allowed_types if allowed_types is not None else settings.allowed_content_types_list)
    mime = document.mime_type

    if mime not in allowed or mime not in MIME_KINDS:
        logger.error(f"Rejected upload {document.filename or ''} with type '{document.content_type}'")
        raise UnsupportedFileType(document.content_type)

    return MIME_KINDS[mime]


def validate_document(
    document: DocumentInput,
    max_bytes: Optional[int] = None,
    allowed_types: Optional[Iterable[str]] = None
) -> DocumentKind:
    """Type and size validation in one call; returns the document kind."""
    kind = classify_document(document, allowed_types)

    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes
    if document.size > limit:
        raise FileTooLarge(document.size, limit)

    logger.info(
        f"Accepted {kind.value} {document.filename or '<blob>'} "
        f"({document.size / 1024:.2f} KB, {document.mime_type})"
    )
    return kind


def layout_content_type(document: DocumentInput) -> str:
    """Content-Type header for the layout-analysis submission."""
    mime = document.mime_type
    if mime == "application/pdf":
        return "application/pdf"
    if mime == "image/png":
        return "image/png"
    return "image/jpeg"
