"""
Utils Package
=============
Input validation, page rendering and logging setup.

Usage:
    from utils import DocumentInput, validate_document, image_preprocessor

    kind = validate_document(DocumentInput(content, "application/pdf"))
    pages = await image_preprocessor.to_page_images(document, kind)
"""

from utils.document_input import (
    DocumentInput,
    DocumentKind,
    classify_document,
    validate_document,
    layout_content_type,
)
from utils.image_preprocessing import ImagePreprocessor, PageImage, image_preprocessor
from utils.logging_setup import configure_logging


__all__ = [
    "DocumentInput",
    "DocumentKind",
    "classify_document",
    "validate_document",
    "layout_content_type",
    "ImagePreprocessor",
    "PageImage",
    "image_preprocessor",
    "configure_logging",
]
