"""
Schemas Package
===============
Pydantic models for the extraction contract and the raw back-end payloads.

Usage:
    from schemas import (
        # Output contract
        FormField, FormSection, ExtractedPDFData, ProgressUpdate,

        # Raw payloads
        AnalyzeResult, VisionResponseSchema
    )
"""

# Extraction Schemas
from schemas.extraction import (
    # Enums
    FieldType,

    # Output contract
    FormField,
    FormSection,
    ExtractedPDFData,
    ProgressUpdate,
    TOTAL_STEPS,
    build_summary,
)

# Layout Schemas
from schemas.layout import (
    AnalyzeResult,
    Paragraph,
    KeyValuePair,
    Table,
    TableCell,
    Page,
    SelectionMark,
    DetectedLanguage,
)

# Vision Schemas
from schemas.vision import (
    VisionFieldSchema,
    VisionSectionSchema,
    VisionResponseSchema,
)


__all__ = [
    # Extraction
    "FieldType",
    "FormField",
    "FormSection",
    "ExtractedPDFData",
    "ProgressUpdate",
    "TOTAL_STEPS",
    "build_summary",

    # Layout
    "AnalyzeResult",
    "Paragraph",
    "KeyValuePair",
    "Table",
    "TableCell",
    "Page",
    "SelectionMark",
    "DetectedLanguage",

    # Vision
    "VisionFieldSchema",
    "VisionSectionSchema",
    "VisionResponseSchema",
]
