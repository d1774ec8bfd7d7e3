"""
Field Filter
============
Decides which extracted fields count as "filled" for display and export.

The parsers never pre-filter: an explicitly empty field stays in
ExtractedPDFData so reviewers can tell "absent" from "left blank".
Consumers apply these pure functions to get the filled-only view.
"""

from typing import List

from schemas.extraction import ExtractedPDFData, FormField, FormSection

PLACEHOLDER_VALUES = frozenset({
    "",
    "(empty)",
    "n/a",
    "na",
    "-",
    "--",
    "null",
    "undefined",
})


def is_field_filled(field: FormField) -> bool:
    """
    Checkbox/radio: filled only when the value is exactly True.
    Everything else: trimmed, case-folded text that is not a placeholder.
    """
    if field.type.is_selection:
        return field.value is True

    if not isinstance(field.value, str):
        return False
    return field.value.strip().casefold() not in PLACEHOLDER_VALUES


def filter_sections(data: ExtractedPDFData) -> List[FormSection]:
    """Sections holding only filled fields; sections left empty are dropped."""
    filtered = []
    for section in data.sections:
        fields = [f for f in section.fields if is_field_filled(f)]
        if fields:
            filtered.append(FormSection(title=section.title, fields=fields))
    return filtered


def filter_form_fields(data: ExtractedPDFData) -> List[FormField]:
    """Flattened filled fields, in section then field order."""
    return [f for f in data.form_fields if is_field_filled(f)]


def filter_extracted_data(data: ExtractedPDFData) -> ExtractedPDFData:
    """A copy of the result keeping only filled fields; summary, notes and raw text unchanged."""
    sections = filter_sections(data)
    return ExtractedPDFData(
        form_fields=[f for s in sections for f in s.fields],
        sections=sections,
        summary=data.summary,
        notes=list(data.notes),
        raw_text=data.raw_text
    )
