"""
Vision Response Parser
======================
Pure conversion of a multimodal model's free-text answer into
ExtractedPDFData. No I/O.

The answer should embed the JSON payload described in
schemas/vision.py. Lookup order:
    1. a fenced ```json code block
    2. the outermost balanced {...} substring
    3. the whole answer

If none of them parses, the answer is returned as the summary with no
sections. That is a recorded fallback, not an error.
"""

import json
import logging
import re
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from schemas.extraction import ExtractedPDFData, FieldType, FormField, FormSection
from schemas.vision import VisionFieldSchema, VisionResponseSchema, as_text

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Form data extracted"
DEFAULT_SECTION_TITLE = "Other"

FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```", re.IGNORECASE)

TRUE_TOKENS = {"true", "checked"}
FALSE_TOKENS = {"false", "unchecked", ""}


# =============================================================================
# PAYLOAD LOOKUP
# =============================================================================

def find_balanced_object(text: str) -> Optional[str]:
    """
    Outermost balanced {...} starting at the first '{'.
    Braces inside JSON strings are ignored.
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def locate_json_payload(text: str) -> str:
    """Substring of the answer most likely to hold the JSON payload."""
    fenced = FENCED_JSON_PATTERN.search(text)
    if fenced:
        return fenced.group(1)

    balanced = find_balanced_object(text)
    if balanced is not None:
        return balanced

    return text


# =============================================================================
# VALUE COERCION
# =============================================================================

def coerce_selection(value: Any) -> Tuple[bool, bool]:
    """
    Map a model value onto a checkbox/radio boolean.

    Returns:
        (selected, unclear) - unclear is True for tokens that are
        neither true-like nor false-like; those map to not selected.
    """
    if isinstance(value, bool):
        return value, False
    if value is None:
        return False, False
    if isinstance(value, str):
        token = value.strip().lower()
        if token in TRUE_TOKENS:
            return True, False
        if token in FALSE_TOKENS:
            return False, False
    return False, True


def coerce_text(value: Any) -> str:
    text = as_text(value)
    return text if text is not None else ""


def _join_notes(*notes: Optional[str]) -> Optional[str]:
    parts = [n for n in notes if n]
    return "; ".join(parts) if parts else None


def to_form_field(raw: VisionFieldSchema, section_title: str) -> FormField:
    field_type = FieldType.from_label(raw.type)
    name = coerce_text(raw.name).strip()
    note = raw.note or None

    if field_type.is_selection:
        value, unclear = coerce_selection(raw.value)
        if unclear:
            logger.warning(f"Unclear selection value {raw.value!r} for '{name}', treating as not selected")
            note = _join_notes(note, f"Unclear selection: {raw.value}")
    else:
        value = coerce_text(raw.value)

    return FormField(
        name=name,
        value=value,
        type=field_type,
        section=section_title,
        note=note
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def parse_vision_response(response_text: str) -> ExtractedPDFData:
    """
    Convert the model's answer into the normalized contract.

    Never raises on malformed content: an unparsable answer degrades to
    summary=answer, sections=[], notes=[].
    """
    text = response_text or ""
    candidate = locate_json_payload(text)

    try:
        parsed = json.loads(candidate)
        if not isinstance(parsed, dict):
            raise ValueError("payload is not a JSON object")
        payload = VisionResponseSchema.model_validate(parsed)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Failed to parse model response as JSON, using text as summary: {e}")
        return ExtractedPDFData.degraded(text)

    sections = []
    for raw_section in payload.sections:
        title = raw_section.title or DEFAULT_SECTION_TITLE
        fields = [to_form_field(raw_field, title) for raw_field in raw_section.fields]
        sections.append(FormSection(title=title, fields=fields))

    data = ExtractedPDFData.from_sections(
        sections,
        notes=payload.notes,
        summary=payload.summary or DEFAULT_SUMMARY,
        raw_text=text
    )
    logger.info(f"Parsed {len(data.sections)} sections with {data.total_fields} total fields")
    return data
