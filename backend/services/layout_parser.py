"""
Layout Result Parser
====================
Pure conversion of a layout-analysis ``analyzeResult`` into
ExtractedPDFData. No I/O.

ALGORITHM:
1. Walk paragraphs in reading order, splitting them into sections at
   header-looking paragraphs; "label: value" paragraphs become named
   fields, anything else a "Text N" field
2. Key-value pairs become a "Form Fields" section placed first
3. Each table becomes a "Table N" section, one field per non-empty
   data cell named "{header} (Row r)"
4. Selection marks from every page become checkbox fields in one
   "Checkboxes & Selections" section
5. Notes: page count and detected languages
"""

import logging
import re
from typing import Any, Dict, List, Optional, Union

from schemas.extraction import ExtractedPDFData, FieldType, FormField, FormSection
from schemas.layout import AnalyzeResult, KeyValuePair, Page, Paragraph, Table

logger = logging.getLogger(__name__)

DEFAULT_SECTION_TITLE = "Document Content"
KEY_VALUE_SECTION_TITLE = "Form Fields"
SELECTION_SECTION_TITLE = "Checkboxes & Selections"
EMPTY_VALUE_PLACEHOLDER = "(empty)"

HEADER_ROLES = {"sectionHeading", "title"}
COLON_HEADER_MAX_LENGTH = 100
UPPERCASE_HEADER_MAX_LENGTH = 50

# "label: rest", label without a colon, value may span lines
KEY_VALUE_PATTERN = re.compile(r"^([^:]+):\s*(.+)$", re.DOTALL)


# =============================================================================
# PARAGRAPHS
# =============================================================================

def is_section_header(text: str, role: Optional[str] = None) -> bool:
    """
    A paragraph opens a new section when it has a heading/title role,
    is a short line ending in a colon, or is a short all-caps line.
    """
    if role in HEADER_ROLES:
        return True
    if len(text) < COLON_HEADER_MAX_LENGTH and text.endswith(":"):
        return True
    if len(text) < UPPERCASE_HEADER_MAX_LENGTH and text == text.upper():
        return True
    return False


def header_title(text: str) -> str:
    return text[:-1].strip() if text.endswith(":") else text


def paragraph_to_field(text: str, index: int, section: str, confidence: Optional[float]) -> FormField:
    """'Name: John' -> field 'Name'; anything else -> 'Text {index + 1}'"""
    match = KEY_VALUE_PATTERN.match(text)
    if match:
        name, value = match.group(1).strip(), match.group(2).strip()
    else:
        name, value = f"Text {index + 1}", text

    return FormField(
        name=name,
        value=value,
        type=FieldType.TEXT,
        section=section,
        confidence=confidence
    )


def sections_from_paragraphs(paragraphs: List[Paragraph]) -> List[FormSection]:
    sections: List[FormSection] = []
    current_title = DEFAULT_SECTION_TITLE
    current_fields: List[FormField] = []

    for index, paragraph in enumerate(paragraphs):
        text = (paragraph.content or "").strip()
        if not text:
            continue

        if is_section_header(text, paragraph.role):
            if current_fields:
                sections.append(FormSection(title=current_title, fields=current_fields))
                current_fields = []
            current_title = header_title(text)
            continue

        current_fields.append(paragraph_to_field(text, index, current_title, paragraph.confidence))

    if current_fields:
        sections.append(FormSection(title=current_title, fields=current_fields))

    return sections


# =============================================================================
# KEY-VALUE PAIRS
# =============================================================================

def section_from_key_value_pairs(pairs: List[KeyValuePair]) -> Optional[FormSection]:
    fields: List[FormField] = []

    for pair in pairs:
        key = (pair.key.content if pair.key else None) or ""
        key = key.strip()
        if not key:
            continue

        value = ((pair.value.content if pair.value else None) or "").strip()
        fields.append(FormField(
            name=key,
            value=value or EMPTY_VALUE_PLACEHOLDER,
            type=FieldType.TEXT,
            section=KEY_VALUE_SECTION_TITLE,
            confidence=pair.confidence
        ))

    if not fields:
        return None
    return FormSection(title=KEY_VALUE_SECTION_TITLE, fields=fields)


# =============================================================================
# TABLES
# =============================================================================

def _column_label(column_index: int) -> str:
    return f"Column {column_index + 1}"


def table_rows(table: Table) -> Dict[int, Dict[str, str]]:
    """
    Rebuild data rows from sparse cells: {row_index: {header: value}}.

    Row 0 provides the headers; missing header cells fall back to
    "Column N". Missing data cells are simply absent.
    """
    headers: Dict[int, str] = {}
    for cell in table.cells:
        if cell.row_index == 0:
            headers[cell.column_index] = (cell.content or "").strip() or _column_label(cell.column_index)

    rows: Dict[int, Dict[str, str]] = {}
    for cell in table.cells:
        if cell.row_index <= 0:
            continue
        header = headers.get(cell.column_index) or _column_label(cell.column_index)
        rows.setdefault(cell.row_index, {})[header] = (cell.content or "").strip()

    return dict(sorted(rows.items()))


def section_from_table(table: Table, table_number: int) -> Optional[FormSection]:
    title = f"Table {table_number}"
    fields: List[FormField] = []

    for row_index, row in table_rows(table).items():
        for header, value in row.items():
            if value:
                fields.append(FormField(
                    name=f"{header} (Row {row_index})",
                    value=value,
                    type=FieldType.TEXT,
                    section=title
                ))

    if not fields:
        return None
    return FormSection(title=title, fields=fields)


# =============================================================================
# SELECTION MARKS
# =============================================================================

def section_from_selection_marks(pages: List[Page]) -> Optional[FormSection]:
    fields: List[FormField] = []

    for page_index, page in enumerate(pages):
        marks = page.selection_marks or []
        if marks:
            logger.debug(f"Found {len(marks)} selection marks on page {page_index + 1}")

        for mark_index, mark in enumerate(marks):
            fields.append(FormField(
                name=f"Selection {mark_index + 1} (Page {page_index + 1})",
                value=mark.state == "selected",
                type=FieldType.CHECKBOX,
                section=SELECTION_SECTION_TITLE,
                note=f"State: {mark.state}",
                confidence=mark.confidence
            ))

    if not fields:
        return None
    return FormSection(title=SELECTION_SECTION_TITLE, fields=fields)


# =============================================================================
# ENTRY POINT
# =============================================================================

def build_notes(result: AnalyzeResult) -> List[str]:
    notes: List[str] = []
    if result.pages is not None:
        notes.append(f"Document has {len(result.pages)} page(s)")
    if result.languages is not None:
        locales = ", ".join(lang.locale for lang in result.languages if lang.locale)
        notes.append(f"Detected languages: {locales}")
    return notes


def parse_layout_result(payload: Union[AnalyzeResult, Dict[str, Any]]) -> ExtractedPDFData:
    """
    Convert a layout ``analyzeResult`` into the normalized contract.

    Every collection is optional; the payload is never mutated.
    """
    result = payload if isinstance(payload, AnalyzeResult) else AnalyzeResult.model_validate(payload or {})

    sections: List[FormSection] = []

    if result.paragraphs:
        logger.debug(f"Found {len(result.paragraphs)} paragraphs")
        sections.extend(sections_from_paragraphs(result.paragraphs))

    if result.key_value_pairs:
        logger.debug(f"Found {len(result.key_value_pairs)} key-value pairs")
        kv_section = section_from_key_value_pairs(result.key_value_pairs)
        if kv_section is not None:
            sections.insert(0, kv_section)

    if result.tables:
        logger.debug(f"Found {len(result.tables)} tables")
        for table_index, table in enumerate(result.tables):
            table_section = section_from_table(table, table_index + 1)
            if table_section is not None:
                sections.append(table_section)

    if result.pages:
        selection_section = section_from_selection_marks(result.pages)
        if selection_section is not None:
            sections.append(selection_section)

    data = ExtractedPDFData.from_sections(
        sections,
        notes=build_notes(result),
        raw_text=result.content or ""
    )
    logger.info(f"Parsed {len(data.sections)} sections with {data.total_fields} total fields")
    return data
