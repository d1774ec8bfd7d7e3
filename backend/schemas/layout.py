"""
Layout Analysis Schemas
=======================
Lenient models for the parts of the layout service's ``analyzeResult``
that the parser reads. Unknown keys are ignored and every collection is
optional, so partial payloads validate cleanly.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


class _LayoutModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Paragraph(_LayoutModel):
    content: Optional[str] = None
    role: Optional[str] = None
    confidence: Optional[float] = None


class TextElement(_LayoutModel):
    content: Optional[str] = None


class KeyValuePair(_LayoutModel):
    key: Optional[TextElement] = None
    value: Optional[TextElement] = None
    confidence: Optional[float] = None


class TableCell(_LayoutModel):
    row_index: int = Field(0, alias="rowIndex")
    column_index: int = Field(0, alias="columnIndex")
    content: Optional[str] = None


class Table(_LayoutModel):
    row_count: Optional[int] = Field(None, alias="rowCount")
    column_count: Optional[int] = Field(None, alias="columnCount")
    cells: List[TableCell] = Field(default_factory=list)


class SelectionMark(_LayoutModel):
    state: Optional[str] = None
    confidence: Optional[float] = None


class Page(_LayoutModel):
    page_number: Optional[int] = Field(None, alias="pageNumber")
    selection_marks: Optional[List[SelectionMark]] = Field(None, alias="selectionMarks")


class DetectedLanguage(_LayoutModel):
    locale: Optional[str] = None
    confidence: Optional[float] = None


class AnalyzeResult(_LayoutModel):
    """The ``analyzeResult`` object of a succeeded layout operation."""

    content: Optional[str] = None
    paragraphs: Optional[List[Paragraph]] = None
    key_value_pairs: Optional[List[KeyValuePair]] = Field(None, alias="keyValuePairs")
    tables: Optional[List[Table]] = None
    pages: Optional[List[Page]] = None
    languages: Optional[List[DetectedLanguage]] = None
