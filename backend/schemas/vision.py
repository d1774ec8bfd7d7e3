"""
Vision Response Schemas
=======================
The JSON payload the vision prompt asks the model to return. Parsing is
lenient: missing keys fall back to defaults and values keep their raw
JSON type so the parser can coerce them per field type.
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Any
import json


def as_text(v: Any) -> Optional[str]:
    """Models sometimes emit numbers where text is expected; keep them as text."""
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (dict, list)):
        return json.dumps(v, ensure_ascii=False)
    return str(v)


class VisionFieldSchema(BaseModel):
    """One field as returned by the model"""
    model_config = ConfigDict(extra="ignore")

    name: Any = Field("", description="Field label")
    value: Any = Field(None, description="Extracted value (boolean-like for checkboxes)")
    type: Optional[str] = Field("text", description="text|checkbox|radio|dropdown")
    note: Optional[str] = Field(None, description="Note if unclear or partially visible")

    @field_validator("note", mode="before")
    @classmethod
    def note_as_text(cls, v):
        return as_text(v)


class VisionSectionSchema(BaseModel):
    """One section as returned by the model"""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, description="Section name")
    fields: List[VisionFieldSchema] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def title_as_text(cls, v):
        return as_text(v)

    @field_validator("fields", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v if v is not None else []


class VisionResponseSchema(BaseModel):
    """Complete structured payload embedded in the model's answer"""
    model_config = ConfigDict(extra="ignore")

    summary: Optional[str] = Field(None, description="Description of the form")
    sections: List[VisionSectionSchema] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    @field_validator("summary", mode="before")
    @classmethod
    def summary_as_text(cls, v):
        return as_text(v)

    @field_validator("sections", mode="before")
    @classmethod
    def sections_none_as_empty(cls, v):
        return v if v is not None else []

    @field_validator("notes", mode="before")
    @classmethod
    def keep_list_notes(cls, v):
        if not isinstance(v, list):
            return []
        return [str(n) for n in v if n is not None]
