"""
Extraction Schemas (Pydantic Models)
====================================
The normalized, reviewer-friendly output contract shared by every
extraction strategy.

Covers:
    - Form fields and sections
    - The combined extraction result (ExtractedPDFData)
    - Progress updates emitted while a document is processed

Python attributes are snake_case; JSON aliases keep the camelCase
contract consumed by the results UI (formFields, rawText, totalSteps).
"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List, Dict, Any, Union
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class FieldType(str, Enum):
    """Types of extracted form fields"""
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    OTHER = "other"

    @property
    def is_selection(self) -> bool:
        """Checkbox and radio fields carry boolean values"""
        return self in (FieldType.CHECKBOX, FieldType.RADIO)

    @classmethod
    def from_label(cls, label: Any) -> "FieldType":
        """Map a free-form type label onto the enum (unknown labels become OTHER)"""
        if not label:
            return cls.TEXT
        try:
            return cls(str(label).strip().lower())
        except ValueError:
            return cls.OTHER


# =============================================================================
# FIELD & SECTION SCHEMAS
# =============================================================================

class FormField(BaseModel):
    """A single extracted field"""

    name: str = Field(..., description="Field label")
    value: Union[bool, str] = Field(
        "",
        description="Boolean for checkbox/radio fields, text otherwise ('' = present but blank)"
    )
    type: FieldType = Field(FieldType.TEXT, description="Field type")
    section: Optional[str] = Field(None, description="Title of the owning section")
    note: Optional[str] = Field(None, description="Reviewer note (unclear text, raw state, ...)")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Back-end confidence (0-1)")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "Date of Birth",
                "value": "01/02/1980",
                "type": "text",
                "section": "Patient Information",
                "confidence": 0.97
            }
        }
    )

    @model_validator(mode="after")
    def check_value_matches_type(self) -> "FormField":
        if self.type.is_selection and not isinstance(self.value, bool):
            raise ValueError(f"{self.type.value} field '{self.name}' must have a boolean value")
        if not self.type.is_selection and not isinstance(self.value, str):
            raise ValueError(f"{self.type.value} field '{self.name}' must have a string value")
        return self


class FormSection(BaseModel):
    """An ordered group of fields under one title"""

    title: str
    fields: List[FormField] = Field(default_factory=list)


# =============================================================================
# EXTRACTION RESULT
# =============================================================================

def build_summary(sections: List[FormSection]) -> str:
    """Human-readable summary of what was extracted."""
    total_fields = sum(len(s.fields) for s in sections)
    section_names = ", ".join(s.title for s in sections)
    return f"Extracted {total_fields} fields across {len(sections)} sections: {section_names}"


class ExtractedPDFData(BaseModel):
    """
    Normalized extraction result.

    form_fields is always the concatenation of every section's fields,
    in section order then field order.
    """

    form_fields: List[FormField] = Field(default_factory=list, alias="formFields")
    sections: List[FormSection] = Field(default_factory=list)
    summary: str = ""
    notes: List[str] = Field(default_factory=list)
    raw_text: Optional[str] = Field(None, alias="rawText")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_sections(
        cls,
        sections: List[FormSection],
        notes: Optional[List[str]] = None,
        summary: Optional[str] = None,
        raw_text: Optional[str] = None
    ) -> "ExtractedPDFData":
        """
        Build a result from parsed sections.

        Empty sections are pruned; when no summary is given the default
        "Extracted N fields across M sections: ..." summary is computed.
        """
        kept = [s for s in sections if s.fields]
        return cls(
            form_fields=[f for s in kept for f in s.fields],
            sections=kept,
            summary=summary if summary is not None else build_summary(kept),
            notes=list(notes or []),
            raw_text=raw_text
        )

    @classmethod
    def degraded(cls, raw_response: str) -> "ExtractedPDFData":
        """Fallback for an unparsable model response: keep the raw text for the reviewer."""
        return cls(summary=raw_response, sections=[], notes=[], raw_text=raw_response)

    @property
    def total_fields(self) -> int:
        return len(self.form_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase contract"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# PROGRESS
# =============================================================================

TOTAL_STEPS = 3  # acquire, analyze, finalize


class ProgressUpdate(BaseModel):
    """One progress event for the progress bar"""

    step: int = Field(..., ge=1, le=TOTAL_STEPS)
    total_steps: int = Field(TOTAL_STEPS, alias="totalSteps")
    message: str
    percent: int = Field(..., ge=0, le=100)

    model_config = ConfigDict(populate_by_name=True)
