"""Tests for converting layout-analysis results into sections and fields."""

import copy

import pytest

from schemas.extraction import FieldType
from schemas.layout import AnalyzeResult, Paragraph, Table
from services.layout_parser import (
    is_section_header,
    paragraph_to_field,
    parse_layout_result,
    section_from_table,
    sections_from_paragraphs,
    table_rows,
)


class TestSectionHeaders:
    """Tests for the header heuristics."""

    @pytest.mark.parametrize("role", ["sectionHeading", "title"])
    def test_heading_roles(self, role) -> None:
        long_text = "A heading role wins regardless of length " * 5
        assert is_section_header(long_text, role) is True

    def test_short_line_ending_in_colon(self) -> None:
        assert is_section_header("Insurance Information:") is True

    def test_long_line_ending_in_colon_is_not_header(self) -> None:
        assert is_section_header("x" * 120 + ":") is False

    def test_short_uppercase_line(self) -> None:
        assert is_section_header("PATIENT INFORMATION") is True

    def test_long_uppercase_line_is_not_header(self) -> None:
        assert is_section_header("A" * 60) is False

    def test_short_line_without_letters_is_header(self) -> None:
        assert is_section_header("01/02/1980") is True
        assert is_section_header("12345") is True

    def test_mixed_case_short_line_is_not_header(self) -> None:
        assert is_section_header("Total 12") is False

    def test_plain_sentence(self) -> None:
        assert is_section_header("Patient was seen on Monday") is False


class TestParagraphs:
    """Tests for paragraph segmentation."""

    def test_key_value_paragraph(self) -> None:
        field = paragraph_to_field("Name: John Smith", 0, "Patient", 0.9)
        assert field.name == "Name"
        assert field.value == "John Smith"
        assert field.section == "Patient"
        assert field.confidence == 0.9

    def test_multiline_value(self) -> None:
        field = paragraph_to_field("Address: 1 Main St\nSpringfield", 0, "Patient", None)
        assert field.name == "Address"
        assert field.value == "1 Main St\nSpringfield"

    def test_unlabelled_paragraph(self) -> None:
        field = paragraph_to_field("Patient was fasting", 4, "Notes", None)
        assert field.name == "Text 5"
        assert field.value == "Patient was fasting"

    def test_segmentation_flushes_on_header(self) -> None:
        paragraphs = [
            Paragraph(content="Intro text"),
            Paragraph(content="Insurance:"),
            Paragraph(content="Carrier: Acme"),
            Paragraph(content="Details", role="sectionHeading"),
        ]
        sections = sections_from_paragraphs(paragraphs)

        # A trailing header with no fields produces no section
        assert [s.title for s in sections] == ["Document Content", "Insurance"]
        assert sections[0].fields[0].name == "Text 1"
        assert sections[1].fields[0].name == "Carrier"
        assert sections[1].fields[0].value == "Acme"

    def test_blank_paragraphs_skipped(self) -> None:
        sections = sections_from_paragraphs([Paragraph(content="   "), Paragraph(content=None)])
        assert sections == []


class TestTables:
    """Tests for table reconstruction."""

    def test_sparse_table_does_not_raise(self) -> None:
        table = Table.model_validate({
            "cells": [
                {"rowIndex": 0, "columnIndex": 0, "content": "Test"},
                {"rowIndex": 2, "columnIndex": 1, "content": "85025"},
                {"rowIndex": 1, "columnIndex": 0, "content": "CBC"},
            ]
        })
        rows = table_rows(table)
        assert list(rows) == [1, 2]
        assert rows[1] == {"Test": "CBC"}
        assert rows[2] == {"Column 2": "85025"}

    def test_table_fields_skip_empty_cells(self) -> None:
        table = Table.model_validate({
            "cells": [
                {"rowIndex": 0, "columnIndex": 0, "content": "Test"},
                {"rowIndex": 0, "columnIndex": 1, "content": ""},
                {"rowIndex": 1, "columnIndex": 0, "content": ""},
                {"rowIndex": 1, "columnIndex": 1, "content": "x"},
            ]
        })
        section = section_from_table(table, 2)
        assert section.title == "Table 2"
        assert [f.name for f in section.fields] == ["Column 2 (Row 1)"]

    def test_header_only_table_yields_no_section(self) -> None:
        table = Table.model_validate({"cells": [{"rowIndex": 0, "columnIndex": 0, "content": "Test"}]})
        assert section_from_table(table, 1) is None


class TestParseLayoutResult:
    """End-to-end conversion of an analyzeResult payload."""

    def test_section_order(self, layout_payload) -> None:
        data = parse_layout_result(layout_payload)
        assert [s.title for s in data.sections] == [
            "Form Fields",
            "PATIENT INFORMATION",
            "Table 1",
            "Checkboxes & Selections",
        ]

    def test_key_value_section(self, layout_payload) -> None:
        data = parse_layout_result(layout_payload)
        kv = data.sections[0]
        assert [(f.name, f.value) for f in kv.fields] == [("DOB", "1-11-1982"), ("Phone", "(empty)")]
        assert kv.fields[0].confidence == 0.9

    def test_paragraph_section(self, layout_payload) -> None:
        fields = parse_layout_result(layout_payload).sections[1].fields
        assert [(f.name, f.value) for f in fields] == [("Name", "Jane Doe"), ("Text 3", "See attached")]

    def test_table_section(self, layout_payload) -> None:
        fields = parse_layout_result(layout_payload).sections[2].fields
        assert [(f.name, f.value) for f in fields] == [("Test (Row 1)", "CBC"), ("Code (Row 1)", "85025")]

    def test_selection_marks(self, layout_payload) -> None:
        field = parse_layout_result(layout_payload).sections[3].fields[0]
        assert field.name == "Selection 1 (Page 1)"
        assert field.type == FieldType.CHECKBOX
        assert field.value is True
        assert field.note == "State: selected"
        assert field.confidence == 0.8

    def test_selection_naming_across_pages(self) -> None:
        marks = [{"state": "unselected"}] * 4
        data = parse_layout_result({"pages": [{"selectionMarks": []}, {"selectionMarks": marks}]})
        last = data.form_fields[-1]
        assert last.name == "Selection 4 (Page 2)"
        assert last.value is False
        assert last.note == "State: unselected"

    def test_notes_summary_and_raw_text(self, layout_payload) -> None:
        data = parse_layout_result(layout_payload)
        assert data.notes == ["Document has 2 page(s)", "Detected languages: en"]
        assert data.summary == (
            "Extracted 7 fields across 4 sections: "
            "Form Fields, PATIENT INFORMATION, Table 1, Checkboxes & Selections"
        )
        assert data.raw_text == layout_payload["content"]

    def test_form_fields_flattened_in_order(self, layout_payload) -> None:
        data = parse_layout_result(layout_payload)
        assert data.form_fields == [f for s in data.sections for f in s.fields]

    def test_payload_not_mutated(self, layout_payload) -> None:
        before = copy.deepcopy(layout_payload)
        parse_layout_result(layout_payload)
        assert layout_payload == before

    def test_empty_payload(self) -> None:
        data = parse_layout_result({})
        assert data.sections == []
        assert data.form_fields == []
        assert data.notes == []
        assert data.raw_text == ""
        assert data.summary == "Extracted 0 fields across 0 sections: "

    def test_accepts_model_instance(self, layout_payload) -> None:
        result = AnalyzeResult.model_validate(layout_payload)
        assert parse_layout_result(result).total_fields == 7

    def test_single_pair_and_selected_mark(self) -> None:
        data = parse_layout_result({
            "keyValuePairs": [{"key": {"content": "Name"}, "value": {"content": "Jane Doe"}}],
            "pages": [{"selectionMarks": [{"state": "selected"}]}],
        })

        assert data.summary == "Extracted 2 fields across 2 sections: Form Fields, Checkboxes & Selections"
        assert data.form_fields[0].name == "Name"
        assert data.form_fields[0].value == "Jane Doe"
        assert data.form_fields[1].value is True
