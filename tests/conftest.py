"""Shared fixtures for the extraction backend tests."""

import json
from typing import Any, Callable, Dict, List

import pytest

from schemas.extraction import ProgressUpdate


@pytest.fixture
def layout_payload() -> Dict[str, Any]:
    """A small analyzeResult with every collection the parser reads."""
    return {
        "content": "PATIENT INFORMATION\nName: Jane Doe\nSee attached",
        "paragraphs": [
            {"content": "PATIENT INFORMATION"},
            {"content": "Name: Jane Doe", "confidence": 0.98},
            {"content": "See attached"},
        ],
        "keyValuePairs": [
            {"key": {"content": "DOB"}, "value": {"content": "1-11-1982"}, "confidence": 0.9},
            {"key": {"content": "Phone"}, "value": None},
            {"key": {"content": "  "}, "value": {"content": "ignored"}},
        ],
        "tables": [
            {
                "rowCount": 2,
                "columnCount": 2,
                "cells": [
                    {"rowIndex": 0, "columnIndex": 0, "content": "Test"},
                    {"rowIndex": 0, "columnIndex": 1, "content": "Code"},
                    {"rowIndex": 1, "columnIndex": 0, "content": "CBC"},
                    {"rowIndex": 1, "columnIndex": 1, "content": "85025"},
                ],
            }
        ],
        "pages": [
            {"pageNumber": 1, "selectionMarks": [{"state": "selected", "confidence": 0.8}]},
            {"pageNumber": 2, "selectionMarks": []},
        ],
        "languages": [{"locale": "en", "confidence": 0.99}],
    }


@pytest.fixture
def vision_answer() -> str:
    """A model answer with prose around a fenced JSON payload."""
    payload = {
        "summary": "Clinical Laboratory Order Form",
        "sections": [
            {
                "title": "Patient Information",
                "fields": [
                    {"name": "Name", "value": "Jane Doe", "type": "text"},
                    {"name": "Phone", "value": "521-5?6-9134", "type": "text", "note": "(unclear)"},
                ],
            },
            {
                "title": "Test Selections",
                "fields": [
                    {"name": "CBC", "value": True, "type": "checkbox"},
                    {"name": "Lipid Panel", "value": "unchecked", "type": "checkbox"},
                ],
            },
        ],
        "notes": ["Signature present"],
    }
    return "Here is the extracted data:\n```json\n" + json.dumps(payload, indent=2) + "\n```\nDone."


@pytest.fixture
def progress_events() -> List[ProgressUpdate]:
    return []


@pytest.fixture
def on_progress(progress_events) -> Callable[[ProgressUpdate], None]:
    return progress_events.append


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
