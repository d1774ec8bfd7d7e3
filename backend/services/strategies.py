"""
Extraction Strategies
=====================
Two interchangeable ways to turn a document into ExtractedPDFData, one
contract:

    prepare(document, kind, progress)      -> prepared input
    analyze(prepared, progress, cancel)    -> raw AnalysisResult
    parse(raw)                             -> ExtractedPDFData

LayoutExtractionStrategy
    submit bytes to the layout service, poll the operation, parse
    paragraphs / key-value pairs / tables / selection marks
VisionExtractionStrategy
    render pages to images, one multimodal call, parse the JSON
    embedded in the model's answer

The strategy is picked from configuration once (build_strategy), never
by branching on the data.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import settings
from schemas.extraction import ExtractedPDFData
from services import progress as checkpoints
from services.exceptions import ConfigurationError, EmptyDocument, ExtractionCancelled
from services.layout_parser import parse_layout_result
from services.layout_service import JobPoller, LayoutAnalysisClient
from services.progress import ProgressReporter, page_conversion_percent
from services.vision_parser import parse_vision_response
from services.vision_service import VisionClient, build_extraction_prompt, build_vision_client
from utils.document_input import DocumentInput, DocumentKind, layout_content_type
from utils.image_preprocessing import ImagePreprocessor, PageImage, image_preprocessor

logger = logging.getLogger(__name__)


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ExtractionCancelled()


class ExtractionStrategy(ABC):
    """Common contract for both back-ends."""

    name: str = "base"

    @abstractmethod
    async def prepare(self, document: DocumentInput, kind: DocumentKind, progress: ProgressReporter) -> Any:
        ...

    @abstractmethod
    async def analyze(
        self,
        prepared: Any,
        progress: ProgressReporter,
        cancel_event: Optional[asyncio.Event] = None
    ) -> Any:
        ...

    @abstractmethod
    def parse(self, result: Any) -> ExtractedPDFData:
        ...


# =============================================================================
# LAYOUT STRATEGY
# =============================================================================

@dataclass
class LayoutSubmission:
    content: bytes
    content_type: str


class LayoutExtractionStrategy(ExtractionStrategy):
    """Layout-analysis service: submit, poll, parse."""

    name = "layout"

    def __init__(
        self,
        client: Optional[LayoutAnalysisClient] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep=None
    ):
        self._client = client
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def prepare(self, document: DocumentInput, kind: DocumentKind, progress: ProgressReporter) -> LayoutSubmission:
        return LayoutSubmission(content=document.content, content_type=layout_content_type(document))

    def _poller(self, client: LayoutAnalysisClient) -> JobPoller:
        kwargs: Dict[str, Any] = {
            "poll_interval": self._poll_interval,
            "max_attempts": self._max_attempts,
        }
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        # One poller per call: attempt counters are never shared
        return JobPoller(client, **kwargs)

    async def analyze(
        self,
        prepared: LayoutSubmission,
        progress: ProgressReporter,
        cancel_event: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        client = self._client or LayoutAnalysisClient()
        try:
            progress.report(1, "Uploading document for analysis...", checkpoints.UPLOAD_START)
            operation_location = await client.submit(prepared.content, prepared.content_type)

            _check_cancelled(cancel_event)
            progress.report(2, "Analyzing document...", checkpoints.ACQUIRE_DONE)

            return await self._poller(client).wait(operation_location, progress, cancel_event)
        finally:
            if self._client is None:
                await client.close()

    def parse(self, result: Dict[str, Any]) -> ExtractedPDFData:
        return parse_layout_result(result)


# =============================================================================
# VISION STRATEGY
# =============================================================================

class VisionExtractionStrategy(ExtractionStrategy):
    """Multimodal model: page images + instruction -> free text."""

    name = "vision"

    def __init__(
        self,
        client: Optional[VisionClient] = None,
        preprocessor: Optional[ImagePreprocessor] = None
    ):
        self._client = client
        self._preprocessor = preprocessor or image_preprocessor

    async def prepare(self, document: DocumentInput, kind: DocumentKind, progress: ProgressReporter) -> List[PageImage]:
        if kind == DocumentKind.IMAGE:
            progress.report(1, "Processing image...", checkpoints.IMAGE_LOADED)

        def on_page(page_number: int, total: int) -> None:
            progress.report(
                1,
                f"Converting page {page_number} of {total}...",
                page_conversion_percent(page_number, total)
            )

        pages = await self._preprocessor.to_page_images(document, kind, on_page=on_page)
        if not pages:
            raise EmptyDocument()

        progress.report(1, "Image processed successfully" if kind == DocumentKind.IMAGE
                        else f"Converted {len(pages)} page(s)", checkpoints.ACQUIRE_DONE)
        return pages

    async def analyze(
        self,
        prepared: List[PageImage],
        progress: ProgressReporter,
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        client = self._client or build_vision_client()
        try:
            progress.report(2, "Uploading to AI for analysis...", checkpoints.VISION_UPLOAD)
            prompt = build_extraction_prompt(len(prepared))

            _check_cancelled(cancel_event)
            progress.report(2, "Analyzing the document...", checkpoints.VISION_ANALYZING)
            response = await client.analyze(prompt, prepared)

            progress.report(2, "AI analysis complete", checkpoints.VISION_DONE)
            return response
        finally:
            if self._client is None:
                await client.close()

    def parse(self, result: str) -> ExtractedPDFData:
        return parse_vision_response(result)


# =============================================================================
# FACTORY
# =============================================================================

def build_strategy(name: Optional[str] = None) -> ExtractionStrategy:
    """Strategy selected by EXTRACTION_STRATEGY."""
    name = name or settings.EXTRACTION_STRATEGY
    if name == "layout":
        return LayoutExtractionStrategy()
    if name == "vision":
        return VisionExtractionStrategy()
    raise ConfigurationError(f"Unknown EXTRACTION_STRATEGY: {name}")
