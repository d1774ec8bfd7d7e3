"""
Extraction Service - LangGraph Workflow Orchestration
======================================================
Runs one document through the configured extraction strategy using the
LangGraph Functional API:

    acquire  (validate input, prepare bytes / page images)   5-30%
    analyze  (layout submit+poll, or one vision call)       30-80%
    finalize (parse into ExtractedPDFData)                  90-100%

Features:
- LangGraph @task and @entrypoint decorators for workflow management
- No retry policies: every failure surfaces once to the caller
- No checkpointer: nothing is retained after the call returns
- Per-call job state (progress reporter, poller, cancel flag)

Usage:
    from services.extraction_service import ExtractionService

    service = ExtractionService()
    data = await service.extract_document(content, "application/pdf", on_progress=print)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

# LangGraph Functional API imports
from langgraph.func import entrypoint, task

from schemas.extraction import ExtractedPDFData
from services import progress as checkpoints
from services.exceptions import ExtractionCancelled, ExtractionError
from services.progress import ProgressCallback, ProgressReporter
from services.strategies import ExtractionStrategy, build_strategy
from utils.document_input import DocumentInput, DocumentKind, validate_document

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES - Job State
# =============================================================================

class JobPhase(str, Enum):
    PENDING = "pending"
    ACQUIRE = "acquire"
    ANALYZE = "analyze"
    FINALIZE = "finalize"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExtractionJob:
    """State owned by one extraction call; discarded when it returns."""
    document: DocumentInput
    strategy: ExtractionStrategy
    progress: ProgressReporter
    cancel_event: Optional[asyncio.Event] = None
    phase: JobPhase = JobPhase.PENDING
    kind: Optional[DocumentKind] = None
    started_at: float = field(default_factory=time.time)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def check_cancelled(self) -> None:
        if self.cancelled:
            raise ExtractionCancelled()

    @property
    def elapsed_ms(self) -> int:
        return int((time.time() - self.started_at) * 1000)


# =============================================================================
# LANGGRAPH TASKS - Individual Pipeline Steps
# =============================================================================

@task
async def acquire_task(job: ExtractionJob) -> Any:
    """Validate the upload and prepare the strategy's input."""
    job.phase = JobPhase.ACQUIRE
    job.progress.report(1, "Reading file...", checkpoints.READ_START)

    job.kind = validate_document(job.document)
    job.check_cancelled()

    return await job.strategy.prepare(job.document, job.kind, job.progress)


@task
async def analyze_task(job: ExtractionJob, prepared: Any) -> Any:
    """Run the back-end analysis (submit + poll, or one vision call)."""
    job.phase = JobPhase.ANALYZE
    job.check_cancelled()
    return await job.strategy.analyze(prepared, job.progress, job.cancel_event)


@task
async def finalize_task(job: ExtractionJob, raw_result: Any) -> ExtractedPDFData:
    """Parse the raw analysis result into the normalized contract."""
    job.phase = JobPhase.FINALIZE
    job.progress.report(3, "Processing results...", checkpoints.PARSING)

    data = job.strategy.parse(raw_result)

    job.progress.complete()
    job.phase = JobPhase.DONE
    return data


# =============================================================================
# MAIN EXTRACTION WORKFLOW - LangGraph Entrypoint
# =============================================================================

@entrypoint()
async def extraction_workflow(inputs: Dict[str, Any]) -> ExtractedPDFData:
    """
    acquire -> analyze -> finalize for one job.

    Args:
        inputs: {"job": ExtractionJob}
    """
    job: ExtractionJob = inputs["job"]

    prepared = await acquire_task(job)
    raw_result = await analyze_task(job, prepared)
    return await finalize_task(job, raw_result)


# =============================================================================
# EXTRACTION SERVICE CLASS - Public API
# =============================================================================

class ExtractionService:
    """
    High-level extraction API.

    The strategy comes from EXTRACTION_STRATEGY unless one is injected.

    Usage:
        service = ExtractionService()
        data = await service.extract_document(content, "image/png")
    """

    def __init__(self, strategy: Optional[ExtractionStrategy] = None):
        self._strategy = strategy or build_strategy()
        logger.info(f"ExtractionService initialized (strategy: {self._strategy.name})")

    @property
    def strategy(self) -> ExtractionStrategy:
        return self._strategy

    async def extract_document(
        self,
        content: bytes,
        content_type: str,
        filename: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ExtractedPDFData:
        """
        Extract structured form data from a document.

        Args:
            content: Raw file bytes
            content_type: Declared MIME type (application/pdf, image/jpeg, image/png)
            filename: Optional name, used for logging
            on_progress: Optional callback receiving ProgressUpdate events
            cancel_event: Optional event; setting it aborts the job

        Returns:
            ExtractedPDFData

        Raises:
            ExtractionError: any fatal condition (see services/exceptions.py)
        """
        job = ExtractionJob(
            document=DocumentInput(content=content, content_type=content_type, filename=filename),
            strategy=self._strategy,
            progress=ProgressReporter(on_progress),
            cancel_event=cancel_event
        )

        logger.info(
            f"Starting {self._strategy.name} extraction for {filename or '<blob>'} "
            f"({len(content) / 1024:.2f} KB, {content_type})"
        )

        try:
            data: ExtractedPDFData = await extraction_workflow.ainvoke({"job": job})
        except ExtractionError as e:
            job.phase = JobPhase.FAILED
            logger.error(f"Extraction failed after {job.elapsed_ms}ms: {e}")
            raise

        logger.info(
            f"Extraction completed: {len(data.sections)} sections, "
            f"{data.total_fields} fields in {job.elapsed_ms}ms"
        )
        return data

    async def extract_file(
        self,
        file_path: Union[str, Path],
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ExtractedPDFData:
        """Extract from a file on disk (type guessed from the extension if not given)."""
        document = DocumentInput.from_path(file_path, content_type)
        return await self.extract_document(
            document.content,
            document.content_type,
            filename=document.filename,
            on_progress=on_progress,
            cancel_event=cancel_event
        )

    def extract_document_sync(
        self,
        content: bytes,
        content_type: str,
        filename: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> ExtractedPDFData:
        """
        Synchronous wrapper for extract_document.

        Must not be called from a running event loop.
        """
        return asyncio.run(
            self.extract_document(
                content,
                content_type,
                filename=filename,
                on_progress=on_progress
            )
        )

    def get_status(self) -> Dict[str, Any]:
        """Get service status for health checks."""
        return {
            "service": "ExtractionService",
            "status": "ready",
            "strategy": self._strategy.name
        }


__all__ = [
    "ExtractionService",
    "ExtractionJob",
    "JobPhase",
    "extraction_workflow",
]
