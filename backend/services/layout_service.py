"""
Layout Analysis Service - Submission & Polling
==============================================
Async client for the layout-analysis back-end (Azure Document
Intelligence REST API, ``prebuilt-layout`` model).

Flow:
    1. submit()  POST raw bytes -> Operation-Location handle
    2. JobPoller GET the handle every 2s, at most 60 times
    3. succeeded -> analyzeResult, failed -> AnalysisFailed,
       cap exceeded -> AnalysisTimeout

The poller keeps its attempt counter local to each call so overlapping
extractions never share state. Polling is fixed-interval: the back-end
completes in seconds to low tens of seconds, so a fixed cap gives a
predictable worst case.

Usage:
    async with LayoutAnalysisClient() as client:
        handle = await client.submit(content, "application/pdf")
        result = await JobPoller(client).wait(handle)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from config import settings
from services.exceptions import (
    AnalysisFailed,
    AnalysisServiceError,
    AnalysisTimeout,
    ConfigurationError,
    ExtractionCancelled,
    MissingOperationHandle,
)
from services.progress import ProgressReporter, polling_percent

logger = logging.getLogger(__name__)

SERVICE_NAME = "Layout analysis service"

STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

Sleep = Callable[[float], Awaitable[None]]


# =============================================================================
# HTTP CLIENT
# =============================================================================

class LayoutAnalysisClient:
    """
    Thin async HTTP client for submit / status calls.

    An httpx.AsyncClient can be injected (tests use httpx.MockTransport);
    otherwise one is created on enter and closed on exit.
    """

    def __init__(
        self,
        analyze_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        self._has_endpoint = bool(analyze_url or settings.AZURE_DOCUMENT_ENDPOINT)
        self.analyze_url = analyze_url or settings.layout_analyze_url
        self.api_key = api_key if api_key is not None else settings.AZURE_DOCUMENT_API_KEY
        self._timeout = httpx.Timeout(timeout or settings.HTTP_TIMEOUT_SECONDS, connect=10.0)
        self._client = http_client
        self._owns_client = http_client is None

    def _ensure_configured(self) -> None:
        if not self._has_endpoint:
            raise ConfigurationError(
                "AZURE_DOCUMENT_ENDPOINT not configured. Set it in your .env file."
            )
        if not self.api_key:
            raise ConfigurationError(
                "AZURE_DOCUMENT_API_KEY not configured. Set it in your .env file."
            )

    async def __aenter__(self) -> "LayoutAnalysisClient":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {"Ocp-Apim-Subscription-Key": self.api_key}

    async def submit(self, content: bytes, content_type: str) -> str:
        """
        Send the raw document for analysis.

        Returns:
            The Operation-Location URL to poll

        Raises:
            AnalysisServiceError: non-2xx response or transport failure
            MissingOperationHandle: 2xx response without Operation-Location
        """
        self._ensure_configured()
        logger.info(f"Submitting {len(content) / 1024:.2f} KB ({content_type}) for layout analysis")

        try:
            response = await self._http().post(
                self.analyze_url,
                content=content,
                headers={"Content-Type": content_type, **self._auth_headers}
            )
        except httpx.HTTPError as e:
            logger.error(f"Layout submission failed: {e}")
            raise AnalysisServiceError(None, str(e), SERVICE_NAME) from e

        if not response.is_success:
            logger.error(f"Layout submission rejected: {response.status_code} {response.text}")
            raise AnalysisServiceError(response.status_code, response.text, SERVICE_NAME)

        operation_location = response.headers.get("Operation-Location")
        if not operation_location:
            logger.error("Layout submission succeeded without an Operation-Location header")
            raise MissingOperationHandle()

        logger.info(f"Document submitted, operation: {operation_location}")
        return operation_location

    async def get_status(self, operation_location: str) -> Dict[str, Any]:
        """One status query against the operation handle."""
        try:
            response = await self._http().get(operation_location, headers=self._auth_headers)
        except httpx.HTTPError as e:
            logger.error(f"Status query failed: {e}")
            raise AnalysisServiceError(None, str(e), SERVICE_NAME) from e

        if not response.is_success:
            logger.error(f"Status query rejected: {response.status_code} {response.text}")
            raise AnalysisServiceError(response.status_code, response.text, SERVICE_NAME)

        try:
            return response.json()
        except ValueError as e:
            raise AnalysisServiceError(response.status_code, f"Invalid JSON: {e}", SERVICE_NAME) from e


# =============================================================================
# POLLER
# =============================================================================

class JobPoller:
    """
    Bounded, fixed-interval polling of one operation handle.

    Args:
        client: anything with ``async get_status(handle) -> dict``
        poll_interval: seconds between status queries
        max_attempts: status queries before AnalysisTimeout
        sleep: awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        client: LayoutAnalysisClient,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Sleep = asyncio.sleep
    ):
        self.client = client
        self.poll_interval = settings.LAYOUT_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_attempts = max_attempts or settings.LAYOUT_MAX_POLL_ATTEMPTS
        self._sleep = sleep

    async def wait(
        self,
        operation_location: str,
        progress: Optional[ProgressReporter] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """
        Poll until a terminal status.

        Returns:
            The ``analyzeResult`` payload of a succeeded operation

        Raises:
            AnalysisFailed, AnalysisTimeout, AnalysisServiceError,
            ExtractionCancelled
        """
        logger.info("Polling for analysis results...")

        for attempt in range(1, self.max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise ExtractionCancelled()

            if progress is not None:
                progress.report(
                    2,
                    f"Analyzing document... (attempt {attempt}/{self.max_attempts})",
                    polling_percent(attempt, self.max_attempts)
                )

            result = await self.client.get_status(operation_location)
            status = result.get("status")
            logger.info(f"Status: {status} (attempt {attempt})")

            if status == STATUS_SUCCEEDED:
                logger.info("Analysis completed successfully")
                return result.get("analyzeResult") or {}

            if status == STATUS_FAILED:
                error = result.get("error") or {}
                message = error.get("message") if isinstance(error, dict) else str(error)
                logger.error(f"Analysis failed: {error}")
                raise AnalysisFailed(message)

            if attempt < self.max_attempts:
                await self._pause(cancel_event)

        logger.error(f"Analysis did not finish after {self.max_attempts} attempts")
        raise AnalysisTimeout(self.max_attempts, self.poll_interval)

    async def _pause(self, cancel_event: Optional[asyncio.Event]) -> None:
        """Sleep one interval, waking early if the job is cancelled."""
        if cancel_event is None:
            await self._sleep(self.poll_interval)
            return

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return
        raise ExtractionCancelled()
