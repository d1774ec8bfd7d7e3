"""
Progress Reporting
==================
Delivers ProgressUpdate events to an optional caller-supplied callback.

Checkpoints (percent):
    5            file read
    10/15/30     submission or page conversion
    30-80        analysis (polling band for the layout strategy,
                 40/50/80 for the vision strategy)
    90           parsing
    100          done

One reporter belongs to exactly one extraction call. Percent never goes
backwards within a call, and a missing or failing callback never
changes the outcome of the extraction.
"""

import logging
import math
from typing import Callable, List, Optional

from schemas.extraction import ProgressUpdate, TOTAL_STEPS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]

# Named checkpoints
READ_START = 5
UPLOAD_START = 10
IMAGE_LOADED = 15
ACQUIRE_DONE = 30
POLL_CEILING = 80
VISION_UPLOAD = 40
VISION_ANALYZING = 50
VISION_DONE = 80
PARSING = 90
DONE = 100


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def polling_percent(attempt: int, max_attempts: int) -> int:
    """Polling occupies the 30-80% band, growing with the attempt count."""
    return min(ACQUIRE_DONE + _round_half_up(attempt / max_attempts * 50), POLL_CEILING)


def page_conversion_percent(page_number: int, total_pages: int) -> int:
    """Page rendering is spread linearly over 0-30%."""
    return _round_half_up(page_number / total_pages * ACQUIRE_DONE)


class ProgressReporter:
    """
    Monotonic progress emitter.

    Usage:
        reporter = ProgressReporter(on_progress)
        reporter.report(1, "Reading file...", 5)
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._last_percent = 0
        self.history: List[ProgressUpdate] = []

    @property
    def last_percent(self) -> int:
        return self._last_percent

    def report(self, step: int, message: str, percent: int) -> ProgressUpdate:
        """Emit one update; percent is clamped to 0..100 and never decreases."""
        percent = max(0, min(100, int(percent)))
        if percent < self._last_percent:
            logger.debug(f"Progress {percent}% below last {self._last_percent}%, holding")
            percent = self._last_percent
        self._last_percent = percent

        update = ProgressUpdate(
            step=step,
            total_steps=TOTAL_STEPS,
            message=message,
            percent=percent
        )
        self.history.append(update)

        if self._callback is not None:
            try:
                self._callback(update)
            except Exception as e:
                # Progress is observational only
                logger.warning(f"Progress callback failed: {e}")

        return update

    def complete(self, message: str = "Extraction complete!") -> ProgressUpdate:
        return self.report(TOTAL_STEPS, message, DONE)
