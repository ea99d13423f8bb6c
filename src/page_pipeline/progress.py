from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable

from .models.progress import GenerationProgress, PipelineStatus

logger = logging.getLogger(__name__)

ProgressListener = Callable[[GenerationProgress], None]


class ProgressTracker:
    """Observational bookkeeping for a single generation run.

    The tracker is owned by one orchestrator run. Pollers read it through
    :meth:`snapshot`, or receive snapshots pushed to ``on_update``; neither
    can mutate the tracked state. Once the run is ``complete`` or ``failed``
    every further update is ignored.
    """

    def __init__(
        self,
        page_id: str,
        *,
        on_update: ProgressListener | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._progress = GenerationProgress(page_id=page_id)
        self._on_update = on_update
        self._clock = clock
        self._started: float | None = None

    @property
    def status(self) -> PipelineStatus:
        return self._progress.status

    @property
    def is_terminal(self) -> bool:
        return self._progress.status.is_terminal

    def snapshot(self) -> GenerationProgress:
        return self._progress.model_copy(deep=True)

    def start(self) -> None:
        self._started = self._clock()
        self._progress.started_at = datetime.utcnow()

    def bind_page(self, page_id: str) -> None:
        if self.is_terminal or self._progress.page_id == page_id:
            return
        self._progress.page_id = page_id
        self._touch()

    def update(self, status: PipelineStatus, percent: int, label: str) -> bool:
        if status is PipelineStatus.failed:
            return self.fail(label)
        current = self._progress
        if current.status.is_terminal:
            logger.debug(
                "Ignoring progress update after terminal state",
                extra={"page_id": current.page_id, "status": status.value},
            )
            return False

        if status is not current.status and current.status is not PipelineStatus.pending:
            current.completed_stages.append(current.current_stage)
        current.status = status
        current.progress = max(current.progress, min(100, max(0, percent)))
        current.current_stage = label
        current.estimated_time_remaining = self._estimate_remaining()
        logger.debug(
            "Pipeline progress",
            extra={
                "page_id": current.page_id,
                "status": status.value,
                "progress": current.progress,
                "eta_seconds": current.estimated_time_remaining,
            },
        )
        self._touch()
        return True

    def fail(self, error: str) -> bool:
        current = self._progress
        if current.status.is_terminal:
            return False
        current.status = PipelineStatus.failed
        current.error = error
        current.estimated_time_remaining = None
        self._touch()
        return True

    def _estimate_remaining(self) -> int | None:
        percent = self._progress.progress
        if self._started is None or percent <= 0:
            return None
        elapsed_ms = (self._clock() - self._started) * 1000
        return round(elapsed_ms / percent * (100 - percent) / 1000)

    def _touch(self) -> None:
        self._progress.updated_at = datetime.utcnow()
        if self._on_update is None:
            return
        try:
            self._on_update(self.snapshot())
        except Exception as exc:
            logger.warning(
                "Progress listener failed (non-fatal)",
                exc_info=True,
                extra={"page_id": self._progress.page_id, "error": str(exc)},
            )


__all__ = ["ProgressListener", "ProgressTracker"]
