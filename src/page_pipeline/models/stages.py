from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, model_validator

from .content import ContentGenerationResult
from .layout import PageLayout
from .storyline import StorylineResult

PayloadT = TypeVar("PayloadT", bound=BaseModel)
MetricsT = TypeVar("MetricsT", bound=BaseModel)


class StageStatus(str, Enum):
    completed = "completed"
    failed = "failed"
    skipped = "skipped"


class LayoutMetrics(BaseModel):
    sections_count: int = 0
    confidence_score: float = 0.0
    time_ms: int = 0
    tokens_used: int = 0


class StorylineMetrics(BaseModel):
    content_blocks_count: int = 0
    persona_variations_count: int = 0
    time_ms: int = 0
    tokens_used: int = 0


class ContentMetrics(BaseModel):
    sections_populated: int = 0
    average_confidence: float = 0.0
    fallbacks_used: int = 0
    time_ms: int = 0
    tokens_used: int = 0


class StageResult(BaseModel, Generic[PayloadT, MetricsT]):
    """Outcome of one generation stage.

    A failed result never carries a payload and always carries an error; a
    completed result always carries a payload. Build results through
    :meth:`completed`, :meth:`failed` and :meth:`skipped`.
    """

    status: StageStatus
    payload: PayloadT | None = None
    error: str | None = None
    metrics: MetricsT

    @model_validator(mode="after")
    def _check_payload_matches_status(self) -> "StageResult[PayloadT, MetricsT]":
        if self.status is StageStatus.failed:
            if self.payload is not None:
                raise ValueError("failed stage result must not carry a payload")
            if not self.error:
                raise ValueError("failed stage result requires an error message")
        elif self.status is StageStatus.completed:
            if self.payload is None:
                raise ValueError("completed stage result requires a payload")
        elif self.payload is not None:
            raise ValueError("skipped stage result must not carry a payload")
        return self

    @property
    def succeeded(self) -> bool:
        return self.status is StageStatus.completed

    @classmethod
    def completed(cls, payload: PayloadT, metrics: MetricsT):
        return cls(status=StageStatus.completed, payload=payload, metrics=metrics)

    @classmethod
    def failed(cls, error: str, metrics: MetricsT):
        return cls(status=StageStatus.failed, error=error, metrics=metrics)

    @classmethod
    def skipped(cls, metrics: MetricsT):
        return cls(status=StageStatus.skipped, metrics=metrics)


class LayoutStageResult(StageResult[PageLayout, LayoutMetrics]):
    pass


class StorylineStageResult(StageResult[StorylineResult, StorylineMetrics]):
    pass


class ContentStageResult(StageResult[ContentGenerationResult, ContentMetrics]):
    pass


__all__ = [
    "ContentMetrics",
    "ContentStageResult",
    "LayoutMetrics",
    "LayoutStageResult",
    "StageResult",
    "StageStatus",
    "StorylineMetrics",
    "StorylineStageResult",
]
