from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PipelineStatus(str, Enum):
    pending = "pending"
    initializing = "initializing"
    layout = "layout"
    storyline = "storyline"
    content = "content"
    assembling = "assembling"
    saving = "saving"
    complete = "complete"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStatus.complete, PipelineStatus.failed)


class GenerationProgress(BaseModel):
    page_id: str
    status: PipelineStatus = PipelineStatus.pending
    progress: int = Field(default=0, ge=0, le=100)
    current_stage: str = "Initializing"
    completed_stages: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    error: str | None = None
    estimated_time_remaining: int | None = None


__all__ = ["GenerationProgress", "PipelineStatus"]
