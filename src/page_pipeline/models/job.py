from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field

from .progress import GenerationProgress


class JobStatus(str, Enum):
    queued = "QUEUED"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    failed = "FAILED"


class JobOutputs(BaseModel):
    page_id: str | None = None
    slug: str | None = None
    summary: Mapping[str, Any] | None = None
    render_data: Mapping[str, Any] | None = None


class JobRecord(BaseModel):
    id: str
    status: JobStatus
    progress: GenerationProgress | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    workspace_id: str | None = None
    page_id: str | None = None
    request: Mapping[str, Any] | None = None
    errors: Sequence[str] = Field(default_factory=list)
    outputs: JobOutputs = Field(default_factory=JobOutputs)


__all__ = ["JobRecord", "JobStatus", "JobOutputs"]
