from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Mapping

from .models.job import JobOutputs, JobRecord, JobStatus
from .models.progress import GenerationProgress


class JobStore:
    def __init__(self) -> None:
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def create_job(
        self,
        *,
        workspace_id: str,
        page_id: str | None,
        request: Mapping[str, Any] | None = None,
    ) -> JobRecord:
        with self._lock:
            job_id = self._generate_id(page_id)
            job = JobRecord(
                id=job_id,
                status=JobStatus.queued,
                workspace_id=workspace_id,
                page_id=page_id,
                request=request,
            )
            self._jobs[job_id] = job
            return job.model_copy(deep=True)

    def get_job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def update_job(
        self,
        job_id: str,
        *,
        status: JobStatus | None = None,
        progress: GenerationProgress | None = None,
        outputs: JobOutputs | None = None,
        errors: list[str] | None = None,
    ) -> JobRecord:
        with self._lock:
            job = self._jobs[job_id]
            if status is not None:
                job.status = status
            if progress is not None:
                job.progress = progress
                job.page_id = progress.page_id or job.page_id
            if outputs is not None:
                job.outputs = outputs
            if errors is not None:
                job.errors = list(errors)
            job.updated_at = datetime.utcnow()
            return job.model_copy(deep=True)

    def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> list[JobRecord]:
        with self._lock:
            jobs = [
                job
                for job in self._jobs.values()
                if (status is None or job.status == status)
                and (workspace_id is None or job.workspace_id == workspace_id)
            ]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return [job.model_copy(deep=True) for job in jobs[:limit]]

    def _generate_id(self, page_id: str | None) -> str:
        ts = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        suffix = uuid.uuid4().hex[:6]
        if page_id:
            safe = page_id.replace("/", "-")
            return f"job_{safe}_{suffix}"
        return f"job_{ts}_{suffix}"


__all__ = ["JobStore"]
