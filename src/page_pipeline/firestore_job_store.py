from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .models.job import JobOutputs, JobRecord, JobStatus
from .models.progress import GenerationProgress

logger = logging.getLogger(__name__)


class FirestoreJobStore:
    """Firestore-backed job store for production use."""

    COLLECTION_NAME = "page_generation_jobs"

    def __init__(self, project_id: str | None = None) -> None:
        self._db = firestore.Client(project=project_id)
        self._collection = self._db.collection(self.COLLECTION_NAME)

    def create_job(
        self,
        *,
        workspace_id: str,
        page_id: str | None,
        request: Mapping[str, Any] | None = None,
    ) -> JobRecord:
        """Create a new job record in Firestore."""
        job_id = self._generate_id(page_id)
        now = datetime.utcnow()

        job = JobRecord(
            id=job_id,
            status=JobStatus.queued,
            workspace_id=workspace_id,
            page_id=page_id,
            request=request,
            created_at=now,
            updated_at=now,
        )

        self._collection.document(job_id).set(self._to_firestore_dict(job))

        logger.info(
            "Created job",
            extra={"job_id": job_id, "workspace_id": workspace_id, "page_id": page_id},
        )

        return job

    def get_job(self, job_id: str) -> JobRecord | None:
        """Retrieve a job by ID from Firestore."""
        doc = self._collection.document(job_id).get()

        if not doc.exists:
            return None

        return self._from_firestore_dict(doc.id, doc.to_dict())

    def update_job(
        self,
        job_id: str,
        *,
        status: JobStatus | None = None,
        progress: GenerationProgress | None = None,
        outputs: JobOutputs | None = None,
        errors: list[str] | None = None,
    ) -> JobRecord:
        """Update job fields in Firestore."""
        doc_ref = self._collection.document(job_id)

        update_data: dict = {"updated_at": datetime.utcnow()}

        if status is not None:
            update_data["status"] = status.value

        if progress is not None:
            update_data["progress"] = progress.model_dump(mode="json")
            if progress.page_id:
                update_data["page_id"] = progress.page_id

        if outputs is not None:
            update_data["outputs"] = outputs.model_dump(mode="json")

        if errors is not None:
            update_data["errors"] = errors

        doc_ref.update(update_data)

        logger.debug(
            "Updated job",
            extra={
                "job_id": job_id,
                "status": status.value if status else None,
                "pipeline_status": progress.status.value if progress else None,
            },
        )

        updated_doc = doc_ref.get()
        return self._from_firestore_dict(updated_doc.id, updated_doc.to_dict())

    def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> list[JobRecord]:
        """List jobs with optional filtering."""
        query = self._collection

        if status is not None:
            query = query.where(filter=FieldFilter("status", "==", status.value))

        if workspace_id is not None:
            query = query.where(filter=FieldFilter("workspace_id", "==", workspace_id))

        query = query.order_by("created_at", direction=firestore.Query.DESCENDING).limit(limit)

        return [self._from_firestore_dict(doc.id, doc.to_dict()) for doc in query.stream()]

    def _generate_id(self, page_id: str | None) -> str:
        """Generate a unique job ID."""
        ts = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        # Use Firestore auto-generated ID for uniqueness
        suffix = self._collection.document().id[:6]

        if page_id:
            safe = page_id.replace("/", "-")
            return f"job_{safe}_{suffix}"
        return f"job_{ts}_{suffix}"

    def _to_firestore_dict(self, job: JobRecord) -> dict:
        data = job.model_dump(mode="json", exclude={"id", "created_at", "updated_at"})
        data["created_at"] = job.created_at
        data["updated_at"] = job.updated_at
        return data

    def _from_firestore_dict(self, job_id: str, data: dict) -> JobRecord:
        return JobRecord.model_validate({**data, "id": job_id})


__all__ = ["FirestoreJobStore"]
