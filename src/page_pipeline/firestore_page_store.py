from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from google.cloud import firestore

from .models.generation import GenerationInput
from .models.page import PageRecord

logger = logging.getLogger(__name__)


class FirestorePageStore:
    """Firestore-backed page store for production use."""

    COLLECTION_NAME = "pages"

    def __init__(self, project_id: str | None = None) -> None:
        self._db = firestore.Client(project=project_id)
        self._collection = self._db.collection(self.COLLECTION_NAME)

    def create_page(self, generation_input: GenerationInput, *, page_id: str | None = None) -> str:
        """Create an empty, unpublished page record."""
        doc_ref = self._collection.document(page_id) if page_id else self._collection.document()
        now = datetime.utcnow()

        page = PageRecord(
            id=doc_ref.id,
            website_id=generation_input.website_id,
            created_at=now,
            updated_at=now,
        )
        doc_ref.set(page.model_dump(exclude={"id"}))

        logger.info(
            "Created page record",
            extra={
                "page_id": doc_ref.id,
                "website_id": generation_input.website_id,
                "workspace_id": generation_input.workspace_id,
            },
        )

        return doc_ref.id

    def get_page(self, page_id: str) -> PageRecord | None:
        doc = self._collection.document(page_id).get()

        if not doc.exists:
            return None

        return PageRecord.model_validate({**doc.to_dict(), "id": doc.id})

    def save_page_content(
        self, page_id: str, *, title: str, slug: str, content: Mapping[str, Any]
    ) -> PageRecord:
        """Write generated content; the last writer wins on concurrent regeneration."""
        doc_ref = self._collection.document(page_id)

        doc_ref.update(
            {
                "title": title,
                "slug": slug,
                "content": dict(content),
                "updated_at": datetime.utcnow(),
            }
        )

        logger.info("Saved page content", extra={"page_id": page_id, "slug": slug})

        updated_doc = doc_ref.get()
        return PageRecord.model_validate({**updated_doc.to_dict(), "id": updated_doc.id})


__all__ = ["FirestorePageStore"]
