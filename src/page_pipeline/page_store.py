from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Mapping, Protocol

from .models.generation import GenerationInput
from .models.page import PageRecord


class PageStore(Protocol):
    def create_page(self, generation_input: GenerationInput, *, page_id: str | None = None) -> str:
        ...

    def get_page(self, page_id: str) -> PageRecord | None:
        ...

    def save_page_content(
        self, page_id: str, *, title: str, slug: str, content: Mapping[str, Any]
    ) -> PageRecord:
        ...


class InMemoryPageStore:
    """Dict-backed page store for dev and tests. Concurrent saves to one page: last write wins."""

    def __init__(self) -> None:
        self._pages: Dict[str, PageRecord] = {}
        self._lock = threading.Lock()

    def create_page(self, generation_input: GenerationInput, *, page_id: str | None = None) -> str:
        with self._lock:
            page_id = page_id or str(uuid.uuid4())
            self._pages[page_id] = PageRecord(id=page_id, website_id=generation_input.website_id)
            return page_id

    def get_page(self, page_id: str) -> PageRecord | None:
        with self._lock:
            page = self._pages.get(page_id)
            return page.model_copy(deep=True) if page else None

    def save_page_content(
        self, page_id: str, *, title: str, slug: str, content: Mapping[str, Any]
    ) -> PageRecord:
        with self._lock:
            page = self._pages[page_id]
            page.title = title
            page.slug = slug
            page.content = dict(content)
            page.updated_at = datetime.utcnow()
            return page.model_copy(deep=True)


__all__ = ["InMemoryPageStore", "PageStore"]
