"""Vertex AI backed implementations of the three generation stages.

Each service turns a stage request into a single JSON completion and validates
the answer into the stage's result model. Retries are left to the caller of
the model; a failure here surfaces as a failed stage in the orchestrator.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time

from .models.content import ContentGenerationResult, ContentGenerationStats, ContentRequest
from .models.layout import (
    LayoutGenerationMetadata,
    LayoutGenerationResult,
    LayoutRequest,
    PageLayout,
)
from .models.storyline import StorylineMetadata, StorylineRequest, StorylineResult
from .stages import StageServices
from .vertex_ai_adapter import VertexAIAdapter

logger = logging.getLogger(__name__)

LAYOUT_PROMPT = """You plan conversion-focused marketing pages.
Choose the sections for a "{page_type}" page. Every section needs a unique id,
a component id, a narrative role (hook, problem, solution, proof, action) and
an integer order. Respect the constraints in the request.

Request:
{request}

Respond with a JSON object matching this schema, plus a top-level
"confidence_score" between 0 and 1:
{schema}
"""

STORYLINE_PROMPT = """You write the narrative arc for a marketing page.
The primary goal is conversion. Produce the core narrative, the default story
flow, content blocks, one variation per persona and an emotional journey whose
point positions run from 0 to 100.

Request:
{request}

Respond with a JSON object matching this schema:
{schema}
"""

CONTENT_PROMPT = """You write the copy for each section of a marketing page,
grounded in knowledge base {knowledge_base_id}. Populate exactly the sections
listed in the request, keeping their ids, components, roles and order. Add a
persona variation per persona where the copy should differ.

Request:
{request}

Respond with a JSON object matching this schema:
{schema}
"""


def _schema(model) -> str:
    return json.dumps(model.model_json_schema(), ensure_ascii=False)


class VertexLayoutService:
    def __init__(self, adapter: VertexAIAdapter, *, temperature: float = 0.4) -> None:
        self._adapter = adapter
        self._temperature = temperature

    async def __call__(self, request: LayoutRequest) -> LayoutGenerationResult:
        prompt = LAYOUT_PROMPT.format(
            page_type=request.page_type.value,
            request=request.model_dump_json(indent=2),
            schema=_schema(PageLayout),
        )
        data, tokens_used = await asyncio.to_thread(
            self._adapter.generate_json, prompt, temperature=self._temperature
        )
        confidence = data.pop("confidence_score", None)
        layout = PageLayout.model_validate({**data, "page_type": request.page_type})
        return LayoutGenerationResult(
            layout=layout,
            generation_metadata=LayoutGenerationMetadata(
                confidence_score=confidence, tokens_used=tokens_used
            ),
        )


class VertexStorylineService:
    def __init__(self, adapter: VertexAIAdapter, *, temperature: float = 0.7) -> None:
        self._adapter = adapter
        self._temperature = temperature

    async def __call__(self, request: StorylineRequest) -> StorylineResult:
        started = time.monotonic()
        prompt = STORYLINE_PROMPT.format(
            request=request.model_dump_json(indent=2),
            schema=_schema(StorylineResult),
        )
        data, tokens_used = await asyncio.to_thread(
            self._adapter.generate_json, prompt, temperature=self._temperature
        )
        data["metadata"] = StorylineMetadata(
            model_used=self._adapter.model_name,
            tokens_used=tokens_used,
            generation_time_ms=int((time.monotonic() - started) * 1000),
        )
        return StorylineResult.model_validate(data)


class VertexContentService:
    def __init__(self, adapter: VertexAIAdapter, *, temperature: float = 0.7) -> None:
        self._adapter = adapter
        self._temperature = temperature

    async def __call__(self, request: ContentRequest) -> ContentGenerationResult:
        prompt = CONTENT_PROMPT.format(
            knowledge_base_id=request.knowledge_base_id,
            request=request.model_dump_json(indent=2),
            schema=_schema(ContentGenerationResult),
        )
        data, tokens_used = await asyncio.to_thread(
            self._adapter.generate_json, prompt, temperature=self._temperature
        )
        data.pop("generation_stats", None)
        result = ContentGenerationResult.model_validate(data)

        planned = {section.section_id for section in request.sections}
        returned = {section.section_id for section in result.sections}
        missing = planned - returned
        if missing:
            logger.warning(
                "Content response skipped planned sections",
                extra={"page_id": request.page_id, "missing_sections": sorted(missing)},
            )

        confidences = [section.metadata.confidence_score for section in result.sections]
        result.generation_stats = ContentGenerationStats(
            sections_generated=len(result.sections),
            average_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
            fallbacks_used=len(missing),
            total_tokens_used=tokens_used,
        )
        return result


def build_vertex_services(adapter: VertexAIAdapter) -> StageServices:
    return StageServices(
        layout=VertexLayoutService(adapter),
        storyline=VertexStorylineService(adapter),
        content=VertexContentService(adapter),
    )


__all__ = [
    "VertexContentService",
    "VertexLayoutService",
    "VertexStorylineService",
    "build_vertex_services",
]
