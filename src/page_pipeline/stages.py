from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Protocol, TypeVar

from .dictionaries import default_section_plan
from .models.content import ContentGenerationResult, ContentRequest, SectionPlan
from .models.generation import GenerationInput, StageName
from .models.layout import LayoutGenerationResult, LayoutRequest
from .models.stages import (
    ContentMetrics,
    ContentStageResult,
    LayoutMetrics,
    LayoutStageResult,
    StorylineMetrics,
    StorylineStageResult,
)
from .models.storyline import StorylineHints, StorylineRequest, StorylineResult

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_CONFIDENCE = 0.8

T = TypeVar("T")


class LayoutService(Protocol):
    async def __call__(self, request: LayoutRequest) -> LayoutGenerationResult:
        ...


class StorylineService(Protocol):
    async def __call__(self, request: StorylineRequest) -> StorylineResult:
        ...


class ContentService(Protocol):
    async def __call__(self, request: ContentRequest) -> ContentGenerationResult:
        ...


@dataclass(frozen=True)
class StageServices:
    layout: LayoutService
    storyline: StorylineService
    content: ContentService


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


async def _call_stage(stage: StageName, call: Awaitable[T], timeout: float | None) -> T:
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as exc:
        raise TimeoutError(f"{stage.value} generation timed out after {timeout:g}s") from exc


def _error_message(stage: StageName, exc: Exception) -> str:
    return str(exc) or f"{stage.value.capitalize()} generation failed"


def _log_stage_failure(stage: StageName, generation_input: GenerationInput, exc: Exception) -> None:
    logger.error(
        "Stage generation failed",
        exc_info=True,
        extra={
            "stage": stage.value,
            "workspace_id": generation_input.workspace_id,
            "page_type": generation_input.page_type.value,
            "error": str(exc),
        },
    )


def build_layout_request(generation_input: GenerationInput) -> LayoutRequest:
    return LayoutRequest(
        workspace_id=generation_input.workspace_id,
        website_id=generation_input.website_id,
        knowledge_base_id=generation_input.knowledge_base_id,
        page_type=generation_input.page_type,
        personas=list(generation_input.personas),
        brand_config_id=generation_input.brand_config_id,
        constraints=generation_input.constraints,
    )


def build_storyline_request(generation_input: GenerationInput) -> StorylineRequest:
    hints = generation_input.content_hints
    return StorylineRequest(
        workspace_id=generation_input.workspace_id,
        website_id=generation_input.website_id,
        knowledge_base_id=generation_input.knowledge_base_id,
        page_type=generation_input.page_type,
        personas=list(generation_input.personas),
        brand_config_id=generation_input.brand_config_id,
        content_hints=(
            StorylineHints(
                focus_areas=hints.focus_areas,
                avoid_topics=hints.avoid_topics,
                tone_preference=hints.tone_preference,
            )
            if hints
            else None
        ),
    )


def build_section_plan(
    generation_input: GenerationInput, layout_result: LayoutStageResult
) -> list[SectionPlan]:
    """Sections for the content stage: the generated layout, else the page-type defaults."""
    layout = layout_result.payload
    if layout is None or not layout.sections:
        return default_section_plan(generation_input.page_type)
    # an unset (zero) order takes the section's position in the layout
    return [
        SectionPlan(
            section_id=section.id,
            component_id=section.component_id,
            narrative_role=section.narrative_role,
            order=section.order or index,
        )
        for index, section in enumerate(layout.sections)
    ]


def build_content_request(
    generation_input: GenerationInput, page_id: str, layout_result: LayoutStageResult
) -> ContentRequest:
    return ContentRequest(
        workspace_id=generation_input.workspace_id,
        website_id=generation_input.website_id,
        page_id=page_id,
        page_type=generation_input.page_type,
        knowledge_base_id=generation_input.knowledge_base_id,
        sections=build_section_plan(generation_input, layout_result),
        personas=list(generation_input.personas),
        brand_config_id=generation_input.brand_config_id,
        hints=generation_input.content_hints,
    )


async def run_layout(
    service: LayoutService,
    generation_input: GenerationInput,
    *,
    timeout: float | None = None,
) -> LayoutStageResult:
    if StageName.layout in generation_input.skip_stages:
        return LayoutStageResult.skipped(LayoutMetrics())

    started = time.monotonic()
    try:
        result = await _call_stage(
            StageName.layout, service(build_layout_request(generation_input)), timeout
        )
    except Exception as exc:
        _log_stage_failure(StageName.layout, generation_input, exc)
        return LayoutStageResult.failed(
            _error_message(StageName.layout, exc),
            LayoutMetrics(time_ms=_elapsed_ms(started)),
        )

    metadata = result.generation_metadata
    confidence = metadata.confidence_score
    return LayoutStageResult.completed(
        result.layout,
        LayoutMetrics(
            sections_count=len(result.layout.sections),
            confidence_score=DEFAULT_LAYOUT_CONFIDENCE if confidence is None else confidence,
            time_ms=_elapsed_ms(started),
            tokens_used=metadata.tokens_used or 0,
        ),
    )


async def run_storyline(
    service: StorylineService,
    generation_input: GenerationInput,
    *,
    timeout: float | None = None,
) -> StorylineStageResult:
    if StageName.storyline in generation_input.skip_stages:
        return StorylineStageResult.skipped(StorylineMetrics())

    started = time.monotonic()
    try:
        storyline = await _call_stage(
            StageName.storyline, service(build_storyline_request(generation_input)), timeout
        )
    except Exception as exc:
        _log_stage_failure(StageName.storyline, generation_input, exc)
        return StorylineStageResult.failed(
            _error_message(StageName.storyline, exc),
            StorylineMetrics(time_ms=_elapsed_ms(started)),
        )

    return StorylineStageResult.completed(
        storyline,
        StorylineMetrics(
            content_blocks_count=len(storyline.content_blocks),
            persona_variations_count=len(storyline.persona_variations),
            time_ms=_elapsed_ms(started),
            tokens_used=storyline.metadata.tokens_used,
        ),
    )


async def run_content(
    service: ContentService,
    generation_input: GenerationInput,
    page_id: str,
    layout_result: LayoutStageResult,
    *,
    timeout: float | None = None,
) -> ContentStageResult:
    if StageName.content in generation_input.skip_stages:
        return ContentStageResult.skipped(ContentMetrics())

    started = time.monotonic()
    try:
        request = build_content_request(generation_input, page_id, layout_result)
        result = await _call_stage(StageName.content, service(request), timeout)
    except Exception as exc:
        _log_stage_failure(StageName.content, generation_input, exc)
        return ContentStageResult.failed(
            _error_message(StageName.content, exc),
            ContentMetrics(time_ms=_elapsed_ms(started)),
        )

    stats = result.generation_stats
    return ContentStageResult.completed(
        result,
        ContentMetrics(
            sections_populated=stats.sections_generated,
            average_confidence=stats.average_confidence,
            fallbacks_used=stats.fallbacks_used,
            time_ms=_elapsed_ms(started),
            tokens_used=stats.total_tokens_used,
        ),
    )


__all__ = [
    "ContentService",
    "LayoutService",
    "StageServices",
    "StorylineService",
    "build_content_request",
    "build_layout_request",
    "build_section_plan",
    "build_storyline_request",
    "run_content",
    "run_layout",
    "run_storyline",
]
