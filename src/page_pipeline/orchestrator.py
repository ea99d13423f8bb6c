from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from typing import Any

from .assembler import assemble
from .dictionaries import PIPELINE_VERSION
from .errors import PageRecordError, PageSaveError
from .models.generation import GenerationInput
from .models.output import (
    ContentStatusSummary,
    GenerationOutput,
    GenerationStats,
    GenerationSummary,
    LayoutStatusSummary,
    PageContentDocument,
    PipelineMetadata,
    StageStatusSummary,
    StorylineStatusSummary,
    StoredContentStats,
    StoredGeneratedContent,
    StoredStoryline,
)
from .models.progress import GenerationProgress, PipelineStatus
from .models.render import PageRenderData
from .models.stages import (
    ContentStageResult,
    LayoutStageResult,
    StageStatus,
    StorylineStageResult,
)
from .page_store import PageStore
from .progress import ProgressListener, ProgressTracker
from .stages import StageServices, run_content, run_layout, run_storyline

logger = logging.getLogger(__name__)

_SLUG_MAX_LENGTH = 60


def generate_slug(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:_SLUG_MAX_LENGTH]


def compute_stats(
    layout_result: LayoutStageResult,
    storyline_result: StorylineStageResult,
    content_result: ContentStageResult,
    *,
    total_time_ms: int,
) -> GenerationStats:
    stages = (layout_result, storyline_result, content_result)
    # The storyline stage has no confidence signal; zero means the stage produced none.
    confidences = [
        score
        for score in (layout_result.metrics.confidence_score, content_result.metrics.average_confidence)
        if score > 0
    ]
    return GenerationStats(
        total_time_ms=total_time_ms,
        total_tokens_used=sum(stage.metrics.tokens_used for stage in stages),
        overall_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
        stages_completed=sum(stage.status is StageStatus.completed for stage in stages),
        stages_failed=sum(stage.status is StageStatus.failed for stage in stages),
    )


def build_page_content(
    layout_result: LayoutStageResult,
    storyline_result: StorylineStageResult,
    content_result: ContentStageResult,
    render_data: PageRenderData,
    *,
    stats: GenerationStats,
    persona_ids: list[str],
) -> PageContentDocument:
    """Compose the document persisted to the page record."""
    layout = layout_result.payload
    storyline = storyline_result.payload
    content = content_result.payload

    document = PageContentDocument(
        sections=list(layout.sections) if layout else [],
        metadata=layout.metadata if layout else render_data.metadata,
        persona_variants=layout.persona_variants if layout else None,
    )

    if storyline is not None:
        document.storyline = StoredStoryline(
            narrative=storyline.narrative,
            default_flow=storyline.default_flow,
            content_blocks=storyline.content_blocks,
            persona_variations=storyline.persona_variations,
            emotional_journey=storyline.emotional_journey,
            generation_metadata=storyline.metadata,
        )

    if content is not None:
        metrics = content_result.metrics
        document.generated_content = StoredGeneratedContent(
            sections=content.sections,
            page_metadata=content.page_metadata if content.page_metadata.title else render_data.metadata,
            generation_stats=StoredContentStats(
                total_sections=len(content.sections),
                sections_generated=metrics.sections_populated,
                total_tokens_used=metrics.tokens_used,
                total_time_ms=metrics.time_ms,
                average_confidence=metrics.average_confidence,
                fallbacks_used=metrics.fallbacks_used,
            ),
        )

    document.pipeline_metadata = PipelineMetadata(
        pipeline_version=PIPELINE_VERSION,
        total_time_ms=stats.total_time_ms,
        total_tokens_used=stats.total_tokens_used,
        overall_confidence=stats.overall_confidence,
        stages_completed=[
            name
            for name, result in (
                ("layout", layout_result),
                ("storyline", storyline_result),
                ("content", content_result),
            )
            if result.status is StageStatus.completed
        ],
        personas=persona_ids,
    )
    return document


class PageGenerationOrchestrator:
    """Runs layout, storyline and content generation for one page.

    Stage failures are recorded on the stage results and never stop the run.
    Only page store failures abort it, raised as :class:`PipelineError`.
    One orchestrator owns the progress of one run; create a new instance per
    page generation.
    """

    def __init__(
        self,
        *,
        page_store: PageStore,
        services: StageServices,
        page_id: str | None = None,
        on_progress: ProgressListener | None = None,
        parallel_stages: bool = False,
        stage_timeout_seconds: float | None = None,
    ) -> None:
        self._page_store = page_store
        self._services = services
        self._page_id = page_id
        self._parallel_stages = parallel_stages
        self._stage_timeout = stage_timeout_seconds
        self._tracker = ProgressTracker(page_id or "", on_update=on_progress)
        self._task: asyncio.Task | None = None
        self._started = 0.0

    @property
    def progress(self) -> GenerationProgress:
        return self._tracker.snapshot()

    def cancel(self) -> bool:
        """Abort the running generation. Returns False when nothing is running."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    async def generate(self, generation_input: GenerationInput) -> GenerationOutput:
        self._task = asyncio.current_task()
        try:
            return await self._run(generation_input)
        except asyncio.CancelledError:
            self._tracker.fail("Generation cancelled")
            logger.warning("Page generation cancelled", extra={"page_id": self._tracker.snapshot().page_id})
            raise
        except Exception as exc:
            self._tracker.fail(str(exc) or type(exc).__name__)
            raise
        finally:
            self._task = None

    async def _run(self, generation_input: GenerationInput) -> GenerationOutput:
        self._started = time.monotonic()
        self._tracker.start()
        self._tracker.update(PipelineStatus.initializing, 5, "Initializing pipeline")

        page_id = await self._resolve_page(generation_input)
        self._tracker.bind_page(page_id)
        timeout = self._stage_timeout

        if self._parallel_stages:
            # one entry for both stages; it completes only once both have returned
            self._tracker.update(PipelineStatus.layout, 10, "Generating page layout and storyline")
            layout_result, storyline_result = await asyncio.gather(
                run_layout(self._services.layout, generation_input, timeout=timeout),
                run_storyline(self._services.storyline, generation_input, timeout=timeout),
            )
        else:
            self._tracker.update(PipelineStatus.layout, 10, "Generating page layout")
            layout_result = await run_layout(self._services.layout, generation_input, timeout=timeout)

            self._tracker.update(PipelineStatus.storyline, 35, "Creating narrative storyline")
            storyline_result = await run_storyline(
                self._services.storyline, generation_input, timeout=timeout
            )

        self._tracker.update(PipelineStatus.content, 60, "Generating section content")
        content_result = await run_content(
            self._services.content, generation_input, page_id, layout_result, timeout=timeout
        )

        self._tracker.update(PipelineStatus.assembling, 85, "Assembling page data")
        persona_ids = list(generation_input.personas)
        render_data = assemble(layout_result, storyline_result, content_result, persona_ids)
        title = render_data.metadata.title
        slug = generate_slug(title) or generation_input.page_type.value

        if generation_input.save:
            self._tracker.update(PipelineStatus.saving, 95, "Saving to database")
            document = build_page_content(
                layout_result,
                storyline_result,
                content_result,
                render_data,
                stats=compute_stats(
                    layout_result, storyline_result, content_result, total_time_ms=self._elapsed_ms()
                ),
                persona_ids=persona_ids,
            )
            await self._save(page_id, title, slug, document)

        self._tracker.update(PipelineStatus.complete, 100, "Generation complete")
        stats = compute_stats(
            layout_result, storyline_result, content_result, total_time_ms=self._elapsed_ms()
        )

        logger.info(
            "Page generation complete",
            extra={
                "page_id": page_id,
                "slug": slug,
                "stages_completed": stats.stages_completed,
                "stages_failed": stats.stages_failed,
                "total_time_ms": stats.total_time_ms,
                "total_tokens_used": stats.total_tokens_used,
            },
        )

        return GenerationOutput(
            page_id=page_id,
            slug=slug,
            layout=layout_result,
            storyline=storyline_result,
            content=content_result,
            render_data=render_data,
            stats=stats,
        )

    async def _resolve_page(self, generation_input: GenerationInput) -> str:
        page_id = generation_input.page_id or self._page_id
        try:
            if page_id and await asyncio.to_thread(self._page_store.get_page, page_id) is not None:
                return page_id
            return await asyncio.to_thread(
                self._page_store.create_page, generation_input, page_id=page_id
            )
        except Exception as exc:
            logger.error(
                "Failed to create page record",
                exc_info=True,
                extra={"page_id": page_id, "website_id": generation_input.website_id},
            )
            raise PageRecordError("Failed to create page record", page_id=page_id) from exc

    async def _save(self, page_id: str, title: str, slug: str, document: PageContentDocument) -> None:
        try:
            await asyncio.to_thread(
                self._page_store.save_page_content,
                page_id,
                title=title,
                slug=slug,
                content=document.model_dump(mode="json"),
            )
        except Exception as exc:
            logger.error("Failed to save page content", exc_info=True, extra={"page_id": page_id})
            raise PageSaveError("Failed to save page to database", page_id=page_id) from exc

    def _elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started) * 1000)


def summarize(output: GenerationOutput) -> GenerationSummary:
    layout, storyline, content = output.layout, output.storyline, output.content
    return GenerationSummary(
        success=any(
            stage.status is not StageStatus.failed for stage in (layout, storyline, content)
        ),
        page_id=output.page_id,
        slug=output.slug,
        status=StageStatusSummary(
            layout_generation=LayoutStatusSummary(
                status=layout.status,
                sections_count=layout.metrics.sections_count,
                confidence_score=layout.metrics.confidence_score,
                time_ms=layout.metrics.time_ms,
            ),
            storyline_generation=StorylineStatusSummary(
                status=storyline.status,
                content_blocks_count=storyline.metrics.content_blocks_count,
                persona_variations_count=storyline.metrics.persona_variations_count,
                time_ms=storyline.metrics.time_ms,
            ),
            content_generation=ContentStatusSummary(
                status=content.status,
                sections_populated=content.metrics.sections_populated,
                average_confidence=content.metrics.average_confidence,
                fallbacks_used=content.metrics.fallbacks_used,
                time_ms=content.metrics.time_ms,
            ),
        ),
        page_metadata=output.render_data.metadata,
        total_time_ms=output.stats.total_time_ms,
        total_tokens_used=output.stats.total_tokens_used,
    )


async def generate_full_page(
    generation_input: GenerationInput,
    *,
    page_store: PageStore,
    services: StageServices,
    **options: Any,
) -> GenerationOutput:
    orchestrator = PageGenerationOrchestrator(
        page_store=page_store,
        services=services,
        page_id=generation_input.page_id or str(uuid.uuid4()),
        **options,
    )
    return await orchestrator.generate(generation_input)


async def generate_full_page_summary(
    generation_input: GenerationInput,
    *,
    page_store: PageStore,
    services: StageServices,
    **options: Any,
) -> GenerationSummary:
    output = await generate_full_page(
        generation_input, page_store=page_store, services=services, **options
    )
    return summarize(output)


__all__ = [
    "PageGenerationOrchestrator",
    "build_page_content",
    "compute_stats",
    "generate_full_page",
    "generate_full_page_summary",
    "generate_slug",
    "summarize",
]
