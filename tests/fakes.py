from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping

from page_pipeline.models.content import (
    ContentGenerationResult,
    ContentGenerationStats,
    ContentRequest,
    PersonaContentVariation,
    PopulatedContent,
    PopulatedSection,
    SectionGenerationMetadata,
)
from page_pipeline.models.generation import GenerationInput
from page_pipeline.models.layout import (
    LayoutGenerationMetadata,
    LayoutGenerationResult,
    LayoutSection,
    PageLayout,
)
from page_pipeline.models.page import EmotionalTone, NarrativeRole, PageMetadata, PageType
from page_pipeline.models.storyline import (
    ContentBlock,
    EmotionalJourney,
    EmotionalPoint,
    PersonaStoryVariation,
    StorylineMetadata,
    StorylineResult,
)
from page_pipeline.page_store import InMemoryPageStore
from page_pipeline.stages import StageServices

LANDING_SECTIONS = (
    ("s_hero", "hero-split", NarrativeRole.hook),
    ("s_problem", "features-alternating", NarrativeRole.problem),
    ("s_solution", "features-grid", NarrativeRole.solution),
    ("s_proof", "testimonials-carousel", NarrativeRole.proof),
    ("s_cta", "cta-centered", NarrativeRole.action),
)


def make_input(**overrides: Any) -> GenerationInput:
    values: dict[str, Any] = {
        "workspace_id": "ws_1",
        "website_id": "site_1",
        "page_type": PageType.landing,
        "knowledge_base_id": "kb_1",
        "personas": [],
    }
    values.update(overrides)
    return GenerationInput(**values)


def make_layout(
    sections=LANDING_SECTIONS,
    *,
    title: str = "Layout Title",
    confidence: float | None = 0.9,
    tokens: int = 100,
) -> LayoutGenerationResult:
    return LayoutGenerationResult(
        layout=PageLayout(
            page_type=PageType.landing,
            sections=[
                LayoutSection(id=section_id, component_id=component_id, narrative_role=role, order=order)
                for order, (section_id, component_id, role) in enumerate(sections)
            ],
            metadata=PageMetadata(title=title, description="From layout"),
        ),
        generation_metadata=LayoutGenerationMetadata(confidence_score=confidence, tokens_used=tokens),
    )


def make_storyline(*, personas=(), journey: EmotionalJourney | None = None, tokens: int = 50) -> StorylineResult:
    return StorylineResult(
        narrative={"core_message": "Ship pages faster"},
        content_blocks=[ContentBlock(id="b1"), ContentBlock(id="b2")],
        persona_variations=[PersonaStoryVariation(persona_id=persona_id) for persona_id in personas],
        emotional_journey=journey or EmotionalJourney(),
        metadata=StorylineMetadata(model_used="fake", tokens_used=tokens),
    )


def journey(*points: tuple[float, EmotionalTone]) -> EmotionalJourney:
    return EmotionalJourney(
        points=[EmotionalPoint(position=position, primary_emotion=tone) for position, tone in points]
    )


def make_section(
    section_id: str,
    order: int,
    *,
    role: NarrativeRole = NarrativeRole.solution,
    component_id: str = "features-grid",
    headline: str | None = None,
    confidence: float = 0.8,
    variations: Mapping[str, PersonaContentVariation] | None = None,
) -> PopulatedSection:
    return PopulatedSection(
        section_id=section_id,
        component_id=component_id,
        narrative_role=role,
        order=order,
        content=PopulatedContent(headline=headline if headline is not None else f"Headline {section_id}"),
        persona_variations=dict(variations or {}),
        metadata=SectionGenerationMetadata(confidence_score=confidence),
    )


def variation(headline: str, tone: EmotionalTone = EmotionalTone.trust) -> PersonaContentVariation:
    return PersonaContentVariation(content=PopulatedContent(headline=headline), emotional_tone=tone)


class FakeService:
    """Records every request and answers with a fixed result or error."""

    def __init__(self, result: Any = None, *, error: Exception | None = None, delay: float = 0.0) -> None:
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: list[Any] = []

    async def __call__(self, request: Any) -> Any:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class EchoContentService(FakeService):
    """Populates exactly the sections it was asked for."""

    def __init__(
        self,
        *,
        title: str = "Content Title",
        confidence: float = 0.7,
        tokens: int = 200,
        persona_headlines: Mapping[str, str] | None = None,
        transform: Callable[[list[PopulatedSection]], list[PopulatedSection]] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(error=error, delay=delay)
        self.title = title
        self.confidence = confidence
        self.tokens = tokens
        self.persona_headlines = dict(persona_headlines or {})
        self.transform = transform

    async def __call__(self, request: ContentRequest) -> ContentGenerationResult:
        await super().__call__(request)
        sections = [
            make_section(
                plan.section_id,
                plan.order,
                role=plan.narrative_role,
                component_id=plan.component_id,
                confidence=self.confidence,
                variations={
                    persona_id: variation(f"{headline} {plan.section_id}")
                    for persona_id, headline in self.persona_headlines.items()
                },
            )
            for plan in request.sections
        ]
        if self.transform is not None:
            sections = self.transform(sections)
        return ContentGenerationResult(
            sections=sections,
            page_metadata=PageMetadata(title=self.title, description="From content"),
            generation_stats=ContentGenerationStats(
                sections_generated=len(sections),
                average_confidence=self.confidence,
                total_tokens_used=self.tokens,
            ),
        )


def make_services(
    *,
    layout: Any = None,
    storyline: Any = None,
    content: Any = None,
) -> StageServices:
    return StageServices(
        layout=layout if layout is not None else FakeService(make_layout()),
        storyline=storyline if storyline is not None else FakeService(make_storyline()),
        content=content if content is not None else EchoContentService(),
    )


class FailingPageStore(InMemoryPageStore):
    def __init__(self, *, fail_create: bool = False, fail_save: bool = False) -> None:
        super().__init__()
        self.fail_create = fail_create
        self.fail_save = fail_save

    def create_page(self, generation_input, *, page_id=None):
        if self.fail_create:
            raise ConnectionError("database unavailable")
        return super().create_page(generation_input, page_id=page_id)

    def save_page_content(self, page_id, *, title, slug, content):
        if self.fail_save:
            raise ConnectionError("database unavailable")
        return super().save_page_content(page_id, title=title, slug=slug, content=content)
