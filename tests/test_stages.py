import asyncio

import pytest

from fakes import EchoContentService, FakeService, make_input, make_layout, make_storyline
from page_pipeline.dictionaries import DEFAULT_SECTIONS, default_section_plan, default_sections_for
from page_pipeline.models.generation import ContentHints, GenerationConstraints, StageName
from page_pipeline.models.layout import LayoutSection, PageLayout
from page_pipeline.models.page import NarrativeRole, PageType
from page_pipeline.models.stages import (
    LayoutMetrics,
    LayoutStageResult,
    StageStatus,
    StorylineMetrics,
    StorylineStageResult,
)
from page_pipeline.stages import (
    build_layout_request,
    build_section_plan,
    build_storyline_request,
    run_content,
    run_layout,
    run_storyline,
)


def test_every_page_type_has_default_sections():
    assert set(DEFAULT_SECTIONS) == set(PageType)
    assert default_sections_for("not-a-type") == DEFAULT_SECTIONS[PageType.home]
    assert default_sections_for(PageType.blog_post) == DEFAULT_SECTIONS[PageType.home]


def test_default_section_plan_has_fresh_ids_and_positional_order():
    first = default_section_plan(PageType.contact)
    second = default_section_plan(PageType.contact)

    assert [plan.component_id for plan in first] == ["hero-centered", "cta-split"]
    assert [plan.order for plan in first] == [0, 1]
    assert {plan.section_id for plan in first}.isdisjoint(plan.section_id for plan in second)


def test_failed_result_cannot_carry_payload():
    with pytest.raises(ValueError):
        LayoutStageResult(
            status=StageStatus.failed,
            payload=PageLayout(page_type=PageType.home),
            error="boom",
            metrics=LayoutMetrics(),
        )
    with pytest.raises(ValueError):
        StorylineStageResult(status=StageStatus.failed, metrics=StorylineMetrics())
    with pytest.raises(ValueError):
        StorylineStageResult(status=StageStatus.completed, metrics=StorylineMetrics())


def test_layout_request_carries_constraints():
    generation_input = make_input(
        personas=["a", "b", "a"], constraints=GenerationConstraints(max_sections=6)
    )
    request = build_layout_request(generation_input)

    assert request.personas == ["a", "b"]
    assert request.constraints.max_sections == 6


def test_storyline_request_targets_conversion():
    generation_input = make_input(
        content_hints=ContentHints(focus_areas=["speed"], tone_preference="bold", include_stats=True)
    )
    request = build_storyline_request(generation_input)

    assert request.content_hints.primary_goal == "conversion"
    assert request.content_hints.tone_preference == "bold"
    assert list(request.content_hints.focus_areas) == ["speed"]
    assert build_storyline_request(make_input()).content_hints is None


def test_section_plan_follows_layout_sections():
    layout_result = LayoutStageResult.completed(make_layout().layout, LayoutMetrics())
    plan = build_section_plan(make_input(), layout_result)

    assert [section.section_id for section in plan] == ["s_hero", "s_problem", "s_solution", "s_proof", "s_cta"]


def test_section_plan_orders_unset_sections_by_position():
    layout = PageLayout(
        page_type=PageType.landing,
        sections=[
            LayoutSection(id="a", component_id="hero-centered", narrative_role=NarrativeRole.hook, order=0),
            LayoutSection(id="b", component_id="features-grid", narrative_role=NarrativeRole.solution, order=0),
            LayoutSection(id="c", component_id="cta-centered", narrative_role=NarrativeRole.action, order=7),
            LayoutSection(id="d", component_id="faq-accordion", narrative_role=NarrativeRole.proof, order=0),
        ],
    )
    plan = build_section_plan(make_input(), LayoutStageResult.completed(layout, LayoutMetrics()))

    assert [section.order for section in plan] == [0, 1, 7, 3]


def test_section_plan_falls_back_when_layout_is_empty():
    empty = LayoutStageResult.completed(PageLayout(page_type=PageType.about), LayoutMetrics())
    plan = build_section_plan(make_input(page_type=PageType.about), empty)

    assert [section.component_id for section in plan] == [
        "hero-centered",
        "content-text",
        "stats-grid",
        "cta-centered",
    ]


def test_layout_stage_reports_metrics():
    result = asyncio.run(run_layout(FakeService(make_layout(tokens=321)), make_input()))

    assert result.status is StageStatus.completed
    assert result.metrics.sections_count == 5
    assert result.metrics.confidence_score == 0.9
    assert result.metrics.tokens_used == 321
    assert result.error is None


def test_stage_failure_without_message_gets_default_error():
    result = asyncio.run(run_storyline(FakeService(error=RuntimeError()), make_input()))

    assert result.status is StageStatus.failed
    assert result.error == "Storyline generation failed"
    assert result.payload is None


def test_skipped_stage_never_calls_service():
    service = FakeService(make_layout())
    result = asyncio.run(run_layout(service, make_input(skip_stages=[StageName.layout])))

    assert result.status is StageStatus.skipped
    assert service.calls == []


def test_stage_timeout():
    service = FakeService(make_storyline(), delay=1.0)
    result = asyncio.run(run_storyline(service, make_input(), timeout=0.01))

    assert result.status is StageStatus.failed
    assert result.error == "storyline generation timed out after 0.01s"


def test_content_stage_maps_generation_stats():
    layout_result = LayoutStageResult.failed("boom", LayoutMetrics())
    content = EchoContentService(confidence=0.65, tokens=42)
    result = asyncio.run(run_content(content, make_input(), "page_1", layout_result))

    assert result.status is StageStatus.completed
    assert result.metrics.sections_populated == 5
    assert result.metrics.average_confidence == 0.65
    assert result.metrics.tokens_used == 42
    assert content.calls[0].page_id == "page_1"
