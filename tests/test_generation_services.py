import asyncio
import json
import logging

import pytest

from fakes import make_input
from page_pipeline.generation_services import (
    VertexContentService,
    VertexLayoutService,
    VertexStorylineService,
)
from page_pipeline.logging_config import StructuredFormatter, set_trace_id
from page_pipeline.models.content import ContentRequest, SectionPlan
from page_pipeline.models.page import NarrativeRole, PageType
from page_pipeline.stages import build_layout_request, build_storyline_request
from page_pipeline.vertex_ai_adapter import strip_code_fence


class FakeAdapter:
    model_name = "fake-model"

    def __init__(self, payload: dict, tokens: int = 10) -> None:
        self.payload = payload
        self.tokens = tokens
        self.prompts = []

    def generate_json(self, prompt, *, temperature=0.7, max_output_tokens=8192):
        self.prompts.append(prompt)
        return json.loads(json.dumps(self.payload)), self.tokens


def test_layout_service_reads_confidence_and_tokens():
    adapter = FakeAdapter(
        {
            "page_type": "home",
            "sections": [
                {"id": "a", "component_id": "hero-centered", "narrative_role": "hook", "order": 0}
            ],
            "metadata": {"title": "Home"},
            "confidence_score": 0.75,
        },
        tokens=120,
    )
    result = asyncio.run(VertexLayoutService(adapter)(build_layout_request(make_input())))

    # page type always follows the request
    assert result.layout.page_type is PageType.landing
    assert result.generation_metadata.confidence_score == 0.75
    assert result.generation_metadata.tokens_used == 120
    assert '"landing"' in adapter.prompts[0]


def test_storyline_service_stamps_metadata():
    adapter = FakeAdapter(
        {
            "narrative": {"core_message": "Hi"},
            "content_blocks": [{"id": "b1"}],
            "emotional_journey": {"points": [{"position": 0, "primary_emotion": "curiosity"}]},
        },
        tokens=33,
    )
    result = asyncio.run(VertexStorylineService(adapter)(build_storyline_request(make_input())))

    assert result.metadata.model_used == "fake-model"
    assert result.metadata.tokens_used == 33
    assert len(result.content_blocks) == 1


def test_content_service_counts_missing_sections_as_fallbacks():
    adapter = FakeAdapter(
        {
            "sections": [
                {
                    "section_id": "a",
                    "component_id": "hero-centered",
                    "narrative_role": "hook",
                    "order": 0,
                    "content": {"headline": "Hello"},
                    "metadata": {"confidence_score": 0.9},
                }
            ],
            "page_metadata": {"title": "Page"},
        },
        tokens=77,
    )
    request = ContentRequest(
        workspace_id="ws_1",
        website_id="site_1",
        page_id="page_1",
        page_type=PageType.home,
        knowledge_base_id="kb_1",
        sections=[
            SectionPlan(section_id="a", component_id="hero-centered", narrative_role=NarrativeRole.hook, order=0),
            SectionPlan(section_id="b", component_id="cta-centered", narrative_role=NarrativeRole.action, order=1),
        ],
    )
    result = asyncio.run(VertexContentService(adapter)(request))

    stats = result.generation_stats
    assert stats.sections_generated == 1
    assert stats.fallbacks_used == 1
    assert stats.average_confidence == 0.9
    assert stats.total_tokens_used == 77


def test_invalid_model_output_raises():
    adapter = FakeAdapter({"sections": "not a list"})
    with pytest.raises(ValueError):
        asyncio.run(VertexLayoutService(adapter)(build_layout_request(make_input())))


def test_strip_code_fence():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('{"a": 1}') == '{"a": 1}'


def test_structured_formatter_includes_extra_fields():
    record = logging.LogRecord("page_pipeline.test", logging.INFO, __file__, 1, "hello", None, None)
    record.page_id = "page_1"
    set_trace_id("trace-123")

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["severity"] == "INFO"
    assert payload["page_id"] == "page_1"
    assert payload["logging.googleapis.com/trace"] == "trace-123"
