from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field

from .content import PopulatedSection
from .layout import LayoutSection, PersonaPageVariant
from .page import PageMetadata
from .render import PageRenderData
from .stages import ContentStageResult, LayoutStageResult, StageStatus, StorylineStageResult
from .storyline import ContentBlock, EmotionalJourney, PersonaStoryVariation, StorylineMetadata


class GenerationStats(BaseModel):
    total_time_ms: int = 0
    total_tokens_used: int = 0
    overall_confidence: float = 0.0
    stages_completed: int = 0
    stages_failed: int = 0


class GenerationOutput(BaseModel):
    page_id: str
    slug: str
    layout: LayoutStageResult
    storyline: StorylineStageResult
    content: ContentStageResult
    render_data: PageRenderData
    stats: GenerationStats


class LayoutStatusSummary(BaseModel):
    status: StageStatus
    sections_count: int
    confidence_score: float
    time_ms: int


class StorylineStatusSummary(BaseModel):
    status: StageStatus
    content_blocks_count: int
    persona_variations_count: int
    time_ms: int


class ContentStatusSummary(BaseModel):
    status: StageStatus
    sections_populated: int
    average_confidence: float
    fallbacks_used: int
    time_ms: int


class StageStatusSummary(BaseModel):
    layout_generation: LayoutStatusSummary
    storyline_generation: StorylineStatusSummary
    content_generation: ContentStatusSummary


class GenerationSummary(BaseModel):
    success: bool
    page_id: str
    slug: str
    status: StageStatusSummary
    page_metadata: PageMetadata
    total_time_ms: int
    total_tokens_used: int


# Stored page content document


class StoredStoryline(BaseModel):
    narrative: Mapping[str, Any] = Field(default_factory=dict)
    default_flow: Mapping[str, Any] = Field(default_factory=dict)
    content_blocks: Sequence[ContentBlock] = Field(default_factory=list)
    persona_variations: Sequence[PersonaStoryVariation] = Field(default_factory=list)
    emotional_journey: EmotionalJourney = Field(default_factory=EmotionalJourney)
    generation_metadata: StorylineMetadata = Field(default_factory=StorylineMetadata)


class StoredContentStats(BaseModel):
    total_sections: int = 0
    sections_generated: int = 0
    total_tokens_used: int = 0
    total_time_ms: int = 0
    average_confidence: float = 0.0
    fallbacks_used: int = 0


class StoredGeneratedContent(BaseModel):
    sections: Sequence[PopulatedSection] = Field(default_factory=list)
    page_metadata: PageMetadata = Field(default_factory=PageMetadata)
    generation_stats: StoredContentStats = Field(default_factory=StoredContentStats)


class PipelineMetadata(BaseModel):
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    pipeline_version: str
    total_time_ms: int = 0
    total_tokens_used: int = 0
    overall_confidence: float = 0.0
    stages_completed: list[str] = Field(default_factory=list)
    personas: list[str] | None = None


class PageContentDocument(BaseModel):
    """What gets written to ``pages.content`` after a run."""

    sections: Sequence[LayoutSection] = Field(default_factory=list)
    metadata: PageMetadata | None = None
    persona_variants: Sequence[PersonaPageVariant] | None = None
    storyline: StoredStoryline | None = None
    generated_content: StoredGeneratedContent | None = None
    pipeline_metadata: PipelineMetadata | None = None


__all__ = [
    "ContentStatusSummary",
    "GenerationOutput",
    "GenerationStats",
    "GenerationSummary",
    "LayoutStatusSummary",
    "PageContentDocument",
    "PipelineMetadata",
    "StageStatusSummary",
    "StorylineStatusSummary",
    "StoredContentStats",
    "StoredGeneratedContent",
    "StoredStoryline",
]
