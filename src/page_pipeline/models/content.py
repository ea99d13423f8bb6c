from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field

from .generation import ContentHints
from .page import EmotionalTone, NarrativeRole, PageMetadata, PageType


class CTAContent(BaseModel):
    text: str
    url: str | None = None
    style: str | None = None


class ImageContent(BaseModel):
    url: str
    alt: str = ""


class PopulatedContent(BaseModel):
    headline: str | None = None
    subheadline: str | None = None
    description: str | None = None
    bullets: Sequence[str] | None = None
    primary_cta: CTAContent | None = None
    secondary_cta: CTAContent | None = None
    image: ImageContent | None = None
    background_image: ImageContent | None = None
    video: Mapping[str, Any] | None = None
    features: Sequence[Mapping[str, Any]] | None = None
    testimonials: Sequence[Mapping[str, Any]] | None = None
    statistics: Sequence[Mapping[str, Any]] | None = None
    faqs: Sequence[Mapping[str, Any]] | None = None
    pricing_tiers: Sequence[Mapping[str, Any]] | None = None
    process_steps: Sequence[Mapping[str, Any]] | None = None
    logos: Sequence[Mapping[str, Any]] | None = None
    section_title: str | None = None
    section_description: str | None = None
    custom: Mapping[str, Any] | None = None


class PersonaContentVariation(BaseModel):
    content: PopulatedContent
    emotional_tone: EmotionalTone


class SectionGenerationMetadata(BaseModel):
    generated_at: datetime | None = None
    model_used: str | None = None
    tokens_used: int = 0
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    source_entity_ids: Sequence[str] = Field(default_factory=list)


class PopulatedSection(BaseModel):
    section_id: str
    component_id: str
    narrative_role: NarrativeRole
    order: int
    content: PopulatedContent = Field(default_factory=PopulatedContent)
    persona_variations: Mapping[str, PersonaContentVariation] = Field(default_factory=dict)
    metadata: SectionGenerationMetadata = Field(default_factory=SectionGenerationMetadata)


class ContentGenerationStats(BaseModel):
    sections_generated: int = 0
    average_confidence: float = 0.0
    fallbacks_used: int = 0
    total_tokens_used: int = 0


class ContentGenerationResult(BaseModel):
    sections: Sequence[PopulatedSection] = Field(default_factory=list)
    page_metadata: PageMetadata = Field(default_factory=PageMetadata)
    generation_stats: ContentGenerationStats = Field(default_factory=ContentGenerationStats)


class SectionPlan(BaseModel):
    """One section the content stage is asked to populate."""

    section_id: str
    component_id: str
    narrative_role: NarrativeRole
    order: int


class ContentRequest(BaseModel):
    workspace_id: str
    website_id: str
    page_id: str
    page_type: PageType
    knowledge_base_id: str
    sections: Sequence[SectionPlan]
    personas: Sequence[str] = Field(default_factory=list)
    brand_config_id: str | None = None
    hints: ContentHints | None = None


__all__ = [
    "CTAContent",
    "ContentGenerationResult",
    "ContentGenerationStats",
    "ContentRequest",
    "ImageContent",
    "PersonaContentVariation",
    "PopulatedContent",
    "PopulatedSection",
    "SectionGenerationMetadata",
    "SectionPlan",
]
