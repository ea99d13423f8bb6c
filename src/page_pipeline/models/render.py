from __future__ import annotations

from pydantic import BaseModel, Field

from .content import PopulatedContent
from .page import AnimationConfig, EmotionalTone, NarrativeRole, PageMetadata


class RenderSection(BaseModel):
    section_id: str
    component_id: str
    narrative_role: NarrativeRole
    order: int
    emotional_tone: EmotionalTone
    content: PopulatedContent
    animations: AnimationConfig | None = None
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)


class PageRenderData(BaseModel):
    default_variant: list[RenderSection] = Field(default_factory=list)
    persona_variants: dict[str, list[RenderSection]] = Field(default_factory=dict)
    metadata: PageMetadata = Field(default_factory=PageMetadata)


class PagePreview(BaseModel):
    sections: list[RenderSection]
    metadata: PageMetadata
    is_personalized: bool = False


__all__ = ["PagePreview", "PageRenderData", "RenderSection"]
