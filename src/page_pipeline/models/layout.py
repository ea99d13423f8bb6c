from __future__ import annotations

from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field

from .generation import GenerationConstraints
from .page import AnimationConfig, NarrativeRole, PageMetadata, PageType


class LayoutSection(BaseModel):
    id: str
    component_id: str
    variant: str | None = None
    narrative_role: NarrativeRole
    order: int
    content: Mapping[str, Any] = Field(default_factory=dict)
    styling: Mapping[str, Any] | None = None
    animations: AnimationConfig | None = None


class PersonaPageVariant(BaseModel):
    persona_id: str
    section_overrides: Mapping[str, Mapping[str, Any]] = Field(default_factory=dict)
    metadata_overrides: Mapping[str, Any] = Field(default_factory=dict)


class PageLayout(BaseModel):
    page_id: str | None = None
    slug: str | None = None
    page_type: PageType
    sections: Sequence[LayoutSection] = Field(default_factory=list)
    metadata: PageMetadata = Field(default_factory=PageMetadata)
    persona_variants: Sequence[PersonaPageVariant] | None = None


class LayoutGenerationMetadata(BaseModel):
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    tokens_used: int | None = None


class LayoutGenerationResult(BaseModel):
    layout: PageLayout
    generation_metadata: LayoutGenerationMetadata = Field(default_factory=LayoutGenerationMetadata)


class LayoutRequest(BaseModel):
    workspace_id: str
    website_id: str
    knowledge_base_id: str
    page_type: PageType
    personas: Sequence[str] = Field(default_factory=list)
    brand_config_id: str | None = None
    constraints: GenerationConstraints | None = None


__all__ = [
    "LayoutGenerationMetadata",
    "LayoutGenerationResult",
    "LayoutRequest",
    "LayoutSection",
    "PageLayout",
    "PersonaPageVariant",
]
