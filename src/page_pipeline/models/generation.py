from __future__ import annotations

from enum import Enum
from typing import Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .page import PageType


class StageName(str, Enum):
    layout = "layout"
    storyline = "storyline"
    content = "content"


class GenerationConstraints(BaseModel):
    max_sections: int | None = Field(default=None, ge=1, le=20)
    min_sections: int | None = Field(default=None, ge=1, le=10)
    required_components: Sequence[str] | None = None
    excluded_components: Sequence[str] | None = None
    forced_order: Sequence[str] | None = None


class ContentHints(BaseModel):
    focus_areas: Sequence[str] | None = None
    avoid_topics: Sequence[str] | None = None
    tone_preference: Literal["formal", "conversational", "bold"] | None = None
    include_stats: bool | None = None
    cta_preference: str | None = None


class GenerationInput(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "workspace_id": "ws_01",
                "website_id": "site_01",
                "page_type": "landing",
                "knowledge_base_id": "kb_01",
                "personas": ["cto", "founder"],
                "constraints": {"max_sections": 6},
                "content_hints": {"tone_preference": "bold", "include_stats": True},
            }
        },
    )

    workspace_id: str
    website_id: str
    page_id: str | None = None
    page_type: PageType
    knowledge_base_id: str
    personas: Sequence[str] = Field(default_factory=tuple)
    brand_config_id: str | None = None
    constraints: GenerationConstraints | None = None
    content_hints: ContentHints | None = None
    save: bool = True
    return_full_output: bool = False
    skip_stages: Sequence[StageName] = Field(default_factory=tuple)

    @field_validator("personas")
    @classmethod
    def _dedupe_personas(cls, value: Sequence[str]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))


__all__ = ["ContentHints", "GenerationConstraints", "GenerationInput", "StageName"]
