from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Mapping, Sequence

from pydantic import BaseModel, Field

from .page import EmotionalTone, NarrativeRole, PageType

Pacing = Literal["slow", "medium", "fast"]


class ContentBlock(BaseModel):
    id: str
    block_type: str | None = None
    narrative_role: NarrativeRole | None = None
    content: Mapping[str, Any] = Field(default_factory=dict)


class PersonaStoryVariation(BaseModel):
    persona_id: str
    story_flow: Mapping[str, Any] = Field(default_factory=dict)
    adaptation: Mapping[str, Any] = Field(default_factory=dict)
    content_blocks: Sequence[ContentBlock] = Field(default_factory=list)
    section_overrides: Mapping[str, Mapping[str, Any]] = Field(default_factory=dict)


class EmotionalPoint(BaseModel):
    position: float = Field(ge=0.0, le=100.0, description="Position in the page as a percentage")
    primary_emotion: EmotionalTone
    intensity: float = Field(default=50.0, ge=0.0, le=100.0)
    secondary_emotion: EmotionalTone | None = None
    pacing: Pacing = "medium"


class EmotionalJourney(BaseModel):
    points: Sequence[EmotionalPoint] = Field(default_factory=list)
    arc_type: Literal["standard", "dramatic", "reassuring", "urgent"] = "standard"
    peak_position: float = 0.0
    pacing_zones: Sequence[Mapping[str, Any]] = Field(default_factory=list)


class StorylineMetadata(BaseModel):
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    model_used: str = "unknown"
    tokens_used: int = 0
    generation_time_ms: int = 0


class StorylineResult(BaseModel):
    narrative: Mapping[str, Any] = Field(default_factory=dict)
    default_flow: Mapping[str, Any] = Field(default_factory=dict)
    content_blocks: Sequence[ContentBlock] = Field(default_factory=list)
    persona_variations: Sequence[PersonaStoryVariation] = Field(default_factory=list)
    emotional_journey: EmotionalJourney = Field(default_factory=EmotionalJourney)
    metadata: StorylineMetadata = Field(default_factory=StorylineMetadata)


class StorylineHints(BaseModel):
    focus_areas: Sequence[str] | None = None
    avoid_topics: Sequence[str] | None = None
    primary_goal: Literal["conversion"] = "conversion"
    tone_preference: Literal["formal", "conversational", "bold"] | None = None


class StorylineRequest(BaseModel):
    workspace_id: str
    website_id: str
    knowledge_base_id: str
    page_type: PageType
    personas: Sequence[str] = Field(default_factory=list)
    brand_config_id: str | None = None
    content_hints: StorylineHints | None = None


__all__ = [
    "ContentBlock",
    "EmotionalJourney",
    "EmotionalPoint",
    "PersonaStoryVariation",
    "StorylineHints",
    "StorylineMetadata",
    "StorylineRequest",
    "StorylineResult",
]
