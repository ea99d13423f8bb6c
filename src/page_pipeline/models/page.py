from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, Field


class PageType(str, Enum):
    home = "home"
    landing = "landing"
    product = "product"
    pricing = "pricing"
    about = "about"
    contact = "contact"
    blog = "blog"
    blog_post = "blog-post"
    case_study = "case-study"
    features = "features"
    solutions = "solutions"
    resources = "resources"
    careers = "careers"
    legal = "legal"
    custom = "custom"


class NarrativeRole(str, Enum):
    hook = "hook"
    problem = "problem"
    solution = "solution"
    proof = "proof"
    action = "action"


class EmotionalTone(str, Enum):
    curiosity = "curiosity"
    empathy = "empathy"
    urgency = "urgency"
    hope = "hope"
    confidence = "confidence"
    excitement = "excitement"
    trust = "trust"
    relief = "relief"


class PageMetadata(BaseModel):
    title: str = ""
    description: str = ""
    keywords: Sequence[str] = Field(default_factory=list)
    og_image: str | None = None
    canonical: str | None = None
    no_index: bool | None = None


class AnimationConfig(BaseModel):
    entry: str | None = None
    scroll: str | None = None
    delay: float | None = None


class PageRecord(BaseModel):
    """A row of the pages collection as the pipeline sees it."""

    id: str
    website_id: str
    title: str = ""
    slug: str = ""
    path: str = "/"
    content: Mapping[str, Any] = Field(default_factory=dict)
    is_published: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


__all__ = [
    "AnimationConfig",
    "EmotionalTone",
    "NarrativeRole",
    "PageMetadata",
    "PageRecord",
    "PageType",
]
