from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Mapping, Sequence

from .models.content import SectionPlan
from .models.page import EmotionalTone, NarrativeRole, PageType

PIPELINE_VERSION = "1.0.0"
UNTITLED_PAGE = "Untitled Page"


@dataclass(frozen=True)
class DefaultSection:
    component_id: str
    narrative_role: NarrativeRole


_HOME_SECTIONS: Sequence[DefaultSection] = (
    DefaultSection("hero-centered", NarrativeRole.hook),
    DefaultSection("features-grid", NarrativeRole.solution),
    DefaultSection("testimonials-grid", NarrativeRole.proof),
    DefaultSection("cta-centered", NarrativeRole.action),
)

# Used when layout generation fails or returns nothing.
DEFAULT_SECTIONS: Mapping[PageType, Sequence[DefaultSection]] = {
    PageType.home: _HOME_SECTIONS,
    PageType.landing: (
        DefaultSection("hero-split", NarrativeRole.hook),
        DefaultSection("features-alternating", NarrativeRole.problem),
        DefaultSection("features-grid", NarrativeRole.solution),
        DefaultSection("testimonials-carousel", NarrativeRole.proof),
        DefaultSection("cta-centered", NarrativeRole.action),
    ),
    PageType.product: (
        DefaultSection("hero-product", NarrativeRole.hook),
        DefaultSection("features-tabs", NarrativeRole.solution),
        DefaultSection("stats-grid", NarrativeRole.proof),
        DefaultSection("cta-split", NarrativeRole.action),
    ),
    PageType.pricing: (
        DefaultSection("hero-centered", NarrativeRole.hook),
        DefaultSection("pricing-tiers", NarrativeRole.solution),
        DefaultSection("faq-accordion", NarrativeRole.proof),
        DefaultSection("cta-centered", NarrativeRole.action),
    ),
    PageType.about: (
        DefaultSection("hero-centered", NarrativeRole.hook),
        DefaultSection("content-text", NarrativeRole.solution),
        DefaultSection("stats-grid", NarrativeRole.proof),
        DefaultSection("cta-centered", NarrativeRole.action),
    ),
    PageType.contact: (
        DefaultSection("hero-centered", NarrativeRole.hook),
        DefaultSection("cta-split", NarrativeRole.action),
    ),
    PageType.blog: _HOME_SECTIONS,
    PageType.blog_post: _HOME_SECTIONS,
    PageType.case_study: _HOME_SECTIONS,
    PageType.features: _HOME_SECTIONS,
    PageType.solutions: _HOME_SECTIONS,
    PageType.resources: _HOME_SECTIONS,
    PageType.careers: _HOME_SECTIONS,
    PageType.legal: _HOME_SECTIONS,
    PageType.custom: _HOME_SECTIONS,
}

_missing_page_types = set(PageType) - set(DEFAULT_SECTIONS)
if _missing_page_types:
    raise RuntimeError(
        "DEFAULT_SECTIONS has no entry for: "
        + ", ".join(sorted(page_type.value for page_type in _missing_page_types))
    )

EMOTIONAL_TONE_BY_ROLE: Mapping[NarrativeRole, EmotionalTone] = {
    NarrativeRole.hook: EmotionalTone.curiosity,
    NarrativeRole.problem: EmotionalTone.empathy,
    NarrativeRole.solution: EmotionalTone.hope,
    NarrativeRole.proof: EmotionalTone.confidence,
    NarrativeRole.action: EmotionalTone.excitement,
}
DEFAULT_EMOTIONAL_TONE = EmotionalTone.confidence


def default_sections_for(page_type: PageType | str) -> Sequence[DefaultSection]:
    try:
        return DEFAULT_SECTIONS[PageType(page_type)]
    except ValueError:
        return DEFAULT_SECTIONS[PageType.home]


def default_section_plan(page_type: PageType | str) -> list[SectionPlan]:
    return [
        SectionPlan(
            section_id=str(uuid.uuid4()),
            component_id=section.component_id,
            narrative_role=section.narrative_role,
            order=index,
        )
        for index, section in enumerate(default_sections_for(page_type))
    ]


__all__ = [
    "DEFAULT_EMOTIONAL_TONE",
    "DEFAULT_SECTIONS",
    "DefaultSection",
    "EMOTIONAL_TONE_BY_ROLE",
    "PIPELINE_VERSION",
    "UNTITLED_PAGE",
    "default_section_plan",
    "default_sections_for",
]
