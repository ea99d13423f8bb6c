from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, Field

from .models.output import PageContentDocument
from .models.page import NarrativeRole
from .models.render import PageRenderData

LOW_CONFIDENCE_THRESHOLD = 0.5


class PageValidationResult(BaseModel):
    is_valid: bool
    errors: Sequence[str] = Field(default_factory=list)
    warnings: Sequence[str] = Field(default_factory=list)
    score: float = Field(ge=0.0, le=1.0)


def _result(errors: list[str], warnings: list[str], total_checks: int) -> PageValidationResult:
    passed = total_checks - len(errors) - len(warnings) * 0.5
    score = max(0.0, min(1.0, passed / total_checks))
    return PageValidationResult(
        is_valid=not errors, errors=errors, warnings=warnings, score=score
    )


def validate_page_content(document: PageContentDocument) -> PageValidationResult:
    """Score a stored page document for completeness. Advisory only."""
    errors: list[str] = []
    warnings: list[str] = []
    generated = document.generated_content
    sections = list(generated.sections) if generated else []

    if not document.sections and not sections:
        errors.append("Page has no sections")

    if document.metadata is None and generated is None:
        warnings.append("Page has no metadata")

    roles = {section.narrative_role for section in sections}
    if NarrativeRole.hook not in roles:
        warnings.append('Page missing "hook" section')
    if NarrativeRole.action not in roles:
        warnings.append('Page missing "action" (CTA) section')

    for section in sections:
        if not section.content.headline and not section.content.section_title:
            warnings.append(f"Section {section.section_id} missing headline")
        confidence = section.metadata.confidence_score
        if confidence < LOW_CONFIDENCE_THRESHOLD:
            warnings.append(f"Section {section.section_id} has low confidence ({confidence})")

    return _result(errors, warnings, 5 + len(sections) * 2)


def validate_render_data(render_data: PageRenderData) -> PageValidationResult:
    """Score a render tree for completeness. Advisory only."""
    errors: list[str] = []
    warnings: list[str] = []
    sections = render_data.default_variant

    if not sections:
        errors.append("No sections to render")
    if len(sections) < 2:
        warnings.append("Page has very few sections")

    orders = [section.order for section in sections]
    if len(orders) != len(set(orders)):
        warnings.append("Some sections have duplicate order values")

    if not render_data.metadata.title:
        errors.append("Page missing title")
    if not render_data.metadata.description:
        warnings.append("Page missing meta description")

    return _result(errors, warnings, 4)


__all__ = [
    "LOW_CONFIDENCE_THRESHOLD",
    "PageValidationResult",
    "validate_page_content",
    "validate_render_data",
]
