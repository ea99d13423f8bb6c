from __future__ import annotations

from typing import Any, Mapping, Sequence

from .dictionaries import DEFAULT_EMOTIONAL_TONE, EMOTIONAL_TONE_BY_ROLE, UNTITLED_PAGE
from .models.content import PopulatedContent, PopulatedSection
from .models.layout import LayoutSection
from .models.output import GenerationOutput, PageContentDocument
from .models.page import EmotionalTone, NarrativeRole, PageMetadata
from .models.render import PagePreview, PageRenderData, RenderSection
from .models.stages import ContentStageResult, LayoutStageResult, StorylineStageResult
from .models.storyline import EmotionalJourney

_LIST_CONTENT_FIELDS = (
    "bullets",
    "features",
    "testimonials",
    "statistics",
    "faqs",
    "pricing_tiers",
    "process_steps",
    "logos",
)


def emotional_tone_for_role(role: NarrativeRole | str) -> EmotionalTone:
    try:
        return EMOTIONAL_TONE_BY_ROLE.get(NarrativeRole(role), DEFAULT_EMOTIONAL_TONE)
    except ValueError:
        return DEFAULT_EMOTIONAL_TONE


def _journey_tone(journey: EmotionalJourney | None, rank: int, count: int) -> EmotionalTone | None:
    """Tone of the journey point closest to a section's position in the page."""
    if journey is None or not journey.points:
        return None
    position = 0.0 if count <= 1 else rank * 100.0 / (count - 1)
    point = min(journey.points, key=lambda candidate: abs(candidate.position - position))
    return point.primary_emotion


def resolve_metadata(
    content_metadata: PageMetadata | None, layout_metadata: PageMetadata | None
) -> PageMetadata:
    """Content metadata first, then layout metadata, then a placeholder title."""
    for metadata in (content_metadata, layout_metadata):
        if metadata is not None and metadata.title:
            return PageMetadata(
                title=metadata.title,
                description=metadata.description,
                keywords=list(metadata.keywords),
                og_image=metadata.og_image,
            )
    return PageMetadata(title=UNTITLED_PAGE)


def build_render_data(
    *,
    content_sections: Sequence[PopulatedSection],
    layout_sections: Sequence[LayoutSection],
    persona_ids: Sequence[str],
    journey: EmotionalJourney | None = None,
    content_metadata: PageMetadata | None = None,
    layout_metadata: PageMetadata | None = None,
) -> PageRenderData:
    persona_ids = list(dict.fromkeys(persona_ids))
    animations_by_id = {section.id: section.animations for section in layout_sections}

    ranked = sorted(range(len(content_sections)), key=lambda index: content_sections[index].order)
    rank_of = {index: rank for rank, index in enumerate(ranked)}

    default_variant: list[RenderSection] = []
    persona_variants: dict[str, list[RenderSection]] = {persona_id: [] for persona_id in persona_ids}

    for index, section in enumerate(content_sections):
        tone = _journey_tone(journey, rank_of[index], len(content_sections))
        render_section = RenderSection(
            section_id=section.section_id,
            component_id=section.component_id,
            narrative_role=section.narrative_role,
            order=section.order,
            emotional_tone=tone or emotional_tone_for_role(section.narrative_role),
            content=section.content,
            animations=animations_by_id.get(section.section_id),
            confidence_score=section.metadata.confidence_score,
        )
        default_variant.append(render_section)

        for persona_id in persona_ids:
            variation = section.persona_variations.get(persona_id)
            if variation is None:
                persona_variants[persona_id].append(render_section.model_copy(deep=True))
            else:
                persona_variants[persona_id].append(
                    render_section.model_copy(
                        update={
                            "content": variation.content,
                            "emotional_tone": variation.emotional_tone,
                        },
                        deep=True,
                    )
                )

    # sorted() is stable: equal orders keep discovery order
    return PageRenderData(
        default_variant=sorted(default_variant, key=lambda item: item.order),
        persona_variants={
            persona_id: sorted(sections, key=lambda item: item.order)
            for persona_id, sections in persona_variants.items()
        },
        metadata=resolve_metadata(content_metadata, layout_metadata),
    )


def assemble(
    layout_result: LayoutStageResult,
    storyline_result: StorylineStageResult,
    content_result: ContentStageResult,
    persona_ids: Sequence[str],
) -> PageRenderData:
    """Fold the three stage results into a render tree.

    Content sections decide what is rendered. Layout only lends animations and
    fallback metadata; the storyline only lends emotional tone.
    """
    layout = layout_result.payload
    storyline = storyline_result.payload
    content = content_result.payload
    return build_render_data(
        content_sections=content.sections if content else (),
        layout_sections=layout.sections if layout else (),
        persona_ids=persona_ids,
        journey=storyline.emotional_journey if storyline else None,
        content_metadata=content.page_metadata if content else None,
        layout_metadata=layout.metadata if layout else None,
    )


def extract_render_data(document: PageContentDocument) -> PageRenderData:
    """Rebuild render data from a stored page without re-running generation."""
    generated = document.generated_content
    sections = generated.sections if generated else ()

    if document.pipeline_metadata is not None and document.pipeline_metadata.personas is not None:
        persona_ids = list(document.pipeline_metadata.personas)
    else:
        persona_ids = list(
            dict.fromkeys(
                persona_id for section in sections for persona_id in section.persona_variations
            )
        )

    return build_render_data(
        content_sections=sections,
        layout_sections=document.sections,
        persona_ids=persona_ids,
        journey=document.storyline.emotional_journey if document.storyline else None,
        content_metadata=generated.page_metadata if generated else None,
        layout_metadata=document.metadata,
    )


def get_render_data_for_persona(
    render_data: PageRenderData, persona_id: str | None = None
) -> list[RenderSection]:
    if persona_id and persona_id in render_data.persona_variants:
        return render_data.persona_variants[persona_id]
    return render_data.default_variant


def prepare_page_preview(render_data: PageRenderData, persona_id: str | None = None) -> PagePreview:
    return PagePreview(
        sections=get_render_data_for_persona(render_data, persona_id),
        metadata=render_data.metadata,
        is_personalized=bool(persona_id) and persona_id in render_data.persona_variants,
    )


def compare_page_versions(
    old: PageContentDocument, new: PageContentDocument
) -> dict[str, Any]:
    old_sections = {
        section.section_id: section
        for section in (old.generated_content.sections if old.generated_content else ())
    }
    new_sections = {
        section.section_id: section
        for section in (new.generated_content.sections if new.generated_content else ())
    }

    modified = [
        section_id
        for section_id, section in new_sections.items()
        if section_id in old_sections
        and (
            old_sections[section_id].content.headline != section.content.headline
            or old_sections[section_id].component_id != section.component_id
        )
    ]

    old_meta = old.generated_content.page_metadata if old.generated_content else None
    new_meta = new.generated_content.page_metadata if new.generated_content else None
    metadata_changed = (old_meta.title if old_meta else None) != (
        new_meta.title if new_meta else None
    ) or (old_meta.description if old_meta else None) != (
        new_meta.description if new_meta else None
    )

    return {
        "sections_added": [section_id for section_id in new_sections if section_id not in old_sections],
        "sections_removed": [section_id for section_id in old_sections if section_id not in new_sections],
        "sections_modified": modified,
        "metadata_changed": metadata_changed,
    }


def merge_content_edits(generated: PopulatedContent, edits: Mapping[str, Any]) -> PopulatedContent:
    """Apply user edits on top of generated content.

    Scalar fields in ``edits`` always win. List fields replace the generated
    list only when the edit supplies a value for them.
    """
    merged = generated.model_dump()
    for key, value in edits.items():
        if key not in PopulatedContent.model_fields:
            continue
        if key in _LIST_CONTENT_FIELDS and value is None:
            continue
        merged[key] = value
    return PopulatedContent.model_validate(merged)


def serialize_output(output: GenerationOutput, include_full_data: bool = False) -> dict[str, Any]:
    base: dict[str, Any] = {
        "page_id": output.page_id,
        "slug": output.slug,
        "stats": output.stats.model_dump(),
        "metadata": output.render_data.metadata.model_dump(),
        "status": {
            "layout": {
                "status": output.layout.status.value,
                **output.layout.metrics.model_dump(
                    include={"sections_count", "confidence_score", "time_ms"}
                ),
            },
            "storyline": {
                "status": output.storyline.status.value,
                **output.storyline.metrics.model_dump(
                    include={"content_blocks_count", "persona_variations_count", "time_ms"}
                ),
            },
            "content": {
                "status": output.content.status.value,
                **output.content.metrics.model_dump(
                    include={"sections_populated", "average_confidence", "time_ms"}
                ),
            },
        },
    }
    if not include_full_data:
        return base

    content = output.content.payload
    return {
        **base,
        "layout": output.layout.payload.model_dump(mode="json") if output.layout.payload else None,
        "storyline": (
            output.storyline.payload.model_dump(mode="json") if output.storyline.payload else None
        ),
        "sections": [section.model_dump(mode="json") for section in content.sections] if content else None,
        "render_data": output.render_data.model_dump(mode="json"),
    }


__all__ = [
    "assemble",
    "build_render_data",
    "compare_page_versions",
    "emotional_tone_for_role",
    "extract_render_data",
    "get_render_data_for_persona",
    "merge_content_edits",
    "prepare_page_preview",
    "resolve_metadata",
    "serialize_output",
]
