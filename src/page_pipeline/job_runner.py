from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from .models.generation import GenerationInput
from .models.job import JobOutputs, JobRecord, JobStatus
from .models.output import GenerationOutput
from .models.progress import GenerationProgress
from .models.stages import StageStatus
from .orchestrator import generate_full_page, summarize
from .page_store import PageStore
from .pubsub_client import PubSubClient
from .stages import StageServices

logger = logging.getLogger(__name__)


class JobStoreLike(Protocol):
    def update_job(
        self,
        job_id: str,
        *,
        status: JobStatus | None = None,
        progress: GenerationProgress | None = None,
        outputs: JobOutputs | None = None,
        errors: list[str] | None = None,
    ) -> JobRecord:
        ...


def stage_errors(output: GenerationOutput) -> list[str]:
    return [
        f"{name}: {result.error}"
        for name, result in (
            ("layout", output.layout),
            ("storyline", output.storyline),
            ("content", output.content),
        )
        if result.status is StageStatus.failed
    ]


async def run_generation_job(
    job_id: str,
    generation_input: GenerationInput,
    *,
    job_store: JobStoreLike,
    page_store: PageStore,
    services: StageServices,
    pubsub_client: PubSubClient | None = None,
    **options: Any,
) -> GenerationOutput:
    """Run one queued page generation and keep its job record current.

    Every progress change is pushed into the job record, so pollers read the
    job store rather than the orchestrator.
    """
    job_store.update_job(job_id, status=JobStatus.in_progress)

    def _publish_progress(progress: GenerationProgress) -> None:
        job_store.update_job(job_id, progress=progress)

    try:
        output = await generate_full_page(
            generation_input,
            page_store=page_store,
            services=services,
            on_progress=_publish_progress,
            **options,
        )
    except asyncio.CancelledError:
        job_store.update_job(job_id, status=JobStatus.failed, errors=["Generation cancelled"])
        raise
    except Exception as exc:
        logger.error(
            "Page generation job failed",
            exc_info=True,
            extra={"job_id": job_id, "error": str(exc)},
        )
        job_store.update_job(job_id, status=JobStatus.failed, errors=[str(exc)])
        raise

    summary = summarize(output).model_dump(mode="json")
    outputs = JobOutputs(
        page_id=output.page_id,
        slug=output.slug,
        summary=summary,
        render_data=(
            output.render_data.model_dump(mode="json") if generation_input.return_full_output else None
        ),
    )
    job_store.update_job(
        job_id, status=JobStatus.completed, outputs=outputs, errors=stage_errors(output)
    )

    if pubsub_client is not None:
        try:
            pubsub_client.publish_generation_completed(
                job_id=job_id, page_id=output.page_id, summary=summary
            )
        except Exception as exc:
            logger.warning(
                "Publishing completion event failed (non-fatal)",
                exc_info=True,
                extra={"job_id": job_id, "error": str(exc)},
            )

    logger.info(
        "Page generation job completed",
        extra={"job_id": job_id, "page_id": output.page_id, "stages_failed": output.stats.stages_failed},
    )
    return output


__all__ = ["run_generation_job", "stage_errors"]
