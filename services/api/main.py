from __future__ import annotations

import os
from typing import Any, Sequence

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from page_pipeline.assembler import extract_render_data, prepare_page_preview, serialize_output
from page_pipeline.errors import PipelineError
from page_pipeline.firestore_job_store import FirestoreJobStore
from page_pipeline.firestore_page_store import FirestorePageStore
from page_pipeline.generation_services import build_vertex_services
from page_pipeline.job_runner import run_generation_job
from page_pipeline.job_store import JobStore
from page_pipeline.logging_config import setup_logging
from page_pipeline.models.generation import (
    ContentHints,
    GenerationConstraints,
    GenerationInput,
    StageName,
)
from page_pipeline.models.job import JobOutputs, JobRecord, JobStatus
from page_pipeline.models.output import PageContentDocument
from page_pipeline.models.page import PageMetadata, PageType
from page_pipeline.models.progress import GenerationProgress
from page_pipeline.models.render import PagePreview
from page_pipeline.orchestrator import generate_full_page, summarize
from page_pipeline.page_store import InMemoryPageStore
from page_pipeline.pubsub_client import PubSubClient
from page_pipeline.stages import StageServices
from page_pipeline.validator import PageValidationResult, validate_render_data
from page_pipeline.vertex_ai_adapter import VertexAIAdapter


class GeneratePageRequest(BaseModel):
    website_id: str
    page_id: str | None = None
    page_type: PageType
    knowledge_base_id: str
    personas: Sequence[str] = Field(default_factory=list)
    brand_config_id: str | None = None
    constraints: GenerationConstraints | None = None
    content_hints: ContentHints | None = None
    save: bool = True
    return_full_output: bool = False
    skip_stages: Sequence[StageName] = Field(default_factory=list)

    def to_input(self, workspace_id: str) -> GenerationInput:
        return GenerationInput(workspace_id=workspace_id, **self.model_dump())


class GeneratePageJobResponse(BaseModel):
    job_id: str
    status: JobStatus


class JobResponse(BaseModel):
    id: str
    status: JobStatus
    progress: GenerationProgress | None
    outputs: JobOutputs
    errors: list[str]

    @staticmethod
    def from_record(record: JobRecord) -> "JobResponse":
        return JobResponse(
            id=record.id,
            status=record.status,
            progress=record.progress,
            outputs=record.outputs,
            errors=list(record.errors),
        )


class PageResponse(BaseModel):
    id: str
    title: str
    slug: str
    has_generated_content: bool
    preview: PagePreview
    validation: PageValidationResult


# Environment configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
PROJECT_ID = os.getenv("PROJECT_ID")
VERTEX_LOCATION = os.getenv("VERTEX_LOCATION", "us-central1")
VERTEX_MODEL = os.getenv("VERTEX_MODEL", "gemini-1.5-pro")
PUBSUB_TOPIC_GENERATION_REQUESTS = os.getenv(
    "PUBSUB_TOPIC_GENERATION_REQUESTS", "page-generation-requests"
)
PUBSUB_TOPIC_GENERATION_COMPLETED = os.getenv(
    "PUBSUB_TOPIC_GENERATION_COMPLETED", "page-generation-completed"
)
STAGE_TIMEOUT_SECONDS = float(os.getenv("STAGE_TIMEOUT_SECONDS", "0")) or None
PARALLEL_STAGES = os.getenv("PARALLEL_STAGES", "false").lower() in {"1", "true", "yes"}

# Setup logging
setup_logging(environment=ENVIRONMENT, project_id=PROJECT_ID)

app = FastAPI(title="Page Pipeline API", version="0.1.0")

# Use Firestore in production, in-memory for dev
if ENVIRONMENT == "dev":
    job_store = JobStore()
    page_store = InMemoryPageStore()
else:
    job_store = FirestoreJobStore(project_id=PROJECT_ID)
    page_store = FirestorePageStore(project_id=PROJECT_ID)

# Initialize Pub/Sub client for production
pubsub_client = (
    PubSubClient(
        project_id=PROJECT_ID,
        requests_topic=PUBSUB_TOPIC_GENERATION_REQUESTS,
        completed_topic=PUBSUB_TOPIC_GENERATION_COMPLETED,
    )
    if PROJECT_ID and ENVIRONMENT != "dev"
    else None
)

# Built on first use so the app starts without Vertex AI credentials
stage_services: StageServices | None = None


def get_stage_services() -> StageServices:
    global stage_services
    if stage_services is None:
        adapter = VertexAIAdapter(
            project_id=PROJECT_ID, location=VERTEX_LOCATION, model_name=VERTEX_MODEL
        )
        stage_services = build_vertex_services(adapter)
    return stage_services


def _pipeline_options() -> dict[str, Any]:
    return {"parallel_stages": PARALLEL_STAGES, "stage_timeout_seconds": STAGE_TIMEOUT_SECONDS}


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc), "page_id": exc.page_id},
    )


@app.post("/v1/workspaces/{workspace_id}/pages:generate")
async def generate_page(workspace_id: str, request: GeneratePageRequest) -> dict[str, Any]:
    generation_input = request.to_input(workspace_id)
    output = await generate_full_page(
        generation_input,
        page_store=page_store,
        services=get_stage_services(),
        **_pipeline_options(),
    )
    validation = validate_render_data(output.render_data).model_dump()

    if generation_input.return_full_output:
        return {"success": True, **serialize_output(output, True), "validation": validation}
    return {**summarize(output).model_dump(mode="json"), "validation": validation}


@app.post("/v1/workspaces/{workspace_id}/pages:generate-async", response_model=GeneratePageJobResponse)
async def generate_page_async(
    workspace_id: str, request: GeneratePageRequest, background_tasks: BackgroundTasks
) -> GeneratePageJobResponse:
    generation_input = request.to_input(workspace_id)
    job = job_store.create_job(
        workspace_id=workspace_id,
        page_id=generation_input.page_id,
        request=generation_input.model_dump(mode="json"),
    )

    # In production, publish to Pub/Sub; in dev, use background task
    if pubsub_client and ENVIRONMENT != "dev":
        pubsub_client.publish_generation_request(job_id=job.id, generation_input=generation_input)
    else:
        background_tasks.add_task(_run_job, job.id, generation_input)

    return GeneratePageJobResponse(job_id=job.id, status=job.status)


@app.get("/v1/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str) -> JobResponse:
    record = job_store.get_job(job_id)
    if not record:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.from_record(record)


@app.get("/v1/pages/{page_id}", response_model=PageResponse)
async def get_page(page_id: str, persona_id: str | None = None) -> PageResponse:
    page = page_store.get_page(page_id)
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")

    document = PageContentDocument.model_validate(page.content or {})
    render_data = extract_render_data(document)
    if not render_data.metadata.title and page.title:
        render_data.metadata = PageMetadata(title=page.title)

    return PageResponse(
        id=page.id,
        title=page.title,
        slug=page.slug,
        has_generated_content=document.generated_content is not None,
        preview=prepare_page_preview(render_data, persona_id),
        validation=validate_render_data(render_data),
    )


async def _run_job(job_id: str, generation_input: GenerationInput) -> None:
    try:
        await run_generation_job(
            job_id,
            generation_input,
            job_store=job_store,
            page_store=page_store,
            services=get_stage_services(),
            **_pipeline_options(),
        )
    except Exception:  # pragma: no cover - recorded on the job and logged by the runner
        pass


@app.get("/health")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok"})
