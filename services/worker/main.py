from __future__ import annotations

import base64
import json
import logging
import os
import uuid
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from page_pipeline.firestore_job_store import FirestoreJobStore
from page_pipeline.firestore_page_store import FirestorePageStore
from page_pipeline.generation_services import build_vertex_services
from page_pipeline.job_runner import run_generation_job
from page_pipeline.job_store import JobStore
from page_pipeline.logging_config import set_trace_id, setup_logging
from page_pipeline.models.generation import GenerationInput
from page_pipeline.page_store import InMemoryPageStore
from page_pipeline.pubsub_client import PubSubClient
from page_pipeline.stages import StageServices
from page_pipeline.vertex_ai_adapter import VertexAIAdapter

# Environment configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
PROJECT_ID = os.getenv("PROJECT_ID")
VERTEX_LOCATION = os.getenv("VERTEX_LOCATION", "us-central1")
VERTEX_MODEL = os.getenv("VERTEX_MODEL", "gemini-1.5-pro")
PUBSUB_TOPIC_GENERATION_COMPLETED = os.getenv(
    "PUBSUB_TOPIC_GENERATION_COMPLETED", "page-generation-completed"
)
STAGE_TIMEOUT_SECONDS = float(os.getenv("STAGE_TIMEOUT_SECONDS", "0")) or None
PARALLEL_STAGES = os.getenv("PARALLEL_STAGES", "false").lower() in {"1", "true", "yes"}

# Setup logging
setup_logging(environment=ENVIRONMENT, project_id=PROJECT_ID)
logger = logging.getLogger(__name__)

# Initialize services
if ENVIRONMENT == "dev":
    job_store = JobStore()
    page_store = InMemoryPageStore()
else:
    job_store = FirestoreJobStore(project_id=PROJECT_ID)
    page_store = FirestorePageStore(project_id=PROJECT_ID)

pubsub_client = (
    PubSubClient(project_id=PROJECT_ID, completed_topic=PUBSUB_TOPIC_GENERATION_COMPLETED)
    if PROJECT_ID and ENVIRONMENT != "dev"
    else None
)

stage_services: StageServices | None = None

app = FastAPI(title="Page Pipeline Worker", version="0.1.0")


class PubSubMessage(BaseModel):
    """Pub/Sub push message format."""

    message: dict[str, Any]
    subscription: str


def get_stage_services() -> StageServices:
    global stage_services
    if stage_services is None:
        adapter = VertexAIAdapter(
            project_id=PROJECT_ID, location=VERTEX_LOCATION, model_name=VERTEX_MODEL
        )
        stage_services = build_vertex_services(adapter)
    return stage_services


def _decode_message(body: Any) -> tuple[str, GenerationInput]:
    try:
        pubsub_message = PubSubMessage.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Malformed Pub/Sub envelope") from exc

    message_data = pubsub_message.message.get("data", "")
    if not message_data:
        raise HTTPException(status_code=400, detail="No message data")

    payload = json.loads(base64.b64decode(message_data).decode("utf-8"))
    job_id = payload.get("job_id")
    raw_input = payload.get("input")
    if not job_id or not raw_input:
        raise HTTPException(status_code=400, detail="Missing required fields: job_id, input")

    try:
        return job_id, GenerationInput.model_validate(raw_input)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid generation input") from exc


@app.post("/v1/worker/process")
async def process_generation_request(request: Request) -> JSONResponse:
    """Process a page generation request from Pub/Sub.

    This endpoint is called by Pub/Sub push subscription. A non-2xx answer
    makes Pub/Sub redeliver the message.
    """
    # Generate trace ID for request tracking
    trace_id = str(uuid.uuid4())
    set_trace_id(trace_id)

    job_id, generation_input = _decode_message(await request.json())

    logger.info(
        "Processing page generation request",
        extra={
            "job_id": job_id,
            "workspace_id": generation_input.workspace_id,
            "page_type": generation_input.page_type.value,
            "trace_id": trace_id,
        },
    )

    try:
        output = await run_generation_job(
            job_id,
            generation_input,
            job_store=job_store,
            page_store=page_store,
            services=get_stage_services(),
            pubsub_client=pubsub_client,
            parallel_stages=PARALLEL_STAGES,
            stage_timeout_seconds=STAGE_TIMEOUT_SECONDS,
        )
    except Exception as exc:
        logger.error(
            "Failed to process page generation request",
            exc_info=True,
            extra={"trace_id": trace_id, "job_id": job_id, "error": str(exc)},
        )
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return JSONResponse({"status": "success", "job_id": job_id, "page_id": output.page_id})


@app.get("/health")
async def healthcheck() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "ok"})
