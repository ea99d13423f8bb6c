import asyncio

import pytest

from fakes import FailingPageStore, FakeService, make_input, make_services
from page_pipeline.errors import PageRecordError
from page_pipeline.job_runner import run_generation_job
from page_pipeline.job_store import JobStore
from page_pipeline.models.job import JobStatus
from page_pipeline.models.progress import PipelineStatus
from page_pipeline.page_store import InMemoryPageStore


class RecordingPubSub:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.completed = []

    def publish_generation_completed(self, *, job_id, page_id, summary):
        if self.error is not None:
            raise self.error
        self.completed.append((job_id, page_id, summary))
        return "msg_1"


def test_job_tracks_progress_and_outputs():
    job_store = JobStore()
    job = job_store.create_job(workspace_id="ws_1", page_id=None)
    pubsub = RecordingPubSub()
    services = make_services(storyline=FakeService(error=RuntimeError("storyline down")))

    output = asyncio.run(
        run_generation_job(
            job.id,
            make_input(return_full_output=True),
            job_store=job_store,
            page_store=InMemoryPageStore(),
            services=services,
            pubsub_client=pubsub,
        )
    )

    record = job_store.get_job(job.id)
    assert record.status is JobStatus.completed
    assert record.progress.status is PipelineStatus.complete
    assert record.progress.progress == 100
    assert record.page_id == output.page_id
    assert record.outputs.slug == "content-title"
    assert record.outputs.summary["success"] is True
    assert record.outputs.render_data["metadata"]["title"] == "Content Title"
    assert list(record.errors) == ["storyline: storyline down"]
    assert pubsub.completed[0][:2] == (job.id, output.page_id)


def test_fatal_error_fails_job():
    job_store = JobStore()
    job = job_store.create_job(workspace_id="ws_1", page_id=None)

    with pytest.raises(PageRecordError):
        asyncio.run(
            run_generation_job(
                job.id,
                make_input(),
                job_store=job_store,
                page_store=FailingPageStore(fail_create=True),
                services=make_services(),
            )
        )

    record = job_store.get_job(job.id)
    assert record.status is JobStatus.failed
    assert list(record.errors) == ["Failed to create page record"]
    assert record.progress.status is PipelineStatus.failed


def test_completion_publish_failure_is_not_fatal():
    job_store = JobStore()
    job = job_store.create_job(workspace_id="ws_1", page_id=None)

    asyncio.run(
        run_generation_job(
            job.id,
            make_input(),
            job_store=job_store,
            page_store=InMemoryPageStore(),
            services=make_services(),
            pubsub_client=RecordingPubSub(error=ConnectionError("pubsub down")),
        )
    )

    record = job_store.get_job(job.id)
    assert record.status is JobStatus.completed
    assert record.outputs.render_data is None


def test_job_store_lists_by_status_and_workspace():
    job_store = JobStore()
    first = job_store.create_job(workspace_id="ws_1", page_id="pages/one")
    job_store.create_job(workspace_id="ws_2", page_id=None)
    job_store.update_job(first.id, status=JobStatus.completed)

    assert first.id.startswith("job_pages-one_")
    assert [job.id for job in job_store.list_jobs(status=JobStatus.completed)] == [first.id]
    assert len(job_store.list_jobs(workspace_id="ws_2")) == 1
    assert job_store.get_job("missing") is None
