from __future__ import annotations

import json
import logging
from typing import Any

from google.cloud import pubsub_v1

from .models.generation import GenerationInput

logger = logging.getLogger(__name__)


class PubSubClient:
    """Wrapper for Google Cloud Pub/Sub operations."""

    def __init__(
        self,
        project_id: str,
        *,
        requests_topic: str = "page-generation-requests",
        completed_topic: str = "page-generation-completed",
    ) -> None:
        self.project_id = project_id
        self.requests_topic = requests_topic
        self.completed_topic = completed_topic
        self.publisher = pubsub_v1.PublisherClient()

    def publish(
        self,
        topic_id: str,
        message: dict[str, Any],
        *,
        attributes: dict[str, str] | None = None,
    ) -> str:
        """Publish a message to a Pub/Sub topic.

        Args:
            topic_id: The topic ID (e.g., "page-generation-requests")
            message: The message payload as a dictionary
            attributes: Optional message attributes

        Returns:
            Message ID from Pub/Sub
        """
        topic_path = self.publisher.topic_path(self.project_id, topic_id)
        data = json.dumps(message).encode("utf-8")

        future = self.publisher.publish(topic_path, data, **(attributes or {}))
        message_id = future.result()

        logger.info(
            "Published message to Pub/Sub",
            extra={
                "topic_id": topic_id,
                "message_id": message_id,
                "attributes": attributes,
            },
        )

        return message_id

    def publish_generation_request(self, *, job_id: str, generation_input: GenerationInput) -> str:
        """Queue a page generation run for the worker."""
        message = {
            "job_id": job_id,
            "input": generation_input.model_dump(mode="json"),
        }
        attributes = {
            "job_id": job_id,
            "workspace_id": generation_input.workspace_id,
            "page_type": generation_input.page_type.value,
        }
        return self.publish(self.requests_topic, message, attributes=attributes)

    def publish_generation_completed(
        self,
        *,
        job_id: str,
        page_id: str,
        summary: dict[str, Any],
    ) -> str:
        """Announce a finished run with its summary (no section payloads)."""
        message = {
            "job_id": job_id,
            "page_id": page_id,
            "summary": summary,
        }
        attributes = {
            "job_id": job_id,
            "event_type": "page_generation_completed",
        }
        return self.publish(self.completed_topic, message, attributes=attributes)


__all__ = ["PubSubClient"]
