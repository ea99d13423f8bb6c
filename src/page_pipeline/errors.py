from __future__ import annotations


class PipelineError(Exception):
    """Infrastructure failure that aborts a generation run."""

    def __init__(self, message: str, *, page_id: str | None = None) -> None:
        super().__init__(message)
        self.page_id = page_id


class PageRecordError(PipelineError):
    """The target page record could not be resolved or created."""


class PageSaveError(PipelineError):
    """Generated content could not be written to the page record."""


__all__ = ["PageRecordError", "PageSaveError", "PipelineError"]
