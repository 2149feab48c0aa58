"""Exception types shared across the analysis pipeline."""

from __future__ import annotations


class GenerationError(Exception):
    """The text-generation service failed on every attempt."""

    def __init__(self, message: str, last_error: BaseException | None = None):
        super().__init__(message)
        self.last_error = last_error


class PermanentAnalysisError(Exception):
    """A job that cannot succeed no matter how often it is retried."""


class EntityNotFoundError(PermanentAnalysisError):
    def __init__(self, entity_kind: str, entity_id: str):
        super().__init__(f"{entity_kind} entity {entity_id} not found")
        self.entity_kind = entity_kind
        self.entity_id = entity_id


class StoreError(Exception):
    """The document store or queue database could not be reached."""
