from __future__ import annotations

from typing import Optional

__all__ = [
    "LifeCircleError",
    "InvalidRequestError",
    "EvaluationError",
    "EvaluationCancelled",
    "SpatialEngineError",
]


class LifeCircleError(Exception):
    """Base class for errors surfaced by the life circle pipeline."""


class InvalidRequestError(LifeCircleError, ValueError):
    """Request payload cannot be corrected by defaulting or clamping."""


class EvaluationError(LifeCircleError):
    """A fatal stage failure. The evaluation is aborted with no partial result."""

    def __init__(self, stage: str, cause: Optional[BaseException | str] = None) -> None:
        self.stage = stage
        self.cause = cause
        message = f"{stage} failed"
        if cause is not None and str(cause):
            message = f"{message}: {cause}"
        super().__init__(message)


class EvaluationCancelled(EvaluationError):
    """The request deadline expired or the caller cancelled the request."""

    def __init__(self, stage: str, reason: str = "deadline exceeded") -> None:
        super().__init__(stage, reason)


class SpatialEngineError(LifeCircleError):
    """Raised by spatial engine implementations when a query cannot be answered."""
