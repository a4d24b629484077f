"""Translate the outcome of a sync attempt into the Kustomization status."""

from dataclasses import dataclass
import datetime
from enum import StrEnum
import logging

from .exceptions import ConflictError, ObjectNotFoundError, StatusWriteError
from .manifest import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    READY_CONDITION,
    Condition,
    Kustomization,
)
from .store import Store

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "SyncKind",
    "SyncResult",
    "ready_condition",
    "StatusReporter",
]

APPLY_SUCCEEDED_REASON = "ApplySucceeded"
ARTIFACT_MISSING_REASON = "ArtifactMissing"
FETCH_FAILED_REASON = "FetchFailed"
STORAGE_OPERATION_FAILED_REASON = "StorageOperationFailed"
RENDER_FAILED_REASON = "RenderFailed"
APPLY_FAILED_REASON = "ApplyFailed"

SUCCESS_MESSAGE = "kustomization was successfully applied"


class SyncKind(StrEnum):
    """Outcome of a sync attempt."""

    SUCCEEDED = "Succeeded"
    ARTIFACT_MISSING = "ArtifactMissing"
    FETCH_FAILED = "FetchFailed"
    RENDER_FAILED = "RenderFailed"
    APPLY_FAILED = "ApplyFailed"


_DEFAULT_REASONS = {
    SyncKind.SUCCEEDED: APPLY_SUCCEEDED_REASON,
    SyncKind.ARTIFACT_MISSING: ARTIFACT_MISSING_REASON,
    SyncKind.FETCH_FAILED: FETCH_FAILED_REASON,
    SyncKind.RENDER_FAILED: RENDER_FAILED_REASON,
    SyncKind.APPLY_FAILED: APPLY_FAILED_REASON,
}


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one fetch, build and apply attempt."""

    kind: SyncKind
    reason: str
    message: str
    revision: str | None = None

    @classmethod
    def succeeded(cls, revision: str | None = None) -> "SyncResult":
        """Return a successful result."""
        return cls(
            kind=SyncKind.SUCCEEDED,
            reason=APPLY_SUCCEEDED_REASON,
            message=SUCCESS_MESSAGE,
            revision=revision,
        )

    @classmethod
    def failed(
        cls, kind: SyncKind, message: str, reason: str | None = None
    ) -> "SyncResult":
        """Return a failed result for the stage identified by kind."""
        if kind == SyncKind.SUCCEEDED:
            raise ValueError("A failed result requires a failure kind")
        return cls(kind=kind, reason=reason or _DEFAULT_REASONS[kind], message=message)

    @property
    def success(self) -> bool:
        return self.kind == SyncKind.SUCCEEDED


def ready_condition(
    result: SyncResult, now: datetime.datetime | None = None
) -> Condition:
    """Map a sync result to the Ready condition."""
    return Condition(
        type=READY_CONDITION,
        status=CONDITION_TRUE if result.success else CONDITION_FALSE,
        reason=result.reason,
        message=result.message,
        last_transition_time=now or datetime.datetime.now(datetime.timezone.utc),
    )


class StatusReporter:
    """Persists the outcome of a sync attempt on the Kustomization."""

    def __init__(self, store: Store) -> None:
        """Initialize StatusReporter."""
        self._store = store

    def report(self, kustomization: Kustomization, result: SyncResult) -> None:
        """Record the result on the Kustomization and write its status.

        The object is updated in place with the new condition, observed
        generation and applied revision before it is written.

        Raises:
            StatusWriteError: If the status could not be written.
        """
        status = kustomization.status
        status.set_condition(ready_condition(result))
        status.observed_generation = kustomization.metadata.generation
        if result.success and result.revision:
            status.last_applied_revision = result.revision
        try:
            self._store.update_status(
                kustomization.resource_id,
                status,
                resource_version=kustomization.metadata.resource_version,
            )
        except (ConflictError, ObjectNotFoundError) as err:
            raise StatusWriteError(kustomization.resource_id, str(err)) from err
        _LOGGER.debug(
            "Wrote status %s for %s", result.reason, kustomization.namespaced_name
        )
