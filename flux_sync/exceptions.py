"""Exceptions related to flux-sync."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manifest import NamedResource

__all__ = [
    "FluxException",
    "InputException",
    "CommandException",
    "FetchException",
    "KustomizeException",
    "KustomizePathException",
    "ApplyException",
    "ArtifactMissingError",
    "StorageException",
    "ObjectNotFoundError",
    "ConflictError",
    "DependencyNotFoundError",
    "StatusWriteError",
]


class FluxException(Exception):
    """Generic base exception used for this library."""


class InputException(FluxException):
    """Raised when the input files or values are not formatted as expected."""


class CommandException(FluxException):
    """Raised when there is a failure running a subcommand."""


class FetchException(CommandException):
    """Raised when downloading or unpacking a source artifact fails."""


class KustomizeException(CommandException):
    """Raised when there is a failure running a kustomize command."""


class KustomizePathException(KustomizeException):
    """Raised a Kustomization points to a path that does not exist."""


class ApplyException(CommandException):
    """Raised when there is a failure running a kubectl apply command."""


class ArtifactMissingError(FluxException):
    """Raised when a source does not expose a usable artifact."""


class StorageException(FluxException):
    """Raised when a local workspace cannot be allocated."""


class ObjectNotFoundError(FluxException):
    """Raised when an object is not found in the store."""


class ConflictError(FluxException):
    """Raised when a write is based on a stale resource version."""


class DependencyNotFoundError(FluxException):
    """Raised when the source referenced by a Kustomization does not exist."""

    def __init__(
        self, resource_id: "NamedResource", dependency_id: "NamedResource"
    ) -> None:
        super().__init__(
            f"{dependency_id} referenced by {resource_id} not found"
        )
        self.resource_id = resource_id
        self.dependency_id = dependency_id


class StatusWriteError(FluxException):
    """Raised when the status of a resource could not be persisted."""

    def __init__(self, resource_id: "NamedResource", cause: str) -> None:
        super().__init__(f"Unable to update status of {resource_id}: {cause}")
        self.resource_id = resource_id
