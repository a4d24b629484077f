"""Store module for holding the objects watched by the reconciler."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

from flux_sync.manifest import (
    GitRepository,
    Kustomization,
    KustomizationStatus,
    NamedResource,
)

Manifest = Kustomization | GitRepository
T = TypeVar("T", Kustomization, GitRepository)


class StoreEvent(str, Enum):
    """Enum for store events."""

    OBJECT_ADDED = "object_added"
    """Callback receives the resource id and the new object."""

    OBJECT_UPDATED = "object_updated"
    """Callback receives the resource id, the old object and the new object."""

    OBJECT_DELETED = "object_deleted"
    """Callback receives the resource id and the deleted object."""


class Store(ABC):
    """Abstract base class for the object store with listener support.

    The store plays the role of the API server: objects carry a generation that
    changes with the spec and a resource version that changes on every write.
    Objects returned by the store are copies and may be freely mutated.
    """

    @abstractmethod
    def add_object(self, obj: Manifest) -> None:
        """Create an object or update its spec and metadata.

        The status of an existing object is preserved.
        """

    @abstractmethod
    def get_object(self, resource_id: NamedResource, cls: type[T]) -> T | None:
        """Retrieve a copy of an object by resource identity and type."""

    @abstractmethod
    def delete_object(self, resource_id: NamedResource) -> None:
        """Remove an object from the store."""

    @abstractmethod
    def update_status(
        self,
        resource_id: NamedResource,
        status: KustomizationStatus,
        resource_version: int,
    ) -> None:
        """Replace the status of a Kustomization.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ConflictError: If resource_version is not the current version.
        """

    @abstractmethod
    def list_objects(self, kind: str | None = None) -> list[Manifest]:
        """List copies of all objects in the store, optionally filtered by kind."""

    @abstractmethod
    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[..., Any],
    ) -> Callable[[], None]:
        """Register a callback for a specific event.

        Returns a callable that can be called to remove the listener.
        """
