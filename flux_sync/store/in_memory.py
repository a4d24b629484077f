"""Module for in memory object store."""

import copy
from collections import defaultdict
from collections.abc import Callable
from typing import Any, DefaultDict

import logging

from flux_sync.manifest import (
    Kustomization,
    KustomizationStatus,
    NamedResource,
)
from flux_sync.exceptions import ConflictError, ObjectNotFoundError

from .store import Store, StoreEvent, Manifest, T


_LOGGER = logging.getLogger(__name__)


def _spec_of(obj: Manifest) -> Any:
    """Return the part of an object that determines its generation."""
    if isinstance(obj, Kustomization):
        return obj.spec
    return obj.url


class InMemoryStore(Store):
    """In-memory implementation of the Store interface.

    Stores objects keyed by NamedResource and supports event listeners for
    object creation, update and deletion.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryStore."""
        self._objects: dict[NamedResource, Manifest] = {}
        self._listeners: DefaultDict[StoreEvent, list[Callable[..., None]]] = (
            defaultdict(list)
        )

    def add_object(self, obj: Manifest) -> None:
        """Create an object or update its spec and metadata."""
        resource_id = obj.resource_id
        new = copy.deepcopy(obj)
        if (existing := self._objects.get(resource_id)) is None:
            _LOGGER.debug("Adding object %s to store", resource_id)
            new.metadata.generation = max(new.metadata.generation, 1)
            new.metadata.resource_version = 1
            self._objects[resource_id] = new
            self._fire_event(StoreEvent.OBJECT_ADDED, resource_id, copy.deepcopy(new))
            return

        new.metadata.generation = existing.metadata.generation
        new.metadata.resource_version = existing.metadata.resource_version
        if isinstance(existing, Kustomization) and isinstance(new, Kustomization):
            new.status = copy.deepcopy(existing.status)
        if new == existing:
            _LOGGER.debug("Object %s already exists in store, skipping", resource_id)
            return
        if _spec_of(new) != _spec_of(existing):
            new.metadata.generation += 1
        new.metadata.resource_version += 1
        _LOGGER.debug(
            "Updating object %s in store (generation %d)",
            resource_id,
            new.metadata.generation,
        )
        self._replace(resource_id, existing, new)

    def get_object(self, resource_id: NamedResource, cls: type[T]) -> T | None:
        """Retrieve a copy of an object by resource identity and type."""
        obj = self._objects.get(resource_id)
        if obj is None:
            return None
        if not isinstance(obj, cls):
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {cls.__name__} (was {obj.__class__.__name__})"
            )
        return copy.deepcopy(obj)

    def delete_object(self, resource_id: NamedResource) -> None:
        """Remove an object from the store."""
        if (obj := self._objects.pop(resource_id, None)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        _LOGGER.debug("Deleted object %s from store", resource_id)
        self._fire_event(StoreEvent.OBJECT_DELETED, resource_id, copy.deepcopy(obj))

    def update_status(
        self,
        resource_id: NamedResource,
        status: KustomizationStatus,
        resource_version: int,
    ) -> None:
        """Replace the status of a Kustomization."""
        existing = self._objects.get(resource_id)
        if existing is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if not isinstance(existing, Kustomization):
            raise ValueError(
                f"Resource kind {resource_id.kind} does not support status updates"
            )
        if existing.metadata.resource_version != resource_version:
            raise ConflictError(
                f"Object {resource_id} has been modified (resource version "
                f"{existing.metadata.resource_version}, expected {resource_version})"
            )
        new = copy.deepcopy(existing)
        new.status = copy.deepcopy(status)
        new.metadata.resource_version += 1
        _LOGGER.debug("Updated status for resource %s", resource_id)
        self._replace(resource_id, existing, new)

    def list_objects(self, kind: str | None = None) -> list[Manifest]:
        """List copies of all objects in the store, optionally filtered by kind."""
        return [
            copy.deepcopy(obj)
            for obj in self._objects.values()
            if kind is None or obj.kind == kind
        ]

    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[..., Any],
    ) -> Callable[[], None]:
        """Register a callback for a specific event."""

        def remove() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        self._listeners[event].append(callback)
        return remove

    def _replace(
        self, resource_id: NamedResource, old: Manifest, new: Manifest
    ) -> None:
        self._objects[resource_id] = new
        self._fire_event(
            StoreEvent.OBJECT_UPDATED,
            resource_id,
            copy.deepcopy(old),
            copy.deepcopy(new),
        )

    def _fire_event(self, event: StoreEvent, *args: Any) -> None:
        for cb in list(self._listeners[event]):  # Iterate over a copy for safe removal
            try:
                cb(*args)
            except Exception:
                _LOGGER.exception("Store listener callback failed for event %s", event)
