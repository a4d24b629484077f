"""Event filter deciding which changes to a Kustomization trigger a sync.

The controller writes status on every attempt, and each status write produces
an update event. Only a spec change (a new generation) or a new value of the
sync-at annotation should start another attempt; everything else is left to
the periodic re-sync.
"""

from dataclasses import dataclass

from .manifest import SYNC_AT_ANNOTATION, ObjectMeta

__all__ = [
    "UpdateEvent",
    "SyncAtPredicate",
]


@dataclass(frozen=True)
class UpdateEvent:
    """Metadata of an object before and after an update."""

    old: ObjectMeta | None
    new: ObjectMeta | None


class SyncAtPredicate:
    """Filters update events to spec changes and sync requests."""

    def create(self, meta: ObjectMeta) -> bool:
        return True

    def delete(self, meta: ObjectMeta) -> bool:
        return True

    def update(self, event: UpdateEvent) -> bool:
        """Return True if the update should trigger a sync."""
        if event.old is None or event.new is None:
            # ignore objects without metadata
            return False
        if event.new.generation != event.old.generation:
            return True

        if (value := event.new.annotations.get(SYNC_AT_ANNOTATION)) is None:
            return False
        return value != event.old.annotations.get(SYNC_AT_ANNOTATION)
