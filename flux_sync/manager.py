"""Controller manager for flux-sync.

The manager connects the store to the KustomizationController: store events
pass through the SyncAtPredicate into a work queue, and a fixed number of
workers take Kustomizations off the queue and reconcile them. After each
reconcile the Kustomization is queued again after its interval, or after the
short error interval when the reconcile raised.
"""

import asyncio
from collections.abc import Callable
import logging

from flux_sync.config import ManagerConfig
from flux_sync.controller import KustomizationController
from flux_sync.exceptions import FluxException
from flux_sync.manifest import KUSTOMIZE_KIND, Kustomization, NamedResource
from flux_sync.predicate import SyncAtPredicate, UpdateEvent
from flux_sync.queue import WorkQueue
from flux_sync.store import Store, StoreEvent

_LOGGER = logging.getLogger(__name__)

__all__ = ["Manager"]


class Manager:
    """Runs the KustomizationController against a store.

    The manager is responsible for:
    - Translating store events into reconcile requests
    - Running a bounded number of reconciles concurrently
    - Scheduling periodic and retry reconciles
    """

    def __init__(
        self,
        store: Store,
        config: ManagerConfig | None = None,
        controller: KustomizationController | None = None,
    ) -> None:
        """Initialize the manager."""
        self._store = store
        self._config = config or ManagerConfig()
        self._controller = controller or KustomizationController(
            store, self._config.controller, commands=self._config.commands
        )
        self._predicate = SyncAtPredicate()
        self._queue: WorkQueue[NamedResource] = WorkQueue()
        self._tasks: list[asyncio.Task[None]] = []
        self._remove_listeners: list[Callable[[], None]] = []

    @property
    def queue(self) -> WorkQueue[NamedResource]:
        return self._queue

    async def start(self) -> None:
        """Start watching the store and processing the queue."""
        if self._tasks:
            return
        _LOGGER.info(
            "Starting manager with %d workers", self._config.max_concurrent_reconciles
        )
        self._remove_listeners = [
            self._store.add_listener(StoreEvent.OBJECT_ADDED, self._on_added),
            self._store.add_listener(StoreEvent.OBJECT_UPDATED, self._on_updated),
            self._store.add_listener(StoreEvent.OBJECT_DELETED, self._on_deleted),
        ]
        for obj in self._store.list_objects(KUSTOMIZE_KIND):
            self._on_added(obj.resource_id, obj)
        for i in range(self._config.max_concurrent_reconciles):
            self._tasks.append(
                asyncio.create_task(self._worker(), name=f"reconcile-worker-{i}")
            )

    async def stop(self) -> None:
        """Stop the workers, aborting any reconcile in progress."""
        if not self._tasks:
            return
        _LOGGER.info("Stopping manager")
        for remove in self._remove_listeners:
            remove()
        self._remove_listeners.clear()
        self._queue.shutdown()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        _LOGGER.info("Manager stopped")

    async def run(self) -> None:
        """Run until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def reconcile_all(self) -> dict[NamedResource, Exception | None]:
        """Reconcile every Kustomization once, without scheduling requeues.

        Returns the loop level error of each reconcile, or None if the status
        was written.
        """
        sem = asyncio.Semaphore(self._config.max_concurrent_reconciles)

        async def reconcile(resource_id: NamedResource) -> Exception | None:
            async with sem:
                try:
                    await self._controller.reconcile(resource_id)
                except FluxException as err:
                    _LOGGER.error("Reconcile of %s failed: %s", resource_id, err)
                    return err
            return None

        resource_ids = [
            obj.resource_id for obj in self._store.list_objects(KUSTOMIZE_KIND)
        ]
        results = await asyncio.gather(*(reconcile(rid) for rid in resource_ids))
        return dict(zip(resource_ids, results))

    def _on_added(self, resource_id: NamedResource, obj: Kustomization) -> None:
        if resource_id.kind != KUSTOMIZE_KIND:
            return
        if self._predicate.create(obj.metadata):
            self._queue.add(resource_id)

    def _on_updated(
        self, resource_id: NamedResource, old: Kustomization, new: Kustomization
    ) -> None:
        if resource_id.kind != KUSTOMIZE_KIND:
            return
        if self._predicate.update(UpdateEvent(old=old.metadata, new=new.metadata)):
            _LOGGER.debug("Change to %s requires a sync", resource_id)
            self._queue.add(resource_id)

    def _on_deleted(self, resource_id: NamedResource, obj: Kustomization) -> None:
        if resource_id.kind != KUSTOMIZE_KIND:
            return
        self._queue.forget(resource_id)
        if self._predicate.delete(obj.metadata):
            self._queue.add(resource_id)

    async def _worker(self) -> None:
        while (resource_id := await self._queue.get()) is not None:
            try:
                await self._process(resource_id)
            finally:
                self._queue.done(resource_id)

    async def _process(self, resource_id: NamedResource) -> None:
        retry = self._config.controller.error_requeue_interval
        try:
            result = await self._controller.reconcile(resource_id)
        except FluxException as err:
            _LOGGER.error(
                "Reconcile of %s failed, retrying in %ss: %s", resource_id, retry, err
            )
            self._queue.add_after(resource_id, retry)
            return
        except Exception as err:
            _LOGGER.exception(
                "Uncaught exception while reconciling %s: %s", resource_id, err
            )
            self._queue.add_after(resource_id, retry)
            return
        if result.requeue_after is not None:
            self._queue.add_after(resource_id, result.requeue_after)
