"""
Subscription Channel.
Live, ordered, cancellable feeds of full-scope snapshots.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Set, Tuple

from groundcrew.core.config import get_settings
from groundcrew.core.metrics import active_subscriptions, snapshots_delivered_total
from groundcrew.exceptions import ConnectivityError, NotFoundError
from groundcrew.services.realtime.scopes import document_id
from groundcrew.services.store.document_store import ChangeEvent, DocumentStore

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(frozen=True)
class Snapshot:
    """Full materialization of a scope as of one load"""
    scope: Any
    documents: Tuple[Any, ...]
    sequence: int

    def by_id(self) -> dict:
        """Documents keyed by ID; duplicates collapse to the last one"""
        return {document_id(document): document for document in self.documents}


class Subscription:
    """
    Async iterator of snapshots for one scope.

    Change notifications only mark the subscription dirty; a single pump
    task reloads the scope and queues the result, so snapshots leave in
    load order and bursts of changes may coalesce into one snapshot.
    A ConnectivityError raised while iterating does not close the
    subscription; iterate again to resume. NotFoundError, or any other
    load failure, is raised once and then ends it.
    """

    def __init__(self, channel: "SubscriptionChannel", scope: Any, queue_size: int):
        self.scope = scope
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._dirty = asyncio.Event()
        self._dirty.set()
        self._closed = False
        self._sequence = 0
        self._pump = asyncio.create_task(self._run(), name=f"subscription:{scope.label}")
        active_subscriptions.labels(scope=scope.label).inc()

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_dirty(self) -> None:
        if not self._closed:
            self._dirty.set()

    async def _run(self):
        while not self._closed:
            await self._dirty.wait()
            self._dirty.clear()
            try:
                documents = await self.scope.load(self._channel.store)
            except ConnectivityError as e:
                logger.warning(f"Snapshot load failed for {self.scope.label}: {e.message}")
                await self._queue.put(e)
                continue
            except NotFoundError as e:
                logger.info(f"Subscription scope vanished: {e.message}")
                await self._queue.put(e)
                await self._queue.put(_CLOSED)
                return
            except Exception as e:
                logger.error(f"Snapshot load crashed for {self.scope.label}", exc_info=True)
                await self._queue.put(e)
                await self._queue.put(_CLOSED)
                return

            self._sequence += 1
            await self._queue.put(Snapshot(self.scope, tuple(documents), self._sequence))

    def __aiter__(self):
        return self

    async def __anext__(self) -> Snapshot:
        if self._closed:
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _CLOSED:
            await self.close()
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item

        snapshots_delivered_total.labels(scope=self.scope.label).inc()
        return item

    async def next_snapshot(self, timeout: Optional[float] = None) -> Snapshot:
        """Await the next snapshot, optionally bounded by a timeout"""
        return await asyncio.wait_for(self.__anext__(), timeout)

    async def close(self) -> None:
        """Stop delivery and release the queue; in-flight writes are unaffected"""
        if self._closed:
            return
        self._closed = True
        self._channel._discard(self)
        active_subscriptions.labels(scope=self.scope.label).dec()

        if self._pump is not asyncio.current_task():
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass

        # Drop undelivered snapshots and wake a blocked reader
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class SubscriptionChannel:
    """
    Fans committed store changes out to scope subscriptions.
    Registers itself as a store listener; the Redis relay feeds it events
    committed by other instances.
    """

    def __init__(self, store: DocumentStore, queue_size: Optional[int] = None):
        self.store = store
        self.queue_size = queue_size or get_settings().SUBSCRIPTION_QUEUE_SIZE
        self._subscriptions: Set[Subscription] = set()
        store.add_listener(self.notify)

    def subscribe(self, scope: Any) -> Subscription:
        """Register interest in a scope; the first snapshot follows immediately"""
        subscription = Subscription(self, scope, self.queue_size)
        self._subscriptions.add(subscription)
        logger.debug(f"Subscribed to {scope.label}", extra={"scope": repr(scope)})
        return subscription

    def notify(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscriptions):
            if subscription.scope.affected_by(event):
                subscription.mark_dirty()

    def _discard(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def close(self) -> None:
        """Close every subscription and detach from the store"""
        for subscription in list(self._subscriptions):
            await subscription.close()
        self.store.remove_listener(self.notify)
