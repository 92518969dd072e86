import asyncio
import json
import logging
import uuid
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from groundcrew.core.config import get_settings
from groundcrew.services.realtime.subscription_channel import SubscriptionChannel
from groundcrew.services.store.document_store import ChangeEvent, DocumentStore
from groundcrew.utils.decorators import retry_with_backoff

logger = logging.getLogger(__name__)
settings = get_settings()


def encode_event(event: ChangeEvent, origin: str) -> str:
    return json.dumps({
        "collection": event.collection,
        "document_id": event.document_id,
        "turnaround_id": event.turnaround_id,
        "origin": origin,
    })


def decode_event(payload: str) -> ChangeEvent:
    data = json.loads(payload)
    return ChangeEvent(
        collection=data["collection"],
        document_id=data["document_id"],
        turnaround_id=data.get("turnaround_id"),
        origin=data.get("origin"),
    )


class RedisChangeRelay:
    """
    Redis pub/sub bridge for change events.
    Publishes this instance's committed writes and injects writes committed
    by other instances into the local subscription channel.
    """

    def __init__(
        self,
        store: DocumentStore,
        channel: SubscriptionChannel,
        redis_url: Optional[str] = None,
        channel_name: Optional[str] = None,
        reconnect_delay: float = 5.0
    ):
        self.store = store
        self.channel = channel
        self.redis_url = redis_url or settings.REDIS_URL
        self.channel_name = channel_name or settings.CHANGE_RELAY_CHANNEL
        self.reconnect_delay = reconnect_delay
        self.instance_id = uuid.uuid4().hex
        self._client: Optional[redis.Redis] = None
        self._pubsub = None
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._tasks = []

    @retry_with_backoff((RedisError, OSError), max_retries=3, initial_delay=1.0)
    async def _open(self):
        client = await redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True
        )
        await client.ping()
        return client

    async def connect(self):
        """Connect to Redis and start relaying"""
        self._client = await self._open()
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(self.channel_name)

        self.store.add_listener(self._on_local_change)
        self._tasks = [
            asyncio.create_task(self._publish_loop(), name="relay-publish"),
            asyncio.create_task(self._listen_loop(), name="relay-listen"),
        ]
        logger.info(
            "Change relay connected",
            extra={"channel": self.channel_name, "instance_id": self.instance_id}
        )

    async def disconnect(self):
        """Stop relaying and close the Redis connection"""
        self.store.remove_listener(self._on_local_change)
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        await self._close_connection()
        logger.info("Change relay disconnected")

    def _on_local_change(self, event: ChangeEvent) -> None:
        if event.origin is None:
            self._outbox.put_nowait(event)

    async def _publish_loop(self):
        while True:
            event = await self._outbox.get()
            if self._client is None:
                logger.warning(f"Change relay reconnecting, dropped event for {event.document_id}")
                continue
            try:
                await self._client.publish(self.channel_name, encode_event(event, self.instance_id))
            except (RedisError, OSError) as e:
                # Other instances miss this change until their next sweep
                logger.warning(
                    f"Failed to relay change event: {str(e)}",
                    extra={"collection": event.collection, "document_id": event.document_id}
                )

    async def _listen_loop(self):
        while True:
            try:
                async for message in self._pubsub.listen():
                    self._on_message(message)
            except (RedisError, OSError):
                # Events published while resubscribing are picked up by the next sweep
                logger.error("Change relay lost its Redis subscription", exc_info=True)
                await self._resubscribe()

    def _on_message(self, message: dict) -> None:
        if message.get("type") != "message":
            return
        try:
            event = decode_event(message["data"])
        except (ValueError, KeyError) as e:
            logger.warning(f"Ignoring malformed change event: {str(e)}")
            return
        if event.origin == self.instance_id:
            return
        self.channel.notify(event)

    async def _resubscribe(self):
        while True:
            await asyncio.sleep(self.reconnect_delay)
            await self._close_connection()
            try:
                self._client = await self._open()
                self._pubsub = self._client.pubsub()
                await self._pubsub.subscribe(self.channel_name)
            except (RedisError, OSError):
                logger.error("Change relay reconnect failed", exc_info=True)
                continue
            logger.info("Change relay resubscribed", extra={"channel": self.channel_name})
            return

    async def _close_connection(self):
        pubsub, client = self._pubsub, self._client
        self._pubsub = None
        self._client = None
        try:
            if pubsub is not None:
                await pubsub.unsubscribe(self.channel_name)
                await pubsub.close()
            if client is not None:
                await client.close()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing Redis connection: {str(e)}")
