"""Node status broadcasting.

Each node kind publishes on its own channel (``gemini-execution``,
``http-request-execution``, ...) so a UI can subscribe to the node kinds it
renders. Delivery is best-effort: a failed publish is logged and never fails
the run.
"""
import json
import logging
import uuid
from datetime import datetime
from typing import List, Tuple

from .config import redis_url
from .schemas import StatusEvent

logger = logging.getLogger(__name__)

LOADING = "loading"
SUCCESS = "success"
ERROR = "error"

# node failures that happen before a node-kind executor exists to report them
WORKFLOW_CHANNEL = "workflow-execution"


def status_topic(channel: str) -> str:
    return f"{channel}:status"


def _event_id(channel: str, event: StatusEvent) -> str:
    # deterministic per (channel, node, status) so clients can dedupe replays
    canon = json.dumps({"channel": channel, "nodeId": event.node_id, "status": event.status}, sort_keys=True)
    return str(uuid.uuid5(uuid.NAMESPACE_URL, canon))


def event_payload(channel: str, event: StatusEvent) -> dict:
    return {
        "channel": channel,
        "topic": "status",
        "event_id": _event_id(channel, event),
        "timestamp": datetime.utcnow().isoformat(),
        "data": event.model_dump(by_alias=True),
    }


class StatusPublisher:
    """Transport-agnostic publisher of StatusEvents."""

    async def _send(self, channel: str, event: StatusEvent) -> None:
        raise NotImplementedError

    async def publish(self, channel: str, event: StatusEvent) -> None:
        try:
            await self._send(channel, event)
        except Exception as e:
            logger.warning("status publish failed channel=%s node_id=%s status=%s: %s",
                           channel, event.node_id, event.status, e)

    async def status(self, channel: str, node_id: str, status: str) -> None:
        await self.publish(channel, StatusEvent(node_id=node_id, status=status))

    async def close(self) -> None:
        return None


class InMemoryStatusPublisher(StatusPublisher):
    """Keeps every event in order; used by tests and inline runs without Redis."""

    def __init__(self):
        self.events: List[Tuple[str, StatusEvent]] = []

    async def _send(self, channel, event):
        logger.debug("status %s node_id=%s status=%s", channel, event.node_id, event.status)
        self.events.append((channel, event))

    def for_node(self, node_id: str) -> List[str]:
        return [e.status for _, e in self.events if e.node_id == node_id]


class RedisStatusPublisher(StatusPublisher):
    """Publishes JSON payloads to Redis pub/sub on ``<channel>:status``."""

    def __init__(self, url: str, client=None):
        self.url = url
        self._client = client

    def _get_client(self):
        if self._client is None:
            import redis.asyncio as aioredis

            self._client = aioredis.from_url(self.url)
        return self._client

    async def _send(self, channel, event):
        client = self._get_client()
        topic = status_topic(channel)
        await client.publish(topic, json.dumps(event_payload(channel, event)))
        logger.debug("published %s to %s", event.status, topic)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def get_default_publisher() -> StatusPublisher:
    """Redis when REDIS_URL is configured, otherwise an in-memory recorder."""
    url = redis_url()
    if url:
        return RedisStatusPublisher(url)
    logger.info("REDIS_URL not set; node status events stay in-process")
    return InMemoryStatusPublisher()
