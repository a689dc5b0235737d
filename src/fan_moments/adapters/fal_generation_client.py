"""fal.ai generation client built on the official ``fal_client`` SDK."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass

import fal_client

from fan_moments.services.generation import (
    GenerationClient,
    ProgressCallback,
    QueueUpdate,
)

logger = logging.getLogger(__name__)


@dataclass
class FalGenerationClient(GenerationClient):
    """Generation client that enqueues requests and follows their status events."""

    client: fal_client.AsyncClient
    timeout: float = 300.0

    @classmethod
    def create(cls, api_key: str, timeout: float = 300.0) -> FalGenerationClient:
        """Create a client authenticated with a fal API key."""
        return cls(client=fal_client.AsyncClient(key=api_key), timeout=timeout)

    async def subscribe(
        self,
        application: str,
        arguments: dict[str, object],
        on_queue_update: ProgressCallback | None = None,
    ) -> dict[str, object]:
        """Enqueue a request, relay status events and return its result."""
        async with asyncio.timeout(self.timeout):
            handle = await self.client.submit(application, arguments=arguments)
            logger.info("Enqueued %s request %s", application, handle.request_id)
            async for event in handle.iter_events(with_logs=True):
                if on_queue_update is None:
                    continue
                result = on_queue_update(queue_update_from_status(event))
                if inspect.isawaitable(result):
                    await result
            return await handle.get()


def queue_update_from_status(status: fal_client.Status) -> QueueUpdate:
    """Translate a fal status event into a queue update."""
    if isinstance(status, fal_client.Queued):
        return QueueUpdate(status="IN_QUEUE", queue_position=status.position)
    logs = [
        str(entry.get("message", "")) if isinstance(entry, dict) else str(entry)
        for entry in (getattr(status, "logs", None) or [])
    ]
    if isinstance(status, fal_client.InProgress):
        return QueueUpdate(status="IN_PROGRESS", logs=logs)
    return QueueUpdate(status="COMPLETED", logs=logs)
