"""Progress stream: polls the session store and emits typed events."""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel

from fan_moments.services.sessions import SessionStore

logger = logging.getLogger(__name__)

EventType = Literal["connected", "progress", "done", "error"]


class ProgressEvent(BaseModel):
    """One frame of the progress stream."""

    type: EventType
    status: str | None = None
    progress: int | None = None
    assets: dict[str, str] | None = None
    error: str | None = None
    message: str | None = None
    session: dict[str, object] | None = None


def format_sse(event: ProgressEvent) -> str:
    """Render an event as a server-sent events frame."""
    payload = event.model_dump(exclude_none=True)
    return f"data: {json.dumps(payload)}\n\n"


def _waiting(message: str) -> ProgressEvent:
    return ProgressEvent(type="progress", status="waiting", progress=0, message=message)


@dataclass
class ProgressBroadcaster:
    """Streams the state of one session until it reaches a terminal status."""

    session_store: SessionStore
    poll_interval: float = 1.0
    max_wait: float = 60.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic

    async def stream(
        self,
        session_id: str,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Yield progress events for a session.

        The stream ends after a ``done`` event for a complete or errored
        session, after an ``error`` event when the session never appears
        within ``max_wait`` seconds, or as soon as the client disconnects.
        """
        yield ProgressEvent(type="connected")
        started = self.clock()
        while True:
            await self.sleep(self.poll_interval)
            if is_disconnected is not None and await is_disconnected():
                logger.info("Progress client for session %s disconnected", session_id)
                return

            try:
                session = await self.session_store.get(session_id)
            except Exception:
                logger.exception("Error polling session %s", session_id)
                yield _waiting("Reconnecting...")
                continue

            if session is None:
                yield _waiting("Waiting for session to initialize...")
                if self.clock() - started > self.max_wait:
                    yield ProgressEvent(
                        type="error", error="Session not found after timeout"
                    )
                    return
                continue

            yield ProgressEvent(
                type="progress",
                status=session.status,
                progress=session.progress,
                assets=session.assets.model_dump(exclude_none=True),
                error=session.error,
            )
            if session.is_terminal:
                yield ProgressEvent(type="done", session=session.to_json_dict())
                return
