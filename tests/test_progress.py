"""Tests for the progress broadcaster."""

import asyncio
import json
from dataclasses import dataclass, field

from fan_moments.domain.sessions import SessionRecord
from fan_moments.services.progress import (
    ProgressBroadcaster,
    ProgressEvent,
    format_sse,
)
from fan_moments.services.sessions import SessionStore
from tests.conftest import RecordingSleep


@dataclass
class _TickingClock:
    """Monotonic clock that advances by each requested sleep."""

    now: float = 0.0
    delays: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        self.now += delay


@dataclass
class _CountingStore:
    """Wraps a session store and counts reads."""

    inner: SessionStore
    reads: int = 0
    failures: int = 0

    async def get(self, session_id: str) -> SessionRecord | None:
        self.reads += 1
        if self.failures:
            self.failures -= 1
            raise ConnectionError("blob store unreachable")
        return await self.inner.get(session_id)


def _collect(broadcaster: ProgressBroadcaster, session_id: str, **kwargs) -> list:
    async def run() -> list[ProgressEvent]:
        return [event async for event in broadcaster.stream(session_id, **kwargs)]

    return asyncio.run(run())


def test_complete_session_streams_connected_progress_done(
    session_store: SessionStore, sleep: RecordingSleep
) -> None:
    asyncio.run(session_store.create("patriots", ["p1"], session_id="abc"))
    asyncio.run(
        session_store.update(
            "abc",
            {
                "status": "complete",
                "progress": 100,
                "assets": {"selfie": "s", "pose1": "a", "pose2": "b", "video": "v"},
            },
        )
    )
    store = _CountingStore(inner=session_store)
    broadcaster = ProgressBroadcaster(
        session_store=store,  # type: ignore[arg-type]
        sleep=sleep,
    )

    events = _collect(broadcaster, "abc")

    assert [event.type for event in events] == ["connected", "progress", "done"]
    assert events[1].status == "complete"
    assert events[1].progress == 100
    assert events[1].assets == {"selfie": "s", "pose1": "a", "pose2": "b", "video": "v"}
    assert events[2].session is not None
    assert events[2].session["sessionId"] == "abc"
    assert store.reads == 1
    assert sleep.delays == [1.0]


def test_errored_session_ends_stream_with_error_text(
    session_store: SessionStore, sleep: RecordingSleep
) -> None:
    asyncio.run(
        session_store.update(
            "abc",
            {"status": "error", "error": "timeout", "last_successful_step": "pose1"},
        )
    )
    broadcaster = ProgressBroadcaster(session_store=session_store, sleep=sleep)

    events = _collect(broadcaster, "abc")

    assert [event.type for event in events] == ["connected", "progress", "done"]
    assert events[1].error == "timeout"
    assert events[2].session is not None
    assert events[2].session["lastSuccessfulStep"] == "pose1"


def test_missing_session_times_out_after_max_wait(
    session_store: SessionStore,
) -> None:
    clock = _TickingClock()
    broadcaster = ProgressBroadcaster(
        session_store=session_store, sleep=clock.sleep, clock=clock
    )

    events = _collect(broadcaster, "never-created")

    waiting = [event for event in events if event.status == "waiting"]
    assert events[0].type == "connected"
    assert len(waiting) == 61
    assert waiting[0].message == "Waiting for session to initialize..."
    assert waiting[0].progress == 0
    assert events[-1].type == "error"
    assert events[-1].error == "Session not found after timeout"


def test_stream_follows_session_until_terminal(
    session_store: SessionStore,
) -> None:
    clock = _TickingClock()
    steps = iter(
        [
            {"status": "generating_pose1", "progress": 20},
            {"progress": 35, "assets": {"pose1": "p1"}},
            {"status": "complete", "progress": 100},
        ]
    )

    async def sleep_then_advance(delay: float) -> None:
        await clock.sleep(delay)
        changes = next(steps, None)
        if changes is not None:
            await session_store.update("abc", changes)

    asyncio.run(session_store.create("patriots", ["p1"], session_id="abc"))
    broadcaster = ProgressBroadcaster(
        session_store=session_store, sleep=sleep_then_advance, clock=clock
    )

    events = _collect(broadcaster, "abc")

    progress = [(e.status, e.progress) for e in events if e.type == "progress"]
    assert progress == [
        ("generating_pose1", 20),
        ("generating_pose1", 35),
        ("complete", 100),
    ]
    assert events[-1].type == "done"


def test_read_failure_emits_reconnecting_and_continues(
    session_store: SessionStore, sleep: RecordingSleep
) -> None:
    asyncio.run(session_store.update("abc", {"status": "complete", "progress": 100}))
    store = _CountingStore(inner=session_store, failures=2)
    broadcaster = ProgressBroadcaster(
        session_store=store,  # type: ignore[arg-type]
        sleep=sleep,
    )

    events = _collect(broadcaster, "abc")

    messages = [event.message for event in events if event.message]
    assert messages == ["Reconnecting...", "Reconnecting..."]
    assert events[-1].type == "done"
    assert store.reads == 3


def test_disconnect_stops_polling(
    session_store: SessionStore, sleep: RecordingSleep
) -> None:
    store = _CountingStore(inner=session_store)
    broadcaster = ProgressBroadcaster(
        session_store=store,  # type: ignore[arg-type]
        sleep=sleep,
    )
    polls = iter([False, False, True])

    async def is_disconnected() -> bool:
        return next(polls)

    events = _collect(broadcaster, "abc", is_disconnected=is_disconnected)

    assert [event.type for event in events] == ["connected", "progress", "progress"]
    assert store.reads == 2


def test_format_sse_frame() -> None:
    frame = format_sse(ProgressEvent(type="progress", status="pending", progress=0))

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame.removeprefix("data: ")) == {
        "type": "progress",
        "status": "pending",
        "progress": 0,
    }
    connected = format_sse(ProgressEvent(type="connected"))
    assert connected == 'data: {"type": "connected"}\n\n'
