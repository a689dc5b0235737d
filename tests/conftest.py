"""Shared test fixtures."""

import inspect
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from fan_moments.config import Settings
from fan_moments.containers import AppContainer
from fan_moments.domain.storage import FetchedAsset, StoredObject
from fan_moments.services.admin import AdminService
from fan_moments.services.generation import (
    GenerationClient,
    GenerationGateway,
    ProgressCallback,
    QueueUpdate,
)
from fan_moments.services.pipeline import PipelineOrchestrator
from fan_moments.services.progress import ProgressBroadcaster
from fan_moments.services.sessions import SessionStore
from fan_moments.services.storage import AssetFetcher, ObjectStore

IMAGE_MODEL = "fal-ai/flux/dev"
VIDEO_MODEL = "fal-ai/kling-video/v1/standard/image-to-video"
GENERATED_IMAGE_URL = "https://fal.test/files/image.png"
GENERATED_VIDEO_URL = "https://fal.test/files/video.mp4"


@dataclass
class FakeClock:
    """Deterministic wall clock advanced by hand."""

    now: datetime = field(default_factory=lambda: datetime(2026, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@dataclass
class InMemoryObjectStore(ObjectStore):
    """In-memory object store for tests."""

    base_url: str = "https://blob.test"
    objects: dict[str, tuple[bytes, str, datetime]] = field(default_factory=dict)
    list_calls: list[str] = field(default_factory=list)
    fail_puts: bool = False

    def put(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_puts:
            raise RuntimeError("object store unavailable")
        self.objects[path] = (data, content_type, datetime.now(tz=UTC))
        return self.url_for(path)

    def get(self, path: str) -> bytes | None:
        stored = self.objects.get(path)
        return stored[0] if stored else None

    def list(self, prefix: str) -> list[StoredObject]:
        self.list_calls.append(prefix)
        return [
            StoredObject(path=path, url=self.url_for(path), uploaded_at=uploaded_at)
            for path, (_, _, uploaded_at) in sorted(self.objects.items())
            if path.startswith(prefix)
        ]

    def delete(self, url: str) -> None:
        self.objects.pop(url.removeprefix(f"{self.base_url}/"), None)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def json_at(self, path: str) -> bytes:
        return self.objects[path][0]


@dataclass
class FakeAssetFetcher(AssetFetcher):
    """Serves URLs from the in-memory store and a table of remote files."""

    object_store: InMemoryObjectStore
    remote: dict[str, tuple[bytes, str]] = field(
        default_factory=lambda: {
            GENERATED_IMAGE_URL: (b"generated-png", "image/png"),
            GENERATED_VIDEO_URL: (b"generated-mp4", "video/mp4"),
        }
    )
    overrides: dict[str, list[FetchedAsset]] = field(default_factory=dict)
    fetched: list[str] = field(default_factory=list)

    async def fetch(self, url: str) -> FetchedAsset:
        self.fetched.append(url)
        queued = self.overrides.get(url)
        if queued:
            return queued.pop(0)
        if url in self.remote:
            content, content_type = self.remote[url]
            return FetchedAsset(200, content_type, content)
        path = url.removeprefix(f"{self.object_store.base_url}/")
        stored = self.object_store.objects.get(path)
        if stored is None:
            return FetchedAsset(404, "text/plain", b"Not Found")
        return FetchedAsset(200, stored[1], stored[0])


@dataclass
class FakeGenerationClient(GenerationClient):
    """Generation queue that replays scripted outcomes per application.

    The last scripted outcome for an application repeats forever.
    """

    outcomes: dict[str, list[object]] = field(
        default_factory=lambda: {
            IMAGE_MODEL: [{"images": [{"url": GENERATED_IMAGE_URL}]}],
            VIDEO_MODEL: [{"video": {"url": GENERATED_VIDEO_URL}}],
        }
    )
    statuses: tuple[str, ...] = ("IN_QUEUE", "IN_PROGRESS", "COMPLETED")
    calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    async def subscribe(
        self,
        application: str,
        arguments: dict[str, object],
        on_queue_update: ProgressCallback | None = None,
    ) -> dict[str, object]:
        self.calls.append((application, arguments))
        if on_queue_update is not None:
            for status in self.statuses:
                result = on_queue_update(QueueUpdate(status=status))
                if inspect.isawaitable(result):
                    await result
        scripted = self.outcomes[application]
        outcome = scripted.pop(0) if len(scripted) > 1 else scripted[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome  # type: ignore[return-value]

    def calls_for(self, application: str) -> list[dict[str, object]]:
        return [arguments for app, arguments in self.calls if app == application]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZSJ9.c2ln",
        fal_key="fal-key",
        admin_token="admin-token",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def fetcher(object_store: InMemoryObjectStore) -> FakeAssetFetcher:
    return FakeAssetFetcher(object_store=object_store)


@pytest.fixture
def session_store(
    object_store: InMemoryObjectStore, fetcher: FakeAssetFetcher, clock: FakeClock
) -> SessionStore:
    return SessionStore(object_store=object_store, fetcher=fetcher, clock=clock)


@pytest.fixture
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def pipeline(
    session_store: SessionStore,
    object_store: InMemoryObjectStore,
    fetcher: FakeAssetFetcher,
    generation_client: FakeGenerationClient,
    sleep: RecordingSleep,
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        session_store=session_store,
        object_store=object_store,
        fetcher=fetcher,
        gateway=GenerationGateway(client=generation_client),
        sleep=sleep,
    )


@pytest.fixture
def container(
    settings: Settings,
    session_store: SessionStore,
    object_store: InMemoryObjectStore,
    fetcher: FakeAssetFetcher,
    pipeline: PipelineOrchestrator,
    sleep: RecordingSleep,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_store=session_store,
        pipeline=pipeline,
        progress_broadcaster=ProgressBroadcaster(
            session_store=session_store, poll_interval=0.0, sleep=sleep
        ),
        admin_service=AdminService(object_store=object_store, fetcher=fetcher),
        close_resources=close_resources,
    )
