"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from fan_moments.adapters.asset_fetcher import HttpxAssetFetcher
from fan_moments.adapters.fal_generation_client import FalGenerationClient
from fan_moments.adapters.supabase_object_store import SupabaseObjectStore
from fan_moments.config import Settings
from fan_moments.services.admin import AdminService
from fan_moments.services.generation import GenerationGateway
from fan_moments.services.pipeline import PipelineOrchestrator
from fan_moments.services.progress import ProgressBroadcaster
from fan_moments.services.sessions import SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_store: SessionStore
    pipeline: PipelineOrchestrator
    progress_broadcaster: ProgressBroadcaster
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    object_store = SupabaseObjectStore(
        client=supabase_client, bucket=resolved_settings.supabase_bucket
    )
    fetcher = HttpxAssetFetcher.create()
    generation_client = FalGenerationClient.create(
        api_key=resolved_settings.fal_key,
        timeout=resolved_settings.fal_request_timeout,
    )
    session_store = SessionStore(object_store=object_store, fetcher=fetcher)
    gateway = GenerationGateway(
        client=generation_client,
        image_model=resolved_settings.image_model,
        video_model=resolved_settings.video_model,
    )
    pipeline = PipelineOrchestrator(
        session_store=session_store,
        object_store=object_store,
        fetcher=fetcher,
        gateway=gateway,
        image_retry_attempts=resolved_settings.image_retry_attempts,
        image_retry_delay=resolved_settings.image_retry_delay,
        video_retry_attempts=resolved_settings.video_retry_attempts,
        video_retry_delay=resolved_settings.video_retry_delay,
    )
    progress_broadcaster = ProgressBroadcaster(
        session_store=session_store,
        poll_interval=resolved_settings.progress_poll_interval,
        max_wait=resolved_settings.progress_max_wait,
    )
    admin_service = AdminService(object_store=object_store, fetcher=fetcher)

    async def close_resources() -> None:
        await fetcher.close()

    return AppContainer(
        settings=resolved_settings,
        session_store=session_store,
        pipeline=pipeline,
        progress_broadcaster=progress_broadcaster,
        admin_service=admin_service,
        close_resources=close_resources,
    )
