"""Uniform submit-and-wait contract over external generation jobs."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

JobKind = Literal["composite_image", "reference_video"]


@dataclass(frozen=True)
class QueueUpdate:
    """Intermediate status reported by a queued generation request."""

    status: str
    queue_position: int | None = None
    logs: list[str] = field(default_factory=list)


ProgressCallback = Callable[[QueueUpdate], Awaitable[None] | None]


class EmptyResultError(RuntimeError):
    """Raised when a generation job succeeds without producing output."""


class GenerationClient(Protocol):
    """Interface for an asynchronous generation queue."""

    async def subscribe(
        self,
        application: str,
        arguments: dict[str, object],
        on_queue_update: ProgressCallback | None = None,
    ) -> dict[str, object]:
        """Submit a request, wait for it to finish and return its payload."""


_IMAGE_DEFAULTS: dict[str, object] = {"num_images": 1, "sync_mode": False}
_VIDEO_DEFAULTS: dict[str, object] = {"duration": "5"}


@dataclass
class GenerationGateway:
    """Submits image and video jobs and extracts the result URL."""

    client: GenerationClient
    image_model: str = "fal-ai/flux/dev"
    video_model: str = "fal-ai/kling-video/v1/standard/image-to-video"

    async def submit(
        self,
        kind: JobKind,
        job_input: dict[str, object],
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Run a generation job and return the URL of its output."""
        if kind == "composite_image":
            application, defaults = self.image_model, _IMAGE_DEFAULTS
        elif kind == "reference_video":
            application, defaults = self.video_model, _VIDEO_DEFAULTS
        else:
            raise ValueError(f"Unsupported job kind: {kind}")

        arguments = {**defaults, **job_input}
        if kind == "composite_image":
            arguments["sync_mode"] = False

        async def forward(update: QueueUpdate) -> None:
            if on_progress is None:
                return
            try:
                result = on_progress(update)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Progress callback failed for %s", application)

        logger.info("Submitting %s job to %s", kind, application)
        payload = await self.client.subscribe(application, arguments, forward)
        if kind == "composite_image":
            return _first_image_url(payload)
        return _video_url(payload)


def _first_image_url(payload: dict[str, object]) -> str:
    images = payload.get("images")
    if not isinstance(images, list) or not images:
        raise EmptyResultError("No images generated")
    first = images[0]
    url = first.get("url") if isinstance(first, dict) else None
    if not url:
        raise EmptyResultError("No images generated")
    return str(url)


def _video_url(payload: dict[str, object]) -> str:
    video = payload.get("video")
    url = video.get("url") if isinstance(video, dict) else None
    if not url:
        raise EmptyResultError("No video generated")
    return str(url)
