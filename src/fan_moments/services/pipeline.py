"""Pipeline stages: selfie upload, two composite poses and the final video."""

import asyncio
import base64
import binascii
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from fan_moments.domain.poses import get_pose_by_id
from fan_moments.domain.sessions import ASSET_KINDS, SessionRecord
from fan_moments.services.generation import GenerationGateway, QueueUpdate
from fan_moments.services.prompts import (
    VIDEO_NEGATIVE_PROMPT,
    build_pose_prompt,
    build_video_prompt,
)
from fan_moments.services.retry import with_retry
from fan_moments.services.sessions import SessionStore, session_id_from_content
from fan_moments.services.storage import AssetFetcher, ObjectStore, asset_path

logger = logging.getLogger(__name__)


class PipelineInputError(ValueError):
    """Raised for requests rejected before any external call."""


class SessionNotFoundError(LookupError):
    """Raised when a stage needs a session that does not exist."""


class StageFailedError(RuntimeError):
    """Raised when a pipeline stage fails after validation."""

    def __init__(self, message: str, detail: str) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


@dataclass(frozen=True)
class AssetUpload:
    """Result of an asset upload."""

    url: str
    asset_type: str
    session_id: str
    is_new_session: bool


@dataclass(frozen=True)
class _Stage:
    asset_kind: str
    status: str
    entry_progress: int
    done_progress: int
    previous_step: str


_STAGES = {
    "pose1": _Stage("pose1", "generating_pose1", 20, 35, "selfie"),
    "pose2": _Stage("pose2", "generating_pose2", 50, 65, "pose1"),
    "video": _Stage("video", "generating_video", 70, 100, "pose2"),
}
_VIDEO_RUNNING_PROGRESS = 85


def decode_data_url(data_url: str) -> tuple[bytes, str]:
    """Split a base64 data URL into its bytes and content type."""
    header, separator, payload = data_url.partition(",")
    if not separator or not header.startswith("data:"):
        raise PipelineInputError("dataUrl must be a base64 data URL")
    content_type = header[len("data:") :].split(";", 1)[0] or "image/png"
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise PipelineInputError("dataUrl payload is not valid base64") from exc
    if not data:
        raise PipelineInputError("dataUrl payload is empty")
    return data, content_type


@dataclass
class PipelineOrchestrator:
    """Drives a session through its stages, one call per stage."""

    session_store: SessionStore
    object_store: ObjectStore
    fetcher: AssetFetcher
    gateway: GenerationGateway
    image_retry_attempts: int = 3
    image_retry_delay: float = 2.0
    video_retry_attempts: int = 3
    video_retry_delay: float = 5.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def create_session(
        self,
        team_id: str | None,
        player_ids: Sequence[str] | None,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> SessionRecord:
        """Create a session, or return the existing one with the same id."""
        if not team_id or player_ids is None:
            raise PipelineInputError("Missing required fields: teamId, playerIds")
        return await self.session_store.create(
            team_id, list(player_ids), user_id=user_id, session_id=session_id
        )

    async def upload_asset(  # noqa: PLR0913
        self,
        asset_type: str | None,
        data_url: str | None,
        session_id: str | None = None,
        team_id: str | None = None,
        player_ids: Sequence[str] | None = None,
    ) -> AssetUpload:
        """Store an uploaded asset; a selfie also creates its session."""
        if not asset_type or not data_url:
            raise PipelineInputError("Missing required fields: assetType, dataUrl")
        if asset_type not in ASSET_KINDS:
            raise PipelineInputError(
                "Invalid assetType. Must be selfie, pose1, pose2, or video"
            )
        data, content_type = decode_data_url(data_url)

        if asset_type == "selfie":
            return await self._upload_selfie(
                data, content_type, session_id, team_id, player_ids
            )

        if not session_id:
            raise PipelineInputError("sessionId required for non-selfie uploads")
        if await self.session_store.get(session_id) is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        try:
            url = self.object_store.put(
                asset_path(session_id, asset_type, content_type), data, content_type
            )
            await self.session_store.update(session_id, {"assets": {asset_type: url}})
        except Exception as exc:
            logger.exception(
                "Failed to upload %s for session %s", asset_type, session_id
            )
            raise StageFailedError("Failed to upload asset", str(exc)) from exc
        return AssetUpload(
            url=url, asset_type=asset_type, session_id=session_id, is_new_session=False
        )

    async def generate_pose(  # noqa: PLR0913
        self,
        session_id: str | None,
        selfie_url: str | None,
        team_name: str | None,
        pose_id: str | None,
        player_names: Sequence[str] = (),
        is_initial_pose: bool = True,
    ) -> str:
        """Generate pose1 (initial) or pose2 (iconic) and return its URL."""
        if not session_id or not selfie_url or not team_name or not pose_id:
            raise PipelineInputError("Missing required fields")
        pose = get_pose_by_id(pose_id)
        if pose is None:
            raise PipelineInputError(f"Invalid pose ID: {pose_id}")

        stage = _STAGES["pose1" if is_initial_pose else "pose2"]
        prompt = build_pose_prompt(pose, team_name, player_names, is_initial_pose)
        logger.info(
            "Generating %s for session %s: %s", stage.asset_kind, session_id, prompt
        )
        job_input: dict[str, object] = {
            "prompt": prompt,
            "image_url": selfie_url,
            "image_size": {"width": 1024, "height": 576},
            "num_inference_steps": 28,
            "guidance_scale": 3.5,
            "num_images": 1,
            "enable_safety_checker": True,
        }

        def log_progress(update: QueueUpdate) -> None:
            logger.info("Generation progress for %s: %s", session_id, update.status)

        try:
            await self.session_store.update(
                session_id,
                {"status": stage.status, "progress": stage.entry_progress},
            )
            image_url = await with_retry(
                lambda: self.gateway.submit("composite_image", job_input, log_progress),
                max_attempts=self.image_retry_attempts,
                initial_delay=self.image_retry_delay,
                sleep=self.sleep,
            )
            blob_url = await self._store_generated_asset(
                session_id, stage.asset_kind, image_url, "image/png"
            )
            await self.session_store.update(
                session_id,
                {
                    "assets": {stage.asset_kind: blob_url},
                    "progress": stage.done_progress,
                },
            )
        except Exception as exc:
            await self._report_failure(session_id, exc, stage.previous_step)
            raise StageFailedError(
                "Failed to generate composite image", str(exc)
            ) from exc
        return blob_url

    async def generate_video(  # noqa: PLR0913
        self,
        session_id: str | None,
        pose1_url: str | None,
        team_name: str | None,
        pose2_url: str | None = None,
        initial_pose_id: str | None = None,
        iconic_pose_id: str | None = None,
    ) -> str:
        """Generate the transition video from pose1 and complete the session."""
        if not session_id or not pose1_url or not team_name:
            raise PipelineInputError("Missing required fields")
        initial_pose = get_pose_by_id(initial_pose_id) if initial_pose_id else None
        iconic_pose = get_pose_by_id(iconic_pose_id) if iconic_pose_id else None
        if initial_pose_id and initial_pose is None:
            raise PipelineInputError(f"Invalid pose ID: {initial_pose_id}")
        if iconic_pose_id and iconic_pose is None:
            raise PipelineInputError(f"Invalid pose ID: {iconic_pose_id}")

        stage = _STAGES["video"]
        prompt = build_video_prompt(team_name, initial_pose, iconic_pose)
        logger.info("Generating video for session %s: %s", session_id, prompt)
        # The image-to-video model takes a single reference frame: pose1.
        job_input: dict[str, object] = {
            "prompt": prompt,
            "image_url": pose1_url,
            "duration": "5",
            "negative_prompt": VIDEO_NEGATIVE_PROMPT,
        }
        running_reported = False

        async def report_running(update: QueueUpdate) -> None:
            nonlocal running_reported
            logger.info(
                "Video generation progress for %s: %s", session_id, update.status
            )
            if update.status == "IN_PROGRESS" and not running_reported:
                running_reported = True
                await self.session_store.update(
                    session_id, {"progress": _VIDEO_RUNNING_PROGRESS}
                )

        try:
            await self.session_store.update(
                session_id,
                {"status": stage.status, "progress": stage.entry_progress},
            )
            video_url = await with_retry(
                lambda: self.gateway.submit(
                    "reference_video", job_input, report_running
                ),
                max_attempts=self.video_retry_attempts,
                initial_delay=self.video_retry_delay,
                sleep=self.sleep,
            )
            blob_url = await self._store_generated_asset(
                session_id, stage.asset_kind, video_url, "video/mp4"
            )
            await self.session_store.update(
                session_id,
                {
                    "status": "complete",
                    "progress": stage.done_progress,
                    "assets": {stage.asset_kind: blob_url},
                },
            )
        except Exception as exc:
            await self._report_failure(session_id, exc, stage.previous_step)
            raise StageFailedError("Failed to generate video", str(exc)) from exc
        return blob_url

    async def _upload_selfie(
        self,
        data: bytes,
        content_type: str,
        session_id: str | None,
        team_id: str | None,
        player_ids: Sequence[str] | None,
    ) -> AssetUpload:
        resolved_id = session_id or session_id_from_content(data)
        changes: dict[str, object] = {"status": "uploading_selfie", "progress": 5}
        if team_id:
            changes["team_id"] = team_id
        if player_ids is not None:
            changes["player_ids"] = list(player_ids)
        try:
            await self.session_store.create(
                team_id or "unknown", list(player_ids or []), session_id=resolved_id
            )
            await self.session_store.update(resolved_id, changes)
            url = self.object_store.put(
                asset_path(resolved_id, "selfie", content_type), data, content_type
            )
            await self.session_store.update(
                resolved_id,
                {
                    "status": "uploading_selfie",
                    "progress": 10,
                    "assets": {"selfie": url},
                },
            )
        except Exception as exc:
            await self._report_failure(resolved_id, exc, None)
            raise StageFailedError("Failed to upload asset", str(exc)) from exc
        return AssetUpload(
            url=url, asset_type="selfie", session_id=resolved_id, is_new_session=True
        )

    async def _store_generated_asset(
        self, session_id: str, asset_kind: str, remote_url: str, content_type: str
    ) -> str:
        fetched = await self.fetcher.fetch(remote_url)
        if not fetched.ok:
            raise RuntimeError(
                f"Failed to download generated {asset_kind}: HTTP {fetched.status_code}"
            )
        return self.object_store.put(
            asset_path(session_id, asset_kind, content_type),
            fetched.content,
            content_type,
        )

    async def _report_failure(
        self, session_id: str, error: Exception, last_successful_step: str | None
    ) -> None:
        logger.error("Stage failed for session %s: %s", session_id, error)
        changes: dict[str, object] = {
            "status": "error",
            "error": str(error) or type(error).__name__,
            "last_successful_step": last_successful_step,
        }
        try:
            await self.session_store.update(session_id, changes)
        except Exception:
            logger.exception("Failed to update session %s with error", session_id)
