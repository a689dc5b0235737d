"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from fan_moments.api.admin import router as admin_router
from fan_moments.api.models import (
    CompositeImageRequest,
    CreateSessionRequest,
    UploadAssetRequest,
    VideoRequest,
)
from fan_moments.app_logging import configure_logging
from fan_moments.containers import AppContainer
from fan_moments.services.pipeline import (
    PipelineInputError,
    SessionNotFoundError,
    StageFailedError,
)
from fan_moments.services.progress import format_sse

_SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(PipelineInputError)
    async def input_error(_request: Request, exc: PipelineInputError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SessionNotFoundError)
    async def not_found(_request: Request, exc: SessionNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(StageFailedError)
    async def stage_failed(_request: Request, exc: StageFailedError) -> JSONResponse:
        return JSONResponse(
            status_code=500, content={"error": exc.message, "details": exc.detail}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/storage/session")
    async def create_session(
        body: CreateSessionRequest, request: Request
    ) -> dict[str, str]:
        """Create a session, or return the existing one for the same id."""
        state_container: AppContainer = request.app.state.container
        session = await state_container.pipeline.create_session(
            body.team_id,
            body.player_ids,
            user_id=body.user_id,
            session_id=body.session_id,
        )
        return {
            "sessionId": session.session_id,
            "createdAt": session.to_json_dict()["createdAt"],
        }

    @app.get("/api/storage/session/{session_id}", response_model=None)
    async def get_session(
        session_id: str, request: Request
    ) -> dict[str, object] | JSONResponse:
        """Return the full session record."""
        state_container: AppContainer = request.app.state.container
        session = await state_container.session_store.get(session_id)
        if session is None:
            return JSONResponse(status_code=404, content={"error": "Session not found"})
        return session.to_json_dict()

    @app.post("/api/storage/upload")
    async def upload_asset(
        body: UploadAssetRequest, request: Request
    ) -> dict[str, object]:
        """Upload a selfie or generated asset."""
        state_container: AppContainer = request.app.state.container
        upload = await state_container.pipeline.upload_asset(
            body.asset_type,
            body.data_url,
            session_id=body.session_id,
            team_id=body.team_id,
            player_ids=body.player_ids,
        )
        return {
            "url": upload.url,
            "assetType": upload.asset_type,
            "sessionId": upload.session_id,
            "isNewSession": upload.is_new_session,
        }

    @app.post("/api/generate-composite-image")
    async def generate_composite_image(
        body: CompositeImageRequest, request: Request
    ) -> dict[str, object]:
        """Generate pose1 or pose2 for a session."""
        state_container: AppContainer = request.app.state.container
        image_url = await state_container.pipeline.generate_pose(
            body.session_id,
            body.selfie_url,
            body.team_name,
            body.pose_id,
            player_names=body.player_names or [],
            is_initial_pose=body.is_initial_pose,
        )
        return {
            "success": True,
            "imageUrl": image_url,
            "assetType": "pose1" if body.is_initial_pose else "pose2",
            "poseId": body.pose_id,
        }

    @app.post("/api/generate-video")
    async def generate_video(body: VideoRequest, request: Request) -> dict[str, object]:
        """Generate the final video and complete the session."""
        state_container: AppContainer = request.app.state.container
        video_url = await state_container.pipeline.generate_video(
            body.session_id,
            body.pose1_url,
            body.team_name,
            pose2_url=body.pose2_url,
            initial_pose_id=body.initial_pose_id,
            iconic_pose_id=body.iconic_pose_id,
        )
        return {"success": True, "videoUrl": video_url}

    @app.get("/api/progress/{session_id}")
    async def progress_stream(session_id: str, request: Request) -> StreamingResponse:
        """Stream session progress as server-sent events."""
        state_container: AppContainer = request.app.state.container
        events = state_container.progress_broadcaster.stream(
            session_id, is_disconnected=request.is_disconnected
        )

        async def frames() -> AsyncIterator[str]:
            try:
                async for event in events:
                    yield format_sse(event)
            finally:
                await events.aclose()
                logger.info("Progress stream for session %s closed", session_id)

        return StreamingResponse(
            frames(), media_type="text/event-stream", headers=_SSE_HEADERS
        )

    return app
