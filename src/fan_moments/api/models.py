"""Request payloads for the pipeline API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateSessionRequest(_CamelModel):
    """Body of a session-create call."""

    team_id: str | None = None
    player_ids: list[str] | None = None
    user_id: str | None = None
    session_id: str | None = None


class UploadAssetRequest(_CamelModel):
    """Body of an asset upload."""

    asset_type: str | None = None
    data_url: str | None = None
    session_id: str | None = None
    team_id: str | None = None
    player_ids: list[str] | None = None


class CompositeImageRequest(_CamelModel):
    """Body of a pose generation call."""

    session_id: str | None = None
    selfie_url: str | None = None
    team_name: str | None = None
    pose_id: str | None = None
    player_names: list[str] | None = None
    # Accepted from clients but unused: the model conditions on the selfie only.
    player_image_urls: list[str] | None = None
    is_initial_pose: bool = True


class VideoRequest(_CamelModel):
    """Body of a video generation call."""

    session_id: str | None = None
    pose1_url: str | None = None
    pose2_url: str | None = None
    team_name: str | None = None
    initial_pose_id: str | None = None
    iconic_pose_id: str | None = None
