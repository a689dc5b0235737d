"""Domain models for generation sessions."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SessionStatus = Literal[
    "pending",
    "uploading_selfie",
    "generating_pose1",
    "generating_pose2",
    "generating_video",
    "complete",
    "error",
]
AssetKind = Literal["selfie", "pose1", "pose2", "video"]

ASSET_KINDS: tuple[AssetKind, ...] = ("selfie", "pose1", "pose2", "video")
TERMINAL_STATUSES: frozenset[str] = frozenset({"complete", "error"})


class SessionAssets(BaseModel):
    """Public URLs of the assets produced so far."""

    model_config = ConfigDict(extra="forbid")

    selfie: str | None = None
    pose1: str | None = None
    pose2: str | None = None
    video: str | None = None


class SessionRecord(BaseModel):
    """Persisted state of one pipeline run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    user_id: str | None = None
    team_id: str
    player_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    status: SessionStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    assets: SessionAssets = Field(default_factory=SessionAssets)
    error: str | None = None
    last_successful_step: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_json_dict(self) -> dict[str, object]:
        """Return the camelCase JSON form used for storage and responses."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
