"""Administrative listing and retention of stored sessions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from fan_moments.domain.sessions import SessionRecord
from fan_moments.services.storage import AssetFetcher, ObjectStore

logger = logging.getLogger(__name__)

_SESSIONS_PREFIX = "sessions/"


@dataclass(frozen=True)
class ClearResult:
    """Outcome of a bulk delete."""

    deleted_count: int
    errors: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AdminService:
    """Operations over every session in the store."""

    object_store: ObjectStore
    fetcher: AssetFetcher
    clock: Callable[[], datetime] = _utcnow

    async def list_sessions(self) -> list[dict[str, object]]:
        """Return id, creation time and status of every readable session."""
        sessions: list[dict[str, object]] = []
        for obj in self.object_store.list(_SESSIONS_PREFIX):
            if not obj.path.endswith("metadata.json"):
                continue
            fetched = await self.fetcher.fetch(obj.url)
            if not fetched.ok or not fetched.is_json:
                logger.warning("Failed to read metadata from %s", obj.path)
                continue
            try:
                record = SessionRecord.model_validate_json(fetched.content)
            except ValidationError:
                logger.warning("Skipping invalid metadata at %s", obj.path)
                continue
            sessions.append(
                {
                    "session_id": record.session_id,
                    "created_at": record.created_at.isoformat(),
                    "status": record.status,
                }
            )
        return sessions

    def cleanup_old_sessions(self, max_age: timedelta) -> int:
        """Delete session objects uploaded before ``now - max_age``."""
        cutoff = self.clock() - max_age
        deleted = 0
        for obj in self.object_store.list(_SESSIONS_PREFIX):
            if obj.uploaded_at is not None and obj.uploaded_at < cutoff:
                self.object_store.delete(obj.url)
                deleted += 1
        logger.info("Deleted %d objects older than %s", deleted, max_age)
        return deleted

    def clear_all_sessions(self) -> ClearResult:
        """Delete every stored session object, collecting per-object failures."""
        objects = self.object_store.list(_SESSIONS_PREFIX)
        logger.info("Found %d objects to delete", len(objects))
        deleted = 0
        errors: list[str] = []
        for obj in objects:
            try:
                self.object_store.delete(obj.url)
            except Exception as exc:
                message = f"Failed to delete {obj.path}: {exc}"
                logger.error(message)
                errors.append(message)
                continue
            deleted += 1
        return ClearResult(deleted_count=deleted, errors=errors)
