"""Session store: create, read and merge-update persisted session records."""

import hashlib
import json
import logging
import secrets
import string
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import ValidationError

from fan_moments.domain.sessions import SessionAssets, SessionRecord
from fan_moments.services.storage import AssetFetcher, ObjectStore, metadata_path

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {
        "user_id",
        "team_id",
        "player_ids",
        "status",
        "progress",
        "assets",
        "error",
        "last_successful_step",
    }
)
_ERROR_FIELDS = ("error", "last_successful_step")
_ID_ALPHABET = string.digits + string.ascii_lowercase
_NOT_FOUND = 404


class SessionReadError(RuntimeError):
    """Raised when stored metadata exists but cannot be read right now."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def session_id_from_content(data: bytes) -> str:
    """Derive a deterministic session id from raw selfie bytes."""
    return hashlib.md5(data).hexdigest()  # noqa: S324


def generate_session_id() -> str:
    """Return a random session id of the form ``<epoch-ms>-<suffix>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


@dataclass
class SessionStore:
    """Session persistence on top of a path-keyed object store.

    Each record lives at ``sessions/<id>/metadata.json``. Reads first try the
    metadata URL remembered by this instance and fall back to a listing of the
    store, so a fresh process can always rediscover a session. Updates are
    read-merge-write without any compare-and-swap: concurrent writers to the
    same session lose updates, the last write wins in full.
    """

    object_store: ObjectStore
    fetcher: AssetFetcher
    clock: Callable[[], datetime] = _utcnow
    _url_cache: dict[str, str] = field(default_factory=dict, repr=False)

    async def create(
        self,
        team_id: str,
        player_ids: list[str],
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> SessionRecord:
        """Create a session, or return the existing one for the same id."""
        resolved_id = session_id or generate_session_id()
        existing = await self.get(resolved_id)
        if existing is not None:
            return existing

        now = self.clock()
        record = SessionRecord(
            session_id=resolved_id,
            user_id=user_id,
            team_id=team_id,
            player_ids=list(player_ids),
            created_at=now,
            updated_at=now,
        )
        self._write(record)
        logger.info("Created session %s", resolved_id)
        return record

    async def get(self, session_id: str) -> SessionRecord | None:
        """Return the session record, or None when it cannot be found.

        Raises ``SessionReadError`` when the metadata exists but the read fails
        with anything other than a 404.
        """
        cached_url = self._url_cache.get(session_id)
        if cached_url is not None:
            record = await self._read(cached_url, session_id)
            if record is not None:
                return record
            self._url_cache.pop(session_id, None)

        path = metadata_path(session_id)
        match = next(
            (obj for obj in self.object_store.list(path) if obj.path == path), None
        )
        if match is None:
            logger.info("Session %s not found", session_id)
            return None

        self._url_cache[session_id] = match.url
        record = await self._read(match.url, session_id)
        if record is None:
            self._url_cache.pop(session_id, None)
        return record

    async def update(
        self, session_id: str, changes: Mapping[str, object]
    ) -> SessionRecord:
        """Merge a partial update into the stored record and write it back.

        A missing session is created on the fly from the update, so progress
        writes that arrive before the explicit create are not lost.
        """
        _check_changes(session_id, changes)
        current = await self.get(session_id)
        if current is None:
            logger.info("Session %s not found, creating it from update", session_id)
            now = self.clock()
            current = SessionRecord(
                session_id=session_id,
                team_id=str(changes.get("team_id") or "unknown"),
                player_ids=list(changes.get("player_ids") or []),
                created_at=now,
                updated_at=now,
            )

        merged = current.model_dump()
        merged.update({key: value for key, value in changes.items() if key != "assets"})
        merged["assets"] = _merge_assets(current.assets, changes.get("assets"))
        merged["updated_at"] = self.clock()
        if merged["status"] != "error":
            for key in _ERROR_FIELDS:
                merged[key] = None

        record = SessionRecord.model_validate(merged)
        self._write(record)
        return record

    def cached_url(self, session_id: str) -> str | None:
        """Return the metadata URL remembered for a session, if any."""
        return self._url_cache.get(session_id)

    def _write(self, record: SessionRecord) -> str:
        content = json.dumps(record.to_json_dict(), indent=2).encode("utf-8")
        url = self.object_store.put(
            metadata_path(record.session_id), content, "application/json"
        )
        self._url_cache[record.session_id] = url
        return url

    async def _read(self, url: str, session_id: str) -> SessionRecord | None:
        fetched = await self.fetcher.fetch(url)
        if fetched.status_code == _NOT_FOUND:
            logger.warning("Metadata for session %s is gone: HTTP 404", session_id)
            return None
        if not fetched.ok:
            raise SessionReadError(
                f"Failed to fetch metadata for session {session_id}: "
                f"HTTP {fetched.status_code}"
            )
        if not fetched.is_json:
            logger.warning(
                "Invalid content type %r for session %s metadata",
                fetched.content_type,
                session_id,
            )
            return None
        try:
            return SessionRecord.model_validate_json(fetched.content)
        except ValidationError:
            logger.warning("Corrupt metadata for session %s", session_id)
            return None


def _check_changes(session_id: str, changes: Mapping[str, object]) -> None:
    if changes.get("session_id", session_id) != session_id:
        raise ValueError("session_id cannot be changed")
    unknown = set(changes) - _UPDATABLE_FIELDS - {"session_id"}
    if unknown:
        raise ValueError(f"Unknown session fields: {', '.join(sorted(unknown))}")


def _merge_assets(
    current: SessionAssets, incoming: object | None
) -> dict[str, str]:
    merged = current.model_dump(exclude_none=True)
    if isinstance(incoming, SessionAssets):
        incoming = incoming.model_dump(exclude_none=True)
    if incoming:
        if not isinstance(incoming, Mapping):
            raise ValueError("assets must be a mapping of asset kind to URL")
        merged.update({kind: url for kind, url in incoming.items() if url})
    return merged
