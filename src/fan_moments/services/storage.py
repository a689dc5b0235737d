"""Persistence interfaces for session assets and metadata."""

from typing import Protocol

from fan_moments.domain.storage import FetchedAsset, StoredObject


class ObjectStore(Protocol):
    """Path-keyed, publicly readable blob store."""

    def put(self, path: str, data: bytes, content_type: str) -> str:
        """Write (or overwrite) an object and return its public URL."""

    def get(self, path: str) -> bytes | None:
        """Return object bytes, or None when the path does not exist."""

    def list(self, prefix: str) -> list[StoredObject]:
        """Return every object whose path starts with the prefix."""

    def delete(self, url: str) -> None:
        """Delete the object behind a public URL."""


class AssetFetcher(Protocol):
    """Uncached HTTP reads of public asset URLs."""

    async def fetch(self, url: str) -> FetchedAsset:
        """Fetch a URL; HTTP error statuses are returned, not raised."""


def session_prefix(session_id: str) -> str:
    return f"sessions/{session_id}/"


def metadata_path(session_id: str) -> str:
    return f"{session_prefix(session_id)}metadata.json"


def asset_path(session_id: str, asset_kind: str, content_type: str) -> str:
    """Build the deterministic storage path for a session asset."""
    if "video" in content_type:
        extension = "mp4"
    elif "png" in content_type:
        extension = "png"
    else:
        extension = "jpg"
    return f"{session_prefix(session_id)}{asset_kind}.{extension}"
