"""Supabase Storage-backed object store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from fan_moments.domain.storage import StoredObject
from fan_moments.services.storage import ObjectStore

_PAGE_SIZE = 100


@dataclass
class SupabaseObjectStore(ObjectStore):
    """Object store over a public Supabase Storage bucket."""

    client: Client
    bucket: str

    def put(self, path: str, data: bytes, content_type: str) -> str:
        """Upload an object, replacing any previous version at the path."""
        self._bucket().upload(
            path,
            data,
            file_options={
                "content-type": content_type,
                "cache-control": "no-cache",
                "upsert": "true",
            },
        )
        return self._public_url(path)

    def get(self, path: str) -> bytes | None:
        """Download an object if it exists."""
        folder, _, name = path.rpartition("/")
        if not any(obj.path == path for obj in self._walk(folder, search=name)):
            return None
        return self._bucket().download(path)

    def list(self, prefix: str) -> list[StoredObject]:
        """List objects under a path prefix, descending into folders."""
        folder, _, name = prefix.rpartition("/")
        return [
            obj
            for obj in self._walk(folder, search=name)
            if obj.path.startswith(prefix)
        ]

    def delete(self, url: str) -> None:
        """Remove the object behind a public URL."""
        self._bucket().remove([self._path_from_url(url)])

    def _walk(self, folder: str, search: str = "") -> list[StoredObject]:
        objects: list[StoredObject] = []
        offset = 0
        while True:
            options: dict[str, object] = {"limit": _PAGE_SIZE, "offset": offset}
            if search:
                options["search"] = search
            entries = self._bucket().list(folder, options)
            for entry in entries:
                path = f"{folder}/{entry['name']}" if folder else entry["name"]
                if entry.get("id") is None:
                    objects.extend(self._walk(path))
                    continue
                objects.append(
                    StoredObject(
                        path=path,
                        url=self._public_url(path),
                        uploaded_at=_parse_timestamp(
                            entry.get("updated_at") or entry.get("created_at")
                        ),
                    )
                )
            if len(entries) < _PAGE_SIZE:
                return objects
            offset += _PAGE_SIZE

    def _bucket(self):  # type: ignore[no-untyped-def]
        return self.client.storage.from_(self.bucket)

    def _public_url(self, path: str) -> str:
        return self._bucket().get_public_url(path).rstrip("?")

    def _path_from_url(self, url: str) -> str:
        marker = f"/object/public/{self.bucket}/"
        if marker not in url:
            raise ValueError(f"URL does not belong to bucket {self.bucket}: {url}")
        return url.split(marker, 1)[1].split("?", 1)[0]


def _parse_timestamp(raw: object) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    return datetime.fromisoformat(raw)
