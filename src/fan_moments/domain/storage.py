"""Value types returned by the object store and URL fetcher."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredObject:
    """An object listed from the blob store."""

    path: str
    url: str
    uploaded_at: datetime | None = None


@dataclass(frozen=True)
class FetchedAsset:
    """Response of an uncached GET against a public asset URL."""

    status_code: int
    content_type: str
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type
