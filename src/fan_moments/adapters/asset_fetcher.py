"""HTTP fetcher for public asset URLs."""

from dataclasses import dataclass

import httpx

from fan_moments.domain.storage import FetchedAsset
from fan_moments.services.storage import AssetFetcher


@dataclass
class HttpxAssetFetcher(AssetFetcher):
    """Asset fetcher using httpx."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxAssetFetcher":
        """Create a fetcher with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(follow_redirects=True))

    async def fetch(self, url: str) -> FetchedAsset:
        """GET a URL bypassing intermediate caches."""
        response = await self.http_client.get(
            url, headers={"Cache-Control": "no-cache"}, timeout=60
        )
        return FetchedAsset(
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            content=response.content,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
