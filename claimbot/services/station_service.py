from dataclasses import dataclass
from typing import Optional

import httpx

from claimbot.services.http_client import request_json

DEPENDENCY = "station_search"


@dataclass
class Station:
    crs: str
    name: str


class StationClient:
    def __init__(self, base_url: str, *, timeout_seconds: float, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def search(self, query: str) -> list[Station]:
        data = await request_json(
            self._client,
            "GET",
            f"{self.base_url}/api/v1/stations/search",
            dependency=DEPENDENCY,
            params={"q": query},
        )
        if not isinstance(data, list):
            return []
        return [
            Station(crs=item["crs"], name=item.get("name") or item["crs"])
            for item in data
            if isinstance(item, dict) and item.get("crs")
        ]

    async def resolve(self, query: str) -> Optional[Station]:
        """First search match, or None."""
        matches = await self.search(query)
        return matches[0] if matches else None

    async def aclose(self) -> None:
        await self._client.aclose()
