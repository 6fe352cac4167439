from typing import Any, Optional

import httpx

from claimbot.services.errors import DependencyError
from claimbot.services.http_client import request_json

DEPENDENCY = "journey_matcher"
ALTERNATIVES_PER_PAGE = 3


def _normalize_route(route: dict[str, Any]) -> dict[str, Any]:
    legs = [leg for leg in route.get("legs") or [] if isinstance(leg, dict)]
    if not legs:
        raise DependencyError(DEPENDENCY, "route without legs")
    is_direct = route.get("isDirect")
    return {
        "legs": legs,
        "isDirect": bool(is_direct) if is_direct is not None else len(legs) == 1,
        "interchangeStation": route.get("interchangeStation") or (legs[0].get("to") if len(legs) > 1 else None),
        "totalDuration": route.get("totalDuration"),
    }


class JourneyClient:
    """Route lookup against the journey matcher service."""

    def __init__(self, base_url: str, *, timeout_seconds: float, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def find_routes(
        self,
        *,
        origin: str,
        destination: str,
        travel_date: str,
        departure_time: str,
        correlation_id: str,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        params = {"from": origin, "to": destination, "date": travel_date, "time": departure_time}
        if offset is not None:
            params["offset"] = offset

        data = await request_json(
            self._client,
            "GET",
            f"{self.base_url}/routes",
            dependency=DEPENDENCY,
            params=params,
            headers={"X-Correlation-ID": correlation_id},
        )
        routes = data.get("routes") if isinstance(data, dict) else None
        return [_normalize_route(route) for route in routes or [] if isinstance(route, dict)]

    async def aclose(self) -> None:
        await self._client.aclose()
