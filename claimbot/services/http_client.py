from typing import Any

import httpx

from claimbot.logging_config import get_logger
from claimbot.services.errors import DependencyError, DependencyTimeoutError

logger = get_logger("http_client")


async def request_json(client: httpx.AsyncClient, method: str, url: str, *, dependency: str, **kwargs) -> Any:
    """Send a request and decode the JSON body, mapping transport failures to dependency errors."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        logger.warning(f"{dependency} timed out", extra={"context": {"url": url}})
        raise DependencyTimeoutError(dependency, "request timed out") from exc
    except httpx.HTTPError as exc:
        logger.warning(f"{dependency} request failed: {exc}", extra={"context": {"url": url}})
        raise DependencyError(dependency, "request failed") from exc

    if response.status_code >= 400:
        logger.warning(
            f"{dependency} returned {response.status_code}",
            extra={"context": {"url": url, "status": response.status_code}},
        )
        raise DependencyError(dependency, f"unexpected status {response.status_code}")

    try:
        return response.json()
    except ValueError as exc:
        raise DependencyError(dependency, "invalid JSON response") from exc
