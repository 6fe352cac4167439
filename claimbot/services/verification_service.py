"""Phone verification through the Twilio Verify REST API."""

from dataclasses import dataclass
from typing import Optional

import httpx

from claimbot.services.errors import DependencyError
from claimbot.services.http_client import request_json

DEPENDENCY = "verification"


@dataclass
class VerificationCheck:
    approved: bool
    status: str


class VerificationClient:
    def __init__(
        self,
        *,
        account_sid: Optional[str],
        auth_token: Optional[str],
        service_sid: Optional[str],
        base_url: str,
        timeout_seconds: float,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.service_sid = service_sid
        self.base_url = base_url.rstrip("/")
        auth = (account_sid, auth_token) if account_sid and auth_token else None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds, auth=auth)

    def _service_url(self, resource: str) -> str:
        return f"{self.base_url}/Services/{self.service_sid}/{resource}"

    async def start(self, phone_number: str) -> str:
        """Send a verification code by SMS. Returns the provider's status."""
        if not self.service_sid:
            raise DependencyError(DEPENDENCY, "verify service not configured")
        data = await request_json(
            self._client,
            "POST",
            self._service_url("Verifications"),
            dependency=DEPENDENCY,
            data={"To": phone_number, "Channel": "sms"},
        )
        status = data.get("status") if isinstance(data, dict) else None
        if not status:
            raise DependencyError(DEPENDENCY, "invalid response")
        return status

    async def check(self, phone_number: str, code: str) -> VerificationCheck:
        if not self.service_sid:
            raise DependencyError(DEPENDENCY, "verify service not configured")
        data = await request_json(
            self._client,
            "POST",
            self._service_url("VerificationCheck"),
            dependency=DEPENDENCY,
            data={"To": phone_number, "Code": code},
        )
        status = (data.get("status") if isinstance(data, dict) else None) or "unknown"
        return VerificationCheck(approved=status == "approved", status=status)

    async def aclose(self) -> None:
        await self._client.aclose()
