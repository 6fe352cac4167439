from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Mapping


def build_signature_payload(url: str, params: Mapping[str, str]) -> str:
    """URL followed by every form parameter as key+value, keys in sorted order."""
    return url + "".join(f"{key}{params[key]}" for key in sorted(params))


def compute_twilio_signature(auth_token: str, url: str, params: Mapping[str, str]) -> str:
    digest = hmac.new(
        auth_token.encode("utf-8"),
        build_signature_payload(url, params).encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_twilio_signature(
    auth_token: str | None,
    url: str,
    params: Mapping[str, str],
    signature: str | None,
) -> bool:
    token = (auth_token or "").strip()
    received = (signature or "").strip()
    if not token or not received:
        return False

    expected = compute_twilio_signature(token, url, params)
    return hmac.compare_digest(expected, received)


def reconstruct_request_url(
    *,
    scheme: str,
    host: str,
    path_with_query: str,
    forwarded_proto: str | None = None,
    forwarded_host: str | None = None,
    public_base_url: str | None = None,
) -> str:
    """Rebuild the externally visible URL the transport signed."""
    if public_base_url:
        return public_base_url.rstrip("/") + path_with_query
    proto = (forwarded_proto or scheme).split(",")[0].strip()
    external_host = (forwarded_host or host).split(",")[0].strip()
    return f"{proto}://{external_host}{path_with_query}"
