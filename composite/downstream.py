# composite/downstream.py
"""
Downstream HTTP client used by composite steps.

The orchestrator only needs "send this request, give me status + body".
HttpxDownstreamClient is the production implementation; tests inject an
httpx.MockTransport through the same class.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Tuple

import httpx

from composite.models import DownstreamResponse, OutboundRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 100.0


class DownstreamClient(Protocol):
    async def send(self, request: OutboundRequest) -> DownstreamResponse:
        ...


def split_authorization(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split an Authorization header on the first space: (scheme, credential)."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    scheme, _, credential = value.partition(" ")
    return scheme, credential


def forwarded_authorization(value: Optional[str]) -> Optional[str]:
    """Header value to attach to every outbound call, or None to send nothing."""
    parts = split_authorization(value)
    if parts is None:
        return None
    scheme, credential = parts
    return f"{scheme} {credential}" if credential else scheme


class HttpxDownstreamClient:
    """Sends rendered composite steps through a shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str = "",
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        verify_ssl: bool = True,
        follow_redirects: bool = True,
        max_connections: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        kwargs: Dict[str, Any] = {
            "base_url": base_url or "",
            "timeout": httpx.Timeout(timeout_sec),
            "limits": httpx.Limits(max_connections=max_connections),
            "follow_redirects": follow_redirects,
        }
        if transport is not None:
            kwargs["transport"] = transport
        else:
            kwargs["verify"] = verify_ssl

        self.client = httpx.AsyncClient(**kwargs)
        logger.info(f"HttpxDownstreamClient initialized (base_url={base_url or '-'}, timeout={timeout_sec}s)")

    async def __aenter__(self) -> "HttpxDownstreamClient":
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def send(self, request: OutboundRequest) -> DownstreamResponse:
        headers = {"Authorization": request.authorization} if request.authorization else None

        resp = await self.client.request(
            request.method,
            request.url,
            json=request.json_body,
            headers=headers,
        )

        return DownstreamResponse(
            status_code=resp.status_code,
            text=resp.text,
            reason_phrase=resp.reason_phrase or httpx.codes.get_reason_phrase(resp.status_code),
        )
