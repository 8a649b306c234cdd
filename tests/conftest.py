"""
Pytest fixtures for composite engine tests.

Downstream services are simulated with httpx.MockTransport: each test
registers handlers keyed by (METHOD, url) and inspects the recorded calls.
"""

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from composite.downstream import HttpxDownstreamClient
from composite.orchestrator import CompositeService


Handler = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeDownstream:
    """Route table + call log behind an httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[httpx.Request] = []

    def add(self, method: str, url: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method.upper(), url)] = (status, body)

    def add_handler(self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method.upper(), url)] = handler

    def urls(self) -> List[str]:
        return [str(r.url) for r in self.calls]

    def json_bodies(self) -> List[Any]:
        return [json.loads(r.content) if r.content else None for r in self.calls]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, json={"detail": "no route"})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def downstream() -> FakeDownstream:
    return FakeDownstream()


@pytest.fixture
async def service(downstream):
    client = HttpxDownstreamClient(transport=httpx.MockTransport(downstream))
    yield CompositeService(client)
    await client.aclose()
