import json

import httpx

from composite.downstream import HttpxDownstreamClient, forwarded_authorization, split_authorization
from composite.models import OutboundRequest


def test_split_authorization_on_first_space():
    assert split_authorization("Bearer abc def") == ("Bearer", "abc def")
    assert split_authorization("Basic dXNlcjpwYXNz") == ("Basic", "dXNlcjpwYXNz")
    assert split_authorization(None) is None
    assert split_authorization("   ") is None


def test_forwarded_authorization():
    assert forwarded_authorization("Bearer abc") == "Bearer abc"
    assert forwarded_authorization("Negotiate") == "Negotiate"
    assert forwarded_authorization(None) is None


async def test_send_maps_response_and_headers():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 1})

    async with HttpxDownstreamClient(transport=httpx.MockTransport(handler)) as client:
        resp = await client.send(OutboundRequest(
            method="POST",
            url="https://svc/items",
            json_body={"name": "x"},
            authorization="Bearer t",
        ))

    assert resp.status_code == 201
    assert resp.is_success
    assert resp.reason_phrase == "Created"
    assert json.loads(resp.text) == {"id": 1}
    assert seen[0].headers["Authorization"] == "Bearer t"
    assert json.loads(seen[0].content) == {"name": "x"}


async def test_relative_endpoint_resolves_against_base_url():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={})

    async with HttpxDownstreamClient(base_url="https://svc/api", transport=httpx.MockTransport(handler)) as client:
        await client.send(OutboundRequest(method="GET", url="/tables/test"))

    assert seen == ["https://svc/api/tables/test"]


async def test_context_manager_closes_client():
    async with HttpxDownstreamClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
        assert not client.client.is_closed

    assert client.client.is_closed
