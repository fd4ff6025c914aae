"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from dam_tagging.adapters.dam_assignment import HttpxBatchChangeGateway
from dam_tagging.adapters.dam_client import HttpxDamClient
from dam_tagging.adapters.openai_analysis_client import OpenAIAnalysisClient
from dam_tagging.domain.taxonomy import TagAssignment
from dam_tagging.errors import AuthError, AuthenticationRequired, RemoteError

_COOKIE = ".AspNet.ApplicationCookie=abc123"


class _FakeResponses:
    def __init__(self) -> None:
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        output = {"description": "A cat", "tags": ["cat"]}
        return type("Resp", (), {"output_text": json.dumps(output)})()


class _FakeOpenAI:
    def __init__(self) -> None:
        self.responses = _FakeResponses()


def _client(handler) -> HttpxDamClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxDamClient(
        base_url="https://dam.test",
        http_client=httpx.AsyncClient(transport=transport),
    )


def test_openai_analysis_client_parses_output() -> None:
    fake = _FakeOpenAI()
    client = OpenAIAnalysisClient(client=fake)

    result = asyncio.run(
        client.analyze(
            model="gpt-5.2",
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            schema={"type": "object"},
            prompt="Describe",
        )
    )

    assert result == {"description": "A cat", "tags": ["cat"]}
    assert fake.responses.last_payload is not None
    assert fake.responses.last_payload["model"] == "gpt-5.2"


def test_login_extracts_auth_cookie() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/account/login"
        payload = json.loads(request.content.decode())
        assert payload == {"usernameOrEmailAddress": "admin", "password": "pw"}
        return httpx.Response(
            200,
            headers=[
                ("Set-Cookie", "other=1; path=/"),
                ("Set-Cookie", f"{_COOKIE}; path=/; HttpOnly"),
            ],
        )

    credential = asyncio.run(_client(handler).login("admin", "pw"))

    assert credential == _COOKIE


def test_login_without_cookie_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True})

    with pytest.raises(AuthError):
        asyncio.run(_client(handler).login("admin", "pw"))


def test_requests_carry_cookie_and_parse_tags() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Cookie"] == _COOKIE
        assert request.url.path == "/api/settings/getTags"
        return httpx.Response(
            200, json={"success": True, "data": [{"id": 1, "name": "Keywords"}]}
        )

    tags = asyncio.run(_client(handler).get_tags(_COOKIE))

    assert tags == [{"id": 1, "name": "Keywords"}]


def test_unauthorized_response_raises_authentication_required() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    with pytest.raises(AuthenticationRequired) as exc_info:
        asyncio.run(_client(handler).get_tags(_COOKIE))

    assert exc_info.value.remote_status == 401


def test_failed_envelope_raises_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"success": False, "error": "internal", "errorCode": 7}
        )

    with pytest.raises(RemoteError) as exc_info:
        asyncio.run(_client(handler).get_tag_values(_COOKIE, 1, "x"))

    assert exc_info.value.error_code == 7
    assert "internal" not in str(exc_info.value)


def test_network_error_raises_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RemoteError):
        asyncio.run(_client(handler).search_media(_COOKIE, None, 10, 0))


def test_tag_value_query_and_creation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/getIndexedTagValues"):
            assert request.url.params["indexedTagId"] == "3"
            assert request.url.params["filter"] == "Paris"
            assert request.url.params["parentValueId"] == "-2"
            return httpx.Response(
                200, json={"success": True, "values": [{"id": 9, "text": "Paris"}]}
            )
        payload = json.loads(request.content.decode())
        assert payload == {"guid": "g-3", "value": "Lyon", "parent": None}
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [{"id": 1, "text": "France"}, {"id": 2, "text": "Lyon"}],
            },
        )

    client = _client(handler)
    values = asyncio.run(client.get_tag_values(_COOKIE, 3, "Paris"))
    created = asyncio.run(client.create_tag_value(_COOKIE, "g-3", "Lyon"))

    assert values == [{"id": 9, "text": "Paris"}]
    assert created == {"id": 2, "text": "Lyon"}


def test_create_custom_tag_sends_default_properties() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content.decode()))
        return httpx.Response(200)

    asyncio.run(_client(handler).create_custom_tag(_COOKIE, "Mood"))

    assert seen[0]["name"] == "Mood"
    assert seen[0]["multiplyValues"] is True
    assert seen[0]["hierarchy"] is False


def test_search_media_sends_paging() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["size"] == "25"
        assert request.url.params["index"] == "0"
        assert request.url.params["queryLine"] == "city"
        return httpx.Response(200, json={"success": True, "items": []})

    payload = asyncio.run(_client(handler).search_media(_COOKIE, "city", 25, 0))

    assert payload["items"] == []


def test_batch_change_gateway_payload() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/ItemData/BatchChange"
        assert request.headers["Cookie"] == _COOKIE
        seen.append(json.loads(request.content.decode()))
        return httpx.Response(200, json={"success": True})

    gateway = HttpxBatchChangeGateway(dam_client=_client(handler))
    asyncio.run(
        gateway.assign(
            _COOKIE,
            "42",
            [
                TagAssignment(
                    tag_id=1,
                    tag_guid="g-1",
                    tag_value_id=9,
                    tag_name="Location",
                    value="Paris",
                )
            ],
        )
    )

    assert seen == [
        {
            "ids": [42],
            "data": [{"guid": "g-1", "id": 9, "remove": False}],
            "delete": False,
        }
    ]


def test_requests_carry_configured_timeout() -> None:
    timeouts: list[dict[str, float]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        return httpx.Response(200, json={"success": True, "data": []})

    client = HttpxDamClient(
        base_url="https://dam.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        timeout_seconds=2.5,
    )
    asyncio.run(client.get_tags(_COOKIE))

    assert timeouts[0]["connect"] == 2.5
    assert timeouts[0]["read"] == 2.5


def test_batch_change_gateway_keeps_non_ascii_digits_as_text() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content.decode()))
        return httpx.Response(200)

    gateway = HttpxBatchChangeGateway(dam_client=_client(handler))
    asyncio.run(gateway.assign(_COOKIE, "²", []))
    asyncio.run(gateway.assign(_COOKIE, "a-17", []))

    assert seen[0]["ids"] == ["²"]
    assert seen[1]["ids"] == ["a-17"]
