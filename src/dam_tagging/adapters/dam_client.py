"""Daminion-style DAM REST client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from dam_tagging.errors import AuthError, AuthenticationRequired, RemoteError

DEFAULT_AUTH_COOKIE = ".AspNet.ApplicationCookie"


class DamClient(Protocol):
    """Interface for the DAM endpoints used by the tagging engine."""

    async def login(self, username: str, password: str) -> str:
        """Exchange credentials for a session cookie and return it."""

    async def get_tags(self, credential: str) -> list[dict[str, object]]:
        """Return the raw taxonomy tag list."""

    async def create_custom_tag(self, credential: str, name: str) -> None:
        """Create a string-typed, multi-value, non-hierarchical tag."""

    async def get_tag_values(
        self, credential: str, tag_id: int, filter_text: str
    ) -> list[dict[str, object]]:
        """Return raw values of a tag matching a text filter."""

    async def create_tag_value(
        self,
        credential: str,
        tag_guid: str,
        value: str,
        parent_id: int | None = None,
    ) -> dict[str, object]:
        """Create a value under a tag and return the raw created record."""

    async def search_media(
        self, credential: str, query_line: str | None, size: int, index: int
    ) -> dict[str, object]:
        """Return a raw page of media items."""


def check_response(response: httpx.Response, action: str) -> httpx.Response:
    """Translate HTTP error statuses into integration errors."""
    status_code = response.status_code
    if status_code in {401, 403}:
        raise AuthenticationRequired(
            f"DAM rejected {action} (HTTP {status_code})", remote_status=status_code
        )
    if response.is_error:
        raise RemoteError(
            f"DAM {action} returned HTTP {status_code}", remote_status=status_code
        )
    return response


def read_payload(response: httpx.Response, action: str) -> dict[str, object]:
    """Decode a DAM JSON envelope, raising on malformed or failed payloads."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise RemoteError(
            f"DAM {action} returned a malformed payload",
            remote_status=response.status_code,
        ) from exc
    if not isinstance(payload, dict):
        raise RemoteError(
            f"DAM {action} returned a malformed payload",
            remote_status=response.status_code,
        )
    if payload.get("success") is False:
        error_code = payload.get("errorCode")
        raise RemoteError(
            f"DAM {action} reported failure",
            remote_status=response.status_code,
            error_code=error_code if isinstance(error_code, int) else None,
        )
    return payload


@dataclass
class HttpxDamClient(DamClient):
    """HTTPX-backed DAM client; the session cookie is passed in per call."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0
    auth_cookie_name: str = DEFAULT_AUTH_COOKIE

    @classmethod
    def create(cls, base_url: str, timeout_seconds: float = 15.0) -> "HttpxDamClient":
        """Create a DAM client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers={"Accept": "application/json"}),
            timeout_seconds=timeout_seconds,
        )

    async def login(self, username: str, password: str) -> str:
        """Log in and return the `name=value` part of the auth cookie."""
        self.http_client.cookies.clear()
        response = await self.send(
            "POST",
            "/account/login",
            credential=None,
            action="login",
            json={"usernameOrEmailAddress": username, "password": password},
        )
        for header in response.headers.get_list("set-cookie"):
            if header.startswith(f"{self.auth_cookie_name}="):
                return header.split(";")[0]
        raise AuthError(
            "Login response did not include a session cookie",
            remote_status=response.status_code,
        )

    async def get_tags(self, credential: str) -> list[dict[str, object]]:
        """Fetch every tag defined in the taxonomy."""
        response = await self.send(
            "GET", "/api/settings/getTags", credential=credential, action="getTags"
        )
        payload = read_payload(response, "getTags")
        return _as_records(payload.get("data"), "getTags")

    async def create_custom_tag(self, credential: str, name: str) -> None:
        """Create a custom tag with default properties."""
        response = await self.send(
            "POST",
            "/api/indexedTagValues/createCustomTag",
            credential=credential,
            action="createCustomTag",
            json={
                "name": name,
                "type": 0,
                "multiplyValues": True,
                "hierarchy": False,
                "allowSynonyms": False,
                "limitedNumber": False,
            },
        )
        if response.content:
            read_payload(response, "createCustomTag")

    async def get_tag_values(
        self, credential: str, tag_id: int, filter_text: str
    ) -> list[dict[str, object]]:
        """Fetch values of a tag across all hierarchy levels."""
        response = await self.send(
            "GET",
            "/api/indexedTagValues/getIndexedTagValues",
            credential=credential,
            action="getIndexedTagValues",
            params={
                "indexedTagId": tag_id,
                "pageSize": 1000,
                "pageIndex": 0,
                "parentValueId": -2,
                "filter": filter_text,
            },
        )
        payload = read_payload(response, "getIndexedTagValues")
        return _as_records(payload.get("values"), "getIndexedTagValues")

    async def create_tag_value(
        self,
        credential: str,
        tag_guid: str,
        value: str,
        parent_id: int | None = None,
    ) -> dict[str, object]:
        """Create a value; the DAM returns the value path, last element first-class."""
        response = await self.send(
            "POST",
            "/api/indexedTagValues/createValueByGuid",
            credential=credential,
            action="createValueByGuid",
            json={"guid": tag_guid, "value": value, "parent": parent_id},
        )
        payload = read_payload(response, "createValueByGuid")
        records = _as_records(payload.get("data"), "createValueByGuid")
        if not records:
            raise RemoteError(
                "DAM createValueByGuid returned no value",
                remote_status=response.status_code,
            )
        return records[-1]

    async def search_media(
        self, credential: str, query_line: str | None, size: int, index: int
    ) -> dict[str, object]:
        """Fetch a page of media items."""
        params: dict[str, object] = {"size": size, "index": index}
        if query_line:
            params["queryLine"] = query_line
        response = await self.send(
            "GET",
            "/api/mediaItems/get",
            credential=credential,
            action="mediaItems",
            params=params,
        )
        return read_payload(response, "mediaItems")

    async def send(  # noqa: PLR0913
        self,
        method: str,
        path: str,
        *,
        credential: str | None,
        action: str,
        params: dict[str, object] | None = None,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        """Send a request with the session cookie and a bounded timeout."""
        headers: dict[str, str] = {}
        if credential:
            headers["Cookie"] = credential
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise RemoteError(
                f"DAM {action} request failed: {exc.__class__.__name__}"
            ) from exc
        return check_response(response, action)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _as_records(raw: object, action: str) -> list[dict[str, object]]:
    """Validate that a payload field is a list of JSON objects."""
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise RemoteError(f"DAM {action} returned a malformed payload")
    return raw
