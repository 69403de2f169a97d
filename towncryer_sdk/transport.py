"""HTTP transport handle shared by every Towncryer sub-client."""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import httpx

from .exceptions import ApiError

CLIENT_HEADER = "Client"
CLIENT_NAME = "TowncryerCoreSDK"
TENANT_HEADER = "X-Tenant-ID"
RETRY_MARKER = "towncryer_retried"

FailureHandler = Callable[[httpx.Request, httpx.Response], Awaitable[httpx.Response]]
RequestHook = Callable[[httpx.Request], Awaitable[None]]
TransportFactory = Callable[..., httpx.AsyncClient]


def build_headers(token: str | None, organisation_id: str) -> dict[str, str]:
    """Return the static headers stamped on every request of a handle."""
    headers = {"Accept": "application/json", CLIENT_HEADER: CLIENT_NAME}
    if organisation_id:
        headers[TENANT_HEADER] = organisation_id
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def _mark_request(request: httpx.Request) -> None:
    request.extensions.setdefault(RETRY_MARKER, False)


def is_retried(request: httpx.Request) -> bool:
    return bool(request.extensions.get(RETRY_MARKER))


def mark_retried(request: httpx.Request) -> None:
    request.extensions[RETRY_MARKER] = True


def error_from_response(response: httpx.Response) -> ApiError:
    """Translate a failed response into an :class:`ApiError`, keeping the body."""
    try:
        payload: Any = response.json()
    except ValueError:
        payload = response.text or None

    message = None
    if isinstance(payload, Mapping):
        message = payload.get("message") or payload.get("error")
    if not message:
        message = f"Towncryer API returned {response.status_code}"
    return ApiError(str(message), status_code=response.status_code, payload=payload, response=response)


class Transport:
    """Immutable pairing of an ``httpx.AsyncClient`` with the headers it was built with.

    A session never mutates a transport in place: changing the token, tenant or
    base URL produces a new one, so concurrent readers always see a consistent
    header set.
    """

    def __init__(
        self,
        base_url: str,
        headers: Mapping[str, str],
        on_failure: FailureHandler,
        *,
        timeout: float = 15.0,
        factory: TransportFactory = httpx.AsyncClient,
        request_hooks: Sequence[RequestHook] = (),
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers: Mapping[str, str] = dict(headers)
        self._on_failure = on_failure
        self._in_flight = 0
        self._retired = False
        self._client = factory(
            base_url=self.base_url,
            headers=dict(self.headers),
            timeout=timeout,
            event_hooks={"request": [_mark_request, *request_hooks]},
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    @property
    def is_idle(self) -> bool:
        return self._in_flight == 0

    def retire(self) -> None:
        """Mark the handle as replaced; it closes itself once its last request settles."""
        self._retired = True

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_request(self, method: str, path: str, *, retried: bool = False, **kwargs: Any) -> httpx.Request:
        request = self._client.build_request(method, path, **kwargs)
        if retried:
            mark_retried(request)
        return request

    async def request(self, method: str, path: str, *, retried: bool = False, **kwargs: Any) -> httpx.Response:
        """Build and send a request; ``retried=True`` opts it out of token refresh."""
        return await self.send(self.build_request(method, path, retried=retried, **kwargs))

    async def send(self, request: httpx.Request) -> httpx.Response:
        self._in_flight += 1
        try:
            try:
                response = await self._client.send(request)
            except httpx.HTTPError as exc:  # pragma: no cover - network failures
                raise ApiError("Failed to communicate with Towncryer API") from exc

            if response.is_success:
                return response

            await response.aread()
            return await self._on_failure(request, response)
        finally:
            self._in_flight -= 1
            if self._retired and self._in_flight == 0 and not self.is_closed:
                await self._client.aclose()

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)
