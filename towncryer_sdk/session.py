"""Authenticated API session shared by every Towncryer sub-client.

The session owns the credential state (access token, refresh token, tenant id
and auth mode), the transport handle built from it, and the cache of typed
sub-clients. It also recovers from expired access tokens: the first request
that sees a 401 refreshes the token, every other request failing meanwhile
waits in a queue, and all of them are replayed once with the new token.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING, Literal, overload

import httpx

from .endpoints import API_CLASSES, ApiName, AuthApi, BaseApi, CustomersApi, EventsApi, MessagesApi
from .exceptions import AuthenticationError, RefreshTokenMissingError
from .models import TokenPair
from .transport import (
    CLIENT_HEADER,
    CLIENT_NAME,
    Transport,
    TransportFactory,
    build_headers,
    error_from_response,
    is_retried,
    mark_retried,
)

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .config import TowncryerConfig

logger = logging.getLogger("towncryer_sdk.session")

DEFAULT_BASE_URL = "https://staging-api.towncryer.io/api/v1"


class AuthMode(str, Enum):
    """How the session obtained its tokens; selects the refresh endpoint."""

    API_KEY = "api_key"
    TOKEN = "token"


Waiter = tuple[Callable[[str], None], Callable[[BaseException], None]]


class ApiSession:
    """Mutable auth/tenant state plus the transport handle derived from it."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        token: str | None = None,
        refresh_token: str | None = None,
        organisation_id: str = "",
        auth_mode: AuthMode = AuthMode.TOKEN,
        timeout: float = 15.0,
        transport_factory: TransportFactory = httpx.AsyncClient,
    ) -> None:
        self._base_url = base_url
        self._token = token
        self._refresh_token = refresh_token
        self._organisation_id = organisation_id
        self._auth_mode = auth_mode
        self._timeout = timeout
        self._transport_factory = transport_factory

        self._apis: dict[ApiName, BaseApi] = {}
        self._pending: list[Waiter] = []
        self._refreshing = False
        self._retired: list[Transport] = []
        self._closing: set[asyncio.Task[None]] = set()
        self._pending_api_key: str | None = None
        self._login_task: asyncio.Task[None] | None = None

        self._transport = self._build_transport()

    @classmethod
    def from_config(
        cls,
        config: TowncryerConfig,
        *,
        transport_factory: TransportFactory = httpx.AsyncClient,
    ) -> ApiSession:
        """Build a session from resolved configuration.

        An access token wins over an API key. The organisation id is always
        applied when supplied.
        """
        auth = config.auth
        session = cls(
            config.base_url,
            token=auth.access_token,
            refresh_token=auth.refresh_token,
            organisation_id=config.organisation_id or "",
            auth_mode=config.auth_mode,
            timeout=config.timeout,
            transport_factory=transport_factory,
        )
        if not auth.access_token and auth.api_key:
            session.set_api_key(auth.api_key)
        return session

    async def __aenter__(self) -> ApiSession:
        self._start_pending_login()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cancel a pending API-key login and close every transport handle built so far."""
        if self._login_task is not None and not self._login_task.done():
            self._login_task.cancel()
        for task in list(self._closing):
            await task
        for transport in (*self._retired, self._transport):
            if not transport.is_closed:
                await transport.aclose()
        self._retired.clear()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    @property
    def organisation_id(self) -> str:
        return self._organisation_id

    @property
    def auth_mode(self) -> AuthMode:
        return self._auth_mode

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    @property
    def login_task(self) -> asyncio.Task[None] | None:
        """Background API-key exchange started by :meth:`set_api_key`, if any."""
        return self._login_task

    def set_base_url(self, base_url: str) -> None:
        self._base_url = base_url
        self._rebuild_transport()

    def set_token(self, token: str | None) -> None:
        if token == self._token:
            return
        self._token = token
        self._rebuild_transport()

    def set_refresh_token(self, refresh_token: str | None) -> None:
        self._refresh_token = refresh_token

    def set_organisation_id(self, organisation_id: str) -> None:
        if organisation_id == self._organisation_id:
            return
        self._organisation_id = organisation_id
        self._rebuild_transport()

    def set_token_and_organisation_id(self, token: str | None, organisation_id: str) -> None:
        """Update both values with at most one handle rebuild."""
        if token == self._token and organisation_id == self._organisation_id:
            return
        self._token = token
        self._organisation_id = organisation_id
        self._rebuild_transport()

    def set_api_key(self, api_key: str) -> None:
        """Switch to API-key auth and exchange the key for tokens in the background.

        The exchange does not block and never raises into the caller; failures are
        logged. Without a running event loop the exchange starts with the next
        request sent through the session.
        """
        self._auth_mode = AuthMode.API_KEY
        self._pending_api_key = api_key
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; API key login deferred until the first request")
            return
        self._start_pending_login()

    async def login_with_api_key(self, api_key: str) -> TokenPair:
        """Exchange an API key for tokens and adopt them, raising on failure."""
        self._auth_mode = AuthMode.API_KEY
        tokens = await self.get_api(ApiName.AUTH).client_app_login(api_key)
        self.set_token(tokens.access_token)
        self.set_refresh_token(tokens.refresh_token)
        return tokens

    # ------------------------------------------------------------------
    # Sub-clients
    # ------------------------------------------------------------------
    @overload
    def get_api(self, name: Literal[ApiName.AUTH]) -> AuthApi: ...

    @overload
    def get_api(self, name: Literal[ApiName.EVENTS]) -> EventsApi: ...

    @overload
    def get_api(self, name: Literal[ApiName.CUSTOMERS]) -> CustomersApi: ...

    @overload
    def get_api(self, name: Literal[ApiName.MESSAGES]) -> MessagesApi: ...

    @overload
    def get_api(self, name: ApiName | str) -> BaseApi: ...

    def get_api(self, name: ApiName | str) -> BaseApi:
        key = ApiName(name)
        api = self._apis.get(key)
        if api is None:
            api = API_CLASSES[key](self._transport)
            self._apis[key] = api
        return api

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _build_transport(self) -> Transport:
        return Transport(
            self._base_url,
            build_headers(self._token, self._organisation_id),
            self._handle_failure,
            timeout=self._timeout,
            factory=self._transport_factory,
            request_hooks=[self._on_request],
        )

    def _rebuild_transport(self) -> None:
        previous = self._transport
        self._transport = self._build_transport()
        for api in self._apis.values():
            api.bind(self._transport)

        # A busy handle closes itself after its last request; an idle one is closed here.
        previous.retire()
        self._retired = [transport for transport in self._retired if not transport.is_closed]
        self._retired.append(previous)
        if previous.is_idle:
            self._close_later(previous)

    def _close_later(self, transport: Transport) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without a loop the handle waits for aclose().
            return
        task = loop.create_task(transport.aclose())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _on_request(self, request: httpx.Request) -> None:
        self._start_pending_login()

    def _start_pending_login(self) -> None:
        api_key = self._pending_api_key
        if api_key is None:
            return
        self._pending_api_key = None
        self._login_task = asyncio.get_running_loop().create_task(self._login_in_background(api_key))

    async def _login_in_background(self, api_key: str) -> None:
        try:
            await self.login_with_api_key(api_key)
        except Exception:
            logger.exception("Failed to login using API key")

    def _is_eligible(self, request: httpx.Request, response: httpx.Response) -> bool:
        if request.headers.get(CLIENT_HEADER) != CLIENT_NAME:
            return False
        return response.status_code == 401 and not is_retried(request)

    async def _handle_failure(self, request: httpx.Request, response: httpx.Response) -> httpx.Response:
        if not self._is_eligible(request, response):
            raise error_from_response(response)

        mark_retried(request)

        current = self._token
        if current and not self._refreshing and request.headers.get("Authorization") != f"Bearer {current}":
            # Sent with a superseded token; try the current one before refreshing again.
            return await self._replay(request, current)

        if self._refreshing:
            token = await self._wait_for_refresh()
            return await self._replay(request, token)

        refresh_token = self._refresh_token
        if not refresh_token:
            raise RefreshTokenMissingError("Refresh token is required to refresh short-lived token")

        token = await self._refresh_once(refresh_token)
        return await self._replay(request, token)

    async def _wait_for_refresh(self) -> str:
        waiter: asyncio.Future[str] = asyncio.get_running_loop().create_future()

        def resolve(token: str) -> None:
            if not waiter.done():
                waiter.set_result(token)

        def reject(error: BaseException) -> None:
            if not waiter.done():
                waiter.set_exception(error)

        self._pending.append((resolve, reject))
        return await waiter

    async def _refresh_once(self, refresh_token: str) -> str:
        # Set before the first suspension point so concurrent failures queue up.
        self._refreshing = True
        try:
            token = await self._refresh_access_token(refresh_token)
        except asyncio.CancelledError as exc:
            # Only the refreshing task was cancelled; waiters fail with an ordinary error.
            logger.warning("Token refresh was cancelled")
            error = AuthenticationError("Token refresh was cancelled")
            error.__cause__ = exc
            self._process_queue(error=error)
            raise
        except BaseException as exc:
            logger.warning("Token refresh failed: %s", exc)
            self._process_queue(error=exc)
            raise
        finally:
            self._refreshing = False
        self._process_queue(token=token)
        return token

    async def _refresh_access_token(self, refresh_token: str) -> str:
        auth = self.get_api(ApiName.AUTH)
        logger.debug("Refreshing access token (%s mode)", self._auth_mode.value)
        if self._auth_mode is AuthMode.API_KEY:
            tokens = await auth.refresh_client_app_token(refresh_token)
        else:
            tokens = await auth.refresh_short_lived_token(refresh_token)

        if not tokens.access_token:
            raise AuthenticationError("Token refresh succeeded but returned no access token")

        self.set_token(tokens.access_token)
        if tokens.refresh_token:
            self.set_refresh_token(tokens.refresh_token)
        return tokens.access_token

    def _process_queue(self, *, token: str | None = None, error: BaseException | None = None) -> None:
        waiters, self._pending = self._pending, []
        for resolve, reject in waiters:
            if error is not None:
                reject(error)
            else:
                resolve(token or "")

    async def _replay(self, request: httpx.Request, token: str) -> httpx.Response:
        request.headers["Authorization"] = f"Bearer {token}"
        return await self._transport.send(request)
