"""Main Towncryer SDK entrypoint."""
from __future__ import annotations

import os
from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx

from .config import AuthConfig, PushConfig, TowncryerConfig
from .config_file import load_config_file
from .customers import CustomerService
from .events import EventService
from .exceptions import PushNotificationError
from .messages import MessageService
from .models import (
    ContactFormData,
    CreateCustomerRequest,
    EmailSubscriptionOptions,
    PublishEventPayload,
    ScheduleInfo,
    SendBulkMessagesPayload,
)
from .push import NotificationCallback, PushMessagingProvider, PushNotificationService
from .responses import ApiResponse
from .session import DEFAULT_BASE_URL, ApiSession
from .transport import TransportFactory
from .utility import UtilityService
from .utils import environment_name


class Towncryer:
    """Friendly interface for publishing events, managing customers and messaging them.

    Settings resolve in this order: explicit keyword arguments, the ``config``
    object, a ``towncryer.yaml`` config file, ``TOWNCRYER_*`` environment
    variables, then defaults.

    Usage
    -----
    >>> async with Towncryer(api_key="ck_live_...", organisation_id="org_1") as towncryer:
    ...     await towncryer.publish_event({"name": "order.placed", "customer": {"externalId": "c-42"}})
    """

    def __init__(
        self,
        config: TowncryerConfig | Mapping[str, Any] | None = None,
        *,
        api_key: str | None = None,
        access_token: str | None = None,
        refresh_token: str | None = None,
        organisation_id: str | None = None,
        customer_id: str | None = None,
        base_url: str | None = None,
        config_path: str | None = None,
        push_provider: PushMessagingProvider | None = None,
        display_hook: NotificationCallback | None = None,
        session: ApiSession | None = None,
        transport_factory: TransportFactory = httpx.AsyncClient,
    ) -> None:
        self.config = _resolve_config(
            config,
            config_path=config_path,
            overrides={
                "base_url": base_url,
                "organisation_id": organisation_id,
                "customer_id": customer_id,
                "api_key": api_key,
                "access_token": access_token,
                "refresh_token": refresh_token,
            },
        )
        self.session = session or ApiSession.from_config(self.config, transport_factory=transport_factory)
        self.customer_id = self.config.customer_id or ""

        self._push_provider = push_provider
        self._display_hook = display_hook
        self._event_service = EventService(self.session)
        self._customer_service = CustomerService(self.session)
        self._message_service = MessageService(self.session)
        self._utility_service = UtilityService(self._event_service)
        self._push_notifications = self._build_push_service()

    async def __aenter__(self) -> Towncryer:
        await self.session.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.session.aclose()

    # ------------------------------------------------------------------
    # Customers, events and messages
    # ------------------------------------------------------------------
    async def create_customer(self, customer: CreateCustomerRequest) -> Any:
        return await self._customer_service.create_customer(customer)

    async def publish_event(self, event: PublishEventPayload) -> ApiResponse:
        return await self._event_service.publish_event(event)

    async def send_messages(self, messages: SendBulkMessagesPayload) -> ScheduleInfo:
        """Send emails, push notifications and SMS in bulk."""
        return await self._message_service.send_messages(messages)

    async def submit_contact_form(self, form: ContactFormData) -> ApiResponse:
        return await self._utility_service.submit_contact_form(form)

    async def subscribe_to_emails(
        self,
        email: str,
        options: EmailSubscriptionOptions | None = None,
    ) -> ApiResponse:
        return await self._utility_service.subscribe_to_emails(email, options)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------
    def set_access_token(self, token: str) -> None:
        self.session.set_token(token)

    def set_refresh_token(self, token: str) -> None:
        self.session.set_refresh_token(token)

    def set_customer_id(self, customer_id: str) -> None:
        """Switch the customer; the push service is rebuilt for a non-empty id."""
        self.customer_id = customer_id
        if customer_id:
            self._push_notifications = self._build_push_service()

    # ------------------------------------------------------------------
    # Push notifications
    # ------------------------------------------------------------------
    async def initialize(self) -> None:
        """Initialise the push messaging provider."""
        await self.get_push_notification_service().initialize()

    async def register_push_token(self, customer_id: str, token: str) -> ApiResponse:
        return await self.get_push_notification_service().register_token(customer_id, token)

    def get_push_notification_service(self) -> PushNotificationService:
        if self._push_notifications is None:
            raise PushNotificationError("Push notifications not initialized")
        return self._push_notifications

    def _build_push_service(self) -> PushNotificationService | None:
        if self._push_provider is None:
            return None
        return PushNotificationService(
            self._push_provider,
            self._event_service,
            self.session,
            self.customer_id,
            config=self.config.push,
            display_hook=self._display_hook,
        )


def _resolve_config(
    config: TowncryerConfig | Mapping[str, Any] | None,
    *,
    config_path: str | None,
    overrides: Mapping[str, str | None],
) -> TowncryerConfig:
    if isinstance(config, Mapping):
        config = TowncryerConfig.from_mapping(config)

    config_file = load_config_file(config_path)
    file_config = TowncryerConfig.from_mapping(config_file.as_mapping()) if config_file else None

    def resolve(key: str, *sources: str | None) -> str | None:
        explicit = overrides.get(key)
        if explicit is not None:
            return explicit
        for value in sources:
            if value:
                return value
        return os.getenv(environment_name(key)) or None

    def layered(getter: Any) -> list[str | None]:
        return [getter(source) if source else None for source in (config, file_config)]

    base_url = resolve("base_url", *layered(lambda c: c.base_url if c.base_url != DEFAULT_BASE_URL else None))
    auth = AuthConfig(
        api_key=resolve("api_key", *layered(lambda c: c.auth.api_key)),
        access_token=resolve("access_token", *layered(lambda c: c.auth.access_token)),
        refresh_token=resolve("refresh_token", *layered(lambda c: c.auth.refresh_token)),
    )
    push: PushConfig | None = next((c.push for c in (config, file_config) if c and c.push), None)
    timeout = next((c.timeout for c in (config, file_config) if c), 15.0)

    return TowncryerConfig(
        base_url=base_url or DEFAULT_BASE_URL,
        organisation_id=resolve("organisation_id", *layered(lambda c: c.organisation_id)),
        customer_id=resolve("customer_id", *layered(lambda c: c.customer_id)),
        auth=auth,
        push=push,
        timeout=timeout,
    )
