"""Typed sub-clients for the Towncryer API operation groups."""
from __future__ import annotations

from enum import Enum
from typing import Any, Mapping
from urllib.parse import quote

from .models import (
    CreateCustomerRequest,
    MessageStats,
    PaginatePage,
    PublishEventPayload,
    ScheduleInfo,
    SendBulkMessagesPayload,
    TokenPair,
)
from .transport import Transport


class ApiName(str, Enum):
    """Operation groups exposed through :meth:`ApiSession.get_api`."""

    AUTH = "auth"
    EVENTS = "events"
    CUSTOMERS = "customers"
    MESSAGES = "messages"


class BaseApi:
    """Sub-client bound to a session transport handle."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    def bind(self, transport: Transport) -> None:
        """Point the sub-client at a freshly built transport handle."""
        self._transport = transport


class AuthApi(BaseApi):
    """Token exchange endpoints.

    These requests are sent pre-marked as retried so a 401 from the auth service
    is reported as-is instead of triggering another refresh.
    """

    async def client_app_login(self, api_key: str) -> TokenPair:
        response = await self._transport.post("/auth/client-apps/login", json={"apiKey": api_key}, retried=True)
        return TokenPair.from_payload(response.json())

    async def refresh_client_app_token(self, refresh_token: str) -> TokenPair:
        response = await self._transport.post(
            "/auth/client-apps/refresh",
            json={"refreshToken": refresh_token},
            retried=True,
        )
        return TokenPair.from_payload(response.json())

    async def refresh_short_lived_token(self, refresh_token: str) -> TokenPair:
        response = await self._transport.post(
            "/auth/tokens/refresh",
            json={"refreshToken": refresh_token},
            retried=True,
        )
        return TokenPair.from_payload(response.json())


class EventsApi(BaseApi):
    async def accept(self, payload: PublishEventPayload) -> Any:
        response = await self._transport.post("/events", json=payload)
        return _json_or_none(response)


class CustomersApi(BaseApi):
    async def create_customer(self, customer: CreateCustomerRequest) -> Any:
        response = await self._transport.post("/customers", json=customer)
        return _json_or_none(response)


class MessagesApi(BaseApi):
    async def send_message(self, payload: SendBulkMessagesPayload) -> ScheduleInfo:
        response = await self._transport.post("/messages", json=payload)
        return response.json()

    async def list_messages_by_customer_and_channel(
        self,
        customer_id: str,
        channel: str,
        page: int = 0,
        size: int = 10,
    ) -> PaginatePage:
        response = await self._transport.get(
            self._customer_channel_path(customer_id, channel),
            params={"page": page, "size": size},
        )
        return response.json()

    async def get_customer_messages_stats(self, customer_id: str, channel: str) -> MessageStats | None:
        response = await self._transport.get(f"{self._customer_channel_path(customer_id, channel)}/stats")
        return _json_or_none(response)

    async def mark_message_as_read(self, message_id: str) -> None:
        await self._transport.patch(f"/messages/{quote(message_id, safe='')}/read")

    def _customer_channel_path(self, customer_id: str, channel: str) -> str:
        return f"/messages/customers/{quote(customer_id, safe='')}/channels/{quote(channel, safe='')}"


API_CLASSES: Mapping[ApiName, type[BaseApi]] = {
    ApiName.AUTH: AuthApi,
    ApiName.EVENTS: EventsApi,
    ApiName.CUSTOMERS: CustomersApi,
    ApiName.MESSAGES: MessagesApi,
}


def _json_or_none(response: Any) -> Any:
    if not response.content:
        return None
    return response.json()
