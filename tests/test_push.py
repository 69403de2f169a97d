from __future__ import annotations

import json
import logging

import httpx
import pytest

from towncryer_sdk.config import PushConfig
from towncryer_sdk.events import EventService
from towncryer_sdk.exceptions import PushNotificationError
from towncryer_sdk.push import (
    MAX_CACHED_NOTIFICATIONS,
    PUSH_NOTIFICATION_CHANNEL,
    TOKEN_REGISTERED_EVENT,
    PushNotificationService,
)
from towncryer_sdk.session import ApiSession


class MockTransport(httpx.MockTransport):
    pass


class FakeProvider:
    platform = "web"

    def __init__(self, *, token: str | None = "device-token", granted: bool = True, fail_init: bool = False) -> None:
        self.token = token
        self.granted = granted
        self.fail_init = fail_init
        self.initialized_with: list[PushConfig | None] = []
        self.vapid_keys: list[str | None] = []
        self.handler = None

    async def initialize(self, config: PushConfig | None) -> None:
        if self.fail_init:
            raise RuntimeError("no service worker")
        self.initialized_with.append(config)

    async def request_permission(self) -> bool:
        return self.granted

    async def get_token(self, vapid_key: str | None) -> str | None:
        self.vapid_keys.append(vapid_key)
        return self.token

    def on_message(self, handler) -> None:
        self.handler = handler


def recording_session(seen: list[httpx.Request], respond=None) -> ApiSession:
    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if respond is not None:
            return respond(request)
        return httpx.Response(200, json={"code": "200", "message": "Accepted"})

    def factory(**kwargs):
        return httpx.AsyncClient(transport=MockTransport(handler), **kwargs)

    return ApiSession("https://api.test/v1", token="t1", transport_factory=factory)


def make_service(session: ApiSession, provider: FakeProvider, customer_id: str | None = "cus_1", **kwargs):
    return PushNotificationService(provider, EventService(session), session, customer_id, **kwargs)


PUSH_CONFIG = PushConfig(api_key="k", project_id="p", messaging_sender_id="s", app_id="a", vapid_key="vapid")


@pytest.mark.asyncio
async def test_initialize_passes_config_to_provider():
    provider = FakeProvider()
    session = recording_session([])
    service = make_service(session, provider, config=PUSH_CONFIG)

    await service.initialize()

    assert service.initialized
    assert provider.initialized_with == [PUSH_CONFIG]
    await session.aclose()


@pytest.mark.asyncio
async def test_initialize_failure_is_wrapped():
    session = recording_session([])
    service = make_service(session, FakeProvider(fail_init=True))

    with pytest.raises(PushNotificationError, match="Failed to initialize push messaging: no service worker"):
        await service.initialize()

    assert not service.initialized
    await session.aclose()


@pytest.mark.asyncio
async def test_request_permission_registers_token_once_granted():
    seen: list[httpx.Request] = []
    provider = FakeProvider()
    session = recording_session(seen)
    service = make_service(session, provider, config=PUSH_CONFIG)

    async with session:
        await service.initialize()
        granted = await service.request_permission()

    assert granted is True
    assert provider.vapid_keys == ["vapid"]
    body = json.loads(seen[0].content)
    assert seen[0].url.path == "/v1/events"
    assert body["name"] == TOKEN_REGISTERED_EVENT
    assert body["customer"]["externalId"] == "cus_1"
    assert body["customer"]["pushNotificationToken"] == "device-token"
    assert body["data"]["platform"] == "web"


@pytest.mark.asyncio
async def test_request_permission_denied_registers_nothing():
    seen: list[httpx.Request] = []
    session = recording_session(seen)
    service = make_service(session, FakeProvider(granted=False))

    async with session:
        await service.initialize()
        assert await service.request_permission() is False

    assert seen == []


def test_receive_notifications_requires_initialisation():
    session = recording_session([])
    service = make_service(session, FakeProvider())

    with pytest.raises(PushNotificationError, match="not initialized"):
        service.receive_notifications(lambda notification: None)


@pytest.mark.asyncio
async def test_received_messages_are_mapped_cached_and_displayed():
    provider = FakeProvider()
    session = recording_session([])
    received = []
    displayed = []
    service = make_service(session, provider, display_hook=displayed.append)

    await service.initialize()
    service.receive_notifications(received.append)
    provider.handler(
        {
            "messageId": "m-1",
            "notification": {"title": "Order shipped", "body": "On its way", "image": "https://img.test/1.png"},
            "data": {"orderId": "o-1", "timestamp": "1700000000000"},
        }
    )

    notification = received[0]
    assert notification.id == "m-1"
    assert notification.title == "Order shipped"
    assert notification.image_url == "https://img.test/1.png"
    assert notification.timestamp == 1700000000000
    assert notification.data["orderId"] == "o-1"
    assert displayed == [notification]
    assert service.cached_notifications() == [notification]
    await session.aclose()


@pytest.mark.asyncio
async def test_notification_cache_is_capped_newest_first():
    provider = FakeProvider()
    session = recording_session([])
    service = make_service(session, provider)

    await service.initialize()
    service.receive_notifications(lambda notification: None)
    for index in range(MAX_CACHED_NOTIFICATIONS + 5):
        provider.handler({"messageId": f"m-{index}", "notification": {"title": "t", "body": "b"}})

    cached = service.cached_notifications()
    assert len(cached) == MAX_CACHED_NOTIFICATIONS
    assert cached[0].id == f"m-{MAX_CACHED_NOTIFICATIONS + 4}"
    assert cached[-1].id == "m-5"
    await session.aclose()


@pytest.mark.asyncio
async def test_non_numeric_timestamp_logs_warning(caplog):
    provider = FakeProvider()
    session = recording_session([])
    service = make_service(session, provider)

    await service.initialize()
    service.receive_notifications(lambda notification: None)
    with caplog.at_level(logging.WARNING, logger="towncryer_sdk.push"):
        provider.handler({"notification": {"title": "t"}, "data": {"timestamp": "yesterday"}})

    assert "non-numeric notification timestamp" in caplog.text
    assert service.cached_notifications()[0].timestamp > 0
    await session.aclose()


@pytest.mark.asyncio
async def test_get_message_history_queries_push_channel():
    seen: list[httpx.Request] = []
    session = recording_session(
        seen,
        respond=lambda request: httpx.Response(200, json={"items": [], "page": 2, "size": 5, "total": 0}),
    )
    service = make_service(session, FakeProvider())

    async with session:
        page = await service.get_message_history(page=2, size=5)

    assert page["page"] == 2
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == f"/v1/messages/customers/cus_1/channels/{PUSH_NOTIFICATION_CHANNEL}"
    assert request.url.params["page"] == "2"
    assert request.url.params["size"] == "5"


@pytest.mark.asyncio
async def test_history_and_stats_require_customer():
    session = recording_session([])
    service = make_service(session, FakeProvider(), customer_id=None)

    with pytest.raises(PushNotificationError, match="Customer ID is required"):
        await service.get_message_history()
    with pytest.raises(PushNotificationError, match="Customer ID is required"):
        await service.get_stats()
    await session.aclose()


@pytest.mark.asyncio
async def test_get_stats_computes_unread():
    seen: list[httpx.Request] = []
    session = recording_session(seen, respond=lambda request: httpx.Response(200, json={"total": 12, "read": 9}))
    service = make_service(session, FakeProvider())

    async with session:
        stats = await service.get_stats()

    assert stats.total == 12
    assert stats.unread == 3
    assert stats.last_updated > 0
    assert seen[0].url.path.endswith(f"/channels/{PUSH_NOTIFICATION_CHANNEL}/stats")


@pytest.mark.asyncio
async def test_get_stats_empty_body_returns_zeros():
    session = recording_session([], respond=lambda request: httpx.Response(200))
    service = make_service(session, FakeProvider())

    async with session:
        stats = await service.get_stats()

    assert (stats.total, stats.unread) == (0, 0)


@pytest.mark.asyncio
async def test_get_stats_failure_is_wrapped():
    session = recording_session([], respond=lambda request: httpx.Response(500, json={"message": "db down"}))
    service = make_service(session, FakeProvider())

    async with session:
        with pytest.raises(PushNotificationError, match="Failed to get notification statistics: db down"):
            await service.get_stats()


@pytest.mark.asyncio
async def test_mark_read_validates_and_updates_cache():
    seen: list[httpx.Request] = []
    provider = FakeProvider()
    session = recording_session(seen, respond=lambda request: httpx.Response(204))
    service = make_service(session, provider)

    async with session:
        with pytest.raises(PushNotificationError, match="Notification ID is required"):
            await service.mark_read("")

        await service.initialize()
        service.receive_notifications(lambda notification: None)
        provider.handler({"messageId": "m-1", "notification": {"title": "t", "body": "b"}})
        await service.mark_read("m-1")

    assert seen[0].method == "PATCH"
    assert seen[0].url.path == "/v1/messages/m-1/read"
    assert service.cached_notifications()[0].read is True


@pytest.mark.asyncio
async def test_register_token_validates_arguments():
    session = recording_session([])
    service = make_service(session, FakeProvider())

    with pytest.raises(PushNotificationError):
        await service.register_token("", "tok")
    with pytest.raises(PushNotificationError):
        await service.register_token("cus_1", "")
    await session.aclose()


@pytest.mark.asyncio
async def test_register_token_adopts_customer():
    seen: list[httpx.Request] = []
    session = recording_session(seen)
    service = make_service(session, FakeProvider(), customer_id=None)

    async with session:
        result = await service.register_token("cus_7", "tok")

    assert result.code == "200"
    assert service.customer_id == "cus_7"
    assert json.loads(seen[0].content)["customer"]["externalId"] == "cus_7"


@pytest.mark.asyncio
async def test_register_token_failure_reported_in_response():
    session = recording_session([], respond=lambda request: httpx.Response(400, json={"message": "bad token"}))
    service = make_service(session, FakeProvider())

    async with session:
        result = await service.register_token("cus_1", "tok")

    assert result.code == "500"
    assert result.message == "bad token"
