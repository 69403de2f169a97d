"""Push notification registration, history and display helpers.

The SDK does not talk to a push transport itself. Applications supply a
:class:`PushMessagingProvider` (for example a thin adapter over Firebase Cloud
Messaging) that hands out device tokens and forwards incoming messages; this
module registers those tokens with Towncryer and keeps track of what arrived.
"""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from .config import PushConfig
from .endpoints import ApiName
from .events import EventService
from .exceptions import PushNotificationError
from .models import PaginatePage, PublishEventPayload, PushNotification, PushNotificationStats
from .responses import ApiResponse, handle_api_error
from .session import ApiSession
from .utils import now_ms, utc_timestamp

logger = logging.getLogger("towncryer_sdk.push")

PUSH_NOTIFICATION_CHANNEL = "PushNotification"
TOKEN_REGISTERED_EVENT = "PushNotificationTokenRegisteredEvent"
MAX_CACHED_NOTIFICATIONS = 50

MessageHandler = Callable[[Mapping[str, Any]], None]
NotificationCallback = Callable[[PushNotification], None]


class PushMessagingProvider(Protocol):
    """Surface the push service needs from a messaging provider.

    ``platform`` is reported when registering a token (``"android"``, ``"ios"``,
    ``"web"``...). Incoming messages use the FCM layout::

        {"messageId": "...", "notification": {"title": ..., "body": ..., "image": ...}, "data": {...}}
    """

    platform: str

    async def initialize(self, config: PushConfig | None) -> None: ...

    async def request_permission(self) -> bool: ...

    async def get_token(self, vapid_key: str | None) -> str | None: ...

    def on_message(self, handler: MessageHandler) -> None: ...


class PushNotificationService:
    """Registers device tokens and exposes the push channel of a customer."""

    def __init__(
        self,
        provider: PushMessagingProvider,
        events: EventService,
        session: ApiSession,
        customer_id: str | None = None,
        *,
        config: PushConfig | None = None,
        display_hook: NotificationCallback | None = None,
    ) -> None:
        self.customer_id = customer_id or None
        self._provider = provider
        self._events = events
        self._messages = session.get_api(ApiName.MESSAGES)
        self._config = config
        self._display_hook = display_hook
        self._initialized = False
        self._cache: dict[str, deque[PushNotification]] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        try:
            await self._provider.initialize(self._config)
        except Exception as exc:
            raise PushNotificationError(f"Failed to initialize push messaging: {exc}") from exc
        self._initialized = True

    async def request_permission(self) -> bool:
        """Ask the user for permission; registers the device token once granted."""
        try:
            granted = bool(await self._provider.request_permission())
            if granted and self._initialized and self.customer_id:
                await self._get_and_register_token()
        except Exception as exc:
            raise PushNotificationError(f"Failed to request notification permission: {exc}") from exc
        return granted

    def receive_notifications(self, callback: NotificationCallback) -> None:
        if not self._initialized:
            raise PushNotificationError("Push messaging not initialized, notifications will not be received")

        def handle(message: Mapping[str, Any]) -> None:
            notification = self._to_notification(message)
            callback(notification)
            if self._display_hook is not None:
                self._display_hook(notification)

        try:
            self._provider.on_message(handle)
        except Exception as exc:
            raise PushNotificationError(f"Failed to set up notification receiver: {exc}") from exc

    def cached_notifications(self) -> list[PushNotification]:
        """Notifications received for the current customer, newest first."""
        if not self.customer_id:
            return []
        return list(self._cache.get(self.customer_id, ()))

    async def get_message_history(self, page: int = 0, size: int = 10) -> PaginatePage:
        if not self.customer_id:
            raise PushNotificationError("Customer ID is required to get message history")
        return await self._messages.list_messages_by_customer_and_channel(
            self.customer_id,
            PUSH_NOTIFICATION_CHANNEL,
            page,
            size,
        )

    async def get_stats(self) -> PushNotificationStats:
        if not self.customer_id:
            raise PushNotificationError("Customer ID is required to get notification stats")

        try:
            stats = await self._messages.get_customer_messages_stats(self.customer_id, PUSH_NOTIFICATION_CHANNEL)
        except Exception as exc:
            raise PushNotificationError(f"Failed to get notification statistics: {exc}") from exc

        if not stats:
            return PushNotificationStats(total=0, unread=0, last_updated=now_ms())

        total = int(stats.get("total") or 0)
        read = int(stats.get("read") or 0)
        return PushNotificationStats(total=total, unread=total - read, last_updated=now_ms())

    async def mark_read(self, notification_id: str) -> None:
        if not self.customer_id:
            raise PushNotificationError("Customer ID is required to mark a notification as read")
        if not notification_id:
            raise PushNotificationError("Notification ID is required")

        try:
            await self._messages.mark_message_as_read(notification_id)
        except Exception as exc:
            raise handle_api_error(exc)

        for notification in self._cache.get(self.customer_id, ()):
            if notification.id == notification_id:
                notification.read = True

    async def register_token(self, customer_id: str, token: str) -> ApiResponse:
        """Publish the device token for ``customer_id``.

        Publishing failures are reported through the returned response
        (``code="500"``) rather than raised.
        """
        if not customer_id:
            raise PushNotificationError("Customer ID is required to register a push token")
        if not token:
            raise PushNotificationError("Push notification token is required")

        self.customer_id = customer_id
        payload: PublishEventPayload = {
            "name": TOKEN_REGISTERED_EVENT,
            "customer": {
                "externalId": customer_id,
                "firstName": "",
                "lastName": "",
                "email": "",
                "pushNotificationToken": token,
            },
            "data": {
                "platform": getattr(self._provider, "platform", None) or "unknown",
                "timestamp": utc_timestamp(),
            },
        }
        try:
            return await self._events.publish_event(payload)
        except Exception as exc:
            api_error = handle_api_error(exc)
            return ApiResponse(code="500", message=api_error.message or "Failed to register token")

    async def _get_and_register_token(self) -> str | None:
        if not self._initialized:
            raise PushNotificationError("Push messaging not initialized")

        vapid_key = self._config.vapid_key if self._config else None
        token = await self._provider.get_token(vapid_key)
        if not token or not self.customer_id:
            return None
        await self.register_token(self.customer_id, token)
        return token

    def _to_notification(self, message: Mapping[str, Any]) -> PushNotification:
        content = message.get("notification") or {}
        data = dict(message.get("data") or {})
        notification = PushNotification(
            id=message.get("messageId") or f"notification-{now_ms()}",
            title=content.get("title") or "",
            body=content.get("body") or "",
            data=data,
            image_url=content.get("image"),
            timestamp=_parse_timestamp(data.get("timestamp")),
        )

        if self.customer_id:
            cache = self._cache.setdefault(self.customer_id, deque(maxlen=MAX_CACHED_NOTIFICATIONS))
            cache.appendleft(notification)

        return notification


def _parse_timestamp(value: Any) -> int:
    if value is None or value == "":
        return now_ms()
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric notification timestamp %r", value)
        return now_ms()
