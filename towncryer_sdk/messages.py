"""Helpers for sending multi-channel messages."""
from __future__ import annotations

from .endpoints import ApiName
from .exceptions import ServiceError
from .models import ScheduleInfo, SendBulkMessagesPayload
from .session import ApiSession


class MessageService:
    """Thin wrapper around the bulk messages endpoint."""

    def __init__(self, session: ApiSession) -> None:
        self._messages = session.get_api(ApiName.MESSAGES)

    async def send_messages(self, payload: SendBulkMessagesPayload) -> ScheduleInfo:
        """Schedule emails, push notifications and SMS in one call."""
        try:
            return await self._messages.send_message(payload)
        except Exception as exc:
            raise ServiceError(f"Failed to send messages: {exc}") from exc
