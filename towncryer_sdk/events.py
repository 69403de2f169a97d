"""Helpers for publishing events to Towncryer."""
from __future__ import annotations

from .endpoints import ApiName
from .models import PublishEventPayload
from .responses import ApiResponse, handle_api_error, standardize_api_response
from .session import ApiSession


class EventService:
    """Thin wrapper around the events endpoint."""

    def __init__(self, session: ApiSession) -> None:
        self._events = session.get_api(ApiName.EVENTS)

    async def publish_event(self, payload: PublishEventPayload) -> ApiResponse:
        """Publish an event, returning the standardised response.

        Raises :class:`~towncryer_sdk.exceptions.ApiError` when the request fails.
        """
        try:
            body = await self._events.accept(payload)
        except Exception as exc:
            raise handle_api_error(exc)
        return standardize_api_response(body)
