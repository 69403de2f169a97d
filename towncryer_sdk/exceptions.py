"""Custom exceptions used by the Towncryer Python SDK."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    import httpx


class TowncryerSDKError(Exception):
    """Base class for SDK errors."""


class ApiError(TowncryerSDKError):
    """Raised when a call to the Towncryer API fails.

    ``status_code`` is ``None`` when the request never produced a response
    (connection errors, timeouts).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.response = response

    @property
    def status(self) -> int | None:
        return self.status_code


class AuthenticationError(TowncryerSDKError):
    """Raised when credentials are missing or cannot be exchanged."""


class RefreshTokenMissingError(AuthenticationError):
    """Raised when an access token expired and no refresh token is held."""


class ServiceError(TowncryerSDKError):
    """Raised when a high-level service operation fails."""


class PushNotificationError(TowncryerSDKError):
    """Raised when push notification setup or usage fails."""
