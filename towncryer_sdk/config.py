"""Configuration helpers for the Towncryer SDK."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .session import DEFAULT_BASE_URL, AuthMode


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


@dataclass(slots=True)
class AuthConfig:
    """Credentials used to authenticate against the Towncryer API.

    Attributes
    ----------
    api_key:
        Client-app API key. Exchanged for an access/refresh token pair on startup.
    access_token:
        Pre-issued bearer token. Takes precedence over ``api_key`` when both are set.
    refresh_token:
        Token used to renew an expired access token.
    """

    api_key: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AuthConfig:
        return cls(
            api_key=_pick(data, "api_key", "apiKey"),
            access_token=_pick(data, "access_token", "accessToken"),
            refresh_token=_pick(data, "refresh_token", "refreshToken"),
        )


@dataclass(slots=True)
class PushConfig:
    """Push messaging provider settings (Firebase web config layout)."""

    api_key: str
    project_id: str
    messaging_sender_id: str
    app_id: str
    auth_domain: str | None = None
    storage_bucket: str | None = None
    measurement_id: str | None = None
    vapid_key: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PushConfig:
        return cls(
            api_key=_pick(data, "api_key", "apiKey", default=""),
            project_id=_pick(data, "project_id", "projectId", default=""),
            messaging_sender_id=_pick(data, "messaging_sender_id", "messagingSenderId", default=""),
            app_id=_pick(data, "app_id", "appId", default=""),
            auth_domain=_pick(data, "auth_domain", "authDomain"),
            storage_bucket=_pick(data, "storage_bucket", "storageBucket"),
            measurement_id=_pick(data, "measurement_id", "measurementId"),
            vapid_key=_pick(data, "vapid_key", "vapidKey"),
        )


@dataclass(slots=True)
class TowncryerConfig:
    """Top-level SDK configuration.

    Attributes
    ----------
    base_url:
        Base URL for the Towncryer API, including the version prefix.
    organisation_id:
        Tenant identifier sent as ``X-Tenant-ID``. Applied whenever supplied, also
        alongside an access token.
    customer_id:
        Customer the push notification helpers act for.
    auth:
        Credentials; see :class:`AuthConfig`.
    push:
        Optional push messaging settings handed to the push provider.
    timeout:
        Per-request timeout in seconds.
    """

    base_url: str = DEFAULT_BASE_URL
    organisation_id: str | None = None
    customer_id: str | None = None
    auth: AuthConfig = field(default_factory=AuthConfig)
    push: PushConfig | None = None
    timeout: float = 15.0

    @property
    def auth_mode(self) -> AuthMode:
        if not self.auth.access_token and self.auth.api_key:
            return AuthMode.API_KEY
        return AuthMode.TOKEN

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TowncryerConfig:
        raw_auth = _pick(data, "auth", "auth_config", "authConfig", default={})
        raw_push = _pick(data, "push", "firebase")
        return cls(
            base_url=_pick(data, "base_url", "baseUrl", default=DEFAULT_BASE_URL),
            organisation_id=_pick(data, "organisation_id", "organisationId"),
            customer_id=_pick(data, "customer_id", "customerId"),
            auth=AuthConfig.from_mapping(raw_auth),
            push=PushConfig.from_mapping(raw_push) if raw_push else None,
            timeout=float(_pick(data, "timeout", default=15.0)),
        )
