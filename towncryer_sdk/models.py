"""Payload shapes exchanged with the Towncryer API and SDK value objects."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, TypedDict


class EventCustomer(TypedDict, total=False):
    """Customer block embedded in a published event."""
    externalId: str
    email: str
    firstName: str
    lastName: str
    phoneNumber: str
    pushNotificationToken: str


class PublishEventPayload(TypedDict, total=False):
    """Shape of the event publishing request."""
    name: str
    customer: EventCustomer
    data: dict[str, Any]


class CreateCustomerRequest(TypedDict, total=False):
    """Shape of the customer creation request."""
    externalId: str
    email: str
    firstName: str
    lastName: str
    phoneNumber: str
    pushNotificationToken: str
    attributes: dict[str, Any]


class EmailMessage(TypedDict, total=False):
    title: str
    body: str
    recipients: list[str]
    templateId: str
    data: dict[str, Any]


class PushNotificationMessage(TypedDict, total=False):
    title: str
    body: str
    recipients: list[str]
    data: dict[str, Any]
    imageUrl: str


class SmsMessage(TypedDict, total=False):
    body: str
    recipients: list[str]


class SendBulkMessagesPayload(TypedDict, total=False):
    """Shape of the multi-channel message request."""
    emails: list[EmailMessage]
    pushNotifications: list[PushNotificationMessage]
    smses: list[SmsMessage]
    scheduledAt: str


class ScheduleInfo(TypedDict, total=False):
    """Shape of the message scheduling response."""
    id: str
    status: str


class MessageStats(TypedDict, total=False):
    """Shape of the per-channel message statistics response."""
    total: int
    read: int


class PaginatePage(TypedDict, total=False):
    """Shape of a paginated message listing."""
    items: list[dict[str, Any]]
    page: int
    size: int
    total: int


@dataclass(slots=True)
class TokenPair:
    """Access and refresh tokens issued by the auth endpoints."""

    access_token: str | None
    refresh_token: str | None

    @classmethod
    def from_payload(cls, payload: Any) -> TokenPair:
        data = payload if isinstance(payload, Mapping) else {}
        # Some deployments wrap the pair in a ``data`` envelope.
        nested = data.get("data")
        if isinstance(nested, Mapping) and "accessToken" in nested:
            data = nested
        return cls(
            access_token=data.get("accessToken") or None,
            refresh_token=data.get("refreshToken") or None,
        )


@dataclass(slots=True)
class ContactFormData:
    """Contact form submission.

    Attributes:
        name: Full name of the contact
        email: Email address of the contact
        subject: Subject line of the form
        message: Message body
        metadata: Additional custom fields merged into the event data
    """

    name: str
    email: str
    subject: str
    message: str
    metadata: dict[str, Any] | None = None


@dataclass(slots=True)
class EmailSubscriptionOptions:
    """Optional details attached to an email subscription.

    Attributes:
        first_name: Subscriber first name
        last_name: Subscriber last name
        source: Where the subscription came from, e.g. ``newsletter_popup``
        preferences: Topics the subscriber opted into, e.g. ``product_updates``
        metadata: Additional custom fields merged into the event data
    """

    first_name: str | None = None
    last_name: str | None = None
    source: str | None = None
    preferences: list[str] | None = None
    metadata: dict[str, Any] | None = None


@dataclass(slots=True)
class PushNotification:
    """A push notification received on this device."""

    id: str
    title: str
    body: str
    timestamp: int
    data: dict[str, Any] = field(default_factory=dict)
    image_url: str | None = None
    read: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "timestamp": self.timestamp,
            "read": self.read,
        }
        if self.image_url is not None:
            result["imageUrl"] = self.image_url
        return result


@dataclass(slots=True)
class PushNotificationStats:
    total: int
    unread: int
    last_updated: int
