"""Form and subscription helpers built on top of event publishing."""
from __future__ import annotations

from .events import EventService
from .models import ContactFormData, EmailSubscriptionOptions, EventCustomer, PublishEventPayload
from .responses import ApiResponse, handle_api_error, standardize_api_response
from .utils import split_full_name, utc_timestamp

CONTACT_FORM_EVENT = "contact_form.submitted"
EMAIL_SUBSCRIPTION_EVENT = "email.subscription"


class UtilityService:
    """Publishes common website interactions as Towncryer events.

    Workflows configured in Towncryer can then react to them, for example by
    notifying support about a contact form or sending a subscription
    confirmation.
    """

    def __init__(self, events: EventService) -> None:
        self._events = events

    async def submit_contact_form(self, form: ContactFormData) -> ApiResponse:
        """Publish a ``contact_form.submitted`` event.

        The first word of ``form.name`` becomes the customer's first name, the
        remainder the last name.

        Example
        -------
        >>> await utility.submit_contact_form(ContactFormData(
        ...     name="John Doe",
        ...     email="john@example.com",
        ...     subject="Product Inquiry",
        ...     message="I would like more information about your services.",
        ... ))
        """
        first_name, last_name = split_full_name(form.name)
        customer: EventCustomer = {
            "externalId": form.email,
            "email": form.email,
            "firstName": first_name,
            "lastName": last_name,
        }
        event: PublishEventPayload = {
            "name": CONTACT_FORM_EVENT,
            "customer": customer,
            "data": {
                "subject": form.subject,
                "message": form.message,
                **(form.metadata or {}),
            },
        }
        return await self._publish(event)

    async def subscribe_to_emails(
        self,
        email: str,
        options: EmailSubscriptionOptions | None = None,
    ) -> ApiResponse:
        """Publish an ``email.subscription`` event for ``email``."""
        options = options or EmailSubscriptionOptions()
        customer: EventCustomer = {
            "externalId": email,
            "email": email,
            "firstName": options.first_name or "",
            "lastName": options.last_name or "",
        }
        event: PublishEventPayload = {
            "name": EMAIL_SUBSCRIPTION_EVENT,
            "customer": customer,
            "data": {
                "source": options.source or "website",
                "preferences": options.preferences or ["all"],
                "timestamp": utc_timestamp(),
                **(options.metadata or {}),
            },
        }
        return await self._publish(event)

    async def _publish(self, event: PublishEventPayload) -> ApiResponse:
        try:
            response = await self._events.publish_event(event)
        except Exception as exc:
            raise handle_api_error(exc)
        return standardize_api_response(response)
