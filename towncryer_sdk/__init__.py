"""Towncryer Python SDK public interface."""

from .config import AuthConfig, PushConfig, TowncryerConfig
from .customers import CustomerService
from .endpoints import ApiName, AuthApi, CustomersApi, EventsApi, MessagesApi
from .events import EventService
from .exceptions import (
    ApiError,
    AuthenticationError,
    PushNotificationError,
    RefreshTokenMissingError,
    ServiceError,
    TowncryerSDKError,
)
from .messages import MessageService
from .models import (
    ContactFormData,
    CreateCustomerRequest,
    EmailSubscriptionOptions,
    PublishEventPayload,
    PushNotification,
    PushNotificationStats,
    ScheduleInfo,
    SendBulkMessagesPayload,
    TokenPair,
)
from .push import PushMessagingProvider, PushNotificationService
from .responses import ApiResponse, handle_api_error, standardize_api_response
from .sdk import Towncryer
from .session import ApiSession, AuthMode
from .utility import UtilityService

__all__ = [
    "Towncryer",
    "TowncryerConfig",
    "AuthConfig",
    "PushConfig",
    "ApiSession",
    "AuthMode",
    "ApiName",
    "AuthApi",
    "EventsApi",
    "CustomersApi",
    "MessagesApi",
    "EventService",
    "CustomerService",
    "MessageService",
    "UtilityService",
    "PushNotificationService",
    "PushMessagingProvider",
    "ApiResponse",
    "standardize_api_response",
    "handle_api_error",
    "TowncryerSDKError",
    "ApiError",
    "AuthenticationError",
    "RefreshTokenMissingError",
    "ServiceError",
    "PushNotificationError",
    "ContactFormData",
    "EmailSubscriptionOptions",
    "CreateCustomerRequest",
    "PublishEventPayload",
    "SendBulkMessagesPayload",
    "ScheduleInfo",
    "PushNotification",
    "PushNotificationStats",
    "TokenPair",
]
