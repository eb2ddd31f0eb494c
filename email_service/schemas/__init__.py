from .common import BaseResponse, ErrorResponse
from .email import (
    EmailType, EmailRequest, RenderedEmail, EmailQueueStatus, NotificationEvent,
    DiagnosticEmailRequest, EmailAcceptedResponse, DeadLetterEntry, DeadLetterListResponse,
    RequeueResponse, normalize_email_type,
)
from .settings import SettingResponse, SettingUpdateRequest, SettingListResponse

__all__ = [
    # Common
    "BaseResponse", "ErrorResponse",

    # Email
    "EmailType", "EmailRequest", "RenderedEmail", "EmailQueueStatus", "NotificationEvent",
    "DiagnosticEmailRequest", "EmailAcceptedResponse", "DeadLetterEntry", "DeadLetterListResponse",
    "RequeueResponse", "normalize_email_type",

    # Settings
    "SettingResponse", "SettingUpdateRequest", "SettingListResponse",
]
