from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import BaseResponse


class EmailType(str, Enum):
    """Transactional email types known to the template renderer."""

    VERIFICATION = "verification"
    WELCOME = "welcome"
    PASSWORD_RESET = "password-reset"
    PASSWORD_CHANGED = "password-changed"
    TWO_FACTOR_ENABLED = "2fa-enabled"
    TWO_FACTOR_DISABLED = "2fa-disabled"
    WAGER_INVITATION = "wager-invitation"
    QUIZ_INVITATION = "quiz-invitation"
    WAGER_SETTLEMENT = "wager-settlement"
    WAGER_JOINED = "wager-joined"
    BALANCE_UPDATE = "balance-update"
    QUIZ_SETTLEMENT = "quiz-settlement"


# Names used by notification triggers and older callers
EMAIL_TYPE_ALIASES: Dict[str, EmailType] = {
    "wager_resolved": EmailType.WAGER_SETTLEMENT,
    "quiz_settled": EmailType.QUIZ_SETTLEMENT,
}


def normalize_email_type(value: Any) -> EmailType:
    """Resolve an EmailType from its canonical name or a legacy alias."""
    if isinstance(value, EmailType):
        return value
    name = str(value).strip().lower()
    if name in EMAIL_TYPE_ALIASES:
        return EMAIL_TYPE_ALIASES[name]
    return EmailType(name.replace("_", "-"))


class EmailRequest(BaseModel):
    """Schema for a fire-and-forget email request."""

    to: EmailStr = Field(..., description="Recipient address")
    type: EmailType = Field(..., description="Email template type")
    data: Dict[str, Any] = Field(default_factory=dict, description="Template payload")
    subject: Optional[str] = Field(None, description="Overrides the default subject")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> EmailType:
        return normalize_email_type(value)


class RenderedEmail(BaseModel):
    """Fully rendered message ready for the transport."""

    to: str
    subject: str
    html: str
    text: str


class EmailQueueStatus(BaseModel):
    """Introspection snapshot of the email queue."""

    queue_length: int = Field(..., description="Messages waiting or awaiting retry re-insertion")
    processing: bool = Field(..., description="True while the processing loop is iterating")
    pending_retries: int = Field(0, description="Messages sleeping in a retry backoff window")


class NotificationEvent(BaseModel):
    """Notification raised by the platform that may translate into an email."""

    to: EmailStr
    type: str = Field(..., description="Notification type, e.g. wager_resolved")
    recipient_name: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DiagnosticEmailRequest(BaseModel):
    email: EmailStr
    type: EmailType = EmailType.WELCOME

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> EmailType:
        return normalize_email_type(value)


class EmailAcceptedResponse(BaseResponse):
    """Response for requests handed to the background queue."""

    status: str = Field("queued", description="queued | skipped")


class DeadLetterEntry(BaseModel):
    id: str
    to: str
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    subject: Optional[str] = None
    retry_count: int = 0
    failed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class DeadLetterListResponse(BaseResponse):
    total: int
    items: List[DeadLetterEntry]


class RequeueResponse(BaseResponse):
    requeued: int
