from .settings_service import SettingsService
from .email_settings import EmailSettingsLookup
from .email_templates import EmailTemplateRenderer, get_email_subject
from .email_transport import SMTPTransport
from .email_queue import EmailQueue, QueuedEmail
from .dead_letter_service import DeadLetterService
from .email_service import EmailService

__all__ = [
    "SettingsService",
    "EmailSettingsLookup",
    "EmailTemplateRenderer",
    "get_email_subject",
    "SMTPTransport",
    "EmailQueue",
    "QueuedEmail",
    "DeadLetterService",
    "EmailService",
]
