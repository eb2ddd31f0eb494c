from fastapi import Depends, Request

from email_service.core.redis_client import redis_client
from email_service.services.dead_letter_service import DeadLetterService
from email_service.services.email_queue import EmailQueue
from email_service.services.email_service import EmailService


def get_email_queue(request: Request) -> EmailQueue:
    """The queue instance created during application startup."""
    return request.app.state.email_queue


def get_email_service(queue: EmailQueue = Depends(get_email_queue)) -> EmailService:
    return EmailService(queue)


def get_dead_letter_service() -> DeadLetterService:
    return DeadLetterService(redis_client)
