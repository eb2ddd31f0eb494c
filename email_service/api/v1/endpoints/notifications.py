from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from email_service.api.deps import get_dead_letter_service, get_email_queue, get_email_service
from email_service.core.auth import verify_notification_secret, verify_test_email_access
from email_service.core.logging import get_logger
from email_service.schemas.common import BaseResponse
from email_service.schemas.email import (
    DeadLetterEntry,
    DeadLetterListResponse,
    DiagnosticEmailRequest,
    EmailAcceptedResponse,
    EmailRequest,
    EmailType,
    NotificationEvent,
    RequeueResponse,
)
from email_service.services.dead_letter_service import DeadLetterService
from email_service.services.email_queue import EmailQueue
from email_service.services.email_service import EmailService

router = APIRouter()
logger = get_logger(__name__)

# Payloads for the diagnostic endpoint, one per template
SAMPLE_DATA = {
    EmailType.VERIFICATION: {"verification_url": "https://wagr.app/verify-email?token=test"},
    EmailType.PASSWORD_RESET: {"reset_url": "https://wagr.app/reset-password?token=test", "reset_code": "123456"},
    EmailType.WAGER_INVITATION: {
        "inviter_name": "Ada",
        "wager_title": "Will it rain in Lagos tomorrow?",
        "side_a": "Yes",
        "side_b": "No",
        "amount": 1000,
    },
    EmailType.QUIZ_INVITATION: {"inviter_name": "Ada", "quiz_title": "Friday Trivia", "entry_fee": 500},
    EmailType.WAGER_SETTLEMENT: {"wager_title": "Will it rain in Lagos tomorrow?", "won": True, "amount": 1800},
    EmailType.WAGER_JOINED: {"wager_title": "Will it rain in Lagos tomorrow?", "participant_count": 2},
    EmailType.BALANCE_UPDATE: {"transaction_type": "deposit", "amount": 5000, "balance": 12500},
    EmailType.QUIZ_SETTLEMENT: {"quiz_title": "Friday Trivia", "won": True, "amount": 2500, "rank": 1},
}


@router.post(
    "/send-email",
    response_model=EmailAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(verify_notification_secret)],
)
async def send_email(
    request: EmailRequest,
    service: EmailService = Depends(get_email_service),
):
    """
    Queue an email for background delivery.

    - **to**: Recipient address
    - **type**: Template type (e.g. `welcome`, `wager-settlement`)
    - **data**: Template payload
    - **subject**: Optional subject override

    Returns immediately; delivery and retries happen in the background.
    """
    queued = await service.send_email_async(request)
    if not queued:
        return EmailAcceptedResponse(status="skipped", message="Email disabled by platform settings")
    return EmailAcceptedResponse(message="Email queued for delivery")


@router.post(
    "/events",
    response_model=EmailAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(verify_notification_secret)],
)
async def dispatch_event(
    event: NotificationEvent,
    service: EmailService = Depends(get_email_service),
):
    """Translate a platform notification into the matching email."""
    queued = await service.dispatch_notification(event)
    if not queued:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Notification type '{event.type}' produced no email",
        )
    return EmailAcceptedResponse(message="Email queued for delivery")


@router.post(
    "/test-email",
    response_model=BaseResponse,
    dependencies=[Depends(verify_test_email_access)],
)
async def send_test_email(
    request: DiagnosticEmailRequest,
    service: EmailService = Depends(get_email_service),
):
    """Send a sample email synchronously to check SMTP configuration."""
    email_request = EmailRequest(
        to=request.email,
        type=request.type,
        data={"recipient_name": "Test User", **SAMPLE_DATA.get(request.type, {})},
    )
    try:
        sent = await service.send_email(email_request)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to send test email: {e}")

    if not sent:
        raise HTTPException(status_code=500, detail="Failed to send test email. Check SMTP configuration.")
    return BaseResponse(message=f"Test email sent to {request.email}")


@router.get(
    "/dead-letters",
    response_model=DeadLetterListResponse,
    dependencies=[Depends(verify_notification_secret)],
)
async def list_dead_letters(
    limit: int = Query(50, ge=1, le=500),
    dead_letters: DeadLetterService = Depends(get_dead_letter_service),
):
    """Emails that exhausted their retries, most recent first."""
    try:
        total = await dead_letters.count()
        entries = await dead_letters.peek(limit)
    except Exception as e:
        logger.error(f"Error reading dead letters: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve dead letters")

    items: List[DeadLetterEntry] = []
    for entry in entries:
        try:
            items.append(DeadLetterEntry.model_validate(entry))
        except ValidationError as e:
            logger.error(f"Skipping malformed dead letter: {e}", id=entry.get("id") if isinstance(entry, dict) else None)

    return DeadLetterListResponse(total=total, items=items)


@router.post(
    "/dead-letters/requeue",
    response_model=RequeueResponse,
    dependencies=[Depends(verify_notification_secret)],
)
async def requeue_dead_letters(
    count: int = Query(10, ge=1, le=500),
    queue: EmailQueue = Depends(get_email_queue),
    dead_letters: DeadLetterService = Depends(get_dead_letter_service),
):
    """Send the oldest dead letters again with a fresh retry budget."""
    try:
        requeued = await dead_letters.requeue(queue, count)
    except Exception as e:
        logger.error(f"Error requeueing dead letters: {e}")
        raise HTTPException(status_code=500, detail="Failed to requeue dead letters")

    return RequeueResponse(requeued=requeued, message=f"{requeued} email(s) requeued")


@router.delete(
    "/dead-letters",
    response_model=BaseResponse,
    dependencies=[Depends(verify_notification_secret)],
)
async def clear_dead_letters(
    dead_letters: DeadLetterService = Depends(get_dead_letter_service),
):
    try:
        await dead_letters.clear()
    except Exception as e:
        logger.error(f"Error clearing dead letters: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear dead letters")

    return BaseResponse(message="Dead-letter queue cleared")
