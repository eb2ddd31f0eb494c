from typing import Any, Dict, Optional

from email_service.core.config import settings
from email_service.core.logging import get_logger
from email_service.schemas.email import EmailRequest, EmailType, NotificationEvent


class EmailService:
    """
    Entry point used by the API and other services to send email.

    The ``send_*_email`` helpers build the template payload for each
    notification and hand it to the background queue; they never wait for
    delivery.
    """

    # Metadata a notification event must carry before it can become an email
    EVENT_REQUIREMENTS = {
        "wager_resolved": ("wager_id", "won"),
        "wager_joined": ("wager_id",),
        "balance_update": ("amount", "type"),
        "welcome": (),
        "quiz_settled": ("quiz_id", "won"),
    }

    def __init__(self, queue, renderer=None, transport=None):
        self.queue = queue
        self.renderer = renderer or queue.renderer
        self.transport = transport or queue.transport
        self.logger = get_logger(self.__class__.__name__)
        self.app_url = settings.APP_URL.rstrip("/")

    async def send_email(self, request: EmailRequest) -> bool:
        """Render and send immediately, bypassing the queue and its retries."""
        try:
            rendered = self.renderer.render(request.type, request.data, str(request.to), request.subject)
            return await self.transport.send(rendered)
        except Exception as e:
            self.logger.error(f"Error sending email: {e}", to=str(request.to), type=request.type.value)
            raise

    async def send_email_async(self, request: EmailRequest) -> bool:
        return await self.queue.enqueue(request)

    async def _queue(self, to: str, email_type: EmailType, data: Dict[str, Any], subject: Optional[str] = None) -> bool:
        request = EmailRequest(to=to, type=email_type, data=data, subject=subject)
        return await self.queue.enqueue(request)

    def _wager_url(self, wager_id: Any) -> str:
        return f"{self.app_url}/wager/{wager_id}"

    def _quiz_url(self, quiz_id: Any) -> str:
        return f"{self.app_url}/quizzes/{quiz_id}"

    async def send_welcome_email(self, to: str, recipient_name: Optional[str] = None) -> bool:
        return await self._queue(to, EmailType.WELCOME, {
            "recipient_name": recipient_name,
            "login_url": f"{self.app_url}/wagers",
        })

    async def send_wager_settlement_email(
        self,
        to: str,
        wager_id: Any,
        wager_title: str,
        won: bool,
        amount: float = 0,
        refunded: bool = False,
        recipient_name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> bool:
        return await self._queue(to, EmailType.WAGER_SETTLEMENT, {
            "recipient_name": recipient_name,
            "wager_title": wager_title,
            "won": won,
            "refunded": refunded,
            "amount": amount,
            "currency": currency,
            "wager_url": self._wager_url(wager_id),
        })

    async def send_wager_joined_email(
        self,
        to: str,
        wager_id: Any,
        wager_title: str,
        participant_count: int = 1,
        recipient_name: Optional[str] = None,
    ) -> bool:
        return await self._queue(to, EmailType.WAGER_JOINED, {
            "recipient_name": recipient_name,
            "wager_title": wager_title,
            "participant_count": participant_count,
            "wager_url": self._wager_url(wager_id),
        })

    async def send_balance_update_email(
        self,
        to: str,
        amount: float,
        transaction_type: str,
        balance: Optional[float] = None,
        recipient_name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> bool:
        return await self._queue(to, EmailType.BALANCE_UPDATE, {
            "recipient_name": recipient_name,
            "amount": amount,
            "transaction_type": transaction_type,
            "balance": balance,
            "currency": currency,
            "wallet_url": f"{self.app_url}/wallet",
        })

    async def send_quiz_settlement_email(
        self,
        to: str,
        quiz_id: Any,
        quiz_title: str,
        won: bool,
        amount: float = 0,
        rank: Optional[int] = None,
        recipient_name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> bool:
        return await self._queue(to, EmailType.QUIZ_SETTLEMENT, {
            "recipient_name": recipient_name,
            "quiz_title": quiz_title,
            "won": won,
            "amount": amount,
            "rank": rank,
            "currency": currency,
            "quiz_url": self._quiz_url(quiz_id),
        })

    async def send_password_changed_email(self, to: str, recipient_name: Optional[str] = None) -> bool:
        return await self._queue(to, EmailType.PASSWORD_CHANGED, {"recipient_name": recipient_name})

    async def send_wager_invitation_email(
        self,
        to: str,
        wager_id: Any,
        wager_title: str,
        inviter_name: Optional[str] = None,
        wager_description: Optional[str] = None,
        side_a: Optional[str] = None,
        side_b: Optional[str] = None,
        amount: Optional[float] = None,
        deadline: Optional[str] = None,
        recipient_name: Optional[str] = None,
    ) -> bool:
        return await self._queue(to, EmailType.WAGER_INVITATION, {
            "recipient_name": recipient_name,
            "inviter_name": inviter_name,
            "wager_title": wager_title,
            "wager_description": wager_description,
            "side_a": side_a,
            "side_b": side_b,
            "amount": amount,
            "deadline": deadline,
            "wager_url": self._wager_url(wager_id),
        })

    async def send_quiz_invitation_email(
        self,
        to: str,
        quiz_id: Any,
        quiz_title: str,
        inviter_name: Optional[str] = None,
        quiz_description: Optional[str] = None,
        entry_fee: Optional[float] = None,
        question_count: Optional[int] = None,
        deadline: Optional[str] = None,
        recipient_name: Optional[str] = None,
    ) -> bool:
        return await self._queue(to, EmailType.QUIZ_INVITATION, {
            "recipient_name": recipient_name,
            "inviter_name": inviter_name,
            "quiz_title": quiz_title,
            "quiz_description": quiz_description,
            "entry_fee": entry_fee,
            "question_count": question_count,
            "deadline": deadline,
            "quiz_url": self._quiz_url(quiz_id),
        })

    async def dispatch_notification(self, event: NotificationEvent) -> bool:
        """
        Turn a platform notification into the matching email.

        Returns False when the notification type has no email, required
        metadata is missing, or settings suppressed the email.
        """
        kind = event.type.strip().lower().replace("-", "_")
        if kind == "quiz_settlement":
            kind = "quiz_settled"

        required = self.EVENT_REQUIREMENTS.get(kind)
        if required is None:
            self.logger.info("No email for notification type", type=event.type)
            return False

        meta = event.metadata
        missing = [key for key in required if meta.get(key) is None]
        if missing:
            self.logger.warning("Notification metadata incomplete", type=event.type, missing=missing)
            return False

        to = str(event.to)
        name = event.recipient_name

        if kind == "wager_resolved":
            return await self.send_wager_settlement_email(
                to,
                wager_id=meta["wager_id"],
                wager_title=meta.get("wager_title") or "your wager",
                won=bool(meta["won"]),
                amount=meta.get("amount") or 0,
                refunded=bool(meta.get("refunded")),
                recipient_name=name,
                currency=meta.get("currency"),
            )
        if kind == "wager_joined":
            return await self.send_wager_joined_email(
                to,
                wager_id=meta["wager_id"],
                wager_title=meta.get("wager_title") or "your wager",
                participant_count=int(meta.get("participant_count") or 1),
                recipient_name=name,
            )
        if kind == "balance_update":
            return await self.send_balance_update_email(
                to,
                amount=meta["amount"],
                transaction_type=meta["type"],
                balance=meta.get("balance"),
                recipient_name=name,
                currency=meta.get("currency"),
            )
        if kind == "quiz_settled":
            return await self.send_quiz_settlement_email(
                to,
                quiz_id=meta["quiz_id"],
                quiz_title=meta.get("quiz_title") or "your quiz",
                won=bool(meta["won"]),
                amount=meta.get("amount") or 0,
                rank=meta.get("rank"),
                recipient_name=name,
                currency=meta.get("currency"),
            )
        return await self.send_welcome_email(to, recipient_name=name)
