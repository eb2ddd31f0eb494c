"""
Unit tests for the EmailService facade.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from email_service.schemas.email import EmailRequest, EmailType, NotificationEvent
from email_service.services.email_service import EmailService


class TestEmailService:
    """Test cases for EmailService."""

    @pytest.fixture
    def queue(self, renderer, transport):
        queue = MagicMock()
        queue.enqueue = AsyncMock(return_value=True)
        queue.renderer = renderer
        queue.transport = transport
        return queue

    @pytest.fixture
    def service(self, queue):
        service = EmailService(queue)
        service.app_url = "https://wagr.app"
        return service

    def queued_request(self, queue) -> EmailRequest:
        return queue.enqueue.await_args.args[0]

    @pytest.mark.asyncio
    async def test_send_email_bypasses_queue(self, service, queue, transport, make_request):
        result = await service.send_email(make_request())

        assert result is True
        assert len(transport.calls) == 1
        queue.enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_email_async_enqueues(self, service, queue, make_request):
        request = make_request()

        assert await service.send_email_async(request) is True
        queue.enqueue.assert_awaited_once_with(request)

    @pytest.mark.asyncio
    async def test_wager_settlement_helper(self, service, queue):
        await service.send_wager_settlement_email(
            "ada@example.com", wager_id="w1", wager_title="Rain tomorrow", won=True, amount=1800
        )

        request = self.queued_request(queue)
        assert request.type == EmailType.WAGER_SETTLEMENT
        assert request.data["won"] is True
        assert request.data["wager_url"] == "https://wagr.app/wager/w1"

    @pytest.mark.asyncio
    async def test_quiz_invitation_helper(self, service, queue):
        await service.send_quiz_invitation_email(
            "ada@example.com", quiz_id="q9", quiz_title="Trivia", inviter_name="Grace", entry_fee=500
        )

        request = self.queued_request(queue)
        assert request.type == EmailType.QUIZ_INVITATION
        assert request.data["quiz_url"] == "https://wagr.app/quizzes/q9"
        assert request.data["inviter_name"] == "Grace"

    @pytest.mark.asyncio
    async def test_dispatch_wager_resolved(self, service, queue):
        event = NotificationEvent(
            to="ada@example.com",
            type="wager_resolved",
            recipient_name="Ada",
            metadata={"wager_id": "w1", "wager_title": "Rain tomorrow", "won": False, "amount": 900},
        )

        assert await service.dispatch_notification(event) is True
        request = self.queued_request(queue)
        assert request.type == EmailType.WAGER_SETTLEMENT
        assert request.data["recipient_name"] == "Ada"
        assert request.data["won"] is False

    @pytest.mark.asyncio
    async def test_dispatch_balance_update(self, service, queue):
        event = NotificationEvent(
            to="ada@example.com", type="balance_update", metadata={"amount": 5000, "type": "withdrawal"}
        )

        assert await service.dispatch_notification(event) is True
        request = self.queued_request(queue)
        assert request.type == EmailType.BALANCE_UPDATE
        assert request.data["transaction_type"] == "withdrawal"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["quiz_settled", "quiz-settlement"])
    async def test_dispatch_quiz_settlement_aliases(self, service, queue, kind):
        event = NotificationEvent(
            to="ada@example.com", type=kind, metadata={"quiz_id": "q1", "won": True, "amount": 100, "rank": 2}
        )

        assert await service.dispatch_notification(event) is True
        request = self.queued_request(queue)
        assert request.type == EmailType.QUIZ_SETTLEMENT
        assert request.data["rank"] == 2

    @pytest.mark.asyncio
    async def test_dispatch_welcome(self, service, queue):
        event = NotificationEvent(to="ada@example.com", type="welcome", recipient_name="Ada")

        assert await service.dispatch_notification(event) is True
        assert self.queued_request(queue).type == EmailType.WELCOME

    @pytest.mark.asyncio
    async def test_dispatch_missing_metadata(self, service, queue):
        event = NotificationEvent(to="ada@example.com", type="wager_joined", metadata={})

        assert await service.dispatch_notification(event) is False
        queue.enqueue.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind, metadata", [
        ("wager_resolved", {"wager_id": "w1", "amount": 900}),
        ("quiz_settled", {"quiz_id": "q1", "amount": 100}),
        ("balance_update", {"amount": 5000}),
    ])
    async def test_dispatch_requires_outcome(self, service, queue, kind, metadata):
        event = NotificationEvent(to="ada@example.com", type=kind, metadata=metadata)

        assert await service.dispatch_notification(event) is False
        queue.enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_dispatch_unknown_type(self, service, queue):
        event = NotificationEvent(to="ada@example.com", type="kyc_approved")

        assert await service.dispatch_notification(event) is False
        queue.enqueue.assert_not_called()
