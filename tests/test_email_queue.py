"""
Unit tests for the background EmailQueue.
"""
import asyncio
import pytest
from unittest.mock import MagicMock

from email_service.schemas.email import EmailType
from email_service.services.email_queue import EmailDeliveryError, EmailQueue, QueuedEmail


async def wait_until_idle(queue: EmailQueue):
    """Let the processing loop run until it has nothing left to iterate."""
    for _ in range(100):
        if not queue.get_status().processing:
            return
        await asyncio.sleep(0)
    raise AssertionError("queue loop did not go idle")


class TestEnqueue:
    """Ordering and gating of newly queued emails."""

    @pytest.mark.asyncio
    async def test_first_attempts_are_fifo(self, email_queue, transport, make_request):
        for name in ("a", "b", "c"):
            await email_queue.enqueue(make_request(to=f"{name}@example.com"))

        await email_queue.drain()

        assert transport.recipients == ["a@example.com", "b@example.com", "c@example.com"]

    @pytest.mark.asyncio
    async def test_renders_before_sending(self, email_queue, transport, make_request):
        await email_queue.enqueue(make_request(email_type=EmailType.WELCOME))
        await email_queue.drain()

        sent = transport.calls[0]
        assert sent.subject == "Welcome to wagr!"
        assert "Hi Ada," in sent.html
        assert sent.text

    @pytest.mark.asyncio
    async def test_disabled_category_never_reaches_transport(
        self, email_queue, transport, settings_lookup, make_request
    ):
        settings_lookup.is_type_enabled.return_value = False

        queued = await email_queue.enqueue(make_request(email_type=EmailType.WAGER_JOINED))
        await email_queue.drain()

        assert queued is False
        assert transport.calls == []
        assert email_queue.get_status().queue_length == 0

    @pytest.mark.asyncio
    async def test_global_switch_checked_first(self, email_queue, transport, settings_lookup, make_request):
        settings_lookup.is_email_enabled.return_value = False

        queued = await email_queue.enqueue(make_request())

        assert queued is False
        settings_lookup.is_type_enabled.assert_not_called()
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_settings_failure_still_sends_once(self, email_queue, transport, settings_lookup, make_request):
        settings_lookup.is_email_enabled.side_effect = RuntimeError("database unavailable")

        queued = await email_queue.enqueue(make_request())
        await email_queue.drain()

        assert queued is True
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_without_settings_lookup_everything_is_sent(self, transport, renderer, fake_sleep, make_request):
        queue = EmailQueue(transport, renderer, sleep=fake_sleep)

        await queue.enqueue(make_request())
        await queue.drain()

        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_enqueues_start_one_loop(self, email_queue, transport, make_request):
        await asyncio.gather(*[
            email_queue.enqueue(make_request(to=f"user{i}@example.com")) for i in range(10)
        ])

        assert email_queue.loop_starts == 1

        await email_queue.drain()
        assert len(transport.calls) == 10

    @pytest.mark.asyncio
    async def test_ensure_processing_is_idempotent(self, email_queue, make_request):
        assert email_queue.ensure_processing() is False  # nothing queued

        await email_queue.enqueue(make_request())
        assert email_queue.ensure_processing() is False  # already running
        assert email_queue.loop_starts == 1

        await email_queue.drain()

    @pytest.mark.asyncio
    async def test_messages_get_unique_ids(self):
        first = QueuedEmail(to="a@example.com", type=EmailType.WELCOME)
        second = QueuedEmail(to="a@example.com", type=EmailType.WELCOME)

        assert first.id != second.id
        millis, suffix = first.id.split("-")
        assert millis.isdigit()
        assert len(suffix) == 9


class TestRetries:
    """Failure handling, backoff and the failure hook."""

    @pytest.mark.asyncio
    async def test_retry_cap_four_attempts_total(self, email_queue, transport, failure_hook, make_request):
        transport.default = False

        await email_queue.enqueue(make_request())
        await email_queue.drain()

        assert len(transport.calls) == 4
        failure_hook.assert_awaited_once()
        message, error = failure_hook.await_args.args
        assert message.retry_count == 3
        assert isinstance(error, EmailDeliveryError)

    @pytest.mark.asyncio
    async def test_backoff_is_linear(self, email_queue, transport, fake_sleep, make_request):
        transport.default = False

        await email_queue.enqueue(make_request())
        await email_queue.drain()

        assert fake_sleep.backoff_delays == [5.0, 10.0, 15.0]

    @pytest.mark.asyncio
    async def test_pacing_between_messages(self, email_queue, fake_sleep, make_request):
        await email_queue.enqueue(make_request(to="a@example.com"))
        await email_queue.enqueue(make_request(to="b@example.com"))
        await email_queue.drain()

        assert fake_sleep.delays == [0.05, 0.05]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, email_queue, transport, failure_hook, make_request):
        transport.outcomes = [False, True]

        await email_queue.enqueue(make_request())
        await email_queue.drain()

        assert len(transport.calls) == 2
        failure_hook.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_exception_counts_as_failure(self, email_queue, transport, make_request):
        transport.outcomes = [ConnectionError("reset by peer")]

        await email_queue.enqueue(make_request())
        await email_queue.drain()

        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_render_error_counts_as_failure(self, transport, fake_sleep, failure_hook, make_request):
        broken_renderer = MagicMock()
        broken_renderer.render.side_effect = ValueError("bad template")
        queue = EmailQueue(transport, broken_renderer, on_failure=failure_hook, sleep=fake_sleep)

        await queue.enqueue(make_request())
        await queue.drain()

        assert broken_renderer.render.call_count == 4
        assert transport.calls == []
        _, error = failure_hook.await_args.args
        assert isinstance(error, ValueError)

    @pytest.mark.asyncio
    async def test_retries_rejoin_the_tail(self, email_queue, transport, fake_sleep, make_request):
        fake_sleep.gate = asyncio.Event()
        transport.outcomes = [False]

        await email_queue.enqueue(make_request(to="first@example.com"))
        await email_queue.enqueue(make_request(to="second@example.com"))
        await wait_until_idle(email_queue)

        fake_sleep.gate.set()
        await email_queue.drain()

        assert transport.recipients == ["first@example.com", "second@example.com", "first@example.com"]

    @pytest.mark.asyncio
    async def test_sync_failure_hook_is_called(self, transport, renderer, fake_sleep, make_request):
        hook = MagicMock(return_value=None)
        transport.default = False
        queue = EmailQueue(transport, renderer, max_retries=0, on_failure=hook, sleep=fake_sleep)

        await queue.enqueue(make_request())
        await queue.drain()

        hook.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_break_the_queue(self, transport, renderer, fake_sleep, make_request):
        hook = MagicMock(side_effect=RuntimeError("redis down"))
        transport.outcomes = [False]
        queue = EmailQueue(transport, renderer, max_retries=0, on_failure=hook, sleep=fake_sleep)

        await queue.enqueue(make_request(to="a@example.com"))
        await queue.enqueue(make_request(to="b@example.com"))
        await queue.drain()

        assert transport.recipients == ["a@example.com", "b@example.com"]


class TestStatus:
    """Queue introspection and shutdown."""

    @pytest.mark.asyncio
    async def test_idle_status(self, email_queue):
        status = email_queue.get_status()

        assert status.queue_length == 0
        assert status.processing is False
        assert status.pending_retries == 0

    @pytest.mark.asyncio
    async def test_status_during_backoff(self, email_queue, transport, fake_sleep, make_request):
        fake_sleep.gate = asyncio.Event()
        transport.outcomes = [False]

        await email_queue.enqueue(make_request())
        await wait_until_idle(email_queue)

        status = email_queue.get_status()
        assert status.queue_length == 1
        assert status.pending_retries == 1
        assert status.processing is False

        fake_sleep.gate.set()
        await email_queue.drain()

        status = email_queue.get_status()
        assert status.queue_length == 0
        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_status_while_processing(self, email_queue, make_request):
        await email_queue.enqueue(make_request())

        status = email_queue.get_status()
        assert status.processing is True
        assert status.queue_length == 1

        await email_queue.drain()

    @pytest.mark.asyncio
    async def test_close_abandons_pending_retries(self, email_queue, transport, fake_sleep, make_request):
        fake_sleep.gate = asyncio.Event()
        transport.default = False

        await email_queue.enqueue(make_request())
        await wait_until_idle(email_queue)
        assert email_queue.get_status().pending_retries == 1

        await email_queue.close()

        status = email_queue.get_status()
        assert status.queue_length == 0
        assert status.pending_retries == 0
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_from_settings_uses_configured_tunables(self, transport, renderer):
        queue = EmailQueue.from_settings(transport, renderer)

        assert queue.max_retries == 3
        assert queue.retry_delay == 5.0
        assert queue.pacing_delay == 0.05
