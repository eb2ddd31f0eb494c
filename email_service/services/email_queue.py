"""
In-process background queue for transactional email.

Callers enqueue and move on; a single processing loop per queue instance
renders each message, hands it to the transport and retries failures with a
linear backoff. Messages live in memory only, so anything still queued at
shutdown is lost.
"""
import asyncio
import inspect
import random
import string
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Set, Union

from email_service.core.config import settings
from email_service.core.logging import get_logger
from email_service.schemas.email import EmailQueueStatus, EmailRequest, EmailType

logger = get_logger(__name__)

FailureHook = Callable[["QueuedEmail", Exception], Union[None, Awaitable[None]]]

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_message_id() -> str:
    return f"{int(time.time() * 1000)}-{''.join(random.choices(_ID_ALPHABET, k=9))}"


class EmailDeliveryError(Exception):
    """The transport reported that a message was not accepted."""


@dataclass
class QueuedEmail:
    to: str
    type: EmailType
    data: Dict[str, Any] = field(default_factory=dict)
    subject: Optional[str] = None
    id: str = field(default_factory=generate_message_id)
    retry_count: int = 0
    enqueued_at: float = field(default_factory=time.time)

    @classmethod
    def from_request(cls, request: EmailRequest) -> "QueuedEmail":
        return cls(to=str(request.to), type=request.type, data=dict(request.data), subject=request.subject)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "to": self.to,
            "type": self.type.value,
            "data": self.data,
            "subject": self.subject,
            "retry_count": self.retry_count,
        }


class EmailQueue:
    """
    FIFO email queue with bounded retries.

    A failed delivery is retried up to ``max_retries`` times, the n-th retry
    re-entering the tail of the queue ``retry_delay * n`` seconds later. The
    processing loop never sleeps through a backoff window; a delayed task
    re-inserts the message and restarts the loop if it went idle.
    """

    def __init__(
        self,
        transport,
        renderer,
        settings_lookup=None,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        pacing_delay: float = 0.05,
        on_failure: Optional[FailureHook] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.transport = transport
        self.renderer = renderer
        self.settings_lookup = settings_lookup
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.pacing_delay = pacing_delay
        self.on_failure = on_failure
        self._sleep = sleep

        self._queue: Deque[QueuedEmail] = deque()
        self._processing = False
        self._worker: Optional[asyncio.Task] = None
        self._retry_tasks: Set[asyncio.Task] = set()
        self._pending_retries = 0
        self.loop_starts = 0

    @classmethod
    def from_settings(cls, transport, renderer, settings_lookup=None, on_failure: Optional[FailureHook] = None):
        return cls(
            transport,
            renderer,
            settings_lookup=settings_lookup,
            max_retries=settings.EMAIL_QUEUE_MAX_RETRIES,
            retry_delay=settings.EMAIL_QUEUE_RETRY_DELAY_SECONDS,
            pacing_delay=settings.EMAIL_QUEUE_PACING_SECONDS,
            on_failure=on_failure,
        )

    async def enqueue(self, request: EmailRequest) -> bool:
        """
        Queue an email for background delivery.

        Returns False when platform settings disable email (globally or for
        this type). If the settings cannot be read the email is queued anyway.
        """
        if not await self._is_allowed(request):
            return False

        message = QueuedEmail.from_request(request)
        self._queue.append(message)
        logger.info(
            "Email queued",
            id=message.id,
            to=message.to,
            type=message.type.value,
            queue_length=len(self._queue),
        )
        self.ensure_processing()
        return True

    async def _is_allowed(self, request: EmailRequest) -> bool:
        if self.settings_lookup is None:
            return True
        try:
            if not await self.settings_lookup.is_email_enabled():
                logger.info("Email notifications disabled, skipping", to=str(request.to), type=request.type.value)
                return False
            if not await self.settings_lookup.is_type_enabled(request.type):
                logger.info("Email type disabled, skipping", to=str(request.to), type=request.type.value)
                return False
        except Exception as e:
            logger.error(f"Error checking email settings, queueing anyway: {e}", type=request.type.value)
        return True

    def ensure_processing(self) -> bool:
        """Start the processing loop unless one is already running."""
        if self._processing or not self._queue:
            return False
        self._processing = True
        self.loop_starts += 1
        self._worker = asyncio.get_running_loop().create_task(self._process_queue())
        return True

    async def _process_queue(self):
        try:
            while self._queue:
                message = self._queue.popleft()
                await self._deliver(message)
                if self.pacing_delay > 0:
                    await self._sleep(self.pacing_delay)
        finally:
            self._processing = False
            self._worker = None

    async def _deliver(self, message: QueuedEmail):
        log = logger.with_context(id=message.id, to=message.to, type=message.type.value, retry=message.retry_count)
        try:
            rendered = self.renderer.render(message.type, message.data, message.to, message.subject)
            sent = await self.transport.send(rendered)
        except Exception as e:
            log.error(f"Error sending email: {e}")
            await self._handle_failure(message, e)
            return

        if sent:
            log.info("Email delivered")
            return

        await self._handle_failure(message, EmailDeliveryError("Transport reported failure"))

    async def _handle_failure(self, message: QueuedEmail, error: Exception):
        if message.retry_count < self.max_retries:
            message.retry_count += 1
            delay = self.retry_delay * message.retry_count
            self._pending_retries += 1
            task = asyncio.get_running_loop().create_task(self._requeue_later(message, delay))
            self._retry_tasks.add(task)
            task.add_done_callback(self._retry_tasks.discard)
            logger.warning(
                "Email delivery failed, retry scheduled",
                id=message.id,
                to=message.to,
                retry=message.retry_count,
                max_retries=self.max_retries,
                delay=delay,
                error=str(error),
            )
            return

        logger.error(
            "Email delivery failed permanently",
            id=message.id,
            to=message.to,
            type=message.type.value,
            retry_count=message.retry_count,
            error=str(error),
        )
        await self._notify_failure(message, error)

    async def _requeue_later(self, message: QueuedEmail, delay: float):
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            self._pending_retries -= 1
            raise
        self._pending_retries -= 1
        self._queue.append(message)
        self.ensure_processing()

    async def _notify_failure(self, message: QueuedEmail, error: Exception):
        if self.on_failure is None:
            return
        try:
            result = self.on_failure(message, error)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Email failure hook raised: {e}", id=message.id)

    def get_status(self) -> EmailQueueStatus:
        return EmailQueueStatus(
            queue_length=len(self._queue) + self._pending_retries,
            processing=self._processing,
            pending_retries=self._pending_retries,
        )

    async def drain(self):
        """Wait until every message is delivered or permanently failed."""
        while True:
            tasks = set(self._retry_tasks)
            if self._worker is not None:
                tasks.add(self._worker)
            if not tasks:
                if not self._queue:
                    return
                self.ensure_processing()
                continue
            await asyncio.wait(tasks)

    async def close(self):
        """Cancel pending retries and the active loop; queued messages are dropped."""
        abandoned = len(self._queue) + self._pending_retries
        tasks = set(self._retry_tasks)
        if self._worker is not None:
            tasks.add(self._worker)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._queue.clear()
        self._retry_tasks.clear()
        self._pending_retries = 0
        if abandoned:
            logger.warning("Email queue closed with undelivered messages", abandoned=abandoned)
        else:
            logger.info("Email queue closed")
