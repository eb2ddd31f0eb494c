from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import ValidationError

from email_service.core.logging import get_logger
from email_service.core.redis_client import redis_client
from email_service.schemas.email import EmailRequest

DEAD_LETTER_QUEUE = "q:email:failed"


class DeadLetterService:
    """
    Keeps emails that exhausted their retries in a Redis list so operators
    can inspect them and send them again.
    """

    def __init__(self, redis=redis_client, queue_name: str = DEAD_LETTER_QUEUE):
        self.redis = redis
        self.queue_name = queue_name
        self.logger = get_logger(self.__class__.__name__)

    async def record_failure(self, message, error: Exception):
        """Failure hook for EmailQueue: store the message with its last error."""
        try:
            failed_message = {
                **message.to_dict(),
                "failed_at": datetime.now(timezone.utc).isoformat(),
                "error_message": str(error),
            }
            await self.redis.queue_message(self.queue_name, failed_message)

            self.logger.warning("Email moved to dead-letter queue",
                                id=message.id,
                                to=message.to,
                                error=str(error))
        except Exception as e:
            self.logger.error(f"Error moving email to dead-letter queue: {e}")
            raise

    async def peek(self, count: int = 50) -> List[Dict[str, Any]]:
        """Most recent failures first."""
        return await self.redis.peek_messages(self.queue_name, count)

    async def count(self) -> int:
        return await self.redis.get_queue_length(self.queue_name)

    async def clear(self) -> int:
        cleared = await self.redis.delete(self.queue_name)
        self.logger.info("Dead-letter queue cleared", queue=self.queue_name)
        return cleared

    async def requeue(self, email_queue, count: int = 10) -> int:
        """
        Move up to ``count`` of the oldest dead letters back onto the email
        queue with a fresh retry budget. Returns how many were queued.

        Entries the queue refuses (email switched off) or that fail to enqueue
        go back to the oldest end of the list in their original order.
        """
        requeued = 0
        kept: List[Dict[str, Any]] = []
        try:
            for _ in range(count):
                entry = await self.redis.pop_oldest(self.queue_name)
                if entry is None:
                    break

                try:
                    request = EmailRequest(
                        to=entry["to"],
                        type=entry["type"],
                        data=entry.get("data") or {},
                        subject=entry.get("subject"),
                    )
                except (KeyError, ValidationError) as e:
                    self.logger.error(f"Discarding malformed dead letter: {e}", id=entry.get("id"))
                    continue

                kept.append(entry)
                if await email_queue.enqueue(request):
                    kept.pop()
                    requeued += 1
        finally:
            if kept:
                await self.redis.push_oldest(self.queue_name, kept)
                self.logger.warning("Dead letters kept, email disabled or unavailable", kept=len(kept))

        self.logger.info("Dead letters requeued", requeued=requeued)
        return requeued
