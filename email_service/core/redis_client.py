import json
from typing import Any, Dict, List, Optional
import redis.asyncio as redis
from redis.asyncio import ConnectionPool
import logging

from email_service.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis client for the settings cache and the dead-letter list.
    """

    def __init__(self):
        self.pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            decode_responses=True
        )
        self.client: Optional[redis.Redis] = None

    async def connect(self):
        """Initialize Redis connection."""
        try:
            self.client = redis.Redis(connection_pool=self.pool)
            # Test connection
            await self.client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def disconnect(self):
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("Redis connection closed")

    def _require_client(self) -> redis.Redis:
        if self.client is None:
            raise RuntimeError("Redis client is not connected")
        return self.client

    async def get_json(self, key: str) -> Optional[Any]:
        """Read a JSON value; None when the key is missing."""
        raw = await self._require_client().get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None):
        """Store a JSON value with an optional TTL."""
        try:
            await self._require_client().set(key, json.dumps(value, default=str), ex=ttl_seconds)
        except Exception as e:
            logger.error(f"Failed to cache {key}: {e}")
            raise

    async def delete(self, *keys: str) -> int:
        """Delete one or more keys."""
        if not keys:
            return 0
        return await self._require_client().delete(*keys)

    async def queue_message(self, queue_name: str, message: Dict[str, Any]):
        """Add message to the head of a list."""
        try:
            await self._require_client().lpush(queue_name, json.dumps(message, default=str))
            logger.debug(f"Message queued to {queue_name}")
        except Exception as e:
            logger.error(f"Failed to queue message to {queue_name}: {e}")
            raise

    async def peek_messages(self, queue_name: str, count: int = 10) -> List[Dict[str, Any]]:
        """Read up to `count` messages from the head without removing them."""
        raw_messages = await self._require_client().lrange(queue_name, 0, count - 1)
        messages = []
        for raw in raw_messages:
            try:
                messages.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON in {queue_name}")
        return messages

    async def pop_oldest(self, queue_name: str) -> Optional[Dict[str, Any]]:
        """Pop the oldest message (tail of the list)."""
        raw = await self._require_client().rpop(queue_name)
        if raw is None:
            return None
        return json.loads(raw)

    async def push_oldest(self, queue_name: str, messages: List[Dict[str, Any]]):
        """Put messages back at the tail; the first message ends up oldest."""
        if not messages:
            return
        try:
            payloads = [json.dumps(message, default=str) for message in reversed(messages)]
            await self._require_client().rpush(queue_name, *payloads)
        except Exception as e:
            logger.error(f"Failed to return messages to {queue_name}: {e}")
            raise

    async def get_queue_length(self, queue_name: str) -> int:
        """Get length of a list."""
        try:
            return await self._require_client().llen(queue_name)
        except Exception as e:
            logger.error(f"Failed to get queue length for {queue_name}: {e}")
            return 0


# Global Redis client instance
redis_client = RedisClient()
