import json
import logging
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from app.core.config import settings

logger = logging.getLogger(__name__)

AVAILABILITY_PREFIX = "availability:"


class RedisManager:
    def __init__(self):
        self.redis = None

    async def connect(self):
        """Connect to Redis (called on FastAPI startup). No-op when REDIS_URL is unset."""
        if not settings.REDIS_URL:
            logger.info("REDIS_URL not set; availability cache disabled")
            return
        self.redis = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    def _availability_key(self, date_str: str, duration: int) -> str:
        return f"{AVAILABILITY_PREFIX}{date_str}:{duration}"

    async def get_availability(self, date_str: str, duration: int) -> dict | None:
        if not self.redis:
            return None
        try:
            data = await self.redis.get(self._availability_key(date_str, duration))
        except RedisError as e:
            logger.warning(f"Availability cache read failed: {e}")
            return None
        if data:
            return json.loads(data)
        return None

    async def set_availability(self, date_str: str, duration: int, data: dict):
        if not self.redis:
            return
        try:
            await self.redis.setex(
                self._availability_key(date_str, duration),
                settings.AVAILABILITY_CACHE_TTL_SECONDS,
                json.dumps(data),
            )
        except RedisError as e:
            logger.warning(f"Availability cache write failed: {e}")

    async def clear_availability(self) -> int:
        """Manually clear every cached availability result."""
        if not self.redis:
            return 0
        cleared = 0
        try:
            async for key in self.redis.scan_iter(match=f"{AVAILABILITY_PREFIX}*"):
                cleared += await self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"Availability cache clear failed: {e}")
        return cleared

redis_manager = RedisManager()
