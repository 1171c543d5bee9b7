# zomatify/repos/cart_repo.py
import redis

from zomatify.utils.retry import redis_retry
from zomatify.utils.settings import REDIS_URL
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)


class MemoryCartStore:
    """Snapshot store kept in process memory (one browser tab's local storage)."""

    def __init__(self, initial: dict | None = None):
        self.data = dict(initial or {})

    def load(self, key: str) -> str | None:
        return self.data.get(key)

    def save(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class RedisCartStore:
    """
    Snapshot store backed by Redis.
    Plain GET/SET, no locking: concurrent writers overwrite each other.
    """

    def __init__(self, url: str | None = None, prefix: str = "cart:"):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @redis_retry()
    def load(self, key: str) -> str | None:
        return self.redis.get(self._key(key))

    @redis_retry()
    def save(self, key: str, value: str) -> None:
        logger.debug(f"Saving cart snapshot {self._key(key)} ({len(value)} bytes)")
        self.redis.set(self._key(key), value)

    @redis_retry()
    def delete(self, key: str) -> None:
        self.redis.delete(self._key(key))
