"""
Redis cache for resolved postal codes
Values are stored as JSON under ``cep:<canonical>`` keys. Every operation
fails open: a missing or broken Redis only costs a directory round trip.
"""
import json
import logging
from typing import Any, Optional

from .config import CEP_CACHE_SECONDS
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

POSTAL_CODE_PREFIX = "cep"


class Cache:
    """Redis cache wrapper with JSON serialization and postal code helpers"""

    def __init__(self, default_ttl: int = CEP_CACHE_SECONDS):
        self.default_ttl = default_ttl
        self.redis_client = None

    @staticmethod
    def postal_code_key(canonical: str) -> str:
        return f"{POSTAL_CODE_PREFIX}:{canonical}"

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
        except Exception as e:
            logger.error(f"❌ Cache read failed for {key}: {e}")
            return None

        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"⚠️ Ignoring corrupt cache entry {key}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store ``value`` as JSON; ``ttl`` defaults to the postal code cache lifetime"""
        client = self._get_client()
        if not client:
            return False

        ttl = ttl or self.default_ttl
        try:
            client.setex(key, ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"❌ Cache write failed for {key}: {e}")
            return False

    def get_postal_code(self, canonical: str) -> Optional[dict]:
        """Cached address fields for a canonical postal code, if any"""
        value = self.get(self.postal_code_key(canonical))
        if isinstance(value, dict):
            logger.debug(f"Postal code {canonical} served from cache")
            return value
        return None

    def set_postal_code(self, canonical: str, fields: dict) -> bool:
        return self.set(self.postal_code_key(canonical), fields)


# Global cache instance
cache = Cache()
