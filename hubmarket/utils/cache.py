"""
Redis-based report cache.

Holds precomputed daily trend payloads keyed by campaign and date range.
Values are always reproducible from raw performance entries, so every
Redis failure degrades to a cache miss instead of an error.
"""

import json
from typing import Any, Optional, Union
from datetime import timedelta
import redis

from hubmarket.config import redis_config, reporting_config
from hubmarket.utils.logging import setup_logger

logger = setup_logger(__name__)

class ReportCache:
    """Redis cache for reporting payloads."""

    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        """Initialize Redis connection."""
        self.redis = client or redis.from_url(
            redis_config.url,
            password=redis_config.password,
            decode_responses=True
        )
        self.prefix = prefix if prefix is not None else redis_config.prefix

    def _get_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_json(self, key: str) -> Optional[Any]:
        """
        Get JSON value from cache.

        Args:
            key: Cache key

        Returns:
            Optional[Any]: Deserialized JSON value if exists
        """
        try:
            value = self.redis.get(self._get_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis error in get: {e}")
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error for {key}: {e}")
            return None

    def set_json(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """
        Set JSON value in cache.

        Args:
            key: Cache key
            value: Value to serialize and cache
            expire: Optional expiration time in seconds or timedelta

        Returns:
            bool: True if successful
        """
        if isinstance(expire, timedelta):
            expire = int(expire.total_seconds())
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"JSON encode error for {key}: {e}")
            return False
        try:
            self.redis.set(self._get_key(key), payload, ex=expire)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis error in set: {e}")
            return False

    def clear_pattern(self, pattern: str) -> bool:
        """
        Delete all keys matching pattern.

        Args:
            pattern: Key pattern to match

        Returns:
            bool: True if successful
        """
        try:
            keys = list(self.redis.scan_iter(match=self._get_key(pattern)))
            if keys:
                self.redis.delete(*keys)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis error in clear_pattern: {e}")
            return False

    # Daily trend helpers

    @staticmethod
    def daily_key(campaign_id: str, date_from: Optional[str], date_to: Optional[str], scope: str) -> str:
        return f"{reporting_config.daily_key_prefix}{campaign_id}:{scope}:{date_from or '-'}:{date_to or '-'}"

    def invalidate_campaign(self, campaign_id: str) -> bool:
        """Drop every cached daily trend of a campaign."""
        return self.clear_pattern(f"{reporting_config.daily_key_prefix}{campaign_id}:*")
