"""
Valkey (Redis-compatible) client for sessions and the realtime change feed.

Thin wrapper around redis-py. Fail-fast: raises on connection failure,
never returns fallback values.
"""

import json
import logging

import redis
from redis.client import PubSub

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("session:abc", {...}, expire_seconds=300)
        client.publish("realtime:leads", '{"event": "insert"}')
    """

    def __init__(self, url: str):
        """
        Raises:
            redis.ConnectionError: If Valkey is unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, value)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> bool:
        """True if the key existed."""
        return self._client.delete(key) > 0

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        """
        None if the key is missing.
        Raises ValueError if the stored value is not JSON.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def publish(self, channel: str, message: str) -> int:
        """Publish to a pub/sub channel. Returns the number of receivers."""
        return self._client.publish(channel, message)

    def pubsub(self) -> PubSub:
        """A fresh pub/sub connection. The caller owns it and must close it."""
        return self._client.pubsub(ignore_subscribe_messages=True)

    def close(self) -> None:
        self._client.close()
        logger.info("ValkeyClient closed")
