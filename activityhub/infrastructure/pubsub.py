"""Publish/subscribe transports used to signal every node of the cluster.

A transport is created once per process (see ``main.lifespan``) and handed to
the components that need it. Channel names and messages are plain strings.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

import redis

from activityhub.domain.errors import TransportError, ValidationError

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, str], None]


def validate_publish(channel: str | None, message: str | None) -> None:
    """Reject empty channels and messages before anything is sent."""

    if not channel or not str(channel).strip():
        raise ValidationError("No channel was provided.")
    if not message or not str(message).strip():
        raise ValidationError("No message was provided.")


class PubSubTransport(ABC):
    """Broadcast string messages to every subscribed node."""

    def publish(self, channel: str, message: str) -> None:
        """Validate and broadcast ``message`` on ``channel``."""

        validate_publish(channel, message)
        self._publish(channel, message)

    @abstractmethod
    def _publish(self, channel: str, message: str) -> None:
        """Send an already validated message."""

    @abstractmethod
    def subscribe(self, pattern: str, handler: MessageHandler) -> None:
        """Invoke ``handler(channel, message)`` for channels matching ``pattern``."""

    def close(self) -> None:
        """Release connections held by the transport."""


class InMemoryPubSub(PubSubTransport):
    """Single-process transport delivering messages synchronously."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: list[tuple[str, MessageHandler]] = []

    def _publish(self, channel: str, message: str) -> None:
        with self._lock:
            handlers = [
                handler
                for pattern, handler in self._handlers
                if fnmatch.fnmatchcase(channel, pattern)
            ]
        for handler in handlers:
            try:
                handler(channel, message)
            except Exception:
                logger.exception("Subscriber for channel '%s' failed", channel)

    def subscribe(self, pattern: str, handler: MessageHandler) -> None:
        with self._lock:
            self._handlers.append((pattern, handler))

    def close(self) -> None:
        with self._lock:
            self._handlers.clear()


class RedisPubSub(PubSubTransport):
    """Transport backed by Redis ``PUBLISH``/``PSUBSCRIBE``."""

    def __init__(self, url: str, *, client: redis.Redis | None = None) -> None:
        self._client = client or redis.Redis.from_url(url, decode_responses=True)
        self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        self._thread = None
        self._lock = threading.Lock()

    def _publish(self, channel: str, message: str) -> None:
        try:
            self._client.publish(channel, message)
        except redis.RedisError as exc:
            logger.error("Publishing to channel '%s' failed: %s", channel, exc)
            raise TransportError(f"Failed to publish to channel '{channel}'") from exc

    def subscribe(self, pattern: str, handler: MessageHandler) -> None:
        def _on_message(raw: dict) -> None:
            channel = raw.get("channel")
            data = raw.get("data")
            if isinstance(channel, bytes):
                channel = channel.decode("utf-8")
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            try:
                handler(str(channel), str(data))
            except Exception:
                logger.exception("Subscriber for channel '%s' failed", channel)

        with self._lock:
            try:
                self._pubsub.psubscribe(**{pattern: _on_message})
            except redis.RedisError as exc:
                raise TransportError(f"Failed to subscribe to '{pattern}'") from exc
            if self._thread is None:
                self._thread = self._pubsub.run_in_thread(sleep_time=0.1, daemon=True)

    def close(self) -> None:
        with self._lock:
            if self._thread is not None:
                self._thread.stop()
                self._thread = None
            self._pubsub.close()
            self._client.close()


def create_transport(redis_url: str | None) -> PubSubTransport:
    """Return the transport configured for this process."""

    if redis_url:
        logger.info("Using Redis pub/sub transport")
        return RedisPubSub(redis_url)
    logger.info("Using in-process pub/sub transport")
    return InMemoryPubSub()


__all__ = [
    "InMemoryPubSub",
    "MessageHandler",
    "PubSubTransport",
    "RedisPubSub",
    "create_transport",
    "validate_publish",
]
