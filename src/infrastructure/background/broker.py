# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dramatiq broker for the digest workers.

A Redis broker with a Redis result backend in normal operation, or an
in-memory StubBroker when ``DRAMATIQ_TEST_MODE=true``. Actor modules call
:func:`setup_dramatiq` before declaring actors so that the actors attach
to the right broker.
"""

import logging
import os
from typing import Any

import dramatiq
import redis
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker
from dramatiq.results import Results
from dramatiq.results.backends.redis import RedisBackend

from src.core.config import get_settings

logger = logging.getLogger(__name__)


class Queues:
    """Queue names used by the notification actors."""

    DEFAULT = "default"
    DIGESTS = "digests"

    ALL = (DEFAULT, DIGESTS)


class Priority:
    """Actor priorities; Dramatiq runs lower numbers first."""

    NORMAL = 3
    LOW = 5


def _redacted(url: str) -> str:
    return url.split("@")[-1]


class BrokerManager:
    """Owns the process-wide Dramatiq broker."""

    def __init__(self) -> None:
        self._broker: dramatiq.Broker | None = None
        self._results_backend: RedisBackend | None = None

    @property
    def broker(self) -> dramatiq.Broker:
        """The configured broker.

        Raises:
            RuntimeError: If setup() has not been called.
        """
        if self._broker is None:
            raise RuntimeError("Broker not initialized. Call setup() first.")
        return self._broker

    @property
    def is_initialized(self) -> bool:
        return self._broker is not None

    def setup(self) -> dramatiq.Broker:
        """Create the broker once and register it globally with Dramatiq."""
        if self._broker is not None:
            return self._broker

        if os.getenv("DRAMATIQ_TEST_MODE", "false").lower() == "true":
            broker: dramatiq.Broker = StubBroker()
            broker.emit_after("process_boot")
            logger.info("Digest workers using StubBroker")
        else:
            redis_url = get_settings().redis.url
            self._results_backend = RedisBackend(url=redis_url)
            broker = RedisBroker(url=redis_url)
            broker.add_middleware(Results(backend=self._results_backend))
            logger.info("Digest workers using Redis broker at %s", _redacted(redis_url))

        dramatiq.set_broker(broker)
        self._broker = broker
        return broker

    def shutdown(self) -> None:
        if self._broker is None:
            return
        self._broker.close()
        self._broker = None
        self._results_backend = None
        logger.info("Broker shutdown complete")

    def get_queue_stats(self) -> dict[str, Any]:
        """Report queue depths for the digest queues.

        Returns:
            ``{"status": "not_initialized"}`` before setup, a stub marker in
            test mode, or per-queue lengths read from Redis.
        """
        if self._broker is None:
            return {"status": "not_initialized"}

        if not isinstance(self._broker, RedisBroker):
            return {"broker_type": "stub", "status": "healthy"}

        stats: dict[str, Any] = {"broker_type": "redis"}
        try:
            client = redis.from_url(get_settings().redis.url)
            stats["queues"] = {queue: client.llen(f"dramatiq:{queue}") for queue in Queues.ALL}
            stats["status"] = "healthy"
        except redis.RedisError as e:
            stats["status"] = "error"
            stats["error"] = str(e)
        return stats


_broker_manager: BrokerManager | None = None


def get_broker_manager() -> BrokerManager:
    """Get the singleton broker manager."""
    global _broker_manager
    if _broker_manager is None:
        _broker_manager = BrokerManager()
    return _broker_manager


def setup_dramatiq() -> dramatiq.Broker:
    """Set up the global broker; idempotent."""
    return get_broker_manager().setup()


def get_broker() -> dramatiq.Broker:
    """Get the current Dramatiq broker.

    Raises:
        RuntimeError: If the broker is not initialized.
    """
    return get_broker_manager().broker


def shutdown_dramatiq() -> None:
    """Close the broker at application shutdown."""
    global _broker_manager
    if _broker_manager is not None:
        _broker_manager.shutdown()
        _broker_manager = None
