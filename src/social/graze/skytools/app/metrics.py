"""
Metrics for SkyTools

A small client interface so that the resolver and the web middleware can
record counters and timings without knowing whether metrics are sent to
Telegraf or dropped.

- MetricsClient: interface used by the rest of the package
- TelegrafMetricsClient: sends metrics through aio-statsd's TelegrafStatsdClient
- NoOpMetricsClient: discards everything, used in tests and when disabled
- create_metrics_client: picks an implementation from Settings
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from aio_statsd import TelegrafStatsdClient

if TYPE_CHECKING:
    from social.graze.skytools.app.config import Settings

logger = logging.getLogger(__name__)


class MetricsClient(ABC):
    """Counters and timers tagged with StatsD-style tag dictionaries."""

    @abstractmethod
    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name (e.g., 'skytools.resolve.step')
            value: Amount to increment by (default: 1)
            tag_dict: Optional tags for metric dimensions
        """
        pass

    @abstractmethod
    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record a duration in seconds.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class TelegrafMetricsClient(MetricsClient):
    def __init__(self, client: TelegrafStatsdClient, prefix: str = "") -> None:
        self.client = client
        self.prefix = prefix

    def _name(self, name: str) -> str:
        if self.prefix and not name.startswith(f"{self.prefix}."):
            return f"{self.prefix}.{name}"
        return name

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.increment(self._name(name), value, tag_dict=tag_dict or {})

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.timer(self._name(name), value, tag_dict=tag_dict or {})

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Telegraf client: {e}")


class NoOpMetricsClient(MetricsClient):
    """Metrics client that records nothing."""

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    async def close(self) -> None:
        pass


async def create_metrics_client(settings: "Settings") -> MetricsClient:
    """
    Create and connect the metrics client selected by settings.

    Returns a NoOpMetricsClient unless ``metrics_enabled`` is set.
    """
    if not settings.metrics_enabled:
        logger.info("Metrics collection disabled (no-op client)")
        return NoOpMetricsClient()

    telegraf_client = TelegrafStatsdClient(
        host=settings.statsd_host, port=settings.statsd_port, debug=settings.debug
    )
    await telegraf_client.connect()
    return TelegrafMetricsClient(telegraf_client, prefix=settings.statsd_prefix)
