"""
Unit Tests for the metrics client

Covers the no-op and Telegraf implementations and backend selection from
settings.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from social.graze.skytools.app.metrics import (
    MetricsClient,
    NoOpMetricsClient,
    TelegrafMetricsClient,
    create_metrics_client,
)


class TestMetricsClientInterface:
    """Test the abstract MetricsClient interface."""

    def test_interface_is_abstract(self):
        """MetricsClient should be abstract and not instantiable."""
        with pytest.raises(TypeError):
            MetricsClient()


class TestNoOpMetricsClient:
    """Test the NoOpMetricsClient implementation."""

    @pytest.fixture
    def noop_client(self):
        return NoOpMetricsClient()

    def test_noop_increment(self, noop_client):
        """NoOp increment should not raise exceptions."""
        noop_client.increment("test.counter", 1, {"tag": "value"})
        noop_client.increment("test.counter")

    def test_noop_timer(self, noop_client):
        """NoOp timer should not raise exceptions."""
        noop_client.timer("test.timer", 1.234, {"tag": "value"})

    @pytest.mark.asyncio
    async def test_noop_close(self, noop_client):
        await noop_client.close()


class TestTelegrafMetricsClient:
    """Test the TelegrafMetricsClient wrapper."""

    @pytest.fixture
    def mock_telegraf_client(self):
        mock = Mock()
        mock.close = AsyncMock()
        return mock

    def test_increment_is_prefixed(self, mock_telegraf_client):
        """Names get the prefix unless they already carry it."""
        client = TelegrafMetricsClient(mock_telegraf_client, prefix="skytools")

        client.increment("resolve.step", 1, {"strategy": "dns"})
        client.increment("skytools.resolve.step")

        assert [c.args[0] for c in mock_telegraf_client.increment.call_args_list] == [
            "skytools.resolve.step",
            "skytools.resolve.step",
        ]
        assert mock_telegraf_client.increment.call_args_list[0].kwargs == {
            "tag_dict": {"strategy": "dns"}
        }
        assert mock_telegraf_client.increment.call_args_list[1].kwargs == {
            "tag_dict": {}
        }

    def test_timer(self, mock_telegraf_client):
        client = TelegrafMetricsClient(mock_telegraf_client)

        client.timer("server.request.time", 0.5, {"path": "/internal/alive"})

        mock_telegraf_client.timer.assert_called_once_with(
            "server.request.time", 0.5, tag_dict={"path": "/internal/alive"}
        )

    @pytest.mark.asyncio
    async def test_close_errors_are_logged(self, mock_telegraf_client):
        """Errors while closing the transport do not propagate."""
        mock_telegraf_client.close.side_effect = OSError("socket closed")
        client = TelegrafMetricsClient(mock_telegraf_client)

        await client.close()

        mock_telegraf_client.close.assert_awaited_once()


class TestCreateMetricsClient:
    """Test backend selection from settings."""

    @pytest.mark.asyncio
    async def test_disabled(self, settings):
        client = await create_metrics_client(settings)
        assert isinstance(client, NoOpMetricsClient)

    @pytest.mark.asyncio
    @patch("social.graze.skytools.app.metrics.TelegrafStatsdClient")
    async def test_enabled(self, mock_statsd_class, settings):
        """Enabled metrics connect a Telegraf client with the configured address."""
        mock_statsd = Mock()
        mock_statsd.connect = AsyncMock()
        mock_statsd_class.return_value = mock_statsd
        settings = settings.model_copy(
            update={
                "metrics_enabled": True,
                "statsd_host": "telegraf.local",
                "statsd_port": 9125,
            }
        )

        client = await create_metrics_client(settings)

        assert isinstance(client, TelegrafMetricsClient)
        assert client.prefix == "skytools"
        mock_statsd_class.assert_called_once_with(
            host="telegraf.local", port=9125, debug=False
        )
        mock_statsd.connect.assert_awaited_once()
