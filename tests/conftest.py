"""
Shared test configuration and fixtures for SkyTools tests.
"""

from unittest.mock import MagicMock

import pytest

from social.graze.skytools.app.config import Settings


@pytest.fixture
def settings() -> Settings:
    """Settings with explicit values so the environment cannot leak in."""
    return Settings(
        debug=False,
        default_pds="bsky.social",
        default_pds_entrypoint="https://bsky.social",
        default_suffix="bsky.social",
        bsky_app_url="https://bsky.app",
        plc_directory="https://plc.directory",
        cdn_url="https://av-cdn.bsky.social",
        handle_resolver_proxy=None,
        resolve_step_timeout=1.0,
        resolve_race=False,
        list_records_max_limit=50,
        metrics_enabled=False,
        sentry_dsn=None,
    )


@pytest.fixture
def mock_session() -> MagicMock:
    """Stand-in for aiohttp.ClientSession; queue responses with respond_with."""
    return MagicMock()
