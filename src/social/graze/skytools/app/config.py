"""
Configuration Module for SkyTools

This module defines the configuration system for SkyTools using Pydantic for
settings validation and dependency injection through AppKeys.

Settings are loaded once from environment variables by the entry point and are
frozen afterwards. Every component receives the Settings instance through its
constructor instead of reading process-wide state, so replacing settings means
building new components.

Key configuration areas include:
- Default personal data server and handle suffix
- Identity directory and indirect handle resolution
- Resolution timeouts and strategy scheduling
- Monitoring and observability
"""

from typing import TYPE_CHECKING, Final, Optional
import logging
from aiohttp import ClientSession, web
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from social.graze.skytools.app.metrics import MetricsClient
from social.graze.skytools.atproto.uri import parse_did
from social.graze.skytools.errors import MalformedDID

if TYPE_CHECKING:
    from social.graze.skytools.resolve.handle import HandleResolver

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for SkyTools.

    Environment variables are mapped to settings fields by name, so
    ``DEFAULT_SUFFIX=example.com`` sets ``default_suffix``. The instance is
    frozen once constructed.
    """

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    debug: bool = False
    """
    Enable debug mode for verbose logging and request tracing.
    Set with DEBUG=true environment variable.
    """

    default_pds: str = "bsky.social"
    """
    Hostname of the default personal data server, used when building CDN URLs
    for an identity whose PDS is not known.
    Set with DEFAULT_PDS environment variable.
    """

    default_pds_entrypoint: str = "https://bsky.social"
    """
    Base URL of the default hosting service. Handles are first resolved through
    its com.atproto.identity.resolveHandle operation.
    Set with DEFAULT_PDS_ENTRYPOINT environment variable.
    """

    default_suffix: str = "bsky.social"
    """
    Suffix appended to partial handles ("alice" becomes "alice.bsky.social").
    Set with DEFAULT_SUFFIX environment variable.
    """

    bsky_app_url: str = "https://bsky.app"
    """
    Prefix of application URLs built for posts and profiles.
    Set with BSKY_APP_URL environment variable.
    """

    webmaster_did: str = "did:bsky:webmaster"
    """
    DID of the administrator identity.
    Set with WEBMASTER_DID environment variable.
    """

    plc_directory: str = "https://plc.directory"
    """
    Base URL of the PLC directory used to resolve did:plc documents.
    Set with PLC_DIRECTORY environment variable.
    """

    cdn_url: str = "https://av-cdn.bsky.social"
    """
    Base URL of the image CDN used by blob URLs.
    Set with CDN_URL environment variable.
    """

    handle_resolver_proxy: Optional[str] = None
    """
    Base URL of a service exposing /api/resolve-handle. When unset, the last
    handle resolution step queries DNS TXT records directly.
    Set with HANDLE_RESOLVER_PROXY environment variable.
    """

    resolve_step_timeout: float = 4.0
    """
    Upper bound in seconds for each handle resolution step.
    Set with RESOLVE_STEP_TIMEOUT environment variable.
    """

    resolve_race: bool = False
    """
    Run handle resolution steps concurrently and keep the first success.
    Set with RESOLVE_RACE=true environment variable.
    """

    list_records_max_limit: int = 50
    """
    Default and maximum page size for com.atproto.repo.listRecords.
    Set with LIST_RECORDS_MAX_LIMIT environment variable.
    """

    # Network and service identification settings
    http_port: int = Field(alias="port", default=5100)
    """
    HTTP port for the resolution service to listen on.
    Set with PORT environment variable.
    """

    # Monitoring and error reporting
    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    metrics_enabled: bool = False
    """
    Send metrics to Telegraf. A no-op client is used when disabled.
    Set with METRICS_ENABLED environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    statsd_prefix: str = "skytools"
    """Prefix for all StatsD metrics from this service."""

    @field_validator(
        "default_pds_entrypoint",
        "bsky_app_url",
        "plc_directory",
        "cdn_url",
        "handle_resolver_proxy",
        mode="after",
    )
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """URLs are joined with "/" so a trailing slash would be doubled."""
        if v is None:
            return v
        return v.rstrip("/")

    @field_validator("webmaster_did", mode="after")
    @classmethod
    def validate_webmaster_did(cls, v: str) -> str:
        """
        Validate the administrator identity.

        Raises:
            ValueError: If the value is not did:<method>:<identifier>
        """
        try:
            parse_did(v)
        except MalformedDID as e:
            raise ValueError(f"webmaster_did must be a DID: {v!r}") from e
        return v

    @field_validator("list_records_max_limit", mode="after")
    @classmethod
    def validate_list_limit(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("list_records_max_limit must be between 1 and 100")
        return v


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for the metrics client used by middleware and the resolver"""

HandleResolverAppKey: Final[web.AppKey["HandleResolver"]] = web.AppKey("handle_resolver")
"""AppKey for the shared handle resolver"""
