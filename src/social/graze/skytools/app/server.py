import logging
from time import time
from typing import (
    Optional,
)
from aiohttp import web
import aiohttp
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from social.graze.skytools.app.config import (
    HandleResolverAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
)
from social.graze.skytools.app.handlers.resolve import (
    handle_api_resolve_handle,
    handle_internal_alive,
    handle_internal_resolve,
)
from social.graze.skytools.app.metrics import create_metrics_client
from social.graze.skytools.resolve.handle import HandleResolver

logger = logging.getLogger(__name__)


async def client_context(app: web.Application):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logging.info("Starting request: %s", params)

        async def on_request_end(session, trace_config_ctx, params):
            logging.info("Ending request: %s", params)

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    app[SessionAppKey] = aiohttp.ClientSession(trace_configs=[trace_config])
    app[MetricsClientAppKey] = await create_metrics_client(settings)
    app[HandleResolverAppKey] = HandleResolver(
        app[SessionAppKey], settings, metrics=app[MetricsClientAppKey]
    )

    logger.info("Startup complete")

    yield

    await app[SessionAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except Exception as e:
        metrics_client.increment(
            "skytools.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "skytools.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "skytools.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=False,
            integrations=[AioHttpIntegration()],
        )
    app = web.Application(middlewares=[statsd_middleware, sentry_middleware])

    app[SettingsAppKey] = settings

    app.add_routes(
        [
            web.get("/api/resolve-handle", handle_api_resolve_handle),
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/api/resolve", handle_internal_resolve),
        ]
    )

    app.cleanup_ctx.append(client_context)

    return app
