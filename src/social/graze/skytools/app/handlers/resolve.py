import logging
from aiohttp import web
from aiodns.error import DNSError
import sentry_sdk

from social.graze.skytools.app.config import HandleResolverAppKey
from social.graze.skytools.atproto.uri import is_handle
from social.graze.skytools.errors import SkyToolsException
from social.graze.skytools.resolve.handle import MAX_HANDLE_LENGTH, query_atproto_txt

logger = logging.getLogger(__name__)


async def handle_api_resolve_handle(request: web.Request):
    """
    Resolve a handle through its _atproto DNS TXT record.

    Answers {"did": [...]} on success and {"did": [], "error": "..."} when the
    record is missing or the lookup fails. Only a missing, over-long or
    malformed handle parameter is answered with status 400.
    """
    handle = request.query.get("handle", "").strip()
    if len(handle) > MAX_HANDLE_LENGTH or not is_handle(handle):
        return web.json_response({"did": [], "error": "Invalid handle"}, status=400)

    try:
        dids = await query_atproto_txt(handle)
    except DNSError as e:
        logger.debug("DNS lookup failed for %s: %s", handle, e)
        return web.json_response({"did": [], "error": "DNS lookup failed"})

    if len(dids) == 0:
        return web.json_response({"did": [], "error": "No DID record found"})
    return web.json_response({"did": dids})


async def handle_internal_resolve(request: web.Request):
    subjects = request.query.getall("subject", [])
    if len(subjects) == 0:
        return web.json_response([])

    resolver = request.app[HandleResolverAppKey]

    results = []
    for subject in subjects:
        try:
            resolved_subject = await resolver.resolve_subject(subject)
        except SkyToolsException as e:
            logger.info("Unable to resolve subject %s: %s", subject, e)
            continue
        except Exception as e:
            logger.exception("Unexpected error resolving subject %s", subject)
            sentry_sdk.capture_exception(e)
            continue
        results.append(resolved_subject.model_dump())
    return web.json_response(results)


async def handle_internal_alive(request: web.Request):
    return web.Response(status=200)
