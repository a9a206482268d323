"""Build CDN and application URLs for identities and records."""

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import ValidationError

from social.graze.skytools.atproto.uri import AT_URI_SCHEME, AtUri, parse_at_uri
from social.graze.skytools.errors import InvalidProfileRecord, SkyToolsException
from social.graze.skytools.model.records import BlobRef, ProfileRecord

if TYPE_CHECKING:
    from social.graze.skytools.resolve.handle import HandleResolver

logger = logging.getLogger(__name__)


def strip_scheme(endpoint: str) -> str:
    if endpoint.startswith("http") and "://" in endpoint:
        return endpoint[endpoint.index("://") + 3 :]
    return endpoint


def build_blob_url(
    cdn_url: str,
    did: str,
    record: Union[ProfileRecord, Mapping[str, Any]],
    field_name: str,
    endpoint: Optional[str] = None,
    default_pds: str = "bsky.social",
) -> str:
    """
    Build the CDN URL of an image blob referenced by a profile record.

    Args:
        cdn_url: CDN base URL, e.g. https://av-cdn.bsky.social
        did: DID owning the profile
        record: Profile record, decoded or raw
        field_name: Blob field, "avatar" or "banner"
        endpoint: PDS URL or hostname, defaults to ``default_pds``
        default_pds: PDS hostname used without an endpoint

    Returns:
        {cdn_url}/{pds host}/image/{did}/{cid}, or "" if the field is missing

    Raises:
        InvalidProfileRecord: If the record is not a profile
    """
    if not isinstance(record, ProfileRecord):
        try:
            record = ProfileRecord.model_validate(record)
        except ValidationError as e:
            raise InvalidProfileRecord(
                f"Invalid profile record: {did}",
                operation="build_blob_url",
                identifier=did,
            ) from e

    value = getattr(record, field_name, None)
    if value is None and record.model_extra:
        value = record.model_extra.get(field_name)
    if isinstance(value, Mapping):
        try:
            value = BlobRef.model_validate(value)
        except ValidationError:
            value = None
    if not isinstance(value, BlobRef) or value.cid is None:
        logger.warning('Not found blob field "%s" in profile: %s', field_name, did)
        return ""

    host = strip_scheme(endpoint) if endpoint is not None else default_pds
    return f"{cdn_url}/{host}/image/{did}/{value.cid}"


async def build_post_url(
    resolver: "HandleResolver",
    url_prefix: str,
    uri: Union[str, AtUri, Mapping[str, str]],
    handle: Optional[str] = None,
) -> str:
    """
    Build the application URL of a post.

    When no handle is given it is looked up from the post author's DID
    document; if that fails the DID is used in its place.

    Args:
        resolver: Resolver used to look up the handle
        url_prefix: Application URL, e.g. https://bsky.app
        uri: at:// URI of the post, or its parts (did/authority and rkey)
        handle: Author handle, if already known

    Returns:
        {url_prefix}/profile/{handle}/post/{rkey}

    Raises:
        MalformedURI: If uri is a string that is not an AT URI
    """
    if isinstance(uri, str):
        at_uri = parse_at_uri(uri)
        did, rkey = at_uri.did, at_uri.rkey
    elif isinstance(uri, AtUri):
        did, rkey = uri.did, uri.rkey
    else:
        did = uri.get("did") or uri["authority"]
        rkey = uri["rkey"]

    if handle is None:
        try:
            handle = await resolver.resolve_did_to_handle(did, only_handle=False)
            handle = handle.removeprefix(AT_URI_SCHEME)
        except SkyToolsException as e:
            logger.warning("Using DID in post URL, handle lookup failed: %s", e)
            handle = did
    return f"{url_prefix}/profile/{handle}/post/{rkey}"
