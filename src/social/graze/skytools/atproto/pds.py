"""Record access against a personal data server.

Thin wrappers around the com.atproto.repo and com.atproto.sync XRPC
operations. Record values are decoded into typed models here, once, so that
callers never shape-check raw dictionaries.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from aiohttp import ClientError, ClientResponse, ClientSession, hdrs
from pydantic import ValidationError

from social.graze.skytools.app.config import Settings
from social.graze.skytools.errors import (
    BlobNotFound,
    InvalidProfileRecord,
    RecordNotFound,
    TransportError,
)
from social.graze.skytools.model.records import (
    POST_COLLECTION,
    PROFILE_COLLECTION,
    PROFILE_RKEY,
    BlobContent,
    ListRecordsResponse,
    PostRecord,
    ProfileRecord,
    RecordResponse,
)

logger = logging.getLogger(__name__)


async def xrpc_error(resp: ClientResponse) -> Optional[str]:
    """Return the XRPC error name of a failed response, if it has one."""
    try:
        body = await resp.json(content_type=None)
    except (ClientError, ValueError):
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None


class PdsClient:
    """Reads records and blobs from a personal data server."""

    def __init__(self, session: ClientSession, settings: Settings) -> None:
        self.session = session
        self.settings = settings

    async def _get_json(
        self,
        operation: str,
        endpoint: str,
        method: str,
        params: Dict[str, Any],
        identifier: str,
    ) -> Any:
        url = f"{endpoint.rstrip('/')}/xrpc/{method}"
        try:
            async with self.session.get(url, params=params) as resp:
                if resp.status == 200:
                    return await resp.json()
                error = await xrpc_error(resp)
                if resp.status == 404 or error == "RecordNotFound":
                    raise RecordNotFound(
                        f"{method} found no record",
                        operation=operation,
                        identifier=identifier,
                    )
                raise TransportError(
                    f"{method} answered with status {resp.status} ({error})",
                    operation=operation,
                    identifier=identifier,
                )
        except (ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(
                f"{method} request failed: {type(e).__name__}",
                operation=operation,
                identifier=identifier,
            ) from e

    async def get_record(
        self, endpoint: str, collection: str, repo: str, rkey: str
    ) -> RecordResponse:
        """
        Fetch a single record with com.atproto.repo.getRecord.

        Args:
            endpoint: PDS base URL
            collection: Record collection NSID, e.g. app.bsky.feed.post
            repo: DID or handle owning the record
            rkey: Record key

        Raises:
            RecordNotFound: If the PDS reports the record as absent
            TransportError: For any other failure
        """
        identifier = f"at://{repo}/{collection}/{rkey}"
        body = await self._get_json(
            "get_record",
            endpoint,
            "com.atproto.repo.getRecord",
            {"repo": repo, "collection": collection, "rkey": rkey},
            identifier,
        )
        try:
            return RecordResponse.model_validate(body)
        except ValidationError as e:
            raise TransportError(
                "getRecord response failed validation",
                operation="get_record",
                identifier=identifier,
            ) from e

    async def list_records(
        self,
        endpoint: str,
        collection: str,
        repo: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> ListRecordsResponse:
        """
        Fetch one page of records with com.atproto.repo.listRecords.

        Records keep the order the PDS returned them in. Pass the returned
        cursor back in to fetch the next page.

        Args:
            endpoint: PDS base URL
            collection: Record collection NSID
            repo: DID or handle owning the records
            limit: Page size, defaults to and is capped at
                ``list_records_max_limit``
            cursor: Cursor returned by the previous page

        Raises:
            ValueError: If limit is below 1
            TransportError: If the request fails
        """
        max_limit = self.settings.list_records_max_limit
        if limit is None:
            limit = max_limit
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        if limit > max_limit:
            logger.debug("Capping listRecords limit %d to %d", limit, max_limit)
            limit = max_limit

        params: Dict[str, Any] = {
            "repo": repo,
            "collection": collection,
            "limit": limit,
        }
        if cursor is not None:
            params["cursor"] = cursor

        body = await self._get_json(
            "list_records",
            endpoint,
            "com.atproto.repo.listRecords",
            params,
            f"at://{repo}/{collection}",
        )
        try:
            return ListRecordsResponse.model_validate(body)
        except ValidationError as e:
            raise TransportError(
                "listRecords response failed validation",
                operation="list_records",
                identifier=repo,
            ) from e

    async def get_blob(
        self, did: str, cid: str, endpoint: Optional[str] = None
    ) -> BlobContent:
        """
        Fetch blob bytes with com.atproto.sync.getBlob.

        Args:
            did: DID owning the blob
            cid: Content identifier of the blob
            endpoint: PDS base URL, defaults to the default PDS

        Raises:
            BlobNotFound: If the PDS does not have the blob
            TransportError: For any other failure
        """
        endpoint = endpoint or self.settings.default_pds_entrypoint
        url = f"{endpoint.rstrip('/')}/xrpc/com.atproto.sync.getBlob"
        try:
            async with self.session.get(url, params={"did": did, "cid": cid}) as resp:
                if resp.status in (400, 404):
                    raise BlobNotFound(
                        f"getBlob answered with status {resp.status}",
                        operation="get_blob",
                        identifier=cid,
                    )
                if resp.status != 200:
                    raise TransportError(
                        f"getBlob answered with status {resp.status}",
                        operation="get_blob",
                        identifier=cid,
                    )
                content_type = resp.headers.get(
                    hdrs.CONTENT_TYPE, "application/octet-stream"
                )
                data = await resp.read()
        except (ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"getBlob request failed: {type(e).__name__}",
                operation="get_blob",
                identifier=cid,
            ) from e

        return BlobContent(did=did, cid=cid, content_type=content_type, data=data)

    async def get_post(self, endpoint: str, repo: str, rkey: str) -> PostRecord:
        """Fetch and decode an app.bsky.feed.post record."""
        record = await self.get_record(endpoint, POST_COLLECTION, repo, rkey)
        try:
            return PostRecord.model_validate(record.value)
        except ValidationError as e:
            raise TransportError(
                "Record is not a post", operation="get_post", identifier=record.uri
            ) from e

    async def load_profile(self, endpoint: str, repo: str) -> ProfileRecord:
        """Fetch and decode the self-keyed app.bsky.actor.profile record."""
        record = await self.get_record(endpoint, PROFILE_COLLECTION, repo, PROFILE_RKEY)
        try:
            return ProfileRecord.model_validate(record.value)
        except ValidationError as e:
            raise InvalidProfileRecord(
                f"Invalid profile record: {repo}",
                operation="load_profile",
                identifier=repo,
            ) from e

    async def describe_repo(self, repo: str, endpoint: Optional[str] = None) -> Dict[str, Any]:
        """com.atproto.repo.describeRepo for a DID or handle."""
        return await self._get_json(
            "describe_repo",
            endpoint or self.settings.default_pds_entrypoint,
            "com.atproto.repo.describeRepo",
            {"repo": repo},
            repo,
        )

    async def describe_server(self, endpoint: str) -> Dict[str, Any]:
        return await self._get_json(
            "describe_server",
            endpoint,
            "com.atproto.server.describeServer",
            {},
            endpoint,
        )
