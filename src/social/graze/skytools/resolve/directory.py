"""DID document lookups.

Fetches DID documents from the PLC directory (or from the did:web host for
did:web identities) and extracts the personal data server and handle from
them.
"""

import asyncio
import logging
from typing import Any, Dict, List

from aiohttp import ClientError, ClientSession, ClientTimeout
from pydantic import ValidationError

from social.graze.skytools.app.config import Settings
from social.graze.skytools.errors import (
    DirectoryMiscontentError,
    DirectoryUnavailable,
    IdentityNotFound,
    NoAliasFound,
    NoHostingEndpoint,
)
from social.graze.skytools.model.identity import (
    PDS_SERVICE_TYPE,
    DidDocument,
    Service,
)
from social.graze.skytools.resolve.normalize import normalize

logger = logging.getLogger(__name__)


def pds_predicate(value: Service) -> bool:
    """Check if a service entry is an AT Protocol PDS with an endpoint."""
    return (
        value is not None
        and value.type == PDS_SERVICE_TYPE
        and value.service_endpoint is not None
    )


def did_web_document_url(did: str) -> str:
    """Build the did.json URL for a did:web DID.

    did:web:example.com resolves to https://example.com/.well-known/did.json
    and did:web:example.com:user:alice to https://example.com/user/alice/did.json.
    """
    parts = did.removeprefix("did:web:").split(":")
    if len(parts) == 1:
        parts.append(".well-known")
    # Percent-encoded port separator, e.g. did:web:localhost%3A8080
    parts[0] = parts[0].replace("%3A", ":")
    return "https://{inner}/did.json".format(inner="/".join(parts))


def extract_hosting_endpoint(doc: DidDocument) -> str:
    """Return the endpoint of the first AtprotoPersonalDataServer service.

    Raises:
        NoHostingEndpoint: If the document declares no PDS
    """
    pds = next(filter(pds_predicate, doc.service), None)
    if pds is None:
        raise NoHostingEndpoint(
            "DID document has no personal data server",
            operation="extract_hosting_endpoint",
            identifier=doc.id,
        )
    return pds.service_endpoint


def extract_primary_alias(
    doc: DidDocument, prefer_canonical: bool, default_suffix: str
) -> str:
    """Return the first alsoKnownAs entry.

    Args:
        doc: DID document
        prefer_canonical: Normalize the alias to a bare handle
        default_suffix: Suffix used by normalization

    Raises:
        NoAliasFound: If the document has no alias
    """
    if len(doc.also_known_as) == 0:
        raise NoAliasFound(
            "DID document has no alsoKnownAs entry",
            operation="extract_primary_alias",
            identifier=doc.id,
        )
    alias = doc.also_known_as[0].strip()
    if prefer_canonical:
        return normalize(alias, default_suffix)
    return alias


class DirectoryClient:
    """Client for the identity directory."""

    def __init__(self, session: ClientSession, settings: Settings) -> None:
        self.session = session
        self.settings = settings

    def document_url(self, did: str) -> str:
        if did.startswith("did:web:"):
            return did_web_document_url(did)
        return f"{self.settings.plc_directory}/{did}"

    async def _get_json(self, operation: str, did: str, url: str) -> Any:
        timeout = ClientTimeout(total=self.settings.resolve_step_timeout)
        try:
            async with self.session.get(url, timeout=timeout) as resp:
                if resp.status == 404:
                    raise IdentityNotFound(
                        f"Directory does not know {did}",
                        operation=operation,
                        identifier=did,
                    )
                if resp.status != 200:
                    raise DirectoryUnavailable(
                        f"Directory answered with status {resp.status}",
                        operation=operation,
                        identifier=did,
                    )
                return await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError) as e:
            raise DirectoryUnavailable(
                f"Directory request failed: {type(e).__name__}",
                operation=operation,
                identifier=did,
            ) from e
        except ValueError as e:
            raise DirectoryMiscontentError(
                "Directory answered with invalid JSON",
                operation=operation,
                identifier=did,
            ) from e

    async def lookup_did_document(self, did: str) -> DidDocument:
        """
        Fetch the DID document for a DID.

        Args:
            did: DID to look up

        Returns:
            The validated DID document

        Raises:
            IdentityNotFound: If the directory does not know the DID, or the
                document carries neither an id nor aliases
            DirectoryUnavailable: On transport errors and unexpected statuses
            DirectoryMiscontentError: If the document lacks its id, names
                another DID, or is not a JSON object
        """
        operation = "lookup_did_document"
        logger.debug("Looking up DID document for %s", did)
        body = await self._get_json(operation, did, self.document_url(did))

        if not isinstance(body, dict):
            raise DirectoryMiscontentError(
                "DID document is not a JSON object",
                operation=operation,
                identifier=did,
            )

        has_id = "id" in body or "did" in body
        if not has_id and "alsoKnownAs" not in body:
            raise IdentityNotFound(
                "DID document has neither id nor alsoKnownAs",
                operation=operation,
                identifier=did,
            )

        try:
            doc = DidDocument.model_validate(body)
        except ValidationError as e:
            raise DirectoryMiscontentError(
                "DID document failed validation", operation=operation, identifier=did
            ) from e

        if doc.id is None:
            raise DirectoryMiscontentError(
                "DID document is missing its id", operation=operation, identifier=did
            )
        if doc.id.strip() != did:
            raise DirectoryMiscontentError(
                f"DID document is for {doc.id}", operation=operation, identifier=did
            )
        return doc

    async def get_audit_log(self, did: str) -> List[Dict[str, Any]]:
        """
        Fetch the PLC operation audit log for a DID, unmodified.
        """
        operation = "get_audit_log"
        body = await self._get_json(
            operation, did, f"{self.settings.plc_directory}/{did}/log/audit"
        )
        if body is None:
            raise DirectoryMiscontentError(
                "Audit log is empty", operation=operation, identifier=did
            )
        return body

