"""AT Protocol handle and DID resolution.

Resolves handles to DIDs by trying a fixed sequence of strategies until one
succeeds, and resolves DIDs back to handles and PDS endpoints through the
identity directory.

Handle resolution order:
1. The default PDS's com.atproto.identity.resolveHandle operation
2. The handle's https://{handle}/.well-known/atproto-did document
3. Indirect resolution, either through a /api/resolve-handle proxy or by
   querying the _atproto.{handle} DNS TXT record directly
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
import logging
from typing import Dict, List, Optional, Sequence

from aiodns import DNSResolver
from aiodns.error import DNSError
from aiohttp import ClientError, ClientSession
import sentry_sdk

from social.graze.skytools.app.config import Settings
from social.graze.skytools.app.metrics import MetricsClient, NoOpMetricsClient
from social.graze.skytools.atproto.uri import is_did, is_handle
from social.graze.skytools.errors import (
    HandleResolutionFailed,
    InvalidHandle,
    MalformedDID,
    NoAliasFound,
    NoHostingEndpoint,
    SkyToolsException,
    TransportError,
)
from social.graze.skytools.model.identity import ResolutionResult
from social.graze.skytools.resolve.directory import (
    DirectoryClient,
    extract_hosting_endpoint,
    extract_primary_alias,
)
from social.graze.skytools.resolve.normalize import normalize

logger = logging.getLogger(__name__)

MAX_HANDLE_LENGTH = 253


class StepOutcome(IntEnum):
    """Outcome of a single handle resolution step."""

    ok = 1
    retry = 2
    fatal = 3


@dataclass(frozen=True)
class StepResult:
    """Tagged result of a resolution step.

    ``ok`` carries the DID. ``retry`` carries a recoverable error and lets the
    next strategy run. ``fatal`` carries an error that ends the chain.
    """

    outcome: StepOutcome
    did: Optional[str] = None
    error: Optional[BaseException] = None

    @staticmethod
    def ok(did: str) -> "StepResult":
        return StepResult(outcome=StepOutcome.ok, did=did)

    @staticmethod
    def retry(error: BaseException) -> "StepResult":
        return StepResult(outcome=StepOutcome.retry, error=error)

    @staticmethod
    def fatal(error: BaseException) -> "StepResult":
        return StepResult(outcome=StepOutcome.fatal, error=error)


class HandleResolutionStrategy(ABC):
    """A single way of turning a handle into a DID."""

    name: str = "strategy"

    @abstractmethod
    async def resolve(self, session: ClientSession, handle: str) -> StepResult:
        pass

    def _failure(self, handle: str, message: str) -> StepResult:
        return StepResult.retry(
            TransportError(message, operation=self.name, identifier=handle)
        )


class XrpcHandleStrategy(HandleResolutionStrategy):
    """Ask a PDS through com.atproto.identity.resolveHandle."""

    name = "xrpc"

    def __init__(self, service: str) -> None:
        self.service = service

    async def resolve(self, session: ClientSession, handle: str) -> StepResult:
        url = f"{self.service}/xrpc/com.atproto.identity.resolveHandle"
        async with session.get(url, params={"handle": handle}) as resp:
            if resp.status != 200:
                return self._failure(
                    handle, f"resolveHandle answered with status {resp.status}"
                )
            body = await resp.json()

        did = body.get("did") if isinstance(body, dict) else None
        if not isinstance(did, str) or not is_did(did.strip()):
            return self._failure(handle, "resolveHandle response has no did")
        return StepResult.ok(did.strip())


class WellKnownHandleStrategy(HandleResolutionStrategy):
    """Fetch https://{handle}/.well-known/atproto-did."""

    name = "well_known"

    async def resolve(self, session: ClientSession, handle: str) -> StepResult:
        async with session.get(f"https://{handle}/.well-known/atproto-did") as resp:
            if resp.status != 200:
                return self._failure(
                    handle, f"atproto-did answered with status {resp.status}"
                )
            body = await resp.text()

        did = (body or "").strip()
        if not is_did(did):
            return self._failure(handle, "atproto-did document is not a DID")
        return StepResult.ok(did)


class ProxyHandleStrategy(HandleResolutionStrategy):
    """Ask a /api/resolve-handle endpoint, which answers {"did": [...]}."""

    name = "proxy"

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    async def resolve(self, session: ClientSession, handle: str) -> StepResult:
        url = f"{self.base_url}/api/resolve-handle"
        async with session.get(url, params={"handle": handle}) as resp:
            if resp.status != 200:
                return self._failure(
                    handle, f"resolve-handle answered with status {resp.status}"
                )
            body = await resp.json()

        if not isinstance(body, dict):
            return self._failure(handle, "resolve-handle response is not an object")
        if body.get("error") is not None:
            return self._failure(handle, f"resolve-handle error: {body['error']}")
        dids = body.get("did") or []
        if not isinstance(dids, list) or len(dids) == 0:
            return self._failure(handle, "resolve-handle returned no DID")
        did = dids[0]
        if not isinstance(did, str) or not is_did(did.strip()):
            return self._failure(handle, "resolve-handle returned something other than a DID")
        return StepResult.ok(did.strip())


async def query_atproto_txt(handle: str) -> List[str]:
    """Return every DID published in the _atproto.{handle} TXT record.

    Raises:
        DNSError: If the lookup fails
    """
    resolver = DNSResolver()
    results = await resolver.query(f"_atproto.{handle}", "TXT")
    dids = []
    for result in results or []:
        text = result.text
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        if text.startswith("did="):
            dids.append(text.removeprefix("did=").strip())
    return dids


class DnsHandleStrategy(HandleResolutionStrategy):
    """Read the DID from the _atproto.{handle} DNS TXT record."""

    name = "dns"

    async def resolve(self, session: ClientSession, handle: str) -> StepResult:
        dids = await query_atproto_txt(handle)
        if len(dids) == 0:
            return self._failure(handle, "no did= TXT record")
        return StepResult.ok(dids[0])


def default_strategies(settings: Settings) -> List[HandleResolutionStrategy]:
    """The resolution chain used when no strategies are supplied."""
    strategies: List[HandleResolutionStrategy] = [
        XrpcHandleStrategy(settings.default_pds_entrypoint),
        WellKnownHandleStrategy(),
    ]
    if settings.handle_resolver_proxy:
        strategies.append(ProxyHandleStrategy(settings.handle_resolver_proxy))
    else:
        strategies.append(DnsHandleStrategy())
    return strategies


class HandleResolver:
    """Resolves handles and DIDs.

    All collaborators are passed in, so one instance can be shared by every
    request of a process.
    """

    def __init__(
        self,
        session: ClientSession,
        settings: Settings,
        directory: Optional[DirectoryClient] = None,
        strategies: Optional[Sequence[HandleResolutionStrategy]] = None,
        metrics: Optional[MetricsClient] = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.directory = directory or DirectoryClient(session, settings)
        self.strategies = list(
            strategies if strategies is not None else default_strategies(settings)
        )
        self.metrics = metrics or NoOpMetricsClient()

    async def _attempt(
        self, strategy: HandleResolutionStrategy, handle: str
    ) -> StepResult:
        try:
            async with asyncio.timeout(self.settings.resolve_step_timeout):
                result = await strategy.resolve(self.session, handle)
        except SkyToolsException as e:
            result = StepResult.retry(e)
        except (ClientError, DNSError, TimeoutError, ValueError) as e:
            error = TransportError(
                f"{strategy.name} step failed: {type(e).__name__}",
                operation=strategy.name,
                identifier=handle,
            )
            error.__cause__ = e
            result = StepResult.retry(error)
        except Exception as e:
            logger.exception("Unexpected error in %s handle resolution", strategy.name)
            sentry_sdk.capture_exception(e)
            result = StepResult.retry(e)

        self.metrics.increment(
            "skytools.resolve.step",
            1,
            tag_dict={"strategy": strategy.name, "outcome": result.outcome.name},
        )
        if result.outcome != StepOutcome.ok:
            logger.debug(
                "Handle resolution step %s failed for %s: %s",
                strategy.name,
                handle,
                result.error,
            )
        return result

    def _fatal(self, handle: str, result: StepResult) -> SkyToolsException:
        if isinstance(result.error, SkyToolsException):
            return result.error
        error = HandleResolutionFailed(
            f"Handle resolution aborted for {handle}",
            operation="resolve_handle_to_did",
            identifier=handle,
            last_error=result.error,
        )
        error.__cause__ = result.error
        return error

    def _exhausted(
        self, handle: str, last_error: Optional[BaseException]
    ) -> HandleResolutionFailed:
        return HandleResolutionFailed(
            f"Failed to resolve handle {handle}",
            operation="resolve_handle_to_did",
            identifier=handle,
            last_error=last_error,
        )

    async def _run_in_order(self, handle: str) -> str:
        last_error: Optional[BaseException] = None
        for strategy in self.strategies:
            result = await self._attempt(strategy, handle)
            if result.outcome == StepOutcome.ok:
                return result.did
            last_error = result.error
            if result.outcome == StepOutcome.fatal:
                raise self._fatal(handle, result)
        raise self._exhausted(handle, last_error) from last_error

    async def _run_race(self, handle: str) -> str:
        order: Dict[asyncio.Task, int] = {}
        for index, strategy in enumerate(self.strategies):
            task = asyncio.create_task(
                self._attempt(strategy, handle), name=f"resolve-{strategy.name}"
            )
            order[task] = index

        failures: Dict[int, StepResult] = {}
        pending = set(order)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=order.__getitem__):
                    result = task.result()
                    if result.outcome == StepOutcome.ok:
                        return result.did
                    if result.outcome == StepOutcome.fatal:
                        raise self._fatal(handle, result)
                    failures[order[task]] = result
        finally:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        last_error = failures[max(failures)].error if failures else None
        raise self._exhausted(handle, last_error) from last_error

    async def resolve_handle_to_did(self, handle: str) -> str:
        """
        Resolve a handle to its DID.

        Args:
            handle: Fully-qualified handle, e.g. alice.bsky.social

        Returns:
            The DID published for the handle

        Raises:
            InvalidHandle: If the handle is empty, a DID, longer than 253
                characters or not a valid domain name
            HandleResolutionFailed: If every strategy failed
        """
        if handle is None or len(handle) == 0:
            raise InvalidHandle(
                "Handle is empty", operation="resolve_handle_to_did", identifier=handle
            )
        if is_did(handle):
            raise InvalidHandle(
                "Invalid handle. Should be a handle, not a DID",
                operation="resolve_handle_to_did",
                identifier=handle,
            )
        if len(handle) > MAX_HANDLE_LENGTH:
            raise InvalidHandle(
                "Too long identifier",
                operation="resolve_handle_to_did",
                identifier=handle[:MAX_HANDLE_LENGTH],
            )
        if not is_handle(handle):
            raise InvalidHandle(
                "Handle must be dot-separated DNS labels",
                operation="resolve_handle_to_did",
                identifier=handle,
            )

        if self.settings.resolve_race:
            return await self._run_race(handle)
        return await self._run_in_order(handle)

    def _require_did(self, did: str, operation: str) -> None:
        if not is_did(did):
            raise MalformedDID(
                f"Expected a DID: {did!r}", operation=operation, identifier=did
            )

    async def resolve_did_to_handle(self, did: str, only_handle: bool = True) -> str:
        """
        Resolve a DID to the handle in its DID document.

        Args:
            did: DID to resolve
            only_handle: Return a normalized handle instead of the raw
                alsoKnownAs entry (e.g. at://alice.bsky.social)

        Raises:
            IdentityNotFound: If the document names no identity or alias
        """
        self._require_did(did, "resolve_did_to_handle")
        doc = await self.directory.lookup_did_document(did)
        return extract_primary_alias(doc, only_handle, self.settings.default_suffix)

    async def resolve_hosting_endpoint(self, did: str) -> str:
        """
        Resolve a DID to the endpoint of its personal data server.

        Raises:
            NoHostingEndpoint: If the DID document declares no PDS
        """
        self._require_did(did, "resolve_hosting_endpoint")
        doc = await self.directory.lookup_did_document(did)
        return extract_hosting_endpoint(doc)

    async def resolve_subject(self, subject: str) -> ResolutionResult:
        """
        Resolve a handle or DID, in any of its user-facing forms, to its DID,
        handle and PDS.

        Raises:
            InvalidHandle: If the subject is empty after normalization
        """
        identifier = normalize(subject, self.settings.default_suffix)
        if len(identifier) == 0:
            raise InvalidHandle(
                "Subject is empty", operation="resolve_subject", identifier=subject
            )

        handle: Optional[str] = None
        if is_did(identifier):
            did = identifier
        else:
            handle = identifier
            did = await self.resolve_handle_to_did(identifier)

        doc = await self.directory.lookup_did_document(did)

        if handle is None:
            try:
                handle = extract_primary_alias(
                    doc, True, self.settings.default_suffix
                )
            except NoAliasFound:
                handle = None

        pds: Optional[str] = None
        try:
            pds = extract_hosting_endpoint(doc)
        except NoHostingEndpoint:
            logger.warning("No personal data server in DID document for %s", did)

        return ResolutionResult(did=did, handle=handle, pds=pds)
