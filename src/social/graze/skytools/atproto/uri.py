"""AT URI and DID parsing.

Pure functions that split the two compact identifier formats of the AT Protocol
into their components. Nothing here touches the network.
"""

import re
from typing import Union

from pydantic import BaseModel, ConfigDict

from social.graze.skytools.errors import MalformedDID, MalformedURI

AT_URI_SCHEME = "at://"
DID_PREFIX = "did:"

AT_URI_PATTERN = re.compile(
    r"at://(?P<authority>[^/?#\s]+)/(?P<collection>[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+)/(?P<rkey>[^/?#\s]+)"
)
DID_PATTERN = re.compile(r"did:(?P<method>[A-Za-z0-9]+):(?P<identifier>[a-z0-9:%-]+)")
# Dot-separated DNS labels; the last one starts with a letter
HANDLE_PATTERN = re.compile(
    r"(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+"
    r"[A-Za-z](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
)


class Did(BaseModel):
    """A parsed decentralized identifier."""

    model_config = ConfigDict(frozen=True)

    method: str
    identifier: str

    def __str__(self) -> str:
        return f"did:{self.method}:{self.identifier}"


class Handle(BaseModel):
    """A dot-separated, human-readable identity name."""

    model_config = ConfigDict(frozen=True)

    value: str

    def __str__(self) -> str:
        return self.value


Identifier = Union[Handle, Did]


class AtUri(BaseModel):
    """A record address: at://<authority>/<collection>/<rkey>."""

    model_config = ConfigDict(frozen=True)

    authority: str
    collection: str
    rkey: str

    @property
    def did(self) -> str:
        return self.authority

    def __str__(self) -> str:
        return f"{AT_URI_SCHEME}{self.authority}/{self.collection}/{self.rkey}"


def is_did(value: str) -> bool:
    return value is not None and value.startswith(DID_PREFIX)


def is_handle(value: str) -> bool:
    """Check a value against the handle grammar, e.g. alice.bsky.social."""
    return value is not None and HANDLE_PATTERN.fullmatch(value) is not None


def parse_at_uri(uri: str) -> AtUri:
    """Split an AT URI into authority, collection and record key.

    Args:
        uri: URI such as at://did:plc:abc123/app.bsky.feed.post/3k2abc

    Returns:
        AtUri with the three components

    Raises:
        MalformedURI: If the scheme is wrong or a segment is missing
    """
    if uri is None or not uri.startswith(AT_URI_SCHEME):
        raise MalformedURI(
            f"Expected '{AT_URI_SCHEME}' scheme: {uri!r}",
            operation="parse_at_uri",
            identifier=uri,
        )
    match = AT_URI_PATTERN.fullmatch(uri)
    if match is None:
        raise MalformedURI(
            f"Invalid AT URI: {uri!r}", operation="parse_at_uri", identifier=uri
        )
    return AtUri(
        authority=match.group("authority"),
        collection=match.group("collection"),
        rkey=match.group("rkey"),
    )


def parse_did(did: str) -> Did:
    """Split a DID into method and method-specific identifier.

    Raises:
        MalformedDID: If the value is not did:<method>:<identifier>
    """
    match = DID_PATTERN.fullmatch(did or "")
    if match is None:
        raise MalformedDID(f"Invalid DID: {did!r}", operation="parse_did", identifier=did)
    return Did(method=match.group("method"), identifier=match.group("identifier"))


def parse_identifier(value: str) -> Identifier:
    """Tag a raw identifier as a DID or a handle by its prefix."""
    if is_did(value):
        return parse_did(value)
    return Handle(value=value)
