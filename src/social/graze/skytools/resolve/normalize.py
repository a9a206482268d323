"""Canonicalize user-supplied identifiers.

Turns the many ways people type an identity ("@alice", "at://alice",
"alice") into a fully-qualified handle or a bare DID. Purely syntactic.
"""

from social.graze.skytools.atproto.uri import AT_URI_SCHEME, is_did


def normalize(raw: str, default_suffix: str) -> str:
    """Normalize a handle or DID.

    Strips surrounding whitespace, any leading at:// scheme and any leading @
    sigil, then appends ``.{default_suffix}`` to a handle without a dot.
    Applying it twice gives the same result as applying it once.

    Args:
        raw: Raw identifier text
        default_suffix: Suffix for partial handles, e.g. "bsky.social"

    Returns:
        Normalized handle or DID, or "" for empty input
    """
    identifier = raw.strip()
    if len(identifier) == 0:
        return identifier

    stripped = None
    while stripped != identifier:
        stripped = identifier
        identifier = identifier.removeprefix(AT_URI_SCHEME).strip()
        if not is_did(identifier):
            identifier = identifier.removeprefix("@").strip()

    if identifier and not is_did(identifier) and "." not in identifier:
        identifier = f"{identifier}.{default_suffix}"
    return identifier
