"""
Identity Resolution

This package resolves AT Protocol identifiers (DIDs, handles) to their
canonical forms.

Key Components:
- normalize.py: Canonicalization of user-supplied identifiers
- directory.py: DID document lookups in the PLC directory and did:web hosts
- handle.py: The ordered handle resolution chain and DID to handle mapping
- __main__.py: CLI interface for resolution

Resolution Types:
1. Handle Resolution, tried in order until one succeeds
   - XRPC resolution via the default PDS (com.atproto.identity.resolveHandle)
   - HTTP-based resolution via well-known endpoints (.well-known/atproto-did)
   - DNS-based resolution via TXT records (_atproto.{handle}), directly or
     through a /api/resolve-handle proxy

2. DID Resolution
   - did:plc method resolution via PLC directory
   - did:web method resolution via well-known endpoints
"""
