"""
SkyTools - AT Protocol identity resolution

This package resolves AT Protocol identities (handles and DIDs), locates the
personal data server (PDS) that hosts an identity, and reads records and blobs
from it.

Key Components:
- atproto: AT URI / DID parsing, PDS record access and URL builders
- resolve: Handle normalization, DID directory lookups and the handle
  resolution chain
- model: Pydantic models for DID documents, resolution results and records
- app: Configuration, metrics, logging and the resolution HTTP service

Resolution Overview:
1. A raw identifier ("@alice", "at://alice", "alice.bsky.social",
   "did:plc:...") is normalized to a handle or DID
2. Handles are resolved to DIDs through the default PDS, the handle's
   well-known document and finally DNS (directly or through a proxy)
3. DIDs are looked up in the PLC directory (or their did:web host) to find
   the handle and the PDS endpoint
4. Records are fetched from the PDS endpoint
"""
