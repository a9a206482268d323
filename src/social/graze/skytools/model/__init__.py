"""
Data Models

Pydantic models for the documents and records SkyTools reads.

- identity.py: DID documents and resolution results
- records.py: Profile and post records, blob references and XRPC responses
"""
