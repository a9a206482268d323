"""
AT Protocol Integration

This package provides the protocol-level pieces of SkyTools that do not
involve identity resolution itself.

Key Components:
- uri.py: Parsing of at:// URIs and DIDs
- pds.py: Record and blob access against a Personal Data Server (PDS)
- links.py: CDN image URLs and application post URLs
"""
