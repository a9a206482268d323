"""
Unit tests for identifier normalization in social.graze.skytools.resolve.normalize
"""

import pytest

from social.graze.skytools.resolve.normalize import normalize

SUFFIX = "bsky.social"


class TestNormalize:
    """Test suite for normalize function."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("alice", "alice.bsky.social"),
            ("@alice", "alice.bsky.social"),
            ("at://alice", "alice.bsky.social"),
            ("at://@alice", "alice.bsky.social"),
            ("alice.example.com", "alice.example.com"),
            ("@alice.example.com", "alice.example.com"),
            ("  alice.bsky.social  ", "alice.bsky.social"),
            ("did:plc:abc123", "did:plc:abc123"),
            ("at://did:plc:abc123", "did:plc:abc123"),
            ("@did:plc:abc123", "did:plc:abc123"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        """Test prefixes are stripped and the suffix is appended."""
        assert normalize(raw, SUFFIX) == expected

    def test_partial_forms_agree(self):
        """Test every user-facing form of a partial handle normalizes alike."""
        expected = normalize(f"alice.{SUFFIX}", SUFFIX)
        assert normalize("@alice", SUFFIX) == expected
        assert normalize("alice", SUFFIX) == expected
        assert normalize("at://alice", SUFFIX) == expected

    def test_custom_suffix(self):
        """Test the configured suffix is used."""
        assert normalize("alice", "example.org") == "alice.example.org"

    def test_did_is_never_suffixed(self):
        """Test DIDs without dots are left alone."""
        assert normalize("did:web:localhost", SUFFIX) == "did:web:localhost"

    @pytest.mark.parametrize(
        "raw",
        [
            "alice",
            "@alice",
            "@@alice",
            "at://at://alice",
            "at://@alice.example.com",
            " @ alice ",
            "did:plc:abc123",
            "at://",
            "@",
        ],
    )
    def test_idempotent(self, raw):
        """Test normalizing twice equals normalizing once."""
        once = normalize(raw, SUFFIX)
        assert normalize(once, SUFFIX) == once
