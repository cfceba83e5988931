"""
Tests for name identifiers.
"""

import random
import string

import pytest

from ensbid.crypto import keccak256, ZERO_HASH
from ensbid.core.errors import InvalidName
from ensbid.core.names import (
    Name,
    label_hash,
    name_hash,
    validate_auction_name,
)


class TestNameHash:
    """Tests for namehash."""

    def test_root(self):
        assert name_hash("") == ZERO_HASH

    def test_known_values(self):
        """Reference vectors from the namehash definition."""
        assert name_hash("eth").hex() == "93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
        assert name_hash("foo.eth").hex() == "de9b09fd7c5f901e23a3f19fecc54828e9c848539801e86591bd9801b019f84f"

    def test_deterministic(self):
        assert name_hash("enstest.eth") == name_hash("enstest.eth")

    def test_distinct_labels_distinct_hashes(self):
        rng = random.Random(99)
        labels = set()
        while len(labels) < 500:
            length = rng.randint(1, 12)
            labels.add("".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(length)) + ".eth")

        hashes = {name_hash(label) for label in labels}
        assert len(hashes) == len(labels)

    def test_empty_label_rejected(self):
        with pytest.raises(InvalidName):
            name_hash("foo..eth")
        with pytest.raises(InvalidName):
            name_hash(".eth")

    def test_label_hash(self):
        assert label_hash("enstest") == keccak256(b"enstest")


class TestName:
    """Tests for the Name value."""

    def test_parse_normalizes(self):
        name = Name.parse("  EnsTest.ETH ")
        assert name.text == "enstest.eth"
        assert name.label == "enstest"
        assert name.parent == "eth"

    def test_identifiers(self):
        name = Name.parse("enstest.eth")
        assert name.node == name_hash("enstest.eth")
        assert name.label_hash == label_hash("enstest")

    def test_equal_labels_equal_names(self):
        assert Name.parse("enstest.eth") == Name.parse("ENSTEST.eth")

    def test_empty(self):
        with pytest.raises(InvalidName):
            Name.parse("   ")


class TestAuctionName:
    """Tests for validate_auction_name."""

    def test_valid(self):
        validate_auction_name(Name.parse("enstest.eth"))

    def test_too_short(self):
        with pytest.raises(InvalidName, match="at least 7"):
            validate_auction_name(Name.parse("short.eth"))

    def test_subdomain(self):
        with pytest.raises(InvalidName, match="must not contain"):
            validate_auction_name(Name.parse("sub.enstest.eth"))

    def test_no_tld(self):
        with pytest.raises(InvalidName):
            validate_auction_name(Name.parse("enstesting"))

    def test_custom_minimum(self):
        validate_auction_name(Name.parse("abc.eth"), min_label_length=3)
