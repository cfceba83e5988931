"""
Name identifiers.

Two hashes identify a name on the ledger:

- namehash: recursive keccak over the dotted labels, used by the registry and
  resolvers.  namehash("") = 0x00..00,
  namehash("a.eth") = keccak(namehash("eth") || keccak("a"))
- label hash: keccak of the first label alone, used by the auction registrar
  that owns the top-level domain.
"""

from dataclasses import dataclass, field

from ensbid.crypto import keccak256, ZERO_HASH
from ensbid.core.errors import InvalidName


# Shortest label the registrar will auction
MIN_LABEL_LENGTH = 7


def label_hash(label: str) -> bytes:
    """keccak256 of a single label."""
    return keccak256(label.encode("utf-8"))


def name_hash(name: str) -> bytes:
    """
    Compute the 32-byte namehash of a dotted name.

    Args:
        name: e.g. "enstest.eth"; the empty string is the root

    Raises:
        InvalidName: if the name contains an empty label ("a..eth", ".eth")
    """
    node = ZERO_HASH
    if name == "":
        return node

    labels = name.split(".")
    if any(label == "" for label in labels):
        raise InvalidName(f"Name {name!r} contains an empty label")

    for label in reversed(labels):
        node = keccak256(node + label_hash(label))
    return node


def normalize_name(text: str) -> str:
    """Strip surrounding whitespace and lower-case."""
    return text.strip().lower()


@dataclass(frozen=True)
class Name:
    """
    A dotted name and its derived identifiers.

    Attributes:
        text: normalised dotted name ("enstest.eth")
        node: namehash of the full name
        label: first label ("enstest")
        label_hash: keccak of the first label
    """
    text: str
    node: bytes = field(init=False)
    label: str = field(init=False)
    label_hash: bytes = field(init=False)

    def __post_init__(self):
        if not self.text:
            raise InvalidName("Name is required")
        object.__setattr__(self, "node", name_hash(self.text))
        object.__setattr__(self, "label", self.text.split(".")[0])
        object.__setattr__(self, "label_hash", label_hash(self.label))

    @classmethod
    def parse(cls, text: str) -> "Name":
        return cls(normalize_name(text))

    @property
    def parent(self) -> str:
        """Everything after the first label ("eth" for "enstest.eth")."""
        _, _, rest = self.text.partition(".")
        return rest

    def __str__(self) -> str:
        return self.text


def validate_auction_name(name: Name, min_label_length: int = MIN_LABEL_LENGTH) -> None:
    """
    Check a name can be auctioned by the registrar.

    Raises:
        InvalidName: label too short, or more than one level below the TLD
    """
    if len(name.text.split(".")) != 2:
        raise InvalidName("Name must not contain . (except for ending in .eth)")
    if len(name.label) < min_label_length:
        raise InvalidName(f"Name must be at least {min_label_length} characters long")
