"""
Commitment Engine - sealed bids for the blind auction.

A bid is hidden behind a seal:

    seal = keccak256(label_hash || bidder || uint256(value) || keccak256(salt))

The seal goes on chain during the auction phase together with a deposit of
`mask` wei (mask >= value, so the deposit does not leak the bid). During the
reveal phase the bidder discloses (label_hash, value, salt) and anyone can
recompute the seal.

Decoys: starting an auction also starts `decoys` auctions on random label
hashes, so an observer sees decoys + 1 candidate names and cannot tell from
the transaction which one the sealed bid is for. Each decoy is shaped like a
real commitment (random identifier, value 0, fresh random salt).

Randomness comes from an injected random.Random-compatible source so tests
can pin decoy identifiers and their order.
"""

import random
from dataclasses import dataclass, field
from typing import List, Optional

from ensbid.crypto import keccak256, bytes_to_hex, HASH_SIZE
from ensbid.core.errors import InvalidAmount, InvalidInput
from ensbid.core.names import Name
from ensbid.core.units import parse_amount
from ensbid.utils.logger import get_logger

logger = get_logger("commitment")


# =============================================================================
# Helpers
# =============================================================================


def salt_hash(salt: str) -> bytes:
    """The 32-byte salt committed to on chain for a memorable salt phrase."""
    return keccak256(salt.encode("utf-8"))


def seal_bid(identifier: bytes, bidder: bytes, value: int, salt: bytes) -> bytes:
    """
    Compute a sealed bid.

    Args:
        identifier: 32-byte label hash being bid on
        bidder: 20-byte bidder address
        value: bid in wei
        salt: 32-byte salt hash

    Returns:
        32-byte seal
    """
    return keccak256(
        identifier +
        bidder +
        value.to_bytes(32, byteorder="big") +
        salt
    )


def effective_mask(amount: int, mask_text: Optional[str]) -> int:
    """
    Amount of wei to send along with a bid.

    The mask must never be below the bid. An absent mask, a mask below the bid
    and a mask that fails to parse all fall back to the bid itself.
    """
    if not mask_text:
        return amount
    try:
        mask = parse_amount(mask_text)
    except InvalidAmount:
        logger.warning(f"Ignoring unparsable mask {mask_text!r}, sending the bid amount instead")
        return amount
    return max(mask, amount)


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class Bid:
    """
    A bid on a name.

    Attributes:
        bidder: 20-byte address placing the bid
        name: the name bid on
        amount: true bid in wei
        mask: wei deposited with the bid (>= amount)
        salt: secret phrase needed to reveal
        decoys: number of decoy auctions to start alongside
    """
    bidder: bytes
    name: Name
    amount: int
    mask: Optional[int] = None
    salt: str = ""
    decoys: int = 0

    def __post_init__(self):
        if self.amount < 0:
            raise InvalidAmount("Bid must not be negative")
        if self.decoys < 0:
            raise InvalidInput("Number of dummies must not be negative")
        if self.mask is None or self.mask < self.amount:
            self.mask = self.amount

    @property
    def is_sealed(self) -> bool:
        """Whether this bid carries a commitment (zero bids do not)."""
        return self.amount > 0


@dataclass(frozen=True)
class SealedBid:
    """A commitment as it appears on chain: the identifier and its seal."""
    identifier: bytes
    seal: bytes
    decoy: bool = False

    def __str__(self) -> str:
        return bytes_to_hex(self.seal)


@dataclass
class CommitmentBundle:
    """
    The real commitment plus its decoys.

    `identifiers` holds every candidate identifier in submission order; the
    real one sits at a random position.
    """
    real: SealedBid
    decoys: List[SealedBid] = field(default_factory=list)
    identifiers: List[bytes] = field(default_factory=list)

    @property
    def entries(self) -> List[SealedBid]:
        return [self.real] + self.decoys

    def __len__(self) -> int:
        return len(self.identifiers)


# =============================================================================
# Commitment Engine
# =============================================================================


class CommitmentEngine:
    """
    Builds and verifies sealed bids.

    Deterministic given the bid; only decoys consume randomness.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: randomness for decoy identifiers, decoy salts and shuffling.
                Defaults to the operating system's CSPRNG.
        """
        self.rng = rng if rng is not None else random.SystemRandom()

    def build_commitment(self, bid: Bid) -> Optional[SealedBid]:
        """
        Seal a bid.

        Returns:
            The SealedBid, or None for a zero bid (auction start without bid)
        """
        if not bid.is_sealed:
            return None
        seal = seal_bid(bid.name.label_hash, bid.bidder, bid.amount, salt_hash(bid.salt))
        return SealedBid(identifier=bid.name.label_hash, seal=seal)

    def build_decoys(self, bid: Bid) -> List[SealedBid]:
        """Generate `bid.decoys` void commitments shaped like the real one."""
        decoys = []
        for _ in range(bid.decoys):
            identifier = self.rng.randbytes(HASH_SIZE)
            salt = self.rng.randbytes(HASH_SIZE)
            decoys.append(SealedBid(
                identifier=identifier,
                seal=seal_bid(identifier, bid.bidder, 0, salt),
                decoy=True,
            ))
        return decoys

    def build_bundle(self, bid: Bid) -> Optional[CommitmentBundle]:
        """
        Seal a bid and surround it with decoys.

        Returns:
            The bundle, or None for a zero bid
        """
        real = self.build_commitment(bid)
        if real is None:
            return None

        decoys = self.build_decoys(bid)
        identifiers = [real.identifier] + [d.identifier for d in decoys]
        self.rng.shuffle(identifiers)

        logger.debug(f"Sealed bid {real} for {bid.name} among {len(identifiers)} candidates")
        return CommitmentBundle(real=real, decoys=decoys, identifiers=identifiers)

    def verify_reveal(self, bid: Bid, commitment: SealedBid) -> bool:
        """
        Check a claimed bid opens a commitment.

        A mismatch is not an error here; callers decide what it means.
        """
        expected = self.build_commitment(bid)
        if expected is None:
            return False
        return (
            expected.identifier == commitment.identifier and
            expected.seal == commitment.seal
        )
