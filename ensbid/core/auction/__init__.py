"""
ensbid Auction Module.

This module provides the blind-auction protocol:
- Sealed-bid commitments and decoys
- Reveal verification
- The orchestrator driving start / bid / reveal / finalize / set address
"""

from ensbid.core.auction.commitment import (
    Bid,
    SealedBid,
    CommitmentBundle,
    CommitmentEngine,
    effective_mask,
    salt_hash,
    seal_bid,
)

from ensbid.core.auction.orchestrator import (
    AuctionOrchestrator,
    NameInfo,
)

__all__ = [
    # Commitments
    "Bid",
    "SealedBid",
    "CommitmentBundle",
    "CommitmentEngine",
    "effective_mask",
    "salt_hash",
    "seal_bid",
    # Orchestration
    "AuctionOrchestrator",
    "NameInfo",
]
