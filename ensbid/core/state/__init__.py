"""
Name state module.

Lifecycle classification of names from registry and registrar reads.
"""

from ensbid.core.state.oracle import (
    LifecycleState,
    Operation,
    AuctionEntry,
    StateOracle,
    PERMITTED,
    check_state_tables,
    state_from_mode,
    states_permitting,
)

__all__ = [
    "LifecycleState",
    "Operation",
    "AuctionEntry",
    "StateOracle",
    "PERMITTED",
    "check_state_tables",
    "state_from_mode",
    "states_permitting",
]
