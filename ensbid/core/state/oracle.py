"""
State Oracle - lifecycle classification of names.

Reads the auction registrar's view of a name and maps its numeric mode onto a
closed LifecycleState enum:

    registrar mode        LifecycleState
    0 Open            ->  AVAILABLE
    1 Auction         ->  AUCTION
    2 Owned           ->  OWNED
    3 Forbidden       ->  FORBIDDEN
    4 Reveal          ->  REVEAL
    5 NotYetAvailable ->  UNAVAILABLE

Happy path: AVAILABLE -> AUCTION -> REVEAL -> OWNED. FORBIDDEN and UNAVAILABLE
are dead ends for this tool.

State is never cached: every mutating operation calls require_permitted()
immediately before it builds a session, because other bidders can move the
name between a user's decision and the submission.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import FrozenSet, Mapping, Optional, Tuple

from ensbid.crypto import bytes_to_hex, is_null_address, ZERO_ADDRESS
from ensbid.core.contracts import ContractKind, ContractRef
from ensbid.core.errors import InvalidState
from ensbid.core.interfaces import LedgerClient
from ensbid.core.names import Name, name_hash
from ensbid.utils.logger import get_logger

logger = get_logger("state")


# =============================================================================
# Enums
# =============================================================================


class LifecycleState(IntEnum):
    """Lifecycle state of a name, valued as the registrar reports it."""
    AVAILABLE = 0      # Open for an auction to be started
    AUCTION = 1        # Accepting sealed bids
    OWNED = 2          # Auction over, a deed holds the name
    FORBIDDEN = 3      # Invalidated or too short
    REVEAL = 4         # Accepting reveals
    UNAVAILABLE = 5    # Not yet released for auction

    @property
    def label(self) -> str:
        return _LABELS[self]


class Operation(IntEnum):
    """Mutating operations the orchestrator performs."""
    START_AUCTION = 0
    PLACE_BID = 1
    REVEAL_BID = 2
    FINALIZE_AUCTION = 3
    SET_ADDRESS = 4


_LABELS: Mapping[LifecycleState, str] = {
    LifecycleState.AVAILABLE: "Available",
    LifecycleState.AUCTION: "Auction",
    LifecycleState.OWNED: "Owned",
    LifecycleState.FORBIDDEN: "Forbidden",
    LifecycleState.REVEAL: "Reveal",
    LifecycleState.UNAVAILABLE: "Unavailable",
}

# Operations permitted in each state
PERMITTED: Mapping[LifecycleState, FrozenSet[Operation]] = {
    LifecycleState.AVAILABLE: frozenset({Operation.START_AUCTION}),
    LifecycleState.AUCTION: frozenset({Operation.PLACE_BID}),
    LifecycleState.REVEAL: frozenset({Operation.REVEAL_BID}),
    LifecycleState.OWNED: frozenset({Operation.FINALIZE_AUCTION, Operation.SET_ADDRESS}),
    LifecycleState.FORBIDDEN: frozenset(),
    LifecycleState.UNAVAILABLE: frozenset(),
}


def check_state_tables(permitted: Mapping, labels: Mapping) -> None:
    """Adding a state without deciding what it permits is a programming error."""
    missing = set(LifecycleState) - set(permitted)
    if missing:
        raise RuntimeError(f"No permitted operations declared for {sorted(s.name for s in missing)}")
    missing = set(LifecycleState) - set(labels)
    if missing:
        raise RuntimeError(f"No label declared for {sorted(s.name for s in missing)}")


check_state_tables(PERMITTED, _LABELS)


def states_permitting(operation: Operation) -> Tuple[LifecycleState, ...]:
    """States in which `operation` may be performed."""
    return tuple(state for state in LifecycleState if operation in PERMITTED[state])


def state_from_mode(mode: int) -> LifecycleState:
    """
    Map a registrar mode to a LifecycleState.

    Raises:
        InvalidState: the registrar reported a mode this tool does not know
    """
    try:
        return LifecycleState(mode)
    except ValueError:
        raise InvalidState(f"Registrar reported unknown state {mode}")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class AuctionEntry:
    """
    The registrar's record for a label hash.

    Attributes:
        state: lifecycle state
        deed: address of the deed holding the winning bid (zero if none)
        registration_date: unix time the auction ends / ended
        value: price paid (second-highest bid)
        highest_bid: highest revealed bid
    """
    state: LifecycleState
    deed: bytes
    registration_date: int
    value: int
    highest_bid: int

    @property
    def has_deed(self) -> bool:
        return not is_null_address(self.deed)


# =============================================================================
# State Oracle
# =============================================================================


class StateOracle:
    """
    Read-only view of registry and registrar state.

    All methods are pure reads and safe to call concurrently.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        registry_address: bytes,
        registrar_address: Optional[bytes] = None,
        tld: str = "eth",
    ):
        """
        Args:
            ledger: Ledger client collaborator
            registry_address: ENS registry contract
            registrar_address: Auction registrar; looked up from the registry
                owner of the TLD when None
            tld: Top-level domain the registrar owns
        """
        self.ledger = ledger
        self.registry = ContractRef(ContractKind.REGISTRY, registry_address)
        self._registrar_address = registrar_address
        self.tld = tld

    # =========================================================================
    # Contracts
    # =========================================================================

    def registrar(self) -> ContractRef:
        """The auction registrar contract."""
        if self._registrar_address is not None:
            return ContractRef(ContractKind.REGISTRAR, self._registrar_address)

        address = self.ledger.read(self.registry, "owner", (name_hash(self.tld),))
        if is_null_address(address):
            raise InvalidState(f"No registrar owns .{self.tld}")
        logger.debug(f"Registrar for .{self.tld} is {bytes_to_hex(address)}")
        return ContractRef(ContractKind.REGISTRAR, address)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def query_state(self, name: Name) -> LifecycleState:
        """Current lifecycle state of a name, read fresh from the registrar."""
        mode = self.ledger.read(self.registrar(), "state", (name.label_hash,))
        state = state_from_mode(mode)
        logger.debug(f"{name} is {state.label}")
        return state

    def require_state(self, name: Name, expected: LifecycleState) -> LifecycleState:
        """
        Guard: the name must currently be in `expected`.

        Raises:
            InvalidState: it is not
        """
        state = self.query_state(name)
        if state != expected:
            raise InvalidState(
                f"{name} is {state.label}, needs to be {expected.label} for this operation"
            )
        return state

    def permits(self, name: Name, operation: Operation) -> bool:
        """Whether `operation` is valid for the name right now."""
        return operation in PERMITTED[self.query_state(name)]

    def require_permitted(self, name: Name, operation: Operation) -> LifecycleState:
        """
        Guard used by every mutating operation: the name's current state must
        permit `operation` according to PERMITTED.

        Raises:
            InvalidState: it does not
        """
        state = self.query_state(name)
        if operation not in PERMITTED[state]:
            needed = " or ".join(s.label for s in states_permitting(operation))
            raise InvalidState(f"{name} is {state.label}, needs to be {needed} for this operation")
        return state

    def entry(self, name: Name) -> AuctionEntry:
        """The registrar's auction entry for a name."""
        mode, deed, registration_date, value, highest_bid = self.ledger.read(
            self.registrar(), "entries", (name.label_hash,)
        )
        return AuctionEntry(
            state=state_from_mode(mode),
            deed=deed,
            registration_date=registration_date,
            value=value,
            highest_bid=highest_bid,
        )

    def sealed_bid_deed(self, bidder: bytes, seal: bytes) -> bytes:
        """Deed holding a sealed bid (zero address if no such bid was placed)."""
        return self.ledger.read(self.registrar(), "sealedBids", (bidder, seal))

    def deed_owner(self, entry: AuctionEntry) -> bytes:
        if not entry.has_deed:
            return ZERO_ADDRESS
        return self.ledger.read(ContractRef(ContractKind.DEED, entry.deed), "owner", ())

    # =========================================================================
    # Registry
    # =========================================================================

    def owner(self, name: Name) -> bytes:
        """Registry owner of a name (zero address if unset)."""
        return self.ledger.read(self.registry, "owner", (name.node,))

    def resolver(self, name: Name) -> bytes:
        """Resolver registered for a name (zero address if none)."""
        return self.ledger.read(self.registry, "resolver", (name.node,))
