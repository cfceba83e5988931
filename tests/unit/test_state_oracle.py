"""
Tests for the State Oracle.
"""

import pytest

from ensbid.core.errors import InvalidState
from ensbid.core.names import Name, name_hash
from ensbid.core.state import (
    LifecycleState,
    Operation,
    PERMITTED,
    StateOracle,
    check_state_tables,
    state_from_mode,
    states_permitting,
)


NAME = Name.parse("enstest.eth")


@pytest.fixture
def oracle(ledger, accounts):
    return StateOracle(ledger, registry_address=accounts["registry"], registrar_address=accounts["registrar"])


class TestClassification:
    """Registrar modes map onto lifecycle states."""

    @pytest.mark.parametrize("mode,state", [
        (0, LifecycleState.AVAILABLE),
        (1, LifecycleState.AUCTION),
        (2, LifecycleState.OWNED),
        (3, LifecycleState.FORBIDDEN),
        (4, LifecycleState.REVEAL),
        (5, LifecycleState.UNAVAILABLE),
    ])
    def test_modes(self, oracle, ledger, mode, state):
        ledger.states[NAME.label_hash] = mode
        assert oracle.query_state(NAME) == state

    def test_unknown_mode(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 9
        with pytest.raises(InvalidState, match="unknown state 9"):
            oracle.query_state(NAME)

    def test_state_from_mode(self):
        assert state_from_mode(4) is LifecycleState.REVEAL

    def test_labels(self):
        assert LifecycleState.AVAILABLE.label == "Available"
        assert LifecycleState.UNAVAILABLE.label == "Unavailable"

    def test_query_is_read_only(self, oracle, ledger):
        oracle.query_state(NAME)
        assert ledger.submitted == []

    def test_not_cached(self, oracle, ledger):
        """Every query hits the registrar."""
        ledger.states[NAME.label_hash] = 0
        assert oracle.query_state(NAME) == LifecycleState.AVAILABLE
        ledger.states[NAME.label_hash] = 1
        assert oracle.query_state(NAME) == LifecycleState.AUCTION


class TestRequireState:
    """Tests for the precondition guard."""

    def test_matching(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 2
        assert oracle.require_state(NAME, LifecycleState.OWNED) == LifecycleState.OWNED

    def test_mismatch(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 1
        with pytest.raises(InvalidState, match="is Auction, needs to be Available"):
            oracle.require_state(NAME, LifecycleState.AVAILABLE)


class TestPermissions:
    """Tests for the operation table."""

    def test_every_state_covered(self):
        assert set(PERMITTED) == set(LifecycleState)

    def test_table_check_rejects_missing_state(self):
        incomplete = {s: ops for s, ops in PERMITTED.items() if s != LifecycleState.REVEAL}
        labels = {s: s.name for s in LifecycleState}
        with pytest.raises(RuntimeError, match="REVEAL"):
            check_state_tables(incomplete, labels)

    def test_table_check_accepts_shipped_tables(self):
        check_state_tables(PERMITTED, {s: s.label for s in LifecycleState})

    def test_dead_ends(self):
        assert PERMITTED[LifecycleState.FORBIDDEN] == frozenset()
        assert PERMITTED[LifecycleState.UNAVAILABLE] == frozenset()

    def test_permits(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 0
        assert oracle.permits(NAME, Operation.START_AUCTION)
        assert not oracle.permits(NAME, Operation.REVEAL_BID)

    def test_owned_operations(self):
        assert Operation.SET_ADDRESS in PERMITTED[LifecycleState.OWNED]
        assert Operation.FINALIZE_AUCTION in PERMITTED[LifecycleState.OWNED]

    def test_states_permitting(self):
        assert states_permitting(Operation.START_AUCTION) == (LifecycleState.AVAILABLE,)
        assert states_permitting(Operation.SET_ADDRESS) == (LifecycleState.OWNED,)

    @pytest.mark.parametrize("operation", list(Operation))
    def test_every_operation_reachable(self, operation):
        assert states_permitting(operation)

    def test_require_permitted(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 4
        assert oracle.require_permitted(NAME, Operation.REVEAL_BID) == LifecycleState.REVEAL

    def test_require_permitted_refuses(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 1
        with pytest.raises(InvalidState, match="is Auction, needs to be Available"):
            oracle.require_permitted(NAME, Operation.START_AUCTION)

    def test_dead_end_refuses_everything(self, oracle, ledger):
        ledger.states[NAME.label_hash] = 3
        for operation in Operation:
            with pytest.raises(InvalidState, match="is Forbidden"):
                oracle.require_permitted(NAME, operation)


class TestRegistrar:
    """Tests for registrar discovery."""

    def test_configured(self, oracle, accounts):
        assert oracle.registrar().address == accounts["registrar"]

    def test_looked_up_from_registry(self, ledger, accounts):
        ledger.owners[name_hash("eth")] = accounts["registrar"]
        oracle = StateOracle(ledger, registry_address=accounts["registry"])
        assert oracle.registrar().address == accounts["registrar"]

    def test_missing(self, ledger, accounts):
        oracle = StateOracle(ledger, registry_address=accounts["registry"])
        with pytest.raises(InvalidState, match="No registrar"):
            oracle.registrar()


class TestReads:
    """Tests for entry, owner and resolver reads."""

    def test_entry(self, oracle, ledger):
        deed = b"\xdd" * 20
        ledger.entries[NAME.label_hash] = (2, deed, 1500000000, 10**16, 2 * 10**16)
        entry = oracle.entry(NAME)
        assert entry.state == LifecycleState.OWNED
        assert entry.deed == deed
        assert entry.has_deed
        assert entry.value == 10**16
        assert entry.highest_bid == 2 * 10**16

    def test_entry_without_deed(self, oracle):
        assert not oracle.entry(NAME).has_deed

    def test_deed_owner(self, oracle, ledger, accounts):
        deed = b"\xdd" * 20
        ledger.entries[NAME.label_hash] = (2, deed, 0, 0, 0)
        ledger.deed_owners[deed] = accounts["bidder"]
        assert oracle.deed_owner(oracle.entry(NAME)) == accounts["bidder"]

    def test_owner_and_resolver(self, oracle, ledger, accounts):
        ledger.owners[NAME.node] = accounts["owner"]
        ledger.resolvers[NAME.node] = accounts["resolver"]
        assert oracle.owner(NAME) == accounts["owner"]
        assert oracle.resolver(NAME) == accounts["resolver"]
