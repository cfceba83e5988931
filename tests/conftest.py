"""
Shared fixtures: in-memory stand-ins for the ledger and wallet collaborators.
"""

import random
import time

import pytest

from ensbid.chain import RegistryNameResolver
from ensbid.core.auction import AuctionOrchestrator, CommitmentEngine
from ensbid.core.config import NetworkConfig
from ensbid.core.contracts import ContractKind
from ensbid.core.errors import CredentialUnavailable, Rejected
from ensbid.crypto import ZERO_ADDRESS, bytes_to_hex, keccak256


REGISTRY = bytes.fromhex("314159265dd8dbb310642f98f50c066173c1259b")
REGISTRAR = bytes.fromhex("6090a6e47849629b7245dfa1ca21d94cd15878ef")
BIDDER = bytes.fromhex("5ffc014343cd971b7eb70732021e26c35b744cc4")
OWNER = bytes.fromhex("90f8bf6a479f320ead074411a4b0e7944ea8c9c1")
RESOLVER = bytes.fromhex("1da022710df5002339274aadee8d58218e9d6ab5")
PASSPHRASE = "my secret passphrase"


class FakeLedger:
    """
    Registry, registrar, resolver and deed state kept in dicts.

    Records every submission so tests can inspect session and call.
    """

    def __init__(self):
        self.states = {}        # label hash -> registrar mode
        self.entries = {}       # label hash -> entries() tuple
        self.sealed_bids = {}   # (bidder, seal) -> deed
        self.deed_owners = {}   # deed -> owner
        self.owners = {}        # node -> owner
        self.resolvers = {}     # node -> resolver
        self.addresses = {}     # node -> addr record
        self.submitted = []
        self.reads = []
        self.reject_with = None
        self.delay = 0.0

    def read(self, contract, method, args=()):
        self.reads.append((contract, method, tuple(args)))
        kind = contract.kind
        if kind == ContractKind.REGISTRAR:
            if method == "state":
                return self.states.get(args[0], 0)
            if method == "entries":
                default = (self.states.get(args[0], 0), ZERO_ADDRESS, 0, 0, 0)
                return self.entries.get(args[0], default)
            if method == "sealedBids":
                return self.sealed_bids.get((args[0], args[1]), ZERO_ADDRESS)
        if kind == ContractKind.REGISTRY:
            if method == "owner":
                return self.owners.get(args[0], ZERO_ADDRESS)
            if method == "resolver":
                return self.resolvers.get(args[0], ZERO_ADDRESS)
        if kind == ContractKind.RESOLVER and method == "addr":
            return self.addresses.get(args[0], ZERO_ADDRESS)
        if kind == ContractKind.DEED and method == "owner":
            return self.deed_owners.get(contract.address, ZERO_ADDRESS)
        raise AssertionError(f"unexpected read {contract} {method}")

    def submit(self, session, call):
        if self.delay:
            time.sleep(self.delay)
        self.submitted.append((session, call))
        if self.reject_with:
            raise Rejected(self.reject_with)
        return keccak256(len(self.submitted).to_bytes(8, "big") + call.method.encode())


class FakeWallet:
    def sign_transaction(self, account, transaction):
        return b"signed:" + account


class FakeWallets:
    """Unlocks a fixed set of accounts with a single passphrase."""

    def __init__(self, accounts, passphrase=PASSPHRASE):
        self.accounts = set(accounts)
        self.passphrase = passphrase
        self.resolved = []

    def resolve(self, address, passphrase):
        self.resolved.append(address)
        if address not in self.accounts:
            raise CredentialUnavailable(f"No local keystore for {bytes_to_hex(address)}")
        if passphrase != self.passphrase:
            raise CredentialUnavailable("Failed to unlock the keystore")
        return FakeWallet(), address


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def wallets():
    return FakeWallets([BIDDER, OWNER])


@pytest.fixture
def network():
    return NetworkConfig(
        registry_address=bytes_to_hex(REGISTRY),
        registrar_address=bytes_to_hex(REGISTRAR),
        chain_id=3,
    )


@pytest.fixture
def engine():
    return CommitmentEngine(rng=random.Random(1234))


@pytest.fixture
def orchestrator(ledger, wallets, network, engine):
    orchestrator = AuctionOrchestrator(
        ledger=ledger,
        wallets=wallets,
        resolver=RegistryNameResolver(ledger, network.registry),
        network=network,
        engine=engine,
    )
    yield orchestrator
    orchestrator.close()


@pytest.fixture
def built_sessions(orchestrator, monkeypatch):
    """Every TransactionSession the orchestrator builds, in order."""
    sessions = []
    original = orchestrator.sessions.build

    def spy(*args, **kwargs):
        session = original(*args, **kwargs)
        sessions.append(session)
        return session

    monkeypatch.setattr(orchestrator.sessions, "build", spy)
    return sessions


@pytest.fixture
def accounts():
    """Well-known addresses used across tests."""
    return {
        "registry": REGISTRY,
        "registrar": REGISTRAR,
        "bidder": BIDDER,
        "owner": OWNER,
        "resolver": RESOLVER,
        "passphrase": PASSPHRASE,
    }
