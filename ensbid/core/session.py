"""
Transaction sessions - signing context for a single submission.

A TransactionSession bundles everything a transaction needs apart from the
call it carries: the signing credential, target contract, gas price, optional
nonce override and the value attached to it. Sessions are built per operation
and never persisted.

Concurrency:
- Session construction and submission for one address are serialised with
  AccountLocks so two operations on the same account cannot race on nonce
  assignment.
- Submission is bounded by the session timeout. On expiry the outcome is
  unknown: the transaction may still land.
- Cancellation is honoured up to the moment of submission and not after.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout, wait
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Optional

from ensbid.crypto import bytes_to_hex
from ensbid.core.config import OperationConfig, DEFAULT_CHAIN_ID
from ensbid.core.contracts import ContractCall, ContractRef
from ensbid.core.errors import (
    InvalidAmount,
    InvalidGasPrice,
    InvalidInput,
    OperationCancelled,
    SubmissionTimeout,
)
from ensbid.core.interfaces import LedgerClient, Wallet, WalletService
from ensbid.core.units import parse_amount
from ensbid.utils.logger import get_logger

logger = get_logger("session")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class SigningCredential:
    """An unlocked account: the wallet holding it and its passphrase."""
    wallet: Wallet
    account: bytes
    passphrase: str

    def __repr__(self) -> str:
        return f"SigningCredential(account={bytes_to_hex(self.account)})"


@dataclass
class TransactionSession:
    """
    Signing context for one transaction.

    Attributes:
        credential: who signs
        contract: contract the transaction targets
        gas_price: wei per gas
        nonce: explicit nonce, or None to let the network assign it
        value: wei attached to the transaction (zero outside attached_value)
        chain_id: replay-protection chain id
        timeout: seconds to wait for the ledger to accept the submission
    """
    credential: SigningCredential
    contract: ContractRef
    gas_price: int
    nonce: Optional[int] = None
    value: int = 0
    chain_id: int = DEFAULT_CHAIN_ID
    timeout: float = 120.0

    @property
    def sender(self) -> bytes:
        return self.credential.account

    @contextmanager
    def attached_value(self, amount: int) -> Iterator["TransactionSession"]:
        """Attach `amount` wei for the duration of the block, then reset to zero."""
        if amount < 0:
            raise InvalidAmount("Attached value must not be negative")
        self.value = amount
        try:
            yield self
        finally:
            self.value = 0

    def snapshot(self) -> "TransactionSession":
        """Copy handed to the ledger, immune to later changes of this session."""
        return replace(self)


# =============================================================================
# Builder
# =============================================================================


class SessionBuilder:
    """Assembles sessions from an address and per-operation configuration."""

    def __init__(self, wallets: WalletService, chain_id: int = DEFAULT_CHAIN_ID):
        self.wallets = wallets
        self.chain_id = chain_id

    def build(
        self,
        address: bytes,
        contract: ContractRef,
        config: OperationConfig,
    ) -> TransactionSession:
        """
        Build a session for `address` targeting `contract`.

        Args:
            address: signing account
            contract: contract the transaction will call
            config: passphrase, gas price, nonce override and timeout

        Raises:
            CredentialUnavailable: no local keystore for the address unlocks
            InvalidGasPrice: gas price text does not parse
        """
        wallet, account = self.wallets.resolve(address, config.passphrase)
        credential = SigningCredential(wallet=wallet, account=account, passphrase=config.passphrase)

        try:
            gas_price = parse_amount(config.gas_price)
        except InvalidAmount as e:
            raise InvalidGasPrice(f"Invalid gas price: {e}")

        session = TransactionSession(
            credential=credential,
            contract=contract,
            gas_price=gas_price,
            chain_id=self.chain_id,
            timeout=config.timeout,
        )
        # The override is taken verbatim; a wrong value stalls or is rejected
        if config.nonce_override is not None:
            if config.nonce_override < 0:
                raise InvalidInput(f"Invalid nonce {config.nonce_override}")
            session.nonce = config.nonce_override

        logger.debug(
            f"Session for {bytes_to_hex(account)} -> {contract}, "
            f"gas price {gas_price}, nonce {session.nonce if session.nonce is not None else 'auto'}"
        )
        return session


# =============================================================================
# Per-account serialisation
# =============================================================================


class AccountLocks:
    """
    One lock per signing address, plus the submission still in flight for it.

    A submission that outlives its timeout keeps running on a worker thread.
    Until it finishes the address stays busy: `hold` waits for it after taking
    the lock, so the next operation cannot race it for a nonce.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[bytes, threading.Lock] = {}
        self._in_flight: Dict[bytes, Future] = {}

    def lock_for(self, address: bytes) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(address)
            if lock is None:
                lock = threading.Lock()
                self._locks[address] = lock
            return lock

    def track(self, address: bytes, future: Future) -> None:
        """Mark `address` busy until `future` completes."""
        with self._guard:
            self._in_flight[address] = future
        future.add_done_callback(lambda done: self._settle(address, done))

    def _settle(self, address: bytes, future: Future) -> None:
        with self._guard:
            if self._in_flight.get(address) is future:
                del self._in_flight[address]

    def in_flight(self, address: bytes) -> Optional[Future]:
        with self._guard:
            return self._in_flight.get(address)

    @contextmanager
    def hold(self, address: bytes) -> Iterator[None]:
        """
        Serialise everything in the block with other holders of `address`,
        after any submission from an earlier holder has finished.
        """
        with self.lock_for(address):
            pending = self.in_flight(address)
            if pending is not None and not pending.done():
                logger.info(f"Waiting for an earlier submission from {bytes_to_hex(address)} to finish")
                wait([pending])
            yield


# =============================================================================
# Submission
# =============================================================================


class Submitter:
    """
    Hands calls to the ledger with a bounded wait.

    The ledger call runs on a worker thread; if it does not return within the
    session timeout the caller gets SubmissionTimeout while the worker is left
    to finish. No retry is attempted. Every submission is registered with
    `locks`, so the sender stays busy until the worker returns.
    """

    def __init__(self, ledger: LedgerClient, locks: Optional[AccountLocks] = None, max_workers: int = 4):
        self.ledger = ledger
        self.locks = locks or AccountLocks()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ensbid-submit")

    def submit(
        self,
        session: TransactionSession,
        call: ContractCall,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Submit a call and return its transaction hash as 0x-hex.

        Raises:
            OperationCancelled: `cancel` was set before submission
            SubmissionTimeout: the ledger did not answer in time
            Rejected, NetworkError: passed through from the ledger unchanged
        """
        if cancel is not None and cancel.is_set():
            raise OperationCancelled("Operation cancelled before submission")

        future = self._executor.submit(self.ledger.submit, session.snapshot(), call)
        self.locks.track(session.sender, future)
        try:
            tx_hash = future.result(timeout=session.timeout)
        except FutureTimeout:
            raise SubmissionTimeout(
                f"No answer from the ledger within {session.timeout:g}s; "
                f"the {call.method} transaction may still be pending"
            )
        return bytes_to_hex(tx_hash)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
