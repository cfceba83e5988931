"""
Ledger client over JSON-RPC, built on web3.

Translates between the core's conventions (raw 20/32-byte values, ContractRef
+ method name) and web3's (checksummed hex addresses, ABI-bound contracts),
and maps transport and node errors onto the ensbid error taxonomy:

    requests timeout / connection failure  -> NetworkError
    node or contract refusal               -> Rejected (reason verbatim)

Nothing here retries a submission.
"""

from typing import Any, Sequence

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from ensbid.crypto import bytes_to_hex, hex_to_bytes, ADDRESS_SIZE
from ensbid.core.config import NetworkConfig
from ensbid.core.contracts import ContractCall, ContractRef, abi_for, output_types
from ensbid.core.errors import NetworkError, Rejected
from ensbid.core.session import TransactionSession
from ensbid.utils.logger import get_logger

logger = get_logger("chain")

DEFAULT_REQUEST_TIMEOUT = 30  # seconds per JSON-RPC request


def _checksum(address: bytes) -> str:
    return Web3.to_checksum_address(bytes_to_hex(address))


def _encode_arg(value: Any) -> Any:
    """Core argument -> web3 argument."""
    if isinstance(value, (bytes, bytearray)) and len(value) == ADDRESS_SIZE:
        return _checksum(bytes(value))
    if isinstance(value, (list, tuple)):
        return [_encode_arg(v) for v in value]
    return value


def _decode_value(value: Any, solidity_type: str) -> Any:
    """web3 result -> core value."""
    if solidity_type == "address":
        return hex_to_bytes(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return value


class Web3Ledger:
    """
    LedgerClient implementation for an Ethereum JSON-RPC endpoint.

    When a session carries no nonce override, the account's pending
    transaction count is used.
    """

    def __init__(
        self,
        network: NetworkConfig,
        web3: Web3 = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.network = network
        self.w3 = web3 or Web3(
            Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": request_timeout})
        )

    def _function(self, ref: ContractRef, method: str, args: Sequence[Any]):
        contract = self.w3.eth.contract(address=_checksum(ref.address), abi=abi_for(ref.kind))
        return getattr(contract.functions, method)(*[_encode_arg(a) for a in args])

    # =========================================================================
    # Reads
    # =========================================================================

    def read(self, contract: ContractRef, method: str, args: Sequence[Any] = ()) -> Any:
        """Call a view method and decode its result."""
        try:
            result = self._function(contract, method, args).call()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Cannot reach {self.network.rpc_url}: {e}")
        except (Web3Exception, ValueError) as e:
            raise NetworkError(f"Failed to read {method} from {contract}: {e}")

        types = output_types(contract.kind, method)
        if len(types) == 1:
            return _decode_value(result, types[0])
        return tuple(_decode_value(v, t) for v, t in zip(result, types))

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(self, session: TransactionSession, call: ContractCall) -> bytes:
        """Build, sign and broadcast a transaction; return its hash."""
        sender = _checksum(session.sender)
        try:
            nonce = session.nonce
            if nonce is None:
                nonce = self.w3.eth.get_transaction_count(sender, "pending")

            transaction = self._function(call.contract, call.method, call.args).build_transaction({
                "from": sender,
                "chainId": session.chain_id,
                "gasPrice": session.gas_price,
                "nonce": nonce,
                "value": session.value,
            })
            raw = session.credential.wallet.sign_transaction(session.sender, transaction)
            tx_hash = self.w3.eth.send_raw_transaction(raw)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Cannot reach {self.network.rpc_url}: {e}")
        except (Web3Exception, ValueError) as e:
            raise Rejected(str(e))

        logger.debug(f"Broadcast {call.method} to {call.contract} as {bytes_to_hex(bytes(tx_hash))}")
        return bytes(tx_hash)
