"""
Contract references, call payloads and the ABI fragments they need.

The core never talks to a contract directly. It describes what it wants as a
ContractCall (contract + method + positional args) and hands that to the
ledger client collaborator together with a TransactionSession.

Argument conventions inside the core:
- address -> 20 raw bytes
- bytes32 -> 32 raw bytes
- uint    -> int
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple

from ensbid.crypto import bytes_to_hex


class ContractKind(Enum):
    """Contracts the tool interacts with."""
    REGISTRY = "registry"
    REGISTRAR = "registrar"
    RESOLVER = "resolver"
    DEED = "deed"


@dataclass(frozen=True)
class ContractRef:
    """A deployed contract: what it is and where it lives."""
    kind: ContractKind
    address: bytes

    def __str__(self) -> str:
        return f"{self.kind.value}@{bytes_to_hex(self.address)}"


@dataclass(frozen=True)
class ContractCall:
    """A state-changing method invocation to be carried by a transaction."""
    contract: ContractRef
    method: str
    args: Tuple[Any, ...] = ()


# =============================================================================
# ABI fragments
# =============================================================================


def _fn(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
        "stateMutability": mutability,
        "constant": mutability == "view",
    }


REGISTRY_ABI = [
    _fn("owner", [("node", "bytes32")], [("", "address")], "view"),
    _fn("resolver", [("node", "bytes32")], [("", "address")], "view"),
    _fn("ttl", [("node", "bytes32")], [("", "uint64")], "view"),
]

REGISTRAR_ABI = [
    _fn("state", [("_hash", "bytes32")], [("", "uint8")], "view"),
    _fn(
        "entries",
        [("_hash", "bytes32")],
        [("", "uint8"), ("", "address"), ("", "uint256"), ("", "uint256"), ("", "uint256")],
        "view",
    ),
    _fn("sealedBids", [("bidder", "address"), ("seal", "bytes32")], [("", "address")], "view"),
    _fn(
        "shaBid",
        [("hash", "bytes32"), ("owner", "address"), ("value", "uint256"), ("salt", "bytes32")],
        [("sealedBid", "bytes32")],
        "pure",
    ),
    _fn("startAuction", [("_hash", "bytes32")]),
    _fn("startAuctions", [("_hashes", "bytes32[]")]),
    _fn("startAuctionsAndBid", [("hashes", "bytes32[]"), ("sealedBid", "bytes32")], mutability="payable"),
    _fn("newBid", [("sealedBid", "bytes32")], mutability="payable"),
    _fn("unsealBid", [("_hash", "bytes32"), ("_value", "uint256"), ("_salt", "bytes32")]),
    _fn("finalizeAuction", [("_hash", "bytes32")]),
]

RESOLVER_ABI = [
    _fn("addr", [("node", "bytes32")], [("", "address")], "view"),
    _fn("setAddr", [("node", "bytes32"), ("addr", "address")]),
]

DEED_ABI = [
    _fn("owner", [], [("", "address")], "view"),
    _fn("value", [], [("", "uint256")], "view"),
]

ABIS = {
    ContractKind.REGISTRY: REGISTRY_ABI,
    ContractKind.REGISTRAR: REGISTRAR_ABI,
    ContractKind.RESOLVER: RESOLVER_ABI,
    ContractKind.DEED: DEED_ABI,
}


def abi_for(kind: ContractKind) -> list:
    return ABIS[kind]


def output_types(kind: ContractKind, method: str) -> list:
    """Solidity output types of a method, used to decode read results."""
    for entry in ABIS[kind]:
        if entry["name"] == method:
            return [o["type"] for o in entry["outputs"]]
    raise KeyError(f"{kind.value} has no method {method!r}")
