"""
Configuration for ensbid.

Two models replace the process-wide flags a one-shot tool would normally keep:

- NetworkConfig: where the ledger is and which contracts to talk to. Loaded
  once from the environment (optionally seeded from a .env file).
- OperationConfig: per-operation signing parameters (passphrase, gas price,
  nonce override, timeout). Passed explicitly into every orchestrator call so
  concurrent operations never share mutable state.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ensbid.crypto import hex_to_bytes, is_valid_address


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_CHAIN_ID = 1
# ENS registry, identical on mainnet and the classic testnets
DEFAULT_REGISTRY = "0x314159265dD8dbb310642f98f50C066173C1259b"
DEFAULT_TLD = "eth"

DEFAULT_GAS_PRICE = "4 GWei"
DEFAULT_BID = "0.01 Ether"
DEFAULT_DUMMIES = 3
DEFAULT_SUBMISSION_TIMEOUT = 120.0  # seconds

# Nonce sentinel meaning "let the network assign it"
AUTO_NONCE = -1

ENV_PREFIX = "ENSBID_"


# =============================================================================
# Models
# =============================================================================


class NetworkConfig(BaseModel):
    """Ledger endpoint and contract addresses"""

    model_config = ConfigDict(frozen=True)

    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = Field(default=DEFAULT_CHAIN_ID, gt=0)
    registry_address: str = DEFAULT_REGISTRY
    # Looked up from the registry owner of the TLD when unset
    registrar_address: Optional[str] = None
    tld: str = DEFAULT_TLD

    @field_validator("registry_address", "registrar_address")
    @classmethod
    def _check_address(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_address(value):
            raise ValueError(f"invalid contract address {value!r}")
        return value

    @field_validator("tld")
    @classmethod
    def _check_tld(cls, value: str) -> str:
        value = value.strip().lower()
        if not value or "." in value:
            raise ValueError(f"invalid top-level domain {value!r}")
        return value

    @property
    def registry(self) -> bytes:
        return hex_to_bytes(self.registry_address)

    @property
    def registrar(self) -> Optional[bytes]:
        if self.registrar_address is None:
            return None
        return hex_to_bytes(self.registrar_address)


class OperationConfig(BaseModel):
    """Signing parameters for a single operation"""

    model_config = ConfigDict(frozen=True)

    passphrase: str = ""
    gas_price: str = DEFAULT_GAS_PRICE
    nonce: int = Field(default=AUTO_NONCE, ge=AUTO_NONCE)
    timeout: float = Field(default=DEFAULT_SUBMISSION_TIMEOUT, gt=0)
    quiet: bool = False

    @property
    def nonce_override(self) -> Optional[int]:
        """The explicit nonce, or None when the network should assign it."""
        if self.nonce == AUTO_NONCE:
            return None
        return self.nonce


# =============================================================================
# Loading
# =============================================================================


def load_config(env_file: Optional[str] = None, **overrides) -> NetworkConfig:
    """
    Load network configuration from the environment.

    Args:
        env_file: Optional .env file read before the environment is consulted.
            Values already present in the environment win.
        **overrides: Explicit values (e.g. from CLI flags) that win over both.

    Returns:
        NetworkConfig instance
    """
    if env_file:
        load_dotenv(Path(env_file), override=False)
    else:
        load_dotenv(override=False)

    values = {}
    env_map = {
        "rpc_url": "RPC_URL",
        "chain_id": "CHAIN_ID",
        "registry_address": "REGISTRY",
        "registrar_address": "REGISTRAR",
        "tld": "TLD",
    }
    for field_name, env_name in env_map.items():
        value = os.environ.get(ENV_PREFIX + env_name)
        if value:
            values[field_name] = value

    values.update({k: v for k, v in overrides.items() if v is not None})
    return NetworkConfig(**values)
