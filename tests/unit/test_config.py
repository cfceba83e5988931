"""
Tests for configuration models and loading.
"""

import os

import pytest
from pydantic import ValidationError

from ensbid.core.config import (
    DEFAULT_REGISTRY,
    NetworkConfig,
    OperationConfig,
    load_config,
)


ENV_KEYS = ["ENSBID_RPC_URL", "ENSBID_CHAIN_ID", "ENSBID_REGISTRY", "ENSBID_REGISTRAR", "ENSBID_TLD"]
REGISTRAR = "0x6090A6e47849629b7245Dfa1Ca21D94cd15878Ef"


@pytest.fixture(autouse=True)
def clean_env():
    """load_dotenv writes into os.environ; restore it afterwards."""
    saved = dict(os.environ)
    for key in ENV_KEYS:
        os.environ.pop(key, None)
    yield
    os.environ.clear()
    os.environ.update(saved)


class TestNetworkConfig:
    def test_defaults(self):
        config = NetworkConfig()
        assert config.registry_address == DEFAULT_REGISTRY
        assert config.registrar is None
        assert config.tld == "eth"
        assert len(config.registry) == 20

    def test_invalid_address(self):
        with pytest.raises(ValidationError):
            NetworkConfig(registry_address="0x1234")

    @pytest.mark.parametrize("tld", ["", "eth.test"])
    def test_invalid_tld(self, tld):
        with pytest.raises(ValidationError):
            NetworkConfig(tld=tld)

    def test_tld_normalised(self):
        assert NetworkConfig(tld=" ETH ").tld == "eth"

    def test_chain_id_positive(self):
        with pytest.raises(ValidationError):
            NetworkConfig(chain_id=0)

    def test_frozen(self):
        config = NetworkConfig()
        with pytest.raises(ValidationError):
            config.chain_id = 5


class TestOperationConfig:
    def test_auto_nonce(self):
        assert OperationConfig().nonce_override is None

    def test_explicit_nonce(self):
        assert OperationConfig(nonce=4).nonce_override == 4

    def test_timeout_positive(self):
        with pytest.raises(ValidationError):
            OperationConfig(timeout=0)


class TestLoadConfig:
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("ENSBID_CHAIN_ID", "3")
        monkeypatch.setenv("ENSBID_REGISTRAR", REGISTRAR)
        config = load_config()
        assert config.chain_id == 3
        assert config.registrar_address == REGISTRAR

    def test_from_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("ENSBID_RPC_URL=http://node.example:8545\nENSBID_CHAIN_ID=3\n")
        config = load_config(str(env_file))
        assert config.rpc_url == "http://node.example:8545"
        assert config.chain_id == 3

    def test_environment_beats_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("ENSBID_CHAIN_ID=3\n")
        monkeypatch.setenv("ENSBID_CHAIN_ID", "4")
        assert load_config(str(env_file)).chain_id == 4

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("ENSBID_RPC_URL", "http://from-env:8545")
        config = load_config(rpc_url="http://from-flag:8545", tld=None)
        assert config.rpc_url == "http://from-flag:8545"
        assert config.tld == "eth"
