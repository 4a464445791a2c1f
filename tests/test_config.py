"""
Tests for VaultConfig.
"""
import pytest
from pydantic import ValidationError

from vaultlock.vault.config import DEFAULT_ITERATIONS, VaultConfig


class TestVaultConfig:
    """Tests for validation and environment loading."""

    def test_defaults(self):
        config = VaultConfig()
        assert config.iterations == DEFAULT_ITERATIONS == 210_000
        assert config.storage_key("0xa") == "suilog:vault:0xa"
        assert config.session_key("0xa") == "suilog:vault-session:0xa"
        assert config.derive_timeout is None
        assert config.strict_create is False

    def test_iterations_floor(self):
        with pytest.raises(ValidationError):
            VaultConfig(iterations=10)

    def test_session_ttl_floor(self):
        with pytest.raises(ValidationError):
            VaultConfig(session_ttl=5)

    def test_prefixes_must_differ(self):
        with pytest.raises(ValidationError):
            VaultConfig(storage_prefix="x:", session_prefix="x:")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("VAULT_KDF_ITERATIONS", "300000")
        monkeypatch.setenv("VAULT_STORAGE_PREFIX", "app:vault:")
        monkeypatch.setenv("VAULT_SESSION_TTL", "120")
        monkeypatch.setenv("VAULT_DERIVE_TIMEOUT", "2.5")
        monkeypatch.setenv("VAULT_STRICT_CREATE", "yes")
        config = VaultConfig.from_env()
        assert config.iterations == 300_000
        assert config.storage_prefix == "app:vault:"
        assert config.session_ttl == 120
        assert config.derive_timeout == 2.5
        assert config.strict_create is True

    def test_from_env_defaults(self, monkeypatch):
        for name in (
            "VAULT_KDF_ITERATIONS", "VAULT_STORAGE_PREFIX", "VAULT_SESSION_PREFIX",
            "VAULT_SESSION_TTL", "VAULT_DERIVE_TIMEOUT", "VAULT_STRICT_CREATE",
        ):
            monkeypatch.delenv(name, raising=False)
        assert VaultConfig.from_env() == VaultConfig()
