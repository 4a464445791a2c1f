"""
Vault Configuration — Work factor, storage namespaces and validated settings.

Reads optional overrides from environment variables:
    VAULT_KDF_ITERATIONS = <int, PBKDF2-SHA256 iterations for new wraps>
    VAULT_STORAGE_PREFIX = <durable storage key prefix>
    VAULT_SESSION_PREFIX = <session cache key prefix>
    VAULT_SESSION_TTL = <seconds a session cache entry lives>
    VAULT_DERIVE_TIMEOUT = <seconds, optional timeout for key derivation>
    VAULT_STRICT_CREATE = <true|false, refuse to overwrite an existing vault>

Security Note:
    The iteration count only applies to newly wrapped records. Existing
    records keep the count they were written with, so lowering it here
    never weakens a stored vault silently.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("vaultlock.vault")

DEFAULT_ITERATIONS = 210_000
MIN_ITERATIONS = 1_000

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    return int(raw)


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    return float(raw)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    iterations: int = Field(default=DEFAULT_ITERATIONS, ge=MIN_ITERATIONS)
    storage_prefix: str = Field(default="suilog:vault:", min_length=1)
    session_prefix: str = Field(default="suilog:vault-session:", min_length=1)
    session_ttl: int = Field(default=3600, ge=60)
    derive_timeout: Optional[float] = Field(default=None, gt=0)
    strict_create: bool = False

    model_config = {"frozen": True}

    @field_validator("iterations")
    @classmethod
    def warn_low_iterations(cls, v: int) -> int:
        """Accept but flag a work factor below the default."""
        if v < DEFAULT_ITERATIONS:
            logger.warning(
                "Vault KDF iterations set to %d (default %d)",
                v, DEFAULT_ITERATIONS,
            )
        return v

    @field_validator("session_prefix")
    @classmethod
    def validate_distinct_prefix(cls, v: str, info) -> str:
        """Durable and session namespaces must not collide."""
        if v == info.data.get("storage_prefix"):
            raise ValueError(
                "session_prefix must differ from storage_prefix"
            )
        return v

    def storage_key(self, account: str) -> str:
        """Durable storage key for an account's vault record."""
        return f"{self.storage_prefix}{account}"

    def session_key(self, account: str) -> str:
        """Session storage key for an account's cached vault key."""
        return f"{self.session_prefix}{account}"

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig from environment overrides.

        Unset variables fall back to the field defaults.

        Returns:
            Populated VaultConfig instance.
        """
        values: dict = {}
        iterations = _env_int("VAULT_KDF_ITERATIONS")
        if iterations is not None:
            values["iterations"] = iterations
        if os.environ.get("VAULT_STORAGE_PREFIX"):
            values["storage_prefix"] = os.environ["VAULT_STORAGE_PREFIX"]
        if os.environ.get("VAULT_SESSION_PREFIX"):
            values["session_prefix"] = os.environ["VAULT_SESSION_PREFIX"]
        session_ttl = _env_int("VAULT_SESSION_TTL")
        if session_ttl is not None:
            values["session_ttl"] = session_ttl
        derive_timeout = _env_float("VAULT_DERIVE_TIMEOUT")
        if derive_timeout is not None:
            values["derive_timeout"] = derive_timeout
        strict = os.environ.get("VAULT_STRICT_CREATE")
        if strict is not None:
            values["strict_create"] = strict.strip().lower() in _TRUE_VALUES
        return cls(**values)
