"""
Vault Errors — Failure taxonomy for vault lifecycle operations.

``AuthenticationFailed`` deliberately covers both a wrong password and a
corrupted record: an AEAD tag mismatch cannot tell them apart, and the
message must not hint at which one happened.
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class NotFound(VaultError):
    """No vault record exists for the account."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"No vault found for account {account!r}")


class AlreadyExists(VaultError):
    """A vault record already exists and overwrite is not allowed."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"Vault already exists for account {account!r}")


class AuthenticationFailed(VaultError):
    """Wrong password or corrupted ciphertext."""

    def __init__(self, message: str = "Vault authentication failed"):
        super().__init__(message)


class InvalidFormat(VaultError, ValueError):
    """Backup payload could not be parsed."""


class VersionMismatch(VaultError, ValueError):
    """Unsupported record or backup schema version."""

    def __init__(self, found, expected: int):
        self.found = found
        self.expected = expected
        super().__init__(
            f"Unsupported vault version {found!r} (expected {expected})"
        )


class AccountMismatch(VaultError, ValueError):
    """Backup belongs to a different account."""

    def __init__(self, backup_account: str, account: str):
        self.backup_account = backup_account
        self.account = account
        super().__init__(
            f"Backup was exported for account {backup_account!r}, "
            f"not {account!r}"
        )


class DerivationTimeout(VaultError):
    """Password-based key derivation exceeded the configured timeout."""


class VaultLocked(VaultError):
    """The operation needs the live vault key but the vault is not unlocked."""
