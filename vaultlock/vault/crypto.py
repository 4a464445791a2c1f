"""
Vault Crypto Core — Password key derivation and AES-GCM encryption.

Implements the two transforms the vault is built on:
- Key-wrapping: PBKDF2-HMAC-SHA256(password, salt, iterations) → AES-256 key
- Encryption: AES-256-GCM with a 96-bit nonce → ciphertext + 16B tag

Security Note:
    Never log plaintext, key bytes or ciphertext values.
    Nonces are random 96-bit; a nonce is never reused for the same key.
"""
import os
import hmac
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import DEFAULT_ITERATIONS
from .exceptions import AuthenticationFailed

logger = logging.getLogger("vaultlock.vault")

NONCE_SIZE = 12  # 96-bit nonce
SALT_SIZE = 16
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16


class VaultKey:
    """Handle around raw AES-256 key material.

    The raw bytes are only reachable through :func:`export_key`; ``repr``
    never shows them.
    """

    __slots__ = ("_raw", "_aead")

    def __init__(self, raw: bytes):
        if len(raw) != KEY_LENGTH:
            raise ValueError(
                f"Vault key must be exactly {KEY_LENGTH} bytes, got {len(raw)}"
            )
        self._raw = bytes(raw)
        self._aead = AESGCM(self._raw)

    def __repr__(self) -> str:
        return "<VaultKey aes-256-gcm>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VaultKey):
            return NotImplemented
        return hmac.compare_digest(self._raw, other._raw)


def random_bytes(size: int) -> bytes:
    """Return ``size`` bytes from the OS CSPRNG."""
    return os.urandom(size)


# ---------------------------------------------------------------------------
# Key derivation / generation
# ---------------------------------------------------------------------------

def derive_key(
    password: str,
    salt: bytes,
    iterations: int = DEFAULT_ITERATIONS,
) -> VaultKey:
    """Derive a key-wrapping key from a password using PBKDF2-HMAC-SHA256.

    Args:
        password: User password (UTF-8 encoded before derivation).
        salt: Per-record random salt.
        iterations: Work factor; must match the one stored with the record.

    Returns:
        256-bit AES-GCM key handle.
    """
    if iterations < 1:
        raise ValueError(f"iterations must be positive, got {iterations}")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return VaultKey(kdf.derive(password.encode("utf-8")))


def generate_key() -> VaultKey:
    """Generate a random 256-bit data-encryption key."""
    return VaultKey(AESGCM.generate_key(bit_length=KEY_LENGTH * 8))


# ---------------------------------------------------------------------------
# AEAD
# ---------------------------------------------------------------------------

def encrypt(
    plaintext: bytes,
    key: VaultKey,
    iv: Optional[bytes] = None,
) -> tuple[bytes, bytes]:
    """Encrypt with AES-256-GCM.

    Args:
        plaintext: Data to encrypt.
        key: Encryption key.
        iv: Optional 12-byte nonce. A random one is drawn when omitted;
            callers supplying their own must never repeat it for ``key``.

    Returns:
        Tuple of (ciphertext + tag, iv).
    """
    if iv is None:
        iv = random_bytes(NONCE_SIZE)
    elif len(iv) != NONCE_SIZE:
        raise ValueError(
            f"iv must be {NONCE_SIZE} bytes, got {len(iv)}"
        )
    return key._aead.encrypt(iv, plaintext, None), iv


def decrypt(ciphertext: bytes, key: VaultKey, iv: bytes) -> bytes:
    """Decrypt and authenticate AES-256-GCM ciphertext.

    Raises:
        AuthenticationFailed: If the tag does not verify, the nonce has the
            wrong size, or the ciphertext is shorter than a tag.
    """
    if len(iv) != NONCE_SIZE or len(ciphertext) < TAG_SIZE:
        raise AuthenticationFailed()
    try:
        return key._aead.decrypt(iv, ciphertext, None)
    except InvalidTag:
        raise AuthenticationFailed() from None


# ---------------------------------------------------------------------------
# Raw key material
# ---------------------------------------------------------------------------

def export_key(key: VaultKey) -> bytes:
    """Return the raw 32-byte key material."""
    return key._raw


def import_key(raw: bytes) -> VaultKey:
    """Build a key handle from raw 32-byte key material.

    Raises:
        ValueError: If ``raw`` is not exactly 32 bytes.
    """
    return VaultKey(raw)
