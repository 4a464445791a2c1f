"""
Envelope sealing of application payloads under the vault key.

Each payload gets its own random data key:

    payload --AES-GCM(data_key, iv)--> cipher
    data_key --AES-GCM(vault_key, dek_iv)--> encrypted_dek

Only ``encrypted_dek`` depends on the vault key, so a sealed payload stays
readable for as long as the vault key exists, across password changes.
"""
from dataclasses import dataclass
from typing import Any

from .crypto import VaultKey, decrypt, encrypt, export_key, generate_key, import_key
from .exceptions import AuthenticationFailed, InvalidFormat
from .records import b64decode, b64encode


@dataclass(frozen=True)
class SealedPayload:
    cipher: bytes
    iv: bytes
    encrypted_dek: bytes
    dek_iv: bytes

    def to_dict(self) -> dict[str, str]:
        return {
            "cipher": b64encode(self.cipher),
            "iv": b64encode(self.iv),
            "encryptedDek": b64encode(self.encrypted_dek),
            "dekIv": b64encode(self.dek_iv),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SealedPayload":
        try:
            return cls(
                cipher=b64decode(data["cipher"]),
                iv=b64decode(data["iv"]),
                encrypted_dek=b64decode(data["encryptedDek"]),
                dek_iv=b64decode(data["dekIv"]),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as err:
            raise InvalidFormat(f"Malformed sealed payload: {err}") from None


def seal(plaintext: bytes, vault_key: VaultKey) -> SealedPayload:
    """Encrypt ``plaintext`` under a fresh data key wrapped by ``vault_key``."""
    data_key = generate_key()
    cipher, iv = encrypt(plaintext, data_key)
    encrypted_dek, dek_iv = encrypt(export_key(data_key), vault_key)
    return SealedPayload(cipher=cipher, iv=iv, encrypted_dek=encrypted_dek, dek_iv=dek_iv)


def open_sealed(sealed: SealedPayload, vault_key: VaultKey) -> bytes:
    """Recover the plaintext of a sealed payload.

    Raises:
        AuthenticationFailed: If either layer fails to authenticate.
    """
    raw_dek = decrypt(sealed.encrypted_dek, vault_key, sealed.dek_iv)
    try:
        data_key = import_key(raw_dek)
    except ValueError:
        raise AuthenticationFailed() from None
    return decrypt(sealed.cipher, data_key, sealed.iv)
