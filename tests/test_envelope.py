"""
Tests for envelope sealing.
"""
import pytest

from vaultlock.vault.crypto import generate_key
from vaultlock.vault.envelope import SealedPayload, open_sealed, seal
from vaultlock.vault.exceptions import AuthenticationFailed, InvalidFormat


def test_seal_open():
    key = generate_key()
    sealed = seal(b"dear diary", key)
    assert open_sealed(sealed, key) == b"dear diary"


def test_each_seal_uses_fresh_data_key():
    key = generate_key()
    a, b = seal(b"same", key), seal(b"same", key)
    assert a.encrypted_dek != b.encrypted_dek
    assert a.cipher != b.cipher


def test_wrong_vault_key():
    sealed = seal(b"dear diary", generate_key())
    with pytest.raises(AuthenticationFailed):
        open_sealed(sealed, generate_key())


def test_dict_round_trip():
    key = generate_key()
    sealed = seal(b"dear diary", key)
    data = sealed.to_dict()
    assert set(data) == {"cipher", "iv", "encryptedDek", "dekIv"}
    assert open_sealed(SealedPayload.from_dict(data), key) == b"dear diary"


def test_from_dict_malformed():
    with pytest.raises(InvalidFormat):
        SealedPayload.from_dict({"cipher": "AAAA"})
