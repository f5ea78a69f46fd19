# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import pytest

from rsavault import errors
from rsavault.rsa import KeyRecord
from rsavault.store import KeyDatabase
from rsavault.vault import KeyVault

pytestmark = pytest.mark.filterwarnings("ignore:Textbook RSA is unsecure")

payload = b"Attack at dawn. \x00\x01\x02 Bring snacks."


@pytest.fixture
def vault(tmp_path) -> KeyVault:
    return KeyVault(KeyDatabase(tmp_path / "keys.db"))


@pytest.fixture
def known_record(rsa_primes) -> KeyRecord:
    p, q = rsa_primes[1024]
    return KeyRecord(p * q, pow(65537, -1, (p - 1) * (q - 1)), 1024)


@pytest.fixture
def alice(vault, mocker, known_record) -> KeyVault:
    mocker.patch("rsavault.keygen.generate_key_pair", return_value=(known_record.mod, known_record.priv))
    vault.create("alice", 1024)
    return vault


def test_create(vault):
    record = vault.create("alice", 256)
    assert "alice" in vault
    assert len(vault) == 1
    assert vault.get("alice") is record
    assert record.has_private
    assert 255 <= record.mod.bit_length() <= 256


def test_create_validates(vault):
    with pytest.raises(errors.InvalidKeyLength):
        vault.create("alice", 384)
    assert "alice" not in vault


def test_create_replaces(alice):
    old = alice.get("alice")
    alice.create("alice", 512)
    assert alice.get("alice") is not old


def test_encrypt_decrypt(alice):
    assert alice.decrypt("alice", alice.encrypt("alice", payload)) == payload


@pytest.mark.parametrize("action", ["encrypt", "decrypt", "export", "get"])
def test_unknown_user(vault, action):
    args = {"encrypt": (b"hi",), "decrypt": ("",), "export": (), "get": ()}[action]
    with pytest.raises(errors.UserNotFound, match="bob"):
        getattr(vault, action)("bob", *args)


def test_decrypt_public_only(alice):
    exported = alice.export("alice")
    alice.import_public("bob", exported)
    ciph = alice.encrypt("bob", payload)
    with pytest.raises(errors.PrivateKeyNotFound, match="bob"):
        alice.decrypt("bob", ciph)


def test_export_private_missing(alice):
    alice.import_public("bob", alice.export("alice"))
    with pytest.raises(errors.PrivateKeyNotFound):
        alice.export("bob", private=True)


def test_import_private_order(vault, alice):
    with pytest.raises(errors.ImportOrder):
        vault.import_private("carol", alice.export("alice", private=True))
    assert "carol" not in vault


def test_import_transfers_key(alice, tmp_path):
    other = KeyVault(KeyDatabase(tmp_path / "other.db"))
    record = other.import_public("alice", alice.export("alice"))
    assert record.size == 1024
    assert not record.has_private
    ciph = other.encrypt("alice", payload)
    assert alice.decrypt("alice", ciph) == payload
    other.import_private("alice", alice.export("alice", private=True))
    assert other.get("alice") == alice.get("alice")
    assert other.decrypt("alice", ciph) == payload


def test_import_public_keeps_private(alice, known_record):
    record = alice.import_public("alice", alice.export("alice"))
    assert record.priv == known_record.priv
    assert alice.decrypt("alice", alice.encrypt("alice", payload)) == payload


def test_import_public_validates(vault):
    with pytest.raises(errors.InvalidKeyLength):
        vault.import_public("bob", "QUJD")


def test_list_keys(alice):
    alice.import_public("bob", alice.export("alice"))
    alice.import_public("aaron", alice.export("alice"))
    listing = alice.list_keys()
    assert [user for user, _ in listing] == ["aaron", "alice", "bob"]
    assert [record.has_private for _, record in listing] == [False, True, False]


def test_save_once(alice, tmp_path):
    alice.import_public("bob", alice.export("alice"))
    alice.save()
    with pytest.raises(RuntimeError):
        alice.save()
    reloaded = KeyVault(KeyDatabase(tmp_path / "keys.db"))
    assert reloaded.list_keys() == alice.list_keys()


def test_reload_session(alice, tmp_path):
    ciph = alice.encrypt("alice", payload)
    alice.save()
    reloaded = KeyVault(KeyDatabase(tmp_path / "keys.db"))
    assert "alice" in reloaded
    assert reloaded.decrypt("alice", ciph) == payload
    assert reloaded.decrypt("alice", reloaded.encrypt("alice", payload)) == payload


def test_nothing_saved_without_save(alice, tmp_path):
    assert not (tmp_path / "keys.db").exists()
    assert len(KeyVault(KeyDatabase(tmp_path / "keys.db"))) == 0


def test_load_corrupt(tmp_path):
    (tmp_path / "keys.db").write_bytes(b"not a key table")
    with pytest.raises(errors.DatabaseError):
        KeyVault(KeyDatabase(tmp_path / "keys.db"))
