"""The session key vault.

`KeyVault` is the single owner of the user table for one session: it loads the table once from its `KeyDatabase`,
hands out encryption, decryption, export and import on behalf of users, and writes the table back exactly once.

Typical usage example:

    vault = KeyVault(KeyDatabase(pathlib.Path("keys.db")))
    vault.create("alice", KeySize.TWO_K)
    c = vault.encrypt("alice", b"Hi there!")
    vault.save()
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsavault.errors import ImportOrder
from rsavault.errors import PrivateKeyNotFound
from rsavault.errors import UserNotFound
from rsavault.keygen import KeySize
from rsavault.rsa import b64_dec
from rsavault.rsa import KeyRecord
from rsavault.store import KeyDatabase


class KeyVault:
    """Owns every `KeyRecord` of the session.

    Not thread-safe. Confine a vault to one thread.

    Attributes:
        database: Where the records come from and go back to.
    """

    def __init__(self, database: KeyDatabase) -> None:
        self.database = database
        self._records: dict[str, KeyRecord] = database.get()
        self._saved = False

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, user: str) -> bool:
        return user in self._records

    def get(self, user: str) -> KeyRecord:
        """Looks up the record of `user`.

        Raises:
            UserNotFound: If `user` has no record.
        """
        try:
            return self._records[user]
        except KeyError:
            raise UserNotFound(user) from None

    def create(self, user: str, size: int) -> KeyRecord:
        """Generates a key pair for `user`, replacing any previous one."""
        record = KeyRecord.generate(KeySize.from_input(size))
        self._records[user] = record
        return record

    def encrypt(self, user: str, data: bytes) -> str:
        return self.get(user).encrypt(data)

    def decrypt(self, user: str, message: str) -> bytes:
        record = self.get(user)
        if not record.has_private:
            raise PrivateKeyNotFound(user)
        return record.decrypt(message)

    def export(self, user: str, private: bool = False) -> str:
        """Exports the modulus, or the private exponent, of `user` as base64.

        Raises:
            UserNotFound: If `user` has no record.
            PrivateKeyNotFound: If the private exponent was requested but is not held.
        """
        record = self.get(user)
        if not private:
            return record.export_public()
        if not record.has_private:
            raise PrivateKeyNotFound(user)
        return record.export_private()

    def import_public(self, user: str, key: str) -> KeyRecord:
        """Inserts or replaces the public key of `user`, keeping a private exponent already held."""
        record = KeyRecord.import_public(key)
        previous = self._records.get(user)
        if previous is not None:
            record.priv = previous.priv
        self._records[user] = record
        return record

    def import_private(self, user: str, key: str) -> KeyRecord:
        """Attaches a private exponent to the existing public key of `user`.

        Raises:
            ImportOrder: If no public key was imported or generated for `user` before.
        """
        record = self._records.get(user)
        if record is None:
            raise ImportOrder(f"Must import public key for {user} before importing private key.")
        record.priv = b64_dec(key)
        return record

    def list_keys(self) -> list[tuple[str, KeyRecord]]:
        """All records, ordered by user."""
        return sorted(self._records.items())

    def save(self) -> None:
        """Writes the records back. Allowed once per session."""
        if self._saved:
            raise RuntimeError("Vault was already saved this session.")
        self.database.save(self._records)
        self._saved = True
