"""Flat-file persistence of the user to key-record table.

The table is kept as a single DER document, one entry per user. The public half of each entry reuses the RFC 8017
RSAPublicKey structure so the file stays readable by any ASN.1 tooling.

    KeyTable ::= SEQUENCE OF KeyEntry
    KeyEntry ::= SEQUENCE {
        user             UTF8String,
        keySize          INTEGER,
        publicKey        RSAPublicKey,
        privateExponent  INTEGER OPTIONAL
    }
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import os
import pathlib
import tempfile

from pyasn1 import error
from pyasn1.codec.der import decoder
from pyasn1.codec.der import encoder
from pyasn1.codec.native import encoder as localize
from pyasn1.type import char
from pyasn1.type import namedtype
from pyasn1.type import univ
from pyasn1_modules import rfc8017

from rsavault.errors import DatabaseError
from rsavault.errors import RSAVaultError
from rsavault.rsa import KeyRecord


class KeyEntry(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("user", char.UTF8String()),
        namedtype.NamedType("keySize", univ.Integer()),
        namedtype.NamedType("publicKey", rfc8017.RSAPublicKey()),
        namedtype.OptionalNamedType("privateExponent", univ.Integer()),
    )


class KeyTable(univ.SequenceOf):
    componentType = KeyEntry()


def encode_table(records: dict[str, KeyRecord]) -> bytes:
    """DER-encodes the user table, ordered by user."""
    table = KeyTable()
    table.clear()
    for idx, user in enumerate(sorted(records)):
        record = records[user]
        pubkey = rfc8017.RSAPublicKey()
        pubkey["modulus"] = record.mod
        pubkey["publicExponent"] = record.expo
        entry = KeyEntry()
        entry["user"] = user
        entry["keySize"] = int(record.size)
        entry["publicKey"] = pubkey
        if record.priv is not None:
            entry["privateExponent"] = record.priv
        table.setComponentByPosition(idx, entry)
    return encoder.encode(table)


def decode_table(payload: bytes) -> dict[str, KeyRecord]:
    """Reverses `encode_table`.

    Raises:
        DatabaseError: If the payload is not a valid table.
    """
    try:
        table, rest = decoder.decode(payload, asn1Spec=KeyTable())
    except error.PyAsn1Error as exc:
        raise DatabaseError(f"Database is corrupt: {exc}") from exc
    if rest:
        raise DatabaseError("Trailing data after key table.")
    records = {}
    for item in table:
        # The native codec hands character strings back as bytes.
        user = str(item["user"])
        entry = localize.encode(item)
        if entry["publicKey"]["publicExponent"] != KeyRecord.expo:
            raise DatabaseError(f"Unsupported public exponent for {user}.")
        try:
            record = KeyRecord(entry["publicKey"]["modulus"], entry.get("privateExponent"), entry["keySize"])
        except RSAVaultError as exc:
            raise DatabaseError(f"Invalid record for {user}: {exc}") from exc
        if not int(record.size) - 1 <= record.mod.bit_length() <= int(record.size):
            raise DatabaseError(f"Invalid record for {user}: modulus does not match key size {int(record.size)}.")
        records[user] = record
    return records


class KeyDatabase:
    """The key store file.

    Attributes:
        path: Location of the DER file. Need not exist yet.
    """

    def __init__(self, path: pathlib.Path) -> None:
        self.path = pathlib.Path(path)

    def get(self) -> dict[str, KeyRecord]:
        """Loads every record. A missing file is an empty store.

        Raises:
            DatabaseError: If the file cannot be read or decoded.
        """
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "rb") as f:
                payload = f.read()
        except OSError as exc:
            raise DatabaseError(f"Could not read {self.path}: {exc}") from exc
        return decode_table(payload)

    def save(self, records: dict[str, KeyRecord]) -> None:
        """Atomically replaces the file with `records`.

        Raises:
            DatabaseError: If the file cannot be written.
        """
        payload = encode_table(records)
        directory = self.path.parent
        try:
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self.path)
            except BaseException:
                os.unlink(tmp)
                raise
        except OSError as exc:
            raise DatabaseError(f"Could not write {self.path}: {exc}") from exc
