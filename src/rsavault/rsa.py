"""Provides the core RSA record and its textbook encryption and decryption.

A `KeyRecord` is what the vault stores per user: the modulus, the private exponent when we own it, and the size the
key was made for. The public exponent is fixed for every record.

Each plaintext chunk is sent as (0x01 || chunk)**e mod n rather than chunk**e mod n, so leading zero bytes survive
decryption. Ciphertexts are therefore not readable by a decrypter that expects bare chunks, nor does this module
read theirs.

Also hosts the text-armor container used for exported keys and messages, together with the integer/byte
marshalling both sides share.

Typical usage example:

    rec = KeyRecord.generate(2048)
    c = rec.encrypt(b"Hi there!")
    r = rec.decrypt(c)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import re
import warnings

from rsavault import keygen
from rsavault.errors import ArmorError
from rsavault.errors import BigNumConversion
from rsavault.errors import InvalidKeyLength
from rsavault.errors import PrivateKeyNotFound

BLOCK_SEPARATOR = "?"
ARMOR_WIDTH = 70
ARMOR_LABELS = ("RSA MESSAGE", "RSA PUBLIC KEY", "RSA PRIVATE KEY")
_ARMOR_STRIP = re.compile(r"[\t\r\n]")
_ARMOR_BODY = re.compile(r"-----BEGIN (?P<label>[ A-Z]+)----- *(?P<body>[A-Za-z0-9+/=?]*) *-----END (?P=label)-----")
# Marks the start of every plaintext chunk so leading zero bytes survive the trip through an integer.
_CHUNK_MARKER = b"\x01"


class KeyRecord:
    """A user's RSA key as kept in the vault.

    Attributes:
        mod: The modulus of the keypair.
        priv: The private exponent, None for public-only records.
        size: The `KeySize` the key was generated for.
        expo: The public exponent, always `keygen.PUBLIC_EXPONENT`.
    """
    expo: int = keygen.PUBLIC_EXPONENT

    def __init__(self, mod: int, priv: int | None, size: int) -> None:
        self.mod = mod
        self.priv = priv
        self.size = keygen.KeySize.from_input(size)
        self.bsize = (self.mod.bit_length() + 7) // 8

    def __repr__(self) -> str:
        return f"KeyRecord(size={int(self.size)}, private={self.has_private})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyRecord):
            return NotImplemented
        return (self.mod, self.priv, self.size) == (other.mod, other.priv, other.size)

    @property
    def has_private(self) -> bool:
        return self.priv is not None

    @property
    def chunk_size(self) -> int:
        """Largest plaintext chunk, in bytes, carried by one block."""
        return (int(self.size) - 16) // 8

    def c_rsa(self, message: int, expo: int) -> int:
        """Performs core RSA operation.

        Args:
            message: The int-marshalled message.
            expo: The exponent to raise it to.

        Returns:
            message**expo mod n

        Raises:
            ValueError: If the message is out of range for the current key.
        """
        if not 0 <= message < self.mod:
            raise ValueError("Message representative must be in range [0, mod-1]")
        return pow(message, expo, self.mod)

    def encrypt(self, message: bytes) -> str:
        """Encrypt `message` block by block with the public exponent.

        Warning! Textbook RSA, no padding is applied.

        Args:
            message: The bytes to encrypt. May be empty.

        Returns:
            The base64 blocks joined with `BLOCK_SEPARATOR`.
        """
        warnings.warn("Textbook RSA is unsecure! Please use with care.", RuntimeWarning)
        step = self.chunk_size
        blocks = []
        for i in range(0, len(message), step):
            m = bytes_to_integer(_CHUNK_MARKER + message[i:i + step])
            blocks.append(b64_enc(self.c_rsa(m, self.expo), self.bsize))
        return BLOCK_SEPARATOR.join(blocks)

    def decrypt(self, message: str) -> bytes:
        """Decrypt a message produced by `encrypt`.

        Args:
            message: Base64 blocks joined with `BLOCK_SEPARATOR`. Empty tokens are ignored.

        Returns:
            The plaintext.

        Raises:
            PrivateKeyNotFound: If this record holds no private exponent.
            RuntimeError: If a block does not decrypt to a chunk.
        """
        if self.priv is None:
            raise PrivateKeyNotFound()
        clear = bytearray()
        for token in message.split(BLOCK_SEPARATOR):
            if not token:
                continue
            m = self.c_rsa(b64_dec(token), self.priv)
            chunk = integer_to_bytes(m, (m.bit_length() + 7) // 8)
            if chunk[:1] != _CHUNK_MARKER:
                raise RuntimeError("Decryption error.")
            clear += chunk[1:]
        return bytes(clear)

    def export_public(self) -> str:
        """Base64 of the big-endian modulus, `size // 8` bytes wide."""
        return b64_enc(self.mod, int(self.size) // 8)

    def export_private(self) -> str:
        """Base64 of the big-endian private exponent, `size // 8` bytes wide.

        Raises:
            PrivateKeyNotFound: If this record holds no private exponent.
        """
        if self.priv is None:
            raise PrivateKeyNotFound()
        return b64_enc(self.priv, int(self.size) // 8)

    @classmethod
    def import_public(cls, key: str) -> "KeyRecord":
        """Builds a public-only record from an exported modulus.

        No size metadata travels with the key, so the size is the byte length times eight.

        Raises:
            InvalidKeyLength: If the inferred size is not a `KeySize`.
        """
        raw = base64.b64decode(key.encode("ascii"))
        size = len(raw) * 8
        mod = bytes_to_integer(raw)
        if mod.bit_length() < size - 1:
            raise InvalidKeyLength(mod.bit_length())
        return cls(mod, None, size)

    @classmethod
    def generate(cls, size: int) -> "KeyRecord":
        """Generates a fresh key pair of `size` bits."""
        n, d = keygen.generate_key_pair(size)
        return cls(n, d, size)


def armor(label: str, payload: str) -> str:
    """Wraps base64 `payload` in banner lines, 70 columns per line.

    Args:
        label: One of `ARMOR_LABELS`.
        payload: The base64 text to wrap.

    Returns:
        The armored text, without a trailing newline.
    """
    if label not in ARMOR_LABELS:
        raise ValueError(f"Unknown armor label {label}")
    body = "\n".join(payload[i:i + ARMOR_WIDTH] for i in range(0, len(payload), ARMOR_WIDTH))
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----"


def dearmor(text: str, label: str | None = None) -> str:
    """Extracts the base64 run from an armored text.

    Tabs and line breaks are dropped before matching, so re-wrapped or indented copies still parse.

    Args:
        text: The armored text.
        label: Expected banner label. Any label is accepted if None.

    Returns:
        The unwrapped payload.

    Raises:
        ArmorError: If no banner pair is found or the label does not match.
    """
    found = _ARMOR_BODY.search(_ARMOR_STRIP.sub("", text))
    if found is None:
        raise ArmorError("Failed to parse a file exported by this program.")
    if label is not None and found["label"] != label:
        raise ArmorError(f"Expected {label} but found {found['label']}.")
    return found["body"]


def armor_message(message: str) -> str:
    """Armors a cipher message. The armor body is the base64 of the joined blocks."""
    return armor("RSA MESSAGE", base64.b64encode(message.encode("ascii")).decode("ascii"))


def dearmor_message(text: str) -> str:
    """Reverses `armor_message`."""
    return base64.b64decode(dearmor(text, "RSA MESSAGE")).decode("ascii")


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to an integer, big-endian and unsigned.

    Args:
        msg: The bytes (AKA Octet String) to convert.

    Returns:
        The representative integer.
    """
    return int.from_bytes(msg, byteorder="big", signed=False)


def integer_to_bytes(msg: int, fixedlen: int) -> bytes:
    """Converts an integer to a string, using a fixed-length byte representation.

    Args:
        msg: The integer to unmarshal.
        fixedlen: The target length of the byte string.

    Returns:
        The representative bytes. (AKA Octet String)

    Raises:
        BigNumConversion: If `msg` is negative or does not fit in `fixedlen` bytes.
    """
    try:
        return msg.to_bytes(fixedlen, byteorder="big", signed=False)
    except OverflowError as exc:
        raise BigNumConversion(f"Integer does not fit in {fixedlen} bytes.") from exc


def b64_enc(msg: int, msg_size: int) -> str:
    """Encodes an integer into a base64 string.

    Args:
        msg: The message to encode.
        msg_size: The size of the encoded message in bytes.

    Returns:
        A base64 encoded string.
    """
    return base64.b64encode(integer_to_bytes(msg, msg_size)).decode("ascii")


def b64_dec(msg: str) -> int:
    """Decodes a base64 encoded string into an int.

    Args:
        msg: The base64 encoded string.

    Returns:
        The decoded int.
    """
    return bytes_to_integer(base64.b64decode(msg.encode("ascii")))
