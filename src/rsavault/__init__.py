"""A personal RSA key vault in an Academic Sense.

Keeps a per-user table of textbook RSA keys in a flat file and encrypts and decrypts messages with them. Key
generation, primality testing and the modular arithmetic behind it are all implemented here from first principles.

Typical usage example:

    vault = KeyVault(KeyDatabase(pathlib.Path("keys.db")))
    vault.create("alice", 2048)
    c = vault.encrypt("alice", b"Hi there!")
    r = vault.decrypt("alice", c)
    vault.save()
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsavault.errors import RSAVaultError
from rsavault.keygen import check_prime
from rsavault.keygen import factor_bits
from rsavault.keygen import find_prime
from rsavault.keygen import generate_key_pair
from rsavault.keygen import get_pre_primes
from rsavault.keygen import KeySize
from rsavault.numtheory import egcd
from rsavault.numtheory import modinv
from rsavault.rsa import armor
from rsavault.rsa import armor_message
from rsavault.rsa import dearmor
from rsavault.rsa import dearmor_message
from rsavault.rsa import KeyRecord
from rsavault.store import KeyDatabase
from rsavault.vault import KeyVault

__version__ = "0.1.0"
__all__ = [
    "KeyDatabase",
    "KeyRecord",
    "KeySize",
    "KeyVault",
    "RSAVaultError",
    "armor",
    "armor_message",
    "check_prime",
    "dearmor",
    "dearmor_message",
    "egcd",
    "factor_bits",
    "find_prime",
    "generate_key_pair",
    "get_pre_primes",
    "modinv",
]
