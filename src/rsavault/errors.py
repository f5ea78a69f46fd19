"""Error taxonomy of the vault.

Every failure the cryptographic kernel or the vault can report is a subclass of `RSAVaultError`, which also derives
from the closest builtin so callers that only know the builtins still catch them.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0


class RSAVaultError(Exception):
    """Base class for all vault errors."""


class InvalidKeyLength(RSAVaultError, ValueError):
    """The key length entered is too small, or not a power of 2."""

    def __init__(self, size: int) -> None:
        super().__init__(f"Invalid key length {size}. Key length must be one of 256, 512, 1024, 2048, 4096, 8192.")
        self.size = size


class PrimeNotFound(RSAVaultError, RuntimeError):
    """The candidate source ran dry before a prime was found."""


class UserNotFound(RSAVaultError, KeyError):

    def __init__(self, user: str) -> None:
        super().__init__(user)
        self.user = user

    def __str__(self) -> str:
        return f"User {self.user} not in database. Have you created a key?"


class PrivateKeyNotFound(RSAVaultError, KeyError):

    def __init__(self, user: str | None = None) -> None:
        super().__init__(user)
        self.user = user

    def __str__(self) -> str:
        if self.user is None:
            return "Private key not present in record."
        return f"Private key for {self.user} not in database."


class ImportOrder(RSAVaultError, RuntimeError):
    """A private exponent was imported before its public key."""


class BigNumConversion(RSAVaultError, ValueError):
    """An integer could not be marshalled to or from bytes."""


class DatabaseError(RSAVaultError, IOError):
    """Error loading keys into or from the database."""


class ArmorError(RSAVaultError, IOError):
    """Failed to parse a text-armored payload."""


class NotInvertible(RSAVaultError, ArithmeticError):
    """No modular inverse exists. Seeing this during key generation means a composite was accepted as prime."""
