"""Modular arithmetic over Python's arbitrary-precision integers.

Bezout coefficients, modular inverses and the totient of a two-prime modulus. Kept separate from `keygen` since the
inverse is needed both during synthesis and when validating imported material.

Typical usage example:

    g, x, y = egcd(3083, 487)
    d = modinv(65537, prime_phi(p, q))
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from rsavault.errors import NotInvertible


def egcd(a: int, b: int) -> tuple[int, int, int]:
    """Implements the Extended Euclidean Algorithm.

    Such that a*x + b*y = g = gcd(a, b).

    Args:
        a: The first natural number.
        b: The second natural number.

    Returns:
        Greatest common divisor of two integers.
        As well as the Bezout coefficients.
    """
    r0, r1 = a, b
    s0, s1, t0, t1 = 1, 0, 0, 1
    while r1 != 0:
        q = r0 // r1
        r0, r1 = r1, r0 - q * r1
        s0, s1 = s1, s0 - q * s1
        t0, t1 = t1, t0 - q * t1
    return r0, s0, t0


def modinv(a: int, b: int) -> int:
    """Finds the inverse of `a` modulo `b`.

    Args:
        a: The number to invert. Usually the public exponent.
        b: The modulus. Usually the totient.

    Returns:
        x in [0, b) with a*x = 1 (mod b).

    Raises:
        NotInvertible: If `a` and `b` are not coprime.
    """
    g, x, _ = egcd(a, b)
    if g != 1:
        raise NotInvertible(f"{a} has no inverse modulo {b} (gcd {g}).")
    return ((x % b) + b) % b


def prime_phi(p: int, q: int) -> int:
    """Euler's totient of p*q for distinct primes."""
    return (p - 1) * (q - 1)
