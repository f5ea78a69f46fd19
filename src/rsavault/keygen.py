"""Core Key Generation Utility, mainly focusing on the generation of random large primes.

This module is responsible for the whole road from raw OS entropy to an RSA key pair: fixed-length odd candidates, a
composite primality oracle (trial division, Fermat, Miller-Rabin), the prime search and the final synthesis of the
modulus and private exponent.

Typical usage example:

    get_pre_primes(12000)
    (n, d) = generate_key_pair(KeySize.TWO_K)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import enum
import secrets
from typing import Iterable, Iterator, Literal, overload

from rsavault.errors import InvalidKeyLength
from rsavault.errors import PrimeNotFound
from rsavault.numtheory import modinv
from rsavault.numtheory import prime_phi

PUBLIC_EXPONENT: int = 65537
MINIMUM_KEY_LENGTH: int = 256
MILLER_RABIN_ROUNDS: int = 40

_SMALL_PRIMES: list[int] = []
_SMALL_PRIMES_CAP: int = 0


class KeySize(enum.IntEnum):
    """Supported RSA modulus sizes, in bits."""
    TWO_FIFTY_SIX = 256
    FIVE_TWELVE = 512
    ONE_K = 1024
    TWO_K = 2048
    FOUR_K = 4096
    EIGHT_K = 8192

    @classmethod
    def from_input(cls, size: int) -> "KeySize":
        """Validate a user-provided bit length.

        Raises:
            InvalidKeyLength: If `size` is not one of the enumerated sizes.
        """
        try:
            return cls(int(size))
        except ValueError as exc:
            raise InvalidKeyLength(size) from exc


def factor_bits(size: int) -> int:
    """Bit length of each prime factor of a `size`-bit modulus."""
    return int(size) // 2


def _sieve(n: int = 10000) -> list[int]:
    """Implements the Sieve of Eratosthenes.

    Odd-only sieve, crossing out from r*r up to `n`.

    Args:
        n: The number up to which to generate primes. Defaults to 10000. Must be >= 0.

    Returns:
        A list of primes up to `n`.
    """
    if n < 2:
        return []
    i_size = (n - 1) // 2
    candidate: list[bool] = [True] * i_size
    for i in range(int(n**0.5) // 2):
        if candidate[i]:
            r = 2 * i + 3
            for j in range((r * r - 3) // 2, i_size, r):
                candidate[j] = False
    return [2] + [(no * 2 + 3) for no, ele in enumerate(candidate) if ele]


def get_pre_primes(n: int = 10000, change: bool = False) -> list[int]:
    """Get the small-prime table used by trial division, sieving it if necessary.

    The table is cached in `_SMALL_PRIMES`. Regeneration occurs if the requested range is greater, forced by
    `change` or the cache is empty.

    Args:
        n: The number up to which to generate primes. Defaults to 10000. Must be >= 0.
        change: Whether to force a recomputation of primes. Defaults to False.

    Returns:
        List of primes in ascending order. All primes at least to `n` or more unless `change` is True.
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    global _SMALL_PRIMES
    global _SMALL_PRIMES_CAP
    if n > _SMALL_PRIMES_CAP or change or not _SMALL_PRIMES:
        _SMALL_PRIMES = _sieve(n)
        _SMALL_PRIMES_CAP = n
    return _SMALL_PRIMES


class CandidateGenerator:
    """An endless source of odd, fixed-length random integers.

    Every draw pulls fresh bits from the OS entropy pool through `secrets`. The stream cannot be restarted, a
    generator is spent one candidate at a time.

    Attributes:
        size: The modulus size the candidates are meant for.
        bits: The bit length of every candidate, half of `size`.
    """

    def __init__(self, size: int) -> None:
        if size < MINIMUM_KEY_LENGTH or size & (size - 1) != 0:
            raise InvalidKeyLength(size)
        self.size = size
        self.bits = factor_bits(size)

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        byts = secrets.randbits(self.bits)
        # Top bit pins the length, bottom bit makes it odd.
        return byts | (1 << self.bits - 1) | 1


def _trial_division(no: int, n: int = 10000) -> bool:
    """Check the provided `no` against the known small primes.

    Args:
         no: The number to check. Must be integer and non-negative.
         n: The number up to which to generate primes. Defaults to 10000.
           Passed to `get_pre_primes()`, without the `change` argument.

    Returns:
        False if `no` cannot be prime, True otherwise.
    """
    if no < 2:
        return False
    for prime in get_pre_primes(n):
        if prime**2 > no:
            return True
        if no % prime == 0:
            return no == prime
    return True


def _fermat(w: int, witness: int | None = None) -> bool:
    """Fermat's little theorem test with a single witness.

    Args:
        w: Integer to be tested, > 3.
        witness: Base to test with. Drawn from [1, w - 1) if not given.

    Returns:
        True if `w` is probably prime, False otherwise.
    """
    if witness is None:
        witness = secrets.randbelow(w - 2) + 1
    return pow(witness, w - 1, w) == 1


def _miller_rabin(w: int, iters: int) -> bool:
    """Perform Miller-Rabin primality test.

    Args:
        w: Odd integer to be tested.
        iters: Number of Miller-Rabin iterations to perform.

    Returns:
        True if `w` is probably prime, False otherwise.
    """
    if w <= 4:
        return w == 2 or w == 3
    tw = w - 1
    a = (tw & -tw).bit_length() - 1
    m = tw >> a
    for _ in range(iters):
        b = secrets.randbelow(w - 4) + 2
        z = pow(b, m, w)
        if z == 1 or z == w - 1:
            continue
        for _ in range(a - 1):
            z = pow(z, 2, w)
            if z == w - 1:
                break
        else:
            return False
    return True


def check_prime(candidate: int, iters: int = MILLER_RABIN_ROUNDS, n: int = 10000) -> bool:
    """Composite primality oracle.

    Runs trial division with all primes up to `n`, a Fermat test and finally Miller-Rabin, stopping at the first
    test that proves `candidate` composite.

    Args:
        candidate: The candidate prime to test.
        iters: Number of Miller-Rabin iterations to perform. Defaults to 40.
        n: The number up to which to generate primes. Defaults to 10000.
            Passed to `_trial_division()`.

    Returns:
        True if `candidate` is probably prime, False otherwise.
    """
    if candidate < 4:
        return candidate in (2, 3)
    if not _trial_division(candidate, n):
        return False
    if not _fermat(candidate):
        return False
    return _miller_rabin(candidate, iters)


def find_prime(size: int, max_attempts: int | None = None, source: Iterable[int] | None = None) -> int:
    """Draw candidates until one passes the primality oracle.

    Args:
        size: The modulus size the prime is for. The prime itself is half as long.
        max_attempts: Give up after this many candidates. Unbounded if None (the default).
        source: Candidate source. A fresh `CandidateGenerator` for `size` if not provided.

    Returns:
        A probable prime.

    Raises:
        InvalidKeyLength: If `size` is not a supported modulus size.
        PrimeNotFound: If `source` ran dry or `max_attempts` was reached.
    """
    candidates = CandidateGenerator(size) if source is None else source
    attempt = 0
    for attempt, candidate in enumerate(candidates, 1):
        if check_prime(candidate):
            return candidate
        if max_attempts is not None and attempt >= max_attempts:
            break
    raise PrimeNotFound(f"Could not find a suitable prime in {attempt} candidates.")


def _find_factor(size: int) -> int:
    """Find a prime usable with `PUBLIC_EXPONENT`."""
    while True:
        prime = find_prime(size)
        # E must not divide p or p - 1, otherwise d does not exist.
        if prime % PUBLIC_EXPONENT and (prime - 1) % PUBLIC_EXPONENT:
            return prime


@overload
def generate_key_pair(size: int, expose_primes: Literal[False] = False) -> tuple[int, int]:
    ...


@overload
def generate_key_pair(size: int, expose_primes: Literal[True] = False) -> tuple[int, int, int, int]:
    ...


def generate_key_pair(size: int, expose_primes: bool = False) -> tuple[int, int] | tuple[int, int, int, int]:
    """Generates the numbers of an RSA key pair.

    Args:
        size: The modulus size in bits. Must be a `KeySize`.
        expose_primes: Whether to return the prime factors as well. Defaults to False.

    Returns:
        (modulus, private exponent) or, if exposed, (modulus, private exponent, p, q).

    Raises:
        InvalidKeyLength: If `size` is not a supported modulus size.
    """
    size = KeySize.from_input(size)
    p = _find_factor(size)
    q = _find_factor(size)
    while p == q:  # (Un)Likely story.
        q = _find_factor(size)
    n = p * q
    d = modinv(PUBLIC_EXPONENT, prime_phi(p, q))
    if not expose_primes:
        del p, q
        return n, d
    return n, d, p, q
