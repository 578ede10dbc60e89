"""
Random number generation for deck shuffles, draws and turn order.

Uses PCG64DXSM (Permuted Congruential Generator with DXSM output function):
1. Generate a cryptographic seed (32 bytes / 256 bits) via the secrets module
2. Derive a stream per purpose ("deck", "turn-order", ...) via SHA512 with domain separation
3. Use PCG64DXSM to generate random uint64 values
4. Apply Fisher-Yates shuffle with rejection sampling for an unbiased permutation

A GameRng built from a fixed seed replays the same sequence of shuffles and
draws, which is what the tests rely on. Without a seed every instance draws
a fresh cryptographic seed.

Reference: O'Neill, M. (2014). "PCG: A Family of Simple Fast Space-Efficient
Statistically Good Algorithms for Random Number Generation."
"""

from __future__ import annotations

import hashlib
import secrets
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T")

SEED_BYTES = 32  # 256 bits, comfortably above log2(40!) ≈ 159 for a full catalog shuffle
RNG_VERSION = "pcg64dxsm-v1"
_DOMAIN_PREFIX = b"chronoline-rng-v1:"

_PCG_MULTIPLIER = 0x2360ED051FC65DA44385DF649FCCF645
_PCG_DXSM_MUL = 0xDA942042E4DD58B5
_UINT128_MASK = (1 << 128) - 1
_UINT64_MASK = (1 << 64) - 1


def validate_seed_hex(seed_hex: str) -> None:
    """Validate that a seed string is the correct hex format.

    Raises TypeError for non-string input, ValueError for invalid length or characters.
    """
    if not isinstance(seed_hex, str):
        raise TypeError(f"Seed must be a string, got {type(seed_hex).__name__}")
    expected_length = SEED_BYTES * 2
    if len(seed_hex) != expected_length:
        raise ValueError(f"Seed must be exactly {expected_length} hex characters, got {len(seed_hex)}")
    try:
        bytes.fromhex(seed_hex)
    except ValueError:
        raise ValueError("Seed contains invalid hex characters") from None


def generate_seed() -> str:
    """Generate a cryptographic seed as a hex string (64 chars / 256 bits)."""
    return secrets.token_bytes(SEED_BYTES).hex()


class PCG64DXSM:
    """Pure Python PCG64DXSM: 128-bit LCG state with the DXSM output permutation."""

    def __init__(self, state: int, increment: int) -> None:
        self._inc = ((increment << 1) | 1) & _UINT128_MASK  # increment must be odd
        self._state = (state + self._inc) & _UINT128_MASK
        self._state = (self._state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK
        self._state = (self._state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK

    def next_uint64(self) -> int:
        state = self._state
        hi = (state >> 64) & _UINT64_MASK
        lo = (state & _UINT64_MASK) | 1

        hi ^= hi >> 32
        hi = (hi * _PCG_DXSM_MUL) & _UINT64_MASK
        hi ^= hi >> 48
        hi = (hi * lo) & _UINT64_MASK

        self._state = (state * _PCG_MULTIPLIER + self._inc) & _UINT128_MASK
        return hi


def _derive_pcg(seed_hex: str, domain: str) -> PCG64DXSM:
    """SHA512(prefix + seed + domain): first 16 bytes are the state, next 16 the increment."""
    derived = hashlib.sha512(_DOMAIN_PREFIX + bytes.fromhex(seed_hex) + domain.encode()).digest()
    state = int.from_bytes(derived[:16], byteorder="little")
    increment = int.from_bytes(derived[16:32], byteorder="little")
    return PCG64DXSM(state, increment)


class GameRng:
    """Seedable random source injected into the deck manager and turn controller."""

    def __init__(self, seed_hex: str | None = None, domain: str = "game") -> None:
        if seed_hex is None:
            seed_hex = generate_seed()
        validate_seed_hex(seed_hex)
        self.seed_hex = seed_hex
        self.domain = domain
        self._pcg = _derive_pcg(seed_hex, domain)

    @classmethod
    def from_seed(cls, seed_hex: str, domain: str = "game") -> GameRng:
        return cls(seed_hex, domain)

    def spawn(self, domain: str) -> GameRng:
        """Independent stream from the same seed, e.g. one per collaborator."""
        return GameRng(self.seed_hex, f"{self.domain}/{domain}")

    def randbelow(self, bound: int) -> int:
        """Unbiased integer in [0, bound) via rejection sampling."""
        if bound <= 0 or bound > (1 << 64):
            raise ValueError("bound must be in (0, 2^64]")
        limit = (1 << 64) - ((1 << 64) % bound)
        while True:
            r = self._pcg.next_uint64()
            if r < limit:
                return r % bound

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Fisher-Yates shuffle into a new list; the input is left untouched."""
        result = list(items)
        n = len(result)
        for i in range(n - 1):
            j = i + self.randbelow(n - i)
            result[i], result[j] = result[j], result[i]
        return result

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("Cannot choose from an empty sequence")
        return items[self.randbelow(len(items))]
