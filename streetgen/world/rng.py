from __future__ import annotations

import math

_MASK32 = 0xFFFFFFFF


def _mul32(a: int, b: int) -> int:
    return (a * b) & _MASK32


def hash_chunk(world_seed: int, chunk_x: int, chunk_y: int) -> int:
    """Derive the per-chunk u32 seed from the world seed and chunk coordinates.

    Negative coordinates are mixed in as their 32-bit two's-complement pattern.
    Existing worlds depend on this exact sequence; do not tweak the constants.
    """
    h = int(world_seed) & _MASK32
    h = _mul32(h ^ (int(chunk_x) & _MASK32), 0x85EBCA6B)
    h = _mul32(h ^ (int(chunk_y) & _MASK32), 0xC2B2AE35)
    return (h ^ (h >> 13)) & _MASK32


def noise2d(x: float, y: float, seed: int = 0) -> float:
    """Sinusoidal hash noise in [0,1). Stateless, does not touch any RNG stream."""
    n = math.sin(x * 12.9898 + y * 78.233 + seed) * 43758.5453
    return n - math.floor(n)


class SeededRNG:
    """Mulberry32-style generator over a single u32 of state.

    Every draw (`next_int`, `next_float`, `next_bool`) consumes exactly one
    `next()`, so a fixed call sequence reproduces a fixed value sequence.
    """

    def __init__(self, seed: int) -> None:
        self.state = int(seed) & _MASK32

    def next(self) -> float:
        self.state = (self.state + 0x6D2B79F5) & _MASK32
        t = self.state
        t = _mul32(t ^ (t >> 15), t | 1)
        t ^= _mul32(t ^ (t >> 7), t | 61)
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0

    def next_int(self, lo: int, hi: int) -> int:
        return math.floor(self.next() * (hi - lo)) + lo

    def next_float(self, lo: float, hi: float) -> float:
        return self.next() * (hi - lo) + lo

    def next_bool(self) -> bool:
        return self.next() < 0.5
