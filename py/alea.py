"""
Seeded Alea generator.

Deals have to match the ones the browser game produced for the same seed, so
this follows the JavaScript Alea generator exactly (float arithmetic on
doubles, ``>>> 0`` and ``| 0`` conversions included).
"""

import copy
from dataclasses import dataclass, field
from collections.abc import Callable

UINT32 = 0x100000000
FRAC32 = 2.3283064365386963e-10  # 2 ** -32


@dataclass
class RngState:
    seed: int
    state: list[float] = field(default_factory=list)  # s0, s1, s2, c


def _make_mash() -> Callable[[str], float]:
    n = 0xEFC8249D

    def mash(data: str) -> float:
        nonlocal n
        for char in data:
            n += ord(char)
            h = 0.02519603282416938 * n
            n = int(h) % UINT32
            h -= n
            h *= n
            n = int(h) % UINT32
            h -= n
            n += h * UINT32
        return (int(n) % UINT32) * FRAC32

    return mash


def create_rng(seed: int) -> RngState:
    """
    Create a generator for ``seed``.

    Any integer is accepted; it is hashed through its decimal string, which
    maps it into the generator's domain. Below 1e21 in magnitude that string
    is the one the browser build hashed, so those seeds deal the same games;
    JavaScript switches to exponent notation from 1e21 on and Python does not.
    """
    seed = int(seed)
    mash = _make_mash()
    s0 = mash(" ")
    s1 = mash(" ")
    s2 = mash(" ")

    key = str(seed)
    s0 -= mash(key)
    if s0 < 0:
        s0 += 1
    s1 -= mash(key)
    if s1 < 0:
        s1 += 1
    s2 -= mash(key)
    if s2 < 0:
        s2 += 1

    return RngState(seed=seed, state=[s0, s1, s2, 1])


def next_float(rng: RngState) -> float:
    """Advance ``rng`` and return a value in [0, 1)."""
    s0, s1, s2, c = rng.state
    t = 2091639 * s0 + c * FRAC32
    c = int(t)  # t is always in [0, 2091640), so truncation matches `t | 0`
    rng.state[0] = s1
    rng.state[1] = s2
    rng.state[2] = t - c
    rng.state[3] = c
    return rng.state[2]


def next_int(rng: RngState, max_value: int) -> int:
    """Advance ``rng`` and return an integer in [0, max_value)."""
    if max_value <= 0:
        msg = f"max_value must be positive, got {max_value}"
        raise ValueError(msg)
    return int(next_float(rng) * max_value)


def clone_rng(rng: RngState) -> RngState:
    return copy.deepcopy(rng)
