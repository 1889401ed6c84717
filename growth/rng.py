"""
Deterministic pseudo-random generator (mulberry32).

A tiny 32-bit state generator. Every placement routine builds its own
instance from a fixed seed so that unrelated subsystems never perturb each
other's sequences.
"""

_MASK = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_SCALE = 4294967296.0  # 2**32


class Mulberry32:
    """Seeded generator producing floats in [0, 1)."""

    __slots__ = ("_state",)

    def __init__(self, seed: int):
        self._state = int(seed) & _MASK

    def next(self) -> float:
        s = (self._state + _INCREMENT) & _MASK
        self._state = s
        t = ((s ^ (s >> 15)) * (1 | s)) & _MASK
        t = ((t + (((t ^ (t >> 7)) * (61 | t)) & _MASK)) & _MASK) ^ t
        return ((t ^ (t >> 14)) & _MASK) / _SCALE

    __call__ = next

    def uniform(self, lo: float, hi: float) -> float:
        return lo + (hi - lo) * self.next()

    def centered(self, spread: float = 1.0) -> float:
        """Value in [-spread/2, spread/2)."""
        return (self.next() - 0.5) * spread


def seeded(seed: int) -> Mulberry32:
    return Mulberry32(seed)
