"""
Seeded Alea PRNG used for site placement.

Based on Johannes Baagøe's Alea algorithm. It is small, fast and produces the
same stream on every platform and Python version, which is what makes a
fracture pattern reproducible from its seed. Python's random and NumPy's
random are not used for site placement.
"""

import math


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class _Mash:
    """Alea's string hash, used to turn a seed into the initial state."""

    def __init__(self):
        self.n = 0xEFC8249D

    def __call__(self, data) -> float:
        for char in str(data):
            self.n += ord(char)
            h = 0.02519603282416938 * self.n
            self.n = _uint32(h)
            h -= self.n
            h *= self.n
            self.n = _uint32(h)
            h -= self.n
            self.n += h * 0x100000000  # 2^32
        return _uint32(self.n) * 2.3283064365386963e-10  # 2^-32


class AleaPRNG:
    """
    Alea PRNG seeded from an int, a string, or a sequence of either.

    One instance belongs to one fracture call; nothing here is shared.
    """

    def __init__(self, seed):
        if isinstance(seed, (list, tuple)):
            parts = list(seed)
        else:
            parts = [seed]

        mash = _Mash()
        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        for part in parts:
            self.s0 -= mash(part)
            if self.s0 < 0:
                self.s0 += 1
            self.s1 -= mash(part)
            if self.s1 < 0:
                self.s1 += 1
            self.s2 -= mash(part)
            if self.s2 < 0:
                self.s2 += 1

        self.draws = 0

    def random(self) -> float:
        """Next value in [0, 1)."""
        self.draws += 1
        t = 2091639 * self.s0 + self.c * 2.3283064365386963e-10  # 2^-32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def uniform(self, low: float, high: float) -> float:
        return low + self.random() * (high - low)

    def uint32(self) -> int:
        return _uint32(self.random() * 0x100000000)

    def unit_disc(self, radius: float = 1.0):
        """Random (dx, dy) uniformly distributed in a disc of the given radius."""
        angle = self.random() * 2.0 * math.pi
        r = radius * math.sqrt(self.random())
        return (r * math.cos(angle), r * math.sin(angle))
