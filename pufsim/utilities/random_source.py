#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: random_source.py

    Description:
        Injectable randomness capability for every generation step of the
        simulator (session ids, PUF seeds, CRP challenges, CRP selection, AES-GCM
        IVs, synthetic credentials). Production code uses the CSPRNG behind the
        secrets module; tests substitute SeededRandomSource so generated values
        are reproducible. PUF evaluation itself never consumes randomness.
"""

import random
import secrets
import typing


class RandomSource:

    """
        Return n cryptographically secure random bytes.
    """
    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)

    """
        Return a uniformly distributed integer in [0, upper).
    """
    def randbelow(self, upper: int) -> int:
        return secrets.randbelow(upper)

    """
        Return a uniformly distributed integer in [low, high).
    """
    def randrange(self, low: int, high: int) -> int:
        return low + self.randbelow(high - low)

    def token_hex(self, n: int) -> str:
        return self.token_bytes(n).hex()



"""
    Deterministic stand-in for RandomSource. Never use outside tests and demos:
    every value is reproducible from the seed.
"""
class SeededRandomSource(RandomSource):

    def __init__(self, seed: typing.Any = 0) -> None:
        self._rng = random.Random(seed)

    def token_bytes(self, n: int) -> bytes:
        return self._rng.getrandbits(8 * n).to_bytes(n, "big") if n > 0 else b""

    def randbelow(self, upper: int) -> int:
        return self._rng.randrange(upper)
