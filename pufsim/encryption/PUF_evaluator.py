#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: PUF_evaluator.py

    Description:
        Simulated Physical Unclonable Function. Maps (challenge bits, device
        seed, PUF type) to a single response bit through SHA-256, so the same
        inputs always yield the same bit across calls and processes. Also
        generates random challenges and renders challenge previews for logs.
"""


import struct
import typing
from pufsim.encryption.checksum_manager import ChecksumManager
from pufsim.handlers.error_handler import ApplicationCodes, ValidationError
from pufsim.utilities.random_source import RandomSource
import pufsim.handlers.sanitization_validation as VALIDATION
import pufsim.constants as CONSTANTS



class PUFEvaluator:

    """
        Initialize a PUFEvaluator bound to a SHA-256 checksum manager.

        @param checksum_manager (ChecksumManager | None): Digest provider; a fresh one is created when omitted.
    """
    def __init__(self, checksum_manager: typing.Optional[ChecksumManager] = None) -> None:

        self._checksum_manager: ChecksumManager = checksum_manager if checksum_manager is not None else ChecksumManager()



    """
        Pack a bit sequence into bytes, most-significant bit first within each byte.

        @param bits (Sequence[int]): Challenge bits (0 or 1).
        @return bytes: ceil(len(bits) / 8) bytes; trailing bits of the last byte are zero.
    """
    @staticmethod
    def pack_challenge(bits: typing.Sequence[int]) -> bytes:

        packed = bytearray((len(bits) + 7) // 8)

        for i, bit in enumerate(bits):
            if bit == 1:
                packed[i // 8] |= 1 << (7 - (i % 8))

        return bytes(packed)



    """
        Evaluate the simulated PUF.

        @param challenge (Sequence[int]): Challenge bits.
        @param seed (int): Device seed, unsigned 32-bit.
        @param puf_type (str): One of arbiter, sram, fallback.
        @require every element of challenge is 0 or 1
        @require 0 <= seed <= 0xFFFFFFFF
        @return int: Response bit, 0 or 1.
        @ensures Pure and deterministic: identical inputs always produce the identical bit.
    """
    def evaluate(self, challenge: typing.Sequence[int], seed: int, puf_type: str) -> int:

        VALIDATION.validate_bit_sequence(challenge, ApplicationCodes.INVALID_CHALLENGE, "challenge")
        VALIDATION.validate_int_range(seed, 0, 0xFFFFFFFF, ApplicationCodes.INVALID_SEED, "puf_seed")
        VALIDATION.validate_in_set(puf_type, CONSTANTS._ALLOWED_PUF_TYPES, ApplicationCodes.INVALID_PUF_TYPE, "puf_type")

        # seed (4 bytes, big-endian) || puf type name || packed challenge
        block = struct.pack(">I", seed) + puf_type.encode("ascii") + self.pack_challenge(challenge)

        digest = self._checksum_manager.compute_checksum(block)

        # Fold every digest byte into one accumulator
        accumulator = 0
        for byte in digest:
            accumulator ^= byte

        # Reduce to a single bit
        for i in range(8):
            accumulator ^= (accumulator >> i) & 1

        return accumulator & 1



    """
        Generate a fresh random challenge.

        @param random_source (RandomSource): Randomness capability.
        @param bit_length (int): Number of challenge bits.
        @return tuple[int, ...]: bit_length bits, bit i taken MSB-first from fresh random bytes.
    """
    @staticmethod
    def generate_challenge(random_source: RandomSource, bit_length: int = CONSTANTS._CHALLENGE_BITS) -> typing.Tuple[int, ...]:

        if isinstance(bit_length, bool) or not isinstance(bit_length, int) or bit_length < 1:
            raise ValidationError(ApplicationCodes.INVALID_CHALLENGE, "Challenge length must be a positive integer", "bit_length")

        raw = random_source.token_bytes((bit_length + 7) // 8)

        return tuple((raw[i // 8] >> (7 - (i % 8))) & 1 for i in range(bit_length))



    """
        Render the first bits of a challenge as a string of 0/1 characters.
    """
    @staticmethod
    def challenge_preview(challenge: typing.Sequence[int], length: int = CONSTANTS._CHALLENGE_PREVIEW_BITS) -> str:
        return "".join(str(bit) for bit in challenge[:length])
