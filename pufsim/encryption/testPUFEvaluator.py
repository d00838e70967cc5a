#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testPUFEvaluator.py

    Description:
        Test suite for the simulated PUF. Checks challenge packing, agreement
        with an independent hashlib reference of the response function,
        determinism, sensitivity to seed and PUF type, challenge generation,
        previews, and input validation.
"""

import hashlib
import unittest
from pufsim.encryption.PUF_evaluator import PUFEvaluator
from pufsim.handlers.error_handler import ValidationError, ApplicationCodes
from pufsim.utilities.random_source import SeededRandomSource


"""
    Straight-line reference of the response function, written against hashlib only.
"""
def _reference_response(challenge, seed, puf_type):

    packed = bytearray((len(challenge) + 7) // 8)
    for i, bit in enumerate(challenge):
        if bit:
            packed[i // 8] |= 0x80 >> (i % 8)

    digest = hashlib.sha256(seed.to_bytes(4, "big") + puf_type.encode("ascii") + bytes(packed)).digest()

    acc = 0
    for byte in digest:
        acc ^= byte
    for i in range(8):
        acc ^= (acc >> i) & 1

    return acc & 1


class TestPUFEvaluator(unittest.TestCase):

    def setUp(self):
        self.puf = PUFEvaluator()
        self.random = SeededRandomSource(2024)


    """
        Bits are packed most-significant first; the tail of the last byte is zero.
    """
    def test_pack_challenge(self):

        self.assertEqual(b"", PUFEvaluator.pack_challenge([]))
        self.assertEqual(b"\x80", PUFEvaluator.pack_challenge([1]))
        self.assertEqual(b"\xb0\x80", PUFEvaluator.pack_challenge([1, 0, 1, 1, 0, 0, 0, 0, 1]))
        self.assertEqual(b"\xff" * 8, PUFEvaluator.pack_challenge([1] * 64))
        self.assertEqual(8, len(PUFEvaluator.pack_challenge([0] * 64)))


    """
        evaluate() agrees with the reference for random challenges, seeds and types.
    """
    def test_matches_reference(self):

        for puf_type in ("arbiter", "sram", "fallback"):
            for _ in range(50):
                challenge = PUFEvaluator.generate_challenge(self.random, 64)
                seed = self.random.randbelow(0xFFFFFFFF)
                with self.subTest(puf_type=puf_type, seed=seed):
                    self.assertEqual(_reference_response(challenge, seed, puf_type), self.puf.evaluate(challenge, seed, puf_type))


    """
        Fixed response bits. CRPs stored by earlier runs depend on these never changing.
        Each string holds the bits for seeds 0, 1, 123456, 0xDEADBEEF and 0xFFFFFFFF in that order.
    """
    def test_known_answers(self):

        seeds = (0, 1, 123456, 0xDEADBEEF, 0xFFFFFFFF)

        challenges = {
            "alternating_64": "10" * 32,
            "mixed_64": "1111000011110000000011111111000000000000111111110101010100110011",
            "partial_12": "101100111000",
            "short_3": "101",
            "empty": "",
        }

        expected = {
            ("arbiter", "alternating_64"): "01000",
            ("arbiter", "mixed_64"): "01101",
            ("arbiter", "partial_12"): "11000",
            ("arbiter", "short_3"): "00101",
            ("arbiter", "empty"): "10000",
            ("sram", "alternating_64"): "11101",
            ("sram", "mixed_64"): "00000",
            ("sram", "partial_12"): "00001",
            ("sram", "short_3"): "00101",
            ("sram", "empty"): "01100",
            ("fallback", "alternating_64"): "10001",
            ("fallback", "mixed_64"): "00110",
            ("fallback", "partial_12"): "00101",
            ("fallback", "short_3"): "11000",
            ("fallback", "empty"): "11000",
        }

        for (puf_type, name), bits in expected.items():
            challenge = [int(c) for c in challenges[name]]
            for seed, bit in zip(seeds, bits):
                with self.subTest(puf_type=puf_type, challenge=name, seed=seed):
                    self.assertEqual(int(bit), self.puf.evaluate(challenge, seed, puf_type))


    """
        Same inputs, same bit; across instances too.
    """
    def test_deterministic(self):

        other = PUFEvaluator()

        for _ in range(20):
            challenge = PUFEvaluator.generate_challenge(self.random)
            first = self.puf.evaluate(challenge, 123456, "arbiter")

            self.assertIn(first, (0, 1))
            self.assertEqual(first, self.puf.evaluate(challenge, 123456, "arbiter"))
            self.assertEqual(first, other.evaluate(list(challenge), 123456, "arbiter"))


    """
        Over many challenges, changing the seed or PUF type changes some responses.
    """
    def test_seed_and_type_influence_responses(self):

        challenges = [PUFEvaluator.generate_challenge(self.random) for _ in range(200)]

        base = [self.puf.evaluate(c, 1, "arbiter") for c in challenges]
        other_seed = [self.puf.evaluate(c, 2, "arbiter") for c in challenges]
        other_type = [self.puf.evaluate(c, 1, "sram") for c in challenges]

        self.assertNotEqual(base, other_seed)
        self.assertNotEqual(base, other_type)

        # Both response values occur
        self.assertEqual({0, 1}, set(base))


    """
        Boundary seeds and non-64-bit challenges are well-formed input.
    """
    def test_boundary_inputs(self):

        for seed in (0, 0xFFFFFFFF):
            self.assertEqual(_reference_response((1, 0, 1), seed, "fallback"), self.puf.evaluate((1, 0, 1), seed, "fallback"))

        self.assertEqual(_reference_response((), 7, "sram"), self.puf.evaluate((), 7, "sram"))


    """
        Malformed input raises ValidationError with a specific code.
    """
    def test_invalid_inputs(self):

        cases = [
            (((0, 2, 1), 1, "arbiter"), ApplicationCodes.INVALID_CHALLENGE),
            (("0101", 1, "arbiter"), ApplicationCodes.INVALID_CHALLENGE),
            (((True, False), 1, "arbiter"), ApplicationCodes.INVALID_CHALLENGE),
            (((0, 1), -1, "arbiter"), ApplicationCodes.INVALID_SEED),
            (((0, 1), 0x100000000, "arbiter"), ApplicationCodes.INVALID_SEED),
            (((0, 1), 1, "ring"), ApplicationCodes.INVALID_PUF_TYPE),
            (((0, 1), 1, "ARBITER"), ApplicationCodes.INVALID_PUF_TYPE),
        ]

        for args, code in cases:
            with self.subTest(args=args):
                with self.assertRaises(ValidationError) as cm:
                    self.puf.evaluate(*args)
                self.assertEqual(code, cm.exception.application_code)


    """
        generate_challenge returns bits taken MSB-first from the random bytes.
    """
    def test_generate_challenge(self):

        challenge = PUFEvaluator.generate_challenge(SeededRandomSource(5), 64)
        raw = SeededRandomSource(5).token_bytes(8)

        self.assertIsInstance(challenge, tuple)
        self.assertEqual(64, len(challenge))
        self.assertTrue(all(bit in (0, 1) for bit in challenge))
        self.assertEqual(raw, PUFEvaluator.pack_challenge(challenge))

        self.assertEqual(12, len(PUFEvaluator.generate_challenge(self.random, 12)))

        with self.assertRaises(ValidationError):
            PUFEvaluator.generate_challenge(self.random, 0)


    def test_challenge_preview(self):
        self.assertEqual("10110000", PUFEvaluator.challenge_preview((1, 0, 1, 1, 0, 0, 0, 0, 1, 1)))
        self.assertEqual("101", PUFEvaluator.challenge_preview((1, 0, 1)))
        self.assertEqual("1", PUFEvaluator.challenge_preview((1, 0, 1), 1))


if __name__ == "__main__":
    unittest.main()
