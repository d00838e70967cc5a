#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testAESManager.py

    Description:
        Test suite for AESManager (AES-256-GCM). Verifies key and nonce
        generation, hex envelope shape, encryption/decryption correctness,
        tamper detection, and every input-validation branch.
"""

import unittest
import os
from pufsim.encryption.AES_manager import AESManager, EncryptedPayload
from pufsim.handlers.error_handler import AuthenticationError, ValidationError, ApplicationCodes, HTTPCodes
from pufsim.utilities.random_source import SeededRandomSource


def _flip_first_hex_char(text: str) -> str:
    return ("1" if text[0] == "0" else "0") + text[1:]


class TestAESManager(unittest.TestCase):

    PLAINTEXT = "puf-sim-test-plaintext"
    AAD = b"puf-sim-aad"

    """
        Prepare a fresh AESManager instance with a valid 32-byte AES key.
    """
    def setUp(self) -> None:

        self.manager = AESManager()
        self.key = self.manager.generate_key()

    """
        generate_key() must return 32-byte random values.
    """
    def test_generate_key_properties(self):

        key1 = self.manager.generate_key()
        key2 = self.manager.generate_key()

        self.assertIsInstance(key1, bytes)
        self.assertEqual(32, len(key1))
        self.assertEqual(32, len(key2))
        self.assertNotEqual(key1, key2)

    """
        generate_nonce() must return 12-byte random values.
    """
    def test_generate_nonce_properties(self):

        nonce1 = self.manager.generate_nonce()
        nonce2 = self.manager.generate_nonce()

        self.assertIsInstance(nonce1, bytes)
        self.assertEqual(12, len(nonce1))
        self.assertEqual(12, len(nonce2))
        self.assertNotEqual(nonce1, nonce2)

    """
        The envelope carries hex ciphertext, a 12-byte IV and a 16-byte tag.
    """
    def test_encrypt_envelope_shape(self):

        payload = self.manager.encrypt(self.PLAINTEXT, self.key)

        self.assertIsInstance(payload, EncryptedPayload)
        self.assertEqual(len(self.PLAINTEXT.encode("utf-8")) * 2, len(payload.ciphertext))
        self.assertEqual(24, len(payload.iv))
        self.assertEqual(32, len(payload.tag))
        self.assertEqual(payload.iv, bytes.fromhex(payload.iv).hex())
        self.assertEqual({"ciphertext", "iv", "tag"}, set(payload.to_dict().keys()))

    """
        Encrypting and then decrypting returns the original plaintext.
    """
    def test_encrypt_decrypt_round_trip(self):

        for text in ("", "a", self.PLAINTEXT, "Grüße, Gerät ✓", "x" * 4096):
            with self.subTest(length=len(text)):
                payload = self.manager.encrypt(text, self.key)
                self.assertEqual(text, self.manager.decrypt(payload.ciphertext, self.key, payload.iv, payload.tag))

    """
        Associated data must match on decryption.
    """
    def test_aad_round_trip_and_mismatch(self):

        payload = self.manager.encrypt(self.PLAINTEXT, self.key, self.AAD)

        self.assertEqual(self.PLAINTEXT, self.manager.decrypt(payload.ciphertext, self.key, payload.iv, payload.tag, self.AAD))

        with self.assertRaises(AuthenticationError):
            self.manager.decrypt(payload.ciphertext, self.key, payload.iv, payload.tag, b"other-aad")

    """
        Fresh IVs: the same plaintext under the same key never yields the same envelope.
    """
    def test_repeated_encryption_uses_fresh_iv(self):

        first = self.manager.encrypt(self.PLAINTEXT, self.key)
        second = self.manager.encrypt(self.PLAINTEXT, self.key)

        self.assertNotEqual(first.iv, second.iv)
        self.assertNotEqual(first.ciphertext, second.ciphertext)

    """
        Any modification of ciphertext, tag or IV, or a wrong key, fails authentication.
    """
    def test_tampering_raises_authentication_error(self):

        payload = self.manager.encrypt(self.PLAINTEXT, self.key)
        other_key = self.manager.generate_key()

        cases = {
            "ciphertext": (_flip_first_hex_char(payload.ciphertext), self.key, payload.iv, payload.tag),
            "tag": (payload.ciphertext, self.key, payload.iv, _flip_first_hex_char(payload.tag)),
            "iv": (payload.ciphertext, self.key, _flip_first_hex_char(payload.iv), payload.tag),
            "key": (payload.ciphertext, other_key, payload.iv, payload.tag),
        }

        for name, args in cases.items():
            with self.subTest(tampered=name):
                with self.assertRaises(AuthenticationError) as cm:
                    self.manager.decrypt(*args)

                exc = cm.exception
                self.assertEqual(exc.application_code, ApplicationCodes.CIPHERTEXT_AUTH_ERROR)
                self.assertEqual(exc.http_code, HTTPCodes.UNAUTHORIZED)

    """
        Keys of the wrong type or length are rejected before any cipher work.
    """
    def test_invalid_key_rejected(self):

        for bad_key in (os.urandom(16), os.urandom(31), os.urandom(33), "not-bytes", None):
            with self.subTest(bad_key=type(bad_key).__name__):
                with self.assertRaises(ValidationError) as cm:
                    self.manager.encrypt(self.PLAINTEXT, bad_key)  # type: ignore

                exc = cm.exception
                self.assertEqual(exc.application_code, ApplicationCodes.INVALID_AES_KEY)
                self.assertEqual(exc.http_code, HTTPCodes.BAD_REQUEST)
                self.assertEqual(exc.field, "aes_key")

    """
        Malformed envelopes raise ValidationError, not AuthenticationError.
    """
    def test_malformed_envelope_rejected(self):

        payload = self.manager.encrypt(self.PLAINTEXT, self.key)

        with self.assertRaises(ValidationError) as cm:
            self.manager.decrypt("zz", self.key, payload.iv, payload.tag)
        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_HEX)

        with self.assertRaises(ValidationError) as cm:
            self.manager.decrypt(payload.ciphertext, self.key, payload.iv[:-2], payload.tag)
        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_NONCE)

        with self.assertRaises(ValidationError) as cm:
            self.manager.decrypt(payload.ciphertext, self.key, payload.iv, payload.tag[:-2])
        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_TAG)

    """
        Plaintext must be text.
    """
    def test_encrypt_rejects_non_text(self):

        with self.assertRaises(ValidationError) as cm:
            self.manager.encrypt(b"bytes", self.key)  # type: ignore

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_TYPE)

    """
        A seeded random source makes keys and IVs reproducible.
    """
    def test_seeded_source_is_reproducible(self):

        first = AESManager(SeededRandomSource(11))
        second = AESManager(SeededRandomSource(11))

        key = first.generate_key()
        self.assertEqual(key, second.generate_key())
        self.assertEqual(first.encrypt(self.PLAINTEXT, key), second.encrypt(self.PLAINTEXT, key))


if __name__ == "__main__":
    unittest.main()
