#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testChecksumManager.py

    Description:

        Test suite for ChecksumManager. Covers SHA-256 checksum computation,
        verification behavior, constant-time secret comparison, session-key
        derivation, and the ValidationError codes raised on bad input.
"""

import hashlib
import unittest
from pufsim.encryption.checksum_manager import ChecksumManager
from pufsim.handlers.error_handler import ValidationError, ApplicationCodes, HTTPCodes



class TestChecksumManager(unittest.TestCase):

    DATA = b"puf-sim-test-payload"
    DATA_MODIFIED = b"puf-sim-test-payload-modified"


    """
        Create fresh ChecksumManager for each test.
    """
    def setUp(self):
        self.manager = ChecksumManager()



    """
        compute_checksum returns deterministic 32-byte SHA-256 digest.
    """
    def test_compute_checksum_properties(self):

        digest1 = self.manager.compute_checksum(self.DATA)
        digest2 = self.manager.compute_checksum(self.DATA)

        self.assertIsInstance(digest1, bytes)
        self.assertEqual(32, len(digest1))
        self.assertEqual(32, self.manager.digest_size)
        self.assertEqual(digest1, digest2)
        self.assertEqual(hashlib.sha256(self.DATA).digest(), digest1)

    def test_different_data_different_checksum(self):
        self.assertNotEqual(self.manager.compute_checksum(self.DATA), self.manager.compute_checksum(self.DATA_MODIFIED))


    """
        compute_checksum rejects non-bytes input.
    """
    def test_compute_checksum_rejects_non_bytes(self):

        with self.assertRaises(ValidationError) as cm:
            self.manager.compute_checksum("text")  # type: ignore

        exc = cm.exception
        self.assertEqual(exc.application_code, ApplicationCodes.INVALID_CHECKSUM_DATA)
        self.assertEqual(exc.http_code, HTTPCodes.BAD_REQUEST)
        self.assertEqual(exc.field, "data")



    """
        verify_checksum accepts the right digest and rejects a different one.
    """
    def test_verify_checksum(self):

        digest = self.manager.compute_checksum(self.DATA)

        self.assertTrue(self.manager.verify_checksum(self.DATA, digest))
        self.assertFalse(self.manager.verify_checksum(self.DATA_MODIFIED, digest))

    def test_verify_checksum_rejects_wrong_length(self):

        with self.assertRaises(ValidationError) as cm:
            self.manager.verify_checksum(self.DATA, b"\x00" * 16)

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_LENGTH)



    """
        secrets_match compares byte strings of any length.
    """
    def test_secrets_match(self):

        self.assertTrue(self.manager.secrets_match(b"\x01" * 256, b"\x01" * 256))
        self.assertFalse(self.manager.secrets_match(b"\x01" * 256, b"\x02" * 256))
        self.assertFalse(self.manager.secrets_match(b"\x01" * 256, b"\x01" * 255))

        with self.assertRaises(ValidationError):
            self.manager.secrets_match("a", b"a")  # type: ignore



    """
        derive_session_key is SHA-256 of the shared secret.
    """
    def test_derive_session_key(self):

        secret = bytes(range(256))
        key = self.manager.derive_session_key(secret)

        self.assertEqual(32, len(key))
        self.assertEqual(hashlib.sha256(secret).digest(), key)

        with self.assertRaises(ValidationError):
            self.manager.derive_session_key(b"")


if __name__ == "__main__":
    unittest.main()
