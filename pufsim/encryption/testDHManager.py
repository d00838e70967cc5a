#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testDHManager.py

    Description:
        Test suite for DHManager. Verifies fixed-group parameters, key pair
        generation, public-key range checks, shared-secret agreement,
        session-key derivation, and the IntegrityError raised when the two
        computed secrets disagree.
"""

import hashlib
import unittest
from unittest import mock
from cryptography.hazmat.primitives.asymmetric import dh
from pufsim.encryption.DH_manager import DHManager, DHExchangeOutcome
from pufsim.handlers.error_handler import PufSimError, IntegrityError, ValidationError, ApplicationCodes, HTTPCodes
import pufsim.constants as CONSTANTS


class TestDHManager(unittest.TestCase):

    def setUp(self):
        self.manager = DHManager()


    """
        The default source is RFC 3526 group 14 with generator 2, cached per manager.
    """
    def test_fixed_group_parameters(self):

        parameters = self.manager.get_parameters()
        numbers = parameters.parameter_numbers()

        self.assertEqual(CONSTANTS._RFC3526_GROUP14_PRIME, numbers.p)
        self.assertEqual(2, numbers.g)
        self.assertEqual(2048, numbers.p.bit_length())
        self.assertIs(parameters, self.manager.get_parameters())
        self.assertEqual("rfc3526", self.manager.parameter_source)


    def test_unknown_parameter_source_rejected(self):

        with self.assertRaises(ValidationError) as cm:
            DHManager("ffdhe9999")

        self.assertEqual(ApplicationCodes.INVALID_CONFIGURATION, cm.exception.application_code)


    """
        The "generate" source builds parameters once, with the configured generator and size.
    """
    def test_generated_parameters(self):

        fixed = dh.DHParameterNumbers(CONSTANTS._RFC3526_GROUP14_PRIME, CONSTANTS._DH_GENERATOR).parameters()
        manager = DHManager(CONSTANTS._DH_PARAMETERS_GENERATE, key_size=2048)

        with mock.patch.object(dh, "generate_parameters", return_value=fixed) as generate:
            first = manager.get_parameters()
            second = manager.get_parameters()

        generate.assert_called_once_with(generator=CONSTANTS._DH_GENERATOR, key_size=2048)
        self.assertIs(fixed, first)
        self.assertIs(first, second)
        self.assertEqual("generate", manager.parameter_source)


    def test_unusable_parameter_source(self):

        self.manager._parameter_source = "corrupted"

        with self.assertRaises(PufSimError) as cm:
            self.manager.get_parameters()

        self.assertEqual(ApplicationCodes.INVALID_DH_PARAMETERS, cm.exception.application_code)
        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, cm.exception.http_code)


    """
        Key pairs are independent and public values are hex-encoded in range.
    """
    def test_generate_key_pair(self):

        parameters = self.manager.get_parameters()
        p = parameters.parameter_numbers().p

        device = self.manager.generate_key_pair("device", parameters)
        server = self.manager.generate_key_pair("server", parameters)

        self.assertEqual("device", device.role)
        self.assertNotEqual(device.public_key_hex, server.public_key_hex)

        for pair in (device, server):
            y = int(pair.public_key_hex, 16)
            self.assertTrue(1 < y < p - 1)

        # Private key never shows up in repr
        self.assertNotIn("private_key", repr(device))


    """
        Both parties compute the same secret.
    """
    def test_shared_secret_agreement(self):

        parameters = self.manager.get_parameters()
        device = self.manager.generate_key_pair("device", parameters)
        server = self.manager.generate_key_pair("server", parameters)

        device_secret = self.manager.compute_shared_secret(device, server.public_key_hex, parameters)
        server_secret = self.manager.compute_shared_secret(server, device.public_key_hex, parameters)

        self.assertEqual(device_secret, server_secret)
        self.assertGreater(len(device_secret), 0)


    """
        Trivial or malformed peer public values are rejected.
    """
    def test_load_public_key_rejects_bad_values(self):

        parameters = self.manager.get_parameters()
        p = parameters.parameter_numbers().p

        for bad in ("00", "01", format(p - 1, "x").rjust(512, "0")):
            with self.subTest(value=bad[:8]):
                with self.assertRaises(ValidationError):
                    self.manager.load_public_key(bad, parameters)

        with self.assertRaises(ValidationError) as cm:
            self.manager.load_public_key("not-hex", parameters)
        self.assertEqual(ApplicationCodes.INVALID_HEX, cm.exception.application_code)


    """
        exchange() yields both key pairs and SHA-256 of the shared secret as session key.
    """
    def test_exchange_derives_session_key(self):

        outcome = self.manager.exchange()

        self.assertIsInstance(outcome, DHExchangeOutcome)
        self.assertEqual(32, len(outcome.session_key))
        self.assertEqual(2048, outcome.state.key_size)
        self.assertEqual("rfc3526", outcome.state.parameter_source)
        self.assertEqual("device", outcome.state.device.role)
        self.assertEqual("server", outcome.state.server.role)

        parameters = self.manager.get_parameters()
        secret = self.manager.compute_shared_secret(outcome.state.device, outcome.state.server.public_key_hex, parameters)
        self.assertEqual(hashlib.sha256(secret).digest(), outcome.session_key)

        self.assertNotIn(outcome.session_key.hex(), repr(outcome))


    def test_repeated_exchanges_use_fresh_keys(self):

        first = self.manager.exchange()
        second = self.manager.exchange()

        self.assertNotEqual(first.session_key, second.session_key)
        self.assertNotEqual(first.state.device.public_key_hex, second.state.device.public_key_hex)


    """
        Disagreeing secrets raise IntegrityError.
    """
    def test_secret_mismatch_raises_integrity_error(self):

        with mock.patch.object(self.manager, "compute_shared_secret", side_effect=[b"\x01" * 256, b"\x02" * 256]):
            with self.assertRaises(IntegrityError) as cm:
                self.manager.exchange()

        exc = cm.exception
        self.assertEqual(ApplicationCodes.DH_SECRET_MISMATCH, exc.application_code)
        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, exc.http_code)


if __name__ == "__main__":
    unittest.main()
