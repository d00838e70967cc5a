#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testSanitizationValidation.py

    Description:
        Test suite for the shared codecs and validators: hex encoding of raw
        bytes and the unknown-field check applied to request payloads.
"""

import unittest
from pufsim.handlers.error_handler import ValidationError, ApplicationCodes, HTTPCodes
import pufsim.handlers.sanitization_validation as VALIDATION


class TestSanitizationValidation(unittest.TestCase):

    def test_encode_bytes_to_hex(self):

        self.assertEqual("", VALIDATION.encode_bytes_to_hex(b""))
        self.assertEqual("00ff10", VALIDATION.encode_bytes_to_hex(b"\x00\xff\x10"))
        self.assertEqual("abcd", VALIDATION.encode_bytes_to_hex(bytearray(b"\xab\xcd")))


    """
        Only bytes-like values are accepted.
    """
    def test_encode_bytes_to_hex_rejects_other_types(self):

        for value in ("00ff", 255, None, [0, 255]):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError) as cm:
                    VALIDATION.encode_bytes_to_hex(value)
                self.assertEqual(ApplicationCodes.INVALID_TYPE, cm.exception.application_code)


    def test_validate_no_extra_fields_accepts_subset(self):

        VALIDATION.validate_no_extra_fields({"a": 1, "b": 2}, {"a", "b", "c"}, ApplicationCodes.UNKNOWN_FIELDS, "packet")
        VALIDATION.validate_no_extra_fields({}, {"a"}, ApplicationCodes.UNKNOWN_FIELDS, "packet")


    """
        Extra keys raise a 400 naming every offending field in sorted order.
    """
    def test_validate_no_extra_fields_rejects_unknown(self):

        with self.assertRaises(ValidationError) as cm:
            VALIDATION.validate_no_extra_fields({"a": 1, "z": 2, "m": 3}, {"a"}, ApplicationCodes.UNKNOWN_FIELDS, "packet")

        self.assertEqual(ApplicationCodes.UNKNOWN_FIELDS, cm.exception.application_code)
        self.assertEqual(HTTPCodes.BAD_REQUEST, cm.exception.http_code)
        self.assertEqual("packet", cm.exception.field)
        self.assertEqual("Unknown fields: m, z", cm.exception.detail)


if __name__ == "__main__":
    unittest.main()
