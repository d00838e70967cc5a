#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testPacketHandler.py

    Description:
        Test suite for PacketHandler: session init request validation
        (required fields, unknown fields, types, ranges), URL session id
        checks, and the shape of the non-phase response packets.
"""

import unittest
from pufsim.handlers.packet_handler import PacketHandler
from pufsim.handlers.error_handler import NotFoundError, PufSimError, ApplicationCodes, HTTPCodes
import pufsim.constants as CONSTANTS


_VALID_INIT = {"deviceId": "DEV-1", "pufType": "arbiter", "numCrps": 10}


class TestPacketHandler(unittest.TestCase):

    def setUp(self):
        self.packets = PacketHandler()


    def test_valid_session_init_packet(self):
        self.packets.validate_session_init_packet_fields(dict(_VALID_INIT))


    """
        Each malformed init packet raises a 400 with a specific code.
    """
    def test_invalid_session_init_packets(self):

        cases = [
            ([], ApplicationCodes.INVALID_PACKET_STRUCTURE),
            ({"deviceId": "DEV-1", "pufType": "arbiter"}, ApplicationCodes.MISSING_FIELDS),
            ({**_VALID_INIT, "extra": 1}, ApplicationCodes.UNKNOWN_FIELDS),
            ({**_VALID_INIT, "deviceId": ""}, ApplicationCodes.INVALID_DEVICE_ID),
            ({**_VALID_INIT, "deviceId": 7}, ApplicationCodes.INVALID_DEVICE_ID),
            ({**_VALID_INIT, "pufType": "ring"}, ApplicationCodes.INVALID_PUF_TYPE),
            ({**_VALID_INIT, "numCrps": "10"}, ApplicationCodes.INVALID_NUM_CRPS),
            ({**_VALID_INIT, "numCrps": 0}, ApplicationCodes.INVALID_NUM_CRPS),
            ({**_VALID_INIT, "numCrps": 1001}, ApplicationCodes.INVALID_NUM_CRPS),
            ({**_VALID_INIT, "numCrps": False}, ApplicationCodes.INVALID_NUM_CRPS),
        ]

        for packet, code in cases:
            with self.subTest(packet=packet):
                with self.assertRaises(PufSimError) as cm:
                    self.packets.validate_session_init_packet_fields(packet)
                self.assertEqual(code, cm.exception.application_code)
                self.assertEqual(HTTPCodes.BAD_REQUEST, cm.exception.http_code)


    def test_missing_field_is_named(self):

        with self.assertRaises(PufSimError) as cm:
            self.packets.validate_session_init_packet_fields({"deviceId": "DEV-1", "numCrps": 3})

        self.assertEqual("pufType", cm.exception.field)


    def test_unknown_fields_are_listed(self):

        with self.assertRaises(PufSimError) as cm:
            self.packets.validate_session_init_packet_fields({**_VALID_INIT, "zeta": 1, "alpha": 2})

        self.assertEqual(ApplicationCodes.UNKNOWN_FIELDS, cm.exception.application_code)
        self.assertEqual("packet", cm.exception.field)
        self.assertIn("alpha, zeta", cm.exception.detail)


    """
        Malformed URL ids are reported as not found.
    """
    def test_validate_session_id(self):

        self.packets.validate_session_id("0123456789abcdef0123456789abcdef")

        for bad in ("", "xyz", "0123456789ABCDEF0123456789ABCDEF", "0" * 33, None):
            with self.subTest(session_id=bad):
                with self.assertRaises(NotFoundError):
                    self.packets.validate_session_id(bad)


    def test_response_packets(self):

        session_id = "a" * 32

        init = self.packets.create_session_init_response_packet(session_id)
        self.assertEqual({"sessionId": session_id, "message": "Session initialized", "initialStep": CONSTANTS.STEP_ENROLL}, init)

        self.assertEqual({"status": "success", "message": "Session deleted"}, self.packets.create_delete_response_packet())
        self.assertEqual({"sessionId": session_id, "log": ["a", "b"]}, self.packets.create_log_packet(session_id, ["a", "b"]))

        health = self.packets.create_health_packet()
        self.assertEqual("ok", health["status"])
        self.assertIn(CONSTANTS._PROTOCOL_NAME, health["message"])

        with self.assertRaises(PufSimError):
            self.packets.create_session_init_response_packet("not-an-id")


if __name__ == "__main__":
    unittest.main()
