#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testErrorHandler.py

    Description:
        Test suite for the error taxonomy and ErrorHandler: HTTP codes of each
        error kind, error packet shape, normalization of unexpected exceptions,
        and the audit record written for every handled error.
"""

import os
import re
import shutil
import tempfile
import unittest
from pufsim.handlers.error_handler import (
    AuthenticationError,
    ErrorHandler,
    IntegrityError,
    InvalidStateError,
    NotFoundError,
    PufSimError,
    ValidationError,
    ApplicationCodes,
    HTTPCodes,
)
from pufsim.utilities.audit_log import AuditLog


class TestErrorHandler(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.audit = AuditLog(os.path.join(self.tmp_dir, "audit.log"))
        self.handler = ErrorHandler(self.audit)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)


    """
        Each error kind maps to its HTTP status and is a PufSimError.
    """
    def test_error_kinds(self):

        cases = [
            (ValidationError, HTTPCodes.BAD_REQUEST),
            (NotFoundError, HTTPCodes.NOT_FOUND),
            (InvalidStateError, HTTPCodes.CONFLICT),
            (AuthenticationError, HTTPCodes.UNAUTHORIZED),
            (IntegrityError, HTTPCodes.INTERNAL_SERVER_ERROR),
        ]

        for cls, http_code in cases:
            with self.subTest(kind=cls.__name__):
                exc = cls("some_code", "detail text", "some_field")
                self.assertIsInstance(exc, PufSimError)
                self.assertEqual(http_code, exc.http_code)
                self.assertEqual("some_code", exc.application_code)
                self.assertEqual("detail text", exc.detail)
                self.assertEqual("some_field", exc.field)
                self.assertIn("detail text", str(exc))


    """
        PufSimError details pass through into the packet.
    """
    def test_handle_pufsim_error(self):

        exc = InvalidStateError(ApplicationCodes.NO_CRPS, "No CRPs available. Run enrollment first.", "crps")

        packet, status = self.handler.handle_server_error(exc, session_id="abc", context="authenticate_error")

        self.assertEqual(HTTPCodes.CONFLICT, status)
        self.assertEqual("error", packet["status"])
        self.assertEqual("No CRPs available. Run enrollment first.", packet["message"])
        self.assertEqual(ApplicationCodes.NO_CRPS, packet["error_code"])
        self.assertEqual("crps", packet["field"])
        self.assertRegex(packet["timestamp"], r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


    """
        Unexpected exceptions become a generic 500 without leaking their text.
    """
    def test_handle_unexpected_exception(self):

        packet, status = self.handler.handle_server_error(RuntimeError("secret internals"), context="boom")

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, packet["error_code"])
        self.assertNotIn("secret internals", packet["message"])
        self.assertEqual("", packet["field"])


    def test_errors_are_audited(self):

        self.handler.handle_server_error(NotFoundError(ApplicationCodes.SESSION_NOT_FOUND, "Session x not found", "sessionId"), session_id="x", context="enroll_error")

        events = self.audit.read_events()

        self.assertEqual(1, len(events))
        self.assertEqual("server_exception", events[0]["event"])
        self.assertEqual("x", events[0]["session_id"])
        self.assertEqual("enroll_error", events[0]["context"])
        self.assertEqual(ApplicationCodes.SESSION_NOT_FOUND, events[0]["error_code"])


    def test_create_error_response_packet_keys(self):

        packet = self.handler.create_error_response_packet("msg", ApplicationCodes.INVALID_REQUEST)

        self.assertEqual({"status", "message", "error_code", "field", "timestamp"}, set(packet.keys()))
        self.assertEqual("", packet["field"])
        self.assertTrue(re.match(r"^\d{4}-", packet["timestamp"]))


if __name__ == "__main__":
    unittest.main()
