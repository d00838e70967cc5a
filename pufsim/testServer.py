#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testServer.py

    Description:
        HTTP-level tests for the Flask application through its test client:
        health check, session initialization, the full phase sequence,
        guard and not-found errors, request validation, unknown routes,
        oversized bodies, deletion, and configuration checks.
"""

import os
import shutil
import tempfile
import unittest
from unittest import mock
from pufsim.server import create_app
from pufsim.handlers.error_handler import PufSimError, ApplicationCodes
from pufsim.utilities.random_source import SeededRandomSource
import pufsim.constants as CONSTANTS


_BASE = "/api/sim/session"


class TestServer(unittest.TestCase):

    """
        Build an app with a temporary audit file and a seeded random source.
    """
    def setUp(self):

        self.tmp_dir = tempfile.mkdtemp()
        self.app = create_app({
            "TESTING": True,
            "AUDIT_FILE": os.path.join(self.tmp_dir, "audit.log"),
            "RANDOM_SOURCE": SeededRandomSource(3),
            "MAX_CONTENT_LENGTH": 1024,
        })
        self.client = self.app.test_client()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)


    def _init_session(self, device_id="DEV-1", puf_type="arbiter", num_crps=10) -> str:

        response = self.client.post(f"{_BASE}/init", json={"deviceId": device_id, "pufType": puf_type, "numCrps": num_crps})
        self.assertEqual(200, response.status_code)

        return response.get_json()["sessionId"]


    def _assert_error(self, response, status, error_code):

        self.assertEqual(status, response.status_code)

        body = response.get_json()
        self.assertEqual("error", body["status"])
        self.assertEqual(error_code, body["error_code"])
        self.assertIn("timestamp", body)



    def test_health(self):

        response = self.client.get("/health")

        self.assertEqual(200, response.status_code)
        self.assertEqual("ok", response.get_json()["status"])


    def test_session_init(self):

        response = self.client.post(f"{_BASE}/init", json={"deviceId": "DEV-1", "pufType": "sram", "numCrps": 5})
        body = response.get_json()

        self.assertEqual(200, response.status_code)
        self.assertRegex(body["sessionId"], CONSTANTS._SESSION_ID_RX)
        self.assertEqual("Session initialized", body["message"])
        self.assertEqual("S0_ENROLL", body["initialStep"])
        self.assertIn(body["sessionId"], self.app.session_store)


    """
        The full phase sequence over HTTP.
    """
    def test_full_flow(self):

        session_id = self._init_session()

        enroll = self.client.post(f"{_BASE}/{session_id}/enroll")
        self.assertEqual(200, enroll.status_code)
        self.assertEqual(10, enroll.get_json()["crpCount"])

        auth = self.client.post(f"{_BASE}/{session_id}/authenticate").get_json()
        self.assertEqual("S2_AUTH", auth["step"])
        self.assertTrue(auth["success"])
        self.assertEqual(auth["expectedResponse"], auth["deviceResponse"])
        self.assertEqual(8, len(auth["challengePreview"]))

        exchange = self.client.post(f"{_BASE}/{session_id}/key-exchange").get_json()
        self.assertEqual("S3_DH", exchange["step"])
        self.assertEqual(16, len(exchange["sessionKeyHex"]))
        self.assertIn("devicePublicKey", exchange)
        self.assertIn("serverPublicKey", exchange)

        provision = self.client.post(f"{_BASE}/{session_id}/provision").get_json()
        self.assertEqual("S4_PROVISION", provision["step"])
        self.assertTrue(provision["provisioned"])
        self.assertTrue(provision["credentialsPreview"]["deviceCert"].endswith("..."))

        operation = self.client.post(f"{_BASE}/{session_id}/operation").get_json()
        self.assertEqual("S5_OPERATION", operation["step"])
        self.assertTrue(operation["serverToDevicePlaintext"].startswith("Hello Device DEV-1!"))
        self.assertTrue(operation["deviceToServerPlaintext"].startswith("ACK: "))

        summary = self.client.get(f"{_BASE}/{session_id}").get_json()
        self.assertEqual(session_id, summary["id"])
        self.assertEqual("provisioned", summary["phase"])
        self.assertTrue(summary["hasSessionKey"])

        log = self.client.get(f"{_BASE}/{session_id}/log").get_json()
        self.assertEqual(session_id, log["sessionId"])
        self.assertEqual(summary["logCount"], len(log["log"]))

        reset = self.client.post(f"{_BASE}/{session_id}/reset")
        self.assertEqual(200, reset.status_code)
        self.assertEqual({"status": "success", "message": "Session reset successfully"}, reset.get_json())
        self.assertEqual("created", self.client.get(f"{_BASE}/{session_id}").get_json()["phase"])


    def test_guard_errors(self):

        session_id = self._init_session()

        self._assert_error(self.client.post(f"{_BASE}/{session_id}/authenticate"), 409, ApplicationCodes.NO_CRPS)
        self._assert_error(self.client.post(f"{_BASE}/{session_id}/provision"), 409, ApplicationCodes.NO_SESSION_KEY)
        self._assert_error(self.client.post(f"{_BASE}/{session_id}/operation"), 409, ApplicationCodes.NO_SESSION_KEY)


    def test_unknown_session(self):

        for path in ("enroll", "authenticate", "key-exchange", "provision", "operation", "reset"):
            with self.subTest(path=path):
                self._assert_error(self.client.post(f"{_BASE}/{'0' * 32}/{path}"), 404, ApplicationCodes.SESSION_NOT_FOUND)

        self._assert_error(self.client.get(f"{_BASE}/{'0' * 32}"), 404, ApplicationCodes.SESSION_NOT_FOUND)
        self._assert_error(self.client.get(f"{_BASE}/not-a-session/log"), 404, ApplicationCodes.SESSION_NOT_FOUND)
        self._assert_error(self.client.delete(f"{_BASE}/{'0' * 32}"), 404, ApplicationCodes.SESSION_NOT_FOUND)


    def test_delete(self):

        session_id = self._init_session()

        response = self.client.delete(f"{_BASE}/{session_id}")
        self.assertEqual(200, response.status_code)
        self.assertEqual({"status": "success", "message": "Session deleted"}, response.get_json())

        self._assert_error(self.client.get(f"{_BASE}/{session_id}"), 404, ApplicationCodes.SESSION_NOT_FOUND)

        # Deleting again is not a silent success
        self._assert_error(self.client.delete(f"{_BASE}/{session_id}"), 404, ApplicationCodes.SESSION_NOT_FOUND)


    """
        Request validation at the HTTP boundary.
    """
    def test_init_request_validation(self):

        self._assert_error(self.client.post(f"{_BASE}/init", data="deviceId=x", content_type="text/plain"), 400, ApplicationCodes.INVALID_CONTENT_TYPE)
        self._assert_error(self.client.post(f"{_BASE}/init", data="{not json", content_type="application/json"), 400, ApplicationCodes.MALFORMED_JSON)
        self._assert_error(self.client.post(f"{_BASE}/init", json=[1, 2, 3]), 400, ApplicationCodes.INVALID_PACKET_STRUCTURE)
        self._assert_error(self.client.post(f"{_BASE}/init", json={"deviceId": "DEV-1"}), 400, ApplicationCodes.MISSING_FIELDS)
        self._assert_error(self.client.post(f"{_BASE}/init", json={"deviceId": "DEV-1", "pufType": "laser", "numCrps": 10}), 400, ApplicationCodes.INVALID_PUF_TYPE)
        self._assert_error(self.client.post(f"{_BASE}/init", json={"deviceId": "DEV-1", "pufType": "sram", "numCrps": 5000}), 400, ApplicationCodes.INVALID_NUM_CRPS)

        self.assertEqual(0, len(self.app.session_store))


    def test_oversized_body(self):

        body = {"deviceId": "D" * 4096, "pufType": "sram", "numCrps": 5}

        self._assert_error(self.client.post(f"{_BASE}/init", json=body), 400, ApplicationCodes.INVALID_LENGTH)


    def test_unknown_route_and_method(self):

        self._assert_error(self.client.get("/api/does-not-exist"), 404, ApplicationCodes.ROUTE_NOT_FOUND)
        self._assert_error(self.client.put("/health"), 405, ApplicationCodes.METHOD_NOT_ALLOWED)


    """
        Handled errors land in the audit log.
    """
    def test_errors_audited(self):

        self.client.post(f"{_BASE}/{'0' * 32}/enroll")

        events = self.app.audit_log.read_events()

        self.assertTrue(any(event["event"] == "server_exception" and event["context"] == "enroll_error" for event in events))


    def test_invalid_configuration(self):

        with self.assertRaises(PufSimError) as cm:
            create_app({"DH_PARAMETERS": "ffdhe-custom", "AUDIT_FILE": os.path.join(self.tmp_dir, "audit.log")})
        self.assertEqual(ApplicationCodes.INVALID_CONFIGURATION, cm.exception.application_code)

        with self.assertRaises(PufSimError):
            create_app({"MAX_CONTENT_LENGTH": "lots", "AUDIT_FILE": os.path.join(self.tmp_dir, "audit.log")})


    def test_environment_configuration(self):

        with mock.patch.dict(os.environ, {"PUFSIM_SECRET_KEY": "from-env", "PUFSIM_MAX_CONTENT_LENGTH": "2048"}):
            app = create_app({"AUDIT_FILE": os.path.join(self.tmp_dir, "audit.log")})

        self.assertEqual("from-env", app.config["SECRET_KEY"])
        self.assertEqual(2048, app.config["MAX_CONTENT_LENGTH"])


if __name__ == "__main__":
    unittest.main()
