#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testSimulationHandler.py

    Description:
        End-to-end and phase-level tests for SimulationHandler: enrollment
        bounds and log previews, authentication consistency, key exchange,
        provisioning, encrypted operation, lenient phase guards, reset
        semantics, unknown sessions, failure paths that must leave state
        untouched, and the audit events written along the way.
"""

import os
import re
import shutil
import tempfile
import unittest
from unittest import mock
from pufsim.encryption.AES_manager import AESManager
from pufsim.encryption.DH_manager import DHManager
from pufsim.encryption.PUF_evaluator import PUFEvaluator
from pufsim.handlers.error_handler import AuthenticationError, IntegrityError, InvalidStateError, NotFoundError, PufSimError, ValidationError, ApplicationCodes
from pufsim.handlers.simulation_handler import SimulationHandler, ResetResult
from pufsim.utilities.audit_log import AuditLog
from pufsim.utilities.random_source import SeededRandomSource
import pufsim.constants as CONSTANTS


_UNKNOWN_ID = "f" * 32


class TestSimulationHandler(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.audit = AuditLog(os.path.join(self.tmp_dir, "audit.log"))
        self.handler = SimulationHandler.build(SeededRandomSource(42), self.audit)
        self.session_id = self.handler.create_session("DEV-1", "arbiter", 10)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)


    ################################################################################################
    # ENROLLMENT / AUTHENTICATION
    ################################################################################################

    """
        Enrollment stores exactly num_crps CRPs and previews CRPs 1-3 and the last one.
    """
    def test_enroll(self):

        result = self.handler.enroll(self.session_id)

        self.assertEqual(10, result.crp_count)
        self.assertEqual(10, len(self.handler.sessions.get(self.session_id).crps))

        preview_lines = [line for line in result.log if "  CRP " in line]
        self.assertEqual(4, len(preview_lines))
        self.assertIn("  CRP 1: Challenge=", preview_lines[0])
        self.assertIn("  CRP 10: Challenge=", preview_lines[-1])
        self.assertEqual(1, sum("... (generating remaining CRPs)" in line for line in result.log))
        self.assertTrue(any("Successfully stored 10 CRPs" in line for line in result.log))

        packet = result.to_packet()
        self.assertEqual(CONSTANTS.STEP_ENROLL, packet["step"])
        self.assertEqual("success", packet["status"])
        self.assertEqual(10, packet["crpCount"])


    """
        Re-enrollment replaces the CRP set instead of growing it.
    """
    def test_re_enroll_replaces_crps(self):

        self.handler.enroll(self.session_id)
        first = list(self.handler.sessions.get(self.session_id).crps)
        self.handler.enroll(self.session_id)
        second = self.handler.sessions.get(self.session_id).crps

        self.assertEqual(10, len(second))
        self.assertNotEqual(first, second)


    def test_small_enrollment_has_no_summary_line(self):

        session_id = self.handler.create_session("DEV-2", "sram", 3)
        result = self.handler.enroll(session_id)

        self.assertEqual(3, result.crp_count)
        self.assertFalse(any("generating remaining" in line for line in result.log))


    """
        Every stored CRP is reproduced by the device's PUF.
    """
    def test_authentication_consistency(self):

        self.handler.enroll(self.session_id)
        session = self.handler.sessions.get(self.session_id)
        puf = PUFEvaluator()

        for crp in session.crps:
            self.assertEqual(crp.response, puf.evaluate(crp.challenge, session.puf_seed, session.puf_type))

        for _ in range(5):
            result = self.handler.authenticate(self.session_id)
            self.assertTrue(result.success)
            self.assertEqual(result.expected_response, result.device_response)
            self.assertEqual(8, len(result.challenge_preview))
            self.assertTrue(result.log[-2].endswith("Authentication SUCCESS - Device identity verified!"))

        packet = result.to_packet()
        self.assertEqual(CONSTANTS.STEP_AUTH, packet["step"])
        self.assertTrue(packet["success"])


    """
        A response mismatch is reported, not raised.
    """
    def test_authentication_mismatch_reported(self):

        self.handler.enroll(self.session_id)

        with mock.patch.object(PUFEvaluator, "evaluate", side_effect=lambda challenge, seed, puf_type: 2):
            result = self.handler.authenticate(self.session_id)

        self.assertFalse(result.success)
        self.assertEqual("error", result.to_packet()["status"])
        self.assertTrue(any("Authentication FAILED - Response mismatch!" in line for line in result.log))


    def test_authenticate_before_enroll(self):

        log_before = self.handler.get_log(self.session_id)

        with self.assertRaises(InvalidStateError) as cm:
            self.handler.authenticate(self.session_id)

        self.assertEqual(ApplicationCodes.NO_CRPS, cm.exception.application_code)
        self.assertEqual(log_before, self.handler.get_log(self.session_id))


    ################################################################################################
    # KEY EXCHANGE / PROVISIONING / OPERATION
    ################################################################################################

    """
        Full flow: DEV-1, arbiter, 10 CRPs through normal operation.
    """
    def test_end_to_end(self):

        self.handler.enroll(self.session_id)
        self.assertTrue(self.handler.authenticate(self.session_id).success)

        exchange = self.handler.exchange_keys(self.session_id)
        self.assertEqual(16, len(exchange.session_key_preview))
        self.assertNotEqual(exchange.device_public_key, exchange.server_public_key)
        self.assertTrue(any(line.endswith("Shared secrets match!") for line in exchange.log))

        session_key = self.handler.sessions.get(self.session_id).session_key
        self.assertEqual(32, len(session_key))
        self.assertTrue(session_key.hex().startswith(exchange.session_key_preview))
        self.assertFalse(any(session_key.hex() in line for line in exchange.log))

        provision = self.handler.provision(self.session_id)
        self.assertTrue(provision.provisioned)
        cert_preview = provision.credentials_preview["deviceCert"]
        token_preview = provision.credentials_preview["token"]
        self.assertTrue(cert_preview.startswith("-----BEGIN CERTIFICATE-----"))
        self.assertEqual(63, len(cert_preview))
        self.assertTrue(cert_preview.endswith("..."))
        self.assertTrue(token_preview.startswith(CONSTANTS._JWT_HEADER_B64 + "."))
        self.assertEqual(53, len(token_preview))

        credentials = self.handler.sessions.get(self.session_id).provisioned_credentials
        self.assertTrue(credentials.device_cert.startswith(cert_preview[:-3]))

        operation = self.handler.operate(self.session_id)
        self.assertTrue(operation.server_message.startswith("Hello Device DEV-1! System status check at "))
        self.assertRegex(operation.device_message, r"^ACK: Hello Device DEV-1! System sta\.\.\. \| Status: OK \| Uptime: (\d+)s$")

        uptime = int(re.search(r"Uptime: (\d+)s", operation.device_message).group(1))
        self.assertTrue(100 <= uptime < 10000)

        # Both envelopes decrypt under the session key
        aes = AESManager()
        for envelope, expected in ((operation.server_envelope, operation.server_message), (operation.device_envelope, operation.device_message)):
            self.assertEqual(expected, aes.decrypt(envelope.ciphertext, session_key, envelope.iv, envelope.tag))

        packet = operation.to_packet()
        self.assertEqual(CONSTANTS.STEP_OPERATION, packet["step"])
        self.assertEqual(operation.server_message, packet["serverToDevicePlaintext"])
        self.assertEqual(operation.device_message, packet["deviceToServerPlaintext"])

        summary = self.handler.get_session_summary(self.session_id)
        self.assertEqual(CONSTANTS.PHASE_PROVISIONED, summary.phase)
        self.assertTrue(summary.has_session_key)
        self.assertEqual(10, summary.crp_count)


    """
        Key exchange needs no enrollment.
    """
    def test_key_exchange_without_enrollment(self):

        result = self.handler.exchange_keys(self.session_id)

        self.assertEqual(CONSTANTS.STEP_DH, result.to_packet()["step"])
        self.assertTrue(self.handler.get_session_summary(self.session_id).has_session_key)


    def test_provision_and_operate_guards(self):

        with self.assertRaises(InvalidStateError) as cm:
            self.handler.provision(self.session_id)
        self.assertEqual(ApplicationCodes.NO_SESSION_KEY, cm.exception.application_code)

        with self.assertRaises(InvalidStateError) as cm:
            self.handler.operate(self.session_id)
        self.assertEqual(ApplicationCodes.NO_SESSION_KEY, cm.exception.application_code)

        self.handler.exchange_keys(self.session_id)

        with self.assertRaises(InvalidStateError) as cm:
            self.handler.operate(self.session_id)
        self.assertEqual(ApplicationCodes.NOT_PROVISIONED, cm.exception.application_code)


    """
        A DH mismatch raises IntegrityError and keeps any prior key.
    """
    def test_key_exchange_integrity_failure(self):

        with mock.patch.object(DHManager, "compute_shared_secret", side_effect=[b"\x01" * 256, b"\x02" * 256]):
            with self.assertRaises(IntegrityError) as cm:
                self.handler.exchange_keys(self.session_id)

        self.assertEqual(ApplicationCodes.DH_SECRET_MISMATCH, cm.exception.application_code)
        self.assertIsNone(self.handler.sessions.get(self.session_id).session_key)
        self.assertIn("Key exchange FAILED", self.handler.get_log(self.session_id)[-1])

        self.handler.exchange_keys(self.session_id)
        previous_key = self.handler.sessions.get(self.session_id).session_key

        with mock.patch.object(DHManager, "compute_shared_secret", side_effect=[b"\x01" * 256, b"\x02" * 256]):
            with self.assertRaises(IntegrityError):
                self.handler.exchange_keys(self.session_id)

        self.assertEqual(previous_key, self.handler.sessions.get(self.session_id).session_key)


    """
        A failed device-side decrypt leaves the session unprovisioned.
    """
    def test_provision_authentication_failure(self):

        self.handler.exchange_keys(self.session_id)

        failure = AuthenticationError(ApplicationCodes.CIPHERTEXT_AUTH_ERROR, "AES-GCM authentication failed", "ciphertext")
        with mock.patch.object(AESManager, "decrypt", side_effect=failure):
            with self.assertRaises(AuthenticationError):
                self.handler.provision(self.session_id)

        session = self.handler.sessions.get(self.session_id)
        self.assertFalse(session.provisioned)
        self.assertIsNone(session.provisioned_credentials)
        self.assertIn("Provisioning FAILED", session.log[-1])


    ################################################################################################
    # RESET / DELETE / UNKNOWN SESSIONS
    ################################################################################################

    """
        Reset keeps identity, so a re-enrolled device still authenticates.
    """
    def test_reset(self):

        self.handler.enroll(self.session_id)
        self.handler.exchange_keys(self.session_id)
        self.handler.provision(self.session_id)
        seed = self.handler.sessions.get(self.session_id).puf_seed

        result = self.handler.reset(self.session_id)

        self.assertIsInstance(result, ResetResult)
        self.assertEqual({"status": "success", "message": "Session reset successfully"}, result.to_packet())

        log = self.handler.get_log(self.session_id)
        self.assertEqual(1, len(log))
        self.assertTrue(log[0].endswith("Session reset - all data cleared"))

        summary = self.handler.get_session_summary(self.session_id)
        self.assertEqual(0, summary.crp_count)
        self.assertFalse(summary.has_session_key)
        self.assertFalse(summary.provisioned)
        self.assertEqual(CONSTANTS.PHASE_CREATED, summary.phase)
        self.assertEqual("DEV-1", summary.device_id)

        with self.assertRaises(InvalidStateError):
            self.handler.authenticate(self.session_id)

        self.assertEqual(seed, self.handler.sessions.get(self.session_id).puf_seed)
        self.handler.enroll(self.session_id)
        self.assertTrue(self.handler.authenticate(self.session_id).success)


    def test_delete(self):

        self.handler.delete(self.session_id)

        self.assertNotIn(self.session_id, self.handler.list_sessions())
        with self.assertRaises(NotFoundError):
            self.handler.get_session_summary(self.session_id)
        with self.assertRaises(NotFoundError):
            self.handler.delete(self.session_id)


    def test_unknown_session(self):

        operations = (
            self.handler.enroll,
            self.handler.authenticate,
            self.handler.exchange_keys,
            self.handler.provision,
            self.handler.operate,
            self.handler.reset,
            self.handler.delete,
            self.handler.get_session_summary,
            self.handler.get_log,
        )

        for operation in operations:
            with self.subTest(operation=operation.__name__):
                with self.assertRaises(NotFoundError):
                    operation(_UNKNOWN_ID)


    def test_create_session_validation(self):

        with self.assertRaises(ValidationError):
            self.handler.create_session("DEV-9", "quantum", 10)

        self.assertEqual([self.session_id], self.handler.list_sessions())


    """
        Collaborators are type-checked at construction.
    """
    def test_constructor_rejects_wrong_types(self):

        with self.assertRaises(PufSimError):
            SimulationHandler(None, AESManager(), DHManager(), PUFEvaluator(), SeededRandomSource(), self.audit)  # type: ignore


    ################################################################################################
    # DETERMINISM / AUDIT
    ################################################################################################

    """
        Two handlers on the same seed produce the same ids and CRPs.
    """
    def test_seeded_runs_are_reproducible(self):

        first = SimulationHandler.build(SeededRandomSource(7), self.audit)
        second = SimulationHandler.build(SeededRandomSource(7), self.audit)

        first_id = first.create_session("DEV-7", "fallback", 20)
        second_id = second.create_session("DEV-7", "fallback", 20)
        self.assertEqual(first_id, second_id)

        first.enroll(first_id)
        second.enroll(second_id)
        self.assertEqual(first.sessions.get(first_id).crps, second.sessions.get(second_id).crps)


    def test_audit_events(self):

        self.handler.enroll(self.session_id)
        self.handler.delete(self.session_id)

        events = self.audit.read_events()
        names = [event["event"] for event in events]

        self.assertIn("session_created", names)
        self.assertIn("phase_completed", names)
        self.assertIn("session_deleted", names)

        for event in events:
            self.assertNotIn("puf_seed", event)
            self.assertNotIn("session_key", event)


if __name__ == "__main__":
    unittest.main()
