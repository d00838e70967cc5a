#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testSessionHandler.py

    Description:
        Test suite for SessionStore and the phase guards. Covers parameter
        validation at creation, lookup and deletion of unknown ids, listing,
        the log line format, summaries, derived phase, and reset semantics.
"""

import re
import unittest
from pufsim.handlers.session_handler import CRP, SessionStore, require_crps, require_provisioned, require_session_key
from pufsim.handlers.error_handler import InvalidStateError, NotFoundError, ValidationError, ApplicationCodes, HTTPCodes
from pufsim.utilities.random_source import SeededRandomSource
import pufsim.constants as CONSTANTS


_LOG_LINE_RX = re.compile(r"^\[\d{2}:\d{2}:\d{2}\.\d{3}\] .+$")


class TestSessionStore(unittest.TestCase):

    def setUp(self):
        self.store = SessionStore(SeededRandomSource(99))


    """
        A new session carries its identity, a 32-bit seed and two creation log lines.
    """
    def test_create_session(self):

        session = self.store.create("DEV-1", "arbiter", 10)

        self.assertRegex(session.session_id, CONSTANTS._SESSION_ID_RX)
        self.assertEqual("DEV-1", session.device_id)
        self.assertEqual("arbiter", session.puf_type)
        self.assertEqual(10, session.num_crps)
        self.assertTrue(0 <= session.puf_seed <= 0xFFFFFFFF)
        self.assertEqual([], session.crps)
        self.assertIsNone(session.session_key)
        self.assertFalse(session.provisioned)

        log = session.log_snapshot()
        self.assertEqual(2, len(log))
        self.assertTrue(log[0].endswith("Session created for device DEV-1"))
        self.assertTrue(log[1].endswith("PUF type: arbiter"))
        for line in log:
            self.assertRegex(line, _LOG_LINE_RX)
            self.assertNotIn("seed", line.lower())

        # Seed stays out of repr
        self.assertNotIn("puf_seed", repr(session))


    """
        Invalid parameters raise ValidationError and store nothing.
    """
    def test_create_rejects_invalid_parameters(self):

        cases = [
            (("", "arbiter", 10), ApplicationCodes.INVALID_DEVICE_ID),
            (("   ", "arbiter", 10), ApplicationCodes.INVALID_DEVICE_ID),
            ((None, "arbiter", 10), ApplicationCodes.INVALID_DEVICE_ID),
            (("D" * 129, "arbiter", 10), ApplicationCodes.INVALID_DEVICE_ID),
            (("DEV-1", "optical", 10), ApplicationCodes.INVALID_PUF_TYPE),
            (("DEV-1", None, 10), ApplicationCodes.INVALID_PUF_TYPE),
            (("DEV-1", "arbiter", 0), ApplicationCodes.INVALID_NUM_CRPS),
            (("DEV-1", "arbiter", 1001), ApplicationCodes.INVALID_NUM_CRPS),
            (("DEV-1", "arbiter", "10"), ApplicationCodes.INVALID_NUM_CRPS),
            (("DEV-1", "arbiter", 10.0), ApplicationCodes.INVALID_NUM_CRPS),
            (("DEV-1", "arbiter", True), ApplicationCodes.INVALID_NUM_CRPS),
        ]

        for args, code in cases:
            with self.subTest(args=args):
                with self.assertRaises(ValidationError) as cm:
                    self.store.create(*args)
                self.assertEqual(code, cm.exception.application_code)
                self.assertEqual(HTTPCodes.BAD_REQUEST, cm.exception.http_code)

        self.assertEqual(0, len(self.store))


    def test_crp_bounds_accepted(self):
        self.assertEqual(1, self.store.create("DEV-1", "sram", 1).num_crps)
        self.assertEqual(1000, self.store.create("DEV-2", "fallback", 1000).num_crps)


    """
        Lookup, listing, membership and deletion.
    """
    def test_get_list_delete(self):

        first = self.store.create("DEV-1", "arbiter", 5)
        second = self.store.create("DEV-2", "sram", 5)

        self.assertIs(first, self.store.get(first.session_id))
        self.assertNotEqual(first.session_id, second.session_id)
        self.assertCountEqual([first.session_id, second.session_id], self.store.list_ids())
        self.assertIn(first.session_id, self.store)
        self.assertEqual(2, len(self.store))

        self.store.delete(first.session_id)

        self.assertNotIn(first.session_id, self.store)
        with self.assertRaises(NotFoundError):
            self.store.get(first.session_id)

        # Second delete of the same id is an unknown id
        with self.assertRaises(NotFoundError) as cm:
            self.store.delete(first.session_id)
        self.assertEqual(ApplicationCodes.SESSION_NOT_FOUND, cm.exception.application_code)
        self.assertEqual(HTTPCodes.NOT_FOUND, cm.exception.http_code)


    def test_unknown_or_malformed_id(self):

        with self.assertRaises(NotFoundError):
            self.store.get("0" * 32)

        with self.assertRaises(ValidationError):
            self.store.get("")


    """
        Summaries never carry secrets and track the derived phase.
    """
    def test_summary_and_phase(self):

        session = self.store.create("DEV-1", "arbiter", 3)
        summary = self.store.summarize(session.session_id)

        self.assertEqual(CONSTANTS.PHASE_CREATED, summary.phase)
        self.assertEqual(0, summary.crp_count)
        self.assertEqual(2, summary.log_count)

        packet = summary.to_packet()
        self.assertEqual(session.session_id, packet["id"])
        self.assertEqual("DEV-1", packet["deviceId"])
        self.assertFalse(packet["hasSessionKey"])
        self.assertNotIn("pufSeed", packet)

        session.crps = [CRP(challenge=(0, 1), response=1)]
        self.assertEqual(CONSTANTS.PHASE_ENROLLED, self.store.summarize(session.session_id).phase)

        session.session_key = b"\x00" * 32
        self.assertEqual(CONSTANTS.PHASE_KEY_EXCHANGED, self.store.summarize(session.session_id).phase)

        session.provisioned = True
        self.assertEqual(CONSTANTS.PHASE_PROVISIONED, self.store.summarize(session.session_id).phase)


    """
        Reset clears progress and keeps identity.
    """
    def test_reset(self):

        session = self.store.create("DEV-1", "arbiter", 3)
        seed = session.puf_seed

        session.crps = [CRP(challenge=(0, 1), response=1)]
        session.session_key = b"\x01" * 32
        session.provisioned = True
        session.append_log("extra line")

        self.store.reset(session.session_id)

        self.assertEqual([], session.crps)
        self.assertIsNone(session.dh_state)
        self.assertIsNone(session.session_key)
        self.assertFalse(session.provisioned)
        self.assertIsNone(session.provisioned_credentials)
        self.assertEqual(1, len(session.log))
        self.assertTrue(session.log[0].endswith("Session reset - all data cleared"))

        self.assertEqual(seed, session.puf_seed)
        self.assertEqual("DEV-1", session.device_id)
        self.assertEqual("arbiter", session.puf_type)
        self.assertEqual(3, session.num_crps)


    """
        Snapshots are copies.
    """
    def test_log_snapshot_is_a_copy(self):

        session = self.store.create("DEV-1", "arbiter", 3)
        snapshot = session.log_snapshot()
        snapshot.append("tampered")

        self.assertEqual(2, len(session.log))


    """
        Same seed, same ids and PUF seeds.
    """
    def test_seeded_store_is_reproducible(self):

        other = SessionStore(SeededRandomSource(99))

        a = self.store.create("DEV-1", "arbiter", 3)
        b = other.create("DEV-1", "arbiter", 3)

        self.assertEqual(a.session_id, b.session_id)
        self.assertEqual(a.puf_seed, b.puf_seed)



class TestPhaseGuards(unittest.TestCase):

    def setUp(self):
        self.session = SessionStore(SeededRandomSource(1)).create("DEV-1", "sram", 2)


    def test_require_crps(self):

        with self.assertRaises(InvalidStateError) as cm:
            require_crps(self.session)
        self.assertEqual(ApplicationCodes.NO_CRPS, cm.exception.application_code)
        self.assertEqual(HTTPCodes.CONFLICT, cm.exception.http_code)

        self.session.crps = [CRP(challenge=(1,), response=0)]
        require_crps(self.session)


    def test_require_session_key(self):

        with self.assertRaises(InvalidStateError) as cm:
            require_session_key(self.session)
        self.assertEqual(ApplicationCodes.NO_SESSION_KEY, cm.exception.application_code)

        self.session.session_key = b"\x02" * 32
        self.assertEqual(b"\x02" * 32, require_session_key(self.session))


    """
        The session key is checked before the provisioned flag.
    """
    def test_require_provisioned(self):

        self.session.provisioned = True
        with self.assertRaises(InvalidStateError) as cm:
            require_provisioned(self.session)
        self.assertEqual(ApplicationCodes.NO_SESSION_KEY, cm.exception.application_code)

        self.session.provisioned = False
        self.session.session_key = b"\x03" * 32
        with self.assertRaises(InvalidStateError) as cm:
            require_provisioned(self.session)
        self.assertEqual(ApplicationCodes.NOT_PROVISIONED, cm.exception.application_code)

        self.session.provisioned = True
        self.assertEqual(b"\x03" * 32, require_provisioned(self.session))


if __name__ == "__main__":
    unittest.main()
