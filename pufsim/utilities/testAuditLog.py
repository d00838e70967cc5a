#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
	Test suite for AuditLog: JSON-lines records, timestamps, redaction of
	secret keys, read-back, and write failures that must not raise.
"""

import io
import os
import shutil
import tempfile
import unittest
from unittest import mock
from pufsim.utilities.audit_log import AuditLog


class TestAuditLog(unittest.TestCase):

	def setUp(self):
		self.tmp_dir = tempfile.mkdtemp()
		self.path = os.path.join(self.tmp_dir, "audit.log")
		self.audit = AuditLog(self.path)

	def tearDown(self):
		shutil.rmtree(self.tmp_dir, ignore_errors=True)


	def test_event_written_as_json_line(self):

		self.audit.event(event="session_created", session_id="abc", num_crps=10)
		self.audit.event(event="session_deleted", session_id="abc")

		with open(self.path, "r", encoding="utf-8") as f:
			lines = f.read().splitlines()

		self.assertEqual(2, len(lines))

		events = self.audit.read_events()
		self.assertEqual("session_created", events[0]["event"])
		self.assertEqual(10, events[0]["num_crps"])
		self.assertTrue(events[0]["timestamp"].endswith("Z"))
		self.assertEqual("session_deleted", events[1]["event"])
		self.assertEqual(self.path, self.audit.audit_file)


	"""
		Secret material never reaches the file.
	"""
	def test_secret_keys_redacted(self):

		self.audit.event(event="x", puf_seed=1234, session_key="00" * 32, private_key="k")

		event = self.audit.read_events()[0]

		self.assertNotIn("puf_seed", event)
		self.assertNotIn("session_key", event)
		self.assertNotIn("private_key", event)


	def test_read_events_missing_file(self):
		self.assertEqual([], AuditLog(os.path.join(self.tmp_dir, "missing.log")).read_events())


	"""
		An unwritable path is reported on stderr, not raised.
	"""
	def test_write_failure_reported_on_stderr(self):

		broken = AuditLog(self.tmp_dir)

		with mock.patch("sys.stderr", new_callable=io.StringIO) as stderr:
			broken.event(event="x")

		self.assertIn("Audit log write error", stderr.getvalue())


if __name__ == "__main__":
	unittest.main()
