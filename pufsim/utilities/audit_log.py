#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from datetime import datetime, timezone
import json
import os
import sys
import typing
import threading

_AUDIT_FILE = os.environ.get("PUFSIM_AUDIT_FILE", os.path.join(os.path.dirname(__file__), "audit.log"))

# Keys that must never reach the audit file
_REDACTED_KEYS = {"puf_seed", "session_key", "private_key", "device_private_key", "server_private_key"}


#####################################################################################################################################################################

"""
    Provides persistent structured audit logging for the simulator.
	One JSON object per line, each stamped with an ISO8601Z timestamp.
"""
class AuditLog:

	def __init__(self, audit_file: typing.Optional[str] = None):
		self._lock = threading.RLock()
		self._audit_file = audit_file or _AUDIT_FILE


	@property
	def audit_file(self) -> str:
		return self._audit_file


	def event(self, **kv: typing.Any):

		# Construct ISO8601Z timestamp
		ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

		# Append timestamp to event, dropping secret material
		record = {"timestamp": ts}
		record.update({k: v for k, v in kv.items() if k not in _REDACTED_KEYS})

		with self._lock:
			try:
				with open(self._audit_file, "a", encoding="utf-8") as f:
					json.dump(record, f, ensure_ascii=False, default=str)
					f.write("\n")

			except OSError as e:
				print(f"Audit log write error: {e}", file=sys.stderr)


	"""
		Read back every record in the audit file (oldest first). Used by operators and tests.
	"""
	def read_events(self) -> typing.List[dict]:

		with self._lock:
			if not os.path.isfile(self._audit_file):
				return []

			with open(self._audit_file, "r", encoding="utf-8") as f:
				return [json.loads(line) for line in f if line.strip()]
