#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: key_exchange_handler.py

    Description:
        Diffie-Hellman key exchange phase. Delegates the arithmetic to
        DHManager, stores the resulting key pairs and the derived AES-256
        session key on the session, and records the milestones in the
        protocol log. Private keys and the full session key are never logged
        or returned; only short previews are.
"""


import typing
from dataclasses import dataclass
from pufsim.encryption.DH_manager import DHManager
from pufsim.handlers.error_handler import PufSimError
from pufsim.handlers.session_handler import SessionStore
from pufsim.utilities.audit_log import AuditLog
import pufsim.constants as CONSTANTS



@dataclass(frozen=True)
class KeyExchangeResult:

    device_public_key: str
    server_public_key: str
    session_key_preview: str
    log: typing.List[str]

    def to_packet(self) -> dict:
        return {
            "step": CONSTANTS.STEP_DH,
            "status": CONSTANTS.STATUS_SUCCESS,
            "devicePublicKey": self.device_public_key,
            "serverPublicKey": self.server_public_key,
            "sessionKeyHex": self.session_key_preview,
            "log": list(self.log),
        }



class KeyExchangeHandler:

    """
        @param session_store (SessionStore): Owner of all session state.
        @param dh_manager (DHManager): Diffie-Hellman engine.
        @param audit (AuditLog): Audit log for non-sensitive events.
    """
    def __init__(self, session_store: SessionStore, dh_manager: DHManager, audit: AuditLog) -> None:

        self._sessions: SessionStore = session_store
        self._dh: DHManager = dh_manager
        self._audit: AuditLog = audit



    """
        Run the two-party exchange for a session and install the derived session key.

        @param session_id (str): Session identifier.
        @return KeyExchangeResult: Both public keys (hex), session key preview, log snapshot.
        @ensures On IntegrityError the previous DH material and session key are left untouched.
    """
    def exchange_keys(self, session_id: str) -> KeyExchangeResult:

        session = self._sessions.get(session_id)

        with session.lock:
            session.append_log("=== DIFFIE-HELLMAN KEY EXCHANGE STARTED ===")

            try:
                outcome = self._dh.exchange()

            except PufSimError as e:
                session.append_log(f"Key exchange FAILED - {e.detail}")
                raise

            device = outcome.state.device
            server = outcome.state.server
            preview_len = CONSTANTS._KEY_PREVIEW_HEX_CHARS

            session.append_log(f"Using {outcome.state.key_size}-bit DH parameters ({outcome.state.parameter_source})")
            session.append_log("Device: Generated DH key pair")
            session.append_log(f"  Public key: {device.public_key_hex[:preview_len]}...")
            session.append_log("Server: Generated DH key pair")
            session.append_log(f"  Public key: {server.public_key_hex[:preview_len]}...")
            session.append_log("Device: Computed shared secret")
            session.append_log("Server: Computed shared secret")
            session.append_log("Shared secrets match!")

            # Replace any prior material
            session.dh_state = outcome.state
            session.session_key = outcome.session_key

            session_key_preview = outcome.session_key.hex()[:preview_len]
            session.append_log(f"Derived AES-256 session key: {session_key_preview}...")
            session.append_log("=== KEY EXCHANGE COMPLETE ===")

            self._audit.event(event="phase_completed", session_id=session_id, step=CONSTANTS.STEP_DH, parameter_source=outcome.state.parameter_source)

            return KeyExchangeResult(device_public_key=device.public_key_hex, server_public_key=server.public_key_hex, session_key_preview=session_key_preview, log=session.log_snapshot())
