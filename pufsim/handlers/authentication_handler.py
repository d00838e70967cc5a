#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: authentication_handler.py

    Description:
        Enrollment and PUF authentication phases. Enrollment fills a session's
        CRP store with fresh random challenges and the simulated device's PUF
        responses; authentication picks one stored CRP at random, has the device
        re-evaluate its PUF on that challenge, and compares the answer with the
        stored response. Mismatches are reported, never retried.
"""


import typing
from dataclasses import dataclass
from pufsim.encryption.PUF_evaluator import PUFEvaluator
from pufsim.handlers.session_handler import CRP, SessionStore, require_crps
from pufsim.utilities.audit_log import AuditLog
from pufsim.utilities.random_source import RandomSource
import pufsim.constants as CONSTANTS



@dataclass(frozen=True)
class EnrollResult:

    crp_count: int
    log: typing.List[str]

    def to_packet(self) -> dict:
        return {"step": CONSTANTS.STEP_ENROLL, "status": CONSTANTS.STATUS_SUCCESS, "crpCount": self.crp_count, "log": list(self.log)}


@dataclass(frozen=True)
class AuthResult:

    success: bool
    challenge_preview: typing.List[int]
    device_response: int
    expected_response: int
    log: typing.List[str]

    def to_packet(self) -> dict:
        return {
            "step": CONSTANTS.STEP_AUTH,
            "status": CONSTANTS.STATUS_SUCCESS if self.success else CONSTANTS.STATUS_ERROR,
            "success": self.success,
            "challengePreview": list(self.challenge_preview),
            "deviceResponse": self.device_response,
            "expectedResponse": self.expected_response,
            "log": list(self.log),
        }



"""
    Runs the CRP-based phases against sessions held by a SessionStore.
"""
class AuthenticationHandler:

    def __init__(self, session_store: SessionStore, puf_evaluator: PUFEvaluator, random_source: RandomSource, audit: AuditLog) -> None:

        self._sessions: SessionStore = session_store
        self._puf: PUFEvaluator = puf_evaluator
        self._random: RandomSource = random_source
        self._audit: AuditLog = audit



    """
        Enrollment: generate and store num_crps challenge-response pairs.

        @param session_id (str): Session identifier.
        @return EnrollResult: CRP count and log snapshot.
        @ensures Any previous CRP set is fully replaced; exactly num_crps CRPs are stored.
    """
    def enroll(self, session_id: str) -> EnrollResult:

        session = self._sessions.get(session_id)

        with session.lock:
            session.append_log("=== ENROLLMENT PHASE STARTED ===")
            session.append_log(f"Generating {session.num_crps} Challenge-Response Pairs...")

            crps: typing.List[CRP] = []
            last_index = session.num_crps - 1

            for i in range(session.num_crps):
                challenge = self._puf.generate_challenge(self._random, CONSTANTS._CHALLENGE_BITS)
                response = self._puf.evaluate(challenge, session.puf_seed, session.puf_type)
                crps.append(CRP(challenge=challenge, response=response))

                # Full preview for the first few and the last CRP, one summary line for the rest
                if i < CONSTANTS._ENROLL_PREVIEW_HEAD or i == last_index:
                    preview = self._puf.challenge_preview(challenge)
                    session.append_log(f"  CRP {i + 1}: Challenge={preview}... -> Response={response}")
                elif i == CONSTANTS._ENROLL_PREVIEW_HEAD:
                    session.append_log("  ... (generating remaining CRPs)")

            session.crps = crps

            session.append_log(f"Successfully stored {len(session.crps)} CRPs in server database")
            session.append_log("=== ENROLLMENT COMPLETE ===")

            self._audit.event(event="phase_completed", session_id=session_id, step=CONSTANTS.STEP_ENROLL, crp_count=len(crps))

            return EnrollResult(crp_count=len(session.crps), log=session.log_snapshot())



    """
        Authentication: challenge the device with one stored CRP.

        @param session_id (str): Session identifier.
        @return AuthResult: Challenge preview, both responses, success flag, log snapshot.
        @ensures Raises InvalidStateError when no CRPs are stored.
    """
    def authenticate(self, session_id: str) -> AuthResult:

        session = self._sessions.get(session_id)

        with session.lock:
            require_crps(session)

            session.append_log("=== PUF AUTHENTICATION STARTED ===")

            # Select a stored CRP uniformly at random
            crp_index = self._random.randbelow(len(session.crps))
            crp = session.crps[crp_index]

            preview = list(crp.challenge[:CONSTANTS._CHALLENGE_PREVIEW_BITS])
            session.append_log(f"Server: Sending challenge #{crp_index + 1} to device")
            session.append_log(f"  Challenge preview: {self._puf.challenge_preview(crp.challenge)}...")

            # Device re-evaluates its PUF on the stored challenge
            device_response = self._puf.evaluate(crp.challenge, session.puf_seed, session.puf_type)
            session.append_log(f"Device: PUF evaluated -> {device_response}")
            session.append_log(f"Server: Expected response -> {crp.response}")

            success = device_response == crp.response

            if success:
                session.append_log("Authentication SUCCESS - Device identity verified!")
            else:
                session.append_log("Authentication FAILED - Response mismatch!")

            session.append_log("=== AUTHENTICATION COMPLETE ===")

            self._audit.event(event="phase_completed", session_id=session_id, step=CONSTANTS.STEP_AUTH, success=success)

            return AuthResult(success=success, challenge_preview=preview, device_response=device_response, expected_response=crp.response, log=session.log_snapshot())
