#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: session_handler.py

    Description:
        Owns all simulation session state: creation with validated identity
        (device id, PUF type, CRP count, secret PUF seed), lookup, deletion,
        listing, the append-only per-session protocol log, phase prerequisite
        guards, and reset of progress while keeping identity. The store is an
        explicit object, created once per process and injected wherever phases
        run, so tests get isolation from a fresh instance. The store map is
        guarded by an RLock, and every session carries its own RLock that phase
        handlers hold for the whole read-then-mutate unit of work.
"""


import threading
import typing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from pufsim.encryption.DH_manager import DHState
from pufsim.handlers.error_handler import InvalidStateError, NotFoundError, ApplicationCodes
from pufsim.utilities.random_source import RandomSource
import pufsim.handlers.sanitization_validation as VALIDATION
import pufsim.constants as CONSTANTS


####################################################################################################
# Session Data Objects
####################################################################################################

"""
    One challenge-response pair recorded at enrollment. Immutable afterward.
"""
@dataclass(frozen=True)
class CRP:

    challenge: Tuple[int, ...]
    response: int


"""
    Credentials the device decrypted and stored during provisioning.
"""
@dataclass(frozen=True)
class ProvisionedCredentials:

    device_cert: str
    token: str


"""
    Represents all state for a single simulated device.

    This object is stored in-memory and never written to disk; it never leaves
    the SessionStore. Callers receive snapshots (log lists, SessionSummary).

    session_id              : 128-bit random identifier, hex
    device_id               : Device identifier supplied at creation
    puf_type                : "arbiter", "sram" or "fallback" (immutable)
    puf_seed                : Secret unsigned 32-bit device seed (immutable)
    num_crps                : Number of CRPs fixed at creation
    crps                    : CRPs recorded by the latest enrollment
    dh_state                : Ephemeral DH key pairs from the latest key exchange
    session_key             : 32-byte AES-256 key derived from the DH shared secret
    provisioned             : True after a successful provisioning pass
    provisioned_credentials : Credentials decrypted by the device
    log                     : Append-only protocol log ("[HH:MM:SS.mmm] message")
    created_at              : UTC datetime when this session was created
"""
@dataclass
class SimulationSession:

    session_id: str
    device_id: str
    puf_type: str
    puf_seed: int =                                             field(repr=False)
    num_crps: int =                                             1
    crps: List[CRP] =                                           field(default_factory=list, repr=False)
    dh_state: Optional[DHState] =                               field(default=None, repr=False)
    session_key: Optional[bytes] =                              field(default=None, repr=False)
    provisioned: bool =                                         False
    provisioned_credentials: Optional[ProvisionedCredentials] = field(default=None, repr=False)
    log: List[str] =                                            field(default_factory=list, repr=False)
    created_at: datetime =                                      field(default_factory=lambda: datetime.now(timezone.utc))
    lock: threading.RLock =                                     field(default_factory=threading.RLock, repr=False, compare=False)


    """
        Append one timestamped line to the protocol log.
    """
    def append_log(self, message: str) -> None:
        self.log.append(f"[{VALIDATION.get_log_timestamp()}] {message}")

    """
        Copy of the protocol log, oldest first.
    """
    def log_snapshot(self) -> List[str]:
        return list(self.log)

    """
        Derived, read-only progress marker used in summaries.
    """
    @property
    def phase(self) -> str:
        if self.provisioned:
            return CONSTANTS.PHASE_PROVISIONED
        if self.session_key is not None:
            return CONSTANTS.PHASE_KEY_EXCHANGED
        if self.crps:
            return CONSTANTS.PHASE_ENROLLED
        return CONSTANTS.PHASE_CREATED


"""
    Non-secret view of a session. Never carries the seed, private keys or the session key.
"""
@dataclass(frozen=True)
class SessionSummary:

    session_id: str
    device_id: str
    puf_type: str
    num_crps: int
    crp_count: int
    has_session_key: bool
    provisioned: bool
    log_count: int
    phase: str

    def to_packet(self) -> dict:
        return {
            "id": self.session_id,
            "deviceId": self.device_id,
            "pufType": self.puf_type,
            "numCrps": self.num_crps,
            "crpCount": self.crp_count,
            "hasSessionKey": self.has_session_key,
            "provisioned": self.provisioned,
            "logCount": self.log_count,
            "phase": self.phase,
        }


####################################################################################################
# SESSION STORE
####################################################################################################

class SessionStore:

    """
        Initialize an empty SessionStore.

        @param random_source (RandomSource | None): Source of session ids and PUF seeds.
        @ensures The store starts empty with its own lock.
    """
    def __init__(self, random_source: Optional[RandomSource] = None) -> None:

        # Initialize a re-entrant lock for concurrent access protection
        self._lock = threading.RLock()

        # Initialize the in-memory dictionary for sessions
        self._sessions: Dict[str, SimulationSession] = {}

        self._random: RandomSource = random_source if random_source is not None else RandomSource()



    """
        Create a new session with a fresh id and secret PUF seed.

        @param device_id (str): Non-empty device identifier (at most 128 chars).
        @param puf_type (str): One of arbiter, sram, fallback.
        @param num_crps (int): Number of CRPs to enroll, in [1, 1000].
        @return SimulationSession: The stored session.
        @ensures All parameters are validated before anything is stored; the id is unique within this store.
    """
    def create(self, device_id: str, puf_type: str, num_crps: int) -> SimulationSession:

        # Validate every parameter before touching shared state
        VALIDATION.validate_string(device_id, ApplicationCodes.INVALID_DEVICE_ID, "deviceId")
        VALIDATION.validate_max_length(device_id, CONSTANTS._MAX_DEVICE_ID_LEN, ApplicationCodes.INVALID_DEVICE_ID, "deviceId")
        VALIDATION.validate_in_set(puf_type, CONSTANTS._ALLOWED_PUF_TYPES, ApplicationCodes.INVALID_PUF_TYPE, "pufType")
        VALIDATION.validate_int_range(num_crps, CONSTANTS._MIN_CRPS, CONSTANTS._MAX_CRPS, ApplicationCodes.INVALID_NUM_CRPS, "numCrps")

        puf_seed = self._random.randbelow(CONSTANTS._PUF_SEED_LIMIT)

        # Acquire lock before mutating shared state
        with self._lock:

            # Draw ids until one is unused
            session_id = self._random.token_hex(CONSTANTS._SESSION_ID_BYTES)
            while session_id in self._sessions:
                session_id = self._random.token_hex(CONSTANTS._SESSION_ID_BYTES)

            session = SimulationSession(session_id=session_id, device_id=device_id, puf_type=puf_type, puf_seed=puf_seed, num_crps=num_crps)

            session.append_log(f"Session created for device {device_id}")
            session.append_log(f"PUF type: {puf_type}")

            self._sessions[session_id] = session

            return session



    """
        Retrieve a session by id.

        @param session_id (str): Session identifier.
        @return SimulationSession: The live session object (internal use by phase handlers).
        @ensures Raises NotFoundError if the id is unknown.
    """
    def get(self, session_id: str) -> SimulationSession:

        VALIDATION.validate_string(session_id, ApplicationCodes.INVALID_SESSION_ID, "sessionId")

        with self._lock:
            session = self._sessions.get(session_id)

        if session is None:
            raise NotFoundError(ApplicationCodes.SESSION_NOT_FOUND, f"Session {session_id} not found", "sessionId")

        return session



    """
        Remove a session.
        Deleting an unknown id is not a silent success: it raises NotFoundError,
        which the HTTP layer reports as 404 session_not_found.

        @param session_id (str): Session identifier.
        @ensures The session is gone from the store; raises NotFoundError if it never existed.
    """
    def delete(self, session_id: str) -> None:

        VALIDATION.validate_string(session_id, ApplicationCodes.INVALID_SESSION_ID, "sessionId")

        with self._lock:
            session = self._sessions.pop(session_id, None)

        if session is None:
            raise NotFoundError(ApplicationCodes.SESSION_NOT_FOUND, f"Session {session_id} not found", "sessionId")



    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions.keys())


    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


    def __contains__(self, session_id: typing.Any) -> bool:
        with self._lock:
            return session_id in self._sessions



    """
        Build the non-secret summary of a session.
    """
    def summarize(self, session_id: str) -> SessionSummary:

        session = self.get(session_id)

        with session.lock:
            return SessionSummary(
                session_id=session.session_id,
                device_id=session.device_id,
                puf_type=session.puf_type,
                num_crps=session.num_crps,
                crp_count=len(session.crps),
                has_session_key=session.session_key is not None,
                provisioned=session.provisioned,
                log_count=len(session.log),
                phase=session.phase,
            )



    """
        Clear a session's progress while keeping its identity.

        @param session_id (str): Session identifier.
        @ensures crps, dh_state, session_key, log, provisioned and provisioned_credentials are cleared;
                 session_id, device_id, puf_type, puf_seed and num_crps are untouched.
    """
    def reset(self, session_id: str) -> SimulationSession:

        session = self.get(session_id)

        with session.lock:
            session.crps = []
            session.dh_state = None
            session.session_key = None
            session.log = []
            session.provisioned = False
            session.provisioned_credentials = None

            session.append_log("Session reset - all data cleared")

        return session



####################################################################################################
# PHASE GUARDS
####################################################################################################

"""
    Authentication needs at least one stored CRP.
"""
def require_crps(session: SimulationSession) -> None:
    if not session.crps:
        raise InvalidStateError(ApplicationCodes.NO_CRPS, "No CRPs available. Run enrollment first.", "crps")


"""
    Provisioning needs a session key from a successful key exchange.
"""
def require_session_key(session: SimulationSession) -> bytes:
    if session.session_key is None:
        raise InvalidStateError(ApplicationCodes.NO_SESSION_KEY, "No session key available. Run key exchange first.", "sessionKey")
    return session.session_key


"""
    Operation needs a session key and a completed provisioning pass.
"""
def require_provisioned(session: SimulationSession) -> bytes:
    session_key = require_session_key(session)
    if not session.provisioned:
        raise InvalidStateError(ApplicationCodes.NOT_PROVISIONED, "Device not provisioned. Run provisioning first.", "provisioned")
    return session_key
