#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: simulation_handler.py

    Description:
        Coordinates the provisioning protocol's phases behind one function-call
        boundary: session creation, enrollment, PUF authentication,
        Diffie-Hellman key exchange, credential provisioning, encrypted
        operation, reset, deletion and summaries. Every method takes a session
        id, returns a result value carrying the session's log snapshot, or
        raises exactly one PufSimError subclass. Crypto, CRP handling and
        session state live in the dedicated managers and handlers wired in here.
"""


import typing
from dataclasses import dataclass
from pufsim.encryption.AES_manager import AESManager
from pufsim.encryption.DH_manager import DHManager
from pufsim.encryption.PUF_evaluator import PUFEvaluator
from pufsim.handlers.authentication_handler import AuthenticationHandler, AuthResult, EnrollResult
from pufsim.handlers.error_handler import PufSimError, ApplicationCodes, HTTPCodes
from pufsim.handlers.key_exchange_handler import KeyExchangeHandler, KeyExchangeResult
from pufsim.handlers.provisioning_handler import OperationResult, ProvisioningHandler, ProvisionResult
from pufsim.handlers.session_handler import SessionStore, SessionSummary
from pufsim.utilities.audit_log import AuditLog
from pufsim.utilities.random_source import RandomSource
import pufsim.constants as CONSTANTS



@dataclass(frozen=True)
class ResetResult:

    status: str
    message: str

    def to_packet(self) -> dict:
        return {"status": self.status, "message": self.message}



"""
    Phase-oriented entry point used by the Flask routes, tests and any other
    collaborator. Holds no session state of its own; the injected SessionStore
    owns it.
"""
class SimulationHandler:

    """
        Initialize the SimulationHandler and its phase handlers.

        @param session_store (SessionStore): Owner of all session state.
        @param aes_manager (AESManager): AES-256-GCM codec.
        @param dh_manager (DHManager): Diffie-Hellman engine.
        @param puf_evaluator (PUFEvaluator): Simulated PUF.
        @param random_source (RandomSource): Randomness for challenges, CRP selection and credentials.
        @param audit (AuditLog): Audit log for non-sensitive events.
    """
    def __init__(self, session_store: SessionStore, aes_manager: AESManager, dh_manager: DHManager, puf_evaluator: PUFEvaluator, random_source: RandomSource, audit: AuditLog) -> None:

        # Validate dependencies
        if not isinstance(session_store, SessionStore):
            raise PufSimError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SimulationHandler requires SessionStore instance", "session_store")
        if not isinstance(aes_manager, AESManager):
            raise PufSimError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SimulationHandler requires AESManager instance", "aes_manager")
        if not isinstance(dh_manager, DHManager):
            raise PufSimError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SimulationHandler requires DHManager instance", "dh_manager")
        if not isinstance(puf_evaluator, PUFEvaluator):
            raise PufSimError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SimulationHandler requires PUFEvaluator instance", "puf_evaluator")
        if not isinstance(random_source, RandomSource):
            raise PufSimError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SimulationHandler requires RandomSource instance", "random_source")
        if not isinstance(audit, AuditLog):
            raise PufSimError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SimulationHandler requires AuditLog instance", "audit")

        self._sessions: SessionStore = session_store
        self._audit: AuditLog = audit

        self._authentication_handler = AuthenticationHandler(session_store, puf_evaluator, random_source, audit)
        self._key_exchange_handler = KeyExchangeHandler(session_store, dh_manager, audit)
        self._provisioning_handler = ProvisioningHandler(session_store, aes_manager, random_source, audit)



    """
        Build a handler with default collaborators around an optional random source and audit log.
        Used by tests and scripts that do not need a Flask app.
    """
    @classmethod
    def build(cls, random_source: typing.Optional[RandomSource] = None, audit: typing.Optional[AuditLog] = None, dh_parameters: str = CONSTANTS._DH_PARAMETERS_RFC3526) -> "SimulationHandler":

        random_source = random_source if random_source is not None else RandomSource()
        audit = audit if audit is not None else AuditLog()

        return cls(
            session_store=SessionStore(random_source),
            aes_manager=AESManager(random_source),
            dh_manager=DHManager(dh_parameters),
            puf_evaluator=PUFEvaluator(),
            random_source=random_source,
            audit=audit,
        )


    @property
    def sessions(self) -> SessionStore:
        return self._sessions


    ################################################################################################
    #                                       SESSION LIFECYCLE
    ################################################################################################

    """
        Create a session.

        @return str: The new session id.
        @ensures Raises ValidationError for an empty device id, unknown PUF type or num_crps outside [1, 1000].
    """
    def create_session(self, device_id: str, puf_type: str, num_crps: int) -> str:

        session = self._sessions.create(device_id, puf_type, num_crps)

        self._audit.event(event="session_created", session_id=session.session_id, device_id=device_id, puf_type=puf_type, num_crps=num_crps)

        return session.session_id


    def delete(self, session_id: str) -> None:

        self._sessions.delete(session_id)

        self._audit.event(event="session_deleted", session_id=session_id)


    """
        Clear progress, keep identity.
    """
    def reset(self, session_id: str) -> ResetResult:

        self._sessions.reset(session_id)

        self._audit.event(event="session_reset", session_id=session_id)

        return ResetResult(status=CONSTANTS.STATUS_SUCCESS, message="Session reset successfully")


    def get_session_summary(self, session_id: str) -> SessionSummary:
        return self._sessions.summarize(session_id)


    def get_log(self, session_id: str) -> typing.List[str]:
        session = self._sessions.get(session_id)
        with session.lock:
            return session.log_snapshot()


    def list_sessions(self) -> typing.List[str]:
        return self._sessions.list_ids()


    ################################################################################################
    #                                           PHASES
    ################################################################################################

    def enroll(self, session_id: str) -> EnrollResult:
        return self._authentication_handler.enroll(session_id)


    def authenticate(self, session_id: str) -> AuthResult:
        return self._authentication_handler.authenticate(session_id)


    def exchange_keys(self, session_id: str) -> KeyExchangeResult:
        return self._key_exchange_handler.exchange_keys(session_id)


    def provision(self, session_id: str) -> ProvisionResult:
        return self._provisioning_handler.provision(session_id)


    def operate(self, session_id: str) -> OperationResult:
        return self._provisioning_handler.operate(session_id)
