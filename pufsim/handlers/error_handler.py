#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: error_handler.py

    Description:
        Centralized error handling for the PUF provisioning simulator. Defines
        the error taxonomy raised by the core (validation, unknown session,
        unmet phase prerequisite, AEAD authentication failure, DH integrity
        failure), converts exceptions into standardized error packets, and
        records diagnostic information in the audit log.
"""


from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
from pufsim.utilities.audit_log import AuditLog
import pufsim.constants as CONSTANTS



"""
    Container Class for HTTP status constants.
"""
@dataclass
class HTTPCodes:
    # 200 OK
    OK = 200

    # 400 Bad Request
    BAD_REQUEST = 400

    # 401 Unauthorized
    UNAUTHORIZED = 401

    # 404 Not Found
    NOT_FOUND = 404

    # 405 Method Not Allowed
    METHOD_NOT_ALLOWED = 405

    # 409 Conflict
    CONFLICT = 409

    # 500 Internal Server Error
    INTERNAL_SERVER_ERROR = 500


"""
    Container Class for application error code strings.
"""
@dataclass
class ApplicationCodes:

    MALFORMED_JSON           = "malformed_json"
    MISSING_FIELDS           = "missing_fields"
    UNKNOWN_FIELDS           = "unknown_fields"
    INVALID_TYPE             = "invalid_type"
    INVALID_LENGTH           = "invalid_length"
    INVALID_CONTENT_TYPE     = "invalid_content_type"
    INVALID_REQUEST          = "invalid_request"
    INVALID_PACKET_STRUCTURE = "invalid_packet_structure"
    INVALID_DEVICE_ID        = "invalid_device_id"
    INVALID_PUF_TYPE         = "invalid_puf_type"
    INVALID_NUM_CRPS         = "invalid_num_crps"
    INVALID_CHALLENGE        = "invalid_challenge"
    INVALID_SEED             = "invalid_seed"
    INVALID_SESSION_ID       = "invalid_session_id"
    INVALID_HEX              = "invalid_hex"
    INVALID_AES_KEY          = "invalid_aes_key"
    INVALID_NONCE            = "invalid_nonce"
    INVALID_TAG              = "invalid_tag"
    INVALID_CIPHERTEXT       = "invalid_ciphertext"
    INVALID_CHECKSUM_DATA    = "invalid_checksum_data"
    INVALID_DH_PARAMETERS    = "invalid_dh_parameters"
    INVALID_CONFIGURATION    = "invalid_configuration"
    SESSION_NOT_FOUND        = "session_not_found"
    ROUTE_NOT_FOUND          = "route_not_found"
    METHOD_NOT_ALLOWED       = "method_not_allowed"
    NO_CRPS                  = "no_crps"
    NO_SESSION_KEY           = "no_session_key"
    NOT_PROVISIONED          = "not_provisioned"
    CIPHERTEXT_AUTH_ERROR    = "ciphertext_auth_error"
    DH_SECRET_MISMATCH       = "dh_secret_mismatch"
    CREDENTIAL_PAYLOAD_ERROR = "credential_payload_error"
    INTERNAL_SERVER_ERROR    = "internal_server_error"




class PufSimError(Exception):

    """
        Initialize a PufSimError containing application code, HTTP code, detail message, and field context.

        @param application_code (str): Identifier from ApplicationCodes signaling the failure type.
        @param http_code (int): HTTP status code associated with the error.
        @param detail (str): Descriptive message intended for client-facing error packets.
        @param field (str): Logical field related to the error (optional).
        @ensures Error metadata is accessible to the centralized ErrorHandler.
    """
    def __init__(self, application_code: str, http_code: int, detail: str, field: str = "") -> None:
        self.application_code = application_code
        self.http_code = http_code
        self.detail = detail
        self.field = field
        super().__init__(f"{application_code}: {detail}")



"""
    Bad creation parameters or malformed input. Caller's fault, never retried.
"""
class ValidationError(PufSimError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.BAD_REQUEST, detail, field)


"""
    Unknown session identifier.
"""
class NotFoundError(PufSimError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.NOT_FOUND, detail, field)


"""
    A phase prerequisite is unmet (authenticate before enroll, operate before provision, ...).
"""
class InvalidStateError(PufSimError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.CONFLICT, detail, field)


"""
    AES-GCM tag verification failed: tampered ciphertext, wrong key or wrong IV.
"""
class AuthenticationError(PufSimError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.UNAUTHORIZED, detail, field)


"""
    The two Diffie-Hellman shared secrets differ. Fatal for the key-exchange phase.
"""
class IntegrityError(PufSimError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.INTERNAL_SERVER_ERROR, detail, field)






class ErrorHandler:

    """
        Initialize the ErrorHandler and attach an AuditLog for diagnostic event recording.

        @param audit_log (AuditLog | None): Audit log to record exceptions into; a default one is created when omitted.
        @ensures ErrorHandler is ready to format and log errors.
    """
    def __init__(self, audit_log: Optional[AuditLog] = None) -> None:

        self.audit_log = audit_log if audit_log is not None else AuditLog()


    """
        Process an exception and return a standardized error packet.

        @param e (Exception): Exception raised during request handling.
        @param session_id (str): Session identifier associated with the request, if known.
        @param context (str): Logical context string identifying the failing operation.
        @return tuple[dict, int]: (clean_error_packet, http_status_code)
        @ensures Exception is logged to audit_log and a canonical failure packet is returned.
    """
    def handle_server_error(self, e: Exception, session_id: str = "", context: str = "") -> Tuple[dict, int]:

        # If the exception is already a PufSimError
        if isinstance(e, PufSimError):
            application_code = e.application_code
            http_code = e.http_code
            message = e.detail
            field = e.field
        else:
            # For non-raised errors, normalize to INTERNAL_SERVER_ERROR
            application_code = ApplicationCodes.INTERNAL_SERVER_ERROR
            http_code = HTTPCodes.INTERNAL_SERVER_ERROR
            message = "An internal server error occurred. Please try again later."
            field = ""

        # Always log the raw exception detail for operators
        self.audit_log.event(event="server_exception", session_id=session_id, context=context, error_code=application_code, detail=str(e))

        # Build standardized error packet
        clean_packet = self.create_error_response_packet(message, application_code, field)

        return clean_packet, http_code



    """
        Build a standardized error response packet.

        @param message (str): Human-readable error message for the client.
        @param error_code (str): One of ApplicationCodes.* defining the error type.
        @param field (str): Logical field associated with the error (optional).
        @return dict: Serialized error packet including a timestamp.
    """
    def create_error_response_packet(self, message: str, error_code: str, field: str = "") -> dict:

        # Generate ISO8601Z timestamp
        timestamp_iso = datetime.now(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")

        # Construct canonical error response
        packet = {
            "status": CONSTANTS.STATUS_ERROR,
            "message": message,
            "error_code": error_code,
            "field": field,
            "timestamp": timestamp_iso,
        }

        return packet
