#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: packet_handler.py

    Description:
        Request-packet validation and response-packet construction for the
        simulator's HTTP surface. Enforces the session initialization schema
        (required fields, no unknown fields, field types and ranges), checks
        session identifiers taken from URLs, and builds the health, session
        init, deletion and log packets returned by the Flask routes. Phase
        results build their own packets through to_packet().
"""


import typing
from pufsim.handlers.error_handler import PufSimError, NotFoundError, ApplicationCodes, HTTPCodes
import pufsim.constants as CONSTANTS
import pufsim.handlers.sanitization_validation as VALIDATION


####################################################################################################
#                                         Packet Format Handlers
####################################################################################################

"""
    Validates client request packets and builds the server's non-phase response packets.
    Each packet is returned as a dictionary ready for JSON serialization.
"""
class PacketHandler:

    ################################################################################################
    #                                     GENERIC VALIDATION WRAPPERS
    ################################################################################################

    def _validate_device_id(self, value: typing.Any):
        VALIDATION.validate_string(value, ApplicationCodes.INVALID_DEVICE_ID, "deviceId")
        VALIDATION.validate_max_length(value, CONSTANTS._MAX_DEVICE_ID_LEN, ApplicationCodes.INVALID_DEVICE_ID, "deviceId")

    def _validate_puf_type(self, value: typing.Any):
        VALIDATION.validate_in_set(value, CONSTANTS._ALLOWED_PUF_TYPES, ApplicationCodes.INVALID_PUF_TYPE, "pufType")

    def _validate_num_crps(self, value: typing.Any):
        VALIDATION.validate_int_range(value, CONSTANTS._MIN_CRPS, CONSTANTS._MAX_CRPS, ApplicationCodes.INVALID_NUM_CRPS, "numCrps")


    ################################################################################################
    #                              CLIENT REQUEST PACKET VALIDATION
    ################################################################################################

    """
        Validate all required fields, types and ranges of a session initialization request.

        @param packet (dict): Parsed JSON request body.
        @require isinstance(packet, dict)
        @ensures Required fields exist, no unknown fields remain, and deviceId, pufType and numCrps pass their checks.
    """
    def validate_session_init_packet_fields(self, packet: dict) -> None:
        try:

            # Ensure object type is dictionary
            if not isinstance(packet, dict):
                raise PufSimError(ApplicationCodes.INVALID_PACKET_STRUCTURE, HTTPCodes.BAD_REQUEST, "Invalid packet (expected dictionary).", "packet")

            # Ensure all required fields exist
            for field in sorted(CONSTANTS._SESSION_INIT_REQUIRED_FIELDS):
                if field not in packet:
                    raise PufSimError(ApplicationCodes.MISSING_FIELDS, HTTPCodes.BAD_REQUEST, f"Missing required field '{field}' in session init packet.", field)

            # Raise error for any unknown fields
            VALIDATION.validate_no_extra_fields(packet, CONSTANTS._SESSION_INIT_REQUIRED_FIELDS, ApplicationCodes.UNKNOWN_FIELDS, "packet")

            # Validate each field
            self._validate_device_id(packet["deviceId"])
            self._validate_puf_type(packet["pufType"])
            self._validate_num_crps(packet["numCrps"])

        except PufSimError:
            raise
        except Exception:
            raise PufSimError(ApplicationCodes.INVALID_REQUEST, HTTPCodes.BAD_REQUEST, "Invalid session init packet fields.", "packet")


    """
        Check the shape of a session id taken from a URL.
        A malformed id can never name a stored session, so it is reported as not found.
    """
    def validate_session_id(self, session_id: typing.Any) -> None:
        if not isinstance(session_id, str) or not CONSTANTS._SESSION_ID_RX.fullmatch(session_id):
            raise NotFoundError(ApplicationCodes.SESSION_NOT_FOUND, f"Session {session_id} not found", "sessionId")


    ################################################################################################
    #                                   SERVER RESPONSE PACKETS
    ################################################################################################

    def create_health_packet(self) -> dict:
        return {
            "status": "ok",
            "message": f"{CONSTANTS._PROTOCOL_NAME} running",
            "timestamp": VALIDATION.get_timestamp_iso8601z(),
        }


    """
        Construct the session initialization response.

        @param session_id (str): Identifier of the newly created session.
        @return dict: {"sessionId", "message", "initialStep"}
    """
    def create_session_init_response_packet(self, session_id: str) -> dict:
        try:
            VALIDATION.validate_regex(session_id, CONSTANTS._SESSION_ID_RX, ApplicationCodes.INVALID_SESSION_ID, "sessionId")

            packet = {
                "sessionId": session_id,
                "message": "Session initialized",
                "initialStep": CONSTANTS.STEP_ENROLL,
            }
            return packet

        except PufSimError:
            raise
        except Exception:
            raise PufSimError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Internal error creating session init response packet.", "")


    def create_delete_response_packet(self) -> dict:
        return {"status": CONSTANTS.STATUS_SUCCESS, "message": "Session deleted"}


    """
        Construct the protocol log packet for a session.

        @param session_id (str): Session identifier.
        @param log (list[str]): Log snapshot, oldest first.
        @return dict: {"sessionId", "log"}
    """
    def create_log_packet(self, session_id: str, log: typing.List[str]) -> dict:
        if not isinstance(log, list) or not all(isinstance(line, str) for line in log):
            raise PufSimError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Internal error creating log packet.", "log")

        return {"sessionId": session_id, "log": list(log)}
