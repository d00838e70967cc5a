#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: server.py

    Description:
        Entry point for the PUF provisioning simulator backend. Configures the
        Flask application, the random source, cryptographic managers, session
        store, audit logging, error handling, packet validation and the
        simulation coordinator. Exposes the session lifecycle and protocol
        phase routes (enroll, authenticate, key exchange, provision, operation,
        reset). Normalizes all exceptions through the centralized ErrorHandler
        to maintain consistent packet structures.
"""


import os
import typing
from flask import Flask, jsonify, request

# Import logging module
from pufsim.utilities.audit_log import AuditLog
from pufsim.utilities.random_source import RandomSource

# Import encryption managers
from pufsim.encryption.AES_manager import AESManager
from pufsim.encryption.DH_manager import DHManager
from pufsim.encryption.PUF_evaluator import PUFEvaluator
from pufsim.encryption.checksum_manager import ChecksumManager

# Import handlers
from pufsim.handlers.session_handler import SessionStore
from pufsim.handlers.simulation_handler import SimulationHandler
from pufsim.handlers.error_handler import ErrorHandler
from pufsim.handlers.packet_handler import PacketHandler
from pufsim.handlers.error_handler import ApplicationCodes, HTTPCodes, PufSimError
import pufsim.constants as CONSTANTS


#####################################################################################################################################################################

"""
    Resolve one configuration value: explicit override first, then environment, then default.
"""
def _config_value(overrides: typing.Mapping[str, typing.Any], key: str, env_name: str, default: typing.Any) -> typing.Any:
    if key in overrides:
        return overrides[key]
    return os.environ.get(env_name, default)


"""
    Create and configure the full simulator Flask application.

    @param config (dict | None): Optional overrides. Recognized keys: SECRET_KEY, MAX_CONTENT_LENGTH,
                                 DH_PARAMETERS, AUDIT_FILE, RANDOM_SOURCE, TESTING.
    @return Flask: Fully configured Flask application instance.
    @ensures Random source, cryptographic managers, session store, audit log, error handler, packet handler and
             simulation coordinator are initialized; raises PufSimError for an invalid configuration.
"""
def create_app(config: typing.Optional[typing.Mapping[str, typing.Any]] = None) -> Flask:

    overrides = dict(config or {})

    app = Flask(__name__)

    # Configure Flask security secret key
    app.config["SECRET_KEY"] = _config_value(overrides, "SECRET_KEY", "PUFSIM_SECRET_KEY", "dev-secret")

    # Enforce a payload limit; session init bodies are tiny
    try:
        app.config["MAX_CONTENT_LENGTH"] = int(_config_value(overrides, "MAX_CONTENT_LENGTH", "PUFSIM_MAX_CONTENT_LENGTH", CONSTANTS._DEFAULT_MAX_CONTENT_LENGTH))
    except (TypeError, ValueError):
        raise PufSimError(ApplicationCodes.INVALID_CONFIGURATION, HTTPCodes.INTERNAL_SERVER_ERROR, "MAX_CONTENT_LENGTH must be an integer", "MAX_CONTENT_LENGTH")

    # Diffie-Hellman parameter source
    dh_parameters = _config_value(overrides, "DH_PARAMETERS", "PUFSIM_DH_PARAMETERS", CONSTANTS._DH_PARAMETERS_RFC3526)
    if dh_parameters not in CONSTANTS._ALLOWED_DH_PARAMETER_SOURCES:
        raise PufSimError(ApplicationCodes.INVALID_CONFIGURATION, HTTPCodes.INTERNAL_SERVER_ERROR, f"DH_PARAMETERS must be one of: {', '.join(sorted(CONSTANTS._ALLOWED_DH_PARAMETER_SOURCES))}", "DH_PARAMETERS")

    if "TESTING" in overrides:
        app.config["TESTING"] = bool(overrides["TESTING"])


    ################################################################################################
    # Initialize Handlers
    ################################################################################################

    # Randomness for ids, seeds, challenges, IVs and credentials (tests inject a seeded source)
    random_source = overrides.get("RANDOM_SOURCE") or RandomSource()

    # Initialize Encryption Managers
    checksum_manager = ChecksumManager()
    aes_manager = AESManager(random_source)
    dh_manager = DHManager(dh_parameters, checksum_manager)
    puf_evaluator = PUFEvaluator(checksum_manager)

    # Instantiate audit log for non-sensitive operational logging
    app.audit_log = AuditLog(_config_value(overrides, "AUDIT_FILE", "PUFSIM_AUDIT_FILE", None))

    # Centralized error handler
    app.error_handler = ErrorHandler(app.audit_log)

    # Request validation and response packet builder
    app.packet_handler = PacketHandler()

    # One session store per application
    app.session_store = SessionStore(random_source)

    # Phase coordinator with every collaborator injected
    app.simulation_handler = SimulationHandler(
        session_store=app.session_store,
        aes_manager=aes_manager,
        dh_manager=dh_manager,
        puf_evaluator=puf_evaluator,
        random_source=random_source,
        audit=app.audit_log,
    )


    ################################################################################################
    # REQUEST HELPERS
    ################################################################################################

    """
        Parse the request body as a JSON object.

        @param context (str): Name of the request, used in error messages.
        @return dict: Parsed JSON object.
        @ensures Raises PufSimError for a wrong Content-Type, an oversized or malformed body, or a non-object.
    """
    def _parse_json_object(context: str) -> dict:

        # Require JSON content type
        content_type = request.headers.get("Content-Type", "").lower()
        if "application/json" not in content_type:
            raise PufSimError(ApplicationCodes.INVALID_CONTENT_TYPE, HTTPCodes.BAD_REQUEST, f"Invalid Content-Type header: {content_type}", "Content-Type")

        # Reject oversized bodies before reading them
        if request.content_length is not None and request.content_length > app.config["MAX_CONTENT_LENGTH"]:
            raise PufSimError(ApplicationCodes.INVALID_LENGTH, HTTPCodes.BAD_REQUEST, "Payload exceeds maximum size limit", "body")

        # Parse JSON body strictly
        try:
            body = request.get_json(force=True)
        except Exception:
            raise PufSimError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.BAD_REQUEST, f"Failed to parse JSON body for {context}", "body")

        # Validate object type is dict
        if not isinstance(body, dict):
            raise PufSimError(ApplicationCodes.INVALID_PACKET_STRUCTURE, HTTPCodes.BAD_REQUEST, "Invalid JSON structure (expected object)", "request_obj")

        return body


    """
        Run one protocol phase for a URL session id and return its result packet.

        @param session_id (str): Session id from the URL.
        @param phase (callable): SimulationHandler method taking the session id.
        @param context (str): Audit context for failures.
        @return flask.Response: JSON result packet + status code
    """
    def _run_phase(session_id: str, phase: typing.Callable[[str], typing.Any], context: str):
        try:
            app.packet_handler.validate_session_id(session_id)

            result = phase(session_id)

            return jsonify(result.to_packet()), HTTPCodes.OK

        except Exception as e:
            clean_packet, status = app.error_handler.handle_server_error(e, session_id=session_id, context=context)
            return jsonify(clean_packet), status


    ################################################################################################
    # ROUTES
    ################################################################################################

    @app.get("/health")
    def health():
        return jsonify(app.packet_handler.create_health_packet()), HTTPCodes.OK


    """
        Create a new simulation session.

        @require Request method is POST and Content-Type is application/json
        @require JSON body {deviceId, pufType, numCrps}
        @return flask.Response: {"sessionId", "message", "initialStep"} + status code
        @ensures Body is validated by PacketHandler before the session is created.
    """
    @app.post("/api/sim/session/init")
    def session_init():
        try:
            session_init_request = _parse_json_object("session init")

            # Validate schema, types and ranges
            app.packet_handler.validate_session_init_packet_fields(session_init_request)

            session_id = app.simulation_handler.create_session(session_init_request["deviceId"], session_init_request["pufType"], session_init_request["numCrps"])

            return jsonify(app.packet_handler.create_session_init_response_packet(session_id)), HTTPCodes.OK

        except Exception as e:
            # Ensure any unhandled errors are normalized by the centralized handler
            clean_packet, status = app.error_handler.handle_server_error(e, context="session_init_error")
            return jsonify(clean_packet), status


    """
        S0: enroll CRPs for a session.
    """
    @app.post("/api/sim/session/<session_id>/enroll")
    def session_enroll(session_id: str):
        return _run_phase(session_id, app.simulation_handler.enroll, "enroll_error")


    """
        S2: authenticate the device against one stored CRP.
    """
    @app.post("/api/sim/session/<session_id>/authenticate")
    def session_authenticate(session_id: str):
        return _run_phase(session_id, app.simulation_handler.authenticate, "authenticate_error")


    """
        S3: Diffie-Hellman key exchange and session key derivation.
    """
    @app.post("/api/sim/session/<session_id>/key-exchange")
    def session_key_exchange(session_id: str):
        return _run_phase(session_id, app.simulation_handler.exchange_keys, "key_exchange_error")


    """
        S4: deliver encrypted credentials to the device.
    """
    @app.post("/api/sim/session/<session_id>/provision")
    def session_provision(session_id: str):
        return _run_phase(session_id, app.simulation_handler.provision, "provision_error")


    """
        S5: one encrypted message in each direction.
    """
    @app.post("/api/sim/session/<session_id>/operation")
    def session_operation(session_id: str):
        return _run_phase(session_id, app.simulation_handler.operate, "operation_error")


    @app.post("/api/sim/session/<session_id>/reset")
    def session_reset(session_id: str):
        return _run_phase(session_id, app.simulation_handler.reset, "reset_error")


    @app.get("/api/sim/session/<session_id>")
    def session_summary(session_id: str):
        return _run_phase(session_id, app.simulation_handler.get_session_summary, "session_summary_error")


    @app.get("/api/sim/session/<session_id>/log")
    def session_log(session_id: str):
        try:
            app.packet_handler.validate_session_id(session_id)

            log = app.simulation_handler.get_log(session_id)

            return jsonify(app.packet_handler.create_log_packet(session_id, log)), HTTPCodes.OK

        except Exception as e:
            clean_packet, status = app.error_handler.handle_server_error(e, session_id=session_id, context="session_log_error")
            return jsonify(clean_packet), status


    """
        Remove a session and everything it holds.

        @return flask.Response: {"status": "success", "message": "Session deleted"}
        @ensures Unknown ids yield a 404 error packet.
    """
    @app.delete("/api/sim/session/<session_id>")
    def session_delete(session_id: str):
        try:
            app.packet_handler.validate_session_id(session_id)

            app.simulation_handler.delete(session_id)

            return jsonify(app.packet_handler.create_delete_response_packet()), HTTPCodes.OK

        except Exception as e:
            clean_packet, status = app.error_handler.handle_server_error(e, session_id=session_id, context="session_delete_error")
            return jsonify(clean_packet), status


    ################################################################################################
    # GLOBAL ERROR HANDLERS
    ################################################################################################

    """
        Unknown routes become a 404 error packet.
    """
    @app.errorhandler(404)
    def handle_route_not_found(_e):

        e = PufSimError(ApplicationCodes.ROUTE_NOT_FOUND, HTTPCodes.NOT_FOUND, f"Route {request.method} {request.path} not found", "path")

        clean_packet, status = app.error_handler.handle_server_error(e, context="route_not_found")

        return jsonify(clean_packet), status


    @app.errorhandler(405)
    def handle_method_not_allowed(_e):

        e = PufSimError(ApplicationCodes.METHOD_NOT_ALLOWED, HTTPCodes.METHOD_NOT_ALLOWED, f"Method {request.method} not allowed for {request.path}", "http_method")

        clean_packet, status = app.error_handler.handle_server_error(e, context="method_not_allowed")

        return jsonify(clean_packet), status


    """
        413 Payload Too Large exception into a simulator error packet.

        @param _e (Exception): Raw 413 exception.
        @return flask.Response: Standardized error packet + HTTP code
        @ensures Oversized payload errors are always returned in a consistent format.
    """
    @app.errorhandler(413)
    def handle_payload_too_large(_e):

        # Build a normalized error response
        e = PufSimError(ApplicationCodes.INVALID_LENGTH, HTTPCodes.BAD_REQUEST, "Payload exceeds maximum size limit", "body")

        # Delegate to centralized error handler
        clean_packet, status = app.error_handler.handle_server_error(e, context="payload_too_large")

        # Return standardized response
        return jsonify(clean_packet), status


    """
        Catch-all handler for any unexpected exception raised during request processing.

        @param e (Exception): Unhandled exception.
        @return flask.Response: Standardized error packet + HTTP code
        @ensures All unexpected exceptions are logged and normalized through ErrorHandler.
    """
    @app.errorhandler(Exception)
    def handle_internal_error(e: Exception):

        # Delegate to centralized error handler
        clean_packet, status = app.error_handler.handle_server_error(e, context="global_error_handler")

        # Return standardized response
        return jsonify(clean_packet), status

    # Return the configured Flask app
    return app
