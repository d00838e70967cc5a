#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: provisioning_handler.py

    Description:
        Secure provisioning and normal-operation phases. Provisioning builds a
        synthetic device certificate and access token, encrypts them as one JSON
        payload under the session key with AES-256-GCM, and has the simulated
        device decrypt and store them. Operation performs two independent
        encrypted round-trips: a server-to-device status message and a
        device-to-server acknowledgement. Every tag failure surfaces as
        AuthenticationError; the session is only marked provisioned once the
        device has decrypted and parsed its credentials.
"""


import base64
import typing
from dataclasses import dataclass
from pufsim.encryption.AES_manager import AESManager, EncryptedPayload
from pufsim.handlers.error_handler import PufSimError, ApplicationCodes
from pufsim.handlers.session_handler import ProvisionedCredentials, SessionStore, SimulationSession, require_provisioned, require_session_key
from pufsim.utilities.audit_log import AuditLog
from pufsim.utilities.random_source import RandomSource
import pufsim.handlers.sanitization_validation as VALIDATION
import pufsim.constants as CONSTANTS


# Fields the device expects in the decrypted provisioning payload
_CREDENTIAL_PAYLOAD_FIELDS = {"deviceCert", "token", "timestamp", "deviceId"}



@dataclass(frozen=True)
class ProvisionResult:

    provisioned: bool
    credentials_preview: typing.Dict[str, str]
    log: typing.List[str]

    def to_packet(self) -> dict:
        return {
            "step": CONSTANTS.STEP_PROVISION,
            "status": CONSTANTS.STATUS_SUCCESS,
            "provisioned": self.provisioned,
            "credentialsPreview": dict(self.credentials_preview),
            "log": list(self.log),
        }


@dataclass(frozen=True)
class OperationResult:

    server_message: str
    device_message: str
    server_envelope: EncryptedPayload
    device_envelope: EncryptedPayload
    log: typing.List[str]

    def to_packet(self) -> dict:
        return {
            "step": CONSTANTS.STEP_OPERATION,
            "status": CONSTANTS.STATUS_SUCCESS,
            "serverToDevicePlaintext": self.server_message,
            "deviceToServerPlaintext": self.device_message,
            "serverToDeviceEncrypted": self.server_envelope.to_dict(),
            "deviceToServerEncrypted": self.device_envelope.to_dict(),
            "log": list(self.log),
        }



class ProvisioningHandler:

    """
        @param session_store (SessionStore): Owner of all session state.
        @param aes_manager (AESManager): AES-256-GCM codec.
        @param random_source (RandomSource): Source for synthetic credentials and uptime values.
        @param audit (AuditLog): Audit log for non-sensitive events.
    """
    def __init__(self, session_store: SessionStore, aes_manager: AESManager, random_source: RandomSource, audit: AuditLog) -> None:

        self._sessions: SessionStore = session_store
        self._aes: AESManager = aes_manager
        self._random: RandomSource = random_source
        self._audit: AuditLog = audit



    def _b64(self, n: int) -> str:
        return base64.b64encode(self._random.token_bytes(n)).decode("ascii")


    """
        Synthetic PEM-shaped device certificate.
    """
    def _generate_device_cert(self) -> str:
        return f"-----BEGIN CERTIFICATE-----\nMIIC{self._b64(32)}\n-----END CERTIFICATE-----"


    """
        Synthetic JWT-shaped access token.
    """
    def _generate_token(self) -> str:
        return f"{CONSTANTS._JWT_HEADER_B64}.{self._b64(64)}.{self._b64(32)}"



    """
        Encrypt under the session key, log the envelope, and decrypt as the receiving party.

        @return tuple[EncryptedPayload, str]: The envelope and the recovered plaintext.
    """
    def _round_trip(self, session: SimulationSession, session_key: bytes, plaintext: str, sender: str, receiver: str) -> typing.Tuple[EncryptedPayload, str]:

        envelope = self._aes.encrypt(plaintext, session_key)
        session.append_log(f"  Encrypted: {envelope.ciphertext[:CONSTANTS._CIPHERTEXT_PREVIEW_HEX_CHARS]}...")
        session.append_log(f"  IV: {envelope.iv}, Tag: {envelope.tag}")

        session.append_log(f"{receiver}: Receiving encrypted message from {sender.lower()}...")
        recovered = self._aes.decrypt(envelope.ciphertext, session_key, envelope.iv, envelope.tag)

        return envelope, recovered



    """
        Provisioning: deliver encrypted credentials to the device.

        @param session_id (str): Session identifier.
        @return ProvisionResult: provisioned flag, credential previews, log snapshot.
        @require A session key from a prior key exchange
        @ensures Raises InvalidStateError without a session key; provisioned is set only after a verified decrypt.
    """
    def provision(self, session_id: str) -> ProvisionResult:

        session = self._sessions.get(session_id)

        with session.lock:
            session_key = require_session_key(session)

            session.append_log("=== SECURE PROVISIONING STARTED ===")

            device_cert = self._generate_device_cert()
            token = self._generate_token()

            payload = {
                "deviceCert": device_cert,
                "token": token,
                "timestamp": VALIDATION.get_timestamp_iso8601_millis(),
                "deviceId": session.device_id,
            }

            preview_len = CONSTANTS._LOG_CREDENTIAL_PREVIEW_CHARS
            session.append_log("Server: Preparing provisioning credentials...")
            session.append_log(f"  Device Certificate (preview): {device_cert[:preview_len]}...")
            session.append_log(f"  Access Token (preview): {token[:preview_len]}...")

            # Encrypt provisioning data
            envelope = self._aes.encrypt(VALIDATION.encode_dict_to_json_text(payload), session_key)
            session.append_log("Server: Encrypting credentials with AES-256-GCM...")
            session.append_log(f"  IV: {envelope.iv}")
            session.append_log(f"  Ciphertext (preview): {envelope.ciphertext[:CONSTANTS._CIPHERTEXT_PREVIEW_HEX_CHARS]}...")
            session.append_log(f"  Auth Tag: {envelope.tag}")

            # Device side: receive, decrypt, parse
            session.append_log("Device: Receiving encrypted provisioning data...")
            try:
                decrypted = self._aes.decrypt(envelope.ciphertext, session_key, envelope.iv, envelope.tag)
                session.append_log("Device: Decrypting with session key...")

                received = VALIDATION.decode_json_text_to_dict(decrypted)
                VALIDATION.validate_required_fields(received, _CREDENTIAL_PAYLOAD_FIELDS, ApplicationCodes.CREDENTIAL_PAYLOAD_ERROR, "credentials")

            except PufSimError as e:
                session.append_log(f"Provisioning FAILED - {e.detail}")
                raise

            session.provisioned = True
            session.provisioned_credentials = ProvisionedCredentials(device_cert=received["deviceCert"], token=received["token"])

            session.append_log("Device successfully decrypted and stored credentials")
            session.append_log("=== PROVISIONING COMPLETE ===")

            self._audit.event(event="phase_completed", session_id=session_id, step=CONSTANTS.STEP_PROVISION)

            credentials_preview = {
                "deviceCert": device_cert[:CONSTANTS._CERT_PREVIEW_CHARS] + "...",
                "token": token[:CONSTANTS._TOKEN_PREVIEW_CHARS] + "...",
            }

            return ProvisionResult(provisioned=True, credentials_preview=credentials_preview, log=session.log_snapshot())



    """
        Normal operation: one encrypted message each way.

        @param session_id (str): Session identifier.
        @return OperationResult: Both recovered plaintexts, both envelopes, log snapshot.
        @require A session key and a completed provisioning pass
        @ensures Raises InvalidStateError when either prerequisite is missing.
    """
    def operate(self, session_id: str) -> OperationResult:

        session = self._sessions.get(session_id)

        with session.lock:
            session_key = require_provisioned(session)

            session.append_log("=== NORMAL OPERATION - SECURE COMMUNICATION ===")

            try:
                # Server -> device
                server_message = f"Hello Device {session.device_id}! System status check at {VALIDATION.get_timestamp_iso8601_millis()}"
                session.append_log("Server: Sending message to device...")
                session.append_log(f"  Plaintext: \"{server_message}\"")

                server_envelope, device_received = self._round_trip(session, session_key, server_message, "Server", "Device")
                session.append_log(f"  Decrypted: \"{device_received}\"")

                # Device -> server
                uptime = self._random.randrange(CONSTANTS._UPTIME_MIN_SECONDS, CONSTANTS._UPTIME_MAX_SECONDS)
                device_message = f"ACK: {device_received[:CONSTANTS._ACK_ECHO_CHARS]}... | Status: OK | Uptime: {uptime}s"
                session.append_log("Device: Sending response to server...")
                session.append_log(f"  Plaintext: \"{device_message}\"")

                device_envelope, server_received = self._round_trip(session, session_key, device_message, "Device", "Server")
                session.append_log(f"  Decrypted: \"{server_received}\"")

            except PufSimError as e:
                session.append_log(f"Operation FAILED - {e.detail}")
                raise

            session.append_log("Secure bidirectional communication successful!")
            session.append_log("=== OPERATION COMPLETE ===")

            self._audit.event(event="phase_completed", session_id=session_id, step=CONSTANTS.STEP_OPERATION)

            return OperationResult(server_message=device_received, device_message=server_received, server_envelope=server_envelope, device_envelope=device_envelope, log=session.log_snapshot())
