#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: DH_manager.py

    Description:
        Finite-field Diffie-Hellman key agreement for the simulator's key
        exchange phase. Supplies 2048-bit domain parameters (the fixed RFC 3526
        group 14, or freshly generated parameters cached per manager), generates
        independent ephemeral key pairs for the simulated device and server,
        computes both shared secrets, verifies that they agree in constant time,
        and derives the AES-256 session key as SHA-256 of the shared secret.
        Private keys never leave this module's key-pair objects.
"""

import threading
import typing
from dataclasses import dataclass, field
from cryptography.hazmat.primitives.asymmetric import dh
from pufsim.encryption.checksum_manager import ChecksumManager
from pufsim.handlers.error_handler import PufSimError, IntegrityError, ValidationError, ApplicationCodes, HTTPCodes
import pufsim.handlers.sanitization_validation as VALIDATION
import pufsim.constants as CONSTANTS


"""
    One party's ephemeral key pair. The private key object stays in memory only
    and is excluded from repr so it never lands in a log line.
"""
@dataclass
class DHKeyPair:

    role: str
    public_key_hex: str
    private_key: dh.DHPrivateKey = field(repr=False)


"""
    Per-session Diffie-Hellman material: both key pairs over the same parameters.
"""
@dataclass
class DHState:

    parameter_source: str
    key_size: int
    device: DHKeyPair
    server: DHKeyPair


"""
    Outcome of a full two-party exchange.
"""
@dataclass
class DHExchangeOutcome:

    state: DHState
    session_key: bytes = field(repr=False)



class DHManager:

    """
        Initialize a DHManager.

        @param parameter_source (str): "rfc3526" for the fixed group 14 prime, or "generate" for fresh parameters.
        @param checksum_manager (ChecksumManager | None): Digest provider for key derivation and secret comparison.
        @param key_size (int): Modulus size in bits for generated parameters.
        @require parameter_source in CONSTANTS._ALLOWED_DH_PARAMETER_SOURCES
    """
    def __init__(self, parameter_source: str = CONSTANTS._DH_PARAMETERS_RFC3526, checksum_manager: typing.Optional[ChecksumManager] = None, key_size: int = CONSTANTS._DH_KEY_SIZE_BITS) -> None:

        VALIDATION.validate_in_set(parameter_source, CONSTANTS._ALLOWED_DH_PARAMETER_SOURCES, ApplicationCodes.INVALID_CONFIGURATION, "dh_parameters")

        self._parameter_source: str = parameter_source
        self._key_size: int = key_size
        self._checksum_manager: ChecksumManager = checksum_manager if checksum_manager is not None else ChecksumManager()

        # Generated parameters are expensive; build them once per manager
        self._lock = threading.RLock()
        self._parameters: typing.Optional[dh.DHParameters] = None


    @property
    def parameter_source(self) -> str:
        return self._parameter_source



    """
        Return the shared domain parameters (prime modulus and generator).

        @return dh.DHParameters: Parameters used by both parties.
        @ensures The same parameters object is returned on every call for this manager.
    """
    def get_parameters(self) -> dh.DHParameters:

        with self._lock:
            if self._parameters is not None:
                return self._parameters

            try:
                if self._parameter_source == CONSTANTS._DH_PARAMETERS_RFC3526:
                    numbers = dh.DHParameterNumbers(CONSTANTS._RFC3526_GROUP14_PRIME, CONSTANTS._DH_GENERATOR)
                    self._parameters = numbers.parameters()
                elif self._parameter_source == CONSTANTS._DH_PARAMETERS_GENERATE:
                    self._parameters = dh.generate_parameters(generator=CONSTANTS._DH_GENERATOR, key_size=self._key_size)
                else:
                    raise ValueError(f"Unknown parameter source {self._parameter_source}")

            except ValueError:
                raise PufSimError(ApplicationCodes.INVALID_DH_PARAMETERS, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to build Diffie-Hellman parameters", "dh_parameters")

            return self._parameters



    """
        Generate one ephemeral key pair over the given parameters.

        @param role (str): "device" or "server"; used in logs and results.
        @param parameters (dh.DHParameters): Shared domain parameters.
        @return DHKeyPair: Key pair with its big-endian hex public value.
    """
    def generate_key_pair(self, role: str, parameters: dh.DHParameters) -> DHKeyPair:

        VALIDATION.validate_string(role, ApplicationCodes.INVALID_TYPE, "role")

        private_key = parameters.generate_private_key()
        public_value = private_key.public_key().public_numbers().y

        return DHKeyPair(role=role, public_key_hex=VALIDATION.encode_int_to_hex(public_value), private_key=private_key)



    """
        Rebuild a peer public key from its hex transport form.

        @param public_key_hex (str): Big-endian hex public value.
        @param parameters (dh.DHParameters): Parameters the key belongs to.
        @return dh.DHPublicKey: Public key usable in exchange().
    """
    def load_public_key(self, public_key_hex: str, parameters: dh.DHParameters) -> dh.DHPublicKey:

        raw = VALIDATION.decode_hex_to_bytes("public_key", public_key_hex)
        y = int.from_bytes(raw, "big")

        # Reject trivial or out-of-range public values
        p = parameters.parameter_numbers().p
        if not (1 < y < p - 1):
            raise ValidationError(ApplicationCodes.INVALID_HEX, "Public key outside the valid range", "public_key")

        return dh.DHPublicNumbers(y, parameters.parameter_numbers()).public_key()



    """
        Compute the shared secret from one party's private key and the peer's public key.

        @param own (DHKeyPair): The computing party.
        @param peer_public_key_hex (str): The other party's public key, hex.
        @param parameters (dh.DHParameters): Shared parameters.
        @return bytes: Raw shared secret.
    """
    def compute_shared_secret(self, own: DHKeyPair, peer_public_key_hex: str, parameters: dh.DHParameters) -> bytes:

        peer_public_key = self.load_public_key(peer_public_key_hex, parameters)

        return own.private_key.exchange(peer_public_key)



    """
        Run a full two-party exchange and derive the session key.

        @require Both parties use the same parameters
        @return DHExchangeOutcome: Both key pairs and SHA-256(shared secret).
        @ensures Raises IntegrityError, and derives nothing, if the two computed secrets differ.
    """
    def exchange(self) -> DHExchangeOutcome:

        parameters = self.get_parameters()

        device = self.generate_key_pair("device", parameters)
        server = self.generate_key_pair("server", parameters)

        # Each side combines its own private key with the other's public key
        device_secret = self.compute_shared_secret(device, server.public_key_hex, parameters)
        server_secret = self.compute_shared_secret(server, device.public_key_hex, parameters)

        if not self._checksum_manager.secrets_match(device_secret, server_secret):
            raise IntegrityError(ApplicationCodes.DH_SECRET_MISMATCH, "DH key exchange failed - shared secrets do not match", "shared_secret")

        session_key = self._checksum_manager.derive_session_key(device_secret)

        state = DHState(parameter_source=self._parameter_source, key_size=parameters.parameter_numbers().p.bit_length(), device=device, server=server)

        return DHExchangeOutcome(state=state, session_key=session_key)
