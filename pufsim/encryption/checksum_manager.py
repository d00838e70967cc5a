#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: checksum_manager.py

    Description:
        Provides SHA-256 digest utilities for the simulator: the hash behind
        every PUF evaluation, session-key derivation from a Diffie-Hellman
        shared secret, and constant-time comparison of secrets. All methods
        enforce strict type validation and raise PufSimError subclasses.
"""


import hashlib
import hmac
from pufsim.handlers.error_handler import ApplicationCodes, ValidationError



class ChecksumManager:

    """
        Initialize a ChecksumManager configured for SHA-256.

        @ensures The manager is ready to compute deterministic 32-byte SHA-256 digests.
    """
    def __init__(self) -> None:

        self._digest_size: int = 32
        self._algorithm: str = "SHA-256"


    @property
    def digest_size(self) -> int:
        return self._digest_size


    """
        Compute a SHA-256 checksum for the given bytes.

        @param data (bytes): Raw input bytes.
        @return bytes: 32-byte SHA-256 digest.
    """
    def compute_checksum(self, data: bytes) -> bytes:

        # Validate input type
        if not isinstance(data, (bytes, bytearray)):
            raise ValidationError(ApplicationCodes.INVALID_CHECKSUM_DATA, "Input to compute_checksum must be bytes", "data")

        return hashlib.sha256(bytes(data)).digest()



    """
        Verify that SHA-256(data) == expected_checksum using constant-time comparison.

        @return bool: True if match, False otherwise.
    """
    def verify_checksum(self, data: bytes, expected_checksum: bytes) -> bool:

        # Validate expected checksum type and size
        if not isinstance(expected_checksum, (bytes, bytearray)):
            raise ValidationError(ApplicationCodes.INVALID_CHECKSUM_DATA, "Expected checksum must be bytes", "expected_checksum")

        if len(expected_checksum) != self._digest_size:
            raise ValidationError(ApplicationCodes.INVALID_LENGTH, "Expected checksum must be 32 bytes", "expected_checksum")

        # Compute a fresh checksum for the provided data
        computed = self.compute_checksum(data)

        return hmac.compare_digest(computed, bytes(expected_checksum))



    """
        Constant-time equality of two secrets of arbitrary length.

        @param left (bytes): First secret.
        @param right (bytes): Second secret.
        @return bool: True only if both are byte-identical.
    """
    def secrets_match(self, left: bytes, right: bytes) -> bool:

        if not isinstance(left, (bytes, bytearray)) or not isinstance(right, (bytes, bytearray)):
            raise ValidationError(ApplicationCodes.INVALID_CHECKSUM_DATA, "Secrets must be bytes", "secret")

        return hmac.compare_digest(bytes(left), bytes(right))



    """
        Derive the 32-byte AES-256 session key from a Diffie-Hellman shared secret.

        @param shared_secret (bytes): Raw agreed secret.
        @return bytes: SHA-256(shared_secret).
    """
    def derive_session_key(self, shared_secret: bytes) -> bytes:

        if not isinstance(shared_secret, (bytes, bytearray)) or len(shared_secret) == 0:
            raise ValidationError(ApplicationCodes.INVALID_CHECKSUM_DATA, "Shared secret must be non-empty bytes", "shared_secret")

        return self.compute_checksum(shared_secret)
