#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: AES_manager.py

    Description:
        Implements AES-256-GCM authenticated encryption for the simulator's
        provisioning and operation phases. Every encryption draws a fresh
        96-bit IV and returns ciphertext, IV and 128-bit tag hex-encoded for
        transport. Decryption raises AuthenticationError whenever the tag does
        not verify, and ValidationError on malformed inputs.
"""


import typing
from dataclasses import dataclass
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pufsim.handlers.error_handler import PufSimError, AuthenticationError, ValidationError, ApplicationCodes
from pufsim.utilities.random_source import RandomSource
import pufsim.handlers.sanitization_validation as VALIDATION
import pufsim.constants as CONSTANTS



"""
    Hex-encoded AES-256-GCM output: ciphertext, 12-byte IV and 16-byte tag.
"""
@dataclass(frozen=True)
class EncryptedPayload:

    ciphertext: str
    iv: str
    tag: str

    def to_dict(self) -> dict:
        return {"ciphertext": self.ciphertext, "iv": self.iv, "tag": self.tag}



class AESManager:

    """
        Initialize an AESManager drawing keys and IVs from the given random source.

        @param random_source (RandomSource | None): Randomness capability; the secrets-backed source when omitted.
    """
    def __init__(self, random_source: typing.Optional[RandomSource] = None) -> None:

        self._random: RandomSource = random_source if random_source is not None else RandomSource()



    """
        Generate a fresh 32-byte AES-256 key.

        @return bytes: A newly generated 32-byte AES-256 key.
    """
    def generate_key(self) -> bytes:

        key = self._random.token_bytes(CONSTANTS._AES_KEY_LEN_BYTES)
        VALIDATION.validate_byte_length(key, CONSTANTS._AES_KEY_LEN_BYTES, ApplicationCodes.INVALID_AES_KEY, "generated_key")

        return key



    """
        Generate a fresh 12-byte nonce suitable for AES-GCM.

        @return bytes: A newly generated 12-byte GCM nonce.
        @ensures Never reused for a given key in practice: every call draws new random bytes.
    """
    def generate_nonce(self) -> bytes:

        nonce = self._random.token_bytes(CONSTANTS._AES_GCM_NONCE_LEN_BYTES)
        VALIDATION.validate_byte_length(nonce, CONSTANTS._AES_GCM_NONCE_LEN_BYTES, ApplicationCodes.INVALID_NONCE, "nonce")

        return nonce



    @staticmethod
    def _build_cipher(key: bytes) -> AESGCM:

        # Key must be raw bytes of exactly 32 bytes
        VALIDATION.validate_byte_length(key, CONSTANTS._AES_KEY_LEN_BYTES, ApplicationCodes.INVALID_AES_KEY, "aes_key")

        return AESGCM(bytes(key))



    """
        Encrypt and authenticate plaintext using AES-256-GCM.

        @param plaintext (str): UTF-8 text to encrypt (may be empty).
        @param key (bytes): 32-byte AES-256 key.
        @param aad (bytes | None): Optional associated data bound to the tag.
        @require isinstance(key, bytes) and len(key) == 32
        @return EncryptedPayload: Hex ciphertext, hex 12-byte IV, hex 16-byte tag.
        @ensures decrypt(result.ciphertext, key, result.iv, result.tag, aad) == plaintext
    """
    def encrypt(self, plaintext: str, key: bytes, aad: typing.Optional[bytes] = None) -> EncryptedPayload:

        aes = self._build_cipher(key)

        # Validate plaintext
        plaintext_bytes = VALIDATION.encode_utf8_text_to_bytes(plaintext)

        # Generate 12-byte GCM nonce
        nonce = self.generate_nonce()

        # AESGCM appends the 16-byte tag to the ciphertext
        ciphertext_with_tag = aes.encrypt(nonce, plaintext_bytes, aad)
        ciphertext = ciphertext_with_tag[:-CONSTANTS._AES_GCM_TAG_LEN_BYTES]
        tag = ciphertext_with_tag[-CONSTANTS._AES_GCM_TAG_LEN_BYTES:]

        return EncryptedPayload(
            ciphertext=VALIDATION.encode_bytes_to_hex(ciphertext),
            iv=VALIDATION.encode_bytes_to_hex(nonce),
            tag=VALIDATION.encode_bytes_to_hex(tag),
        )



    """
        Decrypt and authenticate AES-256-GCM ciphertext.

        @param ciphertext (str): Hex ciphertext.
        @param key (bytes): 32-byte AES-256 key used for encryption.
        @param iv (str): Hex 12-byte nonce used during encryption.
        @param tag (str): Hex 16-byte GCM tag.
        @param aad (bytes | None): Associated data; must match the value used for encryption.
        @return str: The decrypted plaintext if authentication succeeds.
        @ensures Raises AuthenticationError on tampered ciphertext/tag/IV or a wrong key.
    """
    def decrypt(self, ciphertext: str, key: bytes, iv: str, tag: str, aad: typing.Optional[bytes] = None) -> str:

        aes = self._build_cipher(key)

        ciphertext_bytes = VALIDATION.decode_hex_to_bytes("ciphertext", ciphertext)
        nonce = VALIDATION.decode_hex_to_bytes("iv", iv)
        tag_bytes = VALIDATION.decode_hex_to_bytes("tag", tag)

        # Validate nonce and tag sizes
        VALIDATION.validate_byte_length(nonce, CONSTANTS._AES_GCM_NONCE_LEN_BYTES, ApplicationCodes.INVALID_NONCE, "iv")
        VALIDATION.validate_byte_length(tag_bytes, CONSTANTS._AES_GCM_TAG_LEN_BYTES, ApplicationCodes.INVALID_TAG, "tag")

        try:
            # Perform authenticated decryption
            plaintext = aes.decrypt(nonce, ciphertext_bytes + tag_bytes, aad)

        except InvalidTag:
            raise AuthenticationError(ApplicationCodes.CIPHERTEXT_AUTH_ERROR, "AES-GCM authentication failed", "ciphertext")

        try:
            return VALIDATION.decode_bytes_to_utf8_text(plaintext)

        except PufSimError:
            raise ValidationError(ApplicationCodes.INVALID_CIPHERTEXT, "Decrypted payload is not UTF-8 text", "ciphertext")
