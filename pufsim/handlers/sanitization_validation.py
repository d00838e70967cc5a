#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: sanitization_validation.py

    Description:
        Encoding, decoding and type-conversion utilities for the simulator's
        cryptographic and network layers (hex, UTF-8, JSON), timestamp helpers
        for audit records and session logs, and reusable field-level validators
        for session parameters and request packets.

        Every malformed or non-conforming value raises ValidationError.
"""

import binascii
import json
import typing
from datetime import datetime, timezone

from pufsim.handlers.error_handler import PufSimError, ValidationError, ApplicationCodes


####################################################################################################
#                                   Hex Encoding / Decoding
####################################################################################################

"""
    Convert a hex string into raw bytes.

    @param field_name (str): Logical field name for context in error messages.
    @param hex_text (Any): Hex-encoded string to decode.
    @require hex_text is a string of even length containing only hex digits
    @return bytes: Decoded byte sequence.
    @ensures Invalid hex input raises ValidationError.
"""
def decode_hex_to_bytes(field_name: str, hex_text: typing.Any) -> bytes:
    try:
        if not isinstance(hex_text, str):
            raise ValidationError(ApplicationCodes.INVALID_TYPE, f"{field_name} must be a hex string", field_name)

        return bytes.fromhex(hex_text)

    except PufSimError:
        raise
    except (ValueError, binascii.Error):
        raise ValidationError(ApplicationCodes.INVALID_HEX, f"Invalid hex for {field_name}", field_name)



"""
    Convert raw bytes into a lower-case hex string.

    @param raw (bytes): Bytes to encode.
    @return str: Hex string, two characters per byte.
"""
def encode_bytes_to_hex(raw: bytes) -> str:

    # Validate input type
    if not isinstance(raw, (bytes, bytearray)):
        raise ValidationError(ApplicationCodes.INVALID_TYPE, "hex encode expects bytes", "raw")

    return bytes(raw).hex()



"""
    Big-endian hex encoding of a non-negative integer, padded to whole bytes.
"""
def encode_int_to_hex(value: int) -> str:
    length = max(1, (value.bit_length() + 7) // 8)
    return value.to_bytes(length, "big").hex()



####################################################################################################
#                                   UTF-8 / JSON Conversions
####################################################################################################

"""
    Convert raw bytes into a UTF-8 decoded string.

    @param raw_bytes (bytes): UTF-8 encoded bytes.
    @return str: UTF-8 decoded text.
    @ensures Raises ValidationError on invalid UTF-8 sequences.
"""
def decode_bytes_to_utf8_text(raw_bytes: bytes) -> str:
    try:
        # Validate input type
        if not isinstance(raw_bytes, (bytes, bytearray)):
            raise ValidationError(ApplicationCodes.INVALID_TYPE, "Input must be bytes for UTF-8 decode", "raw_bytes")

        return bytes(raw_bytes).decode("utf-8")

    except PufSimError:
        raise
    except UnicodeDecodeError:
        raise ValidationError(ApplicationCodes.INVALID_TYPE, "Invalid UTF-8 byte sequence", "raw_bytes")



"""
    Convert UTF-8 text into raw bytes.

    @param text (str): Input string.
    @return bytes: UTF-8 encoded byte sequence.
"""
def encode_utf8_text_to_bytes(text: str) -> bytes:

    # Validate input type
    if not isinstance(text, str):
        raise ValidationError(ApplicationCodes.INVALID_TYPE, "Input must be string", "text")

    return text.encode("utf-8")



"""
    Encode a dictionary into compact JSON text.

    @param data (dict): JSON-serializable dictionary.
    @return str: Compact JSON text.
    @ensures Raises ValidationError on non-serializable input.
"""
def encode_dict_to_json_text(data: typing.Dict[str, typing.Any]) -> str:
    try:
        # Validate input type
        if not isinstance(data, dict):
            raise ValidationError(ApplicationCodes.INVALID_TYPE, "Input must be dict", "data")

        return json.dumps(data, separators=(",", ":"))

    except PufSimError:
        raise
    except (TypeError, ValueError):
        raise ValidationError(ApplicationCodes.MALFORMED_JSON, "Failed to serialize JSON payload", "data")



"""
    Parse JSON text into a Python dictionary.

    @param json_text (str): JSON object text.
    @return dict: Parsed JSON object.
    @ensures Raises ValidationError on malformed or non-object JSON values.
"""
def decode_json_text_to_dict(json_text: str) -> dict:
    try:
        # Validate input type
        if not isinstance(json_text, str):
            raise ValidationError(ApplicationCodes.INVALID_TYPE, "Input must be str", "json_text")

        obj = json.loads(json_text)

        # Validate output type
        if not isinstance(obj, dict):
            raise ValidationError(ApplicationCodes.MALFORMED_JSON, "Expected JSON object", "json_text")

        return obj

    except PufSimError:
        raise
    except ValueError:
        raise ValidationError(ApplicationCodes.MALFORMED_JSON, "Malformed JSON payload", "json_text")



####################################################################################################
#                               GENERIC VALIDATORS (REUSABLE)
####################################################################################################

"""
    Function: Validate that a value is a non-empty string.

    @param: typing.Any - value to be validated
    @param: ApplicationCodes - application-level error type to raise if validation fails
    @param: str - field_name identifying the failing field
    @ensures: raises ValidationError if value is not a valid non-empty string
"""
def validate_string(value: typing.Any, application_code, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(application_code, f"{field_name} must be a non-empty string.", field_name)



"""
    Function: Validate that a string does not exceed a maximum length.
"""
def validate_max_length(value: str, max_len: int, application_code, field_name: str) -> None:
    if len(value) > max_len:
        raise ValidationError(application_code, f"{field_name} exceeds maximum length ({max_len}).", field_name)



"""
    Function: Validate that a string matches a regular expression exactly.
"""
def validate_regex(value: str, regex, application_code, field_name: str) -> None:
    if not isinstance(value, str) or not regex.fullmatch(value):
        raise ValidationError(application_code, f"{field_name} has invalid format.", field_name)



"""
    Function: Validate that a value belongs to an allowed set.

    @param: str - value to be validated
    @param: set - allowed_set containing permitted values
    @param: ApplicationCodes - application-level error type to raise if validation fails
    @param: str - field_name identifying the failing field
    @ensures: raises ValidationError if value is not in allowed_set
"""
def validate_in_set(value: typing.Any, allowed_set: set, application_code, field_name: str) -> None:
    if not isinstance(value, str) or value not in allowed_set:
        allowed = ", ".join(sorted(allowed_set))
        raise ValidationError(application_code, f"{field_name} must be one of: {allowed}.", field_name)



"""
    Function: Validate that a value is an integer (bool excluded) within [low, high].

    @param: typing.Any - value to be validated
    @param: int - low inclusive lower bound
    @param: int - high inclusive upper bound
    @param: ApplicationCodes - application-level error type to raise if validation fails
    @param: str - field_name identifying the failing field
    @ensures: raises ValidationError if value is not an int or falls outside the range
"""
def validate_int_range(value: typing.Any, low: int, high: int, application_code, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not (low <= value <= high):
        raise ValidationError(application_code, f"{field_name} must be a number between {low} and {high}.", field_name)



"""
    Function: Validate that a bytes value has an exact length.
"""
def validate_byte_length(value: typing.Any, length: int, application_code, field_name: str) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != length:
        raise ValidationError(application_code, f"{field_name} must be exactly {length} bytes.", field_name)



"""
    Function: Validate that every element of a sequence is the integer 0 or 1.
"""
def validate_bit_sequence(bits: typing.Any, application_code, field_name: str) -> None:
    if isinstance(bits, (str, bytes, bytearray)) or not isinstance(bits, typing.Sequence):
        raise ValidationError(application_code, f"{field_name} must be a sequence of bits.", field_name)

    for bit in bits:
        if isinstance(bit, bool) or bit not in (0, 1):
            raise ValidationError(application_code, f"{field_name} may only contain 0 and 1.", field_name)



"""
    Ensure all required fields are present in the payload.

    @param payload (dict): Incoming JSON payload.
    @param required_fields (set[str]): Required field names.
    @param error_code (ApplicationCodes): Error code to raise.
    @param field_context (str): Name of the payload being validated.
    @ensures All required fields exist or raises ValidationError.
"""
def validate_required_fields(payload: dict, required_fields: set, error_code: str, field_context: str) -> None:

    # Validate parameters
    if not isinstance(payload, dict):
        raise ValidationError(ApplicationCodes.INVALID_TYPE, "Payload must be a JSON object.", field_context)

    missing = required_fields - set(payload.keys())
    if missing:
        raise ValidationError(error_code, f"Missing required fields: {', '.join(sorted(missing))}", field_context)



"""
    Ensure no unknown or unapproved fields exist in payload.

    @param payload (dict): Incoming data.
    @param allowed_fields (set[str]): Allowed field names.
    @param error_code (ApplicationCodes): Error code to raise.
    @param field_context (str): Name of the payload.
    @ensures No unknown fields or raises ValidationError.
"""
def validate_no_extra_fields(payload: dict, allowed_fields: set, error_code: str, field_context: str) -> None:
    extra = set(payload.keys()) - allowed_fields
    if extra:
        raise ValidationError(error_code, f"Unknown fields: {', '.join(sorted(extra))}", field_context)



####################################################################################################
#                                       Timestamps
####################################################################################################

"""
    Function: Generate a strict ISO8601Z UTC timestamp (YYYY-MM-DDTHH:MM:SSZ).
"""
def get_timestamp_iso8601z() -> str:

    # Get current UTC time without fractional seconds
    now = datetime.now(timezone.utc).replace(microsecond=0)

    return now.strftime("%Y-%m-%dT%H:%M:%SZ")



"""
    Function: Generate an ISO8601 UTC timestamp with millisecond precision (YYYY-MM-DDTHH:MM:SS.mmmZ).
"""
def get_timestamp_iso8601_millis() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"



"""
    Function: Time-of-day stamp used as the prefix of session log lines (HH:MM:SS.mmm, UTC).
"""
def get_log_timestamp() -> str:
    return get_timestamp_iso8601_millis()[11:23]
