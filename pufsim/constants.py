#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: constants.py

    Description:
        Centralized protocol constants for the PUF provisioning simulator.
        Defines the PUF type set, CRP and challenge sizes, Diffie-Hellman
        domain parameters, AES-GCM sizes, step identifiers, log preview
        widths, and the request field schemas shared by the packet handler,
        the Flask routes and the phase handlers.
"""

import re
from typing import Set


# Protocol name reported by the health check and packet builders
_PROTOCOL_NAME = "PUF Zero-Touch Provisioning Simulator"


################################################################################################
# PUF / CRP parameters
################################################################################################

# Allowed PUF types (lower-case names are hashed into every PUF evaluation)
PUF_TYPE_ARBITER = "arbiter"
PUF_TYPE_SRAM = "sram"
PUF_TYPE_FALLBACK = "fallback"
_ALLOWED_PUF_TYPES: Set[str] = {PUF_TYPE_ARBITER, PUF_TYPE_SRAM, PUF_TYPE_FALLBACK}

# Inclusive bounds on the number of CRPs per session
_MIN_CRPS = 1
_MAX_CRPS = 1000

# Challenge width in bits for the reference flow
_CHALLENGE_BITS = 64

# Number of leading challenge bits shown in logs and results
_CHALLENGE_PREVIEW_BITS = 8

# Number of CRPs at the start of enrollment that get a full log preview
_ENROLL_PREVIEW_HEAD = 3

# PUF seeds are unsigned 32-bit values drawn from [0, _PUF_SEED_LIMIT)
_PUF_SEED_LIMIT = 0xFFFFFFFF

# Maximum device identifier length
_MAX_DEVICE_ID_LEN = 128

# Session identifiers are 128 random bits, hex-encoded
_SESSION_ID_BYTES = 16
_SESSION_ID_RX = re.compile(r"^[0-9a-f]{32}$")


################################################################################################
# Diffie-Hellman
################################################################################################

_DH_KEY_SIZE_BITS = 2048
_DH_GENERATOR = 2

# Parameter sources: fixed RFC 3526 group 14, or freshly generated parameters
_DH_PARAMETERS_RFC3526 = "rfc3526"
_DH_PARAMETERS_GENERATE = "generate"
_ALLOWED_DH_PARAMETER_SOURCES: Set[str] = {_DH_PARAMETERS_RFC3526, _DH_PARAMETERS_GENERATE}

# RFC 3526 section 3, 2048-bit MODP group (generator 2)
_RFC3526_GROUP14_PRIME = int(
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1"
    "29024E088A67CC74020BBEA63B139B22514A08798E3404DD"
    "EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245"
    "E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE45B3D"
    "C2007CB8A163BF0598DA48361C55D39A69163FA8FD24CF5F"
    "83655D23DCA3AD961C62F356208552BB9ED529077096966D"
    "670C354E4ABC9804F1746C08CA18217C32905E462E36CE3B"
    "E39E772C180E86039B2783A2EC07A28FB5C55DF06F4C52C9"
    "DE2BCBF6955817183995497CEA956AE515D2261898FA0510"
    "15728E5A8AACAA68FFFFFFFFFFFFFFFF",
    16,
)

# Number of hex characters of public keys / session keys shown in logs
_KEY_PREVIEW_HEX_CHARS = 16


################################################################################################
# AES-256-GCM
################################################################################################

_AES_KEY_LEN_BYTES = 32
_AES_GCM_NONCE_LEN_BYTES = 12
_AES_GCM_TAG_LEN_BYTES = 16

# Number of ciphertext hex characters shown in logs
_CIPHERTEXT_PREVIEW_HEX_CHARS = 32


################################################################################################
# Provisioning / operation
################################################################################################

_JWT_HEADER_B64 = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9"
_CERT_PREVIEW_CHARS = 60
_TOKEN_PREVIEW_CHARS = 50
_LOG_CREDENTIAL_PREVIEW_CHARS = 40
_ACK_ECHO_CHARS = 30

# Synthetic uptime reported by the device is drawn from [_UPTIME_MIN, _UPTIME_MAX)
_UPTIME_MIN_SECONDS = 100
_UPTIME_MAX_SECONDS = 10000


################################################################################################
# Step identifiers and statuses
################################################################################################

STEP_ENROLL = "S0_ENROLL"
STEP_AUTH = "S2_AUTH"
STEP_DH = "S3_DH"
STEP_PROVISION = "S4_PROVISION"
STEP_OPERATION = "S5_OPERATION"

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

# Derived, read-only phase names reported in session summaries
PHASE_CREATED = "created"
PHASE_ENROLLED = "enrolled"
PHASE_KEY_EXCHANGED = "key_exchanged"
PHASE_PROVISIONED = "provisioned"


################################################################################################
# Request packet fields
################################################################################################

# Fields required to initialize a session
_SESSION_INIT_REQUIRED_FIELDS = {
    "deviceId",
    "pufType",
    "numCrps"
}

# Default request body cap (bytes)
_DEFAULT_MAX_CONTENT_LENGTH = 16_384
