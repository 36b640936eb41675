"""LOCO protocol constants and enums."""

from enum import IntEnum

# ----------------------------------------------------------------------------
# Packet layout
# ----------------------------------------------------------------------------

HEADER_FORMAT = "<IH11sBI"  # packet_id, status_code, method, body_type, body_length
HEADER_SIZE = 22
METHOD_NAME_SIZE = 11

HANDSHAKE_HEADER_FORMAT = "<III"  # data_length, rsa_encrypt_type, aes_encrypt_type
HANDSHAKE_HEADER_SIZE = 12

SECURE_HEADER_FORMAT = "<I16s"  # data_length, iv
SECURE_HEADER_SIZE = 20

# ----------------------------------------------------------------------------
# Session crypto
# ----------------------------------------------------------------------------

SESSION_KEY_SIZE = 16  # AES-128
IV_SIZE = 16

RSA_ENCRYPT_TYPE = 14  # RSA-OAEP with SHA-1
AES_ENCRYPT_TYPE = 2  # AES-128-CFB128

# Embedded server public key (SubjectPublicKeyInfo, 2048-bit RSA, e=3)
LOCO_PUBLIC_KEY = (
    b"-----BEGIN PUBLIC KEY-----\n"
    b"MIIBIDANBgkqhkiG9w0BAQEFAAOCAQ0AMIIBCAKCAQEA52Y1NVBfNkzCmnggwVwS\n"
    b"cdUO7enyo/RtnSsr8io+8cQrhXlsi1Msn8yGQv+JW9AZKyetYeYl/BuCFS7liJix\n"
    b"wJ1UFkH7J0m8GRGNH4VRuRMJa97WfvVpsMr1cIaFnoCeRwvvaaqw9/ikWFWw/Cq6\n"
    b"ieAsO80pRCcAVh1mCytDUmeqykuz6TYwldTaYbpHO8u48d3jvUXveSv5J9t40Gia\n"
    b"MdyVRZpx7LY2M0ZsjjbQXRe8ziXtGEq/8Gk0vkV2BnRk/v6uce8k5ERCWGyVHRaR\n"
    b"o6FJljYNvaIoBBx2WGJVbb6fXCLlkPFlH/A9tGZ0fxNDuomZWwnF+EDIDsq5R/G8\n"
    b"+wIBAw==\n"
    b"-----END PUBLIC KEY-----\n"
)

# ----------------------------------------------------------------------------
# Body types
# ----------------------------------------------------------------------------


class BodyType(IntEnum):
    """Payload encoding discriminators carried in the packet header."""

    BSON = 0x00  # Typed document


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------

BOOKING_HOST = "booking-loco.kakao.com"
TICKET_HOST = "ticket-loco.kakao.com"
LOCO_PORT = 443

# Well-known methods
METHOD_GETCONF = "GETCONF"
METHOD_CHECKIN = "CHECKIN"

# Default size limits
DEFAULT_MAX_BODY_BYTES = 16 << 20  # 16 MiB

# Largest envelope accepted from a peer: IV plus one maximal packet
DEFAULT_MAX_ENVELOPE_BYTES = IV_SIZE + HEADER_SIZE + DEFAULT_MAX_BODY_BYTES
