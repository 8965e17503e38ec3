"""
PSK packet codec: binary layout plus AES-256-GCM encryption under a key
derived from the shared secret.

Plaintext (big-endian):
    [0]       type (uint8)
    [1..16]   payment id (16 bytes)
    [17..20]  sequence (uint32)
    [21..28]  payment amount (uint64)
    [29..36]  chunk amount (uint64)
    [37..]    application data (OER variable-length octet string)

Ciphertext: iv (12 bytes) || auth tag (16 bytes) || encrypted plaintext
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import os
import struct
from typing import Union

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from psk2.constants import (
    AUTH_TAG_LENGTH,
    ENCRYPTION_KEY_STRING,
    IV_LENGTH,
    MAX_UINT64,
    MIN_SHARED_SECRET_LENGTH,
)
from psk2.errors import PreconditionError
from psk2.models.packet import PacketType, PskPacket

HEADER_FORMAT = "!B16sIQQ"
HEADER_LENGTH = struct.calcsize(HEADER_FORMAT)

SharedSecret = Union[bytes, str]


def load_shared_secret(shared_secret: SharedSecret | None) -> bytes:
    """Accept raw bytes or a base64 string; require at least 32 bytes."""
    if not shared_secret:
        raise PreconditionError("shared_secret is required")
    if isinstance(shared_secret, str):
        try:
            secret = base64.b64decode(shared_secret, validate=True)
        except (binascii.Error, ValueError):
            raise PreconditionError("shared_secret must be base64 encoded")
    else:
        secret = bytes(shared_secret)
    if len(secret) < MIN_SHARED_SECRET_LENGTH:
        raise PreconditionError(f"shared_secret must be at least {MIN_SHARED_SECRET_LENGTH} bytes")
    return secret


def _encryption_key(secret: bytes) -> bytes:
    return hmac.new(secret, ENCRYPTION_KEY_STRING, hashlib.sha256).digest()


def encrypt(secret: bytes, plaintext: bytes) -> bytes:
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_encryption_key(secret)).encrypt(iv, plaintext, None)
    # AESGCM appends the tag; the wire puts it before the ciphertext
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return iv + tag + ciphertext


def decrypt(secret: bytes, data: bytes) -> bytes:
    """Raises ValueError on truncated input and InvalidTag on a wrong key or tampering."""
    if len(data) < IV_LENGTH + AUTH_TAG_LENGTH:
        raise ValueError("ciphertext too short to contain iv and auth tag")
    iv = data[:IV_LENGTH]
    tag = data[IV_LENGTH:IV_LENGTH + AUTH_TAG_LENGTH]
    ciphertext = data[IV_LENGTH + AUTH_TAG_LENGTH:]
    return AESGCM(_encryption_key(secret)).decrypt(iv, ciphertext + tag, None)


def _write_var_octet_string(data: bytes) -> bytes:
    length = len(data)
    if length < 0x80:
        return bytes([length]) + data
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(length_bytes)]) + length_bytes + data


def _read_var_octet_string(raw: bytes) -> bytes:
    if not raw:
        raise ValueError("missing application data length prefix")
    first = raw[0]
    if first < 0x80:
        length, offset = first, 1
    else:
        n = first & 0x7F
        if n == 0 or len(raw) < 1 + n:
            raise ValueError("invalid application data length prefix")
        length, offset = int.from_bytes(raw[1:1 + n], "big"), 1 + n
    if len(raw) != offset + length:
        raise ValueError("application data length does not match packet size")
    return raw[offset:]


def encode_packet(packet: PskPacket) -> bytes:
    """Plaintext encoding. Raises ValueError for amounts that do not fit uint64."""
    if packet.payment_amount > MAX_UINT64 or packet.chunk_amount > MAX_UINT64:
        raise ValueError("amounts must fit in uint64")
    header = struct.pack(
        HEADER_FORMAT,
        int(packet.type),
        packet.payment_id,
        packet.sequence,
        packet.payment_amount,
        packet.chunk_amount,
    )
    return header + _write_var_octet_string(packet.data)


def decode_packet(raw: bytes) -> PskPacket:
    if len(raw) < HEADER_LENGTH + 1:
        raise ValueError("packet too small")
    type_, payment_id, sequence, payment_amount, chunk_amount = struct.unpack(HEADER_FORMAT, raw[:HEADER_LENGTH])
    return PskPacket(
        type=PacketType(type_),
        payment_id=payment_id,
        sequence=sequence,
        payment_amount=payment_amount,
        chunk_amount=chunk_amount,
        data=_read_var_octet_string(raw[HEADER_LENGTH:]),
    )


def serialize_packet(secret: bytes, packet: PskPacket) -> bytes:
    return encrypt(secret, encode_packet(packet))


def deserialize_packet(secret: bytes, data: bytes) -> PskPacket:
    return decode_packet(decrypt(secret, data))
