import base64
import hashlib

import pytest
from cryptography.exceptions import InvalidTag

from psk2.condition import data_to_fulfillment, fulfillment_matches, fulfillment_to_condition
from psk2.constants import MAX_UINT64
from psk2.encoding import (
    HEADER_LENGTH,
    decode_packet,
    deserialize_packet,
    encode_packet,
    load_shared_secret,
    serialize_packet,
)
from psk2.errors import PreconditionError
from psk2.models.packet import PacketType, PskPacket

SECRET = b"\x11" * 32
PAYMENT_ID = bytes(range(16))


def make_packet(**overrides) -> PskPacket:
    fields = dict(
        type=PacketType.CHUNK,
        payment_id=PAYMENT_ID,
        sequence=7,
        payment_amount=MAX_UINT64,
        chunk_amount=550,
    )
    fields.update(overrides)
    return PskPacket(**fields)


def test_plaintext_layout():
    raw = encode_packet(make_packet())
    assert len(raw) == HEADER_LENGTH + 1
    assert raw[0] == PacketType.CHUNK
    assert raw[1:17] == PAYMENT_ID
    assert int.from_bytes(raw[17:21], "big") == 7
    assert raw[21:29] == b"\xff" * 8
    assert int.from_bytes(raw[29:37], "big") == 550
    assert raw[37] == 0  # empty application data


def test_application_data_length_prefix():
    long_data = b"x" * 300
    raw = encode_packet(make_packet(data=long_data))
    assert raw[HEADER_LENGTH:HEADER_LENGTH + 3] == bytes([0x82, 0x01, 0x2C])
    assert decode_packet(raw).data == long_data


def test_encrypted_packet_decrypts_with_same_secret():
    packet = make_packet(type=PacketType.LAST_CHUNK, data=b"hello")
    encrypted = serialize_packet(SECRET, packet)
    assert len(encrypted) == 12 + 16 + HEADER_LENGTH + 1 + 5
    assert deserialize_packet(SECRET, encrypted) == packet


def test_encryption_uses_fresh_iv():
    packet = make_packet()
    assert serialize_packet(SECRET, packet) != serialize_packet(SECRET, packet)


def test_wrong_secret_fails():
    encrypted = serialize_packet(SECRET, make_packet())
    with pytest.raises(InvalidTag):
        deserialize_packet(b"\x22" * 32, encrypted)


def test_tampered_ciphertext_fails():
    encrypted = bytearray(serialize_packet(SECRET, make_packet()))
    encrypted[-1] ^= 0xFF
    with pytest.raises(InvalidTag):
        deserialize_packet(SECRET, bytes(encrypted))


def test_truncated_input_fails():
    with pytest.raises(ValueError):
        deserialize_packet(SECRET, b"\x00" * 10)


def test_unknown_packet_type_fails():
    raw = bytearray(encode_packet(make_packet()))
    raw[0] = 9
    with pytest.raises(ValueError):
        decode_packet(bytes(raw))


def test_amount_out_of_range_rejected():
    with pytest.raises(ValueError):
        make_packet(chunk_amount=MAX_UINT64 + 1)


def test_load_shared_secret():
    assert load_shared_secret(SECRET) == SECRET
    assert load_shared_secret(base64.b64encode(SECRET).decode()) == SECRET
    for bad in (None, "", b"", b"short", base64.b64encode(b"short").decode(), "not base64!!"):
        with pytest.raises(PreconditionError):
            load_shared_secret(bad)


def test_fulfillment_binds_packet_bytes():
    data = serialize_packet(SECRET, make_packet())
    fulfillment = data_to_fulfillment(SECRET, data)
    assert fulfillment == data_to_fulfillment(SECRET, data)
    assert len(fulfillment) == 32
    condition = fulfillment_to_condition(fulfillment)
    assert condition == hashlib.sha256(fulfillment).digest()
    assert fulfillment_matches(fulfillment, condition)

    tampered = data[:-1] + bytes([data[-1] ^ 1])
    assert not fulfillment_matches(data_to_fulfillment(SECRET, tampered), condition)
    assert not fulfillment_matches(data_to_fulfillment(b"\x22" * 32, data), condition)
