"""
PSK packet: the encrypted sender/receiver message carried in every transfer.
"""

import enum

from pydantic import BaseModel, Field

from psk2.constants import MAX_UINT32, MAX_UINT64, PAYMENT_ID_LENGTH


class PacketType(enum.IntEnum):
    CHUNK = 0
    LAST_CHUNK = 1
    FULFILLMENT = 2
    ERROR = 3


class PskPacket(BaseModel):
    """Logical packet fields.

    Direction decides what the amounts mean. Sender to receiver:
    ``payment_amount`` is the total the receiver should end up with (or
    MAX_UINT64 when unknown) and ``chunk_amount`` is the minimum the receiver
    should accept for this chunk. Receiver to sender: ``payment_amount`` is the
    total received so far and ``chunk_amount`` what arrived with this chunk.
    """
    type: PacketType
    payment_id: bytes = Field(min_length=PAYMENT_ID_LENGTH, max_length=PAYMENT_ID_LENGTH)
    sequence: int = Field(ge=0, le=MAX_UINT32)
    payment_amount: int = Field(ge=0, le=MAX_UINT64)
    chunk_amount: int = Field(ge=0, le=MAX_UINT64)
    data: bytes = b""
