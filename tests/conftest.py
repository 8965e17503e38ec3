"""Shared fixtures: an in-process PSK receiver acting as the transfer transport."""

import asyncio
import base64
from decimal import Decimal
from typing import Any, Callable, Optional, Union

import pytest

from psk2.condition import data_to_fulfillment
from psk2.constants import MAX_UINT64
from psk2.encoding import deserialize_packet, serialize_packet
from psk2.models.packet import PacketType, PskPacket
from psk2.models.transfer import Fulfillment, Rejection, Transfer

SECRET = bytes(range(32))
SECRET_B64 = base64.b64encode(SECRET).decode("ascii")
ACCOUNT = "test.receiver.bob"

Scripted = Union[Rejection, Fulfillment, Exception, Callable[[Transfer], Any]]


class FakeReceiver:
    """Decrypts each chunk, credits ``amount * rate`` and fulfills it.

    Rejects with F99 and an ERROR packet when the chunk carries less than the
    sender's minimum, or when a LAST_CHUNK would leave the payment short.
    ``script`` maps attempt index to a canned answer that replaces the normal
    handling; ``always`` answers every attempt.
    """

    def __init__(self, secret: bytes = SECRET, rate: Union[str, Decimal] = "1",
                 script: Optional[dict[int, Scripted]] = None, always: Optional[Scripted] = None):
        self.secret = secret
        self.rate = Decimal(rate)
        self.script = script or {}
        self.always = always
        self.received = 0
        self.transfers: list[Transfer] = []

    @property
    def amounts(self) -> list[int]:
        return [int(t.amount) for t in self.transfers]

    def packets(self) -> list[PskPacket]:
        return [deserialize_packet(self.secret, t.data) for t in self.transfers]

    async def submit_transfer(self, transfer: Transfer):
        attempt = len(self.transfers)
        self.transfers.append(transfer)
        canned = self.script.get(attempt, self.always)
        if canned is not None:
            if isinstance(canned, Exception):
                raise canned
            if callable(canned):
                return canned(transfer)
            return canned
        return self.handle(transfer)

    def respond(self, packet: PskPacket, type_: PacketType, total: int, arrived: int) -> bytes:
        return serialize_packet(self.secret, PskPacket(
            type=type_,
            payment_id=packet.payment_id,
            sequence=packet.sequence,
            payment_amount=total,
            chunk_amount=arrived,
        ))

    def handle(self, transfer: Transfer):
        packet = deserialize_packet(self.secret, transfer.data)
        arrived = int(Decimal(transfer.amount) * self.rate)
        short_of_total = (
            packet.type == PacketType.LAST_CHUNK
            and packet.payment_amount != MAX_UINT64
            and self.received + arrived < packet.payment_amount
        )
        if arrived < packet.chunk_amount or short_of_total:
            return Rejection(code="F99", data=self.respond(packet, PacketType.ERROR, self.received, arrived))
        self.received += arrived
        return Fulfillment(
            fulfillment=data_to_fulfillment(self.secret, transfer.data),
            data=self.respond(packet, PacketType.FULFILLMENT, self.received, arrived),
        )


class RecordingSleep:
    """Stands in for asyncio.sleep: records delays, yields without waiting."""

    def __init__(self, real_delay: float = 0.0):
        self.calls: list[float] = []
        self._real_delay = real_delay

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(self._real_delay)


@pytest.fixture
def receiver() -> FakeReceiver:
    return FakeReceiver()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
