import pytest

from psk2 import quote
from psk2.constants import MAX_UINT64
from psk2.encoding import serialize_packet
from psk2.errors import PreconditionError, QuoteError, RejectionError
from psk2.models.packet import PacketType, PskPacket
from psk2.models.transfer import Fulfillment, Rejection

from conftest import ACCOUNT, SECRET, SECRET_B64, FakeReceiver


@pytest.mark.asyncio
async def test_quote_by_source_amount():
    receiver = FakeReceiver(rate="0.4")
    result = await quote(receiver, shared_secret=SECRET, destination_account=ACCOUNT, source_amount="1000")

    assert result.destination_amount == "400"
    assert result.source_amount is None
    assert receiver.amounts == [1000]
    assert receiver.received == 0  # probe is never credited
    probe = receiver.packets()[0]
    assert probe.type == PacketType.LAST_CHUNK
    assert probe.payment_amount == MAX_UINT64
    assert probe.chunk_amount == MAX_UINT64
    assert receiver.transfers[0].destination_account == ACCOUNT


@pytest.mark.asyncio
async def test_quote_by_destination_amount_rounds_down():
    receiver = FakeReceiver(rate="0.3")
    result = await quote(receiver, shared_secret=SECRET_B64, destination_account=ACCOUNT, destination_amount=1000)

    # 1000 / 300 * 1000 = 3333.33...
    assert result.source_amount == "3333"
    assert result.destination_amount is None
    assert receiver.amounts == [1000]


@pytest.mark.asyncio
async def test_fulfilled_probe_is_an_error():
    receiver = FakeReceiver(always=Fulfillment(fulfillment=b"\x00" * 32))
    with pytest.raises(QuoteError):
        await quote(receiver, shared_secret=SECRET, destination_account=ACCOUNT, source_amount="1000")


@pytest.mark.asyncio
async def test_unreadable_rejection_raises_the_rejection():
    receiver = FakeReceiver(always=Rejection(code="F02", message="unreachable", data=b"garbage"))
    with pytest.raises(RejectionError) as exc:
        await quote(receiver, shared_secret=SECRET, destination_account=ACCOUNT, source_amount="1000")
    assert exc.value.code == "F02"
    assert exc.value.rejection.message == "unreachable"
    assert exc.value.__cause__ is not None


@pytest.mark.asyncio
async def test_rejection_for_another_payment_is_not_trusted():
    def answer(transfer):
        return Rejection(code="F99", data=serialize_packet(SECRET, PskPacket(
            type=PacketType.ERROR,
            payment_id=b"\x55" * 16,
            sequence=0,
            payment_amount=0,
            chunk_amount=999_999,
        )))

    receiver = FakeReceiver(always=answer)
    with pytest.raises(RejectionError) as exc:
        await quote(receiver, shared_secret=SECRET, destination_account=ACCOUNT, source_amount="1000")
    assert "payment id" in str(exc.value.__cause__)


@pytest.mark.asyncio
async def test_transport_error_propagates_unchanged():
    err = OSError("ledger offline")
    receiver = FakeReceiver(always=err)
    with pytest.raises(OSError) as exc:
        await quote(receiver, shared_secret=SECRET, destination_account=ACCOUNT, destination_amount="10")
    assert exc.value is err


@pytest.mark.asyncio
async def test_zero_rate_cannot_quote_destination():
    receiver = FakeReceiver(rate="0")
    with pytest.raises(QuoteError):
        await quote(receiver, shared_secret=SECRET, destination_account=ACCOUNT, destination_amount="10")


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs", [
    {"shared_secret": SECRET},
    {"shared_secret": SECRET, "source_amount": "10", "destination_amount": "10"},
    {"shared_secret": b"too short", "source_amount": "10"},
    {"shared_secret": None, "source_amount": "10"},
    {"shared_secret": SECRET, "source_amount": "-3"},
])
async def test_preconditions_checked_before_sending(kwargs):
    receiver = FakeReceiver()
    with pytest.raises(PreconditionError):
        await quote(receiver, destination_account=ACCOUNT, **kwargs)
    assert receiver.transfers == []


@pytest.mark.asyncio
async def test_destination_account_required():
    receiver = FakeReceiver()
    with pytest.raises(PreconditionError):
        await quote(receiver, shared_secret=SECRET, destination_account="", source_amount="10")
    assert receiver.transfers == []
