"""
Quote engine: learn the path rate with one probe transfer.

The probe is a LAST_CHUNK asking for MAX_UINT64 under a random condition, so
the receiver always rejects it and reports in the rejection how much arrived.
"""

from __future__ import annotations

import base64
import logging
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, cast

from psk2.amounts import AmountLike, divide, floor, multiply, parse_amount, to_amount_string
from psk2.constants import CONDITION_LENGTH, MAX_UINT64, PAYMENT_ID_LENGTH
from psk2.correlator import decode_response
from psk2.encoding import SharedSecret, load_shared_secret, serialize_packet
from psk2.errors import PreconditionError, QuoteError, RejectionError
from psk2.models.packet import PacketType, PskPacket
from psk2.models.payment import PaymentConfig, QuoteResult
from psk2.models.transfer import Rejection, Transfer
from psk2.transport.base import OutcomeKind, TransferTransport, attempt_transfer

logger = logging.getLogger(__name__)


async def quote(
    transport: TransferTransport,
    *,
    shared_secret: SharedSecret,
    destination_account: str,
    source_amount: Optional[AmountLike] = None,
    destination_amount: Optional[AmountLike] = None,
    config: Optional[PaymentConfig] = None,
) -> QuoteResult:
    """Quote a payment by source amount or by destination amount (exactly one)."""
    config = config or PaymentConfig()
    secret = load_shared_secret(shared_secret)
    if not destination_account:
        raise PreconditionError("destination_account is required")
    if source_amount is None and destination_amount is None:
        raise PreconditionError("either source_amount or destination_amount is required")
    if source_amount is not None and destination_amount is not None:
        raise PreconditionError("cannot supply both source_amount and destination_amount")
    source = parse_amount(source_amount, "source_amount") if source_amount is not None else None
    destination = parse_amount(destination_amount, "destination_amount") if destination_amount is not None else None

    quote_id = os.urandom(PAYMENT_ID_LENGTH)
    data = serialize_packet(secret, PskPacket(
        type=PacketType.LAST_CHUNK,
        payment_id=quote_id,
        sequence=0,
        payment_amount=MAX_UINT64,
        chunk_amount=MAX_UINT64,
    ))
    amount = source if source is not None else Decimal(config.probe_amount)
    transfer = Transfer(
        amount=to_amount_string(amount),
        execution_condition=os.urandom(CONDITION_LENGTH),
        expires_at=datetime.now(timezone.utc) + timedelta(milliseconds=config.transfer_timeout_ms),
        destination_account=destination_account,
        data=data,
    )

    outcome = await attempt_transfer(transport, transfer)
    if outcome.kind is OutcomeKind.TRANSPORT_ERROR:
        raise outcome.error  # type: ignore[misc]
    if outcome.kind is OutcomeKind.FULFILLED:
        raise QuoteError("quote probe was unexpectedly fulfilled")

    rejection = cast(Rejection, outcome.rejection)
    try:
        response = decode_response(secret, quote_id, rejection.data, PacketType.ERROR)
    except Exception as e:
        logger.debug(
            "error parsing encrypted quote response: %r %s", e, base64.b64encode(rejection.data).decode("ascii"),
        )
        raise RejectionError(rejection) from e

    amount_arrived = Decimal(response.chunk_amount)
    logger.debug(
        "receiver got: %s when sender sent: %s (rate: %s)",
        amount_arrived, amount, divide(amount_arrived, amount),
    )
    if source is not None:
        return QuoteResult(destination_amount=to_amount_string(amount_arrived))

    if amount_arrived == 0:
        raise QuoteError("quote probe delivered nothing; the path rate is zero")
    # Round down so the quote never promises more than the path delivers
    source_quote = floor(multiply(divide(cast(Decimal, destination), amount_arrived), amount))
    return QuoteResult(source_amount=to_amount_string(source_quote))
