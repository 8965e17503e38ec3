"""
Chunked payment controller.

Splits a fixed-source or fixed-destination payment into conditional transfers
and sizes them with additive-increase/multiplicative-decrease:

- fulfilled chunk: chunk size x1.1, backoff reset
- T*/R* rejection: chunk size x0.5 (floor 1), backoff doubled (min 100ms)
- F99 rejection: receiver's encrypted answer is applied, nothing else changes
- any other rejection: payment aborted
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, cast

from psk2.amounts import (
    UNBOUNDED,
    ZERO,
    AmountLike,
    ceil,
    divide,
    floor,
    grow_chunk,
    multiply,
    next_backoff,
    parse_amount,
    shrink_chunk,
    to_amount_string,
)
from psk2.condition import data_to_fulfillment, fulfillment_matches, fulfillment_to_condition
from psk2.correlator import ResponseCorrelator
from psk2.encoding import SharedSecret, load_shared_secret, serialize_packet
from psk2.errors import CorrelationError, FatalRejectionError, PreconditionError, PskError, RetryLimitError
from psk2.models.packet import PacketType, PskPacket
from psk2.models.payment import PaymentConfig, PaymentResult
from psk2.models.transfer import Fulfillment, Rejection, Transfer
from psk2.session import PaymentSession
from psk2.transport.base import OutcomeKind, TransferTransport, attempt_transfer

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class ChunkedPayment:
    """One payment. Build it, then ``await run()`` once."""

    def __init__(
        self,
        transport: TransferTransport,
        *,
        shared_secret: bytes,
        destination_account: str,
        source_amount: Optional[Decimal] = None,
        destination_amount: Optional[Decimal] = None,
        config: Optional[PaymentConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if (source_amount is None) == (destination_amount is None):
            raise PreconditionError("exactly one of source_amount or destination_amount is required")
        self._transport = transport
        self._destination_account = destination_account
        self._source_amount = source_amount
        self._destination_amount = destination_amount
        self._config = config or PaymentConfig()
        self._sleep = sleep
        self.session = PaymentSession(shared_secret, Decimal(self._config.starting_chunk_size))
        self._correlator = ResponseCorrelator(self.session, self._config.regression_policy)

    async def run(self) -> PaymentResult:
        try:
            await self._loop()
        except PskError as e:
            if e.result is None:
                e.result = self.session.to_result()
            raise
        result = self.session.to_result()
        logger.debug(
            "sent payment. source amount: %s, destination amount: %s, number of chunks: %s",
            result.source_amount, result.destination_amount, result.num_chunks,
        )
        return result

    def _amount_left_to_send(self) -> Optional[Decimal]:
        """Remaining source amount, or None when the payment is complete."""
        session = self.session
        if self._source_amount is not None:
            left = self._source_amount - session.amount_sent
            logger.debug("amount left to send: %s", left)
            return left if left > 0 else None

        left_to_deliver = cast(Decimal, self._destination_amount) - session.amount_delivered
        if left_to_deliver <= 0:
            logger.debug("amount left to deliver: 0")
            return None
        rate = divide(session.amount_delivered, session.amount_sent) if session.amount_sent > 0 else ZERO
        if rate > 0:
            left = ceil(divide(left_to_deliver, rate))
            logger.debug(
                "amount left to send: %s (amount left to deliver: %s, rate: %s)", left, left_to_deliver, rate,
            )
            return left if left > 0 else None
        logger.debug("amount left to send: unknown")
        return UNBOUNDED

    def _check_limits(self) -> None:
        session = self.session
        max_retries = self._config.max_retries
        if max_retries is not None and session.consecutive_failures > max_retries:
            raise RetryLimitError(
                f"Giving up after {session.consecutive_failures} consecutive unfulfilled attempts",
                details={"chunk_size": str(session.chunk_size)},
            )
        max_duration = self._config.max_duration
        if max_duration is not None and session.elapsed >= max_duration:
            raise RetryLimitError(
                f"Payment did not complete within {max_duration}s",
                details={"chunk_size": str(session.chunk_size)},
            )

    def _build_transfer(self) -> Transfer:
        session = self.session
        minimum = floor(multiply(session.rate, session.chunk_size))
        packet = PskPacket(
            type=PacketType.LAST_CHUNK if session.last_chunk else PacketType.CHUNK,
            payment_id=session.payment_id,
            sequence=session.sequence,
            payment_amount=int(self._destination_amount if self._destination_amount is not None else UNBOUNDED),
            chunk_amount=int(minimum),
        )
        data = serialize_packet(session.shared_secret, packet)
        fulfillment = data_to_fulfillment(session.shared_secret, data)
        return Transfer(
            amount=to_amount_string(session.chunk_size),
            execution_condition=fulfillment_to_condition(fulfillment),
            expires_at=datetime.now(timezone.utc) + timedelta(milliseconds=self._config.transfer_timeout_ms),
            destination_account=self._destination_account,
            data=data,
        )

    async def _loop(self) -> None:
        session = self.session
        config = self._config
        while True:
            left = self._amount_left_to_send()
            if left is None:
                return

            if left <= session.chunk_size:
                logger.debug("sending last chunk")
                session.chunk_size = left
                session.last_chunk = True
            else:
                session.last_chunk = False

            self._check_limits()
            transfer = self._build_transfer()
            logger.debug("sending chunk of: %s", transfer.amount)
            outcome = await attempt_transfer(self._transport, transfer)

            if outcome.kind is OutcomeKind.FULFILLED:
                fulfillment = cast(Fulfillment, outcome.fulfillment)
                if not fulfillment_matches(fulfillment.fulfillment, transfer.execution_condition):
                    raise CorrelationError("Got bad response from receiver: fulfillment does not match condition")
                session.amount_sent += session.chunk_size
                session.num_chunks += 1
                session.consecutive_failures = 0
                self._correlator.apply(fulfillment.data, PacketType.FULFILLMENT, session.sequence)
                session.chunk_size = grow_chunk(session.chunk_size, config.chunk_increase)
                session.time_to_wait = 0
                logger.debug("transfer was successful, increasing chunk size to: %s", session.chunk_size)
                if session.last_chunk:
                    return
                session.sequence += 1

            elif outcome.kind is OutcomeKind.APPLICATION_REJECTED:
                rejection = cast(Rejection, outcome.rejection)
                session.consecutive_failures += 1
                self._correlator.apply(rejection.data, PacketType.ERROR, session.sequence)

            elif outcome.kind is OutcomeKind.RETRYABLE_REJECTED:
                rejection = cast(Rejection, outcome.rejection)
                session.consecutive_failures += 1
                session.chunk_size = shrink_chunk(session.chunk_size, config.chunk_decrease)
                session.time_to_wait = next_backoff(session.time_to_wait, config.min_backoff_ms)
                logger.debug(
                    "got temporary rejection: %s, reducing chunk size to: %s and waiting: %sms",
                    rejection.code, session.chunk_size, session.time_to_wait,
                )
                self._check_limits()
                await self._sleep(session.time_to_wait / 1000)

            elif outcome.kind is OutcomeKind.FATAL_REJECTED:
                rejection = cast(Rejection, outcome.rejection)
                logger.warning("got rejection with final error: %s %s", rejection.code, rejection.message)
                raise FatalRejectionError(rejection)

            else:
                logger.debug("got error other than a rejection: %r", outcome.error)
                raise outcome.error  # type: ignore[misc]


def _prepare(shared_secret: SharedSecret, destination_account: str) -> bytes:
    secret = load_shared_secret(shared_secret)
    if not destination_account:
        raise PreconditionError("destination_account is required")
    return secret


async def send(
    transport: TransferTransport,
    *,
    source_amount: AmountLike,
    shared_secret: SharedSecret,
    destination_account: str,
    config: Optional[PaymentConfig] = None,
    sleep: Sleep = asyncio.sleep,
) -> PaymentResult:
    """Send exactly ``source_amount``, however much arrives."""
    secret = _prepare(shared_secret, destination_account)
    if source_amount is None:
        raise PreconditionError("source_amount is required")
    payment = ChunkedPayment(
        transport,
        shared_secret=secret,
        destination_account=destination_account,
        source_amount=parse_amount(source_amount, "source_amount"),
        config=config,
        sleep=sleep,
    )
    return await payment.run()


async def deliver(
    transport: TransferTransport,
    *,
    destination_amount: AmountLike,
    shared_secret: SharedSecret,
    destination_account: str,
    config: Optional[PaymentConfig] = None,
    sleep: Sleep = asyncio.sleep,
) -> PaymentResult:
    """Send until the receiver reports at least ``destination_amount``."""
    secret = _prepare(shared_secret, destination_account)
    if destination_amount is None:
        raise PreconditionError("destination_amount is required")
    payment = ChunkedPayment(
        transport,
        shared_secret=secret,
        destination_account=destination_account,
        destination_amount=parse_amount(destination_amount, "destination_amount"),
        config=config,
        sleep=sleep,
    )
    return await payment.run()
