"""
PaymentSession: all running state of one chunked payment.

Owned by a single send/deliver call; never shared between payments.
"""

from __future__ import annotations

import os
import time
from decimal import Decimal

from psk2.amounts import ZERO, to_amount_string
from psk2.constants import PAYMENT_ID_LENGTH
from psk2.models.payment import PaymentResult


class PaymentSession:
    __slots__ = (
        "payment_id", "shared_secret", "sequence", "amount_sent", "amount_delivered",
        "chunk_size", "rate", "last_chunk", "time_to_wait", "num_chunks",
        "consecutive_failures", "started_at",
    )

    def __init__(self, shared_secret: bytes, chunk_size: Decimal, payment_id: bytes | None = None):
        self.payment_id = payment_id or os.urandom(PAYMENT_ID_LENGTH)
        self.shared_secret = shared_secret
        self.sequence = 0
        self.amount_sent = ZERO
        self.amount_delivered = ZERO
        self.chunk_size = chunk_size
        self.rate = ZERO
        self.last_chunk = False
        self.time_to_wait = 0
        self.num_chunks = 0
        self.consecutive_failures = 0
        self.started_at = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def to_result(self) -> PaymentResult:
        return PaymentResult(
            source_amount=to_amount_string(self.amount_sent),
            destination_amount=to_amount_string(self.amount_delivered),
            num_chunks=self.num_chunks,
        )

    def __repr__(self) -> str:
        return (
            f"PaymentSession(payment_id={self.payment_id.hex()!r}, sequence={self.sequence}, "
            f"sent={self.amount_sent}, delivered={self.amount_delivered}, chunk_size={self.chunk_size})"
        )
