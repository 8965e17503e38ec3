"""
Transfer transport interface and outcome classification.

A transport returns Fulfillment or Rejection for every transfer it manages to
submit and raises for anything else. ``attempt_transfer`` folds all of that
into one closed set of outcomes for the payment loop to match on.
"""

import enum
from typing import Optional, Protocol

from psk2.constants import APPLICATION_ERROR_CODE, RETRYABLE_CODE_PREFIXES
from psk2.models.transfer import Fulfillment, Rejection, Transfer, TransferResult


class TransferTransport(Protocol):
    async def submit_transfer(self, transfer: Transfer) -> TransferResult:
        ...


class OutcomeKind(enum.Enum):
    FULFILLED = "fulfilled"
    APPLICATION_REJECTED = "application_rejected"
    RETRYABLE_REJECTED = "retryable_rejected"
    FATAL_REJECTED = "fatal_rejected"
    TRANSPORT_ERROR = "transport_error"


class TransferOutcome:
    __slots__ = ("kind", "fulfillment", "rejection", "error")

    def __init__(self, kind: OutcomeKind, fulfillment: Optional[Fulfillment] = None,
                 rejection: Optional[Rejection] = None, error: Optional[Exception] = None):
        self.kind = kind
        self.fulfillment = fulfillment
        self.rejection = rejection
        self.error = error

    def __repr__(self) -> str:
        code = self.rejection.code if self.rejection else None
        return f"TransferOutcome(kind={self.kind.value!r}, code={code!r})"


def classify_rejection(rejection: Rejection) -> OutcomeKind:
    if rejection.code == APPLICATION_ERROR_CODE:
        return OutcomeKind.APPLICATION_REJECTED
    if rejection.code.startswith(RETRYABLE_CODE_PREFIXES):
        return OutcomeKind.RETRYABLE_REJECTED
    return OutcomeKind.FATAL_REJECTED


async def attempt_transfer(transport: TransferTransport, transfer: Transfer) -> TransferOutcome:
    try:
        result = await transport.submit_transfer(transfer)
    except Exception as e:
        return TransferOutcome(OutcomeKind.TRANSPORT_ERROR, error=e)
    if isinstance(result, Fulfillment):
        return TransferOutcome(OutcomeKind.FULFILLED, fulfillment=result)
    if isinstance(result, Rejection):
        return TransferOutcome(classify_rejection(result), rejection=result)
    return TransferOutcome(
        OutcomeKind.TRANSPORT_ERROR,
        error=TypeError(f"transport returned {type(result).__name__}, expected Fulfillment or Rejection"),
    )
