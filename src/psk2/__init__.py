"""
psk2: sender side of the Pre-Shared Key v2 payment protocol.

Quote a path, or pay a fixed source or destination amount as a stream of
conditional transfers sized by AIMD congestion control.
"""

from psk2.quote import quote
from psk2.chunked import ChunkedPayment, send, deliver
from psk2.client import PskSender, AsyncPskSender
from psk2.errors import (
    PskError,
    PreconditionError,
    CorrelationError,
    RejectionError,
    FatalRejectionError,
    RetryLimitError,
    QuoteError,
    TransportError,
)
from psk2.models.payment import PaymentConfig, PaymentResult, QuoteResult, RegressionPolicy
from psk2.models.transfer import Transfer, Fulfillment, Rejection
from psk2.transport.base import TransferTransport
from psk2.transport.http import HttpTransport

__version__ = "0.1.0"
__all__ = [
    "quote",
    "send",
    "deliver",
    "ChunkedPayment",
    "PskSender",
    "AsyncPskSender",
    "PskError",
    "PreconditionError",
    "CorrelationError",
    "RejectionError",
    "FatalRejectionError",
    "RetryLimitError",
    "QuoteError",
    "TransportError",
    "PaymentConfig",
    "PaymentResult",
    "QuoteResult",
    "RegressionPolicy",
    "Transfer",
    "Fulfillment",
    "Rejection",
    "TransferTransport",
    "HttpTransport",
]
