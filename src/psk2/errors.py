"""
psk2 error types: one class per failure mode of quote/send/deliver.
"""

from typing import Any, Optional

from psk2.models.transfer import Rejection


class PskError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details
        # Partial PaymentResult, attached when a payment aborts mid-way
        self.result: Any = None


class PreconditionError(PskError):
    def __init__(self, message: str):
        super().__init__("precondition_failed", message)


class CorrelationError(PskError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("bad_response", message, details)


class RejectionError(PskError):
    """A transfer rejected by the network or the receiver."""

    def __init__(self, rejection: Rejection, message: Optional[str] = None):
        text = message or f"Transfer rejected: {rejection.code}" + (f": {rejection.message}" if rejection.message else "")
        super().__init__(rejection.code, text, {"triggered_by": rejection.triggered_by})
        self.rejection = rejection


class FatalRejectionError(RejectionError):
    def __init__(self, rejection: Rejection):
        super().__init__(
            rejection,
            f"Transfer rejected with final error: {rejection.code}"
            + (f": {rejection.message}" if rejection.message else ""),
        )


class RetryLimitError(PskError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("retry_limit", message, details)


class QuoteError(PskError):
    def __init__(self, message: str):
        super().__init__("quote_failed", message)


class TransportError(PskError):
    def __init__(self, message: str, code: str = "transport_error"):
        super().__init__(code, message)
