"""
Payment and quote results returned to callers, plus payment tuning options.
"""

import enum
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from psk2.constants import (
    DEFAULT_TRANSFER_TIMEOUT_MS,
    MIN_BACKOFF_MS,
    STARTING_TRANSFER_AMOUNT,
    TRANSFER_DECREASE,
    TRANSFER_INCREASE,
)


class RegressionPolicy(str, enum.Enum):
    """What to do when the receiver reports less than it previously claimed."""
    IGNORE = "ignore"
    FAIL = "fail"


class PaymentConfig(BaseModel):
    starting_chunk_size: int = Field(default=STARTING_TRANSFER_AMOUNT, ge=1)
    chunk_increase: Decimal = Field(default=TRANSFER_INCREASE, gt=1)
    chunk_decrease: Decimal = Field(default=TRANSFER_DECREASE, gt=0, lt=1)
    min_backoff_ms: int = Field(default=MIN_BACKOFF_MS, ge=0)
    transfer_timeout_ms: int = Field(default=DEFAULT_TRANSFER_TIMEOUT_MS, gt=0)
    probe_amount: int = Field(default=STARTING_TRANSFER_AMOUNT, ge=1)
    # Consecutive unfulfilled attempts tolerated; None retries forever
    max_retries: Optional[int] = Field(default=None, ge=0)
    # Seconds a payment may run; None means no limit
    max_duration: Optional[float] = Field(default=None, gt=0)
    regression_policy: RegressionPolicy = RegressionPolicy.IGNORE


class PaymentResult(BaseModel):
    source_amount: str
    destination_amount: str
    num_chunks: int


class QuoteResult(BaseModel):
    """Exactly one field is set: the side the caller did not supply."""
    source_amount: Optional[str] = None
    destination_amount: Optional[str] = None
