"""
Conditional transfer models: what goes to the transport and what comes back.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from psk2.constants import CONDITION_LENGTH


class Transfer(BaseModel):
    amount: str
    execution_condition: bytes = Field(min_length=CONDITION_LENGTH, max_length=CONDITION_LENGTH)
    expires_at: datetime
    destination_account: str
    data: bytes = b""  # encrypted PSK packet


class Fulfillment(BaseModel):
    """Transfer executed; ``data`` is the receiver's encrypted response."""
    fulfillment: bytes
    data: bytes = b""


class Rejection(BaseModel):
    """Transfer rejected by a connector or by the receiver."""
    code: str
    message: str = ""
    triggered_by: Optional[str] = None
    data: bytes = b""


TransferResult = Union[Fulfillment, Rejection]
