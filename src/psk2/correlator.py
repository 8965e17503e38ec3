"""
Response correlation: binds a receiver's encrypted answer to the transfer it
answers and applies the receiver's claimed total to the payment session.
"""

from __future__ import annotations

import base64
import logging
from decimal import Decimal
from typing import Optional

from psk2.amounts import divide
from psk2.encoding import deserialize_packet
from psk2.errors import CorrelationError
from psk2.models.packet import PacketType, PskPacket
from psk2.models.payment import RegressionPolicy
from psk2.session import PaymentSession

logger = logging.getLogger(__name__)


def decode_response(
    secret: bytes,
    payment_id: bytes,
    encrypted: bytes,
    expected_type: PacketType,
    expected_sequence: Optional[int] = None,
) -> PskPacket:
    """Decrypt a receiver response and check it answers our request.

    Raises ValueError (or cryptography's InvalidTag) on any mismatch; callers
    decide how that surfaces. ``expected_sequence=None`` skips the sequence check.
    """
    response = deserialize_packet(secret, encrypted)
    if response.type != expected_type:
        raise ValueError(f"unexpected packet type. expected: {expected_type.name}, actual: {response.type.name}")
    if response.payment_id != payment_id:
        raise ValueError(
            "response does not correspond to request. payment id does not match. "
            f"actual: {response.payment_id.hex()}, expected: {payment_id.hex()}"
        )
    if expected_sequence is not None and response.sequence != expected_sequence:
        raise ValueError(
            "response does not correspond to request. sequence does not match. "
            f"actual: {response.sequence}, expected: {expected_sequence}"
        )
    return response


class ResponseCorrelator:
    def __init__(self, session: PaymentSession, regression_policy: RegressionPolicy = RegressionPolicy.IGNORE):
        self._session = session
        self._regression_policy = regression_policy

    def apply(self, encrypted: bytes, expected_type: PacketType, expected_sequence: int) -> PskPacket:
        """Validate a response and raise the delivered amount if the receiver claims more."""
        session = self._session
        try:
            response = decode_response(
                session.shared_secret, session.payment_id, encrypted, expected_type, expected_sequence,
            )
        except Exception as e:
            logger.debug("error decrypting response data: %r %s", e, base64.b64encode(encrypted).decode("ascii"))
            raise CorrelationError(f"Got bad response from receiver: {str(e) or type(e).__name__}") from e

        claimed = Decimal(response.payment_amount)
        logger.debug("receiver says they have received: %s", claimed)
        if claimed > session.amount_delivered:
            session.amount_delivered = claimed
            if session.amount_sent > 0:
                session.rate = divide(session.amount_delivered, session.amount_sent)
        elif claimed < session.amount_delivered:
            if self._regression_policy is RegressionPolicy.FAIL:
                raise CorrelationError(
                    "Got bad response from receiver: amount received decreased "
                    f"from {session.amount_delivered} to {claimed}",
                    details={"previous": str(session.amount_delivered), "claimed": str(claimed)},
                )
            logger.debug(
                "receiver decreased the amount they say they received. previously: %s, now: %s",
                session.amount_delivered, claimed,
            )
        return response
