"""
Fulfillment and condition derivation.

The fulfillment is an HMAC over the exact packet bytes, so only a holder of the
shared secret can unlock a chunk and any change to the packet invalidates the
condition committed in the transfer.
"""

import hashlib
import hmac

from psk2.constants import FULFILLMENT_GENERATION_STRING


def data_to_fulfillment(secret: bytes, data: bytes) -> bytes:
    key = hmac.new(secret, FULFILLMENT_GENERATION_STRING, hashlib.sha256).digest()
    return hmac.new(key, data, hashlib.sha256).digest()


def fulfillment_to_condition(fulfillment: bytes) -> bytes:
    return hashlib.sha256(fulfillment).digest()


def fulfillment_matches(fulfillment: bytes, condition: bytes) -> bool:
    return hmac.compare_digest(fulfillment_to_condition(fulfillment), condition)
