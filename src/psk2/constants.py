"""Protocol constants."""

from decimal import Decimal

MAX_UINT64 = 2**64 - 1
MAX_UINT32 = 2**32 - 1

PAYMENT_ID_LENGTH = 16
CONDITION_LENGTH = 32
MIN_SHARED_SECRET_LENGTH = 32

ENCRYPTION_KEY_STRING = b"ilp_psk2_encryption"
FULFILLMENT_GENERATION_STRING = b"ilp_psk2_fulfillment"
IV_LENGTH = 12
AUTH_TAG_LENGTH = 16

DEFAULT_TRANSFER_TIMEOUT_MS = 2000
STARTING_TRANSFER_AMOUNT = 1000
TRANSFER_INCREASE = Decimal("1.1")
TRANSFER_DECREASE = Decimal("0.5")
MIN_BACKOFF_MS = 100

# Receiver-originated rejection whose data is an encrypted PSK packet
APPLICATION_ERROR_CODE = "F99"
# Temporary and relative error classes
RETRYABLE_CODE_PREFIXES = ("T", "R")
