from decimal import Decimal

# Longest stay a single booking may cover, in nights.
MAX_STAY = 30

DEFAULT_HOLD_MINUTES = 15
MIN_HOLD_MINUTES = 1
MAX_HOLD_MINUTES = 60

DEFAULT_EXTEND_MINUTES = 10
MIN_EXTEND_MINUTES = 1
MAX_EXTEND_MINUTES = 30

DEFAULT_TAX_RATE = Decimal("0.12")

CONFIRMATION_CODE_LENGTH = 6
CONFIRMATION_CODE_ATTEMPTS = 5

MAX_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 1000
