from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    EXPIRED = "expired"


# Bookings in these statuses occupy their room for the stay.
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN}
)


class BookingEvent(str, Enum):
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_TIMEOUT = "PAYMENT_TIMEOUT"
    CANCEL = "CANCEL"
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    MARK_NO_SHOW = "MARK_NO_SHOW"
    EXPIRE = "EXPIRE"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    PAID = "paid"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    FAILED = "failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Booking:
    booking_id: str
    hotel_id: str
    room_id: str
    room_type_id: str
    check_in: date
    check_out: date
    confirmation_code: str
    guest_id: Optional[str] = None
    num_adults: int = 1
    num_children: int = 0
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING

    total_price_cents: int = 0
    currency: str = "USD"
    tax_cents: int = 0
    rate_plan_id: Optional[str] = None

    soft_hold_expires_at: Optional[datetime] = None

    payment_intent_id: Optional[str] = None
    charge_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    actual_check_in_at: Optional[datetime] = None
    actual_check_out_at: Optional[datetime] = None

    special_requests: Optional[str] = None
    internal_notes: Optional[str] = None
    booking_source: str = "direct"

    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    version: int = 1

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


@dataclass
class BookingStateLogEntry:
    booking_id: str
    from_state: BookingStatus
    to_state: BookingStatus
    changed_by: Optional[str] = None
    reason: Optional[str] = None
    changed_at: datetime = field(default_factory=_now)
