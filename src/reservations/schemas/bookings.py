from datetime import date, timedelta
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from reservations.models.bookings import BookingEvent
from reservations.utils.constants import (
    MAX_STAY,
    MIN_HOLD_MINUTES,
    MAX_HOLD_MINUTES,
    MAX_REASON_LENGTH,
    MAX_NOTES_LENGTH,
)


def check_stay(check_in: date, check_out: date):
    if check_out <= check_in:
        raise ValueError("check_out must be after check_in")
    if check_out - check_in > timedelta(days=MAX_STAY):
        raise ValueError(f"Maximum stay is {MAX_STAY} nights")


class CreateBookingRequest(BaseModel):
    hotel_id: str = Field(min_length=1)
    room_type_id: str = Field(min_length=1)
    guest_id: Optional[str] = None
    check_in: date
    check_out: date
    num_adults: int = Field(default=1, ge=1)
    num_children: int = Field(default=0, ge=0)
    total_price_cents: int = Field(ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    tax_cents: int = Field(default=0, ge=0)
    rate_plan_id: Optional[str] = None
    special_requests: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    internal_notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    booking_source: str = Field(default="direct", max_length=50)
    soft_hold_minutes: Optional[int] = Field(
        default=None, ge=MIN_HOLD_MINUTES, le=MAX_HOLD_MINUTES
    )

    @model_validator(mode="after")
    def validate_stay(self):
        check_stay(self.check_in, self.check_out)
        if self.currency:
            self.currency = self.currency.upper()
        return self


class StatusUpdateRequest(BaseModel):
    event: BookingEvent
    reason: Optional[str] = Field(default=None, min_length=1, max_length=MAX_REASON_LENGTH)
    payment_intent_id: Optional[str] = None
    charge_id: Optional[str] = None
