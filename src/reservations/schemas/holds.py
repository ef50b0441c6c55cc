from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from reservations.schemas.bookings import check_stay
from reservations.utils.constants import (
    DEFAULT_HOLD_MINUTES,
    MIN_HOLD_MINUTES,
    MAX_HOLD_MINUTES,
    DEFAULT_EXTEND_MINUTES,
    MIN_EXTEND_MINUTES,
    MAX_EXTEND_MINUTES,
)


class SoftHoldRequest(BaseModel):
    hotel_id: str = Field(min_length=1)
    room_type_id: str = Field(min_length=1)
    check_in: date
    check_out: date
    num_adults: int = Field(default=1, ge=1)
    num_children: int = Field(default=0, ge=0)
    expires_in_minutes: int = Field(
        default=DEFAULT_HOLD_MINUTES, ge=MIN_HOLD_MINUTES, le=MAX_HOLD_MINUTES
    )
    guest_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_stay(self):
        check_stay(self.check_in, self.check_out)
        return self


class ExtendHoldRequest(BaseModel):
    additional_minutes: int = Field(
        default=DEFAULT_EXTEND_MINUTES, ge=MIN_EXTEND_MINUTES, le=MAX_EXTEND_MINUTES
    )
