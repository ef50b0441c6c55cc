from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class StayQuery(BaseModel):
    hotel_id: str = Field(min_length=1)
    room_type_id: str = Field(min_length=1)
    check_in: date
    check_out: date
    num_adults: Optional[int] = Field(default=None, ge=1)
    num_children: Optional[int] = Field(default=None, ge=0)


class PriceCheckRequest(StayQuery):
    expected_total_cents: int = Field(ge=0)
