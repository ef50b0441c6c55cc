from typing import Optional
from pydantic import BaseModel, Field, field_validator
from reservations.models.rooms import RoomStatus


def _lower(value):
    return value.lower() if isinstance(value, str) else value


class AddRoomRequest(BaseModel):
    room_id: str = Field(min_length=1)
    hotel_id: str = Field(min_length=1)
    room_type_id: str = Field(min_length=1)
    room_number: str = Field(min_length=1, max_length=20)
    floor: Optional[int] = None
    status: RoomStatus = RoomStatus.AVAILABLE

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, value):
        return _lower(value)


class UpdateRoomRequest(BaseModel):
    status: RoomStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, value):
        return _lower(value)
