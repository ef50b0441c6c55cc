from enum import Enum
from datetime import date, datetime
from typing import Optional, Tuple
from dataclasses import dataclass


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


# Statuses a room can be in and still count towards sellable inventory.
COUNTABLE_ROOM_STATUSES = frozenset(
    {RoomStatus.AVAILABLE, RoomStatus.OCCUPIED, RoomStatus.MAINTENANCE}
)


@dataclass
class RoomType:
    room_type_id: str
    hotel_id: str
    name: str
    base_price_cents: int
    currency: str = "USD"
    max_adults: int = 2
    max_children: int = 0
    max_occupancy: int = 2
    is_active: bool = True

    def fits(self, num_adults: int, num_children: int = 0) -> bool:
        if num_adults > self.max_adults or num_children > self.max_children:
            return False
        return num_adults + num_children <= self.max_occupancy


@dataclass
class Room:
    room_id: str
    hotel_id: str
    room_type_id: str
    room_number: str
    status: RoomStatus = RoomStatus.AVAILABLE
    floor: Optional[int] = None
    is_active: bool = True

    @property
    def is_sellable(self) -> bool:
        return self.is_active and self.status in COUNTABLE_ROOM_STATUSES


@dataclass
class RatePlan:
    rate_plan_id: str
    hotel_id: str
    room_type_id: str
    name: str
    price_cents: int
    valid_from: date
    valid_to: date
    priority: int = 0
    min_stay_nights: int = 1
    max_stay_nights: Optional[int] = None
    min_advance_booking_days: int = 0
    max_advance_booking_days: Optional[int] = None
    # 0 = Sunday ... 6 = Saturday; None applies to every day.
    applicable_days: Optional[Tuple[int, ...]] = None
    is_refundable: bool = True
    cancellation_deadline_hours: Optional[int] = 24
    is_active: bool = True
    created_at: Optional[datetime] = None
