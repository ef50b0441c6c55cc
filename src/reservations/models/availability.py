from dataclasses import dataclass
from datetime import date


@dataclass
class AvailabilityResult:
    is_available: bool
    available_count: int
    total_rooms: int


@dataclass
class CalendarDay:
    date: date
    available: int
    booked: int
    total: int


@dataclass
class AvailableRoomType:
    room_type_id: str
    name: str
    base_price_cents: int
    currency: str
    max_adults: int
    max_children: int
    max_occupancy: int
    total_rooms: int
    available_rooms: int
    booked_rooms: int
