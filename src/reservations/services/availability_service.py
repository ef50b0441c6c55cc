import logging
from datetime import date, timedelta
from typing import List, Optional

from reservations.models.availability import (
    AvailabilityResult,
    AvailableRoomType,
    CalendarDay,
)
from reservations.models.bookings import ACTIVE_STATUSES
from reservations.models.rooms import Room
from reservations.repository.booking_repo import BookingRepository
from reservations.repository.room_repo import RoomRepository
from reservations.utils.custom_exceptions import InvalidDateRange, NoRoomsFound
from reservations.utils.datetime_normaliser import stays_overlap

logger = logging.getLogger(__name__)


def _require_range(check_in: date, check_out: date):
    if check_out <= check_in:
        raise InvalidDateRange(
            f"check_out {check_out} must be after check_in {check_in}"
        )


class AvailabilityService:
    def __init__(self, room_repo: RoomRepository, booking_repo: BookingRepository):
        self.room_repo = room_repo
        self.booking_repo = booking_repo

    def _sellable_rooms(self, hotel_id: str, room_type_id: str) -> List[Room]:
        return [
            room
            for room in self.room_repo.list_sellable_rooms_by_type(room_type_id)
            if room.hotel_id == hotel_id
        ]

    def _total_rooms(self, hotel_id: str, room_type_id: str) -> int:
        total = len(self._sellable_rooms(hotel_id, room_type_id))
        if total == 0:
            raise NoRoomsFound(room_type_id)
        return total

    def check_availability(
        self, hotel_id: str, room_type_id: str, check_in: date, check_out: date
    ) -> AvailabilityResult:
        _require_range(check_in, check_out)
        total_rooms = self._total_rooms(hotel_id, room_type_id)
        booked = self.booking_repo.count_overlapping_bookings(
            room_type_id, check_in, check_out, ACTIVE_STATUSES
        )
        available = max(0, total_rooms - booked)
        return AvailabilityResult(
            is_available=available > 0,
            available_count=available,
            total_rooms=total_rooms,
        )

    def get_available_room_ids(
        self, hotel_id: str, room_type_id: str, check_in: date, check_out: date
    ) -> List[str]:
        """Free rooms for the stay, in room-number order."""
        _require_range(check_in, check_out)
        rooms = self._sellable_rooms(hotel_id, room_type_id)
        if not rooms:
            return []
        booked = self.booking_repo.list_overlapping_booking_room_ids(
            room_type_id, check_in, check_out, ACTIVE_STATUSES
        )
        return [room.room_id for room in rooms if room.room_id not in booked]

    def is_room_available(self, room_id: str, check_in: date, check_out: date) -> bool:
        _require_range(check_in, check_out)
        room = self.room_repo.get_room_by_id(room_id)
        if room is None or not room.is_sellable:
            return False
        return not self.booking_repo.room_has_overlapping_booking(
            room_id, check_in, check_out
        )

    def get_availability_calendar(
        self, hotel_id: str, room_type_id: str, start_date: date, end_date: date
    ) -> List[CalendarDay]:
        """Availability for every day from ``start_date`` to ``end_date`` inclusive."""
        if end_date < start_date:
            raise InvalidDateRange(
                f"end_date {end_date} must not be before start_date {start_date}"
            )
        total_rooms = self._total_rooms(hotel_id, room_type_id)
        stays = self.booking_repo.list_overlapping_stays(
            room_type_id, start_date, end_date + timedelta(days=1), ACTIVE_STATUSES
        )

        calendar = []
        day = start_date
        while day <= end_date:
            next_day = day + timedelta(days=1)
            booked = sum(
                1
                for stay in stays
                if stays_overlap(day, next_day, stay.check_in, stay.check_out)
            )
            calendar.append(
                CalendarDay(
                    date=day,
                    available=max(0, total_rooms - booked),
                    booked=booked,
                    total=total_rooms,
                )
            )
            day = next_day
        return calendar

    def get_minimum_availability(
        self, hotel_id: str, room_type_id: str, check_in: date, check_out: date
    ) -> int:
        """Lowest availability over the nights of the stay."""
        _require_range(check_in, check_out)
        calendar = self.get_availability_calendar(
            hotel_id, room_type_id, check_in, check_out - timedelta(days=1)
        )
        if not calendar:
            return 0
        return min(day.available for day in calendar)

    def get_available_room_types(
        self,
        hotel_id: str,
        check_in: date,
        check_out: date,
        num_adults: Optional[int] = None,
        num_children: Optional[int] = None,
    ) -> List[AvailableRoomType]:
        _require_range(check_in, check_out)
        adults = num_adults or 1
        children = num_children or 0

        results = []
        for room_type in self.room_repo.list_room_types(hotel_id):
            if not room_type.is_active or not room_type.fits(adults, children):
                continue
            try:
                availability = self.check_availability(
                    hotel_id, room_type.room_type_id, check_in, check_out
                )
            except NoRoomsFound:
                logger.info(f"Room type {room_type.room_type_id} has no rooms, skipping")
                continue
            if availability.available_count <= 0:
                continue
            results.append(
                AvailableRoomType(
                    room_type_id=room_type.room_type_id,
                    name=room_type.name,
                    base_price_cents=room_type.base_price_cents,
                    currency=room_type.currency,
                    max_adults=room_type.max_adults,
                    max_children=room_type.max_children,
                    max_occupancy=room_type.max_occupancy,
                    total_rooms=availability.total_rooms,
                    available_rooms=availability.available_count,
                    booked_rooms=availability.total_rooms - availability.available_count,
                )
            )
        return results
