from typing import Iterable, Optional


class InvalidInput(ValueError):
    pass


class InvalidDateRange(InvalidInput):
    pass


class NotFoundException(Exception):
    def __init__(self, resource: str, identifier: str, status_code: int = 404):
        self.resource = resource
        self.identifier = identifier
        self.status_code = status_code

    def __str__(self):
        return f"{self.resource} '{self.identifier}' not found"


class NoAvailableRooms(Exception):
    pass


class NoRoomsFound(Exception):
    def __init__(self, room_type_id: str):
        self.room_type_id = room_type_id
        super().__init__(f"No rooms found for room type '{room_type_id}'")


class InvalidTransition(Exception):
    def __init__(
        self,
        current_state: str,
        event: str,
        valid_events: Iterable[str] = (),
        booking_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.current_state = current_state
        self.event = event
        self.valid_events = list(valid_events)
        self.booking_id = booking_id
        if message is None:
            allowed = ", ".join(self.valid_events) or "none"
            message = (
                f"Invalid event '{event}' for state '{current_state}'. "
                f"Available actions: {allowed}"
            )
            if booking_id:
                message = f"Booking {booking_id}: {message}"
        super().__init__(message)


class StaleBooking(InvalidTransition):
    def __init__(self, booking_id: str, current_state: str, event: str):
        super().__init__(
            current_state=current_state,
            event=event,
            booking_id=booking_id,
            message=(
                f"Booking {booking_id} was modified concurrently while in state "
                f"'{current_state}'; event '{event}' was not applied"
            ),
        )


class HoldExpired(Exception):
    def __init__(self, booking_id: str, expired_at):
        self.booking_id = booking_id
        self.expired_at = expired_at
        super().__init__(
            f"Soft hold for booking {booking_id} expired at {expired_at.isoformat()}"
        )


class PriceMismatch(Exception):
    def __init__(self, expected_total_cents: int, calculated_total_cents: int):
        self.expected_total_cents = expected_total_cents
        self.calculated_total_cents = calculated_total_cents
        super().__init__(
            f"Submitted total {expected_total_cents} does not match "
            f"calculated total {calculated_total_cents}"
        )


class PersistenceFailure(Exception):
    pass


class ConfirmationCodeTaken(Exception):
    pass


class PermissionDenied(Exception):
    pass


class RoomAlreadyExists(Exception):
    pass


class Unauthorized(Exception):
    pass
