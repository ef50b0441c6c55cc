import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import uuid4

from reservations.models.bookings import (
    Booking,
    BookingEvent,
    BookingStateLogEntry,
    BookingStatus,
    PaymentStatus,
)
from reservations.repository.booking_repo import BookingRepository
from reservations.repository.room_repo import RoomRepository
from reservations.repository.state_log_repo import StateLogRepository
from reservations.schemas.bookings import CreateBookingRequest
from reservations.services import state_machine
from reservations.services.availability_service import AvailabilityService
from reservations.utils.constants import (
    CONFIRMATION_CODE_ATTEMPTS,
    CONFIRMATION_CODE_LENGTH,
)
from reservations.utils.custom_exceptions import (
    ConfirmationCodeTaken,
    InvalidInput,
    NoAvailableRooms,
    NotFoundException,
    PersistenceFailure,
)
from reservations.utils.datetime_normaliser import utc_now

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_confirmation_code(length: int = CONFIRMATION_CODE_LENGTH) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def parse_event(event: Union[str, BookingEvent]) -> BookingEvent:
    if isinstance(event, BookingEvent):
        return event
    try:
        return BookingEvent(str(event).upper())
    except ValueError:
        valid = ", ".join(e.value for e in BookingEvent)
        raise InvalidInput(f"Unknown event '{event}'. Valid events: {valid}") from None


class BookingService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        room_repo: RoomRepository,
        availability_service: AvailabilityService,
        state_log_repo: StateLogRepository,
        current_user_id: Optional[Callable[[], Optional[str]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        code_generator: Callable[[], str] = generate_confirmation_code,
    ):
        self.booking_repo = booking_repo
        self.room_repo = room_repo
        self.availability_service = availability_service
        self.state_log_repo = state_log_repo
        self.current_user_id = current_user_id
        self.clock = clock or utc_now
        self.code_generator = code_generator

    def _actor(self, actor_id: Optional[str]) -> Optional[str]:
        if actor_id:
            return actor_id
        if self.current_user_id:
            return self.current_user_id()
        return None

    def create_booking(
        self, req: CreateBookingRequest, actor_id: Optional[str] = None
    ) -> Booking:
        """Allocate the first free room of the requested type and persist a pending booking."""
        room_type = self.room_repo.get_room_type(req.hotel_id, req.room_type_id)
        if room_type is None:
            raise NotFoundException("room type", req.room_type_id, 404)
        if not room_type.fits(req.num_adults, req.num_children):
            raise InvalidInput(
                f"Room type {req.room_type_id} allows at most {room_type.max_adults} "
                f"adults, {room_type.max_children} children and "
                f"{room_type.max_occupancy} guests in total"
            )

        room_ids = self.availability_service.get_available_room_ids(
            req.hotel_id, req.room_type_id, req.check_in, req.check_out
        )
        if not room_ids:
            raise NoAvailableRooms(
                f"No rooms of type {req.room_type_id} available from "
                f"{req.check_in} to {req.check_out}"
            )

        now = self.clock()
        hold_expires_at = (
            now + timedelta(minutes=req.soft_hold_minutes)
            if req.soft_hold_minutes
            else None
        )
        booking = Booking(
            booking_id=str(uuid4()),
            hotel_id=req.hotel_id,
            room_id=room_ids[0],
            room_type_id=req.room_type_id,
            check_in=req.check_in,
            check_out=req.check_out,
            confirmation_code="",
            guest_id=req.guest_id,
            num_adults=req.num_adults,
            num_children=req.num_children,
            total_price_cents=req.total_price_cents,
            currency=req.currency or room_type.currency,
            tax_cents=req.tax_cents,
            rate_plan_id=req.rate_plan_id,
            soft_hold_expires_at=hold_expires_at,
            special_requests=req.special_requests,
            internal_notes=req.internal_notes,
            booking_source=req.booking_source,
            created_at=now,
            updated_at=now,
        )
        self._insert_with_unique_code(booking)
        logger.info(
            f"Created booking {booking.booking_id} in room {booking.room_id} "
            f"({booking.check_in} to {booking.check_out})"
        )

        self._log_state_change(
            booking.booking_id,
            BookingStatus.PENDING,
            BookingStatus.PENDING,
            self._actor(actor_id),
            "Booking created",
        )
        return booking

    def _insert_with_unique_code(self, booking: Booking):
        for attempt in range(1, CONFIRMATION_CODE_ATTEMPTS + 1):
            booking.confirmation_code = self.code_generator()
            try:
                self.booking_repo.insert_booking(booking)
                return
            except ConfirmationCodeTaken:
                logger.info(
                    f"Confirmation code collision for booking {booking.booking_id} "
                    f"(attempt {attempt})"
                )
        raise PersistenceFailure(
            f"Could not allocate a unique confirmation code for booking "
            f"{booking.booking_id}"
        )

    def _load(self, booking_id: str) -> Booking:
        booking = self.booking_repo.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("booking", booking_id, 404)
        return booking

    def update_booking_status(
        self,
        booking_id: str,
        event: Union[str, BookingEvent],
        reason: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
        charge_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Booking:
        """Apply a lifecycle event to a booking.

        The transition is checked before anything is written; the update
        itself only lands if the booking is still at the version that was read.
        """
        event = parse_event(event)
        booking = self._load(booking_id)
        next_state = state_machine.transition(booking.status, event, booking_id)

        if state_machine.requires_reason(event) and not reason:
            raise InvalidInput(f"Event '{event.value}' requires a reason")
        if state_machine.requires_payment_info(event) and not payment_intent_id:
            raise InvalidInput(f"Event '{event.value}' requires a payment_intent_id")

        now = self.clock()
        changes: Dict[str, Any] = {"status": next_state, "updated_at": now}

        if event == BookingEvent.PAYMENT_RECEIVED:
            changes["payment_status"] = PaymentStatus.PAID
            if payment_intent_id:
                changes["payment_intent_id"] = payment_intent_id
            if charge_id:
                changes["charge_id"] = charge_id
        elif event == BookingEvent.PAYMENT_FAILED:
            changes["payment_status"] = PaymentStatus.FAILED
        elif event == BookingEvent.CANCEL:
            changes["cancelled_at"] = now
            changes["cancellation_reason"] = reason
        elif event == BookingEvent.CHECK_IN:
            changes["actual_check_in_at"] = now
        elif event == BookingEvent.CHECK_OUT:
            changes["actual_check_out_at"] = now

        if (
            booking.status == BookingStatus.PENDING
            and next_state != BookingStatus.PENDING
            and booking.soft_hold_expires_at is not None
        ):
            changes["soft_hold_expires_at"] = None

        updated = self.booking_repo.update_booking(booking, changes, event=event.value)
        logger.info(
            f"Booking {booking_id}: {booking.status.value} -> {next_state.value} "
            f"via {event.value}"
        )

        self._log_state_change(
            booking_id, booking.status, next_state, self._actor(actor_id), reason
        )
        return updated

    def _log_state_change(
        self,
        booking_id: str,
        from_state: BookingStatus,
        to_state: BookingStatus,
        changed_by: Optional[str],
        reason: Optional[str],
    ):
        try:
            self.state_log_repo.append(
                BookingStateLogEntry(
                    booking_id=booking_id,
                    from_state=from_state,
                    to_state=to_state,
                    changed_by=changed_by,
                    reason=reason,
                    changed_at=self.clock(),
                )
            )
        except Exception:
            logger.exception(f"Failed to record state change for booking {booking_id}")

    def confirm_booking(
        self,
        booking_id: str,
        payment_intent_id: Optional[str] = None,
        charge_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Booking:
        return self.update_booking_status(
            booking_id,
            BookingEvent.PAYMENT_RECEIVED,
            payment_intent_id=payment_intent_id,
            charge_id=charge_id,
            actor_id=actor_id,
        )

    def cancel_booking(
        self, booking_id: str, reason: str, actor_id: Optional[str] = None
    ) -> Booking:
        return self.update_booking_status(
            booking_id, BookingEvent.CANCEL, reason=reason, actor_id=actor_id
        )

    def check_in_guest(self, booking_id: str, actor_id: Optional[str] = None) -> Booking:
        return self.update_booking_status(
            booking_id, BookingEvent.CHECK_IN, actor_id=actor_id
        )

    def check_out_guest(self, booking_id: str, actor_id: Optional[str] = None) -> Booking:
        return self.update_booking_status(
            booking_id, BookingEvent.CHECK_OUT, actor_id=actor_id
        )

    def mark_no_show(self, booking_id: str, actor_id: Optional[str] = None) -> Booking:
        return self.update_booking_status(
            booking_id, BookingEvent.MARK_NO_SHOW, actor_id=actor_id
        )

    def expire_booking(self, booking_id: str) -> Booking:
        return self.update_booking_status(
            booking_id, BookingEvent.EXPIRE, reason="Soft hold expired", actor_id="system"
        )

    def get_booking(self, booking_id: str) -> Booking:
        return self._load(booking_id)

    def get_booking_by_confirmation(self, hotel_id: str, confirmation_code: str) -> Booking:
        booking = self.booking_repo.get_booking_by_confirmation_code(
            hotel_id, confirmation_code
        )
        if booking is None:
            raise NotFoundException("confirmation code", confirmation_code.upper(), 404)
        return booking

    def get_booking_history(self, booking_id: str) -> List[BookingStateLogEntry]:
        self._load(booking_id)
        return self.state_log_repo.list_for_booking(booking_id)
