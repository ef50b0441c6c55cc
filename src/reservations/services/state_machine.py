"""Booking state machine.

Pure functions over (status, event). Nothing here touches dates, prices or
storage; the booking service performs side effects around a transition.

    pending -> confirmed -> checked_in -> checked_out
    pending -> cancelled | expired
    confirmed -> cancelled | no_show
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from reservations.models.bookings import BookingEvent, BookingStatus
from reservations.utils.custom_exceptions import InvalidTransition


STATE_TRANSITIONS: Dict[BookingStatus, Dict[BookingEvent, BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingEvent.PAYMENT_RECEIVED: BookingStatus.CONFIRMED,
        BookingEvent.PAYMENT_FAILED: BookingStatus.CANCELLED,
        BookingEvent.PAYMENT_TIMEOUT: BookingStatus.EXPIRED,
        BookingEvent.CANCEL: BookingStatus.CANCELLED,
        BookingEvent.EXPIRE: BookingStatus.EXPIRED,
    },
    BookingStatus.CONFIRMED: {
        BookingEvent.CHECK_IN: BookingStatus.CHECKED_IN,
        BookingEvent.CANCEL: BookingStatus.CANCELLED,
        BookingEvent.MARK_NO_SHOW: BookingStatus.NO_SHOW,
    },
    BookingStatus.CHECKED_IN: {
        BookingEvent.CHECK_OUT: BookingStatus.CHECKED_OUT,
    },
    BookingStatus.CHECKED_OUT: {},
    BookingStatus.CANCELLED: {},
    BookingStatus.NO_SHOW: {},
    BookingStatus.EXPIRED: {},
}

TERMINAL_STATES = frozenset(
    {
        BookingStatus.CHECKED_OUT,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
        BookingStatus.EXPIRED,
    }
)


@dataclass(frozen=True)
class EventInfo:
    label: str
    description: str
    requires_reason: bool = False
    requires_payment_info: bool = False
    automated: bool = False


EVENT_METADATA: Dict[BookingEvent, EventInfo] = {
    BookingEvent.PAYMENT_RECEIVED: EventInfo(
        "Payment Received",
        "Payment has been successfully processed",
        requires_payment_info=True,
    ),
    BookingEvent.PAYMENT_FAILED: EventInfo(
        "Payment Failed", "Payment processing failed", requires_reason=True
    ),
    BookingEvent.PAYMENT_TIMEOUT: EventInfo(
        "Payment Timeout",
        "Payment window expired without completion",
        automated=True,
    ),
    BookingEvent.CANCEL: EventInfo(
        "Cancel Booking", "Booking cancelled by guest or hotel", requires_reason=True
    ),
    BookingEvent.CHECK_IN: EventInfo("Check In", "Guest has checked in to the hotel"),
    BookingEvent.CHECK_OUT: EventInfo("Check Out", "Guest has checked out"),
    BookingEvent.MARK_NO_SHOW: EventInfo(
        "Mark as No-Show", "Guest did not arrive for their reservation"
    ),
    BookingEvent.EXPIRE: EventInfo(
        "Expire", "Booking expired (soft hold timeout)", automated=True
    ),
}

STATE_LABELS: Dict[BookingStatus, str] = {
    BookingStatus.PENDING: "Pending Payment",
    BookingStatus.CONFIRMED: "Confirmed",
    BookingStatus.CHECKED_IN: "Checked In",
    BookingStatus.CHECKED_OUT: "Checked Out",
    BookingStatus.CANCELLED: "Cancelled",
    BookingStatus.NO_SHOW: "No Show",
    BookingStatus.EXPIRED: "Expired",
}


@dataclass(frozen=True)
class TransitionCheck:
    valid: bool
    next_state: Optional[BookingStatus] = None
    error: Optional[str] = None


def get_next_state(
    current_state: BookingStatus, event: BookingEvent
) -> Optional[BookingStatus]:
    return STATE_TRANSITIONS.get(current_state, {}).get(event)


def can_transition(current_state: BookingStatus, event: BookingEvent) -> bool:
    return get_next_state(current_state, event) is not None


def is_terminal_state(state: BookingStatus) -> bool:
    return state in TERMINAL_STATES


def is_active_state(state: BookingStatus) -> bool:
    return not is_terminal_state(state)


def get_available_actions(current_state: BookingStatus) -> List[BookingEvent]:
    return list(STATE_TRANSITIONS.get(current_state, {}).keys())


def get_possible_next_states(current_state: BookingStatus) -> List[BookingStatus]:
    return list(STATE_TRANSITIONS.get(current_state, {}).values())


def validate_transition(
    current_state: BookingStatus, event: BookingEvent
) -> TransitionCheck:
    if is_terminal_state(current_state):
        return TransitionCheck(
            valid=False,
            error=(
                f"Cannot apply '{event.value}' to terminal state "
                f"'{current_state.value}'. Available actions: none"
            ),
        )

    next_state = get_next_state(current_state, event)
    if next_state is None:
        actions = ", ".join(e.value for e in get_available_actions(current_state))
        return TransitionCheck(
            valid=False,
            error=(
                f"Invalid event '{event.value}' for state '{current_state.value}'. "
                f"Available actions: {actions or 'none'}"
            ),
        )
    return TransitionCheck(valid=True, next_state=next_state)


def transition(
    current_state: BookingStatus,
    event: BookingEvent,
    booking_id: Optional[str] = None,
) -> BookingStatus:
    """Return the state reached by applying ``event``, or raise InvalidTransition."""
    check = validate_transition(current_state, event)
    if not check.valid:
        message = check.error
        if booking_id:
            message = f"Booking {booking_id}: {message}"
        raise InvalidTransition(
            current_state=current_state.value,
            event=event.value,
            valid_events=[e.value for e in get_available_actions(current_state)],
            booking_id=booking_id,
            message=message,
        )
    return check.next_state


def requires_reason(event: BookingEvent) -> bool:
    return EVENT_METADATA[event].requires_reason


def requires_payment_info(event: BookingEvent) -> bool:
    return EVENT_METADATA[event].requires_payment_info


def is_automated_event(event: BookingEvent) -> bool:
    return EVENT_METADATA[event].automated


def get_event_label(event: BookingEvent) -> str:
    return EVENT_METADATA[event].label


def get_state_label(state: BookingStatus) -> str:
    return STATE_LABELS.get(state, state.value)
