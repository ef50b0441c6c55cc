import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.models.bookings import BookingEvent
from reservations.schemas.bookings import StatusUpdateRequest
from reservations.services.state_machine import get_available_actions
from reservations.utils.config import load_settings
from reservations.utils.custom_exceptions import PermissionDenied
from reservations.utils.custom_response import as_data, send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import (
    get_caller,
    parse_body,
    path_param,
    works_at,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
booking_service = services.booking_service


def _check_permission(caller, booking, event: BookingEvent):
    if works_at(caller, booking.hotel_id):
        return
    if event == BookingEvent.CANCEL and booking.guest_id == caller.user_id:
        return
    raise PermissionDenied(f"Not allowed to apply {event.value} to this booking")


def update_booking_status(event, context):
    try:
        caller = get_caller(event)
        booking_id = path_param(event, "booking_id")
        request_body = parse_body(event, StatusUpdateRequest)

        booking = booking_service.get_booking(booking_id)
        _check_permission(caller, booking, request_body.event)

        updated = booking_service.update_booking_status(
            booking_id,
            request_body.event,
            reason=request_body.reason,
            payment_intent_id=request_body.payment_intent_id,
            charge_id=request_body.charge_id,
            actor_id=caller.user_id,
        )
        data = as_data(updated)
        data["available_actions"] = [e.value for e in get_available_actions(updated.status)]
        return send_custom_response(200, "Booking status updated successfully", data)

    except Exception as err:
        return error_response(err)
