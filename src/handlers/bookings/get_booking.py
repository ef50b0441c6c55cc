import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.models.users import HOTEL_ROLES
from reservations.utils.config import load_settings
from reservations.utils.custom_exceptions import NotFoundException
from reservations.utils.custom_response import as_data, send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import get_caller, path_param, works_at

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
booking_service = services.booking_service


def _visible_to(caller, booking):
    # Bookings outside the caller's reach are reported as missing rather than forbidden.
    if works_at(caller, booking.hotel_id):
        return
    if caller.role in HOTEL_ROLES or booking.guest_id != caller.user_id:
        raise NotFoundException("booking", booking.booking_id, 404)


def get_booking(event, context):
    try:
        caller = get_caller(event)
        booking = booking_service.get_booking(path_param(event, "booking_id"))
        _visible_to(caller, booking)
        return send_custom_response(200, "Booking fetched successfully", as_data(booking))
    except Exception as err:
        return error_response(err)


def get_booking_by_confirmation(event, context):
    try:
        caller = get_caller(event)
        booking = booking_service.get_booking_by_confirmation(
            path_param(event, "hotel_id"), path_param(event, "confirmation_code")
        )
        _visible_to(caller, booking)
        return send_custom_response(200, "Booking fetched successfully", as_data(booking))
    except Exception as err:
        return error_response(err)


def get_booking_history(event, context):
    try:
        caller = get_caller(event)
        booking_id = path_param(event, "booking_id")
        _visible_to(caller, booking_service.get_booking(booking_id))
        history = booking_service.get_booking_history(booking_id)
        return send_custom_response(
            200, "Booking history fetched successfully", as_data(history)
        )
    except Exception as err:
        return error_response(err)
