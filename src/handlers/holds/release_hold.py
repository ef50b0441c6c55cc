import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.utils.config import load_settings
from reservations.utils.custom_response import send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import (
    get_caller,
    path_param,
    require_guest_or_staff,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
booking_service = services.booking_service
hold_service = services.hold_service


def release_hold(event, context):
    try:
        caller = get_caller(event)
        booking_id = path_param(event, "booking_id")

        booking = booking_service.get_booking(booking_id)
        require_guest_or_staff(
            caller, booking.hotel_id, booking.guest_id, "release this hold"
        )

        hold_service.release_soft_hold(booking_id)
        return send_custom_response(200, "Hold released successfully", {"booking_id": booking_id})

    except Exception as err:
        return error_response(err)
