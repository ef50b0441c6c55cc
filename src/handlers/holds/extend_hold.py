import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.schemas.holds import ExtendHoldRequest
from reservations.utils.config import load_settings
from reservations.utils.custom_response import as_data, send_custom_response
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


def extend_hold(event, context):
    try:
        caller = get_caller(event)
        booking_id = path_param(event, "booking_id")
        # An empty body extends by the default amount.
        request_body = ExtendHoldRequest.model_validate_json(event.get("body") or "{}")

        booking = booking_service.get_booking(booking_id)
        require_guest_or_staff(
            caller, booking.hotel_id, booking.guest_id, "extend this hold"
        )

        result = hold_service.extend_soft_hold(booking_id, request_body.additional_minutes)
        return send_custom_response(200, "Hold extended successfully", as_data(result))

    except Exception as err:
        return error_response(err)


def get_hold(event, context):
    try:
        caller = get_caller(event)
        booking_id = path_param(event, "booking_id")

        booking = booking_service.get_booking(booking_id)
        require_guest_or_staff(
            caller, booking.hotel_id, booking.guest_id, "view this hold"
        )

        info = hold_service.get_soft_hold_info(booking_id)
        return send_custom_response(200, "Hold fetched successfully", as_data(info))

    except Exception as err:
        return error_response(err)
