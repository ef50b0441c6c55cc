import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.models.users import UserRole
from reservations.schemas.bookings import CreateBookingRequest
from reservations.utils.config import load_settings
from reservations.utils.custom_response import as_data, send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import (
    get_caller,
    parse_body,
    require_hotel_access,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
booking_service = services.booking_service
pricing_service = services.pricing_service


def create_booking(event, context):
    try:
        caller = get_caller(event)
        request_body = parse_body(event, CreateBookingRequest)
        require_hotel_access(caller, request_body.hotel_id, "create bookings")

        # Guests always book for themselves.
        if caller.role == UserRole.CUSTOMER:
            request_body = request_body.model_copy(update={"guest_id": caller.user_id})

        validation = pricing_service.ensure_booking_price(
            request_body.hotel_id,
            request_body.room_type_id,
            request_body.check_in,
            request_body.check_out,
            request_body.total_price_cents,
        )
        # Stored amounts come from the server-side quote, not the request.
        quote = validation.pricing
        request_body = request_body.model_copy(
            update={
                "total_price_cents": quote.total_cents,
                "tax_cents": quote.tax_cents,
                "rate_plan_id": quote.applied_rate_plan_id,
                "currency": quote.currency,
            }
        )

        booking = booking_service.create_booking(request_body, actor_id=caller.user_id)
        return send_custom_response(201, "Booking created successfully", as_data(booking))

    except Exception as err:
        return error_response(err)
