import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.schemas.pricing import PriceCheckRequest, StayQuery
from reservations.services.pricing_service import format_price_breakdown
from reservations.utils.config import load_settings
from reservations.utils.custom_response import as_data, send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import query_params

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
pricing_service = services.pricing_service


def get_pricing(event, context):
    """Quote a stay, or check a client total when ``expected_total_cents`` is given."""
    try:
        params = query_params(event)

        if params.get("expected_total_cents"):
            check = PriceCheckRequest.model_validate(params)
            validation = pricing_service.validate_booking_price(
                check.hotel_id,
                check.room_type_id,
                check.check_in,
                check.check_out,
                check.expected_total_cents,
            )
            return send_custom_response(
                200, "Price validated successfully", as_data(validation)
            )

        query = StayQuery.model_validate(params)
        pricing = pricing_service.calculate_stay_price(
            query.hotel_id, query.room_type_id, query.check_in, query.check_out
        )
        data = as_data(pricing)
        data["breakdown_lines"] = format_price_breakdown(pricing.breakdown, pricing.currency)
        return send_custom_response(200, "Price calculated successfully", data)

    except Exception as err:
        return error_response(err)
