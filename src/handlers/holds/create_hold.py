import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.models.users import UserRole
from reservations.schemas.holds import SoftHoldRequest
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
hold_service = services.hold_service


def create_hold(event, context):
    try:
        caller = get_caller(event)
        request_body = parse_body(event, SoftHoldRequest)
        require_hotel_access(caller, request_body.hotel_id, "hold rooms")
        if caller.role == UserRole.CUSTOMER:
            request_body = request_body.model_copy(update={"guest_id": caller.user_id})

        result = hold_service.create_soft_hold(request_body, actor_id=caller.user_id)
        return send_custom_response(201, "Room held successfully", as_data(result))

    except Exception as err:
        return error_response(err)
