import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.models.users import UserRole
from reservations.schemas.rooms import AddRoomRequest
from reservations.utils.config import load_settings
from reservations.utils.custom_response import as_data, send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import (
    get_caller,
    parse_body,
    require_hotel_access,
    require_role,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
room_service = services.room_service


def add_room(event, context):
    try:
        caller = get_caller(event)
        require_role(caller, (UserRole.MANAGER, UserRole.ADMIN), "add rooms")
        request_body = parse_body(event, AddRoomRequest)
        require_hotel_access(caller, request_body.hotel_id, "add rooms")

        room = room_service.add_room(request_body)
        return send_custom_response(201, f"Room {room.room_id} added successfully", as_data(room))

    except Exception as err:
        return error_response(err)
