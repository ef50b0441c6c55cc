import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.models.users import UserRole
from reservations.schemas.rooms import UpdateRoomRequest
from reservations.utils.config import load_settings
from reservations.utils.custom_response import send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import (
    get_caller,
    parse_body,
    path_param,
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


def update_room(event, context):
    try:
        caller = get_caller(event)
        require_role(caller, (UserRole.MANAGER,), "update room status")
        room_id = path_param(event, "room_id")
        request_body = parse_body(event, UpdateRoomRequest)

        room = room_service.get_room(room_id)
        require_hotel_access(caller, room.hotel_id, "update rooms")
        room_service.update_room_status(room_id=room_id, status=request_body.status)
        return send_custom_response(
            200,
            "Room status updated successfully",
            {"room_id": room_id, "new_status": request_body.status.value},
        )

    except Exception as err:
        return error_response(err)
