import logging
from reservations.models.rooms import Room, RoomStatus
from reservations.repository.room_repo import RoomRepository
from reservations.schemas.rooms import AddRoomRequest
from reservations.utils.custom_exceptions import NotFoundException

logger = logging.getLogger(__name__)


class RoomService:
    def __init__(self, room_repo: RoomRepository):
        self.room_repo = room_repo

    def add_room(self, req: AddRoomRequest) -> Room:
        room_type = self.room_repo.get_room_type(req.hotel_id, req.room_type_id)
        if room_type is None:
            raise NotFoundException("room type", req.room_type_id, 404)

        room = Room(
            room_id=req.room_id,
            hotel_id=req.hotel_id,
            room_type_id=req.room_type_id,
            room_number=req.room_number,
            status=req.status,
            floor=req.floor,
        )
        self.room_repo.add_room(room)
        logger.info(f"Added room {room.room_id} ({room.room_number}) to {room.room_type_id}")
        return room

    def get_room(self, room_id: str) -> Room:
        room = self.room_repo.get_room_by_id(room_id)
        if room is None:
            raise NotFoundException("room", room_id, 404)
        return room

    def update_room_status(self, room_id: str, status: RoomStatus):
        self.room_repo.update_room_status(room_id, status)
        logger.info(f"Room {room_id} is now {status.value}")
