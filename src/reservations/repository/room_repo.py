from botocore.exceptions import ClientError
import logging
from typing import Any, Dict, Optional, List
from boto3.dynamodb.conditions import Key
from reservations.models.rooms import Room, RoomStatus, RoomType
from reservations.repository.dynamo import error_code, query_all, to_int
from reservations.utils.custom_exceptions import NotFoundException, RoomAlreadyExists

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


def _room_sort_key(room: Room):
    return (room.room_number, room.room_id)


class RoomRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def _room_attributes(self, room: Room) -> Dict[str, Any]:
        item = {
            "room_id": room.room_id,
            "hotel_id": room.hotel_id,
            "room_type_id": room.room_type_id,
            "room_number": room.room_number,
            "room_status": room.status.value,
            "is_active": room.is_active,
        }
        if room.floor is not None:
            item["floor"] = room.floor
        return item

    def _room_from_item(self, item: Dict[str, Any]) -> Room:
        return Room(
            room_id=item["room_id"],
            hotel_id=item["hotel_id"],
            room_type_id=item["room_type_id"],
            room_number=item["room_number"],
            status=RoomStatus(item["room_status"]),
            floor=to_int(item.get("floor")),
            is_active=bool(item.get("is_active", True)),
        )

    def _room_type_from_item(self, item: Dict[str, Any]) -> RoomType:
        return RoomType(
            room_type_id=item["sk"].removeprefix("ROOMTYPE#"),
            hotel_id=item["pk"].removeprefix("HOTEL#"),
            name=item.get("name", ""),
            base_price_cents=int(item["base_price_cents"]),
            currency=item.get("currency", "USD"),
            max_adults=int(item.get("max_adults", 2)),
            max_children=int(item.get("max_children", 0)),
            max_occupancy=int(item.get("max_occupancy", 2)),
            is_active=bool(item.get("is_active", True)),
        )

    def get_room_type(self, hotel_id: str, room_type_id: str) -> Optional[RoomType]:
        try:
            response = self.table.get_item(
                Key={"pk": f"HOTEL#{hotel_id}", "sk": f"ROOMTYPE#{room_type_id}"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving room type {room_type_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._room_type_from_item(item)

    def list_room_types(self, hotel_id: str) -> List[RoomType]:
        try:
            items = list(
                query_all(
                    self.table,
                    KeyConditionExpression=(
                        Key("pk").eq(f"HOTEL#{hotel_id}")
                        & Key("sk").begins_with("ROOMTYPE#")
                    ),
                )
            )
        except ClientError as err:
            logger.error(f"Error retrieving room types for hotel {hotel_id}: {err}")
            raise
        return [self._room_type_from_item(item) for item in items]

    def add_room(self, room: Room):
        attributes = self._room_attributes(room)
        room_item = {"pk": f"ROOM#{room.room_id}", "sk": "DETAILS", **attributes}
        type_item = {
            "pk": f"ROOMTYPE#{room.room_type_id}",
            "sk": f"ROOM#{room.room_id}",
            **attributes,
        }
        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": room_item,
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": type_item,
                        }
                    },
                ]
            )
        except ClientError as err:
            if error_code(err) == "TransactionCanceledException":
                raise RoomAlreadyExists(f"room {room.room_id} already exists") from err
            logger.error(f"Error creating room {room.room_id}: {err}")
            raise

    def get_room_by_id(self, room_id: str) -> Optional[Room]:
        try:
            response = self.table.get_item(
                Key={"pk": f"ROOM#{room_id}", "sk": "DETAILS"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving room by id {room_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._room_from_item(item)

    def list_rooms_by_type(self, room_type_id: str) -> List[Room]:
        """Every room of a type, ordered by room number then id."""
        try:
            items = list(
                query_all(
                    self.table,
                    KeyConditionExpression=(
                        Key("pk").eq(f"ROOMTYPE#{room_type_id}")
                        & Key("sk").begins_with("ROOM#")
                    ),
                )
            )
        except ClientError as err:
            logger.error(f"Error retrieving rooms of type {room_type_id}: {err}")
            raise
        return sorted((self._room_from_item(item) for item in items), key=_room_sort_key)

    def list_sellable_rooms_by_type(self, room_type_id: str) -> List[Room]:
        return [room for room in self.list_rooms_by_type(room_type_id) if room.is_sellable]

    def count_active_rooms_by_type(self, room_type_id: str) -> int:
        return len(self.list_sellable_rooms_by_type(room_type_id))

    def update_room_status(self, room_id: str, status: RoomStatus):
        room = self.get_room_by_id(room_id)
        if room is None:
            raise NotFoundException("room", room_id, 404)

        def _update(key):
            return {
                "Update": {
                    "TableName": self.table.name,
                    "Key": key,
                    "UpdateExpression": "SET #attribute = :value",
                    "ExpressionAttributeNames": {"#attribute": "room_status"},
                    "ExpressionAttributeValues": {":value": status.value},
                    "ConditionExpression": "attribute_exists(pk)",
                }
            }

        try:
            self.client.transact_write_items(
                TransactItems=[
                    _update({"pk": f"ROOM#{room_id}", "sk": "DETAILS"}),
                    _update(
                        {"pk": f"ROOMTYPE#{room.room_type_id}", "sk": f"ROOM#{room_id}"}
                    ),
                ]
            )
        except ClientError as err:
            if error_code(err) == "TransactionCanceledException":
                raise NotFoundException("room", room_id, 404) from err
            logger.error(f"Error updating room {room_id} status: {err}")
            raise
