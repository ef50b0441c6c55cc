from botocore.exceptions import ClientError
import logging
from typing import List
from uuid import uuid4
from boto3.dynamodb.conditions import Key
from reservations.models.bookings import BookingStateLogEntry, BookingStatus
from reservations.repository.dynamo import query_all
from reservations.utils.datetime_normaliser import from_iso_string, to_iso_string

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


class StateLogRepository:
    """Append-only audit trail of booking status changes."""

    def __init__(self, table: Table):
        self.table = table

    def append(self, entry: BookingStateLogEntry):
        changed_at = to_iso_string(entry.changed_at)
        item = {
            "pk": f"BOOKING#{entry.booking_id}",
            "sk": f"LOG#{changed_at}#{uuid4().hex}",
            "booking_id": entry.booking_id,
            "from_state": entry.from_state.value,
            "to_state": entry.to_state.value,
            "changed_at": changed_at,
        }
        if entry.changed_by:
            item["changed_by"] = entry.changed_by
        if entry.reason:
            item["reason"] = entry.reason
        try:
            self.table.put_item(
                Item=item, ConditionExpression="attribute_not_exists(sk)"
            )
        except ClientError as err:
            logger.error(f"Error logging state change for {entry.booking_id}: {err}")
            raise

    def list_for_booking(self, booking_id: str) -> List[BookingStateLogEntry]:
        """History of a booking, newest first."""
        try:
            items = list(
                query_all(
                    self.table,
                    KeyConditionExpression=(
                        Key("pk").eq(f"BOOKING#{booking_id}")
                        & Key("sk").begins_with("LOG#")
                    ),
                    ScanIndexForward=False,
                )
            )
        except ClientError as err:
            logger.error(f"Error retrieving history of booking {booking_id}: {err}")
            raise
        return [
            BookingStateLogEntry(
                booking_id=booking_id,
                from_state=BookingStatus(item["from_state"]),
                to_state=BookingStatus(item["to_state"]),
                changed_by=item.get("changed_by"),
                reason=item.get("reason"),
                changed_at=from_iso_string(item["changed_at"]),
            )
            for item in items
        ]
