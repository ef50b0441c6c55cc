from botocore.exceptions import ClientError
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Set
from boto3.dynamodb.conditions import Key
from reservations.models.bookings import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    PaymentStatus,
)
from reservations.repository.dynamo import (
    cancellation_codes,
    error_code,
    query_all,
    to_date,
    to_int,
)
from reservations.utils.constants import MAX_STAY
from reservations.utils.custom_exceptions import (
    ConfirmationCodeTaken,
    NoAvailableRooms,
    PersistenceFailure,
    StaleBooking,
)
from reservations.utils.datetime_normaliser import (
    each_night,
    from_iso_string,
    stays_overlap,
    to_iso_string,
)
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)

HOLDS_PK = "HOLDS"

_DATE_FIELDS = {"check_in", "check_out"}
_DATETIME_FIELDS = {
    "soft_hold_expires_at",
    "cancelled_at",
    "actual_check_in_at",
    "actual_check_out_at",
    "created_at",
    "updated_at",
}
_ENUM_FIELDS = {"status": "booking_status", "payment_status": "payment_status"}


@dataclass
class StayInterval:
    booking_id: str
    room_id: str
    check_in: date
    check_out: date
    status: BookingStatus


def _booking_key(booking_id: str) -> Dict[str, str]:
    return {"pk": f"BOOKING#{booking_id}", "sk": "DETAILS"}


def _confirmation_key(hotel_id: str, code: str) -> Dict[str, str]:
    return {"pk": f"HOTEL#{hotel_id}", "sk": f"CONFIRMATION#{code}"}


def _night_key(room_id: str, night: date) -> Dict[str, str]:
    return {"pk": f"ROOM#{room_id}", "sk": f"NIGHT#{night.isoformat()}"}


def _stay_key(booking: Booking) -> Dict[str, str]:
    return {
        "pk": f"ROOMTYPE#{booking.room_type_id}",
        "sk": f"STAY#{booking.check_in.isoformat()}#{booking.booking_id}",
    }


def _hold_stamp(moment: datetime) -> str:
    # Fixed-width timestamps keep the sort key ordered by time.
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _hold_key(expires_at: datetime, booking_id: str) -> Dict[str, str]:
    return {"pk": HOLDS_PK, "sk": f"EXPIRES#{_hold_stamp(expires_at)}#{booking_id}"}


def _attribute_name(field_name: str) -> str:
    return _ENUM_FIELDS.get(field_name, field_name)


def _serialize(field_name: str, value: Any) -> Any:
    if value is None:
        return None
    if field_name in _DATE_FIELDS:
        return value.isoformat()
    if field_name in _DATETIME_FIELDS:
        return to_iso_string(value)
    if field_name in _ENUM_FIELDS:
        return value.value
    return value


class BookingRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def _to_item(self, booking: Booking) -> Dict[str, Any]:
        item = dict(_booking_key(booking.booking_id))
        item["booking_id"] = booking.booking_id
        for field_name, value in vars(booking).items():
            if field_name == "booking_id" or value is None:
                continue
            item[_attribute_name(field_name)] = _serialize(field_name, value)
        return item

    def _from_item(self, item: Dict[str, Any]) -> Booking:
        def dt(name: str) -> Optional[datetime]:
            value = item.get(name)
            return from_iso_string(value) if value else None

        return Booking(
            booking_id=item["booking_id"],
            hotel_id=item["hotel_id"],
            room_id=item["room_id"],
            room_type_id=item["room_type_id"],
            check_in=to_date(item["check_in"]),
            check_out=to_date(item["check_out"]),
            confirmation_code=item["confirmation_code"],
            guest_id=item.get("guest_id"),
            num_adults=int(item.get("num_adults", 1)),
            num_children=int(item.get("num_children", 0)),
            status=BookingStatus(item["booking_status"]),
            payment_status=PaymentStatus(item.get("payment_status", "pending")),
            total_price_cents=int(item.get("total_price_cents", 0)),
            currency=item.get("currency", "USD"),
            tax_cents=int(item.get("tax_cents", 0)),
            rate_plan_id=item.get("rate_plan_id"),
            soft_hold_expires_at=dt("soft_hold_expires_at"),
            payment_intent_id=item.get("payment_intent_id"),
            charge_id=item.get("charge_id"),
            cancelled_at=dt("cancelled_at"),
            cancellation_reason=item.get("cancellation_reason"),
            actual_check_in_at=dt("actual_check_in_at"),
            actual_check_out_at=dt("actual_check_out_at"),
            special_requests=item.get("special_requests"),
            internal_notes=item.get("internal_notes"),
            booking_source=item.get("booking_source", "direct"),
            created_at=dt("created_at"),
            updated_at=dt("updated_at"),
            version=to_int(item.get("version")) or 1,
        )

    def _night_deletes(self, booking: Booking) -> List[Dict[str, Any]]:
        return [
            {"Delete": {"TableName": self.table.name, "Key": _night_key(booking.room_id, night)}}
            for night in each_night(booking.check_in, booking.check_out)
        ]

    def insert_booking(self, booking: Booking):
        """Write a booking together with its confirmation code and night locks.

        Each night of the stay is a conditional put on (room, night), so two
        active bookings can never hold the same room on the same night.
        """
        transact_items = [
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": self._to_item(booking),
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {
                        **_confirmation_key(booking.hotel_id, booking.confirmation_code),
                        "booking_id": booking.booking_id,
                    },
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            },
        ]
        for night in each_night(booking.check_in, booking.check_out):
            transact_items.append(
                {
                    "Put": {
                        "TableName": self.table.name,
                        "Item": {
                            **_night_key(booking.room_id, night),
                            "booking_id": booking.booking_id,
                        },
                        "ConditionExpression": "attribute_not_exists(pk)",
                    }
                }
            )
        transact_items.append(
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {
                        **_stay_key(booking),
                        "booking_id": booking.booking_id,
                        "room_id": booking.room_id,
                        "check_out": booking.check_out.isoformat(),
                        "booking_status": booking.status.value,
                    },
                }
            }
        )
        if booking.soft_hold_expires_at and booking.status == BookingStatus.PENDING:
            transact_items.append(
                {
                    "Put": {
                        "TableName": self.table.name,
                        "Item": {
                            **_hold_key(booking.soft_hold_expires_at, booking.booking_id),
                            "booking_id": booking.booking_id,
                        },
                    }
                }
            )

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as err:
            if error_code(err) == "TransactionCanceledException":
                codes = cancellation_codes(err)
                if len(codes) > 1 and codes[1] == "ConditionalCheckFailed":
                    raise ConfirmationCodeTaken(booking.confirmation_code) from err
                if any(code == "ConditionalCheckFailed" for code in codes[2:]):
                    raise NoAvailableRooms(
                        f"room {booking.room_id} is already booked between "
                        f"{booking.check_in} and {booking.check_out}"
                    ) from err
            logger.error(f"Error creating booking {booking.booking_id}: {err}")
            raise PersistenceFailure(
                f"Failed to create booking {booking.booking_id}"
            ) from err

    def get_booking_by_id(self, booking_id: str) -> Optional[Booking]:
        try:
            response = self.table.get_item(Key=_booking_key(booking_id))
        except ClientError as err:
            logger.error(f"Error retrieving booking {booking_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._from_item(item)

    def get_booking_by_confirmation_code(
        self, hotel_id: str, confirmation_code: str
    ) -> Optional[Booking]:
        code = confirmation_code.upper()
        try:
            response = self.table.get_item(Key=_confirmation_key(hotel_id, code))
        except ClientError as err:
            logger.error(f"Error retrieving confirmation {code}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self.get_booking_by_id(item["booking_id"])

    def update_booking(
        self, current: Booking, changes: Dict[str, Any], event: str = "UPDATE"
    ) -> Booking:
        """Apply ``changes`` to ``current`` if nobody else changed it first.

        The write is conditioned on the version and status that were read.
        When the booking leaves the active statuses its night locks and
        stay record are removed in the same transaction.
        """
        updated = replace(current, **changes, version=current.version + 1)

        set_parts = ["#version = :next_version"]
        remove_parts = []
        names = {"#version": "version", "#booking_status": "booking_status"}
        values: Dict[str, Any] = {
            ":next_version": updated.version,
            ":expected_version": current.version,
            ":expected_status": current.status.value,
        }
        for index, (field_name, value) in enumerate(changes.items()):
            placeholder = f"#f{index}"
            names[placeholder] = _attribute_name(field_name)
            if value is None:
                remove_parts.append(placeholder)
            else:
                set_parts.append(f"{placeholder} = :v{index}")
                values[f":v{index}"] = _serialize(field_name, value)

        update_expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            update_expression += " REMOVE " + ", ".join(remove_parts)

        transact_items = [
            {
                "Update": {
                    "TableName": self.table.name,
                    "Key": _booking_key(current.booking_id),
                    "UpdateExpression": update_expression,
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": values,
                    "ConditionExpression": (
                        "#version = :expected_version AND "
                        "#booking_status = :expected_status"
                    ),
                }
            }
        ]

        if current.is_active and not updated.is_active:
            transact_items.extend(self._night_deletes(current))
            transact_items.append(
                {"Delete": {"TableName": self.table.name, "Key": _stay_key(current)}}
            )
        elif updated.status != current.status:
            transact_items.append(
                {
                    "Update": {
                        "TableName": self.table.name,
                        "Key": _stay_key(current),
                        "UpdateExpression": "SET #booking_status = :status",
                        "ExpressionAttributeNames": {"#booking_status": "booking_status"},
                        "ExpressionAttributeValues": {":status": updated.status.value},
                    }
                }
            )

        old_hold = (
            current.soft_hold_expires_at
            if current.status == BookingStatus.PENDING
            else None
        )
        new_hold = (
            updated.soft_hold_expires_at
            if updated.status == BookingStatus.PENDING
            else None
        )
        if old_hold != new_hold:
            if old_hold:
                transact_items.append(
                    {
                        "Delete": {
                            "TableName": self.table.name,
                            "Key": _hold_key(old_hold, current.booking_id),
                        }
                    }
                )
            if new_hold:
                transact_items.append(
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                **_hold_key(new_hold, current.booking_id),
                                "booking_id": current.booking_id,
                            },
                        }
                    }
                )

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as err:
            if error_code(err) == "TransactionCanceledException":
                codes = cancellation_codes(err)
                if codes and codes[0] == "ConditionalCheckFailed":
                    raise StaleBooking(
                        booking_id=current.booking_id,
                        current_state=current.status.value,
                        event=event,
                    ) from err
            logger.error(f"Error updating booking {current.booking_id}: {err}")
            raise PersistenceFailure(
                f"Failed to update booking {current.booking_id}"
            ) from err
        return updated

    def delete_booking(self, current: Booking):
        transact_items = [
            {
                "Delete": {
                    "TableName": self.table.name,
                    "Key": _booking_key(current.booking_id),
                    "ConditionExpression": (
                        "#version = :expected_version AND "
                        "#booking_status = :expected_status"
                    ),
                    "ExpressionAttributeNames": {
                        "#version": "version",
                        "#booking_status": "booking_status",
                    },
                    "ExpressionAttributeValues": {
                        ":expected_version": current.version,
                        ":expected_status": current.status.value,
                    },
                }
            },
            {
                "Delete": {
                    "TableName": self.table.name,
                    "Key": _confirmation_key(current.hotel_id, current.confirmation_code),
                }
            },
        ]
        if current.is_active:
            transact_items.extend(self._night_deletes(current))
            transact_items.append(
                {"Delete": {"TableName": self.table.name, "Key": _stay_key(current)}}
            )
        if current.status == BookingStatus.PENDING and current.soft_hold_expires_at:
            transact_items.append(
                {
                    "Delete": {
                        "TableName": self.table.name,
                        "Key": _hold_key(current.soft_hold_expires_at, current.booking_id),
                    }
                }
            )

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as err:
            if error_code(err) == "TransactionCanceledException":
                codes = cancellation_codes(err)
                if codes and codes[0] == "ConditionalCheckFailed":
                    raise StaleBooking(
                        booking_id=current.booking_id,
                        current_state=current.status.value,
                        event="RELEASE",
                    ) from err
            logger.error(f"Error deleting booking {current.booking_id}: {err}")
            raise PersistenceFailure(
                f"Failed to delete booking {current.booking_id}"
            ) from err

    def list_overlapping_stays(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        statuses: Iterable[BookingStatus] = ACTIVE_STATUSES,
    ) -> List[StayInterval]:
        """Stays of a room type whose half-open interval overlaps the request.

        Stays are keyed by check-in date; no stay is longer than MAX_STAY, so
        anything that could overlap starts within MAX_STAY nights before
        ``check_in`` and strictly before ``check_out``.
        """
        wanted = {BookingStatus(s) for s in statuses}
        lower = (check_in - timedelta(days=MAX_STAY)).isoformat()
        upper = check_out.isoformat()
        stays = []
        try:
            items = query_all(
                self.table,
                KeyConditionExpression=(
                    Key("pk").eq(f"ROOMTYPE#{room_type_id}")
                    & Key("sk").between(f"STAY#{lower}", f"STAY#{upper}")
                ),
            )
            for item in items:
                stay_check_in = date.fromisoformat(item["sk"].split("#")[1])
                stay_check_out = date.fromisoformat(item["check_out"])
                status = BookingStatus(item["booking_status"])
                if status not in wanted:
                    continue
                if stays_overlap(check_in, check_out, stay_check_in, stay_check_out):
                    stays.append(
                        StayInterval(
                            booking_id=item["booking_id"],
                            room_id=item["room_id"],
                            check_in=stay_check_in,
                            check_out=stay_check_out,
                            status=status,
                        )
                    )
        except ClientError as err:
            logger.error(
                f"Error retrieving stays for {room_type_id} between {lower} and {upper}: {err}"
            )
            raise
        return stays

    def count_overlapping_bookings(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        statuses: Iterable[BookingStatus] = ACTIVE_STATUSES,
    ) -> int:
        return len(
            self.list_overlapping_stays(room_type_id, check_in, check_out, statuses)
        )

    def list_overlapping_booking_room_ids(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        statuses: Iterable[BookingStatus] = ACTIVE_STATUSES,
    ) -> Set[str]:
        return {
            stay.room_id
            for stay in self.list_overlapping_stays(
                room_type_id, check_in, check_out, statuses
            )
        }

    def room_has_overlapping_booking(
        self, room_id: str, check_in: date, check_out: date
    ) -> bool:
        last_night = check_out - timedelta(days=1)
        try:
            response = self.table.query(
                KeyConditionExpression=(
                    Key("pk").eq(f"ROOM#{room_id}")
                    & Key("sk").between(
                        f"NIGHT#{check_in.isoformat()}",
                        f"NIGHT#{last_night.isoformat()}",
                    )
                ),
                Limit=1,
            )
        except ClientError as err:
            logger.error(f"Error checking nights for room {room_id}: {err}")
            raise
        return bool(response.get("Items"))

    def list_expired_holds(self, now: Optional[datetime] = None) -> List[str]:
        now = now or datetime.now(timezone.utc)
        try:
            items = query_all(
                self.table,
                KeyConditionExpression=(
                    Key("pk").eq(HOLDS_PK)
                    & Key("sk").lt(f"EXPIRES#{_hold_stamp(now)}")
                ),
            )
            return [item["booking_id"] for item in items]
        except ClientError as err:
            logger.error(f"Error listing expired holds: {err}")
            raise
