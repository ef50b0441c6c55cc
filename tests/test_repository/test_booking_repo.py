import unittest
from unittest.mock import MagicMock
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from botocore.exceptions import ClientError

from reservations.models.bookings import Booking, BookingStatus, PaymentStatus
from reservations.repository.booking_repo import BookingRepository
from reservations.utils.custom_exceptions import (
    ConfirmationCodeTaken,
    NoAvailableRooms,
    PersistenceFailure,
    StaleBooking,
)

NOW = datetime(2025, 12, 1, 10, 0, tzinfo=timezone.utc)


def _cancelled(*codes):
    return ClientError(
        {
            "Error": {"Code": "TransactionCanceledException", "Message": "cancelled"},
            "CancellationReasons": [{"Code": code} for code in codes],
        },
        "TransactWriteItems",
    )


class TestBookingRepository(unittest.TestCase):

    def setUp(self):
        self.table = MagicMock()
        self.table.name = "test-table"
        self.client = MagicMock()
        self.table.meta.client = self.client
        self.repo = BookingRepository(self.table, self.client)

        self.booking = Booking(
            booking_id="b1",
            hotel_id="h1",
            room_id="r1",
            room_type_id="rt1",
            check_in=date(2025, 12, 15),
            check_out=date(2025, 12, 17),
            confirmation_code="ABC123",
            guest_id="g1",
            total_price_cents=22400,
            soft_hold_expires_at=NOW + timedelta(minutes=15),
            created_at=NOW,
            updated_at=NOW,
        )

    def _transact_items(self):
        return self.client.transact_write_items.call_args.kwargs["TransactItems"]

    def test_insert_writes_booking_code_nights_stay_and_hold(self):
        self.repo.insert_booking(self.booking)

        items = self._transact_items()
        keys = [
            (op["Put"]["Item"]["pk"], op["Put"]["Item"]["sk"]) for op in items
        ]
        self.assertEqual(
            [
                ("BOOKING#b1", "DETAILS"),
                ("HOTEL#h1", "CONFIRMATION#ABC123"),
                ("ROOM#r1", "NIGHT#2025-12-15"),
                ("ROOM#r1", "NIGHT#2025-12-16"),
                ("ROOMTYPE#rt1", "STAY#2025-12-15#b1"),
                ("HOLDS", "EXPIRES#2025-12-01T10:15:00.000000+00:00#b1"),
            ],
            keys,
        )
        booking_item = items[0]["Put"]["Item"]
        self.assertEqual("pending", booking_item["booking_status"])
        self.assertEqual("2025-12-15", booking_item["check_in"])
        self.assertNotIn("charge_id", booking_item)
        for op in items[:4]:
            self.assertEqual("attribute_not_exists(pk)", op["Put"]["ConditionExpression"])

    def test_insert_code_collision(self):
        self.client.transact_write_items.side_effect = _cancelled(
            "None", "ConditionalCheckFailed", "None", "None", "None", "None"
        )

        with self.assertRaises(ConfirmationCodeTaken):
            self.repo.insert_booking(self.booking)

    def test_insert_night_conflict_means_no_rooms(self):
        self.client.transact_write_items.side_effect = _cancelled(
            "None", "None", "None", "ConditionalCheckFailed", "None", "None"
        )

        with self.assertRaises(NoAvailableRooms):
            self.repo.insert_booking(self.booking)

    def test_insert_other_failure(self):
        self.client.transact_write_items.side_effect = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "oops"}},
            "TransactWriteItems",
        )

        with self.assertRaises(PersistenceFailure):
            self.repo.insert_booking(self.booking)

    def test_get_booking_round_trips_item(self):
        item = self.repo._to_item(self.booking)
        item["total_price_cents"] = Decimal("22400")
        item["version"] = Decimal("1")
        self.table.get_item.return_value = {"Item": item}

        booking = self.repo.get_booking_by_id("b1")

        self.assertEqual(self.booking, booking)

    def test_get_booking_missing(self):
        self.table.get_item.return_value = {}

        self.assertIsNone(self.repo.get_booking_by_id("missing"))

    def test_get_by_confirmation_code_uppercases(self):
        self.table.get_item.side_effect = [
            {"Item": {"booking_id": "b1"}},
            {"Item": self.repo._to_item(self.booking)},
        ]

        booking = self.repo.get_booking_by_confirmation_code("h1", "abc123")

        self.assertEqual("b1", booking.booking_id)
        first_key = self.table.get_item.call_args_list[0].kwargs["Key"]
        self.assertEqual({"pk": "HOTEL#h1", "sk": "CONFIRMATION#ABC123"}, first_key)

    def test_update_is_conditioned_on_version_and_status(self):
        updated = self.repo.update_booking(
            self.booking,
            {"status": BookingStatus.CONFIRMED, "payment_status": PaymentStatus.PAID,
             "soft_hold_expires_at": None, "updated_at": NOW},
            event="PAYMENT_RECEIVED",
        )

        self.assertEqual(2, updated.version)
        self.assertEqual(BookingStatus.CONFIRMED, updated.status)
        items = self._transact_items()
        update = items[0]["Update"]
        self.assertIn("REMOVE", update["UpdateExpression"])
        self.assertEqual(1, update["ExpressionAttributeValues"][":expected_version"])
        self.assertEqual("pending", update["ExpressionAttributeValues"][":expected_status"])
        # stay record follows the status, hold index entry is removed
        self.assertEqual("confirmed", items[1]["Update"]["ExpressionAttributeValues"][":status"])
        self.assertEqual("HOLDS", items[2]["Delete"]["Key"]["pk"])

    def test_leaving_active_statuses_releases_nights(self):
        confirmed = Booking(**{**vars(self.booking), "status": BookingStatus.CONFIRMED,
                               "soft_hold_expires_at": None})

        self.repo.update_booking(confirmed, {"status": BookingStatus.CANCELLED})

        deleted = [op["Delete"]["Key"] for op in self._transact_items()[1:]]
        self.assertEqual(
            [
                {"pk": "ROOM#r1", "sk": "NIGHT#2025-12-15"},
                {"pk": "ROOM#r1", "sk": "NIGHT#2025-12-16"},
                {"pk": "ROOMTYPE#rt1", "sk": "STAY#2025-12-15#b1"},
            ],
            deleted,
        )

    def test_update_conflict_raises_stale_booking(self):
        self.client.transact_write_items.side_effect = _cancelled("ConditionalCheckFailed", "None")

        with self.assertRaises(StaleBooking) as ctx:
            self.repo.update_booking(
                self.booking, {"status": BookingStatus.EXPIRED}, event="EXPIRE"
            )
        self.assertEqual("EXPIRE", ctx.exception.event)

    def test_delete_removes_every_related_item(self):
        self.repo.delete_booking(self.booking)

        items = self._transact_items()
        self.assertEqual(6, len(items))
        self.assertEqual({"pk": "BOOKING#b1", "sk": "DETAILS"}, items[0]["Delete"]["Key"])
        self.assertEqual("HOLDS", items[-1]["Delete"]["Key"]["pk"])

    def test_list_overlapping_stays_filters_intervals_and_status(self):
        self.table.query.return_value = {
            "Items": [
                {"sk": "STAY#2025-12-10#b1", "booking_id": "b1", "room_id": "r1",
                 "check_out": "2025-12-15", "booking_status": "confirmed"},
                {"sk": "STAY#2025-12-14#b2", "booking_id": "b2", "room_id": "r2",
                 "check_out": "2025-12-16", "booking_status": "pending"},
                {"sk": "STAY#2025-12-16#b3", "booking_id": "b3", "room_id": "r3",
                 "check_out": "2025-12-18", "booking_status": "checked_out"},
            ]
        }

        stays = self.repo.list_overlapping_stays("rt1", date(2025, 12, 15), date(2025, 12, 17))

        self.assertEqual(["b2"], [stay.booking_id for stay in stays])
        self.assertEqual(1, self.repo.count_overlapping_bookings(
            "rt1", date(2025, 12, 15), date(2025, 12, 17)))
        self.assertEqual({"r2"}, self.repo.list_overlapping_booking_room_ids(
            "rt1", date(2025, 12, 15), date(2025, 12, 17)))

    def test_room_has_overlapping_booking(self):
        self.table.query.return_value = {"Items": [{"pk": "ROOM#r1"}]}

        self.assertTrue(
            self.repo.room_has_overlapping_booking("r1", date(2025, 12, 15), date(2025, 12, 17))
        )
        self.assertEqual(1, self.table.query.call_args.kwargs["Limit"])

    def test_list_expired_holds(self):
        self.table.query.side_effect = [
            {"Items": [{"booking_id": "b1"}], "LastEvaluatedKey": {"pk": "HOLDS"}},
            {"Items": [{"booking_id": "b2"}]},
        ]

        self.assertEqual(["b1", "b2"], self.repo.list_expired_holds(NOW))

    def test_query_error_is_reraised(self):
        self.table.query.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow"}},
            "Query",
        )

        with self.assertRaises(ClientError):
            self.repo.list_expired_holds(NOW)


if __name__ == "__main__":
    unittest.main()
