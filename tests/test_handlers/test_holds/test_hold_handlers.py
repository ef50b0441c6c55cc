import importlib
import json
import os
import unittest
from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

from reservations.models.bookings import Booking
from reservations.models.holds import SoftHoldInfo, SoftHoldResult
from reservations.utils.custom_exceptions import HoldExpired, InvalidTransition, NoAvailableRooms

EXPIRES = datetime(2025, 12, 1, 10, 15, tzinfo=timezone.utc)


def _booking(guest_id="g1"):
    return Booking(
        booking_id="b1",
        hotel_id="h1",
        room_id="r1",
        room_type_id="rt1",
        check_in=date(2025, 12, 15),
        check_out=date(2025, 12, 17),
        confirmation_code="ABC123",
        guest_id=guest_id,
        soft_hold_expires_at=EXPIRES,
    )


def _result():
    return SoftHoldResult(
        booking_id="b1", room_id="r1", confirmation_code="ABC123", expires_at=EXPIRES
    )


def _auth(user_id="g1", role="CUSTOMER", hotel_id="h1"):
    return {"authorizer": {"user_id": user_id, "role": role, "hotel_id": hotel_id}}


class HoldHandlerCase:
    module_name = ""

    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(
            os.environ,
            {"TABLE_NAME": "test-table", "EXPIRE_HOLD_LAMBDA_ARN": "", "SCHEDULER_ROLE_ARN": ""},
            clear=False,
        )
        cls.env.start()
        cls.resource = patch("boto3.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        cls.mod = importlib.reload(importlib.import_module(cls.module_name))

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()


class CreateHoldTests(HoldHandlerCase, unittest.TestCase):
    module_name = "handlers.holds.create_hold"

    def setUp(self):
        self.p_create = patch.object(
            self.mod.hold_service, "create_soft_hold", return_value=_result()
        )
        self.mock_create = self.p_create.start()

    def tearDown(self):
        self.p_create.stop()

    def _event(self, body, role="CUSTOMER", hotel_id="h1"):
        return {"body": json.dumps(body), "requestContext": _auth(role=role, hotel_id=hotel_id)}

    def _body(self, **overrides):
        body = {
            "hotel_id": "h1",
            "room_type_id": "rt1",
            "check_in": "2025-12-15",
            "check_out": "2025-12-17",
        }
        body.update(overrides)
        return body

    def test_customer_hold_is_for_themselves(self):
        resp = self.mod.create_hold(self._event(self._body(guest_id="someone-else")), None)

        self.assertEqual(201, resp["statusCode"])
        req = self.mock_create.call_args.args[0]
        self.assertEqual("g1", req.guest_id)
        self.assertEqual(15, req.expires_in_minutes)
        self.assertEqual("ABC123", json.loads(resp["body"])["data"]["confirmation_code"])

    def test_staff_may_hold_for_guest(self):
        resp = self.mod.create_hold(
            self._event(self._body(guest_id="g9"), role="STAFF"), None
        )

        self.assertEqual(201, resp["statusCode"])
        self.assertEqual("g9", self.mock_create.call_args.args[0].guest_id)

    def test_staff_cannot_hold_at_another_hotel(self):
        resp = self.mod.create_hold(
            self._event(self._body(guest_id="g9"), role="STAFF", hotel_id="h2"), None
        )

        self.assertEqual(403, resp["statusCode"])
        self.mock_create.assert_not_called()

    def test_hold_duration_out_of_range(self):
        resp = self.mod.create_hold(self._event(self._body(expires_in_minutes=61)), None)

        self.assertEqual(400, resp["statusCode"])
        self.mock_create.assert_not_called()

    def test_no_rooms_left(self):
        self.mock_create.side_effect = NoAvailableRooms("No rooms of type rt1 available")

        resp = self.mod.create_hold(self._event(self._body()), None)

        self.assertEqual(409, resp["statusCode"])


class ExtendHoldTests(HoldHandlerCase, unittest.TestCase):
    module_name = "handlers.holds.extend_hold"

    def setUp(self):
        self.p_get = patch.object(
            self.mod.booking_service, "get_booking", return_value=_booking()
        )
        self.p_extend = patch.object(
            self.mod.hold_service, "extend_soft_hold", return_value=_result()
        )
        self.p_info = patch.object(
            self.mod.hold_service,
            "get_soft_hold_info",
            return_value=SoftHoldInfo(is_active=True, expires_at=EXPIRES, remaining_minutes=5),
        )
        self.mock_get = self.p_get.start()
        self.mock_extend = self.p_extend.start()
        self.mock_info = self.p_info.start()

    def tearDown(self):
        self.p_get.stop()
        self.p_extend.stop()
        self.p_info.stop()

    def _event(self, body=None, user_id="g1", role="CUSTOMER", hotel_id="h1"):
        return {
            "pathParameters": {"booking_id": "b1"},
            "body": body,
            "requestContext": _auth(user_id, role, hotel_id),
        }

    def test_extend_uses_default_minutes(self):
        resp = self.mod.extend_hold(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_extend.assert_called_once_with("b1", 10)

    def test_extend_with_minutes(self):
        resp = self.mod.extend_hold(self._event(body='{"additional_minutes": 20}'), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_extend.assert_called_once_with("b1", 20)

    def test_extend_too_long(self):
        resp = self.mod.extend_hold(self._event(body='{"additional_minutes": 31}'), None)

        self.assertEqual(400, resp["statusCode"])
        self.mock_extend.assert_not_called()

    def test_extend_other_guests_hold(self):
        resp = self.mod.extend_hold(self._event(user_id="g2"), None)

        self.assertEqual(403, resp["statusCode"])
        self.mock_extend.assert_not_called()

    def test_extend_lapsed_hold(self):
        self.mock_extend.side_effect = HoldExpired("b1", EXPIRES)

        resp = self.mod.extend_hold(self._event(), None)

        self.assertEqual(409, resp["statusCode"])

    def test_get_hold(self):
        resp = self.mod.get_hold(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        data = json.loads(resp["body"])["data"]
        self.assertTrue(data["is_active"])
        self.assertEqual(5, data["remaining_minutes"])

    def test_staff_can_view_hotel_hold(self):
        resp = self.mod.get_hold(self._event(user_id="s1", role="STAFF"), None)

        self.assertEqual(200, resp["statusCode"])

    def test_staff_of_another_hotel_cannot_extend(self):
        resp = self.mod.extend_hold(self._event(user_id="s1", role="STAFF", hotel_id="h2"), None)

        self.assertEqual(403, resp["statusCode"])
        self.mock_extend.assert_not_called()


class ReleaseHoldTests(HoldHandlerCase, unittest.TestCase):
    module_name = "handlers.holds.release_hold"

    def setUp(self):
        self.p_get = patch.object(
            self.mod.booking_service, "get_booking", return_value=_booking()
        )
        self.p_release = patch.object(self.mod.hold_service, "release_soft_hold")
        self.mock_get = self.p_get.start()
        self.mock_release = self.p_release.start()

    def tearDown(self):
        self.p_get.stop()
        self.p_release.stop()

    def _event(self, user_id="g1"):
        return {"pathParameters": {"booking_id": "b1"}, "requestContext": _auth(user_id)}

    def test_release(self):
        resp = self.mod.release_hold(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_release.assert_called_once_with("b1")

    def test_release_confirmed_booking(self):
        self.mock_release.side_effect = InvalidTransition(
            current_state="confirmed", event="RELEASE_HOLD", booking_id="b1"
        )

        resp = self.mod.release_hold(self._event(), None)

        self.assertEqual(409, resp["statusCode"])

    def test_release_other_guests_hold(self):
        resp = self.mod.release_hold(self._event(user_id="g2"), None)

        self.assertEqual(403, resp["statusCode"])
        self.mock_release.assert_not_called()
