import importlib
import json
import os
import unittest
from unittest.mock import MagicMock, patch
from datetime import date

from reservations.models.availability import (
    AvailabilityResult,
    AvailableRoomType,
    CalendarDay,
)
from reservations.utils.custom_exceptions import NoRoomsFound


class GetAvailabilityTests(unittest.TestCase):
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
        import handlers.rooms.get_availability as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def setUp(self):
        self.p_service = patch.object(self.mod, "availability_service")
        self.service = self.p_service.start()

    def tearDown(self):
        self.p_service.stop()

    def test_single_room_type(self):
        self.service.check_availability.return_value = AvailabilityResult(True, 2, 3)
        self.service.get_minimum_availability.return_value = 1

        resp = self.mod.get_availability(
            {"queryStringParameters": {"hotel_id": "h1", "room_type_id": "rt1",
                                       "check_in": "2025-12-15", "check_out": "2025-12-17"}},
            None,
        )

        data = json.loads(resp["body"])["data"]
        self.assertEqual(200, resp["statusCode"])
        self.assertEqual(2, data["available_count"])
        self.assertEqual(1, data["minimum_available"])

    def test_calendar(self):
        self.service.get_availability_calendar.return_value = [
            CalendarDay(date(2025, 12, 15), 2, 1, 3)
        ]

        resp = self.mod.get_availability(
            {"queryStringParameters": {"hotel_id": "h1", "room_type_id": "rt1",
                                       "start_date": "2025-12-15", "end_date": "2025-12-15"}},
            None,
        )

        self.assertEqual("2025-12-15", json.loads(resp["body"])["data"][0]["date"])
        self.service.get_availability_calendar.assert_called_once_with(
            "h1", "rt1", date(2025, 12, 15), date(2025, 12, 15)
        )

    def test_room_type_search(self):
        self.service.get_available_room_types.return_value = [
            AvailableRoomType("rt1", "Deluxe", 10000, "USD", 2, 0, 2, 3, 3, 0)
        ]

        resp = self.mod.get_availability(
            {"queryStringParameters": {"hotel_id": "h1", "check_in": "2025-12-15",
                                       "check_out": "2025-12-17", "num_adults": "2"}},
            None,
        )

        self.assertEqual("rt1", json.loads(resp["body"])["data"][0]["room_type_id"])
        self.service.get_available_room_types.assert_called_once_with(
            "h1", date(2025, 12, 15), date(2025, 12, 17), num_adults=2, num_children=None
        )

    def test_calendar_needs_room_type(self):
        resp = self.mod.get_availability(
            {"queryStringParameters": {"hotel_id": "h1", "start_date": "2025-12-15",
                                       "end_date": "2025-12-16"}},
            None,
        )

        self.assertEqual(400, resp["statusCode"])

    def test_room_type_without_rooms_returns_409(self):
        self.service.check_availability.side_effect = NoRoomsFound("rt1")

        resp = self.mod.get_availability(
            {"queryStringParameters": {"hotel_id": "h1", "room_type_id": "rt1",
                                       "check_in": "2025-12-15", "check_out": "2025-12-17"}},
            None,
        )

        self.assertEqual(409, resp["statusCode"])
