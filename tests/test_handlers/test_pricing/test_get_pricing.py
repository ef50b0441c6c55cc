import importlib
import json
import os
import unittest
from unittest.mock import MagicMock, patch
from datetime import date

from reservations.models.pricing import (
    BreakdownType,
    PriceBreakdownItem,
    PriceValidation,
    PricingResult,
)
from reservations.utils.custom_exceptions import NotFoundException


class GetPricingTests(unittest.TestCase):
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
        import handlers.pricing.get_pricing as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def setUp(self):
        service = self.mod.pricing_service
        self.p_calc = patch.object(service, "calculate_stay_price")
        self.p_validate = patch.object(service, "validate_booking_price")
        self.mock_calc = self.p_calc.start()
        self.mock_validate = self.p_validate.start()

    def tearDown(self):
        self.p_calc.stop()
        self.p_validate.stop()

    def _event(self, **params):
        query = {
            "hotel_id": "h1",
            "room_type_id": "rt1",
            "check_in": "2025-12-15",
            "check_out": "2025-12-17",
        }
        query.update(params)
        return {"queryStringParameters": query}

    def test_quote(self):
        self.mock_calc.return_value = PricingResult(
            hotel_id="h1",
            room_type_id="rt1",
            check_in=date(2025, 12, 15),
            check_out=date(2025, 12, 17),
            nights=2,
            base_price_cents=20000,
            subtotal_cents=20000,
            tax_cents=2400,
            fee_cents=0,
            total_cents=22400,
            currency="USD",
            breakdown=[
                PriceBreakdownItem(BreakdownType.BASE, "Room rate (2 nights)", 20000, 10000, 2),
                PriceBreakdownItem(BreakdownType.TAX, "Taxes and fees (12%)", 2400),
            ],
        )

        resp = self.mod.get_pricing(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        data = json.loads(resp["body"])["data"]
        self.assertEqual(22400, data["total_cents"])
        self.assertEqual("base", data["breakdown"][0]["type"])
        self.assertEqual("Taxes and fees (12%): $24.00", data["breakdown_lines"][1])
        self.mock_calc.assert_called_once_with(
            "h1", "rt1", date(2025, 12, 15), date(2025, 12, 17)
        )

    def test_validate_when_expected_total_given(self):
        self.mock_validate.return_value = PriceValidation(False, 22400, 400)

        resp = self.mod.get_pricing(self._event(expected_total_cents="22000"), None)

        data = json.loads(resp["body"])["data"]
        self.assertFalse(data["is_valid"])
        self.assertEqual(400, data["difference"])
        self.mock_calc.assert_not_called()

    def test_missing_params_returns_400(self):
        resp = self.mod.get_pricing({"queryStringParameters": None}, None)

        self.assertEqual(400, resp["statusCode"])

    def test_unknown_room_type_returns_404(self):
        self.mock_calc.side_effect = NotFoundException("room type", "rt1")

        resp = self.mod.get_pricing(self._event(), None)

        self.assertEqual(404, resp["statusCode"])
