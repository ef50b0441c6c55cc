import importlib
import os
import unittest
from unittest.mock import MagicMock, patch

from reservations.models.holds import SweepResult
from reservations.utils.custom_exceptions import InvalidTransition, NotFoundException


class ExpireHoldsTests(unittest.TestCase):
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
        import handlers.holds.expire_holds as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop()
        cls.env.stop()

    def setUp(self):
        self.p_one = patch.object(self.mod.hold_service, "expire_hold")
        self.p_sweep = patch.object(self.mod.hold_service, "expire_soft_holds")
        self.mock_one = self.p_one.start()
        self.mock_sweep = self.p_sweep.start()

    def tearDown(self):
        self.p_one.stop()
        self.p_sweep.stop()

    def test_scheduled_expiry_of_one_booking(self):
        result = self.mod.expire_holds({"booking_id": "b1"}, None)

        self.assertEqual({"expired_count": 1, "skipped": 0, "errors": []}, result)
        self.mock_one.assert_called_once_with("b1")
        self.mock_sweep.assert_not_called()

    def test_scheduled_expiry_after_payment(self):
        self.mock_one.side_effect = InvalidTransition(
            current_state="confirmed", event="EXPIRE", booking_id="b1"
        )

        result = self.mod.expire_holds({"booking_id": "b1"}, None)

        self.assertEqual(0, result["expired_count"])
        self.assertEqual(1, result["skipped"])

    def test_scheduled_expiry_of_released_hold(self):
        self.mock_one.side_effect = NotFoundException("booking", "b1")

        result = self.mod.expire_holds({"booking_id": "b1"}, None)

        self.assertEqual(1, result["skipped"])

    def test_periodic_sweep(self):
        self.mock_sweep.return_value = SweepResult(expired_count=3, skipped=1)

        result = self.mod.expire_holds({"source": "aws.events"}, None)

        self.assertEqual({"expired_count": 3, "skipped": 1, "errors": []}, result)
        self.mock_one.assert_not_called()

    def test_sweep_reports_errors(self):
        self.mock_sweep.return_value = SweepResult(expired_count=1, errors=["b2: boom"])

        result = self.mod.expire_holds(None, None)

        self.assertEqual(["b2: boom"], result["errors"])
