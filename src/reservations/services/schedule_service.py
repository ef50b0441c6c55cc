import boto3
from datetime import timezone, datetime
import json
import logging

logger = logging.getLogger(__name__)


class SchedulerService:
    """One-shot EventBridge Scheduler triggers that expire a soft hold on time."""

    def __init__(self, lambda_arn: str, role_arn: str, region="ap-south-1", client=None):
        self.client = client if client else boto3.client("scheduler", region_name=region)
        self.lambda_arn = lambda_arn
        self.role_arn = role_arn

    def _schedule_name(self, booking_id: str) -> str:
        return f"hold-expiry-{booking_id}"

    def schedule_hold_expiry(self, booking_id: str, expires_at: datetime) -> bool:
        schedule_name = self._schedule_name(booking_id)

        try:
            schedule_expression = self._to_at_expression(expires_at)
        except ValueError as e:
            logger.error(f"Invalid time format: {e}")
            raise e

        schedule_params = {
            "Name": schedule_name,
            "ScheduleExpression": schedule_expression,
            "ScheduleExpressionTimezone": "UTC",
            "FlexibleTimeWindow": {"Mode": "OFF"},
            "Target": {
                "Arn": self.lambda_arn,
                "RoleArn": self.role_arn,
                "Input": json.dumps({"booking_id": booking_id}),
            },
            "ActionAfterCompletion": "DELETE",
        }

        try:
            self.client.create_schedule(**schedule_params)
            logger.info(f"Scheduled hold expiry for {booking_id} at {schedule_expression}")
            return True

        except self.client.exceptions.ConflictException:
            logger.info(f"Schedule {schedule_name} exists. Updating target time.")
            self.client.update_schedule(**schedule_params)
            return True

        except Exception as e:
            logger.exception(f"Failed to schedule hold expiry for {booking_id}")
            raise e

    def cancel_hold_expiry(self, booking_id: str) -> bool:
        try:
            self.client.delete_schedule(Name=self._schedule_name(booking_id))
            logger.info(f"Removed hold expiry schedule for {booking_id}")
            return True
        except self.client.exceptions.ResourceNotFoundException:
            logger.info(f"No hold expiry schedule for {booking_id}")
            return False

    def _to_at_expression(self, dt: datetime) -> str:
        if isinstance(dt, str):
            dt = datetime.fromisoformat(dt)

        if dt.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware")

        utc_dt = dt.astimezone(timezone.utc)
        return f"at({utc_dt.strftime('%Y-%m-%dT%H:%M:%S')})"
