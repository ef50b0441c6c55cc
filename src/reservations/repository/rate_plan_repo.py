from botocore.exceptions import ClientError
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List
from boto3.dynamodb.conditions import Key
from reservations.models.rooms import RatePlan
from reservations.repository.dynamo import query_all, to_date, to_int
from reservations.utils.datetime_normaliser import from_iso_string

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RatePlanRepository:
    def __init__(self, table: Table):
        self.table = table

    def _from_item(self, item: Dict[str, Any]) -> RatePlan:
        days = item.get("applicable_days")
        created_at = item.get("created_at")
        return RatePlan(
            rate_plan_id=item["sk"].removeprefix("RATEPLAN#"),
            hotel_id=item["hotel_id"],
            room_type_id=item["pk"].removeprefix("ROOMTYPE#"),
            name=item.get("name", ""),
            price_cents=int(item["price_cents"]),
            valid_from=to_date(item["valid_from"]),
            valid_to=to_date(item["valid_to"]),
            priority=int(item.get("priority", 0)),
            min_stay_nights=int(item.get("min_stay_nights", 1)),
            max_stay_nights=to_int(item.get("max_stay_nights")),
            min_advance_booking_days=int(item.get("min_advance_booking_days", 0)),
            max_advance_booking_days=to_int(item.get("max_advance_booking_days")),
            applicable_days=tuple(sorted(int(d) for d in days)) if days else None,
            is_refundable=bool(item.get("is_refundable", True)),
            cancellation_deadline_hours=to_int(item.get("cancellation_deadline_hours")),
            is_active=bool(item.get("is_active", True)),
            created_at=from_iso_string(created_at) if created_at else None,
        )

    def list_active_rate_plans(self, room_type_id: str) -> List[RatePlan]:
        """Active plans of a room type, highest priority first.

        Plans sharing a priority keep their declaration (created_at) order.
        """
        try:
            items = list(
                query_all(
                    self.table,
                    KeyConditionExpression=(
                        Key("pk").eq(f"ROOMTYPE#{room_type_id}")
                        & Key("sk").begins_with("RATEPLAN#")
                    ),
                )
            )
        except ClientError as err:
            logger.error(f"Error retrieving rate plans for {room_type_id}: {err}")
            raise

        plans = [self._from_item(item) for item in items]
        plans = [plan for plan in plans if plan.is_active]
        plans.sort(key=lambda plan: plan.created_at or _EPOCH)
        plans.sort(key=lambda plan: plan.priority, reverse=True)
        return plans
