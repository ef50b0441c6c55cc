import logging
from boto3 import resource

from reservations.bootstrap import build_services
from reservations.utils.config import load_settings
from reservations.utils.custom_exceptions import InvalidTransition, NotFoundException

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
hold_service = services.hold_service


def expire_holds(event, context):
    """Expire lapsed holds.

    Invoked with ``{"booking_id": ...}`` by the per-hold schedule, or with any
    other payload by the periodic sweep rule.
    """
    booking_id = (event or {}).get("booking_id")

    if booking_id:
        try:
            hold_service.expire_hold(booking_id)
            logger.info(f"Expired hold on booking {booking_id}")
            return {"expired_count": 1, "skipped": 0, "errors": []}
        except (InvalidTransition, NotFoundException) as err:
            logger.info(f"Nothing to expire for booking {booking_id}: {err}")
            return {"expired_count": 0, "skipped": 1, "errors": []}

    result = hold_service.expire_soft_holds()
    if not result.success:
        logger.error(f"Hold sweep finished with errors: {result.errors}")
    return {
        "expired_count": result.expired_count,
        "skipped": result.skipped,
        "errors": result.errors,
    }
