"""Wires repositories and services around one DynamoDB table."""
from dataclasses import dataclass
from typing import Optional

from reservations.repository.booking_repo import BookingRepository
from reservations.repository.rate_plan_repo import RatePlanRepository
from reservations.repository.room_repo import RoomRepository
from reservations.repository.state_log_repo import StateLogRepository
from reservations.services.availability_service import AvailabilityService
from reservations.services.booking_service import BookingService
from reservations.services.hold_service import HoldService
from reservations.services.pricing_service import PricingService
from reservations.services.room_service import RoomService
from reservations.services.schedule_service import SchedulerService
from reservations.utils.config import Settings


@dataclass
class Services:
    booking_repo: BookingRepository
    room_repo: RoomRepository
    availability_service: AvailabilityService
    pricing_service: PricingService
    booking_service: BookingService
    hold_service: HoldService
    room_service: RoomService


def build_services(
    table, settings: Settings, scheduler: Optional[SchedulerService] = None
) -> Services:
    booking_repo = BookingRepository(table)
    room_repo = RoomRepository(table)
    rate_plan_repo = RatePlanRepository(table)
    state_log_repo = StateLogRepository(table)

    if scheduler is None and settings.scheduler_enabled:
        scheduler = SchedulerService(
            settings.expire_hold_lambda_arn,
            settings.scheduler_role_arn,
            region=settings.region,
        )

    availability_service = AvailabilityService(room_repo, booking_repo)
    pricing_service = PricingService(room_repo, rate_plan_repo, tax_rate=settings.tax_rate)
    booking_service = BookingService(
        booking_repo=booking_repo,
        room_repo=room_repo,
        availability_service=availability_service,
        state_log_repo=state_log_repo,
    )
    hold_service = HoldService(
        booking_repo=booking_repo,
        booking_service=booking_service,
        scheduler=scheduler,
    )
    return Services(
        booking_repo=booking_repo,
        room_repo=room_repo,
        availability_service=availability_service,
        pricing_service=pricing_service,
        booking_service=booking_service,
        hold_service=hold_service,
        room_service=RoomService(room_repo),
    )
