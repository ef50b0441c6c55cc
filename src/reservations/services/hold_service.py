"""Soft holds: short-lived pending bookings that reserve a room during checkout.

A hold is a pending booking with ``soft_hold_expires_at`` set. Holds are
extended in place, released by deleting the booking, and expired through the
booking lifecycle so the audit trail records them.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from reservations.models.bookings import Booking, BookingStatus
from reservations.models.holds import SoftHoldInfo, SoftHoldResult, SweepResult
from reservations.repository.booking_repo import BookingRepository
from reservations.schemas.bookings import CreateBookingRequest
from reservations.schemas.holds import SoftHoldRequest
from reservations.services.booking_service import BookingService
from reservations.services.schedule_service import SchedulerService
from reservations.utils.constants import (
    DEFAULT_EXTEND_MINUTES,
    MAX_EXTEND_MINUTES,
    MIN_EXTEND_MINUTES,
)
from reservations.utils.custom_exceptions import (
    HoldExpired,
    InvalidInput,
    InvalidTransition,
    NotFoundException,
)
from reservations.utils.datetime_normaliser import utc_now

logger = logging.getLogger(__name__)


class HoldService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        booking_service: BookingService,
        scheduler: Optional[SchedulerService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.booking_repo = booking_repo
        self.booking_service = booking_service
        self.scheduler = scheduler
        self.clock = clock or utc_now

    def _load(self, booking_id: str) -> Booking:
        booking = self.booking_repo.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("booking", booking_id, 404)
        return booking

    def _require_pending(self, booking: Booking, action: str):
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransition(
                current_state=booking.status.value,
                event=action,
                booking_id=booking.booking_id,
                message=(
                    f"Booking {booking.booking_id}: can only {action.lower().replace('_', ' ')} "
                    f"on pending bookings, current state is '{booking.status.value}'"
                ),
            )

    def create_soft_hold(
        self, req: SoftHoldRequest, actor_id: Optional[str] = None
    ) -> SoftHoldResult:
        booking = self.booking_service.create_booking(
            CreateBookingRequest(
                hotel_id=req.hotel_id,
                room_type_id=req.room_type_id,
                guest_id=req.guest_id or actor_id,
                check_in=req.check_in,
                check_out=req.check_out,
                num_adults=req.num_adults,
                num_children=req.num_children,
                total_price_cents=0,
                soft_hold_minutes=req.expires_in_minutes,
            ),
            actor_id=actor_id,
        )
        self._schedule(booking.booking_id, booking.soft_hold_expires_at)
        return SoftHoldResult(
            booking_id=booking.booking_id,
            room_id=booking.room_id,
            confirmation_code=booking.confirmation_code,
            expires_at=booking.soft_hold_expires_at,
        )

    def extend_soft_hold(
        self, booking_id: str, additional_minutes: int = DEFAULT_EXTEND_MINUTES
    ) -> SoftHoldResult:
        """Push the expiry of a live hold back by ``additional_minutes``."""
        if not MIN_EXTEND_MINUTES <= additional_minutes <= MAX_EXTEND_MINUTES:
            raise InvalidInput(
                f"additional_minutes must be between {MIN_EXTEND_MINUTES} "
                f"and {MAX_EXTEND_MINUTES}"
            )

        booking = self._load(booking_id)
        self._require_pending(booking, "EXTEND_HOLD")
        if booking.soft_hold_expires_at is None:
            raise InvalidTransition(
                current_state=booking.status.value,
                event="EXTEND_HOLD",
                booking_id=booking_id,
                message=f"Booking {booking_id} has no soft hold to extend",
            )

        now = self.clock()
        if booking.soft_hold_expires_at < now:
            raise HoldExpired(booking_id, booking.soft_hold_expires_at)

        new_expiry = booking.soft_hold_expires_at + timedelta(minutes=additional_minutes)
        updated = self.booking_repo.update_booking(
            booking,
            {"soft_hold_expires_at": new_expiry, "updated_at": now},
            event="EXTEND_HOLD",
        )
        logger.info(f"Extended hold on booking {booking_id} until {new_expiry.isoformat()}")
        self._schedule(booking_id, new_expiry)
        return SoftHoldResult(
            booking_id=updated.booking_id,
            room_id=updated.room_id,
            confirmation_code=updated.confirmation_code,
            expires_at=new_expiry,
        )

    def release_soft_hold(self, booking_id: str):
        booking = self._load(booking_id)
        self._require_pending(booking, "RELEASE_HOLD")
        self.booking_repo.delete_booking(booking)
        logger.info(f"Released hold on booking {booking_id}, room {booking.room_id}")
        self._unschedule(booking_id)

    def is_soft_hold_expired(self, booking_id: str) -> bool:
        booking = self._load(booking_id)
        if booking.status != BookingStatus.PENDING or booking.soft_hold_expires_at is None:
            return False
        return booking.soft_hold_expires_at < self.clock()

    def get_soft_hold_info(self, booking_id: str) -> SoftHoldInfo:
        booking = self._load(booking_id)
        expires_at = booking.soft_hold_expires_at
        if booking.status != BookingStatus.PENDING or expires_at is None:
            return SoftHoldInfo(is_active=False)

        now = self.clock()
        if expires_at < now:
            return SoftHoldInfo(is_active=False, expires_at=expires_at)

        remaining = math.ceil((expires_at - now).total_seconds() / 60)
        return SoftHoldInfo(is_active=True, expires_at=expires_at, remaining_minutes=remaining)

    def expire_soft_holds(self, now: Optional[datetime] = None) -> SweepResult:
        """Move every pending booking whose hold has lapsed to ``expired``.

        Safe to run repeatedly or concurrently: a booking that already left
        ``pending`` is counted as skipped.
        """
        now = now or self.clock()
        result = SweepResult()
        for booking_id in self.booking_repo.list_expired_holds(now):
            try:
                self.expire_hold(booking_id, now)
                result.expired_count += 1
            except InvalidTransition as err:
                logger.info(f"Skipping booking {booking_id}: {err}")
                result.skipped += 1
            except NotFoundException:
                logger.info(f"Skipping booking {booking_id}: no longer exists")
                result.skipped += 1
            except Exception as err:
                logger.exception(f"Failed to expire booking {booking_id}")
                result.errors.append(f"{booking_id}: {err}")

        logger.info(
            f"Hold sweep finished: {result.expired_count} expired, "
            f"{result.skipped} skipped, {len(result.errors)} failed"
        )
        return result

    def expire_hold(self, booking_id: str, now: Optional[datetime] = None) -> Booking:
        """Expire one hold, provided it is still pending and its time has passed."""
        now = now or self.clock()
        booking = self._load(booking_id)
        self._require_pending(booking, "EXPIRE")
        if booking.soft_hold_expires_at is None or booking.soft_hold_expires_at > now:
            raise InvalidTransition(
                current_state=booking.status.value,
                event="EXPIRE",
                booking_id=booking_id,
                message=f"Booking {booking_id}: soft hold has not expired yet",
            )
        return self.booking_service.expire_booking(booking_id)

    def _schedule(self, booking_id: str, expires_at: Optional[datetime]):
        if not self.scheduler or expires_at is None:
            return
        try:
            self.scheduler.schedule_hold_expiry(booking_id, expires_at)
        except Exception:
            logger.warning(
                f"Could not schedule expiry for booking {booking_id}; "
                f"the periodic sweep will expire it"
            )

    def _unschedule(self, booking_id: str):
        if not self.scheduler:
            return
        try:
            self.scheduler.cancel_hold_expiry(booking_id)
        except Exception:
            logger.warning(f"Could not remove expiry schedule for booking {booking_id}")
