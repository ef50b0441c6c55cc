"""Stay pricing.

A stay is priced at one nightly rate: the first eligible rate plan in
priority order, or the room type's base price. Tax is applied to the
subtotal and rounded half-up to whole cents.
"""
import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, List, Optional

from reservations.models.pricing import (
    BreakdownType,
    PriceBreakdownItem,
    PriceValidation,
    PricingResult,
)
from reservations.models.rooms import RatePlan
from reservations.repository.rate_plan_repo import RatePlanRepository
from reservations.repository.room_repo import RoomRepository
from reservations.utils.constants import DEFAULT_TAX_RATE
from reservations.utils.datetime_normaliser import utc_now
from reservations.utils.custom_exceptions import (
    InvalidDateRange,
    NotFoundException,
    PriceMismatch,
)

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "INR": "₹"}


def calculate_nights(check_in: date, check_out: date) -> int:
    nights = (check_out - check_in).days
    if nights <= 0:
        raise InvalidDateRange(
            f"check_out {check_out} must be after check_in {check_in}"
        )
    return nights


def days_in_advance(check_in: date, today: date) -> int:
    return (check_in - today).days


def weekday_number(day: date) -> int:
    """Day of week with Sunday as 0, the convention rate plans are stored in."""
    return (day.weekday() + 1) % 7


def is_plan_eligible(
    plan: RatePlan, check_in: date, check_out: date, nights: int, today: date
) -> bool:
    if check_in < plan.valid_from or check_out > plan.valid_to:
        return False

    if nights < plan.min_stay_nights:
        return False
    if plan.max_stay_nights is not None and nights > plan.max_stay_nights:
        return False

    advance = days_in_advance(check_in, today)
    if advance < plan.min_advance_booking_days:
        return False
    if (
        plan.max_advance_booking_days is not None
        and advance > plan.max_advance_booking_days
    ):
        return False

    if plan.applicable_days and weekday_number(check_in) not in plan.applicable_days:
        return False
    return True


def select_rate_plan(
    plans: Iterable[RatePlan],
    check_in: date,
    check_out: date,
    nights: int,
    today: date,
) -> Optional[RatePlan]:
    """First eligible plan by descending priority; equal priorities keep list order."""
    ordered = sorted(plans, key=lambda plan: plan.priority, reverse=True)
    for plan in ordered:
        if is_plan_eligible(plan, check_in, check_out, nights, today):
            return plan
    return None


def format_price(amount_cents: int, currency: str = "USD") -> str:
    amount = (Decimal(abs(amount_cents)) / 100).quantize(Decimal("0.01"))
    sign = "-" if amount_cents < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{sign}{symbol}{amount:,}"
    return f"{sign}{amount:,} {currency.upper()}"


def format_price_breakdown(
    breakdown: List[PriceBreakdownItem], currency: str = "USD"
) -> List[str]:
    lines = []
    for item in breakdown:
        formatted = format_price(item.amount_cents, currency)
        if item.nightly_rate_cents and item.nights:
            nightly = format_price(item.nightly_rate_cents, currency)
            lines.append(f"{item.description}: {nightly} x {item.nights} = {formatted}")
        else:
            lines.append(f"{item.description}: {formatted}")
    return lines


def _nights_label(nights: int) -> str:
    return f"{nights} {'night' if nights == 1 else 'nights'}"


class PricingService:
    def __init__(
        self,
        room_repo: RoomRepository,
        rate_plan_repo: RatePlanRepository,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.room_repo = room_repo
        self.rate_plan_repo = rate_plan_repo
        self.tax_rate = Decimal(str(tax_rate))
        self.clock = clock or utc_now

    def _tax(self, subtotal_cents: int) -> int:
        return int(
            (Decimal(subtotal_cents) * self.tax_rate).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
        )

    def _tax_label(self) -> str:
        percent = (self.tax_rate * 100).normalize()
        return f"Taxes and fees ({percent:f}%)"

    def calculate_stay_price(
        self, hotel_id: str, room_type_id: str, check_in: date, check_out: date
    ) -> PricingResult:
        nights = calculate_nights(check_in, check_out)

        room_type = self.room_repo.get_room_type(hotel_id, room_type_id)
        if room_type is None:
            raise NotFoundException("room type", room_type_id, 404)

        plans = [
            plan
            for plan in self.rate_plan_repo.list_active_rate_plans(room_type_id)
            if plan.hotel_id == hotel_id
        ]
        today = self.clock().date()
        rate_plan = select_rate_plan(plans, check_in, check_out, nights, today)

        base_rate = room_type.base_price_cents
        nightly_rate = rate_plan.price_cents if rate_plan else base_rate
        base_price_cents = base_rate * nights
        subtotal_cents = nightly_rate * nights
        tax_cents = self._tax(subtotal_cents)
        fee_cents = 0
        total_cents = subtotal_cents + tax_cents + fee_cents

        breakdown = []
        if rate_plan:
            breakdown.append(
                PriceBreakdownItem(
                    type=BreakdownType.BASE,
                    description=f"Base rate ({_nights_label(nights)})",
                    amount_cents=base_price_cents,
                    nightly_rate_cents=base_rate,
                    nights=nights,
                )
            )
            adjustment = subtotal_cents - base_price_cents
            if adjustment != 0:
                breakdown.append(
                    PriceBreakdownItem(
                        type=BreakdownType.RATE_PLAN,
                        description=f"{rate_plan.name} rate",
                        amount_cents=adjustment,
                        nightly_rate_cents=rate_plan.price_cents - base_rate,
                        nights=nights,
                    )
                )
        else:
            breakdown.append(
                PriceBreakdownItem(
                    type=BreakdownType.BASE,
                    description=f"Room rate ({_nights_label(nights)})",
                    amount_cents=subtotal_cents,
                    nightly_rate_cents=base_rate,
                    nights=nights,
                )
            )

        if tax_cents > 0:
            breakdown.append(
                PriceBreakdownItem(
                    type=BreakdownType.TAX,
                    description=self._tax_label(),
                    amount_cents=tax_cents,
                )
            )
        if fee_cents > 0:
            breakdown.append(
                PriceBreakdownItem(
                    type=BreakdownType.FEE,
                    description="Service fees",
                    amount_cents=fee_cents,
                )
            )

        return PricingResult(
            hotel_id=hotel_id,
            room_type_id=room_type_id,
            check_in=check_in,
            check_out=check_out,
            nights=nights,
            base_price_cents=base_price_cents,
            subtotal_cents=subtotal_cents,
            tax_cents=tax_cents,
            fee_cents=fee_cents,
            total_cents=total_cents,
            currency=room_type.currency,
            applied_rate_plan_id=rate_plan.rate_plan_id if rate_plan else None,
            rate_plan_price_cents=subtotal_cents if rate_plan else None,
            breakdown=breakdown,
        )

    def validate_booking_price(
        self,
        hotel_id: str,
        room_type_id: str,
        check_in: date,
        check_out: date,
        expected_total_cents: int,
    ) -> PriceValidation:
        """Compare a client-submitted total with the server-side price.

        Up to one cent per night of difference is tolerated for rounding.
        """
        pricing = self.calculate_stay_price(hotel_id, room_type_id, check_in, check_out)
        difference = abs(pricing.total_cents - expected_total_cents)
        is_valid = difference <= pricing.nights
        if not is_valid:
            logger.warning(
                f"Price mismatch for room type {room_type_id}: submitted "
                f"{expected_total_cents}, calculated {pricing.total_cents}"
            )
        return PriceValidation(
            is_valid=is_valid,
            calculated_total_cents=pricing.total_cents,
            difference=difference,
            pricing=pricing,
        )

    def ensure_booking_price(
        self,
        hotel_id: str,
        room_type_id: str,
        check_in: date,
        check_out: date,
        expected_total_cents: int,
    ) -> PriceValidation:
        validation = self.validate_booking_price(
            hotel_id, room_type_id, check_in, check_out, expected_total_cents
        )
        if not validation.is_valid:
            raise PriceMismatch(expected_total_cents, validation.calculated_total_cents)
        return validation
