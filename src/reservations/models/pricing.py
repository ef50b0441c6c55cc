from enum import Enum
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


class BreakdownType(str, Enum):
    BASE = "base"
    RATE_PLAN = "rate_plan"
    TAX = "tax"
    FEE = "fee"
    DISCOUNT = "discount"


@dataclass
class PriceBreakdownItem:
    type: BreakdownType
    description: str
    amount_cents: int
    nightly_rate_cents: Optional[int] = None
    nights: Optional[int] = None


@dataclass
class PricingResult:
    hotel_id: str
    room_type_id: str
    check_in: date
    check_out: date
    nights: int
    base_price_cents: int
    subtotal_cents: int
    tax_cents: int
    fee_cents: int
    total_cents: int
    currency: str
    applied_rate_plan_id: Optional[str] = None
    rate_plan_price_cents: Optional[int] = None
    breakdown: List[PriceBreakdownItem] = field(default_factory=list)


@dataclass
class PriceValidation:
    is_valid: bool
    calculated_total_cents: int
    difference: int
    pricing: Optional[PricingResult] = None
