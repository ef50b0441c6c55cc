import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from reservations.utils.constants import DEFAULT_TAX_RATE

DEFAULT_REGION = "ap-south-1"


@dataclass(frozen=True)
class Settings:
    table_name: Optional[str]
    region: str = DEFAULT_REGION
    tax_rate: Decimal = DEFAULT_TAX_RATE
    expire_hold_lambda_arn: Optional[str] = None
    scheduler_role_arn: Optional[str] = None

    @property
    def scheduler_enabled(self) -> bool:
        return bool(self.expire_hold_lambda_arn and self.scheduler_role_arn)


def _tax_rate(raw: Optional[str]) -> Decimal:
    if not raw:
        return DEFAULT_TAX_RATE
    try:
        rate = Decimal(raw)
    except InvalidOperation:
        raise RuntimeError(f"TAX_RATE must be a decimal fraction, got '{raw}'") from None
    if rate < 0 or rate >= 1:
        raise RuntimeError(f"TAX_RATE must be between 0 and 1, got '{raw}'")
    return rate


def load_settings(environ=None) -> Settings:
    environ = os.environ if environ is None else environ
    return Settings(
        table_name=environ.get("TABLE_NAME"),
        region=environ.get("AWS_REGION", DEFAULT_REGION),
        tax_rate=_tax_rate(environ.get("TAX_RATE")),
        expire_hold_lambda_arn=environ.get("EXPIRE_HOLD_LAMBDA_ARN"),
        scheduler_role_arn=environ.get("SCHEDULER_ROLE_ARN"),
    )
