from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class SoftHoldResult:
    booking_id: str
    room_id: str
    confirmation_code: str
    expires_at: datetime


@dataclass
class SoftHoldInfo:
    is_active: bool
    expires_at: Optional[datetime] = None
    remaining_minutes: Optional[int] = None


@dataclass
class SweepResult:
    expired_count: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors
