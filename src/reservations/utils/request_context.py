from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel

from reservations.models.users import HOTEL_ROLES, UserRole
from reservations.utils.custom_exceptions import (
    InvalidInput,
    PermissionDenied,
    Unauthorized,
)

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: UserRole
    hotel_id: Optional[str] = None


def get_caller(event: Dict[str, Any]) -> Caller:
    """Identity placed on the request by the JWT authorizer."""
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    user_id = authorizer.get("user_id")
    if not user_id:
        raise Unauthorized("Unauthorized")

    role_raw = authorizer.get("role") or UserRole.CUSTOMER.value
    try:
        role = UserRole(role_raw.upper())
    except ValueError:
        raise PermissionDenied(f"Unknown role '{role_raw}'") from None
    return Caller(user_id=user_id, role=role, hotel_id=authorizer.get("hotel_id") or None)


def works_at(caller: Caller, hotel_id: Optional[str]) -> bool:
    """Hotel roles only act on the hotel their token is bound to."""
    return (
        caller.role in HOTEL_ROLES
        and caller.hotel_id is not None
        and caller.hotel_id == hotel_id
    )


def require_role(caller: Caller, roles: Iterable[UserRole], action: str):
    if caller.role not in set(roles):
        raise PermissionDenied(f"Role {caller.role.value} is not allowed to {action}")


def require_hotel_access(caller: Caller, hotel_id: Optional[str], action: str):
    if caller.role in HOTEL_ROLES and not works_at(caller, hotel_id):
        raise PermissionDenied(f"Not allowed to {action} for hotel {hotel_id}")


def parse_body(event: Dict[str, Any], model: Type[M]) -> M:
    body = event.get("body")
    if not body:
        raise InvalidInput("Request body is required")
    return model.model_validate_json(body)


def path_param(event: Dict[str, Any], name: str) -> str:
    value = (event.get("pathParameters") or {}).get(name)
    if not value:
        raise InvalidInput(f"{name} is required in the path")
    return value


def query_params(event: Dict[str, Any]) -> Dict[str, str]:
    return dict(event.get("queryStringParameters") or {})


def require_guest_or_staff(
    caller: Caller, hotel_id: Optional[str], guest_id: Optional[str], action: str
):
    if works_at(caller, hotel_id):
        return
    if caller.role not in HOTEL_ROLES and guest_id and guest_id == caller.user_id:
        return
    raise PermissionDenied(f"Not allowed to {action}")
