from dataclasses import asdict, is_dataclass
from pydantic import BaseModel
from typing import Any, Generic, TypeVar, Optional

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    status_code: int
    message: str
    data: Optional[T] = None


def send_custom_response(status_code: int, message: str, data: Optional[Any] = None):
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
        },
        "body": APIResponse[Any](
            status_code=status_code, message=message, data=data
        ).model_dump_json(),
    }


def as_data(value: Any) -> Any:
    """Plain dicts for dataclass payloads; pydantic serializes dates and enums."""
    if isinstance(value, (list, tuple)):
        return [as_data(item) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value
