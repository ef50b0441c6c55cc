from datetime import date
from typing import Any, Dict, Iterator, List, Optional

from botocore.exceptions import ClientError


def query_all(table, **kwargs) -> Iterator[Dict[str, Any]]:
    """Run a query and follow LastEvaluatedKey until every page is read."""
    resp = table.query(**kwargs)
    yield from resp.get("Items", [])
    while "LastEvaluatedKey" in resp:
        resp = table.query(**kwargs, ExclusiveStartKey=resp["LastEvaluatedKey"])
        yield from resp.get("Items", [])


def error_code(err: ClientError) -> Optional[str]:
    return err.response.get("Error", {}).get("Code")


def cancellation_codes(err: ClientError) -> List[Optional[str]]:
    """Per-item reason codes of a cancelled TransactWriteItems call."""
    reasons = err.response.get("CancellationReasons") or []
    return [reason.get("Code") for reason in reasons]


def to_int(value) -> Optional[int]:
    return None if value is None else int(value)


def to_date(value: Optional[str]) -> Optional[date]:
    return None if value is None else date.fromisoformat(value)
