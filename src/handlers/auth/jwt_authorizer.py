import logging
import os
from typing import Any, Dict, Optional

import jwt

from reservations.models.users import HOTEL_ROLES, UserRole

logger = logging.getLogger()
logger.setLevel(logging.INFO)

JWT_SECRET = os.environ.get("JWT_SECRET")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")


def _policy(effect: str, resource: str, principal_id: str = "unauthorized",
            claims: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response = {
        "principalId": principal_id,
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {"Action": "execute-api:Invoke", "Effect": effect, "Resource": resource}
            ],
        },
    }
    # API Gateway only forwards string context values.
    if claims:
        response["context"] = {key: str(value) for key, value in claims.items()}
    return response


def _stage_wildcard(method_arn: str) -> str:
    """arn:...:api-id/stage/VERB/path -> arn:...:api-id/stage/*/*, so the cached
    policy covers every route of the stage."""
    api_and_stage = method_arn.split("/")[:2]
    return "/".join(api_and_stage + ["*", "*"])


def _bearer_token(event) -> str:
    headers = event.get("headers") or {}
    raw = (
        event.get("authorizationToken")
        or headers.get("Authorization")
        or headers.get("authorization")
    )
    if not raw:
        raise jwt.InvalidTokenError("Missing Authorization header")
    scheme, _, token = raw.partition(" ")
    return token if scheme == "Bearer" and token else raw


def _caller_claims(decoded: Dict[str, Any]) -> Dict[str, str]:
    user_id = decoded.get("user_id")
    if not user_id:
        raise jwt.InvalidTokenError("Missing user_id in token")

    try:
        role = UserRole(decoded.get("role", UserRole.CUSTOMER.value))
    except ValueError:
        raise jwt.InvalidTokenError(f"Unknown role '{decoded.get('role')}'") from None

    hotel_id = decoded.get("hotel_id") or ""
    if role in HOTEL_ROLES and not hotel_id:
        raise jwt.InvalidTokenError(f"{role.value} token is not bound to a hotel")

    return {"user_id": user_id, "role": role.value, "hotel_id": hotel_id}


def lambda_handler(event, context):
    """API Gateway request authorizer; passes user_id, role and hotel_id downstream."""
    resource = _stage_wildcard(event["methodArn"])
    try:
        decoded = jwt.decode(
            _bearer_token(event),
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
        claims = _caller_claims(decoded)
    except jwt.ExpiredSignatureError:
        logger.info("Authorization failed: token expired")
        return _policy("Deny", resource)
    except jwt.InvalidTokenError as e:
        logger.info(f"Authorization failed: invalid token ({e})")
        return _policy("Deny", resource)

    return _policy("Allow", resource, principal_id=claims["user_id"], claims=claims)
