import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt as pyjwt
from flask import request

JWT_ALGORITHM = "HS256"


def _jwt_secret() -> str:
    return os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")


def issue_app_token(user_id: str, stay_logged_in: bool = False) -> str:
    ttl = timedelta(days=30 if stay_logged_in else 7)
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + ttl,
    }
    return pyjwt.encode(payload, _jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_app_token(token: str) -> Dict[str, Any]:
    return pyjwt.decode(token, _jwt_secret(), algorithms=[JWT_ALGORITHM])


def _extract_token_from_request() -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    raise pyjwt.InvalidTokenError("Missing bearer token")


def require_user_id_from_request() -> str:
    """User id of the authenticated caller; raises pyjwt.InvalidTokenError otherwise."""
    payload = decode_app_token(_extract_token_from_request())
    user_id = payload.get("sub", "")
    if not user_id:
        raise pyjwt.InvalidTokenError("Invalid token payload")
    return user_id
