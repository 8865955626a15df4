"""
Identity resolution.

The identity provider keeps its session in a cookie named ``sb-<ref>-auth-token``
holding base64-encoded JSON whose first element is the access token (a JWT).
We only ever decode tokens here; issuing them is the provider's job.
"""

import base64
import json
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import current_app, g, jsonify, request
from jose import JWTError, jwt

from models import User

AUTH_COOKIE_PREFIX = "sb-"
AUTH_COOKIE_SUFFIX = "-auth-token"
JWT_ALGORITHMS = ["HS256"]


@dataclass(frozen=True)
class Identity:
    auth_id: str
    role: str
    # the coach that owns this account's data (the user itself for coaches)
    owner_id: Optional[int]
    user_id: int
    status: str = "active"

    @property
    def is_coach(self) -> bool:
        return self.role == "coach"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class IdentityError(Exception):
    def __init__(self, message, status_code=401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def find_auth_cookie(cookies) -> Optional[str]:
    for name in sorted(cookies):
        if name.startswith(AUTH_COOKIE_PREFIX) and name.endswith(AUTH_COOKIE_SUFFIX):
            return cookies[name]
    return None


def access_token_from_cookie(value: str) -> Optional[str]:
    value = (value or "").strip()
    if value.startswith("base64-"):
        value = value[len("base64-"):]
    if not value:
        return None
    try:
        decoded = base64.b64decode(value + "=" * (-len(value) % 4)).decode("utf-8")
        payload = json.loads(decoded)
        # older clients store the session array as a JSON string inside JSON
        if isinstance(payload, str):
            payload = json.loads(payload)
    except ValueError:
        return None

    if isinstance(payload, list) and payload and isinstance(payload[0], str):
        return payload[0]
    if isinstance(payload, dict) and isinstance(payload.get("access_token"), str):
        return payload["access_token"]
    return None


def decode_subject(token: str, secret: Optional[str] = None, audience: Optional[str] = None) -> Optional[str]:
    """Return the ``sub`` claim, or None when the token is unusable.

    With a secret the signature and expiry are verified. Without one the claims
    are read unverified, which app.py only allows outside production.
    """
    try:
        if secret:
            claims = jwt.decode(
                token,
                secret,
                algorithms=JWT_ALGORITHMS,
                audience=audience,
                options={"verify_aud": audience is not None},
            )
        else:
            claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None

    subject = claims.get("sub") if isinstance(claims, dict) else None
    return str(subject) if subject else None


def resolve_identity(req=None) -> Identity:
    req = req or request
    cookie = find_auth_cookie(req.cookies)
    if cookie is None:
        raise IdentityError("No authentication found")

    token = access_token_from_cookie(cookie)
    if not token:
        raise IdentityError("Invalid authentication")

    secret = current_app.config.get("AUTH_JWT_SECRET")
    if not secret:
        current_app.logger.warning("[identity] AUTH_JWT_SECRET not set, reading token claims unverified")
    auth_id = decode_subject(token, secret, current_app.config.get("AUTH_JWT_AUDIENCE"))
    if not auth_id:
        raise IdentityError("Unauthorized")

    user = User.query.filter_by(auth_id=auth_id).first()
    if user is None:
        raise IdentityError("User not found")

    owner_id = user.id if user.role == "coach" else user.coach_id
    return Identity(
        auth_id=auth_id,
        role=user.role,
        owner_id=owner_id,
        user_id=user.id,
        status=user.status or "active",
    )


def identity_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        try:
            g.identity = resolve_identity()
        except IdentityError as exc:
            current_app.logger.info(
                "[security] action=identity_rejected ip=%s details=%s", request.remote_addr, exc.message
            )
            return jsonify({"error": exc.message}), exc.status_code
        return view(*args, **kwargs)
    return wrapped


def current_identity() -> Optional[Identity]:
    return g.get("identity")
