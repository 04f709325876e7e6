"""
Session tokens and request identity
"""
import datetime
from functools import wraps

import jwt
from flask import current_app, g, request

from ..errors import AuthError, ForbiddenError

USER_TYPES = ("vendor", "supplier")


def issue_token(user_type, user):
    """Signed JWT carrying id, phone and account type"""
    payload = {
        "id": user.id,
        "phone": user.phone,
        "type": user_type,
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(days=current_app.config["JWT_EXPIRATION_DAYS"]),
    }
    return jwt.encode(
        payload,
        current_app.config["SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token):
    try:
        payload = jwt.decode(
            token,
            current_app.config["SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    if payload.get("type") not in USER_TYPES:
        raise AuthError("Invalid token")
    return {"id": payload["id"], "phone": payload["phone"], "type": payload["type"]}


def current_identity():
    """Identity from the Authorization header, or None when absent"""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        return None
    if not auth_header.startswith("Bearer "):
        raise AuthError("Invalid token format")
    return decode_token(auth_header.split(" ", 1)[1].strip())


def auth_required(*user_types):
    """Requires a valid token, optionally of one of the given account types"""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            identity = current_identity()
            if identity is None:
                raise AuthError("No token provided")
            if user_types and identity["type"] not in user_types:
                raise ForbiddenError(f"{' or '.join(user_types).capitalize()} access required")
            g.identity = identity
            return view(*args, **kwargs)

        return wrapper

    return decorator
