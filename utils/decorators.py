from __future__ import annotations
from functools import wraps
from flask import request, g, current_app
from werkzeug.exceptions import TooManyRequests

from utils.errors import Unauthorized


def bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise Unauthorized("Missing or invalid Authorization header")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized("Missing or invalid Authorization header")
    return token


def jwt_required():
    """Require a bearer header; the token itself is checked by the session manager."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.access_token = bearer_token()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def rate_limited(limit_key: str):
    """
    Count the request against the config limit named by limit_key
    (e.g. "LOGIN_RATE_LIMIT") for the client address; 429 once exhausted.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if current_app.config.get("RATE_LIMIT_ENABLED", True):
                limiter = current_app.extensions["rate_limiter"]
                client = request.remote_addr or "unknown"
                result = limiter.hit(f"{limit_key}:{client}", current_app.config[limit_key])
                if not result.allowed:
                    raise TooManyRequests(
                        description="Too many requests, please try again later",
                        retry_after=result.retry_after,
                    )
            return fn(*args, **kwargs)

        return wrapper

    return decorator
