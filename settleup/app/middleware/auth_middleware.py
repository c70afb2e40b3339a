"""
middleware/auth_middleware.py — JWT authentication for the balance routes.

Access tokens are issued by the account service and signed with the shared
JWT_SECRET_KEY. This package only verifies them; it never issues or
refreshes one.

Pieces:
  bearer_token(header)       → the raw token from "Bearer <token>"
  decode_user_id(token, ...) → the int user id in the `sub` claim
  @require_auth              → runs both for the current request and sets
                               flask.g.user_id

Every failure is an AppError with a 401 status; the global error handler
renders it. Membership (403) is checked later, in balance_service.
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from settleup.app.errors import AppError, ErrorCode


def _unauthenticated(code: str, message: str) -> AppError:
    return AppError(code, message, 401)


def bearer_token(auth_header: str | None) -> str:
    """Extracts the token from an Authorization header value."""
    if not auth_header:
        raise _unauthenticated(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
        )

    scheme, _, token = auth_header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
        )
    return token


def decode_user_id(token: str, secret: str, algorithm: str = "HS256") -> int:
    """
    Verifies `token` and returns the user id carried in its `sub` claim.

    PyJWT checks the signature, `exp` and the presence of `sub`. The account
    service writes the id into `sub` as a string.
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthenticated(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Obtain a new one from the auth service.",
        )
    except jwt.MissingRequiredClaimError:
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "The access token is missing the required 'sub' claim.",
        )
    except jwt.InvalidTokenError:
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
        )

    try:
        return int(claims["sub"])
    except (TypeError, ValueError):
        raise _unauthenticated(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
        )


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @balances_bp.route("")
        @require_auth
        def get_user_balances():
            user_id = g.user_id  # always an int when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        token = bearer_token(request.headers.get("Authorization"))
        g.user_id = decode_user_id(
            token,
            current_app.config["JWT_SECRET_KEY"],
            current_app.config.get("JWT_ALGORITHM", "HS256"),
        )
        return f(*args, **kwargs)

    return decorated
