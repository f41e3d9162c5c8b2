from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, HTTPException, Response, status

from readyset.auth.jwt import JwtError, decode_jwt, jwt_http_exception
from readyset.config import allowed_roles_list, settings
from readyset.models.profile import ADMIN_USER_TYPES, UserType
from readyset.routers.rate_limit_headers import (
    apply_rate_limit_headers,
    rate_limit_header_values,
)
from readyset.services.rate_limiter import get_rate_limiter, reset_rate_limiter_state


@dataclass
class AuthContext:
    user_id: str
    role: str

    @property
    def is_driver(self) -> bool:
        return self.role == UserType.DRIVER.value

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_USER_TYPES


@dataclass
class RateLimitStatus:
    limit: int
    remaining: int
    reset_at_s: int


def get_auth_context(authorization: str | None = Header(default=None)) -> AuthContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise jwt_http_exception("Unauthorized")

    token = authorization.removeprefix("Bearer ").strip()
    try:
        payload = decode_jwt(token, settings.jwt_secret)
    except JwtError as err:
        raise jwt_http_exception("Invalid token") from err

    role = payload.get("role")
    user_id = payload.get("sub")
    if role not in allowed_roles_list() or not isinstance(user_id, str) or not user_id:
        raise jwt_http_exception("Invalid token claims")

    return AuthContext(user_id=user_id, role=role)


def require_roles(*roles: str) -> Callable[[AuthContext], AuthContext]:
    def dependency(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if auth.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return auth

    return dependency


TRACKING_READ_ROLES = ("DRIVER", "ADMIN", "SUPER_ADMIN", "HELPDESK")
TRACKING_WRITE_ROLES = ("ADMIN", "SUPER_ADMIN", "HELPDESK")

require_tracking_reader = require_roles(*TRACKING_READ_ROLES)
require_tracking_writer = require_roles(*TRACKING_WRITE_ROLES)
require_admin = require_roles("ADMIN", "SUPER_ADMIN")


def rate_limit_addresses(
    response: Response,
    auth: AuthContext = Depends(get_auth_context),
) -> RateLimitStatus:
    limit = settings.addresses_rate_limit_requests
    result = get_rate_limiter().check(
        f"addresses:{auth.user_id}",
        max_requests=limit,
        window_s=settings.addresses_rate_limit_window_s,
    )
    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={
                "Retry-After": str(result.reset_after_s),
                **rate_limit_header_values(
                    limit=limit, remaining=0, reset_at_s=result.reset_at_s
                ),
            },
        )

    apply_rate_limit_headers(
        response,
        limit=limit,
        remaining=result.remaining,
        reset_at_s=result.reset_at_s,
    )
    return RateLimitStatus(limit=limit, remaining=result.remaining, reset_at_s=result.reset_at_s)


def reset_rate_limits() -> None:
    reset_rate_limiter_state()
