"""
Authentication dependencies for FastAPI routes

Tokens are issued by the identity service; this backend only verifies them
and reads the caller's identity from the claims.
"""
from dataclasses import dataclass, field
from typing import List
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
import structlog

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError

logger = structlog.get_logger()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")


@dataclass
class CurrentUser:
    id: int
    email: str = ""
    roles: List[str] = field(default_factory=list)


def decode_token(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid token")

    user_id = payload.get("uid", payload.get("sub"))
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return CurrentUser(id=user_id, email=payload.get("email") or "", roles=list(roles))


def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """
    Get current authenticated user from JWT token
    """
    return decode_token(token)


def get_current_active_user(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Get current active user"""
    return current_user


def require_role(role_name: str):
    """
    Dependency factory for role-based access control
    Usage: @router.get("/admin", dependencies=[Depends(require_role("admin"))])
    """
    def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if role_name not in current_user.roles:
            logger.warning(
                "unauthorized_access_attempt",
                user_id=current_user.id,
                required_role=role_name,
                user_roles=current_user.roles,
            )
            raise AuthorizationError(
                f"Requires {role_name} role",
                details={"required_role": role_name, "user_roles": current_user.roles},
            )
        return current_user

    return role_checker
