"""
Request dependencies: settings, bearer authentication and the role gate.
"""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from shop_service.config import Settings
from shop_service.db.database import get_db
from shop_service.exceptions import AuthenticationFailed, AuthorizationDenied
from shop_service.models.user import RoleName, User
from shop_service.services.auth import decode_access_token
from shop_service.services.role_service import RoleService
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Bearer <token>; missing headers are reported by get_current_user, not here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _resolve_user(db: Session, settings: Settings, token: Optional[str]) -> Optional[User]:
    if not token:
        return None

    payload = decode_access_token(token, settings.jwt_secret, settings.jwt_algorithm)
    if payload is None or payload.get("sub") is None:
        return None

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> User:
    """Dependency to validate the JWT and load the calling user"""
    user = _resolve_user(db, settings, token)
    if user is None:
        raise AuthenticationFailed("could not validate credentials")

    # Kept on the request for access logging
    request.state.user_id = user.id
    return user


def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None"""
    return _resolve_user(db, settings, token)


def require_roles(*roles: RoleName):
    """
    Build a dependency admitting only callers whose resolved role is in ``roles``.

    The role is read from the database on every request, so a role change
    takes effect without reissuing tokens.
    """
    allowed = ", ".join(role.value for role in roles)

    def check_role(
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> User:
        role = RoleService.get_role(db, user.id)
        if role not in roles:
            logger.warning(f"User {user.id} with role {role.value} denied; requires {allowed}")
            raise AuthorizationDenied(f"requires role: {allowed}")
        return user

    return check_role


require_super_admin = require_roles(RoleName.SUPER_ADMIN)
require_seller = require_roles(RoleName.SELLER, RoleName.SUPER_ADMIN)
