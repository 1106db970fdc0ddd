from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from .config import settings
from .exceptions import UnauthorizedError
from .policy import Action, Role, can_perform
import logging

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: int
    role: Role


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})

    # Ensure 'sub' is a string (JWT requirement)
    if 'sub' in to_encode:
        to_encode['sub'] = str(to_encode['sub'])

    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    logger.info(f"Created token for user {data.get('sub')} with role {data.get('role')}")
    return encoded_jwt


def decode_access_token(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.error(f"JWT decode error: {e}")
        raise UnauthorizedError("Invalid token")

    user_id_str = payload.get("sub")
    role = payload.get("role")
    if user_id_str is None or role is None:
        logger.error("Token missing required fields")
        raise UnauthorizedError("Invalid token")

    try:
        return CurrentUser(id=int(user_id_str), role=Role(role))
    except ValueError:
        logger.error(f"Invalid token claims: sub={user_id_str!r} role={role!r}")
        raise UnauthorizedError("Invalid token")


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> CurrentUser:
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    return decode_access_token(credentials.credentials)


def require_action(action: Action):
    """Build a dependency that admits only roles allowed to perform ``action``"""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not can_perform(user.role, action):
            logger.error(f"Access denied - role '{user.role.value}' cannot {action.value}")
            raise UnauthorizedError()
        return user

    return dependency
