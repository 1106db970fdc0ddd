from fastapi import APIRouter, Depends, status
from pydantic import Field
from ..core.auth import verify_password, create_access_token, get_password_hash, get_current_user, CurrentUser
from ..core.exceptions import LearnHubError, InternalError, UnauthorizedError, ValidationError
from ..core.policy import Role
from ..core.storage import Storage, get_storage
from .schemas import CamelModel, UserResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

REGISTERABLE_ROLES = {Role.STUDENT, Role.INSTRUCTOR}


class LoginRequest(CamelModel):
    username: str
    password: str


class RegisterRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    role: Role = Role.STUDENT


class AuthResponse(CamelModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"


def _issue_token(user) -> AuthResponse:
    token = create_access_token(data={"sub": user.id, "role": user.role})
    return AuthResponse(user=UserResponse.model_validate(user), access_token=token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, storage: Storage = Depends(get_storage)):
    """
    Register a student or instructor account and log it in
    """
    try:
        logger.info(f"Registration attempt for username: {request.username}")

        if request.role not in REGISTERABLE_ROLES:
            raise ValidationError("Cannot register with this role", field="role")

        if await storage.get_user_by_username(request.username):
            logger.warning(f"Username already taken: {request.username}")
            raise ValidationError("Username already exists", field="username")

        user = await storage.create_user(
            username=request.username,
            password_hash=get_password_hash(request.password),
            role=request.role.value,
            name=request.name
        )
        logger.info(f"User registered successfully: {user.username} ({user.role})")
        return _issue_token(user)

    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Registration error for {request.username}: {e}")
        raise InternalError("Registration failed")


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, storage: Storage = Depends(get_storage)):
    """
    Authenticate by username and password and return an access token
    """
    try:
        logger.info(f"Login attempt for username: {request.username}")

        user = await storage.get_user_by_username(request.username)
        if not user or not verify_password(request.password, user.password):
            logger.warning(f"Failed login attempt for username: {request.username}")
            raise UnauthorizedError("Invalid username or password")

        logger.info(f"Login successful: {user.username}")
        return _issue_token(user)

    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Login error for {request.username}: {e}")
        raise InternalError("Authentication failed")


@router.post("/logout")
async def logout():
    """
    Logout endpoint (client-side token removal)
    """
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=UserResponse)
async def get_user(current_user: CurrentUser = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    user = await storage.get_user(current_user.id)
    if not user:
        raise UnauthorizedError("User not found")
    return user
