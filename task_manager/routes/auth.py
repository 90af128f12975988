"""Authentication routes: register, login and current user."""

import logging

from fastapi import APIRouter, Depends, status

from ..deps import get_auth_service, get_current_owner_id
from ..exceptions import UnauthorizedError
from ..schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from ..services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Register a new user account."""
    logger.info(f"Registering user: {request.username}")

    user = auth_service.register(request.username, request.email, request.password)
    return UserResponse.from_user(user)


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    token, user = auth_service.login(request.email, request.password)
    return TokenResponse(access_token=token, user=UserResponse.from_user(user))


@router.get("/me", response_model=UserResponse)
async def me(
    owner_id: str = Depends(get_current_owner_id),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Return the authenticated user."""
    user = auth_service.repository.find_by_id(owner_id)
    if user is None:
        raise UnauthorizedError("User no longer exists")
    return UserResponse.from_user(user)
