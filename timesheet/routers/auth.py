"""Auth router - API endpoints for authentication."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import BaseModel

from timesheet.database import get_store
from timesheet.models.user import User, UserCreate
from timesheet.services.auth_service import AuthService
from timesheet.utils.auth import verify_access_token


router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    """Login request model."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """Token response model."""

    access_token: str
    token_type: str = "bearer"


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, store=Depends(get_store)):
    """
    Register a new user.

    - New accounts get the ``user`` role
    - Returns 400 if the email is already registered
    """
    service = AuthService(store)
    try:
        return await service.register_user(
            email=user.email,
            password=user.password,
            name=user.name,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.post("/login", response_model=TokenResponse)
async def login(login_req: LoginRequest, store=Depends(get_store)):
    """Login user and return an access token."""
    service = AuthService(store)
    try:
        token = await service.login(
            email=login_req.email,
            password=login_req.password,
        )
        return TokenResponse(access_token=token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Dependency returning the caller's user ID, or None when anonymous.

    Raises:
        HTTPException: If a token is present but invalid (401)
    """
    if credentials is None:
        return None

    try:
        return verify_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


async def get_current_user_id(
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> str:
    """
    Dependency requiring an authenticated caller.

    Raises:
        HTTPException: If no token was sent (401)
    """
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_id


@router.get("/me", response_model=User)
async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Get current authenticated user, including their role."""
    service = AuthService(store)
    try:
        return await service.get_user_by_id(user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get("/users", response_model=list[User])
async def list_users(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    List all users.

    - Admin only (403 otherwise)
    """
    service = AuthService(store)
    try:
        return await service.list_users(caller_id=user_id)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
