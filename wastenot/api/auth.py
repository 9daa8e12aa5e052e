"""Registration and login endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from wastenot.api.schemas import LoginRequest, RegisterRequest
from wastenot.dependencies import get_user_service
from wastenot.models import UserPublic
from wastenot.services.user_service import UserService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    user_service: UserService = Depends(get_user_service),
):
    """
    Create an account together with its pending meals.

    Returns 409 if the username or email is already taken.
    """
    user = user_service.create_user_with_default_meals(
        username=payload.username,
        email=payload.email,
        name=payload.name,
        password=payload.password,
    )
    return user.to_public()


@router.post("/login", response_model=UserPublic)
async def login(
    payload: LoginRequest,
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.authenticate(payload.username, payload.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )
    return user.to_public()
