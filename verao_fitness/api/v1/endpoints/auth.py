from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, Optional

from verao_fitness.core.auth import get_current_user, sign_in, sign_out
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.core.errors import AppError, friendly_message
from verao_fitness.services.logger import logger

router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header


# Pydantic models
class UserSignup(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    is_admin: bool = False


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user: UserResponse
    message: str


class MessageResponse(BaseModel):
    message: str


@router.post(
    "/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED
)
async def signup(payload: UserSignup, context: AppContext = Depends(get_context)):
    """Create an account; the user must confirm their email before signing in."""
    try:
        context.gateway.sign_up(
            payload.email,
            payload.password,
            {"first_name": payload.first_name, "last_name": payload.last_name},
        )
    except AppError as exc:
        logger.info(f"Signup failed for {payload.email}: {exc.detail or exc.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=friendly_message(exc)
        )

    return {"message": "Account created! Please check your email to confirm."}


@router.post("/login", response_model=SessionResponse)
async def login(payload: UserLogin, context: AppContext = Depends(get_context)):
    try:
        session = sign_in(context, payload.email, payload.password)
    except AppError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=friendly_message(exc)
        )

    return {**session, "message": "Signed in successfully!"}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Revoke the session and drop its pending notifications."""
    try:
        sign_out(context, current_user)
    except AppError as exc:
        # The local session is gone either way
        logger.warning(f"Upstream sign out failed for {current_user['id']}: {exc.detail}")

    return {"message": "Signed out."}


@router.get("/me", response_model=UserResponse)
async def me(current_user: dict = Depends(get_current_user)):
    return current_user
