# backend/app/api/auth.py
from fastapi import APIRouter, Depends

from backend.app.api.deps import bearer_token, get_current_user, get_identity
from backend.app.schemas import AuthResponse, LoginIn, MessageResponse, RegisterIn, UserOut, UserResponse
from backend.app.services.identity import IdentityService

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterIn, identity: IdentityService = Depends(get_identity)):
    user, token = identity.register(payload.name, payload.email, payload.password)
    return AuthResponse(token=token, user=UserOut.model_validate(user))


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginIn, identity: IdentityService = Depends(get_identity)):
    user, token = identity.login(payload.email, payload.password)
    return AuthResponse(token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(user=Depends(get_current_user)):
    return UserResponse(user=UserOut.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(bearer_token),
    user=Depends(get_current_user),
    identity: IdentityService = Depends(get_identity),
):
    identity.logout(token)
    return MessageResponse(message="Logged out")
