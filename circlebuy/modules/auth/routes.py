from fastapi import APIRouter, Depends
from circlebuy.modules.auth.schemas import (
    LoginRequest, RefreshRequest, RegisterRequest, TokenResponse, RegisterResponse
)
from circlebuy.modules.auth.service import AuthService
from circlebuy.core.dependencies import get_auth_service, get_bearer_token, get_current_session
from circlebuy.core.session import UserSession

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Create a shopper or vendor account"""
    return service.register(body)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return service.login(body)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    return service.refresh(body)


@router.post("/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service)
):
    revoked = service.logout(token)
    return {"message": "Signed out", "revoked": revoked}


@router.get("/me", response_model=UserSession)
async def me(session: UserSession = Depends(get_current_session)):
    """Caller identity and role, used by clients to pick a dashboard"""
    return session
