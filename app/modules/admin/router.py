from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.db import get_session
from app.core.mailer import Mailer, get_mailer
from app.core.security import get_principal, Principal
from app.modules.admin.schemas import (
    LoginRequest, SetupRequest, ProfileUpdate, PasswordChange, AdminOut, LoginResponse,
    ForgotPasswordRequest, ResetPasswordRequest,
)
from app.modules.admin.service import AdminService

router = APIRouter()
def svc(s: AsyncSession = Depends(get_session), mailer: Mailer | None = Depends(get_mailer)) -> AdminService:
    return AdminService(s, mailer)

def _set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        settings.AUTH_COOKIE_NAME, token,
        httponly=True, secure=settings.ENV == "prod", samesite="lax",
        max_age=settings.JWT_EXPIRE_DAYS * 24 * 60 * 60, path="/",
    )

@router.post("/auth/setup", response_model=AdminOut, status_code=201)
async def setup(payload: SetupRequest, service: AdminService = Depends(svc)):
    return await service.setup(payload.username, payload.password, payload.email)

@router.post("/auth/login", response_model=LoginResponse)
async def login(payload: LoginRequest, response: Response, service: AdminService = Depends(svc)):
    user, token = await service.authenticate(payload.username, payload.password)
    _set_auth_cookie(response, token)
    return {"token": token, "user": user}

@router.post("/auth/logout")
async def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return {"success": True}

@router.get("/auth/me", response_model=AdminOut)
async def me(principal: Principal = Depends(get_principal), service: AdminService = Depends(svc)):
    return await service.get(principal.user_id)

@router.put("/auth/me", response_model=AdminOut)
async def update_me(payload: ProfileUpdate, principal: Principal = Depends(get_principal), service: AdminService = Depends(svc)):
    return await service.update_email(principal.user_id, payload.email)

@router.post("/auth/change-password")
async def change_password(payload: PasswordChange, principal: Principal = Depends(get_principal), service: AdminService = Depends(svc)):
    await service.change_password(principal.user_id, payload.current_password, payload.new_password)
    return {"success": True}

@router.post("/auth/forgot-password")
async def forgot_password(payload: ForgotPasswordRequest, service: AdminService = Depends(svc)):
    await service.forgot_password(payload.email)
    return {"success": True, "message": "If an account with that email exists, we have sent a password reset link."}

@router.get("/auth/reset-password")
async def check_reset_token(token: str = Query(..., min_length=1), service: AdminService = Depends(svc)):
    return {"success": True, "email": await service.check_reset_token(token)}

@router.post("/auth/reset-password")
async def reset_password(payload: ResetPasswordRequest, service: AdminService = Depends(svc)):
    await service.reset_password(payload.token, payload.password)
    return {"success": True, "message": "Password updated successfully"}
