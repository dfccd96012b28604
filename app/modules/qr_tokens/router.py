import uuid
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.errors import AlreadyUsed, Expired, NotFound
from app.core.mailer import Mailer, get_mailer
from app.core.paging import PageParams, page_params, paginate
from app.core.security import get_principal
from app.modules.qr_tokens.schemas import (
    TokenStatus, TokenIssue, TokenDetail, IssuedToken, TokenList,
    TokenValidate, TokenValidation, TokenOut, QRRegistration, QRRegistrationResult,
)
from app.modules.qr_tokens.service import QRTokenService

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session), mailer: Mailer | None = Depends(get_mailer)) -> QRTokenService:
    return QRTokenService(s, mailer)

# ---- Registration flow ----

@router.post("/qr-registration", response_model=QRRegistrationResult, status_code=201)
async def register_with_token(payload: QRRegistration, service: QRTokenService = Depends(svc)):
    patient = await service.consume(payload.token, payload.patient_data)
    return {"message": "Registration submitted successfully", "patient_id": patient.id, "patient_code": patient.patient_code}

@router.delete("/qr-registration", dependencies=[Depends(get_principal)])
async def cleanup_expired(service: QRTokenService = Depends(svc)):
    return {"success": True, "deleted": await service.cleanup_expired()}

# ---- Token management ----

@router.get("/qr-tokens", response_model=TokenList, dependencies=[Depends(get_principal)])
async def list_tokens(status: TokenStatus = "all", page: PageParams = Depends(page_params), service: QRTokenService = Depends(svc)):
    items, total = await service.list(page, status)
    return {"tokens": [service.describe(t) for t in items], "pagination": paginate(page, total)}

@router.post("/qr-tokens", response_model=IssuedToken, status_code=201, dependencies=[Depends(get_principal)])
async def create_token(payload: TokenIssue, service: QRTokenService = Depends(svc)):
    t = await service.issue(**payload.model_dump())
    return {**service.describe(t), "qr_code": service.qr_code_data_url(t)}

@router.post("/qr-tokens/validate", response_model=TokenValidation)
async def validate_token(payload: TokenValidate, service: QRTokenService = Depends(svc)):
    try:
        t = await service.validate(payload.token)
    except (NotFound, Expired, AlreadyUsed) as e:
        return {"valid": False, "reason": e.message}
    return {"valid": True, "token": TokenOut.model_validate(t)}

@router.get("/qr-tokens/{token_id}", response_model=TokenDetail, dependencies=[Depends(get_principal)])
async def get_token(token_id: uuid.UUID, service: QRTokenService = Depends(svc)):
    return service.describe(await service.get(token_id))

@router.get("/qr-tokens/{token_id}/qr.png", dependencies=[Depends(get_principal)])
async def token_qr_png(token_id: uuid.UUID, service: QRTokenService = Depends(svc)):
    t = await service.get(token_id)
    return Response(content=service.qr_code_png(t), media_type="image/png")

@router.delete("/qr-tokens/{token_id}", dependencies=[Depends(get_principal)])
async def delete_token(token_id: uuid.UUID, service: QRTokenService = Depends(svc)):
    await service.delete(token_id)
    return {"success": True}
