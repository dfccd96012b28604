import uuid
import hmac
import hashlib
from datetime import datetime, timedelta, timezone
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.db import get_session
from app.core.errors import Unauthorized, ValidationFailed

http_bearer = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class Principal(BaseModel):
    user_id: uuid.UUID
    username: str
    email: str

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        return False

def create_access_token(user_id: uuid.UUID, username: str, email: str, now: datetime | None = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "username": username,
        "email": email,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(days=settings.JWT_EXPIRE_DAYS)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def _password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]

def create_password_reset_token(user_id: uuid.UUID, email: str, password_hash: str, now: datetime | None = None) -> str:
    """Short-lived token mailed to the admin; it dies once the password changes."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "purpose": "password_reset",
        "pwd": _password_fingerprint(password_hash),
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def read_password_reset_token(token: str) -> dict:
    try:
        data = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise ValidationFailed("Invalid or expired reset token")
    if data.get("purpose") != "password_reset":
        raise ValidationFailed("Invalid or expired reset token")
    return data

def reset_token_matches(data: dict, password_hash: str) -> bool:
    return hmac.compare_digest(str(data.get("pwd", "")), _password_fingerprint(password_hash))

def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise Unauthorized("Invalid or expired token")

def _bearer_or_cookie(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds is not None:
        return creds.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME)

async def get_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    session: AsyncSession = Depends(get_session),
) -> Principal:
    token = _bearer_or_cookie(request, creds)
    if not token:
        raise Unauthorized("No authentication token")

    data = _decode_token(token)
    if data.get("purpose"):
        # reset links are not sessions
        raise Unauthorized("Invalid or expired token")
    try:
        user_id = uuid.UUID(str(data.get("sub")))
    except ValueError:
        raise Unauthorized("Invalid or expired token")

    # the admin must still exist
    from app.modules.admin.repository import AdminRepository
    admin = await AdminRepository(session).get(user_id)
    if not admin:
        raise Unauthorized("Invalid or expired token")
    return Principal(user_id=admin.id, username=admin.username, email=admin.email)

async def require_admin_or_cron(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    session: AsyncSession = Depends(get_session),
) -> str:
    """Allows either an admin session or the shared cron secret header."""
    secret = request.headers.get("x-cron-secret")
    if secret and settings.CRON_SECRET and hmac.compare_digest(secret, settings.CRON_SECRET):
        return "cron"
    principal = await get_principal(request, creds, session)
    return principal.username
