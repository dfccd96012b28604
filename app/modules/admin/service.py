import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.errors import Conflict, NotFound, Unauthorized, ValidationFailed
from app.core.mailer import Mailer, MailerError
from app.core.security import (
    hash_password, verify_password, create_access_token,
    create_password_reset_token, read_password_reset_token, reset_token_matches,
)
from app.modules.admin.models import AdminUser
from app.modules.admin.repository import AdminRepository

logger = logging.getLogger(__name__)

class AdminService:
    def __init__(self, s: AsyncSession, mailer: Mailer | None = None):
        self.s = s; self.repo = AdminRepository(s); self.mailer = mailer

    async def setup(self, username: str, password: str, email: str) -> AdminUser:
        if await self.repo.count() > 0:
            raise Conflict("An admin account already exists")
        u = await self.repo.create(username=username, password_hash=hash_password(password), email=email)
        await self.s.commit()
        logger.info(f"Initial admin '{username}' created")
        return u

    async def authenticate(self, username: str, password: str) -> tuple[AdminUser, str]:
        u = await self.repo.get_by_username(username)
        if not u or not verify_password(password, u.password_hash):
            logger.warning(f"Failed login for '{username}'")
            raise Unauthorized("Invalid username or password")
        return u, create_access_token(u.id, u.username, u.email)

    async def get(self, user_id: uuid.UUID) -> AdminUser:
        u = await self.repo.get(user_id)
        if not u: raise NotFound("Admin not found")
        return u

    async def update_email(self, user_id: uuid.UUID, email: str) -> AdminUser:
        u = await self.get(user_id); u.email = email; await self.s.commit(); return u

    async def change_password(self, user_id: uuid.UUID, current_password: str, new_password: str) -> None:
        u = await self.get(user_id)
        if not verify_password(current_password, u.password_hash):
            raise Unauthorized("Current password is incorrect")
        u.password_hash = hash_password(new_password)
        await self.s.commit()

    async def forgot_password(self, email: str) -> None:
        """Mails a reset link if ``email`` belongs to the admin.

        Callers get the same answer either way, so nothing here raises for an
        unknown address or a failed send.
        """
        u = await self.repo.get_by_email(email)
        if not u:
            logger.info("Password reset requested for an unknown address")
            return
        if not self.mailer:
            logger.warning("Password reset requested but email is not configured")
            return
        token = create_password_reset_token(u.id, u.email, u.password_hash)
        link = f"{settings.SITE_URL.rstrip('/')}/reset-password/{token}"
        html = (
            f"<p>We received a request to reset the password for your {settings.CLINIC_NAME} admin account.</p>"
            f"<p><a href=\"{link}\">Reset Password</a></p>"
            f"<p>This link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
            "If you didn't request it, you can ignore this email and your password stays unchanged.</p>"
            f"<p>If the button doesn't work, paste this link into your browser:<br>{link}</p>"
        )
        try:
            await self.mailer.send(u.email, f"Password Reset Request - {settings.CLINIC_NAME}", html)
        except MailerError:
            logger.error(f"Could not send password reset email for admin '{u.username}'")

    async def _reset_target(self, token: str) -> AdminUser:
        data = read_password_reset_token(token)
        try:
            user_id = uuid.UUID(str(data.get("sub")))
        except ValueError:
            raise ValidationFailed("Invalid or expired reset token")
        u = await self.repo.get(user_id)
        if not u or not reset_token_matches(data, u.password_hash):
            raise ValidationFailed("Invalid or expired reset token")
        return u

    async def check_reset_token(self, token: str) -> str:
        return (await self._reset_target(token)).email

    async def reset_password(self, token: str, new_password: str) -> None:
        u = await self._reset_target(token)
        u.password_hash = hash_password(new_password)
        await self.s.commit()
        logger.info(f"Password reset completed for admin '{u.username}'")
