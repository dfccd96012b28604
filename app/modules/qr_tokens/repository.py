import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, delete, func, and_, or_, not_
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.qr_tokens.models import QRRegistrationToken as Token

def _used():
    return and_(Token.used.is_(True), Token.reusable.is_(False))

def _status_filter(status: str, now: datetime):
    if status == "used":
        return _used()
    if status == "expired":
        return and_(not_(_used()), Token.qr_type != "generic", Token.expires_at < now)
    if status == "active":
        return and_(not_(_used()), or_(Token.qr_type == "generic", Token.expires_at >= now))
    return None

class QRTokenRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Token:
        obj = Token(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, token_id: uuid.UUID) -> Token | None:
        res = await self.session.execute(select(Token).where(Token.id == token_id))
        return res.scalar_one_or_none()

    async def get_by_token(self, token: str) -> Token | None:
        res = await self.session.execute(select(Token).where(Token.token == token))
        return res.scalar_one_or_none()

    async def list(self, *, status: str, now: datetime, limit: int = 50, offset: int = 0) -> tuple[Sequence[Token], int]:
        cond = _status_filter(status, now)
        count_q = select(func.count(Token.id))
        q = select(Token)
        if cond is not None:
            count_q = count_q.where(cond)
            q = q.where(cond)
        total = (await self.session.execute(count_q)).scalar_one()
        res = await self.session.execute(q.order_by(Token.created_at.desc()).limit(limit).offset(offset))
        return res.scalars().all(), total

    async def delete(self, obj: Token) -> None:
        await self.session.delete(obj)
        await self.session.flush()

    async def delete_expired(self, now: datetime) -> int:
        """Deletes tokens whose ``expires_at`` has passed, generic tokens excepted.

        A generic token backs the QR poster at the front desk and never expires, so
        its stored ``expires_at`` is only the issue-time placeholder. Deleting it
        would silently break every printed copy of the code.
        """
        res = await self.session.execute(
            delete(Token)
            .where(Token.qr_type != "generic", Token.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount or 0
