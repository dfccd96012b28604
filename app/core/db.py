from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from .config import settings
from .base import Base

def _engine_kwargs(url: str) -> dict:
    # aiosqlite connections are bound to the loop that opened them
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {"pool_pre_ping": True}

engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

def import_models():
    # registers every table on Base.metadata
    from app.modules.admin import models as _admin  # noqa: F401
    from app.modules.patients import models as _patients  # noqa: F401
    from app.modules.appointments import models as _appointments  # noqa: F401
    from app.modules.procedures import models as _procedures  # noqa: F401
    from app.modules.treatments import models as _treatments  # noqa: F401
    from app.modules.qr_tokens import models as _qr_tokens  # noqa: F401
    from app.modules.reminders import models as _reminders  # noqa: F401
    from app.modules.notifications import models as _notifications  # noqa: F401
    from app.modules.medical_history_fields import models as _medical_history_fields  # noqa: F401

async def init_models():
    ## In dev-only "create_all" mode build the schema here; otherwise migrations own it.
    if settings.DB_MANAGE == "create_all":
        import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
