"""Shared pytest fixtures."""

import os
import asyncio
import tempfile
from datetime import datetime, timezone

# settings are read at import time
_TMP = tempfile.mkdtemp(prefix="dentaldesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP, 'api.db')}"
os.environ["DB_MANAGE"] = "create_all"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CRON_SECRET"] = "cron-test-secret"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("REDIS_URL", None)

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.core.base import Base
from app.core.db import import_models
from helpers import FakeMailer, DictCache, Clock


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def cache():
    return DictCache()


@pytest.fixture
def utc_clock():
    return Clock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def run_db():
    """Runs ``fn(session)`` against a fresh in-memory database."""
    def _run(fn):
        async def main():
            engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
            import_models()
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
            try:
                async with maker() as session:
                    return await fn(session)
            finally:
                await engine.dispose()
        return asyncio.run(main())
    return _run
