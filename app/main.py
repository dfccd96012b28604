import time
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from app.core.config import settings
from app.core.logging import setup_logging, request_id_ctx
from app.core.errors import register_exception_handlers
from app.core.db import init_models
from app.core.redis import redis_manager
from app.api.router import api_router


setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)
register_exception_handlers(app)

# the admin UI is served from SITE_URL and authenticates with a cookie
allowed_origins = [settings.SITE_URL.rstrip("/"), *settings.EXTRA_CORS_ORIGINS]
logger.info(f"CORS allowed origins: {allowed_origins}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id", "-")
    request_id_ctx.set(rid)
    response = await call_next(request)
    if rid != "-":
        response.headers["x-request-id"] = rid
    return response

@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.2f}ms)")
    return response


@app.on_event("startup")
async def on_startup():
    await init_models()
    await redis_manager.connect()
    logger.info(f"{settings.APP_NAME} started (env={settings.ENV}, db_manage={settings.DB_MANAGE})")

@app.on_event("shutdown")
async def on_shutdown():
    await redis_manager.close()


app.include_router(api_router, prefix=settings.API_PREFIX)
