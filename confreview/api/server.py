"""
FastAPI 应用入口 - 会议审稿后台 API

    uvicorn confreview.api.server:app
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from config.settings import settings
from confreview import __version__
from confreview.api.errors import register_exception_handlers
from confreview.api.routes_admin import router as admin_router
from confreview.api.routes_assignments import router as assignments_router
from confreview.api.routes_auth import router as auth_router
from confreview.api.routes_registrations import router as registrations_router
from confreview.api.routes_reviews import router as reviews_router
from confreview.api.routes_support import router as support_router
from confreview.api.routes_visitors import router as visitors_router
from confreview.auth import purge_expired_revocations
from confreview.db.engine import get_engine, init_db
from confreview.log import get_logger
from confreview.notifications import run_outbox_worker, shutdown_background
from confreview.observability import setup_observability
from confreview.stores.users import seed_admin
from confreview.utils.rate_limit import RateLimitMiddleware

logger = get_logger(__name__)

INSECURE_SECRET = "change-me-in-local"


# ── Startup steps ────────────────────────────────────────────────────────────

def _prepare_database() -> None:
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.warning("[startup] create_all skipped, relying on alembic: %s", e)
    purged = purge_expired_revocations()
    if purged:
        logger.info("[startup] dropped %d expired logout record(s)", purged)


def _warn_on_config() -> None:
    if settings.auth.secret_key == INSECURE_SECRET:
        logger.warning(
            "[startup] auth.secret_key is the shipped default; anyone can mint admin tokens. "
            "Set CONF_SECRET_KEY or auth.secret_key in config/app_config.local.json."
        )
    if not settings.mail.configured:
        logger.warning("[startup] EMAIL_USER / EMAIL_PASS not set; notifications stay pending in the outbox")


def _ensure_admin() -> None:
    if not settings.auth.seed_admin_on_startup:
        return
    try:
        with Session(get_engine()) as session:
            seed_admin(session)
    except SQLAlchemyError as e:
        logger.warning("[startup] could not seed admin account: %s", e)


async def _stop(task: Optional[asyncio.Task]) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("[shutdown] outbox worker ended with an error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """建表 → 配置检查 → 默认管理员 → outbox 重发 Worker"""
    _prepare_database()
    _warn_on_config()
    _ensure_admin()

    worker = asyncio.create_task(run_outbox_worker()) if settings.notifications.worker_enabled else None
    try:
        yield
    finally:
        await _stop(worker)
        await asyncio.to_thread(shutdown_background, 10)


# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Conference Review API",
    description="论文投稿、审稿分配与审稿状态 API",
    version=__version__,
    root_path=settings.api.root_path,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
if settings.rate_limit.enabled:
    app.add_middleware(RateLimitMiddleware)

register_exception_handlers(app)

for _router in (
    auth_router,
    admin_router,
    assignments_router,
    reviews_router,
    registrations_router,
    support_router,
    visitors_router,
):
    app.include_router(_router)

# 中间件 + /metrics + /health/detailed
setup_observability(app)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}
