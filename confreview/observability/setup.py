"""
把请求指标中间件、Prometheus 抓取端点和带组件状态的健康检查挂到 app 上。
"""

from typing import Any, Dict

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from confreview import __version__
from confreview.log import get_logger
from confreview.observability.metrics import metrics
from confreview.observability.middleware import ObservabilityMiddleware

logger = get_logger(__name__)


def component_status() -> Dict[str, Any]:
    """数据库可达性、outbox 积压（pending / failed）、邮件是否配置。"""
    from config.settings import settings
    from confreview.db.engine import get_engine
    from confreview.db.models import NotificationOutbox

    checks: Dict[str, Any] = {"mail": "ok" if settings.mail.configured else "not_configured"}
    try:
        with get_engine().connect() as conn:
            rows = conn.execute(
                select(NotificationOutbox.status, func.count())
                .where(NotificationOutbox.status.in_(("pending", "failed")))
                .group_by(NotificationOutbox.status)
            ).all()
        backlog = {status: int(n) for status, n in rows}
        checks["database"] = "ok"
        checks["outbox_pending"] = backlog.get("pending", 0)
        checks["outbox_failed"] = backlog.get("failed", 0)
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e}"
    return checks


def setup_observability(app: FastAPI) -> None:
    """路由注册之后调用。"""
    app.add_middleware(ObservabilityMiddleware)

    @app.get("/metrics", include_in_schema=False)
    def prometheus_metrics():
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health/detailed", tags=["observability"])
    def health_detailed():
        checks = component_status()
        return {"status": "ok" if checks["database"] == "ok" else "degraded", "components": checks}

    metrics.app_info.info({"version": __version__, "service": "conference-review"})
    logger.info("[observability] /metrics and /health/detailed mounted")
