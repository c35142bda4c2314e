"""
Notification outbox.

Workflow operations call ``enqueue`` inside their own transaction, so the
email intent is durable exactly when the mutation is. After commit the
caller hands the new row ids to ``dispatch_after_commit`` for a best-effort
send, on a single background thread unless ``notifications.dispatch_background``
is off; whatever is still pending is retried by ``run_outbox_worker`` until
``notifications.max_attempts``, after which the row is marked failed.
"""

from __future__ import annotations

import asyncio
import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlmodel import Session, select

from config.settings import settings
from confreview.db.engine import get_engine
from confreview.db.models import NotificationOutbox
from confreview.log import get_logger
from confreview.notifications.mailer import MailTransport, SmtpTransport
from confreview.notifications.templates import TemplateManager
from confreview.observability import metrics
from confreview.workflow.errors import NotificationError

logger = get_logger(__name__)

_transport: Optional[MailTransport] = None
_inflight: set[int] = set()
_inflight_lock = threading.Lock()

_executor: Optional[ThreadPoolExecutor] = None
_futures: set[Future] = set()
_executor_lock = threading.Lock()


def get_transport() -> MailTransport:
    global _transport
    if _transport is None:
        _transport = SmtpTransport()
    return _transport


def set_transport(transport: Optional[MailTransport]) -> None:
    """Swap the mail transport (tests install a recording fake)."""
    global _transport
    _transport = transport


# ──────────────────────────────────────────────────────────────────────────────
# Write side
# ──────────────────────────────────────────────────────────────────────────────

def enqueue(session: Session, kind: str, recipient: str, payload: Dict[str, Any]) -> NotificationOutbox:
    """Stage one email in the caller's transaction. Flushes so ``row.id`` is set."""
    row = NotificationOutbox(
        kind=kind,
        recipient=recipient,
        payload_json=json.dumps(payload, ensure_ascii=False, default=str),
    )
    session.add(row)
    session.flush()
    return row


# ──────────────────────────────────────────────────────────────────────────────
# Dispatch side
# ──────────────────────────────────────────────────────────────────────────────

def _claim(row_id: int) -> bool:
    with _inflight_lock:
        if row_id in _inflight:
            return False
        _inflight.add(row_id)
        return True


def _release(row_id: int) -> None:
    with _inflight_lock:
        _inflight.discard(row_id)


def _failure_text(exc: Exception) -> str:
    if isinstance(exc, NotificationError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _deliver(row_id: int) -> str:
    """Send one pending row. Returns its resulting status, or "" if it was skipped.

    Any error from rendering or sending counts as a failed attempt.
    """
    if not _claim(row_id):
        return ""
    try:
        with Session(get_engine()) as session:
            row = session.get(NotificationOutbox, row_id)
            if row is None or row.status != "pending":
                return ""
            now = datetime.now().isoformat()
            row.attempts += 1
            row.updated_at = now
            try:
                subject, body = TemplateManager().render(row.kind, row.get_payload())
                get_transport().send(row.recipient, subject, body)
            except Exception as e:
                row.last_error = _failure_text(e)
                if row.attempts >= settings.notifications.max_attempts:
                    row.status = "failed"
                    logger.error(
                        "[outbox] giving up on %s #%d to %r after %d attempt(s): %s",
                        row.kind, row.id, row.recipient, row.attempts, row.last_error,
                    )
                else:
                    logger.warning(
                        "[outbox] %s #%d to %r failed (attempt %d): %s",
                        row.kind, row.id, row.recipient, row.attempts, row.last_error,
                    )
            else:
                row.status = "sent"
                row.sent_at = now
                row.last_error = ""
            session.add(row)
            session.commit()
            metrics.notifications_total.labels(kind=row.kind, result=row.status).inc()
            return row.status
    finally:
        _release(row_id)


def dispatch_ids(row_ids: Iterable[int]) -> Dict[str, int]:
    """Try each row once; returns counts by resulting status."""
    counts: Dict[str, int] = {"sent": 0, "pending": 0, "failed": 0}
    for row_id in row_ids:
        status = _deliver(row_id)
        if status:
            counts[status] += 1
    return counts


def _dispatch_logged(row_ids: List[int]) -> None:
    try:
        counts = dispatch_ids(row_ids)
    except Exception:
        logger.exception("[outbox] dispatch of %s failed, worker will retry", row_ids)
        return
    if counts["pending"] or counts["failed"]:
        logger.info("[outbox] after-commit dispatch: %s", counts)


def _background_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="outbox")
    return _executor


def dispatch_after_commit(row_ids: List[int]) -> None:
    """Best-effort send right after the enqueuing transaction commits. Never raises."""
    if not row_ids or not settings.notifications.dispatch_inline:
        return
    if not settings.notifications.dispatch_background:
        _dispatch_logged(list(row_ids))
        return
    with _executor_lock:
        future = _background_executor().submit(_dispatch_logged, list(row_ids))
        _futures.add(future)
    future.add_done_callback(_forget)


def _forget(future: Future) -> None:
    with _executor_lock:
        _futures.discard(future)


def wait_for_background(timeout: Optional[float] = None) -> bool:
    """Block until queued after-commit sends finish. False on timeout."""
    with _executor_lock:
        futures = list(_futures)
    if not futures:
        return True
    _, not_done = wait(futures, timeout=timeout)
    return not not_done


def shutdown_background(timeout: Optional[float] = None) -> None:
    """Drain and stop the after-commit thread; rows left pending go to the worker."""
    global _executor
    if not wait_for_background(timeout):
        logger.warning("[outbox] after-commit sends still running at shutdown")
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=False)


def pending_ids(limit: Optional[int] = None) -> List[int]:
    limit = limit or settings.notifications.batch_size
    with Session(get_engine()) as session:
        return list(session.exec(
            select(NotificationOutbox.id)
            .where(NotificationOutbox.status == "pending")
            .order_by(NotificationOutbox.created_at.asc())
            .limit(limit)
        ).all())


def dispatch_pending(limit: Optional[int] = None) -> Dict[str, int]:
    """One worker pass over the oldest pending rows."""
    ids = pending_ids(limit)
    if not ids:
        return {"sent": 0, "pending": 0, "failed": 0}
    counts = dispatch_ids(ids)
    logger.info("[outbox] dispatched batch of %d: %s", len(ids), counts)
    return counts


async def run_outbox_worker() -> None:
    """Poll the outbox and re-send pending rows in a worker thread. Only cancellation stops it."""
    interval = settings.notifications.poll_interval_seconds
    logger.info("[outbox] background worker started (poll=%ds)", interval)
    while True:
        try:
            await asyncio.to_thread(dispatch_pending)
        except Exception:
            logger.exception("[outbox] poll cycle error")
        await asyncio.sleep(interval)
