"""
按客户端 IP 的固定窗口限流

FixedWindowLimiter   - 线程安全、容量有界的计数表，过期窗口显式淘汰。
RateLimitMiddleware  - Starlette 中间件，超限时返回 429 {"error": ...}。
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from confreview.observability import metrics

TOO_MANY_REQUESTS = "Too many requests from this IP, please try again later."


@dataclass
class _Window:
    started: float
    count: int


class FixedWindowLimiter:
    """
    每个 key 一个固定窗口计数器。
    - window_seconds: 窗口长度，窗口从该 key 的第一次请求开始计时。
    - max_requests: 单窗口内允许的最大请求数。
    - max_clients: 最多跟踪的 key 数；满时先清理过期窗口，仍满则淘汰最早开窗的 key。
    """

    __slots__ = ("_windows", "_window", "_max_requests", "_max_clients", "_clock", "_lock")

    def __init__(
        self,
        window_seconds: float = 900,
        max_requests: int = 5000,
        max_clients: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._windows: OrderedDict[str, _Window] = OrderedDict()
        self._window = max(1.0, float(window_seconds))
        self._max_requests = max(1, max_requests)
        self._max_clients = max(1, max_clients)
        self._clock = clock
        self._lock = RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _expired(self, w: _Window, now: float) -> bool:
        return now - w.started >= self._window

    def evict_expired(self) -> int:
        """删除所有已过期窗口，返回删除数量。"""
        with self._lock:
            now = self._clock()
            # 按开窗时间有序，遇到第一个未过期即可停止
            removed = 0
            while self._windows:
                key, w = next(iter(self._windows.items()))
                if not self._expired(w, now):
                    break
                self._windows.popitem(last=False)
                removed += 1
            return removed

    def hit(self, key: str) -> bool:
        """记一次请求；返回 True 表示放行，False 表示超限。"""
        with self._lock:
            now = self._clock()
            w = self._windows.get(key)
            if w is not None and self._expired(w, now):
                del self._windows[key]
                w = None
            if w is None:
                if len(self._windows) >= self._max_clients:
                    self.evict_expired()
                    while len(self._windows) >= self._max_clients:
                        self._windows.popitem(last=False)
                w = _Window(started=now, count=0)
                self._windows[key] = w
            if w.count >= self._max_requests:
                return False
            w.count += 1
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            w = self._windows.get(key)
            if w is None or self._expired(w, self._clock()):
                return self._max_requests
            return max(0, self._max_requests - w.count)

    def reset(self) -> None:
        """测试用：清空所有窗口。"""
        with self._lock:
            self._windows.clear()


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """对所有 API 请求按客户端 IP 限流。"""

    def __init__(self, app, limiter: Optional[FixedWindowLimiter] = None, exempt_paths: tuple = ("/health", "/metrics")):
        super().__init__(app)
        if limiter is None:
            from config.settings import settings
            limiter = FixedWindowLimiter(
                window_seconds=settings.rate_limit.window_seconds,
                max_requests=settings.rate_limit.max_requests,
                max_clients=settings.rate_limit.max_clients,
            )
        self.limiter = limiter
        self.exempt_paths = exempt_paths

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)
        if not self.limiter.hit(client_key(request)):
            metrics.rate_limited_total.inc()
            return JSONResponse(status_code=429, content={"error": TOO_MANY_REQUESTS})
        return await call_next(request)
