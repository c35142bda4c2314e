"""
Prometheus metrics 定义。

所有自定义指标集中定义，业务模块通过 `from confreview.observability import metrics` 引用。
"""

from prometheus_client import Counter, Histogram, Info


class _Metrics:
    """集中管理所有 Prometheus 指标"""

    def __init__(self):
        # ── HTTP 请求 ──
        self.http_requests_total = Counter(
            "conf_http_requests_total",
            "HTTP 请求总数",
            ["method", "endpoint", "status_code"],
        )
        self.http_request_duration_seconds = Histogram(
            "conf_http_request_duration_seconds",
            "HTTP 请求延迟 (秒)",
            ["method", "endpoint"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )
        self.rate_limited_total = Counter(
            "conf_rate_limited_total",
            "被限流拒绝的请求数",
        )

        # ── 审稿分配 ──
        self.assignments_total = Counter(
            "conf_assignments_total",
            "审稿分配操作总数",
            ["operation", "result"],  # operation: assign / unassign / reassign
        )

        # ── 审稿结论 ──
        self.reviews_total = Counter(
            "conf_reviews_total",
            "审稿人提交的审稿结论数",
            ["status"],
        )
        self.author_notifications_total = Counter(
            "conf_author_notifications_total",
            "向作者发送结果通知的次数",
            ["mode"],  # decision / aggregate
        )

        # ── 邮件 outbox ──
        self.notifications_total = Counter(
            "conf_notifications_total",
            "邮件投递尝试结果",
            ["kind", "result"],  # result: sent / pending / failed
        )

        # ── 系统 ──
        self.app_info = Info(
            "conf_app",
            "应用元信息",
        )


# 单例
metrics = _Metrics()
