"""
Observability 模块：OpenTelemetry tracing + Prometheus metrics。

用法：
    from confreview.observability import setup_observability, metrics, tracer

    # 在应用启动前初始化
    setup_observability(app)

    # 业务代码中手动埋点
    with tracer.start_as_current_span("workflow.assign"):
        ...

    metrics.assignments_total.labels(operation="assign", result="ok").inc()
"""

from confreview.observability.setup import setup_observability
from confreview.observability.metrics import metrics
from confreview.observability.tracing import tracer

__all__ = ["setup_observability", "metrics", "tracer"]
