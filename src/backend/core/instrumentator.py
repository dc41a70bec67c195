"""
HTTP instrumentation for Prometheus.

Request counts and latencies per route are exposed on /metrics next to the
domain metrics defined in core.metrics.
"""

from prometheus_fastapi_instrumentator import Instrumentator

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
)
