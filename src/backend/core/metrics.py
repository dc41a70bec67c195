"""
Prometheus metrics for ServiceM8 integration and portal operations.

This module defines:
- External call throughput and latency (per ServiceM8 operation)
- Booking list cache effectiveness
- Authentication outcomes
- Ownership denials and tolerated partial-write failures

Usage:
    from core.metrics import booking_cache_lookups

    booking_cache_lookups.labels(result="hit").inc()
"""

from prometheus_client import Counter, Histogram

# ==============================================================================
# ServiceM8 Metrics
# ==============================================================================

servicem8_requests_total = Counter(
    'servicem8_requests_total',
    'Total ServiceM8 API calls',
    ['operation', 'status']
)

servicem8_request_duration = Histogram(
    'servicem8_request_duration_seconds',
    'ServiceM8 API call latency in seconds',
    ['operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# ==============================================================================
# Booking Reconciliation Metrics
# ==============================================================================

booking_cache_lookups = Counter(
    'booking_cache_lookups_total',
    'Booking list lookups by cache outcome',
    ['result']  # hit, miss
)

booking_jobs_synced = Counter(
    'booking_jobs_synced_total',
    'ServiceM8 jobs upserted into the local cache by list reconciliation'
)

# ==============================================================================
# Auth and Authorization Metrics
# ==============================================================================

auth_attempts = Counter(
    'auth_attempts_total',
    'Authentication attempts',
    ['action', 'result']  # action: register, login; result: success, failure
)

ownership_denials = Counter(
    'ownership_denials_total',
    'Job-scoped requests rejected because the job belongs to another company'
)

# ==============================================================================
# Two-Phase Write Metrics
# ==============================================================================

partial_write_failures = Counter(
    'partial_write_failures_total',
    'Best-effort phases that failed after the authoritative write succeeded',
    ['operation']  # create_mirror, update_mirror, delete_external
)
