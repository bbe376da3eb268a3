"""
Prometheus metrics configuration
"""
from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Histogram, Info,
                               generate_latest)
from prometheus_client.registry import REGISTRY

from dreammapper.core.config import get_settings

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint', 'status_code'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

http_errors_total = Counter(
    'http_errors_total',
    'Total number of HTTP errors',
    ['method', 'endpoint', 'status_code', 'error_type']
)

# ============================================================================
# Inference Metrics
# ============================================================================

llm_requests_total = Counter(
    'llm_requests_total',
    'Total number of inference requests',
    ['model', 'status']  # status: 'success', 'error'
)

llm_request_duration_seconds = Histogram(
    'llm_request_duration_seconds',
    'Inference request duration in seconds',
    ['model'],
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)
)

llm_output_salvaged_total = Counter(
    'llm_output_salvaged_total',
    'Responses that needed brace-slice salvage before parsing'
)

# ============================================================================
# Moon Phase Metrics
# ============================================================================

moon_lookups_total = Counter(
    'moon_lookups_total',
    'Total number of moon phase lookups',
    ['outcome']  # outcome: 'ok', 'degraded'
)

# ============================================================================
# Analysis Pipeline Metrics
# ============================================================================

dream_analyses_total = Counter(
    'dream_analyses_total',
    'Dream analysis submissions',
    ['outcome']  # outcome: 'completed', 'failed', 'rejected', 'not_saved'
)

dream_analysis_duration_seconds = Histogram(
    'dream_analysis_duration_seconds',
    'End-to-end dream analysis duration in seconds',
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)
)

# ============================================================================
# System Info
# ============================================================================

app_info = Info(
    'app_info',
    'Application information'
)

_settings = get_settings()
app_info.info({
    'app_name': _settings.app_name,
    'app_env': _settings.app_env,
    'version': '0.1.0'
})


def get_metrics():
    """
    Get Prometheus metrics in text format

    Returns:
        bytes: Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def get_metrics_content_type():
    """Get content type for Prometheus metrics"""
    return CONTENT_TYPE_LATEST
