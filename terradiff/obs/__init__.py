"""
Observability for terradiff: command duration and plan exit code metrics.
"""

from .metrics import (
    REGISTRY,
    Gauge,
    Histogram,
    LabelledHistogram,
    MetricsRegistry,
    command_duration_metric,
    linear_buckets,
    plan_exit_code_metric,
)

__all__ = [
    "REGISTRY",
    "Gauge",
    "Histogram",
    "LabelledHistogram",
    "MetricsRegistry",
    "command_duration_metric",
    "linear_buckets",
    "plan_exit_code_metric",
]
