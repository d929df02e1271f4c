"""
In-process metrics: histograms and gauges with a Prometheus text renderer.

The Terraform code only ever calls `labels(...).observe(value)` and
`set(value)`, so any backend with the same shape can be swapped in.
"""

import math
import threading
from typing import Dict, List, Optional, Sequence, Tuple, Union


def linear_buckets(start: float, width: float, count: int) -> List[float]:
    """
    Upper bounds for `count` buckets, `width` apart, starting at `start`.

    Raises:
        ValueError: If count is less than 1
    """
    if count < 1:
        raise ValueError(f"Bucket count must be positive, got {count}")
    return [start + i * width for i in range(count)]


def _format_value(value: float) -> str:
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return repr(float(value))


def _format_labels(pairs: Sequence[Tuple[str, str]]) -> str:
    if not pairs:
        return ""
    body = ",".join(f'{k}="{_escape(v)}"' for k, v in pairs)
    return "{" + body + "}"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class Histogram:
    """A single histogram: cumulative bucket counts, sum and count."""

    def __init__(self, buckets: Sequence[float]):
        bounds = sorted(float(b) for b in buckets)
        if not bounds or not math.isinf(bounds[-1]):
            bounds.append(math.inf)
        self.bounds = bounds
        self._counts = [0] * len(bounds)
        self._sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float) -> None:
        with self._lock:
            self._sum += value
            for i, bound in enumerate(self.bounds):
                if value <= bound:
                    self._counts[i] += 1
                    break

    @property
    def count(self) -> int:
        with self._lock:
            return sum(self._counts)

    @property
    def sum(self) -> float:
        with self._lock:
            return self._sum

    def cumulative_counts(self) -> List[Tuple[float, int]]:
        with self._lock:
            counts = list(self._counts)
        result = []
        running = 0
        for bound, c in zip(self.bounds, counts):
            running += c
            result.append((bound, running))
        return result


class LabelledHistogram:
    """Histograms keyed by label values, e.g. ``(command, exit_code)``."""

    kind = "histogram"

    def __init__(self, name: str, help: str, labelnames: Sequence[str], buckets: Sequence[float]):
        self.name = name
        self.help = help
        self.labelnames = tuple(labelnames)
        self.buckets = list(buckets)
        self._children: Dict[Tuple[str, ...], Histogram] = {}
        self._lock = threading.Lock()

    def labels(self, *values: str) -> Histogram:
        if len(values) != len(self.labelnames):
            raise ValueError(
                f"{self.name} expects labels {self.labelnames}, got {values}"
            )
        key = tuple(str(v) for v in values)
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = Histogram(self.buckets)
                self._children[key] = child
            return child

    def children(self) -> Dict[Tuple[str, ...], Histogram]:
        with self._lock:
            return dict(self._children)

    def render(self) -> List[str]:
        lines = []
        for key, child in sorted(self.children().items()):
            pairs = list(zip(self.labelnames, key))
            for bound, running in child.cumulative_counts():
                labels = _format_labels(pairs + [("le", _format_value(bound))])
                lines.append(f"{self.name}_bucket{labels} {running}")
            labels = _format_labels(pairs)
            lines.append(f"{self.name}_sum{labels} {_format_value(child.sum)}")
            lines.append(f"{self.name}_count{labels} {child.count}")
        return lines


class Gauge:
    """A value that can go up and down."""

    kind = "gauge"

    def __init__(self, name: str, help: str):
        self.name = name
        self.help = help
        self._value = 0.0
        self._lock = threading.Lock()

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def render(self) -> List[str]:
        return [f"{self.name} {_format_value(self.value)}"]


Metric = Union[LabelledHistogram, Gauge]


class MetricsRegistry:
    """Collection of named metrics that can be rendered for scraping."""

    def __init__(self):
        self._metrics: Dict[str, Metric] = {}
        self._lock = threading.Lock()

    def register(self, metric: Metric) -> Metric:
        """
        Register a metric, or return the one already registered under its name.

        Raises:
            ValueError: If the name is taken by a metric of a different kind or labels
        """
        with self._lock:
            existing = self._metrics.get(metric.name)
            if existing is None:
                self._metrics[metric.name] = metric
                return metric
        if type(existing) is not type(metric) or getattr(existing, "labelnames", None) != getattr(metric, "labelnames", None):
            raise ValueError(f"Metric already registered with a different shape: {metric.name}")
        return existing

    def get(self, name: str) -> Optional[Metric]:
        with self._lock:
            return self._metrics.get(name)

    def render(self) -> str:
        """Render every metric in the Prometheus text exposition format."""
        with self._lock:
            metrics = sorted(self._metrics.values(), key=lambda m: m.name)
        lines = []
        for metric in metrics:
            lines.append(f"# HELP {metric.name} {metric.help}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            lines.extend(metric.render())
        return "\n".join(lines) + "\n"


REGISTRY = MetricsRegistry()


def command_duration_metric(registry: MetricsRegistry = REGISTRY) -> LabelledHistogram:
    """How long Terraform commands take to run, by command and exit code."""
    return registry.register(LabelledHistogram(
        "terradiff_terraform_command_duration_seconds",
        "How long Terraform commands take to run",
        ("command", "exit_code"),
        # `terraform` generally takes a few seconds to run.
        linear_buckets(0.0, 2.0, 12),
    ))


def plan_exit_code_metric(registry: MetricsRegistry = REGISTRY) -> Gauge:
    return registry.register(Gauge(
        "terradiff_plan_exit_code",
        "The exit code of the latest run of 'terraform plan'.",
    ))
