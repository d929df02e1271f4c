"""FastAPI application serving the latest diff and metrics."""

from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .. import __version__
from ..obs.metrics import MetricsRegistry
from ..runner import DiffRunner, RunReport


# Pydantic models
class ProcessResultResponse(BaseModel):
    title: str
    command: str
    exit_code: int
    output: str
    error: str


class ReportResponse(BaseModel):
    status: str
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    diff: Optional[str] = None
    error: Optional[ProcessResultResponse] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def report_to_response(report: Optional[RunReport]) -> ReportResponse:
    if report is None:
        return ReportResponse(status="pending")

    error = None
    if report.error is not None:
        error = ProcessResultResponse(
            title=report.error.title,
            command=report.error.describe_command(),
            exit_code=report.error.exit_code,
            output=_decode(report.error.output),
            error=_decode(report.error.error),
        )

    return ReportResponse(
        status=report.status,
        started_at=report.started_at.isoformat(),
        finished_at=report.finished_at.isoformat(),
        diff=_decode(report.diff.output) if report.diff is not None else None,
        error=error,
        message=report.message,
    )


def create_app(runner: DiffRunner, registry: MetricsRegistry) -> FastAPI:
    """
    Create the terradiff HTTP application.

    Args:
        runner: Runner holding the latest diff report
        registry: Metrics to expose on /metrics

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="Terradiff",
        description="Drift between Terraform configuration and live infrastructure",
        version=__version__,
    )

    @app.get("/", response_model=ReportResponse)
    async def latest_report():
        """Latest diff result."""
        return report_to_response(runner.latest())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse(status="ok")

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics():
        return PlainTextResponse(registry.render(), media_type="text/plain; version=0.0.4")

    return app
