import logging

from terradiff.logging_config import HealthCheckFilter, get_logging_config


def _record(name, message):
    return logging.LogRecord(name, logging.INFO, __file__, 1, message, None, None)


def test_health_and_metrics_access_logs_suppressed():
    f = HealthCheckFilter()

    assert not f.filter(_record("uvicorn.access", 'GET /health HTTP/1.1" 200'))
    assert not f.filter(_record("uvicorn.access", 'GET /metrics HTTP/1.1" 200'))
    assert f.filter(_record("uvicorn.access", 'GET / HTTP/1.1" 200'))
    assert f.filter(_record("terradiff.diff", "GET /health"))


def test_level_applies_to_terradiff_logger():
    config = get_logging_config("debug")

    assert config["loggers"]["terradiff"]["level"] == "DEBUG"
