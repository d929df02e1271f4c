import subprocess

import pytest

from terradiff.config import Config
from terradiff.obs.metrics import MetricsRegistry, command_duration_metric, plan_exit_code_metric


def completed(returncode=0, stdout=b"", stderr=b""):
    """A finished process as returned by subprocess.run."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def make_config(tmp_path):
    """Build a Config with its own metrics registry, working in tmp_path."""
    def _make(**kw):
        registry = MetricsRegistry()
        base = dict(
            terraform_binary="terraform",
            terraform_path=tmp_path / "tf",
            working_directory=tmp_path,
            terraform_log_level=None,
            terraform_locking=False,
            aws_credentials=None,
            github_token=None,
            command_duration=command_duration_metric(registry),
            plan_exit_code=plan_exit_code_metric(registry),
        )
        base.update(kw)
        return Config(**base)
    return _make
