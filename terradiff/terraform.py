"""
Terraform wrapper functions for computing infrastructure diffs.
"""

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from typing import List, Tuple

from .config import Config
from .envman import build_environment

logger = logging.getLogger(__name__)

Command = Tuple[str, List[str]]


class TerraformLaunchError(RuntimeError):
    """The Terraform binary could not be started."""


@dataclass(frozen=True)
class ProcessResult:
    """
    The result of running a process.

    Includes the command that was run, to make rendering easier. The
    environment is deliberately not recorded, as it holds credentials.
    """
    title: str
    command: List[str]
    exit_code: int
    output: bytes
    error: bytes

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def describe_command(self) -> str:
        return shlex.join(self.command)


def format_process_result(result: ProcessResult) -> str:
    """
    Format a process result for logs and error reports.

    Args:
        result: Result to format

    Returns:
        Multi-line description with the command, exit code, stdout and stderr
    """
    status = "succeeded" if result.succeeded else "failed"
    return (
        f"{result.title!r} {status}: {result.exit_code}\n"
        f"Command: {result.describe_command()}\n"
        f"Output:\n----\n{result.output.decode('utf-8', errors='replace')}----\n"
        f"Error:\n----\n{result.error.decode('utf-8', errors='replace')}----\n"
    )


def exit_code_label(exit_code: int) -> str:
    return str(exit_code)


def run_terraform(config: Config, command: str, args: List[str]) -> ProcessResult:
    """
    Run a terraform command and record how long it took.

    Exit codes are not interpreted here; that's up to the caller.

    Args:
        config: Terraform configuration
        command: Terraform sub-command, e.g. "plan"
        args: Arguments for the sub-command

    Returns:
        ProcessResult with exit code and captured output

    Raises:
        TerraformLaunchError: If the binary cannot be started
    """
    argv = [config.terraform_binary, command, *args]
    env = build_environment(config)

    start = time.monotonic()
    try:
        completed = subprocess.run(
            argv,
            cwd=str(config.working_directory),
            env=env,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            check=False,
        )
    except OSError as e:
        raise TerraformLaunchError(f"Failed to run terraform command: {shlex.join(argv)}") from e
    duration = time.monotonic() - start

    config.command_duration.labels(command, exit_code_label(completed.returncode)).observe(duration)

    result = ProcessResult(
        title=command,
        command=argv,
        exit_code=completed.returncode,
        output=completed.stdout,
        error=completed.stderr,
    )
    # Output is left out: refresh output can contain secrets
    logger.debug(f"Ran terraform process in {duration:.2f}s: {result.describe_command()} ; exit code {result.exit_code}")
    return result


def _lock_flag(config: Config) -> str:
    return f"-lock={'true' if config.terraform_locking else 'false'}"


def init_command(config: Config) -> Command:
    return "init", [_lock_flag(config), str(config.terraform_path)]


def refresh_command(config: Config) -> Command:
    return "refresh", [_lock_flag(config), str(config.terraform_path)]


def plan_command(config: Config) -> Command:
    # -detailed-exitcode: 0 is no changes, 2 is changes present, anything else failed
    return "plan", [
        _lock_flag(config),
        "-detailed-exitcode",
        "-refresh=false",
        str(config.terraform_path),
    ]


def tf_init(config: Config) -> ProcessResult:
    """
    Initialize a Terraform working directory.

    Run before anything else, as there's no better way of asserting that we
    are running in an initialised workspace.
    """
    return run_terraform(config, *init_command(config))


def tf_refresh(config: Config) -> ProcessResult:
    """
    Refresh the Terraform state by examining actual infrastructure.

    Run this before `tf_plan` so plans are based on reality.

    NOTE: The output of this command might include secrets.
    """
    return run_terraform(config, *refresh_command(config))


def tf_plan(config: Config) -> ProcessResult:
    """Generate a Terraform plan, without refreshing state again."""
    return run_terraform(config, *plan_command(config))
