"""
Compute a Terraform "diff": the output of `terraform plan`.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from .config import Config
from .terraform import ProcessResult, format_process_result, tf_init, tf_plan, tf_refresh

logger = logging.getLogger(__name__)

# `terraform plan -detailed-exitcode` exits with this when changes are present
PLAN_CHANGES_PRESENT = 2


@dataclass(frozen=True)
class Diff:
    """The output of `terraform plan` when it found changes. Generate with `diff`."""
    output: bytes


class ProcessError(Exception):
    """A Terraform command failed. Carries the result of the failing command."""

    def __init__(self, result: ProcessResult):
        super().__init__(f"terraform {result.title} failed with exit code {result.exit_code}")
        self.result = result


@dataclass(frozen=True)
class NoChange:
    pass


@dataclass(frozen=True)
class Changed:
    output: bytes


@dataclass(frozen=True)
class Failed:
    exit_code: int
    result: ProcessResult


PlanOutcome = Union[NoChange, Changed, Failed]


def classify_plan(result: ProcessResult) -> PlanOutcome:
    """Interpret the exit code of `terraform plan -detailed-exitcode`."""
    if result.exit_code == 0:
        return NoChange()
    if result.exit_code == PLAN_CHANGES_PRESENT:
        return Changed(result.output)
    return Failed(result.exit_code, result)


def _fail(result: ProcessResult) -> ProcessError:
    # Unfortunately this also logs an error when the process failed because a
    # lock is held. Terraform gives us no structured way of telling these apart.
    logger.error(f"Process failed: {format_process_result(result)}")
    return ProcessError(result)


PREPARE_STEPS: List[Callable[[Config], ProcessResult]] = [tf_init, tf_refresh]


def diff(config: Config) -> Optional[Diff]:
    """
    Get a Terraform diff for the configured workspace.

    Runs `init`, `refresh` and `plan` in order, stopping at the first failure.
    The plan exit code gauge is only updated once `plan` has run.

    Args:
        config: Terraform configuration

    Returns:
        Diff if there are changes, None if infrastructure matches configuration

    Raises:
        ProcessError: If any Terraform command failed
        TerraformLaunchError: If the Terraform binary cannot be started
    """
    for step in PREPARE_STEPS:
        result = step(config)
        if not result.succeeded:
            raise _fail(result)

    plan_result = tf_plan(config)
    config.plan_exit_code.set(plan_result.exit_code)

    outcome = classify_plan(plan_result)
    if isinstance(outcome, NoChange):
        return None
    if isinstance(outcome, Changed):
        return Diff(outcome.output)
    raise _fail(outcome.result)
