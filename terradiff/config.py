"""
Configuration for running Terraform.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .envman import (
    AWSCredentials,
    AWSCredentialsFiles,
    GitHubToken,
    aws_credentials_from_files,
    github_token_from_file,
)
from .obs.metrics import (
    Gauge,
    LabelledHistogram,
    MetricsRegistry,
    REGISTRY,
    command_duration_metric,
    plan_exit_code_metric,
)

TERRAFORM_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "WARN", "ERROR")


@dataclass(frozen=True)
class FlagConfig:
    """Configuration for running Terraform, as specified on the command line."""
    terraform_binary: str = "terraform"
    # Where the Terraform config files live; defaults to the working directory
    terraform_files: Optional[Path] = None
    # Where we run terraform; defaults to the current directory
    working_directory: Optional[Path] = None
    # If unspecified, we let Terraform decide
    terraform_log_level: Optional[str] = None
    terraform_locking: bool = False
    aws_credentials_files: Optional[AWSCredentialsFiles] = None
    github_token_file: Optional[Path] = None


@dataclass(frozen=True)
class Config:
    """
    Configuration for running Terraform.

    Either construct this directly or from a `FlagConfig` using
    `validate_flag_config`.
    """
    terraform_binary: str
    terraform_path: Path
    working_directory: Path
    terraform_log_level: Optional[str]
    terraform_locking: bool
    aws_credentials: Optional[AWSCredentials]
    github_token: Optional[GitHubToken]
    # How long Terraform commands take to run, by (command, exit_code)
    command_duration: LabelledHistogram
    # Result of the latest `terraform plan`
    plan_exit_code: Gauge


def validate_flag_config(flags: FlagConfig, registry: Optional[MetricsRegistry] = None) -> Config:
    """
    Turn command-line configuration into something we can actually use.

    Credentials are loaded here, once, and never re-read during a run.

    Args:
        flags: Parsed command-line configuration
        registry: Where to register metrics (defaults to the global registry).
            Validating twice against one registry reuses the same metrics.

    Returns:
        Config ready for running Terraform

    Raises:
        CredentialsError: If a credentials file cannot be read
        ValueError: If the Terraform log level is not recognised
    """
    if flags.terraform_log_level and flags.terraform_log_level.upper() not in TERRAFORM_LOG_LEVELS:
        raise ValueError(f"Invalid Terraform log level: {flags.terraform_log_level}")

    aws_credentials = None
    if flags.aws_credentials_files is not None:
        aws_credentials = aws_credentials_from_files(flags.aws_credentials_files)

    github_token = None
    if flags.github_token_file is not None:
        github_token = github_token_from_file(flags.github_token_file)

    working_directory = Path(flags.working_directory or os.getcwd())
    terraform_path = Path(flags.terraform_files or working_directory)

    registry = registry if registry is not None else REGISTRY
    return Config(
        terraform_binary=flags.terraform_binary,
        terraform_path=terraform_path,
        working_directory=working_directory,
        terraform_log_level=flags.terraform_log_level.upper() if flags.terraform_log_level else None,
        terraform_locking=flags.terraform_locking,
        aws_credentials=aws_credentials,
        github_token=github_token,
        command_duration=command_duration_metric(registry),
        plan_exit_code=plan_exit_code_metric(registry),
    )
