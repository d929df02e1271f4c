from __future__ import annotations

import os
from typing import TYPE_CHECKING, Dict, Mapping, Optional

if TYPE_CHECKING:
    from terradiff.config import Config


# See https://www.terraform.io/docs/configuration/environment-variables.html
# and https://www.terraform.io/guides/running-terraform-in-automation.html
AUTOMATION_ENV = {
    "TF_IN_AUTOMATION": "1",  # Output more appropriate to automation
    "TF_INPUT": "0",  # Never prompt for input
    "TF_CLI_ARGS": "-no-color",  # Plain output for rendering
}


def terraform_env_vars(config: Config) -> Dict[str, str]:
    """
    Environment variables terradiff sets for every Terraform process.

    Args:
        config: Terraform configuration

    Returns:
        Variables to overlay on the inherited environment
    """
    env = dict(AUTOMATION_ENV)
    # Terraform needs a home directory for variable expansion
    env["HOME"] = str(config.working_directory)
    if config.terraform_log_level:
        env["TF_LOG"] = config.terraform_log_level
    if config.aws_credentials is not None:
        env.update(config.aws_credentials.to_env_vars())
    if config.github_token is not None:
        env.update(config.github_token.to_env_vars())
    return env


def build_environment(config: Config, base_env: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Inherited environment (`os.environ` by default) overlaid with terradiff's variables."""
    env = dict(os.environ if base_env is None else base_env)
    env.update(terraform_env_vars(config))
    return env
