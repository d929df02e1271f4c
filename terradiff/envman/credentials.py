"""
Credentials loaded from files.

It's a slightly unusual way of specifying credentials, but it works well with
Kubernetes secrets, which are mounted as files on disk.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from .secret import Secret

PathLike = Union[str, Path]


class CredentialsError(RuntimeError):
    """A credentials file could not be read."""


@dataclass(frozen=True)
class AWSCredentialsFiles:
    access_key_id_file: Path
    secret_access_key_file: Path


@dataclass(frozen=True)
class AWSCredentials:
    access_key_id: bytes
    secret_access_key: Secret[bytes]

    def to_env_vars(self) -> Dict[str, str]:
        return {
            "AWS_ACCESS_KEY_ID": self.access_key_id.decode("utf-8"),
            "AWS_SECRET_ACCESS_KEY": self.secret_access_key.reveal().decode("utf-8"),
        }


@dataclass(frozen=True)
class GitHubToken:
    """A bearer token, exported to Terraform as `env_var`."""
    token: Secret[bytes]
    env_var: str = "GITHUB_TOKEN"

    def to_env_vars(self) -> Dict[str, str]:
        # Only one variable, but a dict for consistency with AWSCredentials.
        return {self.env_var: self.token.reveal().decode("utf-8")}


def read_secret_file(path: PathLike) -> bytes:
    """
    Read a secret from a file, probably mounted from a Kubernetes secret.

    Loads the whole file and keeps everything before the first newline. The
    latter is an affordance for local development, where it is easy to have a
    spurious newline at the end of a file.

    Args:
        path: File to read

    Returns:
        File content up to the first newline

    Raises:
        CredentialsError: If the file cannot be read or is not valid UTF-8
    """
    try:
        with open(path, "rb") as f:
            content = f.read()
    except OSError as e:
        raise CredentialsError(f"Failed to read credentials file: {path}") from e
    secret = content.split(b"\n", 1)[0]
    # Values end up in the child environment, which needs text
    try:
        secret.decode("utf-8")
    except UnicodeDecodeError:
        raise CredentialsError(f"Credentials file is not valid UTF-8: {path}") from None
    return secret


def aws_credentials_from_files(files: AWSCredentialsFiles) -> AWSCredentials:
    """Load AWS credentials from an access key ID file and a secret access key file."""
    return AWSCredentials(
        access_key_id=read_secret_file(files.access_key_id_file),
        secret_access_key=Secret(read_secret_file(files.secret_access_key_file)),
    )


def github_token_from_file(path: PathLike) -> GitHubToken:
    return GitHubToken(Secret(read_secret_file(path)))
