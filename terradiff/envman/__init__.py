from .secret import Secret
from .credentials import (
    AWSCredentials,
    AWSCredentialsFiles,
    CredentialsError,
    GitHubToken,
    aws_credentials_from_files,
    github_token_from_file,
    read_secret_file,
)
from .inject import build_environment, terraform_env_vars

__all__ = [
    "Secret",
    "AWSCredentials",
    "AWSCredentialsFiles",
    "CredentialsError",
    "GitHubToken",
    "aws_credentials_from_files",
    "github_token_from_file",
    "read_secret_file",
    "build_environment",
    "terraform_env_vars",
]
