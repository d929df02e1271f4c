"""
Basic tests for secrets, credentials and the Terraform environment.
"""

import logging

import pytest

from terradiff.envman import (
    AWSCredentials,
    AWSCredentialsFiles,
    CredentialsError,
    GitHubToken,
    Secret,
    aws_credentials_from_files,
    build_environment,
    github_token_from_file,
    read_secret_file,
    terraform_env_vars,
)


class TestSecret:
    """Test the Secret wrapper."""

    @pytest.mark.parametrize("value", [b"hunter2", "hunter2", 12345, None, b""])
    def test_formatting_is_redacted(self, value):
        """Test that every way of formatting hides the value."""
        secret = Secret(value)

        assert str(secret) == "********"
        assert repr(secret) == "********"
        assert f"{secret}" == "********"
        assert "%s" % (secret,) == "********"

    def test_reveal(self):
        assert Secret(b"hunter2").reveal() == b"hunter2"

    def test_equality_is_structural(self):
        assert Secret(b"a") == Secret(b"a")
        assert Secret(b"a") != Secret(b"b")
        assert hash(Secret(b"a")) == hash(Secret(b"a"))

    def test_not_equal_to_raw_value(self):
        assert Secret(b"a") != b"a"

    def test_not_leaked_through_containers(self):
        """Test that dataclasses holding secrets don't print them."""
        creds = AWSCredentials(b"AKIDEXAMPLE", Secret(b"wJalrXUtnFEMI"))
        token = GitHubToken(Secret(b"ghp_abcdef"))

        assert "wJalrXUtnFEMI" not in repr(creds)
        assert "ghp_abcdef" not in repr(token)
        assert "AKIDEXAMPLE" in repr(creds)

    def test_not_leaked_through_logging(self, caplog):
        with caplog.at_level(logging.INFO):
            logging.getLogger("secret-test").info("token is %s", Secret("ghp_abcdef"))

        assert "ghp_abcdef" not in caplog.text
        assert "********" in caplog.text


class TestCredentials:
    """Test loading credentials from files."""

    def test_read_secret_file_stops_at_newline(self, tmp_path):
        path = tmp_path / "secret"
        path.write_bytes(b"abc123\nextra")

        assert read_secret_file(path) == b"abc123"

    def test_read_secret_file_trailing_newline(self, tmp_path):
        path = tmp_path / "secret"
        path.write_bytes(b"abc123\n")

        assert read_secret_file(path) == b"abc123"

    def test_read_secret_file_no_newline(self, tmp_path):
        path = tmp_path / "secret"
        path.write_bytes(b"abc123")

        assert read_secret_file(path) == b"abc123"

    def test_read_secret_file_missing(self, tmp_path):
        """Test that missing files raise CredentialsError naming the file."""
        path = tmp_path / "nope"

        with pytest.raises(CredentialsError, match="nope") as exc_info:
            read_secret_file(path)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_read_secret_file_not_utf8(self, tmp_path):
        """Test that undecodable content fails on load, without echoing it."""
        path = tmp_path / "secret"
        path.write_bytes(b"\xff\xfetoken\n")

        with pytest.raises(CredentialsError, match="not valid UTF-8") as exc_info:
            read_secret_file(path)
        assert exc_info.value.__cause__ is None
        assert "token" not in str(exc_info.value)

    def test_aws_credentials_from_files(self, tmp_path):
        key_id = tmp_path / "id"
        secret = tmp_path / "secret"
        key_id.write_bytes(b"abc123\nextra")
        secret.write_bytes(b"s3cr3t\n")

        creds = aws_credentials_from_files(AWSCredentialsFiles(key_id, secret))

        assert creds.access_key_id == b"abc123"
        assert creds.secret_access_key == Secret(b"s3cr3t")
        assert creds.to_env_vars() == {
            "AWS_ACCESS_KEY_ID": "abc123",
            "AWS_SECRET_ACCESS_KEY": "s3cr3t",
        }

    def test_aws_credentials_missing_secret_file(self, tmp_path):
        key_id = tmp_path / "id"
        key_id.write_bytes(b"abc123")

        with pytest.raises(CredentialsError):
            aws_credentials_from_files(AWSCredentialsFiles(key_id, tmp_path / "missing"))

    def test_github_token_from_file(self, tmp_path):
        path = tmp_path / "token"
        path.write_bytes(b"abc123\nextra")

        token = github_token_from_file(path)

        assert token.token.reveal() == b"abc123"
        assert token.to_env_vars() == {"GITHUB_TOKEN": "abc123"}


class TestEnvironment:
    """Test the environment passed to Terraform."""

    def test_automation_variables_always_set(self, make_config, tmp_path):
        env = terraform_env_vars(make_config())

        assert env["TF_IN_AUTOMATION"] == "1"
        assert env["TF_INPUT"] == "0"
        assert env["TF_CLI_ARGS"] == "-no-color"
        assert env["HOME"] == str(tmp_path)

    def test_no_optional_variables_by_default(self, make_config):
        env = terraform_env_vars(make_config())

        assert "TF_LOG" not in env
        assert "AWS_ACCESS_KEY_ID" not in env
        assert "AWS_SECRET_ACCESS_KEY" not in env
        assert "GITHUB_TOKEN" not in env

    def test_optional_variables(self, make_config):
        config = make_config(
            terraform_log_level="DEBUG",
            aws_credentials=AWSCredentials(b"id", Secret(b"secret")),
            github_token=GitHubToken(Secret(b"token")),
        )

        env = terraform_env_vars(config)

        assert env["TF_LOG"] == "DEBUG"
        assert env["AWS_ACCESS_KEY_ID"] == "id"
        assert env["AWS_SECRET_ACCESS_KEY"] == "secret"
        assert env["GITHUB_TOKEN"] == "token"

    def test_inherits_base_environment(self, make_config, tmp_path):
        base = {"PATH": "/usr/bin", "HOME": "/root", "TF_INPUT": "1"}

        env = build_environment(make_config(), base)

        assert env["PATH"] == "/usr/bin"
        assert env["HOME"] == str(tmp_path)
        assert env["TF_INPUT"] == "0"
        assert base["HOME"] == "/root"

    def test_inherits_os_environ(self, make_config, monkeypatch):
        monkeypatch.setenv("TERRADIFF_TEST_VAR", "present")

        env = build_environment(make_config())

        assert env["TERRADIFF_TEST_VAR"] == "present"
