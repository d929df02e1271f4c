"""Main CLI entrypoint for terradiff."""

import functools
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from ..config import TERRAFORM_LOG_LEVELS, Config, FlagConfig, validate_flag_config
from ..diff import PLAN_CHANGES_PRESENT, ProcessError, diff
from ..envman import AWSCredentialsFiles, CredentialsError
from ..logging_config import configure_logging, get_logging_config
from ..obs.metrics import MetricsRegistry
from ..terraform import TerraformLaunchError, format_process_result

logger = logging.getLogger(__name__)

_path = click.Path(path_type=Path)


def terraform_options(f):
    """Options describing how to run Terraform, shared by every command."""
    options = [
        click.option('--terraform-binary', default='terraform', show_default=True,
                     envvar='TERRADIFF_TERRAFORM_BINARY',
                     help="Path to terraform binary. If not provided, will assume 'terraform' on PATH."),
        click.option('--terraform-files', type=_path,
                     help='Directory where the actual Terraform files live. Defaults to the working directory.'),
        click.option('--terraform-working-directory', type=_path,
                     help='Where we will run terraform. Defaults to the current directory.'),
        click.option('--terraform-log-level', type=click.Choice(TERRAFORM_LOG_LEVELS, case_sensitive=False),
                     help='Log level for Terraform itself. Useful for debugging errors.'),
        click.option('--terraform-locking', is_flag=True, help='Whether to use Terraform state locking'),
        click.option('--aws-access-key-id-file', type=_path,
                     help='Path to file containing AWS access key ID'),
        click.option('--aws-secret-access-key-file', type=_path,
                     help='Path to file containing AWS secret access key'),
        click.option('--github-token-file', type=_path,
                     help='Path to a file with a GitHub bearer token'),
    ]

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        kwargs['flags'] = _flag_config(
            terraform_binary=kwargs.pop('terraform_binary'),
            terraform_files=kwargs.pop('terraform_files'),
            working_directory=kwargs.pop('terraform_working_directory'),
            terraform_log_level=kwargs.pop('terraform_log_level'),
            terraform_locking=kwargs.pop('terraform_locking'),
            aws_access_key_id_file=kwargs.pop('aws_access_key_id_file'),
            aws_secret_access_key_file=kwargs.pop('aws_secret_access_key_file'),
            github_token_file=kwargs.pop('github_token_file'),
        )
        return f(*args, **kwargs)

    for option in reversed(options):
        wrapper = option(wrapper)
    return wrapper


def _flag_config(
    terraform_binary: str,
    terraform_files: Optional[Path],
    working_directory: Optional[Path],
    terraform_log_level: Optional[str],
    terraform_locking: bool,
    aws_access_key_id_file: Optional[Path],
    aws_secret_access_key_file: Optional[Path],
    github_token_file: Optional[Path],
) -> FlagConfig:
    if (aws_access_key_id_file is None) != (aws_secret_access_key_file is None):
        raise click.UsageError(
            '--aws-access-key-id-file and --aws-secret-access-key-file must be given together'
        )

    aws_files = None
    if aws_access_key_id_file is not None:
        aws_files = AWSCredentialsFiles(aws_access_key_id_file, aws_secret_access_key_file)

    return FlagConfig(
        terraform_binary=terraform_binary,
        terraform_files=terraform_files,
        working_directory=working_directory,
        terraform_log_level=terraform_log_level,
        terraform_locking=terraform_locking,
        aws_credentials_files=aws_files,
        github_token_file=github_token_file,
    )


def _load_config(flags: FlagConfig, registry: MetricsRegistry) -> Config:
    try:
        return validate_flag_config(flags, registry)
    except CredentialsError as e:
        click.echo(f"❌ {e}" + (f": {e.__cause__}" if e.__cause__ else ""), err=True)
        sys.exit(1)


class TerradiffGroup(click.Group):
    """Click group whose usage errors exit 1, as exit 2 means changes are present."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.group(cls=TerradiffGroup)
@click.option('--log-level', default='INFO', envvar='LOG_LEVEL', show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Log level for terradiff')
@click.pass_context
def main(ctx, log_level):
    """Terradiff - show drift between Terraform configuration and live infrastructure."""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level.upper()
    configure_logging(ctx.obj['log_level'])


@main.command('diff')
@terraform_options
def diff_cmd(flags: FlagConfig):
    """
    Run init, refresh and plan once.

    Exits 0 if there are no changes, 2 if there are, and 1 on failure.
    """
    config = _load_config(flags, MetricsRegistry())
    try:
        result = diff(config)
    except ProcessError as e:
        click.echo(format_process_result(e.result), err=True)
        sys.exit(1)
    except TerraformLaunchError as e:
        click.echo(f"❌ {e}: {e.__cause__}", err=True)
        sys.exit(1)

    if result is None:
        click.echo("No changes. Infrastructure matches configuration.")
        sys.exit(0)

    click.echo(result.output, nl=False)
    sys.exit(PLAN_CHANGES_PRESENT)


@main.command()
@click.option('--host', default='0.0.0.0', show_default=True, help='Address to listen on')
@click.option('--port', default=8080, envvar='PORT', show_default=True, type=int, help='Port to listen on')
@click.option('--interval', default=300.0, envvar='TERRADIFF_INTERVAL', show_default=True, type=float,
              help='Seconds between diff runs')
@terraform_options
@click.pass_context
def serve(ctx, host, port, interval, flags: FlagConfig):
    """Run the diff on an interval and serve the latest result and metrics."""
    import uvicorn

    from ..api import create_app
    from ..runner import DiffRunner

    registry = MetricsRegistry()
    config = _load_config(flags, registry)
    runner = DiffRunner(config, interval_seconds=interval)
    app = create_app(runner, registry)

    runner.start()
    logger.info(f"Serving terradiff on {host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port, log_config=get_logging_config(ctx.obj['log_level']))
    finally:
        runner.stop(timeout=5.0)


if __name__ == '__main__':
    main()
