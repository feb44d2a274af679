"""Command-line interface for the Google Drive backup application."""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .archive.staging import stage_archive
from .config.settings import BackupConfig, CredentialsConfig
from .sync.backup_manager import BackupManager
from .utils.file_utils import FileHelper
from .utils.logging import setup_logging

EXIT_FAILURE = 2

console = Console()


def _fail(ctx: click.Context, message: str, error: Exception) -> None:
    """Print usage and the error, then terminate with the fatal exit code."""
    click.echo(ctx.get_help(), err=True)
    console.print(f"❌ Error!\nMsg: {escape(message)}\nErr: {escape(str(error))}", style="red bold")
    sys.exit(EXIT_FAILURE)


def _load_configs(
    config_path: Optional[Path],
    credentials_file: Optional[str] = None,
    token_file: Optional[str] = None,
    api_key: Optional[str] = None,
    **overrides,
) -> Tuple[BackupConfig, CredentialsConfig]:
    """Build the run configuration: defaults, then YAML, then explicit flags."""
    base = BackupConfig.from_yaml(config_path) if config_path else BackupConfig()
    backup_config = base.with_overrides(**overrides)
    creds_config = CredentialsConfig.from_env().with_overrides(
        credentials_file=credentials_file,
        token_file=token_file,
        api_key=api_key,
    )
    return backup_config, creds_config


def _setup_logging(config: BackupConfig) -> None:
    setup_logging(
        log_level=config.logging.level,
        log_file=Path(config.logging.file) if config.logging.file else None,
    )


@click.group()
@click.version_option(version=__version__)
def cli():
    """Google Drive Backup Tool

    Archives a local directory into a .tar.gz and uploads it to a Google Drive folder.
    """
    pass

@cli.command()
@click.option('--src', '-s', 'source',
              help='The source folder to backup. [default: .]')
@click.option('--dest', '-d', 'destination',
              help='The Google Drive backup destination folder. [default: /backup]')
@click.option('--tag', '-t',
              help='The descriptor tag which will be included in the filename.')
@click.option('--key', '-k', 'api_key',
              help='Google API key sent with Drive requests.')
@click.option('--config', '-c', 'config_path',
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Path to YAML configuration file')
@click.option('--credentials',
              help='Path to the OAuth client secrets file. [default: credentials.json]')
@click.option('--token',
              help='Path to the cached OAuth token. [default: token.json]')
@click.option('--staging-dir',
              help='Directory the archive is staged in before upload. [default: .]')
@click.option('--keep-archive',
              is_flag=True,
              help='Keep the staged archive after a successful upload.')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level')
@click.pass_context
def backup(ctx, source, destination, tag, api_key, config_path, credentials, token,
           staging_dir, keep_archive, log_level):
    """Archive the source folder and upload it to Google Drive."""
    try:
        backup_config, creds_config = _load_configs(
            config_path,
            credentials_file=credentials,
            token_file=token,
            api_key=api_key,
            source=source,
            destination=destination,
            tag=tag,
            staging_dir=staging_dir,
            keep_archive=True if keep_archive else None,
        )
        if log_level:
            backup_config.logging.level = log_level.upper()
    except Exception as e:
        _fail(ctx, "Invalid configuration.", e)

    _setup_logging(backup_config)

    console.print("Google drive backup utility.", style="bold")
    console.print(
        f"Args:\n Source: {backup_config.source}\n"
        f" Destination: {backup_config.destination}\n"
        f" Descriptor: {backup_config.tag}\n",
        markup=False,
    )

    try:
        result = BackupManager(backup_config, creds_config).run()
    except Exception as e:
        _fail(ctx, "Backup failed.", e)

    _display_backup_result(result)


def _display_backup_result(result):
    """Display the backup result in a table."""
    table = Table(title="Backup Result")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Status", f"[green]{result['status']}[/green]")
    table.add_row("Archive", result['archive_path'])
    table.add_row("Size", FileHelper.format_file_size(result['archive_size']))
    table.add_row("MD5", result['md5'])
    table.add_row("Remote file", f"{result['remote_name']} ({result['file_id']})")
    table.add_row("Folder id", result['folder_id'])
    table.add_row("Verified", "✅" if result['verified'] else "➖")
    table.add_row("Archive removed", "yes" if result['archive_removed'] else "no")
    table.add_row("Duration", f"{result['duration']:.1f}s")

    console.print(table)

@cli.command()
@click.option('--src', '-s', 'source',
              help='The source folder to archive. [default: .]')
@click.option('--tag', '-t',
              help='The descriptor tag which will be included in the filename.')
@click.option('--config', '-c', 'config_path',
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Path to YAML configuration file')
@click.option('--staging-dir',
              help='Directory the archive is written to. [default: .]')
@click.pass_context
def archive(ctx, source, tag, config_path, staging_dir):
    """Write the archive locally without uploading it."""
    try:
        backup_config, _ = _load_configs(
            config_path,
            source=source,
            tag=tag,
            staging_dir=staging_dir,
        )
    except Exception as e:
        _fail(ctx, "Invalid configuration.", e)

    _setup_logging(backup_config)

    try:
        with console.status("Writing archive..."):
            artifact = stage_archive(
                backup_config.source,
                tag=backup_config.tag,
                directory=backup_config.staging_dir,
            )
    except Exception as e:
        _fail(ctx, f"Error writing archive of {backup_config.source}", e)

    console.print(f"✅ Backup Archive: {escape(artifact.path)}", style="green")
    rprint(f"   • Size: {FileHelper.format_file_size(artifact.size)}")
    rprint(f"   • MD5: {artifact.md5}")

@cli.command()
@click.option('--credentials',
              help='Path to the OAuth client secrets file. [default: credentials.json]')
@click.option('--token',
              help='Path to the cached OAuth token. [default: token.json]')
@click.option('--key', '-k', 'api_key',
              help='Google API key sent with Drive requests.')
@click.pass_context
def test(ctx, credentials, token, api_key):
    """Test authorization and the connection to Google Drive."""
    try:
        backup_config, creds_config = _load_configs(
            None,
            credentials_file=credentials,
            token_file=token,
            api_key=api_key,
        )
    except Exception as e:
        _fail(ctx, "Invalid configuration.", e)

    _setup_logging(backup_config)
    console.print("🔍 Testing connections...\n")

    try:
        results = BackupManager(backup_config, creds_config).test_connections()
    except Exception as e:
        _fail(ctx, "Connection test failed.", e)

    table = Table(title="Connection Test Results")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="magenta")

    for service, status in results.items():
        status_text = "✅ Connected" if status else "❌ Failed"
        status_style = "green" if status else "red"
        table.add_row(service, f"[{status_style}]{status_text}[/{status_style}]")

    console.print(table)

    if all(results.values()):
        console.print("\n🎉 All connections successful!", style="green bold")
    else:
        console.print("\n⚠️ Some connections failed. Check your credentials.", style="yellow bold")
        sys.exit(EXIT_FAILURE)

@cli.command()
@click.option('--config', '-c', 'config_path',
              type=click.Path(path_type=Path),
              default=Path('config/config.yaml'),
              help='Path to save configuration file')
@click.pass_context
def init(ctx, config_path: Path):
    """Initialize a new configuration file."""
    if config_path.exists():
        if not click.confirm(f"Configuration file {config_path} already exists. Overwrite?"):
            return

    sample_config = BackupConfig(
        source='.',
        destination='/backup',
        tag='nightly',
        staging_dir='.',
    )
    try:
        sample_config.to_yaml(config_path)
    except OSError as e:
        _fail(ctx, f"Could not write configuration file {config_path}.", e)

    console.print(f"✅ Configuration saved to {config_path}", style="green")
    console.print("\n📝 Next steps:")
    console.print("1. Edit the configuration file to match your setup")
    console.print("2. Download an OAuth client secrets file as credentials.json")
    console.print("3. Run 'drive-backup test' to authorize and verify the connection")
    console.print(f"4. Run 'drive-backup backup -c {config_path}' to start backing up")

if __name__ == '__main__':
    cli()
