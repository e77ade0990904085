"""CLI entry point for the platform layer."""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click
import structlog

from depbot.config.settings import PlatformSettings
from depbot.exceptions import ConfigurationError, DepbotError
from depbot.models.domain import RepoParams
from depbot.platform.factory import initialize_platform
from depbot.presets import get_preset_source
from depbot.utils.connection_pool import close_all_pools
from depbot.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


def _run(ctx: click.Context, command: Callable[[PlatformSettings], Awaitable[Any]]) -> None:
    """Run an async command, reporting depbot errors on stderr."""
    settings: PlatformSettings = ctx.obj["settings"]
    try:
        asyncio.run(command(settings))
    except DepbotError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("command_failed", command=ctx.info_name, exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)


@click.group()
@click.option("--config", "config_path", default=None, help="Path to YAML configuration file")
@click.option("--log-level", default=None, help="Logging level (overrides the configuration)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """depbot: hosting platform access for dependency updates."""
    try:
        settings = PlatformSettings.from_yaml(config_path) if config_path else PlatformSettings()
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    configure_logging(log_level or settings.log_level)
    ctx.obj = {"settings": settings}


@cli.command()
@click.pass_context
def repos(ctx: click.Context) -> None:
    """List the configured repositories, or those the platform can see."""

    async def _repos(settings: PlatformSettings) -> None:
        if settings.repositories:
            for repository in settings.repositories:
                click.echo(repository)
            return

        platform, _ = await initialize_platform(settings)
        try:
            for repository in await platform.get_repos():
                click.echo(repository)
        finally:
            await platform.close()

    _run(ctx, _repos)


@cli.command()
@click.argument("repository")
@click.pass_context
def info(ctx: click.Context, repository: str) -> None:
    """Show the default branch and fork status of REPOSITORY."""

    async def _info(settings: PlatformSettings) -> None:
        platform, _ = await initialize_platform(settings)
        try:
            result = await platform.init_repo(RepoParams(repository=repository))
            click.echo(f"repository: {result.session.repository}")
            click.echo(f"default_branch: {result.default_branch}")
            click.echo(f"is_fork: {str(result.is_fork).lower()}")
            click.echo(f"force_rebase: {str(await platform.get_repo_force_rebase(result.session)).lower()}")
        finally:
            await platform.close()

    _run(ctx, _info)


@cli.command()
@click.argument("repository")
@click.argument("file_name")
@click.option("--json", "as_json", is_flag=True, help="Parse the file as JSON/JSON5 and pretty-print it")
@click.pass_context
def cat(ctx: click.Context, repository: str, file_name: str, as_json: bool) -> None:
    """Print FILE_NAME from REPOSITORY."""

    async def _cat(settings: PlatformSettings) -> None:
        platform, _ = await initialize_platform(settings)
        try:
            session = (await platform.init_repo(RepoParams(repository=repository))).session
            if as_json:
                document = await platform.get_json_file(session, file_name)
                click.echo(json.dumps(document, indent=2))
            else:
                click.echo(await platform.get_raw_file(session, file_name), nl=False)
        finally:
            await platform.close()

    _run(ctx, _cat)


@cli.command()
@click.argument("pkg_name")
@click.argument("preset_name", default="default")
@click.option("--path", "preset_path", default=None, help="Directory holding the preset files")
@click.option("--tag", "package_tag", default=None, help="Tag or branch to read the preset at")
@click.pass_context
def preset(ctx: click.Context, pkg_name: str, preset_name: str, preset_path: str | None, package_tag: str | None) -> None:
    """Resolve PRESET_NAME from the preset repository PKG_NAME."""

    async def _preset(settings: PlatformSettings) -> None:
        get_preset = get_preset_source(settings.preset_source)
        try:
            document = await get_preset(pkg_name, preset_name, preset_path, settings.preset_endpoint, package_tag)
        finally:
            await close_all_pools()

        if document is None:
            raise DepbotError(f"Preset {preset_name} not found in {pkg_name}")
        click.echo(json.dumps(document, indent=2))

    _run(ctx, _preset)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
