"""
Click-based CLI for nix-installer.

IMPORTANT: This module only ORCHESTRATES.
- Loads settings
- Plans and drives actions
- Persists the receipt
- Formats output
"""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from nix_installer import __version__
from nix_installer.action import PlaceChannelConfiguration
from nix_installer.config import ChannelSpec, ConfigManager, InstallerSettings
from nix_installer.errors import InstallerError
from nix_installer.receipt import ReceiptError, load_receipt, remove_receipt, save_receipt
from nix_installer.report import Reporter
from nix_installer.self_test import Shell, self_test

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="nix-installer")
@click.option("--config", "-c", type=click.Path(), help="Path to config directory")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """nix-installer: reversible channel configuration and shell self-test."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.ensure_object(dict)
    config_dir = Path(config) if config else None
    ctx.obj["config_mgr"] = ConfigManager(config_dir)


def _fail(error: InstallerError) -> NoReturn:
    console.print(f"[bold red]Error:[/] {escape(str(error))}")
    cause = error.__cause__
    if cause is not None:
        console.print(f"[red]  Caused by:[/] {escape(str(cause))}")
    console.print(f"[dim]{escape(error.diagnostic())}[/]")
    sys.exit(1)


def _load_settings(ctx: click.Context) -> InstallerSettings:
    try:
        return ctx.obj["config_mgr"].load()
    except InstallerError as e:
        _fail(e)


def _resolve_channels(settings: InstallerSettings, raw_channels: tuple[str, ...]) -> list[tuple[str, str]]:
    """Channels from --channel options, or the settings file when none given."""
    if not raw_channels:
        return settings.channel_pairs()
    try:
        channels = [ChannelSpec.parse(raw) for raw in raw_channels]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--channel") from e
    return [channel.as_pair() for channel in channels]


def _plan(ctx: click.Context, raw_channels: tuple[str, ...], force: bool) -> PlaceChannelConfiguration:
    settings = _load_settings(ctx)
    channels = _resolve_channels(settings, raw_channels)
    try:
        return PlaceChannelConfiguration.plan(channels, force=force or settings.force)
    except InstallerError as e:
        _fail(e)


channel_option = click.option(
    "--channel",
    "raw_channels",
    multiple=True,
    metavar="NAME=URL",
    help="Channel to configure (repeatable, overrides settings)",
)
force_option = click.option("--force", is_flag=True, help="Overwrite an existing channel file")


@main.command()
@channel_option
@force_option
@click.pass_context
def plan(ctx: click.Context, raw_channels: tuple[str, ...], force: bool) -> None:
    """Show what install would do, without changing anything."""
    action = _plan(ctx, raw_channels, force)
    Reporter(console).report_plan(action)


@main.command()
@channel_option
@force_option
@click.pass_context
def install(ctx: click.Context, raw_channels: tuple[str, ...], force: bool) -> None:
    """Place the channel configuration and record a receipt."""
    config_mgr: ConfigManager = ctx.obj["config_mgr"]
    receipt_file = config_mgr.receipt_file
    if receipt_file.exists():
        _fail(
            ReceiptError(
                ReceiptError.Kind.EXISTS,
                receipt_file,
                f"Receipt already exists at {receipt_file}, run uninstall first",
            )
        )

    action = _plan(ctx, raw_channels, force)
    try:
        action.execute()
    except InstallerError as e:
        _fail(e)

    try:
        save_receipt(action, receipt_file)
    except InstallerError as e:
        # A change on the host always has a receipt
        try:
            action.revert()
        except InstallerError as revert_error:
            console.print(f"[bold red]Rollback failed:[/] {escape(str(revert_error))}")
        _fail(e)

    console.print(f"[bold green]✓[/] {escape(action.tracing_synopsis())}")


@main.command()
@click.pass_context
def uninstall(ctx: click.Context) -> None:
    """Revert the action recorded in the receipt."""
    config_mgr: ConfigManager = ctx.obj["config_mgr"]
    try:
        action = load_receipt(config_mgr.receipt_file)
        description = action.revert_description()[0].description
        action.revert()
    except InstallerError as e:
        _fail(e)

    remove_receipt(config_mgr.receipt_file)
    console.print(f"[bold green]✓[/] {escape(description)}")


@main.command("self-test")
@click.option("--concurrent", is_flag=True, help="Probe shells in parallel")
@click.option("--timeout", type=float, default=None, help="Per-shell timeout in seconds")
@click.pass_context
def self_test_command(ctx: click.Context, concurrent: bool, timeout: float | None) -> None:
    """Probe every shell on PATH and report all failures."""
    settings = _load_settings(ctx)
    concurrent = concurrent or settings.concurrent_self_test
    if timeout is None:
        timeout = settings.self_test_timeout

    shells = Shell.discover()
    failures = self_test(shells, concurrent=concurrent, timeout=timeout)
    Reporter(console).report_self_test(shells, failures)
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
