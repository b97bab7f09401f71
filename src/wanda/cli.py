"""Operator command line for Wanda."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from wanda.app.bootstrap import build_app, build_cli_wrappers
from wanda.channels.commands import format_oauth_status
from wanda.channels.utils import tail_lines
from wanda.config import load_settings
from wanda.errors import WandaError
from wanda.logging_utils import configure_logging

app = typer.Typer(name="wanda", help="WANDA chat bots and CLI bridge.", add_completion=False)


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"error: {exc}", err=True)
    return typer.Exit(1)


@app.command()
def telegram() -> None:
    """Run the Telegram bot (long polling)."""
    from wanda.channels.telegram import TelegramChannel

    configure_logging()
    try:
        channel = TelegramChannel(build_app())
        asyncio.run(channel.run())
    except KeyboardInterrupt:
        typer.echo("Telegram bot stopped.")
    except WandaError as exc:
        raise _fail(exc) from exc


@app.command()
def discord() -> None:
    """Run the Discord bot."""
    from wanda.channels.discord import DiscordChannel

    configure_logging()
    try:
        channel = DiscordChannel(build_app())
        asyncio.run(channel.run())
    except KeyboardInterrupt:
        typer.echo("Discord bot stopped.")
    except WandaError as exc:
        raise _fail(exc) from exc


@app.command()
def providers() -> None:
    """List resolved providers and their models."""
    configure_logging(profile="console")
    try:
        context = build_app()
    except WandaError as exc:
        raise _fail(exc) from exc
    runtime = context.runtime
    for name in runtime.list_providers():
        provider = runtime.config.providers[name]
        marker = "*" if name == runtime.config.default_provider else " "
        typer.echo(f"{marker} {name} ({provider.type}): {', '.join(provider.models)} [default: {provider.default_model}]")
    typer.echo(f"max history turns: {runtime.max_history_turns}")


@app.command("oauth-status")
def oauth_status() -> None:
    """Show OAuth tokens and API keys known to the wanda CLI."""
    configure_logging(profile="console")
    wanda_cli, _ = build_cli_wrappers(load_settings())
    try:
        status = asyncio.run(wanda_cli.auth_status())
    except WandaError as exc:
        raise _fail(exc) from exc
    typer.echo(format_oauth_status(status))


@app.command("oauth-login")
def oauth_login(provider: str = typer.Argument(..., help="OAuth provider, e.g. gemini")) -> None:
    """Start an OAuth login through the wanda CLI."""
    configure_logging(profile="console")
    wanda_cli, _ = build_cli_wrappers(load_settings())
    try:
        output = asyncio.run(wanda_cli.auth_login(provider))
    except (WandaError, ValueError) as exc:
        raise _fail(exc) from exc
    typer.echo(tail_lines(output))


@app.command("oauth-logout")
def oauth_logout(provider: str = typer.Argument(..., help="OAuth provider, e.g. gemini")) -> None:
    """Log out of an OAuth provider through the wanda CLI."""
    configure_logging(profile="console")
    wanda_cli, _ = build_cli_wrappers(load_settings())
    try:
        output = asyncio.run(wanda_cli.auth_logout(provider))
    except (WandaError, ValueError) as exc:
        raise _fail(exc) from exc
    typer.echo(tail_lines(output))


@app.command("vox-status")
def vox_status(
    check: bool = typer.Option(False, "--check", help="Run `--help` against the vox CLI"),
) -> None:
    """Show the voice transcription configuration."""
    configure_logging(profile="console")
    settings = load_settings()
    _, vox_cli = build_cli_wrappers(settings)
    typer.echo(f"VOX CLI: {'found' if vox_cli.is_available() else 'missing'}")
    typer.echo(f"VOX_STT_MODE: {settings.vox_stt_mode}")
    typer.echo(f"VOX_STT_WEBHOOK_URL: {settings.vox_stt_webhook_url or '(unset)'}")
    if check:
        try:
            healthy = asyncio.run(vox_cli.health_check())
        except WandaError as exc:
            raise _fail(exc) from exc
        typer.echo(f"VOX health: {'ok' if healthy else 'unexpected help output'}")


@app.command()
def transcribe(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Audio file to transcribe"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", help="Transcription model"),
) -> None:
    """Transcribe one audio file with the vox CLI."""
    configure_logging(profile="console")
    settings = load_settings()
    _, vox_cli = build_cli_wrappers(settings)
    try:
        result = asyncio.run(vox_cli.transcribe(file, model=model or settings.vox_transcribe_model))
    except WandaError as exc:
        raise _fail(exc) from exc
    typer.echo(result.transcript)
