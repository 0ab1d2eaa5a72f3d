"""Laneful CLI - sign, verify and inspect webhooks, send email."""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def _configure_logging(level: str) -> None:
    import structlog

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]{escape(message)}[/red]")
    sys.exit(1)


def _resolve_secret(ctx: click.Context, secret: str | None) -> str:
    secret = secret or ctx.obj["config"].webhook_secret
    if not secret:
        _fail("No webhook secret: pass --secret or set LANEFUL_WEBHOOK_SECRET")
    return secret


@click.group()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML or TOML config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: warning, use --verbose for debug)",
)
@click.pass_context
def main(ctx: click.Context, config_file: str | None, verbose: bool, log_level: str | None):
    """Laneful - email API and webhook tools.

    Examples:

        laneful sign payload.json --secret s3cr3t

        laneful verify payload.json --signature sha256=... --secret s3cr3t

        laneful parse payload.json

        laneful send email.json
    """
    from laneful.config import LanefulConfig

    try:
        cfg = LanefulConfig.from_file(config_file) if config_file else LanefulConfig()
    except (ValueError, FileNotFoundError) as e:
        _fail(f"Failed to load config: {e}")

    _configure_logging("debug" if verbose else (log_level or cfg.log_level))

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@main.command()
def version():
    """Show version information."""
    from laneful import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {escape(sys.version)}")


@main.command()
@click.argument("body", type=click.File("rb"))
@click.option("--secret", envvar="LANEFUL_WEBHOOK_SECRET", help="Webhook secret")
@click.option("--prefix/--no-prefix", default=True, help="Prepend 'sha256=' (default: on)")
@click.pass_context
def sign(ctx: click.Context, body: IO[bytes], secret: str | None, prefix: bool):
    """Print the signature Laneful would send for BODY ('-' for stdin)."""
    from laneful.exceptions import ConfigurationError
    from laneful.webhooks import generate_signature

    try:
        click.echo(generate_signature(_resolve_secret(ctx, secret), body.read(), prefix))
    except ConfigurationError as e:
        _fail(str(e))


@main.command()
@click.argument("body", type=click.File("rb"))
@click.option("--signature", "-s", required=True, help="Value of the x-webhook-signature header")
@click.option("--secret", envvar="LANEFUL_WEBHOOK_SECRET", help="Webhook secret")
@click.pass_context
def verify(ctx: click.Context, body: IO[bytes], signature: str, secret: str | None):
    """Check SIGNATURE against BODY. Exits 1 when it does not match."""
    from laneful.exceptions import ConfigurationError
    from laneful.webhooks import verify_signature

    try:
        valid = verify_signature(_resolve_secret(ctx, secret), body.read(), signature)
    except ConfigurationError as e:
        _fail(str(e))

    if not valid:
        _fail("Signature is invalid")
    console.print("[green]Signature is valid[/green]")


@main.command()
@click.argument("body", type=click.File("rb"))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def parse(body: IO[bytes], json_output: bool):
    """Validate a webhook BODY and list its events."""
    from laneful.exceptions import PayloadStructureError
    from laneful.webhooks import parse_webhook_payload

    try:
        payload = parse_webhook_payload(body.read())
    except PayloadStructureError as e:
        _fail(f"Invalid payload: {e}")

    if json_output:
        click.echo(
            json.dumps({"is_batch": payload.is_batch, "events": list(payload.events)}, indent=2)
        )
        return

    mode = "batch" if payload.is_batch else "single"
    console.print(f"[bold]Mode:[/bold] {mode}  [bold]Events:[/bold] {len(payload)}")

    table = Table()
    table.add_column("Event", style="cyan")
    table.add_column("Email")
    table.add_column("Message ID", style="dim")
    table.add_column("Timestamp", justify="right")
    table.add_column("Details")
    for event in payload:
        details = [
            f"{key}={event[key]}"
            for key in ("url", "reason", "is_hard", "tag")
            if key in event
        ]
        cells = (
            event["event"],
            event["email"],
            event["message_id"],
            event["timestamp"],
            ", ".join(details),
        )
        table.add_row(*map(escape, cells))
    console.print(table)


@main.command()
@click.argument("email_file", type=click.File("r"))
@click.option("--base-url", envvar="LANEFUL_BASE_URL", help="Account API base URL")
@click.option("--auth-token", envvar="LANEFUL_AUTH_TOKEN", help="API token")
@click.pass_context
def send(ctx: click.Context, email_file: IO[str], base_url: str | None, auth_token: str | None):
    """Send the email(s) described in EMAIL_FILE (JSON object or array)."""
    from laneful.client import LanefulClient
    from laneful.exceptions import LanefulError
    from laneful.models import Email

    cfg = ctx.obj["config"]
    try:
        data = json.load(email_file)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {email_file.name}: {e}")

    items = data if isinstance(data, list) else [data]
    try:
        emails = [Email.from_dict(item) for item in items]
        with LanefulClient(
            base_url or cfg.base_url,
            auth_token or cfg.auth_token,
            timeout=cfg.timeout,
        ) as client:
            result = client.send_emails(emails)
    except LanefulError as e:
        _fail(f"{type(e).__name__}: {e}")

    console.print(f"[green]Sent {len(emails)} email(s)[/green]")
    click.echo(json.dumps(result, indent=2))


@main.group()
def config():
    """View configuration settings.

    All settings can be configured via environment variables with the
    LANEFUL_ prefix.
    """
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool):
    """Show current configuration settings (secrets masked)."""
    display = ctx.obj["config"].to_display_dict()

    if json_output:
        click.echo(json.dumps(display, indent=2))
        return

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Env Variable", style="dim")
    for key, value in display.items():
        table.add_row(key, "" if value is None else str(value), f"LANEFUL_{key.upper()}")
    console.print(table)


if __name__ == "__main__":
    main()
