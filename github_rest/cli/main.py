"""Command line interface for the GitHub REST client."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests
import typer
from rich import box
from rich.logging import RichHandler
from rich.table import Table

from ..api_client import GitHubApiClient
from ..config import Config, ServerConfig
from ..console import Console
from ..constants import RATE_CATEGORIES
from ..exceptions import (
    AbuseRateLimitError,
    AcceptedError,
    GitHubRestError,
    RateLimitError,
)
from ..options import ListOptions
from ..response import Response
from ..services import RateLimitService
from ..utils import validate_pat_format, validate_url

app = typer.Typer(help="Call the GitHub REST API and inspect pagination and rate limits.")
config_app = typer.Typer(help="Manage configuration settings")
app.add_typer(config_app, name="config")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every request and response"),
) -> None:
    """GitHub REST client command line."""
    console.set_verbose(verbose)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def load_config() -> Config:
    """Load configuration or exit with a readable error."""
    try:
        return Config.load()
    except ValueError as exc:
        console.print_error(exc, "Configuration error:")
        console.print("[info]Run [accent]ghrest init[/] to set up your configuration[/]")
        raise typer.Exit(code=1) from exc


def _fail(exc: Exception) -> typer.Exit:
    if isinstance(exc, RateLimitError):
        console.print_error(exc, "Rate limit exceeded:")
        console.print(f"[warning]Resets in {exc.rate.reset_in()}[/]")
    elif isinstance(exc, AbuseRateLimitError):
        console.print_error(exc, "Secondary rate limit:")
        if exc.retry_after is not None:
            console.print(f"[warning]Retry after {exc.retry_after}[/]")
    elif isinstance(exc, requests.RequestException):
        console.print_error(exc, "Network error:")
    else:
        console.print_error(exc, "Request failed:")
    response = getattr(exc, "response", None)
    if console.is_verbose() and isinstance(response, Response):
        _print_meta(response)
    return typer.Exit(code=1)


def _print_meta(response: Response[Any]) -> None:
    rate = response.rate
    parts = [f"status={response.status_code}"]
    if response.next_page:
        parts.append(f"next_page={response.next_page}")
    if response.last_page:
        parts.append(f"last_page={response.last_page}")
    if response.next_page_token:
        parts.append(f"next_page_token={response.next_page_token}")
    if rate.limit:
        parts.append(f"rate[{rate.resource}]={rate.remaining}/{rate.limit}")
    if response.etag:
        parts.append(f"etag={response.etag}")
    console.print(f"[muted]{' '.join(parts)}[/]", highlight=False)


@app.command()
def init(
    pat: Optional[str] = typer.Option(
        None,
        "--pat",
        help="GitHub Personal Access Token",
        hide_input=True,
    ),
    enterprise_host: Optional[str] = typer.Option(
        None,
        "--enterprise-host",
        help=(
            "Base URL of your GitHub Enterprise host (e.g. https://github.example.com). "
            "API and upload URLs are derived automatically."
        ),
    ),
) -> None:
    """Store the token in the system keyring and save server settings."""
    if pat is None:
        pat = typer.prompt("GitHub Personal Access Token", hide_input=True)

    try:
        validate_pat_format(pat)
        if enterprise_host:
            host = enterprise_host.strip()
            if not host.startswith(("http://", "https://")):
                host = f"https://{host}"
            validate_url(host, "Enterprise host")
            enterprise_host = host
    except ValueError as exc:
        console.print_error(exc, "Validation error:")
        raise typer.Exit(code=1) from exc

    config = load_config()
    if enterprise_host:
        config.server = ServerConfig.for_enterprise(enterprise_host)

    try:
        config.update_auth(pat.strip())
    except RuntimeError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc

    config.dump()
    console.print("[success]✓ Configuration saved[/]")


@config_app.command("show")
def show_config() -> None:
    """Display current configuration settings; the token is masked."""
    data = load_config().to_display_dict()

    table = Table(
        title="GitHub REST Configuration",
        box=box.ROUNDED,
        title_style="title",
        border_style="frame",
        show_lines=True,
    )
    table.add_column("Section", style="label", no_wrap=True)
    table.add_column("Values", style="value")

    for section, values in data.items():
        rendered = "\n".join(f"[label]{k}[/]: [value]{v}[/]" for k, v in values.items())
        table.add_row(f"[accent]{section}[/]", rendered)

    console.print(table)


@config_app.command("get")
def config_get(
    key: str = typer.Argument(..., help="Configuration key in dot notation (e.g. api.timeout)"),
) -> None:
    """Get a configuration value."""
    try:
        value = load_config().get_value(key)
    except ValueError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc
    console.print(f"{key} = {value}", highlight=False)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key in dot notation (e.g. api.timeout)"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Set a configuration value.

    Examples:
        ghrest config set api.timeout 10
        ghrest config set api.check_rate_limit true
    """
    try:
        config = load_config()
        config.set_value(key, value)
        config.dump()
    except ValueError as exc:
        console.print_error(exc)
        raise typer.Exit(code=1) from exc
    console.print(f"[success]✓ Configuration updated:[/] {key} = {value}", highlight=False)


@app.command("rate-limit")
def rate_limit() -> None:
    """Show the current rate limit of every category."""
    with GitHubApiClient(load_config()) as client:
        try:
            RateLimitService(client).get()
        except (GitHubRestError, requests.RequestException) as exc:
            raise _fail(exc) from exc
        rates = client.rate_limiter.snapshot_all()

    table = Table(title="GitHub Rate Limits", box=box.ROUNDED, title_style="title", border_style="frame")
    table.add_column("Resource", style="label")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Resets in", style="muted")

    order = {name: index for index, name in enumerate(RATE_CATEGORIES)}
    for name in sorted(rates, key=lambda name: (order.get(name, len(order)), name)):
        rate = rates[name]
        style = "danger" if rate.limit and rate.remaining == 0 else "value"
        table.add_row(
            name,
            f"[{style}]{rate.remaining}[/]",
            str(rate.limit),
            str(rate.used),
            str(rate.reset_in()).split(".")[0],
        )

    console.print(table)


@app.command()
def get(
    path: str = typer.Argument(..., help="API path relative to the API root (e.g. orgs/github/repos)"),
    paginate: bool = typer.Option(False, "--paginate", "-p", help="Follow Link headers through every page"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Page cap when paginating"),
    per_page: Optional[int] = typer.Option(None, "--per-page", help="Items per page"),
    etag: Optional[str] = typer.Option(None, "--etag", help="Send If-None-Match with this ETag"),
    accept: Optional[List[str]] = typer.Option(
        None, "--accept", "-a", help="Media type for the Accept header; repeat for several"
    ),
    accept_async: bool = typer.Option(
        False, "--async", help="Treat 202 Accepted as a background job that is still running"
    ),
) -> None:
    """Send a GET request and print the JSON body with page and rate metadata."""
    with GitHubApiClient(load_config()) as client:
        try:
            if paginate:
                items: List[Any] = []
                for response in client.iter_pages(
                    path,
                    dest=Any,
                    options=ListOptions(per_page=per_page or 0),
                    max_pages=max_pages,
                    media_types=accept or None,
                    accept_async=accept_async,
                ):
                    _print_meta(response)
                    if isinstance(response.data, list):
                        items.extend(response.data)
                    elif response.data is not None:
                        items.append(response.data)
                console.print_json(data=items)
                return

            response = client.request(
                "GET",
                path,
                dest=Any,
                query=ListOptions(per_page=per_page or 0),
                media_types=accept or None,
                etag=etag,
                accept_async=accept_async,
            )
        except AcceptedError as exc:
            console.print("[warning]202 Accepted: GitHub is still preparing this result; try again later.[/]")
            if exc.response is not None:
                _print_meta(exc.response)
            return
        except (GitHubRestError, requests.RequestException) as exc:
            raise _fail(exc) from exc

    _print_meta(response)
    if response.not_modified:
        console.print("[info]304 Not Modified: reuse your cached copy.[/]")
    elif response.data is not None:
        console.print_json(data=response.data)
