"""
Main CLI application entry point.

This module contains the Typer application and command handlers for
chatwire.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from chatwire import VERSION
from chatwire.config.env_loader import load_env_with_hierarchy
from chatwire.config.settings import ChatwireSettings
from chatwire.core.client import (
    ChatClient,
    ChatError,
    create_chat_client,
    create_user_friendly_message,
)
from chatwire.routing.routes import build_routes, create_router
from chatwire.routing.router import Router
from chatwire.views import Notifier, ViewContext
from .shell import ChatShell

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Create the main Typer application
app = typer.Typer(
    name="chatwire",
    help="chatwire - authenticated real-time chat from the terminal",
    add_completion=False,
    rich_markup_mode="rich",
)

# Rich console for output
console = Console()


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"[bold blue]chatwire[/bold blue] version [green]{VERSION}[/green]")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    transport: Optional[str] = typer.Option(None, "--transport", "-t", help="Transport: rest or socket"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """
    chatwire - authenticated real-time chat from the terminal.

    Settings come from CHATWIRE_* environment variables and the nearest
    .chatwire/.env or .env file.
    """
    load_env_with_hierarchy()
    overrides: Dict[str, Any] = {}
    if transport:
        overrides["transport"] = transport
    if log_level:
        overrides["log_level"] = log_level
    if debug:
        overrides["debug"] = True
    try:
        settings = ChatwireSettings(**overrides)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    configure_logging(settings.effective_log_level)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> ChatwireSettings:
    return ctx.obj if isinstance(ctx.obj, ChatwireSettings) else ChatwireSettings()


def _run(settings: ChatwireSettings, action: Callable[[ChatClient], Awaitable[T]], *, restore: bool = True) -> T:
    """Run an async action with a connected client, mapping errors to exit codes."""

    async def _main() -> T:
        client = create_chat_client(settings)
        async with client:
            if restore:
                await _restore_session(client)
            return await action(client)

    try:
        return asyncio.run(_main())
    except ChatError as e:
        console.print(f"[red]Error:[/red] {create_user_friendly_message(e)}")
        logger.debug(f"Command failed: {e!r}")
        raise typer.Exit(1)


async def _restore_session(client: ChatClient) -> None:
    if client.storage.get() is None:
        return
    try:
        await client.reauthenticate()
    except ChatError as e:
        logger.info(f"Could not restore session: {e}")


@app.command("run")
def run_command(
    ctx: typer.Context,
    path: str = typer.Argument("/", help="Page to open first"),
) -> None:
    """Start the interactive chat shell."""
    settings = _settings(ctx)

    async def _shell(client: ChatClient) -> None:
        router = create_router(lambda: client.session.is_authenticated)
        context = ViewContext(
            client=client,
            router=router,
            notifier=Notifier(),
            settings=settings,
            console=console,
        )
        await ChatShell(context).run(path)

    _run(settings, _shell)


@app.command("signin")
def signin_command(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, help="Account password"),
    strategy: Optional[str] = typer.Option(None, "--strategy", help="Authentication strategy"),
) -> None:
    """Sign in and store the access token."""
    settings = _settings(ctx)

    async def _signin(client: ChatClient) -> None:
        session = await client.authenticate(
            strategy or settings.auth_strategy,
            {"email": email, "password": password},
        )
        who = session.user.email if session.user else email
        console.print(f"[green]Signed in as[/green] {who}")

    _run(settings, _signin, restore=False)


@app.command("register")
def register_command(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
    ),
) -> None:
    """Create an account, then sign in with it."""
    settings = _settings(ctx)

    async def _register(client: ChatClient) -> None:
        user = await client.service("users").create({"email": email, "password": password})
        console.print(f"[green]Account created:[/green] {user.email}")
        await client.authenticate(settings.auth_strategy, {"email": email, "password": password})
        console.print(f"[green]Signed in as[/green] {user.email}")

    _run(settings, _register, restore=False)


@app.command("signout")
def signout_command(ctx: typer.Context) -> None:
    """Sign out and forget the stored access token."""
    settings = _settings(ctx)

    async def _signout(client: ChatClient) -> None:
        await client.logout()
        console.print("Signed out")

    _run(settings, _signout)


@app.command("whoami")
def whoami_command(ctx: typer.Context) -> None:
    """Show the signed-in user."""
    settings = _settings(ctx)

    async def _whoami(client: ChatClient) -> None:
        user = client.session.user
        if not client.session.is_authenticated or user is None:
            console.print("[dim]Not signed in[/dim]")
            raise typer.Exit(1)
        console.print(f"{user.email} [dim](id {user.id})[/dim]")

    _run(settings, _whoami)


@app.command("users")
def users_command(ctx: typer.Context) -> None:
    """List registered users."""
    settings = _settings(ctx)

    async def _users(client: ChatClient) -> None:
        page = await client.service("users").find()
        table = Table(title=f"Users ({page.total})")
        table.add_column("ID", style="dim")
        table.add_column("Email", style="cyan")
        table.add_column("Joined", style="dim")
        for user in page.data:
            joined = user.created_at.strftime("%Y-%m-%d %H:%M") if user.created_at else ""
            table.add_row(str(user.id), user.email, joined)
        console.print(table)

    _run(settings, _users)


@app.command("messages")
def messages_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Number of messages to show"),
) -> None:
    """Show the latest messages."""
    settings = _settings(ctx)

    async def _messages(client: ChatClient) -> None:
        page = await client.service("messages").find({
            "$sort": {"createdAt": -1},
            "$limit": limit or settings.message_page_size,
        })
        for message in reversed(page.data):
            author = message.user.email if message.user else f"user {message.user_id}"
            stamp = message.created_at.strftime("%H:%M") if message.created_at else ""
            console.print(f"[dim]{stamp}[/dim] [bold cyan]{author}[/bold cyan] {message.text}")
        console.print(f"[dim]{len(page.data)} of {page.total} messages[/dim]")

    _run(settings, _messages)


@app.command("send")
def send_command(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Message text"),
) -> None:
    """Send one message."""
    settings = _settings(ctx)

    async def _send(client: ChatClient) -> None:
        message = await client.service("messages").create({"text": text})
        console.print(f"[green]Sent[/green] [dim](id {message.id})[/dim]")

    _run(settings, _send)


@app.command("routes")
def routes_command() -> None:
    """Show the route table."""
    router = Router(build_routes())
    table = Table(title="Routes")
    table.add_column("Path", style="cyan")
    table.add_column("Name")
    table.add_column("View")
    table.add_column("Auth", justify="center")
    for full_path, route in router.routes:
        view_name = getattr(route.view, "__name__", str(route.view))
        auth = "✓" if router.resolve(full_path).meta.get("requires_auth") else ""
        table.add_row(full_path, route.name or "", view_name, auth)
    console.print(table)


@app.command("config")
def config_command(ctx: typer.Context) -> None:
    """Show effective settings."""
    settings = _settings(ctx)
    table = Table(title="chatwire settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    data: Dict[str, Any] = settings.to_dict()
    for key in sorted(data):
        table.add_row(key, str(data[key]))
    table.add_row("token_file", str(settings.token_file))
    console.print(table)
