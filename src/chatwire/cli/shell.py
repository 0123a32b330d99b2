"""
Interactive shell: shows the routed view and feeds it input.

Input is read in a worker thread so pushed events keep arriving on the
event loop while the prompt waits; a dirty view is re-rendered as soon as
it changes.
"""

from typing import Awaitable, Callable, Optional
import asyncio
import functools
import logging

import typer
from rich.rule import Rule
from rich.text import Text

from ..core.client.facade import AuthEvent
from ..core.client.session import Session
from ..routing.router import RouteMatch
from ..views.base import View, ViewContext
from ..views.signin import SignInView

logger = logging.getLogger(__name__)

HELP_TEXT = """\
:go <path>          navigate (/, /chat, /signin)
:back               previous page
:signin <email>     sign in (asks for the password)
:register <email>   create an account and sign in
:signout            sign out
:refresh            reload the current page
:help               show this help
:quit               leave"""

PromptFunc = Callable[[str, bool], Awaitable[Optional[str]]]


async def _default_prompt(label: str, hide_input: bool = False) -> Optional[str]:
    loop = asyncio.get_running_loop()
    ask = functools.partial(
        typer.prompt,
        label,
        default="",
        show_default=False,
        hide_input=hide_input,
    )
    try:
        return await loop.run_in_executor(None, ask)
    except (typer.Abort, EOFError, KeyboardInterrupt):
        return None


class ChatShell:
    """Drives the router and the current view from console input."""

    def __init__(self, context: ViewContext, prompt: Optional[PromptFunc] = None):
        self.context = context
        self.view: Optional[View] = None
        self._prompt = prompt or _default_prompt
        self._pending: Optional[RouteMatch] = None
        self._render_needed = asyncio.Event()
        self._renderer: Optional[asyncio.Task] = None
        context.router.on_change(self._on_route_change)
        context.client.on_auth(AuthEvent.LOGOUT, self._on_logout)

    def _on_route_change(self, match: RouteMatch) -> None:
        self._pending = match

    def _on_logout(self, session: Session) -> None:
        current = self.context.router.current
        if current is not None and current.meta.get("requires_auth"):
            self.context.notifier.warning("Your session ended. Please sign in again.")
            self.context.router.replace(current.full_path)

    def build_view(self, match: RouteMatch) -> View:
        """Instantiate the page and wrap it in its layouts, innermost first."""
        view: View = match.route.view(self.context, match)
        for layout in reversed(match.layouts):
            if layout.view is not None:
                view = layout.view(self.context, match, view)
        return view

    async def sync_view(self) -> None:
        """Swap in the view for the latest navigation, if it changed."""
        while self._pending is not None:
            match, self._pending = self._pending, None
            if self.view is not None:
                await self.view.unmount()
            self.view = self.build_view(match)
            self.view.set_invalidate_callback(self._render_needed.set)
            await self.view.mount()
            self._render_needed.set()

    def render(self) -> None:
        console = self.context.console
        if self.view is None:
            return
        console.print(Rule(style="dim"))
        console.print(self.view.render())
        self.context.notifier.flush(console)
        hints = self.view.hints()
        if hints:
            console.print(Text("  ".join(hints), style="dim"))
        self.view.dirty = False
        self._render_needed.clear()

    async def _render_loop(self) -> None:
        while True:
            await self._render_needed.wait()
            self.render()

    async def run(self, start: str = "/") -> None:
        """Run until :quit or end of input."""
        self.context.router.push(start)
        await self.sync_view()
        self.render()
        self._renderer = asyncio.create_task(self._render_loop())
        try:
            while True:
                line = await self._prompt("chatwire", False)
                if line is None:
                    break
                if not await self.handle_line(line.strip()):
                    break
                await self.sync_view()
                self._render_needed.set()
        finally:
            self._renderer.cancel()
            try:
                await self._renderer
            except asyncio.CancelledError:
                pass
            if self.view is not None:
                await self.view.unmount()
            self.context.notifier.flush(self.context.console)

    async def handle_line(self, line: str) -> bool:
        """Handle one line of input. Returns False to leave the shell."""
        if not line:
            return True
        if not line.startswith(":"):
            if self.view is not None:
                await self.view.handle_input(line)
            return True

        command, _, argument = line[1:].partition(" ")
        argument = argument.strip()
        router = self.context.router
        notifier = self.context.notifier

        if command in ("quit", "q", "exit"):
            return False
        elif command == "help":
            notifier.info(HELP_TEXT)
        elif command == "go":
            router.push(argument or "/")
        elif command == "back":
            if router.back() is None:
                notifier.info("No previous page")
        elif command == "refresh":
            if router.current is not None:
                self._pending = router.current
        elif command == "signout":
            await self.context.client.logout()
            notifier.positive("Signed out")
            router.push("/")
        elif command in ("signin", "register"):
            await self._credentials_command(command, argument)
        else:
            notifier.negative(f"Unknown command ':{command}'. Type :help for commands.")
        return True

    async def _credentials_command(self, command: str, email: str) -> None:
        if not email:
            self.context.notifier.info(f"Usage: :{command} <email>")
            return
        current = self.context.router.current
        if current is None or current.route.name != "signin":
            self.context.router.push("/signin")
            await self.sync_view()

        password = await self._prompt("Password", True)
        if not password:
            self.context.notifier.info("Cancelled")
            return

        page = self.view.page if hasattr(self.view, "page") else self.view
        if not isinstance(page, SignInView):
            self.context.notifier.negative("Sign-in page is not available")
            return
        if command == "register":
            await page.register(email, password)
        else:
            await page.sign_in(email, password)
