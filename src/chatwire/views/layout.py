"""
Main layout: toolbar, drawer menu and the routed page.
"""

from dataclasses import dataclass
from typing import List, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from chatwire import PACKAGE_NAME
from ..routing.router import RouteMatch
from .base import View, ViewContext


@dataclass(frozen=True)
class MenuItem:
    label: str
    target: str
    # "always", "authenticated" or "anonymous"
    visible: str = "always"

    def is_visible(self, authenticated: bool) -> bool:
        if self.visible == "authenticated":
            return authenticated
        if self.visible == "anonymous":
            return not authenticated
        return True


MENU = (
    MenuItem("Home", "/"),
    MenuItem("Chat", "/chat", visible="authenticated"),
    MenuItem("Sign in", "/signin", visible="anonymous"),
    MenuItem("Sign out", ":signout", visible="authenticated"),
)


class Toolbar:
    """App title on the left, the signed-in user on the right."""

    def __init__(self, context: ViewContext):
        self.context = context

    def render(self, title: str = "") -> RenderableType:
        grid = Table.grid(expand=True)
        grid.add_column(justify="left")
        grid.add_column(justify="right")
        heading = Text(PACKAGE_NAME, style="bold blue")
        if title:
            heading.append(f"  {title}", style="bold")
        user = self.context.session.user
        if self.context.session.is_authenticated and user is not None:
            status = Text(user.email, style="green")
        else:
            status = Text("not signed in", style="dim")
        grid.add_row(heading, status)
        return grid


class Drawer:
    """Navigation menu filtered by session state."""

    def __init__(self, context: ViewContext, items=MENU):
        self.context = context
        self.items = items

    def visible_items(self) -> List[MenuItem]:
        authenticated = self.context.session.is_authenticated
        return [item for item in self.items if item.is_visible(authenticated)]

    def render(self, current_path: Optional[str] = None) -> RenderableType:
        lines = Text()
        for item in self.visible_items():
            style = "bold reverse" if item.target == current_path else ""
            lines.append(f" {item.label} ", style=style)
            lines.append(f" {item.target}\n", style="dim")
        return Panel(lines, title="Menu", border_style="dim")


class MainLayout(View):
    """Wraps a page with the toolbar and the drawer."""

    def __init__(self, context: ViewContext, match: Optional[RouteMatch], page: View):
        super().__init__(context, match)
        self.page = page
        self.toolbar = Toolbar(context)
        self.drawer = Drawer(context)

    @property
    def title(self) -> str:  # type: ignore[override]
        return self.page.title

    def set_invalidate_callback(self, callback) -> None:
        super().set_invalidate_callback(callback)
        self.page.set_invalidate_callback(callback)

    @property
    def dirty(self) -> bool:  # type: ignore[override]
        return self._dirty or self.page.dirty

    @dirty.setter
    def dirty(self, value: bool) -> None:
        self._dirty = value
        if not value and hasattr(self, "page"):
            self.page.dirty = False

    async def mount(self) -> None:
        await self.page.mount()
        await super().mount()

    async def unmount(self) -> None:
        await self.page.unmount()
        await super().unmount()

    def render(self) -> RenderableType:
        current = self.match.path if self.match else None
        return Group(
            self.toolbar.render(self.page.title),
            self.drawer.render(current),
            Panel(self.page.render(), border_style="blue"),
        )

    async def handle_input(self, text: str) -> None:
        await self.page.handle_input(text)

    def hints(self) -> List[str]:
        return self.page.hints()
