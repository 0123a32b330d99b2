"""
Base class and shared context for view components.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from rich.console import Console, RenderableType

from ..config.settings import ChatwireSettings
from ..core.client.facade import ChatClient
from ..core.client.session import Session
from ..routing.router import RouteMatch, Router
from .notify import Notifier


@dataclass
class ViewContext:
    """Everything a view may use, passed down explicitly."""
    client: ChatClient
    router: Router
    notifier: Notifier
    settings: ChatwireSettings
    console: Console = field(default_factory=Console)

    @property
    def session(self) -> Session:
        return self.client.session


class View(ABC):
    """A UI fragment that renders its state and reacts to input."""

    title: str = ""

    def __init__(self, context: ViewContext, match: Optional[RouteMatch] = None):
        self.context = context
        self.match = match
        self.mounted = False
        self.dirty = True
        self._invalidate_callback: Optional[Callable[[], None]] = None

    def set_invalidate_callback(self, callback: Optional[Callable[[], None]]) -> None:
        self._invalidate_callback = callback

    def invalidate(self) -> None:
        """Mark the view for re-rendering."""
        self.dirty = True
        if self._invalidate_callback is not None:
            self._invalidate_callback()

    async def mount(self) -> None:
        self.mounted = True

    async def unmount(self) -> None:
        self.mounted = False

    @abstractmethod
    def render(self) -> RenderableType:
        ...

    async def handle_input(self, text: str) -> None:
        self.context.notifier.info("Nothing to do here. Type :help for commands.")

    def hints(self) -> List[str]:
        return []
