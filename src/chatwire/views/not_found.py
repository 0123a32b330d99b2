"""
Fallback page for unmatched locations.
"""

from typing import List

from rich.console import RenderableType
from rich.text import Text

from .base import View


class NotFoundView(View):
    title = "Not found"

    def render(self) -> RenderableType:
        path = self.match.path if self.match else ""
        text = Text()
        text.append("Oops. Nothing here...\n", style="bold")
        if path:
            text.append(f"No page at {path}\n", style="dim")
        text.append("Go back home with :go /", style="blue")
        return text

    async def handle_input(self, text: str) -> None:
        self.context.router.push("/")

    def hints(self) -> List[str]:
        return [":go /"]
