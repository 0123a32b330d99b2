"""
Landing page.
"""

from typing import List

from rich.console import RenderableType
from rich.markdown import Markdown

from .base import View


class IndexView(View):
    title = "Home"

    def render(self) -> RenderableType:
        user = self.context.session.user
        if self.context.session.is_authenticated and user is not None:
            body = (
                f"# Welcome back, {user.display_name}\n\n"
                "Open the chat with `:go /chat`."
            )
        else:
            body = (
                "# Welcome to chatwire\n\n"
                "Sign in or create an account with `:go /signin` to join the chat."
            )
        return Markdown(body)

    def hints(self) -> List[str]:
        if self.context.session.is_authenticated:
            return [":go /chat"]
        return [":go /signin"]
