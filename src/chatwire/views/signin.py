"""
Sign-in and registration form.
"""

from typing import List, Optional
import logging

from rich.console import RenderableType
from rich.table import Table
from rich.text import Text

from ..core.client.errors import ChatError, create_user_friendly_message, classify_error
from .base import View

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT = "/chat"


class SignInView(View):
    """Signs a user in, or registers and then signs in."""

    title = "Sign in"

    def __init__(self, context, match=None):
        super().__init__(context, match)
        self.email: str = ""
        self.error: Optional[str] = None
        self.busy = False

    @property
    def redirect_target(self) -> str:
        if self.match is not None:
            target = self.match.query.get("redirect")
            if target and target.startswith("/"):
                return target
        return DEFAULT_REDIRECT

    async def sign_in(self, email: str, password: str) -> bool:
        """Authenticate with the local strategy and leave the form on success."""
        self.email = email.strip()
        self.busy = True
        self.invalidate()
        try:
            session = await self.context.client.authenticate(
                self.context.settings.auth_strategy,
                {"email": self.email, "password": password},
            )
        except ChatError as e:
            self._fail(e)
            return False
        finally:
            self.busy = False

        self.error = None
        name = session.user.email if session.user else self.email
        self.context.notifier.positive(f"Signed in as {name}")
        self.context.router.replace(self.redirect_target)
        return True

    async def register(self, email: str, password: str) -> bool:
        """Create an account, then sign in with it."""
        self.email = email.strip()
        self.busy = True
        self.invalidate()
        try:
            user = await self.context.client.service("users").create(
                {"email": self.email, "password": password}
            )
        except ChatError as e:
            self._fail(e)
            return False
        finally:
            self.busy = False

        logger.info(f"Registered user {user.email}")
        self.context.notifier.positive(f"Account created for {user.email}")
        return await self.sign_in(user.email, password)

    def _fail(self, error: ChatError) -> None:
        self.error = create_user_friendly_message(classify_error(error))
        self.context.notifier.error(error)
        self.invalidate()

    async def handle_input(self, text: str) -> None:
        # Passwords are only read through the hidden prompt of the : commands
        self.context.notifier.info("Use :signin <email> or :register <email>")

    def render(self) -> RenderableType:
        form = Table.grid(padding=(0, 2))
        form.add_column(style="bold")
        form.add_column()
        form.add_row("Email", self.email or Text("-", style="dim"))
        form.add_row("Password", Text("********" if self.email else "-", style="dim"))
        if self.busy:
            form.add_row("", Text("Working...", style="yellow"))
        if self.error:
            form.add_row("", Text(self.error, style="red"))
        return form

    def hints(self) -> List[str]:
        return [":signin <email>", ":register <email>"]
