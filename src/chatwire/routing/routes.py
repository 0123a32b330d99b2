"""
The application route table.
"""

from typing import Callable, List

from ..views.chat import ChatView
from ..views.index import IndexView
from ..views.layout import MainLayout
from ..views.not_found import NotFoundView
from ..views.signin import SignInView
from .router import Route, Router, auth_guard


def build_routes() -> List[Route]:
    return [
        Route("/", view=MainLayout, children=(
            Route("", view=IndexView, name="home"),
            Route("chat", view=ChatView, name="chat", meta={"requires_auth": True}),
            Route("signin", view=SignInView, name="signin"),
        )),
        # Always last
        Route("*", view=NotFoundView, name="not-found"),
    ]


def create_router(is_authenticated: Callable[[], bool]) -> Router:
    """Router over the application table with the sign-in guard installed."""
    router = Router(build_routes())
    router.before_each(auth_guard(is_authenticated, signin_path="/signin"))
    return router
