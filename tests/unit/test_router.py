"""
Tests for route resolution, guards and navigation history.
"""

import pytest
from unittest.mock import Mock

from chatwire.core.client.errors import ConfigurationError, NotFoundError
from chatwire.routing.router import Route, Router, auth_guard
from chatwire.routing.routes import build_routes, create_router
from chatwire.views import ChatView, IndexView, MainLayout, NotFoundView, SignInView


class TestAppRoutes:

    def test_flattened_table(self) -> None:
        router = Router(build_routes())
        assert [path for path, _ in router.routes] == ["/", "/chat", "/signin", "/*"]
        assert router.fallback.view is NotFoundView

    @pytest.mark.parametrize("location,view", [
        ("/", IndexView),
        ("", IndexView),
        ("/chat", ChatView),
        ("/chat/", ChatView),
        ("/signin?redirect=/chat", SignInView),
    ])
    def test_resolve(self, location, view) -> None:
        match = Router(build_routes()).resolve(location)
        assert match.route.view is view
        assert [layout.view for layout in match.layouts] == [MainLayout]
        assert not match.is_fallback

    @pytest.mark.parametrize("location", ["/nope", "/chat/42", "/signin/extra/parts"])
    def test_unmapped_paths_resolve_to_fallback(self, location) -> None:
        match = Router(build_routes()).resolve(location)
        assert match.is_fallback
        assert match.route.view is NotFoundView

    def test_chat_requires_auth(self) -> None:
        router = Router(build_routes())
        assert router.resolve("/chat").meta.get("requires_auth") is True
        assert not router.resolve("/").meta.get("requires_auth")

    def test_query_is_parsed(self) -> None:
        match = Router(build_routes()).resolve("/signin?redirect=%2Fchat")
        assert match.query == {"redirect": "/chat"}
        assert match.full_path == "/signin?redirect=%2Fchat"


class TestRouter:

    def _router(self) -> Router:
        return Router([
            Route("/users/:id", view=Mock(name="UserView"), name="user"),
            Route("/files/*", view=Mock(name="FileView"), name="files"),
            Route("*", view=Mock(name="Missing"), name="missing"),
        ])

    def test_params(self) -> None:
        match = self._router().resolve("/users/42")
        assert match.route.name == "user"
        assert match.params == {"id": "42"}

    def test_wildcard_segment(self) -> None:
        match = self._router().resolve("/files/a/b.txt")
        assert match.route.name == "files"
        assert match.params == {"path_match": "a/b.txt"}

    def test_first_match_wins(self) -> None:
        router = Router([
            Route("/a", view=Mock(), name="first"),
            Route("/a", view=Mock(), name="second"),
            Route("*", view=Mock()),
        ])
        assert router.resolve("/a").route.name == "first"

    def test_requires_fallback(self) -> None:
        with pytest.raises(ConfigurationError):
            Router([Route("/", view=Mock())])

    def test_explicit_fallback(self) -> None:
        fallback = Route("/404", view=Mock(), name="missing")
        router = Router([Route("/", view=Mock())], fallback=fallback)
        match = router.resolve("/anything")
        assert match.route is fallback
        assert match.is_fallback
        assert match.params == {"path_match": "anything"}

    def test_url_for(self) -> None:
        router = self._router()
        assert router.url_for("user", id=7) == "/users/7"
        with pytest.raises(ValueError):
            router.url_for("user")
        with pytest.raises(NotFoundError):
            router.url_for("nope")

    def test_history(self) -> None:
        router = self._router()
        listener = Mock()
        router.on_change(listener)

        router.push("/users/1")
        router.push("/users/2")
        router.replace("/users/3")

        assert [m.path for m in router.history] == ["/users/1", "/users/3"]
        assert router.back().path == "/users/1"
        assert router.back() is None
        assert listener.call_count == 4

    def test_listener_errors_do_not_break_navigation(self) -> None:
        router = self._router()
        router.on_change(Mock(side_effect=RuntimeError("boom")))
        assert router.push("/users/1").path == "/users/1"


class TestAuthGuard:

    def test_signed_out_user_is_sent_to_signin(self) -> None:
        router = create_router(lambda: False)
        match = router.push("/chat")

        assert match.route.name == "signin"
        assert match.query == {"redirect": "/chat"}
        assert match.redirected_from == "/chat"

    def test_signed_in_user_reaches_chat(self) -> None:
        router = create_router(lambda: True)
        assert router.push("/chat").route.name == "chat"

    def test_guard_follows_session_state(self) -> None:
        signed_in = {"value": False}
        router = create_router(lambda: signed_in["value"])
        assert router.push("/chat").route.name == "signin"

        signed_in["value"] = True
        assert router.push("/chat").route.name == "chat"

    def test_public_routes_are_not_guarded(self) -> None:
        router = create_router(lambda: False)
        assert router.push("/").route.name == "home"
        assert router.push("/nowhere").is_fallback

    def test_redirect_loop_ends_on_fallback(self) -> None:
        router = Router([
            Route("/a", view=Mock(), name="a"),
            Route("/b", view=Mock(), name="b"),
            Route("*", view=Mock(), name="missing"),
        ])
        router.before_each(lambda m: "/b" if m.path == "/a" else "/a")
        match = router.push("/a")
        assert match.is_fallback
        assert match.redirected_from == "/a"

    @pytest.mark.parametrize("hops,fallback", [(4, False), (5, False), (6, True)])
    def test_redirect_chain_limit(self, hops, fallback) -> None:
        router = Router([
            Route("/r/:n", view=Mock(), name="step"),
            Route("*", view=Mock(), name="missing"),
        ])
        router.before_each(lambda m: f"/r/{int(m.params['n']) + 1}" if int(m.params["n"]) < hops else None)

        match = router.push("/r/0")
        assert match.is_fallback is fallback
        if not fallback:
            assert match.path == f"/r/{hops}"
            assert match.redirected_from == "/r/0"

    def test_guard_factory(self) -> None:
        guard = auth_guard(lambda: False, signin_path="/login")
        match = Router(build_routes()).resolve("/chat")
        assert guard(match) == "/login?redirect=%2Fchat"
