import pytest

from taskflow.auth import (
    SessionAction,
    complete_authentication,
    is_auth_page,
    login_redirect_for,
    redirect_param_from,
    resolve_auth_redirect,
    safe_target,
)
from taskflow.exceptions import IdentityProviderError
from taskflow.identity import AuthResult, IdentityProvider, StaticIdentityProvider
from taskflow.notifications import Notifier
from taskflow.session import SessionStore

USER = {"id": "user-1", "emailAddress": "ada@example.com"}


class TestHelpers:
    @pytest.mark.parametrize(
        "path",
        ["/login", "/signup?redirect=/x", "/callback", "/error?message=boom", "/app/login"],
    )
    def test_auth_pages_match_by_substring(self, path):
        assert is_auth_page(path) is True

    @pytest.mark.parametrize("path", ["/", "/dashboard", "/profile?tab=all"])
    def test_regular_pages_are_not_auth_pages(self, path):
        assert is_auth_page(path) is False

    def test_redirect_param_from_query(self):
        assert redirect_param_from("/login?redirect=/dashboard") == "/dashboard"
        assert redirect_param_from("/login?redirect=%2Fprofile%3Ftab%3Dall") == "/profile?tab=all"

    def test_redirect_param_absent_or_empty(self):
        assert redirect_param_from("/login") is None
        assert redirect_param_from("/login?redirect=") is None
        assert redirect_param_from("/login?other=1") is None

    def test_login_redirect_for_keeps_attempted_path(self):
        assert login_redirect_for("/") == "/login?redirect=/"
        assert login_redirect_for("/reports") == "/login?redirect=/reports"

    def test_login_redirect_for_keeps_query_as_one_value(self):
        target = login_redirect_for("/?tab=completed&q=milk")
        assert target == "/login?redirect=/%3Ftab%3Dcompleted%26q%3Dmilk"
        assert redirect_param_from(target) == "/?tab=completed&q=milk"

    def test_safe_target_rejects_offsite_targets(self):
        assert safe_target("/dashboard") == "/dashboard"
        assert safe_target("https://evil.example") == "/"
        assert safe_target("//evil.example") == "/"
        assert safe_target("dashboard") == "/"


class TestSuccessfulAuthentication:
    def test_regular_page_without_redirect_stays_put(self):
        decision = resolve_auth_redirect("/dashboard", None, USER)
        assert decision.target == "/dashboard"
        assert decision.action is SessionAction.STORE_USER

    def test_redirect_param_wins(self):
        decision = resolve_auth_redirect("/login?redirect=/reports", "/reports", USER)
        assert decision.target == "/reports"
        assert decision.action is SessionAction.STORE_USER

    def test_redirect_param_wins_on_regular_page(self):
        assert resolve_auth_redirect("/dashboard?redirect=/x", "/x", USER).target == "/x"

    @pytest.mark.parametrize("path", ["/login", "/signup", "/callback", "/error"])
    def test_auth_page_without_redirect_goes_home(self, path):
        decision = resolve_auth_redirect(path, None, USER)
        assert decision.target == "/"
        assert decision.action is SessionAction.STORE_USER

    def test_query_string_is_preserved(self):
        assert resolve_auth_redirect("/?tab=completed", None, USER).target == "/?tab=completed"


class TestFailedAuthentication:
    def test_login_page_without_redirect_is_a_noop(self):
        decision = resolve_auth_redirect("/login", None, None)
        assert decision.target == "/login"
        assert decision.action is SessionAction.CLEAR_USER

    def test_regular_page_sends_to_login_with_redirect(self):
        decision = resolve_auth_redirect("/profile", None, None)
        assert decision.target == "/login?redirect=/profile"
        assert decision.action is SessionAction.CLEAR_USER

    def test_signup_like_regular_page_sends_to_signup(self):
        decision = resolve_auth_redirect("/team-signups", None, None)
        assert decision.target == "/signup?redirect=/team-signups"

    def test_auth_page_with_plain_redirect_goes_to_login(self):
        decision = resolve_auth_redirect("/signup?redirect=/reports", "/reports", None)
        assert decision.target == "/login?redirect=/reports"

    @pytest.mark.parametrize("redirect", ["/error", "/signup", "/login", "/callback?x=1"])
    def test_auth_page_with_auth_like_redirect_stays_put(self, redirect):
        path = f"/login?redirect={redirect}"
        decision = resolve_auth_redirect(path, redirect, None)
        assert decision.target == path
        assert decision.action is SessionAction.CLEAR_USER

    @pytest.mark.parametrize("path", ["/signup", "/callback", "/error"])
    def test_other_auth_pages_without_redirect_stay_put(self, path):
        assert resolve_auth_redirect(path, None, None).target == path


class _BrokenIdentity(IdentityProvider):
    async def authenticate(self, token):
        raise IdentityProviderError("identity service down")


class TestCompleteAuthentication:
    @pytest.mark.asyncio
    async def test_success_stores_user(self):
        store, notifier = SessionStore(), Notifier()
        identity = StaticIdentityProvider({"tok": USER})

        decision = await complete_authentication(identity, store, notifier, "/dashboard", "tok")

        assert decision.target == "/dashboard"
        assert store.is_authenticated is True
        assert store.user == USER
        assert store.user is not USER

    @pytest.mark.asyncio
    async def test_failure_clears_user(self):
        store, notifier = SessionStore(), Notifier()
        store.set_user(USER)

        decision = await complete_authentication(StaticIdentityProvider(), store, notifier, "/profile", "nope")

        assert decision.target == "/login?redirect=/profile"
        assert store.is_authenticated is False
        assert store.user is None

    @pytest.mark.asyncio
    async def test_identity_error_counts_as_failure_and_notifies(self):
        store, notifier = SessionStore(), Notifier()

        decision = await complete_authentication(_BrokenIdentity(), store, notifier, "/login", "tok")

        assert decision.target == "/login"
        assert store.is_authenticated is False
        toasts = notifier.drain()
        assert [t.level for t in toasts] == ["error"]
        assert toasts[0].message == "Authentication failed. Please try again."

    @pytest.mark.asyncio
    async def test_redirect_param_is_read_from_current_path(self):
        store = SessionStore()
        decision = await complete_authentication(
            StaticIdentityProvider({"tok": USER}), store, Notifier(), "/login?redirect=/reports", "tok"
        )
        assert decision.target == "/reports"


def test_auth_result_authenticated_flag():
    assert AuthResult().authenticated is False
    assert AuthResult(user=USER).authenticated is True
