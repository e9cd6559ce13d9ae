"""Tests for the auth backends and AuthService."""

from __future__ import annotations

import pytest

from tests.fakes import FakeAuthServer, FakeSupabaseAuth, FakeSupabaseClient
from trantor import store as store_module
from trantor.auth import (
    AuthAccount,
    AuthService,
    InMemoryAuthBackend,
    SupabaseAuthBackend,
    hash_credentials,
    user_from_account,
)
from trantor.errors import AuthenticationError
from trantor.models import LogLevel
from trantor.services import state as state_module
from trantor.services.activity_log import ActivityLog
from trantor.services.state import build_state


@pytest.fixture()
def auth(activity_log) -> AuthService:
    return AuthService(InMemoryAuthBackend(), activity_log)


# ---------------------------------------------------------------------------
# User mapping
# ---------------------------------------------------------------------------

class TestUserFromAccount:
    def test_metadata_wins(self):
        user = user_from_account(AuthAccount(
            id="u1", email="ada@example.com",
            user_metadata={"full_name": "Ada Lovelace", "avatar_url": "https://img/ada.png"},
        ))
        assert (user.name, user.avatar) == ("Ada Lovelace", "https://img/ada.png")
        assert (user.role, user.department, user.bio) == ("User", "General", "Trantor User")

    def test_falls_back_to_email(self):
        user = user_from_account(AuthAccount(id="u1", email="grace@example.com"))
        assert user.name == "grace"
        assert user.avatar == "https://ui-avatars.com/api/?name=grace@example.com&background=random"

    def test_no_email(self):
        assert user_from_account(AuthAccount(id="u1", email="")).name == "User"


# ---------------------------------------------------------------------------
# In-memory backend through AuthService
# ---------------------------------------------------------------------------

class TestInMemoryAuth:
    def test_sign_up_issues_session(self, auth, activity_log):
        session = auth.sign_up("ada@example.com", "pw", "Ada")
        assert session.access_token
        assert session.user.name == "Ada"
        assert activity_log.entries()[0].message == "User registered: ada@example.com"

    def test_duplicate_sign_up(self, auth, activity_log):
        auth.sign_up("ada@example.com", "pw")
        with pytest.raises(AuthenticationError):
            auth.sign_up("ADA@example.com ", "pw")
        assert activity_log.entries()[0].level == LogLevel.ERROR

    def test_sign_in_and_get_user(self, auth):
        auth.sign_up("ada@example.com", "pw", "Ada")
        session = auth.sign_in("ada@example.com", "pw")
        assert auth.get_user(session.access_token).email == "ada@example.com"

    def test_wrong_password(self, auth, activity_log):
        auth.sign_up("ada@example.com", "pw")
        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            auth.sign_in("ada@example.com", "nope")
        assert activity_log.entries()[0].level == LogLevel.WARNING

    def test_sign_out_revokes_token(self, auth):
        token = auth.sign_up("ada@example.com", "pw").access_token
        auth.sign_out(token)
        with pytest.raises(AuthenticationError):
            auth.get_user(token)

    def test_oauth_needs_hosted_backend(self, auth):
        with pytest.raises(AuthenticationError, match="google"):
            auth.sign_in_with_oauth("google")

    def test_hash_normalises_email(self):
        assert hash_credentials(" Ada@Example.com", "pw") == hash_credentials("ada@example.com", "pw")
        assert hash_credentials("ada@example.com", "pw") != hash_credentials("ada@example.com", "pw2")


# ---------------------------------------------------------------------------
# Supabase backend
# ---------------------------------------------------------------------------

class TestSupabaseAuth:
    def test_sign_up_passes_full_name(self, activity_log):
        client = FakeSupabaseClient()
        auth = AuthService(SupabaseAuthBackend(lambda: client), activity_log)
        session = auth.sign_up("ada@example.com", "pw", "Ada Lovelace")
        assert session.user.name == "Ada Lovelace"
        assert client.auth.users["ada@example.com"].user_metadata == {"full_name": "Ada Lovelace"}

    def test_confirmation_required_returns_none(self, activity_log):
        client = FakeSupabaseClient()
        client.auth = FakeSupabaseAuth(confirm_email=True)
        auth = AuthService(SupabaseAuthBackend(lambda: client), activity_log)
        assert auth.sign_up("ada@example.com", "pw") is None

    def test_bad_credentials_become_authentication_error(self, activity_log):
        auth = AuthService(SupabaseAuthBackend(FakeSupabaseClient), activity_log)
        with pytest.raises(AuthenticationError):
            auth.sign_in("ghost@example.com", "pw")

    def test_token_round_trip(self, activity_log):
        server = FakeAuthServer()
        auth = AuthService(SupabaseAuthBackend(lambda: FakeSupabaseClient(server)), activity_log)
        auth.sign_up("ada@example.com", "pw")
        session = auth.sign_in("ada@example.com", "pw")
        assert auth.get_user(session.access_token).email == "ada@example.com"
        auth.sign_out(session.access_token)
        with pytest.raises(AuthenticationError):
            auth.get_user(session.access_token)

    def test_oauth_uses_redirect(self, activity_log):
        client = FakeSupabaseClient()
        auth = AuthService(SupabaseAuthBackend(lambda: client), activity_log, "https://app.example/")
        assert auth.sign_in_with_oauth("google") == "https://auth.example/authorize"
        assert client.auth.last_oauth == {"provider": "google", "options": {"redirect_to": "https://app.example/"}}


# ---------------------------------------------------------------------------
# Supabase wiring: auth sessions never leak onto the task table client
# ---------------------------------------------------------------------------

class TestSupabaseWiring:
    @pytest.fixture()
    def wired(self, monkeypatch, settings):
        server = FakeAuthServer()
        store_client = FakeSupabaseClient(server)
        auth_clients: list[FakeSupabaseClient] = []

        def auth_client(_settings):
            auth_clients.append(FakeSupabaseClient(server))
            return auth_clients[-1]

        monkeypatch.setattr(store_module, "create_supabase_client", lambda _settings: store_client)
        monkeypatch.setattr(state_module, "create_supabase_auth_client", auth_client)
        settings = settings.model_copy(update={
            "supabase_url": "https://project.supabase.co",
            "supabase_key": "project-key",
            "task_backend": "supabase",
            "auth_backend": "supabase",
        })
        return build_state(settings), store_client, auth_clients

    def test_sign_in_keeps_store_on_project_key(self, wired):
        state, store_client, auth_clients = wired
        assert state.store.client is store_client
        state.auth.sign_up("ada@example.com", "pw")
        session = state.auth.sign_in("ada@example.com", "pw")

        assert store_client.options.headers["Authorization"] == "Bearer project-key"
        assert len(auth_clients) == 2
        assert auth_clients[-1].options.headers["Authorization"] == f"Bearer {session.access_token}"

    def test_shared_client_would_switch_identity(self):
        client = FakeSupabaseClient()
        backend = SupabaseAuthBackend(lambda: client)
        backend.sign_up("ada@example.com", "pw")
        assert client.options.headers["Authorization"] != "Bearer project-key"


# ---------------------------------------------------------------------------
# Per-user activity entries
# ---------------------------------------------------------------------------

class TestAuthLogging:
    def test_success_goes_to_the_user_log(self, activity_log):
        user_logs: dict[str, ActivityLog] = {}
        auth = AuthService(
            InMemoryAuthBackend(), activity_log,
            logs_for=lambda user_id: user_logs.setdefault(user_id, ActivityLog()),
        )
        session = auth.sign_up("ada@example.com", "pw")
        auth.sign_in("ada@example.com", "pw")

        messages = [e.message for e in user_logs[session.user.id].entries()]
        assert messages == ["User logged in: ada@example.com", "User registered: ada@example.com"]
        assert activity_log.entries() == []

    def test_failure_goes_to_the_server_log(self, activity_log):
        auth = AuthService(InMemoryAuthBackend(), activity_log, logs_for=lambda user_id: ActivityLog())
        with pytest.raises(AuthenticationError):
            auth.sign_in("ghost@example.com", "pw")
        assert activity_log.entries()[0].message == "Sign-in failed for ghost@example.com"
