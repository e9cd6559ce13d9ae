"""Auth backends: hosted Supabase auth, and an in-process one for local runs."""

from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
import uuid
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field
from supabase import AuthError, Client

from trantor.errors import AuthenticationError


class AuthAccount(BaseModel):
    """Provider-neutral account record."""

    id: str
    email: str
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class AuthBackend(Protocol):
    def sign_up(self, email: str, password: str, metadata: dict[str, Any] | None = None) -> tuple[AuthAccount, str | None]: ...

    def sign_in(self, email: str, password: str) -> tuple[AuthAccount, str]: ...

    def oauth_url(self, provider: str, redirect_to: str = "") -> str: ...

    def sign_out(self, token: str) -> None: ...

    def get_account(self, token: str) -> AuthAccount: ...


def _account_from_supabase(user) -> AuthAccount:
    return AuthAccount(
        id=str(user.id),
        email=user.email or "",
        user_metadata=dict(user.user_metadata or {}),
    )


class SupabaseAuthBackend:
    """Supabase auth, one short-lived client per call.

    supabase-py rewrites a client's ``Authorization`` header on every
    ``SIGNED_IN`` event, so auth calls never run on the client that serves
    the task table.
    """

    def __init__(self, client_factory: Callable[[], Client]) -> None:
        self.client_factory = client_factory

    def sign_up(self, email, password, metadata=None):
        credentials: dict[str, Any] = {"email": email, "password": password}
        if metadata:
            credentials["options"] = {"data": metadata}
        try:
            response = self.client_factory().auth.sign_up(credentials)
        except (AuthError, httpx.HTTPError) as e:
            raise AuthenticationError(str(e)) from e
        if response.user is None:
            raise AuthenticationError("Sign-up returned no user")
        # No session when email confirmation is enabled
        token = response.session.access_token if response.session else None
        return _account_from_supabase(response.user), token

    def sign_in(self, email, password):
        try:
            response = self.client_factory().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except (AuthError, httpx.HTTPError) as e:
            raise AuthenticationError(str(e)) from e
        if response.user is None or response.session is None:
            raise AuthenticationError("Invalid login credentials")
        return _account_from_supabase(response.user), response.session.access_token

    def oauth_url(self, provider, redirect_to=""):
        credentials: dict[str, Any] = {"provider": provider}
        if redirect_to:
            credentials["options"] = {"redirect_to": redirect_to}
        try:
            response = self.client_factory().auth.sign_in_with_oauth(credentials)
        except (AuthError, httpx.HTTPError) as e:
            raise AuthenticationError(str(e)) from e
        return response.url

    def sign_out(self, token):
        try:
            self.client_factory().auth.admin.sign_out(token)
        except (AuthError, httpx.HTTPError) as e:
            raise AuthenticationError(str(e)) from e

    def get_account(self, token):
        try:
            response = self.client_factory().auth.get_user(token)
        except (AuthError, httpx.HTTPError) as e:
            raise AuthenticationError(str(e)) from e
        if response is None or response.user is None:
            raise AuthenticationError("Invalid or expired session")
        return _account_from_supabase(response.user)


def hash_credentials(email: str, password: str) -> str:
    """SHA-256 over the normalised email and the password."""
    combined = f"{email.strip().lower()}:{password}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


class InMemoryAuthBackend:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[str, tuple[AuthAccount, str]] = {}  # email → (account, hash)
        self._tokens: dict[str, str] = {}  # token → email

    def sign_up(self, email, password, metadata=None):
        key = email.strip().lower()
        with self._lock:
            if key in self._accounts:
                raise AuthenticationError("User already registered")
            account = AuthAccount(
                id=str(uuid.uuid4()), email=email, user_metadata=dict(metadata or {}),
            )
            self._accounts[key] = (account, hash_credentials(email, password))
        return account, self._issue(key)

    def sign_in(self, email, password):
        key = email.strip().lower()
        with self._lock:
            found = self._accounts.get(key)
        if found is None or not hmac.compare_digest(found[1], hash_credentials(email, password)):
            raise AuthenticationError("Invalid login credentials")
        return found[0], self._issue(key)

    def oauth_url(self, provider, redirect_to=""):
        raise AuthenticationError(f"OAuth provider '{provider}' requires the Supabase auth backend")

    def sign_out(self, token):
        with self._lock:
            self._tokens.pop(token, None)

    def get_account(self, token):
        with self._lock:
            key = self._tokens.get(token)
            if key is None:
                raise AuthenticationError("Invalid or expired session")
            return self._accounts[key][0]

    def _issue(self, key: str) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[token] = key
        return token
