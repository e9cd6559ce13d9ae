"""Authentication service: wraps an auth backend and maps accounts to Trantor users."""

from __future__ import annotations

import logging
from collections.abc import Callable

from trantor.auth.backends import AuthAccount, AuthBackend
from trantor.errors import AuthenticationError
from trantor.models import AuthSession, LogCategory, User
from trantor.services.activity_log import ActivityLog

logger = logging.getLogger("trantor")


def user_from_account(account: AuthAccount) -> User:
    """Build the app user from provider metadata, with the usual fallbacks."""
    metadata = account.user_metadata or {}
    email = account.email or ""
    name = metadata.get("full_name") or (email.split("@")[0] if email else "") or "User"
    avatar = metadata.get("avatar_url") or (
        f"https://ui-avatars.com/api/?name={email}&background=random"
    )
    return User(id=account.id, name=name, email=email, avatar=avatar)


class AuthService:
    """Auth calls plus their activity entries.

    Successful sign-ups and sign-ins land in the user's own log when
    *logs_for* is given; failures, which have no user yet, go to
    *activity_log*.
    """

    def __init__(
        self,
        backend: AuthBackend,
        activity_log: ActivityLog,
        oauth_redirect_url: str = "",
        logs_for: Callable[[str], ActivityLog] | None = None,
    ) -> None:
        self.backend = backend
        self.log = activity_log
        self.oauth_redirect_url = oauth_redirect_url
        self.logs_for = logs_for

    def _user_log(self, account: AuthAccount) -> ActivityLog:
        return self.logs_for(account.id) if self.logs_for is not None else self.log

    def sign_up(self, email: str, password: str, full_name: str | None = None) -> AuthSession | None:
        """Register a user.

        Returns ``None`` when the provider requires email confirmation before
        a session is issued.
        """
        metadata = {"full_name": full_name} if full_name else None
        try:
            account, token = self.backend.sign_up(email, password, metadata)
        except AuthenticationError as e:
            self.log.error(LogCategory.SYSTEM, f"Sign-up failed for {email}", str(e))
            raise
        self._user_log(account).success(LogCategory.SYSTEM, f"User registered: {email}")
        if token is None:
            return None
        return AuthSession(access_token=token, user=user_from_account(account))

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            account, token = self.backend.sign_in(email, password)
        except AuthenticationError as e:
            self.log.warning(LogCategory.SYSTEM, f"Sign-in failed for {email}", str(e))
            raise
        self._user_log(account).info(LogCategory.SYSTEM, f"User logged in: {email}")
        return AuthSession(access_token=token, user=user_from_account(account))

    def sign_in_with_oauth(self, provider: str) -> str:
        return self.backend.oauth_url(provider, self.oauth_redirect_url)

    def sign_out(self, token: str) -> None:
        account = self.backend.get_account(token)
        self.backend.sign_out(token)
        self._user_log(account).info(LogCategory.SYSTEM, "User logged out")

    def get_user(self, token: str) -> User:
        return user_from_account(self.backend.get_account(token))
