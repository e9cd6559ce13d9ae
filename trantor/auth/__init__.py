from trantor.auth.backends import (
    AuthAccount,
    AuthBackend,
    InMemoryAuthBackend,
    SupabaseAuthBackend,
    hash_credentials,
)
from trantor.auth.service import AuthService, user_from_account

__all__ = [
    "AuthAccount",
    "AuthBackend",
    "AuthService",
    "InMemoryAuthBackend",
    "SupabaseAuthBackend",
    "hash_credentials",
    "user_from_account",
]
