"""Signed-in user, profile edits and per-user preferences."""

from __future__ import annotations

from pydantic import BaseModel

from trantor.models.enums import Currency, Language


class User(BaseModel):
    id: str = ""
    name: str
    email: str
    avatar: str
    role: str = "User"
    department: str = "General"
    bio: str = "Trantor User"


class ProfileUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    bio: str | None = None
    role: str | None = None
    department: str | None = None
    avatar: str | None = None


class Preferences(BaseModel):
    language: Language = Language.ES
    currency: Currency = Currency.MXN
    dark_mode: bool = False
    voice_enabled: bool = True


class PreferencesUpdate(BaseModel):
    language: Language | None = None
    currency: Currency | None = None
    dark_mode: bool | None = None
    voice_enabled: bool | None = None


class AuthSession(BaseModel):
    access_token: str
    user: User
