"""Process-wide application state shared by the API routes."""

from __future__ import annotations

import logging
import threading
from functools import partial

from trantor.agents import TaskAssistant
from trantor.auth import AuthService, InMemoryAuthBackend, SupabaseAuthBackend
from trantor.config import Settings
from trantor.models import Currency, Language, Preferences, ProfileUpdate, User
from trantor.services.activity_log import ActivityLog
from trantor.services.notifications import NotificationCenter
from trantor.services.task_service import TaskService
from trantor.store import TaskStore, create_supabase_auth_client, create_task_store
from trantor.voice.live_session import GeminiLiveConnector
from trantor.voice.speech import SpeechService

logger = logging.getLogger("trantor")


class AppState:
    """Holds the store, auth and the per-user client state.

    ``live_connector`` is ``None`` when no Gemini key is configured; the voice
    socket then answers with an "API Key missing" error. ``assistant`` is
    ``None`` without an Anthropic key. ``log`` is the server-wide log for
    events with no signed-in user; everything else goes to ``logs_for``.
    """

    def __init__(
        self,
        settings: Settings,
        store: TaskStore,
        auth: AuthService,
        activity_log: ActivityLog,
        speech=None,
        live_connector=None,
        assistant=None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.auth = auth
        self.log = activity_log
        self.speech = speech
        self.live_connector = live_connector
        self.assistant = assistant
        self._lock = threading.Lock()
        self._logs: dict[str, ActivityLog] = {}
        self._notifications: dict[str, NotificationCenter] = {}
        self._preferences: dict[str, Preferences] = {}
        self._profiles: dict[str, dict] = {}
        self.auth.logs_for = self.logs_for

    # ------------------------------------------------------------------
    # Per-user state
    # ------------------------------------------------------------------

    def logs_for(self, user_id: str) -> ActivityLog:
        with self._lock:
            if user_id not in self._logs:
                self._logs[user_id] = ActivityLog(max_entries=self.settings.log_buffer_size)
            return self._logs[user_id]

    def notifications_for(self, user_id: str) -> NotificationCenter:
        with self._lock:
            if user_id not in self._notifications:
                self._notifications[user_id] = NotificationCenter()
            return self._notifications[user_id]

    def preferences_for(self, user_id: str) -> Preferences:
        with self._lock:
            if user_id not in self._preferences:
                self._preferences[user_id] = Preferences(
                    language=Language(self.settings.default_language),
                    currency=Currency(self.settings.default_currency),
                )
            return self._preferences[user_id]

    def set_preferences(self, user_id: str, preferences: Preferences) -> None:
        with self._lock:
            self._preferences[user_id] = preferences

    def profile_for(self, user: User) -> User:
        """The signed-in user with any local profile edits applied."""
        with self._lock:
            overrides = self._profiles.get(user.id, {})
        return user.model_copy(update=overrides)

    def update_profile(self, user: User, update: ProfileUpdate) -> User:
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            self._profiles.setdefault(user.id, {}).update(changes)
        return self.profile_for(user)

    def tasks_for(self, user_id: str) -> TaskService:
        return TaskService(self.store, self.logs_for(user_id), self.notifications_for(user_id))


def build_state(settings: Settings) -> AppState:
    """Wire the services named by *settings*, degrading to in-memory backends."""
    activity_log = ActivityLog(max_entries=settings.log_buffer_size)
    store = create_task_store(settings)

    has_supabase = bool(settings.supabase_url and settings.supabase_key)
    if settings.auth_backend.lower() == "supabase" and has_supabase:
        # Auth gets its own client per call; the store client keeps the project key
        backend = SupabaseAuthBackend(partial(create_supabase_auth_client, settings))
    else:
        if settings.auth_backend.lower() == "supabase":
            logger.warning("AUTH_BACKEND=supabase but no credentials set, using in-memory auth")
        backend = InMemoryAuthBackend()

    live_connector = None
    if settings.gemini_api_key:
        live_connector = GeminiLiveConnector(
            settings.gemini_api_key, settings.live_model, settings.voice_name
        )
    else:
        logger.warning("GEMINI_API_KEY not set, live voice disabled, TTS falls back")

    assistant = None
    if settings.anthropic_api_key:
        assistant = TaskAssistant(settings)
    else:
        logger.warning("ANTHROPIC_API_KEY not set, text assistant disabled")

    return AppState(
        settings=settings,
        store=store,
        auth=AuthService(backend, activity_log, settings.oauth_redirect_url),
        activity_log=activity_log,
        speech=SpeechService(settings, activity_log),
        live_connector=live_connector,
        assistant=assistant,
    )
