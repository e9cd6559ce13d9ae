"""Exceptions raised by the Trantor services and translated to HTTP errors by the API."""


class TrantorError(Exception):
    """Base class for every error the services raise on purpose."""


class TaskNotFoundError(TrantorError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskStoreError(TrantorError):
    """The task backend rejected or failed a request."""


class AuthenticationError(TrantorError):
    """Bad credentials, unknown token, or a provider-side auth failure."""


class SpeechUnavailableError(TrantorError):
    """A TTS provider could not produce audio."""
