"""Read-aloud of tasks.

Providers are tried in order: Gemini TTS, Smallest.ai Waves, then a
``local`` result that tells the client to use its own speech synthesiser.
"""

from __future__ import annotations

import io
import logging
import wave
from typing import TYPE_CHECKING, Literal

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel
from smallestai.waves import AsyncWavesClient

from trantor.errors import SpeechUnavailableError
from trantor.i18n import get_locale, spoken_date, t
from trantor.models import Language, LogCategory, Task
from trantor.services.activity_log import ActivityLog
from trantor.voice.dsp import OUTPUT_RATE, encode_base64

if TYPE_CHECKING:
    from trantor.config import Settings

logger = logging.getLogger("trantor")


def task_speech_text(task: Task, language: Language | str) -> str:
    """``"Task: Title. Priority High. Due on Monday, January 5. Details: ..."``"""
    strings = t(language)
    ts = strings["tts"]
    priority = strings["priority"].get(task.priority, task.priority.value)
    when = spoken_date(task.due_date, language)
    return (
        f"{ts['prefix']} {task.title}. {ts['priority']} {priority}. "
        f"{ts['due']} {when}. {ts['desc']} {task.description}"
    )


def pcm16_to_wav(pcm: bytes, sample_rate: int = OUTPUT_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


class SpeechResult(BaseModel):
    provider: Literal["gemini", "smallest", "local"]
    text: str
    locale: str
    # Base64 WAV; absent for the local provider
    audio: str | None = None
    mime_type: str | None = None


class SpeechService:
    def __init__(
        self,
        settings: "Settings",
        activity_log: ActivityLog,
        gemini_client: genai.Client | None = None,
        waves_client: AsyncWavesClient | None = None,
    ) -> None:
        self.log = activity_log
        self.tts_model = settings.tts_model
        self.voice_name = settings.voice_name
        self.gemini = gemini_client
        if self.gemini is None and settings.gemini_api_key:
            self.gemini = genai.Client(api_key=settings.gemini_api_key)
        self.waves = waves_client
        if self.waves is None and settings.smallest_api_key:
            self.waves = AsyncWavesClient(
                api_key=settings.smallest_api_key,
                model=settings.voice_model,
                sample_rate=settings.voice_sample_rate,
                voice_id=settings.voice_id,
            )

    async def speak(self, text: str, language: Language | str, log: ActivityLog | None = None) -> SpeechResult:
        """Gemini, then Waves, then a text-only result for on-device speech."""
        log = self.log if log is None else log
        locale = get_locale(language)
        try:
            wav = await self.gemini_tts(text)
            return SpeechResult(provider="gemini", text=text, locale=locale,
                                audio=encode_base64(wav), mime_type="audio/wav")
        except SpeechUnavailableError as e:
            log.warning(LogCategory.VOICE_AI, "Gemini TTS failed, trying fallback", str(e))

        try:
            wav = await self.waves_tts(text)
            return SpeechResult(provider="smallest", text=text, locale=locale,
                                audio=encode_base64(wav), mime_type="audio/wav")
        except SpeechUnavailableError as e:
            log.warning(LogCategory.VOICE_AI, "Using local speech synthesis", str(e))

        return SpeechResult(provider="local", text=text, locale=locale)

    async def speak_task(self, task: Task, language: Language | str, log: ActivityLog | None = None) -> SpeechResult:
        return await self.speak(task_speech_text(task, language), language, log)

    async def gemini_tts(self, text: str) -> bytes:
        if self.gemini is None:
            raise SpeechUnavailableError("API_KEY_MISSING")
        try:
            response = await self.gemini.aio.models.generate_content(
                model=self.tts_model,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice_name)
                        )
                    ),
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise SpeechUnavailableError(str(e)) from e

        pcm = _first_inline_audio(response)
        if not pcm:
            raise SpeechUnavailableError("NO_AUDIO_DATA")
        return pcm16_to_wav(pcm)

    async def waves_tts(self, text: str) -> bytes:
        if self.waves is None:
            raise SpeechUnavailableError("SMALLEST_API_KEY not set")
        try:
            audio = await self.waves.synthesize(text)
        except Exception as e:
            # The Waves SDK raises plain exceptions for HTTP failures
            logger.warning("Waves TTS failed: %s", e)
            raise SpeechUnavailableError(str(e)) from e
        if not audio:
            raise SpeechUnavailableError("Empty audio from Waves")
        return audio


def _first_inline_audio(response) -> bytes | None:
    for candidate in response.candidates or []:
        if candidate.content is None:
            continue
        for part in candidate.content.parts or []:
            if part.inline_data is not None and part.inline_data.data:
                return part.inline_data.data
    return None
