from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Hosted auth + storage. Empty credentials keep everything in memory.
    supabase_url: str = ""
    supabase_key: str = ""
    task_backend: str = "memory"
    auth_backend: str = "memory"
    tasks_table: str = "tasks_tasks"
    oauth_redirect_url: str = ""

    # Gemini: live voice loop and read-aloud TTS
    gemini_api_key: str = Field(
        default="", validation_alias=AliasChoices("gemini_api_key", "api_key")
    )
    live_model: str = "gemini-2.5-flash-native-audio-preview-12-2025"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    voice_name: str = "Kore"

    # Text assistant (LangGraph + Anthropic); disabled when the key is empty
    anthropic_api_key: str = ""
    assistant_model: str = "claude-sonnet-4-20250514"

    # Smallest.ai Waves, second TTS option before the client-side voice
    smallest_api_key: str = ""
    voice_id: str = "ashley"
    voice_model: str = "lightning-large"
    voice_sample_rate: int = 24000

    default_language: str = "es"
    default_currency: str = "MXN"
    log_buffer_size: int = 100
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_file": ".env", "populate_by_name": True, "extra": "ignore"}
