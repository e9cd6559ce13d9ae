from trantor.voice.dsp import AudioFrontEnd, ProcessedBlock
from trantor.voice.live_session import (
    GeminiLiveConnector,
    LiveConnector,
    VoiceSession,
    system_instruction,
)
from trantor.voice.speech import SpeechResult, SpeechService, task_speech_text
from trantor.voice.tools import TOOL_DECLARATIONS, ToolDispatcher

__all__ = [
    "AudioFrontEnd",
    "GeminiLiveConnector",
    "LiveConnector",
    "ProcessedBlock",
    "SpeechResult",
    "SpeechService",
    "TOOL_DECLARATIONS",
    "ToolDispatcher",
    "VoiceSession",
    "system_instruction",
    "task_speech_text",
]
