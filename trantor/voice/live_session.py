"""Live voice session: bridges a client WebSocket and Gemini Live.

Protocol:
  Client → Server:
    - text frames: JSON control messages
      {"type": "start", "sample_rate": 48000, "language": "es", "sensitivity": 0.4}
      {"type": "sensitivity", "value": 0.6}
      {"type": "stop"}
    - binary frames: float32 mono samples at ``sample_rate``
  Server → Client:
    {"type": "status", "state": "connecting" | "connected" | "closed"}
    {"type": "level", "level": 0.0-1.0, "gated": bool}
    {"type": "audio_chunk", "data": "<base64 PCM16>", "sample_rate": 24000}
    {"type": "task_created", "task": {...}}
    {"type": "error", "message": "..."}
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
from fastapi import WebSocketDisconnect
from google import genai
from google.genai import types

from trantor.i18n import speech_language_name, t
from trantor.models import Language, LogCategory
from trantor.services.activity_log import ActivityLog
from trantor.voice.dsp import (
    DEFAULT_SENSITIVITY,
    OUTPUT_RATE,
    AudioFrontEnd,
    encode_base64,
)
from trantor.voice.tools import TOOL_DECLARATIONS, ToolDispatcher, ToolOutcome

logger = logging.getLogger("trantor")

INPUT_MIME_TYPE = "audio/pcm;rate=16000"
LEVEL_UPDATE_INTERVAL = 0.040


def system_instruction(language: Language | str) -> str:
    target = speech_language_name(language).upper()
    return (
        "You are TRANTOR, a professional task management assistant.\n\n"
        "CRITICAL LANGUAGE INSTRUCTION:\n"
        f"The user has selected {target} as their interface language.\n"
        f"YOU MUST SPEAK, LISTEN, AND THINK EXCLUSIVELY IN {target}.\n\n"
        "OPERATIONAL CONTEXT:\n"
        "The user is likely in a NOISY environment (truck cabin, traffic).\n\n"
        "AUDIO HANDLING:\n"
        "1. FILTER NOISE: Expect background noise. Focus STRICTLY on the human voice commands.\n"
        "2. BE CONCISE: Transport operators need quick answers. Keep responses SHORT, DIRECT, and LOUD.\n\n"
        "DATA HANDLING:\n"
        f"- When listing tasks, read dates in a natural, spoken format for {speech_language_name(language)}.\n"
        "- Do not read IDs or technical fields unless asked.\n\n"
        "TOOL CONFIRMATION PROTOCOL:\n"
        "- Before executing the 'addTask' tool, summarize details and ask for confirmation.\n"
    )


# ---------------------------------------------------------------------------
# Live connection seam
# ---------------------------------------------------------------------------

@dataclass
class FunctionCall:
    id: str | None
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class LiveEvent:
    """One server message, reduced to what the session acts on."""

    audio: list[bytes] = field(default_factory=list)
    function_calls: list[FunctionCall] = field(default_factory=list)


class LiveSession(Protocol):
    async def send_audio(self, pcm: bytes) -> None: ...

    async def send_tool_responses(self, outcomes: list[ToolOutcome]) -> None: ...

    def events(self) -> AsyncIterator[LiveEvent]: ...


class LiveConnector(Protocol):
    def connect(self, language: Language | str) -> Any:
        """Async context manager yielding a :class:`LiveSession`."""
        ...


class GeminiLiveSession:
    def __init__(self, session) -> None:
        self.session = session

    async def send_audio(self, pcm: bytes) -> None:
        await self.session.send_realtime_input(
            audio=types.Blob(data=pcm, mime_type=INPUT_MIME_TYPE)
        )

    async def send_tool_responses(self, outcomes: list[ToolOutcome]) -> None:
        await self.session.send_tool_response(
            function_responses=[
                types.FunctionResponse(id=o.id, name=o.name, response={"result": o.result})
                for o in outcomes
            ]
        )

    async def events(self) -> AsyncIterator[LiveEvent]:
        # receive() ends at each turn boundary; keep listening until the
        # server closes the connection.
        while True:
            got_any = False
            async for message in self.session.receive():
                got_any = True
                event = LiveEvent()
                content = message.server_content
                if content is not None and content.model_turn is not None:
                    for part in content.model_turn.parts or []:
                        if part.inline_data is not None and part.inline_data.data:
                            event.audio.append(part.inline_data.data)
                if message.tool_call is not None:
                    for fc in message.tool_call.function_calls or []:
                        event.function_calls.append(
                            FunctionCall(id=fc.id, name=fc.name, args=dict(fc.args or {}))
                        )
                if event.audio or event.function_calls:
                    yield event
            if not got_any:
                return


class GeminiLiveConnector:
    """Production connector using ``google-genai``'s Live API."""

    def __init__(self, api_key: str, model: str, voice_name: str = "Kore") -> None:
        self.client = genai.Client(api_key=api_key)
        self.model = model
        self.voice_name = voice_name

    def config(self, language: Language | str) -> types.LiveConnectConfig:
        return types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice_name)
                )
            ),
            system_instruction=types.Content(parts=[types.Part(text=system_instruction(language))]),
            tools=[types.Tool(function_declarations=TOOL_DECLARATIONS)],
        )

    @asynccontextmanager
    async def connect(self, language: Language | str):
        async with self.client.aio.live.connect(model=self.model, config=self.config(language)) as session:
            yield GeminiLiveSession(session)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class VoiceSession:
    """Runs one voice conversation over an accepted WebSocket."""

    def __init__(
        self,
        websocket,
        connector: LiveConnector | None,
        dispatcher: ToolDispatcher,
        activity_log: ActivityLog,
        language: Language | str = Language.ES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.websocket = websocket
        self.clock = clock
        self.connector = connector
        self.dispatcher = dispatcher
        self.log = activity_log
        self.language = Language(language)
        self.front_end: AudioFrontEnd | None = None
        self._last_level_update = 0.0

    async def run(self) -> None:
        """Wait for ``start``, then stream until ``stop``, disconnect or a live error."""
        start = await self._wait_for_start()
        if start is None:
            return

        if self.connector is None:
            self.log.error(LogCategory.VOICE_AI, "API Key missing")
            await self._send({"type": "error", "message": t(self.language)["api_key_missing"]})
            await self.websocket.close()
            return

        try:
            self.front_end = AudioFrontEnd(
                int(start.get("sample_rate", 16000)),
                float(start.get("sensitivity", DEFAULT_SENSITIVITY)),
            )
        except (TypeError, ValueError) as e:
            await self._send({"type": "error", "message": f"Invalid start message: {e}"})
            return
        self.dispatcher.language = self.language
        self.dispatcher.reset()

        self.log.info(LogCategory.VOICE_AI, "Starting new session...")
        await self._send({"type": "status", "state": "connecting"})
        try:
            async with self.connector.connect(self.language) as live:
                self.log.success(
                    LogCategory.VOICE_AI,
                    f"Connected to Gemini Live ({speech_language_name(self.language)})",
                )
                await self._send({"type": "status", "state": "connected"})
                await self._pump(live)
        except Exception as e:
            logger.exception("Voice session failed")
            self.log.error(LogCategory.VOICE_AI, "Connection Error", str(e))
            await self._send({"type": "error", "message": str(e)})
        finally:
            self.log.info(LogCategory.VOICE_AI, "Session stopped")
            await self._send({"type": "status", "state": "closed"})

    async def _wait_for_start(self) -> dict | None:
        while True:
            raw = await self.websocket.receive()
            if raw.get("type") == "websocket.disconnect":
                return None
            msg = _parse(raw.get("text"))
            if msg is None:
                continue
            if msg.get("type") == "start":
                if msg.get("language") in {lang.value for lang in Language}:
                    self.language = Language(msg["language"])
                return msg
            if msg.get("type") == "stop":
                return None

    async def _pump(self, live: LiveSession) -> None:
        client_task = asyncio.create_task(self._client_loop(live))
        model_task = asyncio.create_task(self._model_loop(live))
        done, pending = await asyncio.wait(
            {client_task, model_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            # Re-raise a live-side failure into run()
            task.result()

    async def _client_loop(self, live: LiveSession) -> None:
        while True:
            raw = await self.websocket.receive()
            if raw.get("type") == "websocket.disconnect":
                return
            if raw.get("bytes"):
                await self._handle_audio(live, raw["bytes"])
                continue
            msg = _parse(raw.get("text"))
            if msg is None:
                continue
            kind = msg.get("type")
            if kind == "stop":
                self.log.info(LogCategory.VOICE_AI, "Stopping voice session...")
                return
            if kind == "sensitivity" and self.front_end is not None:
                self.front_end.set_sensitivity(msg.get("value", DEFAULT_SENSITIVITY))

    async def _handle_audio(self, live: LiveSession, data: bytes) -> None:
        usable = len(data) - len(data) % 4
        block = np.frombuffer(data[:usable], dtype="<f4")
        processed = self.front_end.process(block)

        if processed.silent:
            self.log.warning(LogCategory.VOICE_AI, "No audio input detected (Silence).")

        now = self.clock()
        if now - self._last_level_update > LEVEL_UPDATE_INTERVAL:
            self._last_level_update = now
            await self._send({"type": "level", "level": processed.level, "gated": processed.gated})

        await live.send_audio(processed.pcm)

    async def _model_loop(self, live: LiveSession) -> None:
        async for event in live.events():
            for chunk in event.audio:
                await self._send({
                    "type": "audio_chunk",
                    "data": encode_base64(chunk),
                    "sample_rate": OUTPUT_RATE,
                })
            if event.function_calls:
                await self._handle_tool_calls(live, event.function_calls)
        self.log.warning(LogCategory.VOICE_AI, "Connection closed by server")

    async def _handle_tool_calls(self, live: LiveSession, calls: list[FunctionCall]) -> None:
        outcomes = []
        for call in calls:
            outcome = await asyncio.to_thread(self.dispatcher.dispatch, call.id, call.name, call.args)
            if outcome is None:
                continue
            outcomes.append(outcome)
            if outcome.created is not None:
                await self._send({
                    "type": "task_created",
                    "task": outcome.created.model_dump(mode="json"),
                })
        if outcomes:
            await live.send_tool_responses(outcomes)

    async def _send(self, payload: dict) -> None:
        try:
            await self.websocket.send_json(payload)
        except (RuntimeError, WebSocketDisconnect):
            # Socket already closed by the client
            logger.debug("Dropped %s frame on closed socket", payload.get("type"))


def _parse(text: str | None) -> dict | None:
    if not text:
        return None
    try:
        msg = json.loads(text)
    except json.JSONDecodeError:
        return None
    return msg if isinstance(msg, dict) else None
