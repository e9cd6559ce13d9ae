"""Tests for the /ws/voice session, using a scripted live connection."""

from __future__ import annotations

import asyncio

import numpy as np
import pytest
from fastapi import WebSocketDisconnect

from tests.fakes import FakeLiveConnector, FakeLiveSession, add_task_call
from trantor.models import Language
from trantor.voice.dsp import AudioFrontEnd, decode_base64
from trantor.voice.live_session import (
    LEVEL_UPDATE_INTERVAL,
    LiveEvent,
    VoiceSession,
    _parse,
    system_instruction,
)
from trantor.voice.tools import ToolDispatcher


def _receive_until(ws, predicate, limit: int = 50) -> list[dict]:
    """Collect frames until one satisfies *predicate*; returns all of them."""
    frames = []
    for _ in range(limit):
        frame = ws.receive_json()
        frames.append(frame)
        if predicate(frame):
            return frames
    raise AssertionError(f"expected frame never arrived: {frames}")


def _is_status(state):
    return lambda f: f.get("type") == "status" and f.get("state") == state


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestProtocolHelpers:
    def test_parse(self):
        assert _parse('{"type": "stop"}') == {"type": "stop"}
        assert _parse("not json") is None
        assert _parse("[1, 2]") is None
        assert _parse(None) is None

    def test_system_instruction_names_language(self):
        assert "SPANISH" in system_instruction(Language.ES)
        assert "ENGLISH" in system_instruction("en")


# ---------------------------------------------------------------------------
# Connection guards
# ---------------------------------------------------------------------------

class TestVoiceGuards:
    def test_rejects_missing_token(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_missing_api_key_reports_error(self, client, token, state):
        assert state.live_connector is None
        with client.websocket_connect(f"/ws/voice?token={token}") as ws:
            ws.send_json({"type": "start", "sample_rate": 16000})
            frame = ws.receive_json()
            assert frame == {"type": "error", "message": "Falta API Key"}
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()
        user_log = state.logs_for(state.auth.get_user(token).id)
        assert any(e.message == "API Key missing" for e in user_log.entries())

    def test_start_language_overrides_preference(self, client, token):
        with client.websocket_connect(f"/ws/voice?token={token}") as ws:
            ws.send_json({"type": "start", "sample_rate": 16000, "language": "en"})
            assert ws.receive_json()["message"] == "API Key missing"


# ---------------------------------------------------------------------------
# Full session
# ---------------------------------------------------------------------------

class TestVoiceSession:
    def test_audio_tools_and_shutdown(self, client, token, state, auth_headers):
        connector = FakeLiveConnector([
            LiveEvent(audio=[b"\x01\x00\x02\x00"]),
            add_task_call("call-1", title="Check tyres", priority="High", dueDate="2026-03-20"),
            # Same id again: must not create a second task
            add_task_call("call-1", title="Check tyres", priority="High", dueDate="2026-03-20"),
        ])
        state.live_connector = connector

        with client.websocket_connect(f"/ws/voice?token={token}") as ws:
            ws.send_json({"type": "start", "sample_rate": 48000, "language": "es", "sensitivity": 0.4})
            frames = _receive_until(ws, _is_status("connected"))
            assert frames[0] == {"type": "status", "state": "connecting"}

            seen = _receive_until(ws, lambda f: f["type"] == "task_created")
            chunk = next(f for f in seen if f["type"] == "audio_chunk")
            assert decode_base64(chunk["data"]) == b"\x01\x00\x02\x00"
            assert chunk["sample_rate"] == 24000
            created = seen[-1]["task"]
            assert created["title"] == "Check tyres"
            assert created["priority"] == "High"

            tone = (0.5 * np.sin(np.arange(4800) * 2 * np.pi * 440 / 48000)).astype("<f4")
            ws.send_bytes(tone.tobytes())
            level = _receive_until(ws, lambda f: f["type"] == "level")[-1]
            assert 0.0 <= level["level"] <= 1.0

            ws.send_json({"type": "sensitivity", "value": 0.9})
            ws.send_json({"type": "stop"})
            _receive_until(ws, _is_status("closed"))

        assert connector.languages == [Language.ES]
        assert len(connector.session.audio_sent) == 1
        assert len(connector.session.audio_sent[0]) == 2 * 1600
        assert len(connector.session.tool_responses) == 1
        outcome = connector.session.tool_responses[0][0]
        assert outcome.result == {"message": "Tarea agregada correctamente"}

        tasks = client.get("/api/tasks", headers=auth_headers).json()
        assert [t["title"] for t in tasks] == ["Check tyres"]
        messages = [e.message for e in state.logs_for(state.auth.get_user(token).id).entries()]
        assert "Session stopped" in messages
        assert "Stopping voice session..." in messages


# ---------------------------------------------------------------------------
# Level meter throttle
# ---------------------------------------------------------------------------

class _RecordingSocket:
    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send_json(self, payload: dict) -> None:
        self.sent.append(payload)


class TestLevelThrottle:
    def test_one_level_frame_per_interval(self, task_service, activity_log):
        ticks = iter([10.000, 10.020, 10.050])
        socket = _RecordingSocket()
        session = VoiceSession(
            socket, FakeLiveConnector(), ToolDispatcher(task_service, activity_log),
            activity_log, clock=lambda: next(ticks),
        )
        session.front_end = AudioFrontEnd(16000)
        live = FakeLiveSession([])
        tone = (0.5 * np.sin(np.arange(1024) * 2 * np.pi * 440 / 16000)).astype("<f4").tobytes()

        async def feed():
            for _ in range(3):
                await session._handle_audio(live, tone)

        asyncio.run(feed())

        # 10.020 is inside the 40 ms window opened at 10.000; 10.050 is not
        assert [f["type"] for f in socket.sent] == ["level", "level"]
        assert LEVEL_UPDATE_INTERVAL == 0.040
        assert len(live.audio_sent) == 3
