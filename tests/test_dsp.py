"""Tests for the microphone front end: filters, gate, resampling, PCM packing."""

from __future__ import annotations

import math

import numpy as np
import pytest

from trantor.voice.dsp import (
    SILENCE_WARN_EVERY,
    AudioFrontEnd,
    HighPassFilter,
    NoiseGate,
    block_rms,
    decode_base64,
    downsample_to_16k,
    encode_base64,
    float_to_pcm16,
    gate_threshold,
    high_pass_alpha,
    low_pass_alpha,
    pcm16_to_float,
    visual_level,
)


def _tone(freq: float, sample_rate: int, n: int, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(n) / sample_rate
    return (amplitude * np.sin(2 * math.pi * freq * t)).astype(np.float32)


# ---------------------------------------------------------------------------
# Coefficients and filters
# ---------------------------------------------------------------------------

class TestFilters:
    def test_alphas_are_fractions(self):
        assert 0 < high_pass_alpha(48000) < 1
        assert 0 < low_pass_alpha(48000) < 1

    def test_high_pass_removes_dc(self):
        hpf = HighPassFilter(high_pass_alpha(16000))
        out = hpf.process(np.ones(16000, dtype=np.float32))
        assert abs(out[-1]) < 1e-3

    def test_filter_state_carries_across_blocks(self):
        signal = _tone(440, 16000, 1024)
        whole = HighPassFilter(high_pass_alpha(16000)).process(signal)
        split = HighPassFilter(high_pass_alpha(16000))
        joined = np.concatenate([split.process(signal[:512]), split.process(signal[512:])])
        np.testing.assert_allclose(whole, joined, rtol=1e-5, atol=1e-6)

    def test_reset_clears_state(self):
        hpf = HighPassFilter(0.9)
        hpf.process(np.ones(10, dtype=np.float32))
        hpf.reset()
        assert (hpf.prev_in, hpf.prev_out) == (0.0, 0.0)


# ---------------------------------------------------------------------------
# Level and gate
# ---------------------------------------------------------------------------

class TestGate:
    def test_rms_of_constant(self):
        assert block_rms(np.full(1000, 0.5, dtype=np.float32)) == pytest.approx(0.5)

    def test_rms_of_empty_block(self):
        assert block_rms(np.zeros(0, dtype=np.float32)) == 0.0

    def test_threshold_range(self):
        assert gate_threshold(1.0) == pytest.approx(0.001)
        assert gate_threshold(0.0) == pytest.approx(0.081)

    def test_visual_level_is_clamped(self):
        assert visual_level(1.0, 0.01) == 1.0
        assert visual_level(0.0, 0.01) == 0.0
        assert visual_level(0.5, 0.01, gated=True) == 0.0

    def test_gate_holds_open_after_signal_drops(self):
        gate = NoiseGate(sample_rate=1000, sensitivity=1.0)  # 500-sample hold
        assert gate.update(0.5, 100) is False
        for _ in range(4):
            assert gate.update(0.0, 100) is False
        assert gate.update(0.0, 100) is True

    def test_gate_closed_without_signal(self):
        gate = NoiseGate(sample_rate=16000)
        assert gate.update(0.0, 512) is True


# ---------------------------------------------------------------------------
# Resampling and packing
# ---------------------------------------------------------------------------

class TestConversion:
    def test_48k_to_16k_length(self):
        out = downsample_to_16k(np.ones(4800, dtype=np.float32), 48000)
        assert len(out) == 1600
        np.testing.assert_allclose(out, 1.0)

    def test_boxcar_averages_windows(self):
        block = np.array([0, 3, 6, 9, 12, 15], dtype=np.float32)
        np.testing.assert_allclose(downsample_to_16k(block, 48000), [3.0, 12.0])

    def test_44k1_fractional_windows(self):
        ramp = np.arange(4410, dtype=np.float32)
        out = downsample_to_16k(ramp, 44100)
        assert len(out) == round(4410 / 2.75625) == 1600
        # Windows [0, 2), [2, 5), [5, 8)
        np.testing.assert_allclose(out[:3], [0.5, 3.0, 6.0])
        assert np.all(np.diff(out) > 0)
        assert out[-1] < 4410

    def test_44k1_last_window_clamped_to_block(self):
        out = downsample_to_16k(np.arange(10, dtype=np.float32), 44100)
        # 10 / 2.75625 = 3.63 rounds up to 4; the last window [8, 11) is cut to [8, 10)
        assert len(out) == 4
        np.testing.assert_allclose(out, [0.5, 3.0, 6.0, 8.5])

    def test_16k_passes_through(self):
        block = np.arange(10, dtype=np.float32)
        assert downsample_to_16k(block, 16000) is block

    def test_pcm16_clips_and_scales(self):
        pcm = float_to_pcm16(np.array([-2.0, -1.0, 0.0, 1.0, 2.0], dtype=np.float32))
        assert np.frombuffer(pcm, dtype="<i2").tolist() == [-32768, -32768, 0, 32767, 32767]

    def test_pcm16_to_float_drops_odd_byte(self):
        samples = pcm16_to_float(b"\x00\x40\x00\xc0\x01")
        np.testing.assert_allclose(samples, [0.5, -0.5])

    def test_base64(self):
        assert decode_base64(encode_base64(b"\x00\xffabc")) == b"\x00\xffabc"


# ---------------------------------------------------------------------------
# Front end
# ---------------------------------------------------------------------------

class TestAudioFrontEnd:
    def test_rejects_bad_sample_rate(self):
        with pytest.raises(ValueError):
            AudioFrontEnd(0)

    def test_speech_passes_gate(self):
        fe = AudioFrontEnd(48000, sensitivity=1.0)
        block = fe.process(_tone(440, 48000, 4096))
        assert block.gated is False
        assert block.level > 0
        assert len(block.pcm) == 2 * round(4096 / 3)
        assert any(np.frombuffer(block.pcm, dtype="<i2"))

    def test_silence_is_gated_but_still_sent(self):
        fe = AudioFrontEnd(48000)
        block = fe.process(np.zeros(4096, dtype=np.float32))
        assert block.gated is True
        assert block.level == 0.0
        assert len(block.pcm) == 2 * round(4096 / 3)
        assert not any(np.frombuffer(block.pcm, dtype="<i2"))

    def test_silence_warning_cadence(self):
        fe = AudioFrontEnd(16000)
        silent_flags = [fe.process(np.zeros(256, dtype=np.float32)).silent for _ in range(2 * SILENCE_WARN_EVERY)]
        assert silent_flags.count(True) == 1
        assert silent_flags[2 * SILENCE_WARN_EVERY - 1] is True

    def test_set_sensitivity_clamps(self):
        fe = AudioFrontEnd(16000)
        fe.set_sensitivity(3)
        assert fe.sensitivity == 1.0
        fe.set_sensitivity(-1)
        assert fe.sensitivity == 0.0
