"""Microphone front end for the live voice loop.

Blocks of float32 samples at the device rate go through a cascaded 85 Hz
high-pass, a 4 kHz low-pass, an RMS noise gate with hold time, and a boxcar
downsampler to 16 kHz before being packed as little-endian PCM16.
"""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass

import numpy as np

TARGET_RATE = 16000
OUTPUT_RATE = 24000
HIGH_PASS_CUTOFF = 85.0
LOW_PASS_CUTOFF = 4000.0
DEFAULT_SENSITIVITY = 0.4
GATE_HOLD_SECONDS = 0.5
SILENCE_RMS = 0.00001
SILENCE_WARN_EVERY = 200


def high_pass_alpha(sample_rate: float, cutoff: float = HIGH_PASS_CUTOFF) -> float:
    dt = 1.0 / sample_rate
    rc = 1.0 / (2.0 * math.pi * cutoff)
    return rc / (rc + dt)


def low_pass_alpha(sample_rate: float, cutoff: float = LOW_PASS_CUTOFF) -> float:
    dt = 1.0 / sample_rate
    rc = 1.0 / (2.0 * math.pi * cutoff)
    return dt / (rc + dt)


class HighPassFilter:
    """First-order IIR high-pass; state carries over between blocks."""

    def __init__(self, alpha: float) -> None:
        self.alpha = alpha
        self.prev_in = 0.0
        self.prev_out = 0.0

    def process(self, block: np.ndarray) -> np.ndarray:
        out = np.empty(len(block), dtype=np.float32)
        prev_in, prev_out, alpha = self.prev_in, self.prev_out, self.alpha
        for i, x in enumerate(block.tolist()):
            prev_out = alpha * (prev_out + x - prev_in)
            prev_in = x
            out[i] = prev_out
        self.prev_in, self.prev_out = prev_in, prev_out
        return out

    def reset(self) -> None:
        self.prev_in = 0.0
        self.prev_out = 0.0


class LowPassFilter:
    """First-order IIR low-pass (exponential smoothing)."""

    def __init__(self, alpha: float) -> None:
        self.alpha = alpha
        self.prev_out = 0.0

    def process(self, block: np.ndarray) -> np.ndarray:
        out = np.empty(len(block), dtype=np.float32)
        prev_out, alpha = self.prev_out, self.alpha
        for i, x in enumerate(block.tolist()):
            prev_out = prev_out + alpha * (x - prev_out)
            out[i] = prev_out
        self.prev_out = prev_out
        return out

    def reset(self) -> None:
        self.prev_out = 0.0


def block_rms(block: np.ndarray) -> float:
    """RMS estimated from roughly 100 evenly spaced samples."""
    n = len(block)
    if n == 0:
        return 0.0
    step = math.ceil(n / 100)
    picked = block[::step].astype(np.float64)
    return math.sqrt(float(np.sum(picked * picked)) / (n / step))


def gate_threshold(sensitivity: float) -> float:
    """Sensitivity 1.0 opens at 0.001 RMS, 0.0 needs 0.081."""
    return 0.001 + (1.0 - sensitivity) ** 2 * 0.08


def visual_level(rms: float, threshold: float, gated: bool = False) -> float:
    if gated:
        return 0.0
    return max(0.0, min(1.0, (rms - threshold) * 30))


class NoiseGate:
    """Opens on signal and stays open for ``hold_seconds`` after it drops."""

    def __init__(self, sample_rate: int, sensitivity: float = DEFAULT_SENSITIVITY,
                 hold_seconds: float = GATE_HOLD_SECONDS) -> None:
        self.hold_samples = math.floor(sample_rate * hold_seconds)
        self.sensitivity = sensitivity
        self.counter = 0

    @property
    def threshold(self) -> float:
        return gate_threshold(self.sensitivity)

    def update(self, rms: float, block_len: int) -> bool:
        """Feed one block's RMS; returns True when the block is gated."""
        if rms > self.threshold:
            self.counter = self.hold_samples
        elif self.counter > 0:
            self.counter -= block_len
        return self.counter <= 0

    def reset(self) -> None:
        self.counter = 0


def downsample_to_16k(block: np.ndarray, sample_rate: int) -> np.ndarray:
    """Boxcar-average *block* down to 16 kHz."""
    if sample_rate == TARGET_RATE:
        return block
    n = len(block)
    ratio = sample_rate / TARGET_RATE
    new_len = math.floor(n / ratio + 0.5)
    if new_len == 0 or n == 0:
        return np.zeros(0, dtype=np.float32)
    idx = np.arange(new_len)
    starts = np.floor(idx * ratio).astype(np.int64)
    ends = np.minimum(np.floor((idx + 1) * ratio).astype(np.int64), n)
    starts = np.minimum(starts, n - 1)
    sums = np.concatenate(([0.0], np.cumsum(block, dtype=np.float64)))
    counts = ends - starts
    averaged = (sums[np.maximum(ends, starts)] - sums[starts]) / np.maximum(counts, 1)
    # Upsampling leaves some windows empty; take the nearest sample there
    result = np.where(counts > 0, averaged, block[starts])
    return result.astype(np.float32)


def float_to_pcm16(samples: np.ndarray) -> bytes:
    clipped = np.clip(samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    return scaled.astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    if len(data) % 2:
        data = data[:-1]
    return (np.frombuffer(data, dtype="<i2").astype(np.float32) / 32768.0)


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(data: str) -> bytes:
    return base64.b64decode(data)


@dataclass
class ProcessedBlock:
    pcm: bytes
    rms: float
    level: float
    gated: bool
    # Set on the blocks where a "no audio input" warning is due
    silent: bool


class AudioFrontEnd:
    """Stateful per-session pipeline: HPF → HPF → LPF → RMS → gate → 16 kHz PCM16."""

    def __init__(self, sample_rate: int, sensitivity: float = DEFAULT_SENSITIVITY) -> None:
        if sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {sample_rate}")
        self.sample_rate = sample_rate
        hp_alpha = high_pass_alpha(sample_rate)
        self.hpf1 = HighPassFilter(hp_alpha)
        self.hpf2 = HighPassFilter(hp_alpha)
        self.lpf = LowPassFilter(low_pass_alpha(sample_rate))
        self.gate = NoiseGate(sample_rate, sensitivity)
        self.silence_count = 0

    @property
    def sensitivity(self) -> float:
        return self.gate.sensitivity

    def set_sensitivity(self, value: float) -> None:
        self.gate.sensitivity = max(0.0, min(1.0, float(value)))

    def reset(self) -> None:
        self.hpf1.reset()
        self.hpf2.reset()
        self.lpf.reset()
        self.gate.reset()
        self.silence_count = 0

    def process(self, block: np.ndarray) -> ProcessedBlock:
        block = np.asarray(block, dtype=np.float32)
        filtered = self.lpf.process(self.hpf2.process(self.hpf1.process(block)))
        rms = block_rms(filtered)
        gated = self.gate.update(rms, len(filtered))

        silent = False
        if rms < SILENCE_RMS:
            self.silence_count += 1
            silent = (
                self.silence_count > SILENCE_WARN_EVERY
                and self.silence_count % SILENCE_WARN_EVERY == 0
            )
        else:
            self.silence_count = 0

        out = downsample_to_16k(filtered, self.sample_rate)
        if gated:
            out = np.zeros(len(out), dtype=np.float32)

        return ProcessedBlock(
            pcm=float_to_pcm16(out),
            rms=rms,
            level=visual_level(rms, self.gate.threshold, gated),
            gated=gated,
            silent=silent,
        )
