"""Raw PCM helpers: decode to waveforms and wrap in WAV containers."""
import io
import struct
import wave

import numpy as np

from .errors import DecodeError
from .models import Waveform

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
_SAMPLE_WIDTH = BITS_PER_SAMPLE // 8
_INT16_SCALE = 32768.0


def decode(data: bytes, sample_rate: int, channels: int = 1) -> Waveform:
    """Interpret interleaved s16le PCM as a normalized waveform."""
    if channels < 1:
        raise DecodeError(f"channel count must be >= 1, got {channels}")
    frame_width = _SAMPLE_WIDTH * channels
    if len(data) % frame_width != 0:
        raise DecodeError(
            f"pcm length {len(data)} is not a multiple of {frame_width} "
            f"(16-bit x {channels} channel(s))"
        )
    ints = np.frombuffer(data, dtype="<i2")
    samples = (ints.astype(np.float32) / _INT16_SCALE).reshape(-1, channels)
    return Waveform(samples=samples, sample_rate=sample_rate, channels=channels)


def encode_wav(pcm: bytes, sample_rate: int = 24000, channels: int = 1) -> bytes:
    """Prefix a canonical 44-byte RIFF/WAVE header to s16le PCM."""
    byte_rate = sample_rate * channels * _SAMPLE_WIDTH
    block_align = channels * _SAMPLE_WIDTH
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + len(pcm),
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        len(pcm),
    )
    return header + pcm


def strip_wav_header(wav_bytes: bytes) -> bytes:
    return wav_bytes[WAV_HEADER_SIZE:]


def silence(duration_sec: float, sample_rate: int, channels: int = 1) -> Waveform:
    frames = max(int(round(duration_sec * sample_rate)), 0)
    samples = np.zeros((frames, channels), dtype=np.float32)
    return Waveform(samples=samples, sample_rate=sample_rate, channels=channels)


def wav_duration_sec(wav_bytes: bytes) -> float:
    try:
        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            frames = wf.getnframes()
            rate = wf.getframerate() or 1
            return float(frames) / float(rate)
    except (wave.Error, EOFError):
        return 0.0
