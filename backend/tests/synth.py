"""
Synthetic audio helpers shared by the test suite.

Signals are built frame-aligned so each frame is either fully silent or
fully tonal, which keeps onset timing deterministic.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

SAMPLE_RATE = 44100
FRAME_SIZE = 2048
FRAME_SEC = FRAME_SIZE / SAMPLE_RATE


def generate_sine(freq: float, num_samples: int, amplitude: float = 0.5, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Pure sine wave starting at phase 0."""
    t = np.arange(num_samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def render_frames(parts: Sequence[Tuple[Optional[float], int]], amplitude: float = 0.5) -> np.ndarray:
    """
    Concatenate (frequency, n_frames) parts; frequency None means silence.
    """
    chunks: List[np.ndarray] = []
    for freq, n_frames in parts:
        num_samples = n_frames * FRAME_SIZE
        if freq is None:
            chunks.append(np.zeros(num_samples, dtype=np.float32))
        else:
            chunks.append(generate_sine(freq, num_samples, amplitude))
    return np.concatenate(chunks)


def iter_frames(signal: np.ndarray, frame_size: int = FRAME_SIZE):
    """Yield (frame, timestamp) for back-to-back frames."""
    for i in range(len(signal) // frame_size):
        yield signal[i * frame_size:(i + 1) * frame_size], i * frame_size / SAMPLE_RATE


def run_transcriber(transcriber, signal: np.ndarray) -> list:
    """Feed every frame through the transcriber and collect emitted notes."""
    notes = []
    for frame, timestamp in iter_frames(signal):
        note = transcriber.process_samples(frame, timestamp)
        if note is not None:
            notes.append(note)
    return notes
