"""
Monophonic pitch estimation for sung or played melodies.

Uses a mean-absolute-difference autocorrelation over the first half of the
frame and stops at the first correlation peak above 0.9, which keeps the
search from locking onto sub-harmonics at long lags. The peak lag is then
refined from its two neighbours.

Usage:
    estimator = PitchEstimator()
    hz = estimator.estimate(samples, sample_rate=44100)   # None when unvoiced
    frequency_to_note(hz)                                 # "A4"
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

import numpy as np

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

# Korean fixed-do solfege, keyed by pitch class
DOREMI_NAMES = {
    'C': '도', 'C#': '도#', 'D': '레', 'D#': '레#',
    'E': '미', 'F': '파', 'F#': '파#', 'G': '솔',
    'G#': '솔#', 'A': '라', 'A#': '라#', 'B': '시',
}

_NOTE_PATTERN = re.compile(r'^([A-G]#?)(\d)$')


def rms(samples: np.ndarray) -> float:
    """Root-mean-square amplitude of a frame (0.0 for an empty frame)."""
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)))


def frequency_to_midi(frequency: float) -> int:
    """Nearest MIDI note number; A4 = 440 Hz = 69. Halves round up."""
    return int(math.floor(12 * math.log2(frequency / 440.0) + 69 + 0.5))


def frequency_to_note(frequency: Optional[float]) -> Optional[str]:
    """
    Convert a frequency (Hz) to a note name like "C#4".

    Returns None for a missing or non-positive frequency.
    """
    if frequency is None or frequency <= 0:
        return None
    midi = frequency_to_midi(frequency)
    octave = midi // 12 - 1
    return f"{NOTE_NAMES[midi % 12]}{octave}"


def note_to_vexflow(note: Optional[str]) -> Optional[str]:
    """
    Convert "C#4" into the VexFlow key "c#/4".

    Only single-digit octaves are representable; anything else gives None.
    """
    if not note:
        return None
    match = _NOTE_PATTERN.match(note)
    if not match:
        return None
    return f"{match.group(1).lower()}/{match.group(2)}"


def note_to_doremi(note: Optional[str]) -> Optional[str]:
    """Korean solfege name for a note ("A4" -> "라")."""
    if not note:
        return None
    match = _NOTE_PATTERN.match(note)
    if not match:
        return None
    return DOREMI_NAMES.get(match.group(1))


@dataclass(frozen=True)
class PitchReading:
    """Smoothed pitch shown to the user while singing."""
    frequency: float
    note: str
    octave: int
    doremi: str

    @classmethod
    def from_frequency(cls, frequency: float) -> Optional["PitchReading"]:
        note = frequency_to_note(frequency)
        match = _NOTE_PATTERN.match(note) if note else None
        if match is None:
            return None
        return cls(
            frequency=frequency,
            note=note,
            octave=int(match.group(2)),
            doremi=DOREMI_NAMES[match.group(1)],
        )


class PitchEstimator:
    """
    Autocorrelation pitch estimator with early exit on the first peak.

    Args:
        silence_rms: Frames quieter than this RMS are unvoiced.
        peak_correlation: Minimum correlation for a lag to count as a peak.
        min_correlation: Fallback acceptance level when the peak never passed.
        refine_coefficient: Scale of the neighbour-difference lag correction.
    """

    def __init__(
        self,
        silence_rms: float = 0.01,
        peak_correlation: float = 0.9,
        min_correlation: float = 0.01,
        refine_coefficient: float = 4.0,
    ) -> None:
        self.silence_rms = silence_rms
        self.peak_correlation = peak_correlation
        self.min_correlation = min_correlation
        self.refine_coefficient = refine_coefficient

    def estimate(self, samples: np.ndarray, sample_rate: float) -> Optional[float]:
        """
        Estimate the fundamental frequency of one frame.

        Args:
            samples: 1-D array of samples in [-1, 1].
            sample_rate: Sample rate in Hz.

        Returns:
            Frequency in Hz, or None when the frame is silent or aperiodic.
        """
        buf = np.asarray(samples, dtype=np.float64).ravel()
        max_samples = len(buf) // 2
        if max_samples < 2 or rms(buf) < self.silence_rms:
            return None

        head = buf[:max_samples]
        correlations = np.zeros(max_samples, dtype=np.float64)
        best_offset = -1
        best_correlation = 0.0
        last_correlation = 1.0
        found_peak = False

        for offset in range(max_samples):
            diff = np.abs(head - buf[offset:offset + max_samples])
            correlation = 1.0 - float(np.sum(diff)) / max_samples
            correlations[offset] = correlation

            if correlation > self.peak_correlation and correlation > last_correlation:
                found_peak = True
                if correlation > best_correlation:
                    best_correlation = correlation
                    best_offset = offset
            elif found_peak:
                # Peak has passed: refine the lag from its neighbours
                shift = (
                    correlations[best_offset + 1] - correlations[best_offset - 1]
                ) / correlations[best_offset]
                return sample_rate / (best_offset + self.refine_coefficient * shift)
            last_correlation = correlation

        if best_correlation > self.min_correlation:
            return sample_rate / best_offset
        return None
