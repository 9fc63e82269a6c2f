"""
Spectral flux onset strength with an adaptive threshold.

SpectralFluxAnalyzer measures the positive change in magnitude spectrum
between consecutive frames and keeps a short history of those values. The
onset threshold is the running mean + 1.5*std of that history, so it rises
right after a strong attack and settles back during steady notes.

SpectrumProvider is the analysis front-end that turns time-domain frames
into the linear magnitude spectra the analyzer expects.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from rolling_window import RollingWindow


def db_to_magnitude(spectrum_db: Sequence[float]) -> np.ndarray:
    """Convert a dB spectrum (as delivered by a host analyser) to linear magnitude."""
    return np.power(10.0, np.asarray(spectrum_db, dtype=np.float64) / 20.0)


def spectral_flux(current: np.ndarray, previous: Optional[np.ndarray]) -> float:
    """
    Half-wave rectified spectral difference.

    Returns 0.0 when there is no previous spectrum or the bin counts differ.
    """
    if previous is None or len(previous) != len(current):
        return 0.0
    diff = np.asarray(current, dtype=np.float64) - previous
    return float(np.sum(np.maximum(diff, 0.0)))


def adaptive_threshold(values: Sequence[float], k: float = 1.5, min_variance: float = 1e-8) -> float:
    """
    mean + k * std over recent flux values (population std).

    Returns +inf for fewer than two values so no onset can fire yet.
    """
    if len(values) < 2:
        return math.inf
    history = np.asarray(values, dtype=np.float64)
    mean = float(np.mean(history))
    variance = float(np.mean((history - mean) ** 2))
    return mean + k * math.sqrt(max(variance, min_variance))


class SpectralFluxAnalyzer:
    """
    Per-frame spectral flux and adaptive onset threshold.

    Args:
        window: Number of recent flux values the threshold is computed over.
        k: Threshold sensitivity (number of standard deviations above the mean).
        min_variance: Variance floor so a flat history still has a non-zero width.
    """

    def __init__(self, window: int = 20, k: float = 1.5, min_variance: float = 1e-8) -> None:
        self.k = k
        self.min_variance = min_variance
        self._flux_history: RollingWindow[float] = RollingWindow(window)
        self._prev_spectrum: Optional[np.ndarray] = None

    def update(self, spectrum: np.ndarray) -> Tuple[float, float]:
        """
        Consume the current magnitude spectrum.

        Returns:
            (flux, threshold) for this frame.
        """
        current = np.asarray(spectrum, dtype=np.float64).ravel()
        flux = spectral_flux(current, self._prev_spectrum)
        self._prev_spectrum = current

        self._flux_history.push(flux)
        threshold = adaptive_threshold(self._flux_history.values(), self.k, self.min_variance)
        return flux, threshold

    @property
    def flux_history(self) -> RollingWindow[float]:
        return self._flux_history

    def reset(self) -> None:
        """Clear all internal state between sessions."""
        self._prev_spectrum = None
        self._flux_history.clear()


class SpectrumProvider:
    """
    Magnitude spectrum of a time-domain frame.

    Mirrors a browser AnalyserNode with no smoothing: Blackman window, real FFT,
    magnitudes scaled by 1/fft_size, fft_size // 2 bins.

    Args:
        fft_size: FFT window size in samples.
    """

    def __init__(self, fft_size: int = 2048) -> None:
        if fft_size < 2:
            raise ValueError(f"fft_size must be at least 2, got {fft_size}")
        self.fft_size = fft_size
        self._window = np.blackman(fft_size)

    def spectrum(self, samples: np.ndarray) -> np.ndarray:
        """
        Compute the magnitude spectrum of one frame.

        Frames longer than fft_size use their last fft_size samples; shorter
        frames are zero-padded on the left.
        """
        chunk = np.asarray(samples, dtype=np.float64).ravel()
        if len(chunk) >= self.fft_size:
            frame = chunk[-self.fft_size:]
        else:
            frame = np.zeros(self.fft_size, dtype=np.float64)
            if len(chunk):
                frame[-len(chunk):] = chunk

        magnitudes = np.abs(np.fft.rfft(frame * self._window)) / self.fft_size
        return magnitudes[: self.fft_size // 2]
