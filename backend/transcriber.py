#!/usr/bin/env python3
"""
Real-time melody transcriber: audio frames in, notes out.

One MelodyTranscriber owns every piece of mutable state (histories, the
active segment, tempo, lyric cursor) and is advanced only through
process_frame(), one frame at a time in arrival order.

Usage:
    transcriber = MelodyTranscriber(renderer=my_renderer)
    for frame, timestamp in frame_source:
        note = transcriber.process_samples(frame, timestamp)
        if note:
            print(note.key, note.duration, note.lyric)
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from autocorr_pitch import PitchEstimator, PitchReading, rms
from duration_quantizer import DurationQuantizer
from note_assembler import Note, NoteAssembler, NoteRenderer, TimeSignature
from note_segmenter import OnsetSegmenter, SegmentState
from onset_detector import SpectralFluxAnalyzer, SpectrumProvider
from rolling_window import RollingWindow, weighted_average

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriberConfig:
    """Tunable constants of the transcription pipeline."""
    sample_rate: int = 44100
    fft_size: int = 2048

    # Pitch estimation
    silence_rms: float = 0.01
    peak_correlation: float = 0.9
    min_correlation: float = 0.01
    refine_coefficient: float = 4.0

    # Onset / offset
    flux_window: int = 20
    flux_k: float = 1.5
    voiced_rms: float = 0.01
    release_rms: float = 0.008
    release_time: float = 0.25
    min_ioi: float = 0.12
    min_duration: float = 0.08

    # Histories
    pitch_history: int = 10
    ioi_window: int = 16
    max_notes: int = 32
    default_quarter_sec: float = 0.5

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.fft_size < 2:
            raise ValueError(f"fft_size must be at least 2, got {self.fft_size}")
        for name in ("flux_window", "pitch_history", "ioi_window", "max_notes"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.default_quarter_sec <= 0:
            raise ValueError(
                f"default_quarter_sec must be positive, got {self.default_quarter_sec}"
            )


class MelodyTranscriber:
    """
    Pitch + onset analysis, segmentation and quantization for a live stream.

    Args:
        config: Tunable constants; defaults reproduce the reference behaviour.
        renderer: Score renderer redrawn whenever the note history changes.
        spectrum_provider: Front-end used by process_samples(); built from
            config.fft_size when omitted.
    """

    def __init__(
        self,
        config: Optional[TranscriberConfig] = None,
        renderer: Optional[NoteRenderer] = None,
        spectrum_provider: Optional[SpectrumProvider] = None,
    ) -> None:
        self.config = config or TranscriberConfig()
        cfg = self.config

        self.spectrum_provider = spectrum_provider or SpectrumProvider(cfg.fft_size)
        self.pitch_estimator = PitchEstimator(
            silence_rms=cfg.silence_rms,
            peak_correlation=cfg.peak_correlation,
            min_correlation=cfg.min_correlation,
            refine_coefficient=cfg.refine_coefficient,
        )
        self.flux_analyzer = SpectralFluxAnalyzer(window=cfg.flux_window, k=cfg.flux_k)
        self.quantizer = DurationQuantizer(
            ioi_window=cfg.ioi_window,
            default_quarter_sec=cfg.default_quarter_sec,
        )
        self.assembler = NoteAssembler(max_notes=cfg.max_notes, renderer=renderer)
        self.segmenter = OnsetSegmenter(
            quantizer=self.quantizer,
            assembler=self.assembler,
            voiced_rms=cfg.voiced_rms,
            release_rms=cfg.release_rms,
            min_ioi=cfg.min_ioi,
            min_duration=cfg.min_duration,
            release_time=cfg.release_time,
        )
        self._pitch_history: RollingWindow[float] = RollingWindow(cfg.pitch_history)
        self.last_pitch: Optional[float] = None

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def process_frame(
        self,
        frame: np.ndarray,
        spectrum: np.ndarray,
        timestamp: float,
        sample_rate: Optional[float] = None,
    ) -> Optional[Note]:
        """
        Analyse one frame and advance the segmenter.

        Args:
            frame: Time-domain samples in [-1, 1].
            spectrum: Linear magnitude spectrum of the same frame.
            timestamp: Frame time in seconds; strictly increasing.
            sample_rate: Overrides config.sample_rate for this frame.

        Returns:
            The note finalized by this frame, or None.
        """
        samples = np.asarray(frame, dtype=np.float64).ravel()
        rate = sample_rate or self.config.sample_rate

        pitch = self.pitch_estimator.estimate(samples, rate)
        self.last_pitch = pitch
        if pitch is not None:
            self._pitch_history.push(pitch)

        frame_rms = rms(samples)
        flux, threshold = self.flux_analyzer.update(spectrum)
        return self.segmenter.process(pitch, frame_rms, flux, threshold, timestamp)

    def process_samples(
        self,
        frame: np.ndarray,
        timestamp: float,
        sample_rate: Optional[float] = None,
    ) -> Optional[Note]:
        """process_frame() with the spectrum computed by the spectrum provider."""
        spectrum = self.spectrum_provider.spectrum(frame)
        return self.process_frame(frame, spectrum, timestamp, sample_rate)

    # ------------------------------------------------------------------
    # Display / inspection
    # ------------------------------------------------------------------

    def current_pitch(self) -> Optional[PitchReading]:
        """Smoothed pitch of the last voiced frames, None when the last frame was unvoiced."""
        if self.last_pitch is None or not self._pitch_history:
            return None
        return PitchReading.from_frequency(weighted_average(self._pitch_history.values()))

    @property
    def notes(self) -> List[Note]:
        return self.assembler.notes

    @property
    def state(self) -> SegmentState:
        return self.segmenter.state

    @property
    def tempo_bpm(self) -> float:
        return self.quantizer.tempo_bpm()

    # ------------------------------------------------------------------
    # External commands
    # ------------------------------------------------------------------

    def load_lyrics(self, tokens: Sequence[str]) -> None:
        self.assembler.lyrics.load(tokens)
        logger.info("Loaded %d lyric tokens", len(tokens))

    def set_time_signature(self, numerator, denominator) -> TimeSignature:
        time_signature = TimeSignature.parse(numerator, denominator)
        self.assembler.set_time_signature(time_signature)
        return time_signature

    def clear(self) -> None:
        """Clear the visible notes and the active segment; statistics persist."""
        self.segmenter.clear()
        self.assembler.clear()

    def stop(self) -> None:
        """Discard all pipeline state; the transcriber can be reused afterwards."""
        self.segmenter.reset()
        self.flux_analyzer.reset()
        self.quantizer.reset()
        self.assembler.reset()
        self._pitch_history.clear()
        self.last_pitch = None
        logger.info("Transcriber stopped, state reset")
