"""
Onset/offset state machine that cuts a pitch stream into note segments.

Onsets come from spectral novelty (flux above the adaptive threshold on a
voiced frame); offsets come from sustained quiet. Keeping the two triggers
separate lets short breaths inside a sung syllable pass without splitting
the note, while a clear new attack still closes the previous one.

States:
    IDLE   - no note sounding
    ACTIVE - a segment is collecting pitch samples
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from autocorr_pitch import frequency_to_note, note_to_vexflow
from duration_quantizer import DurationQuantizer
from note_assembler import Note, NoteAssembler
from rolling_window import median

logger = logging.getLogger(__name__)


class SegmentState(Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class Segment:
    """A note currently sounding."""
    start: float
    pitches: List[float] = field(default_factory=list)


class OnsetSegmenter:
    """
    Drives the segment lifecycle from per-frame analysis values.

    Args:
        quantizer: Converts segment durations to note values; receives IOIs.
        assembler: Builds and records the emitted notes.
        voiced_rms: RMS above which a pitched frame counts as voiced.
        release_rms: RMS below which a frame counts as silent for offsets.
        min_ioi: Minimum seconds between onsets.
        min_duration: Segments shorter than this are dropped.
        release_time: Seconds without pitch before a quiet frame ends the note.
    """

    def __init__(
        self,
        quantizer: DurationQuantizer,
        assembler: NoteAssembler,
        voiced_rms: float = 0.01,
        release_rms: float = 0.008,
        min_ioi: float = 0.12,
        min_duration: float = 0.08,
        release_time: float = 0.25,
    ) -> None:
        self.quantizer = quantizer
        self.assembler = assembler
        self.voiced_rms = voiced_rms
        self.release_rms = release_rms
        self.min_ioi = min_ioi
        self.min_duration = min_duration
        self.release_time = release_time

        self.segment: Optional[Segment] = None
        self.last_onset_time: Optional[float] = None
        self.last_voiced_time = 0.0

    @property
    def state(self) -> SegmentState:
        return SegmentState.ACTIVE if self.segment is not None else SegmentState.IDLE

    def process(
        self,
        pitch: Optional[float],
        rms: float,
        flux: float,
        threshold: float,
        now: float,
    ) -> Optional[Note]:
        """
        Advance the state machine by one frame.

        Returns:
            The note finalized during this frame, if any.
        """
        emitted: Optional[Note] = None

        if pitch is not None:
            self.last_voiced_time = now
            if self.segment is not None:
                self.segment.pitches.append(pitch)

        if self.is_onset(pitch, rms, flux, threshold, now):
            logger.debug("Onset at %.3fs (flux=%.4f, threshold=%.4f)", now, flux, threshold)
            if self.segment is not None:
                emitted = self.finalize(now)
            self.start(now)

        if (
            self.segment is not None
            and now - self.last_voiced_time > self.release_time
            and rms < self.release_rms
        ):
            logger.debug("Offset at %.3fs", now)
            emitted = self.finalize(now)

        return emitted

    def is_onset(
        self,
        pitch: Optional[float],
        rms: float,
        flux: float,
        threshold: float,
        now: float,
    ) -> bool:
        voiced = pitch is not None and rms > self.voiced_rms
        too_soon = self.last_onset_time is not None and (now - self.last_onset_time) < self.min_ioi
        return voiced and flux > threshold and not too_soon

    def start(self, now: float) -> None:
        self.segment = Segment(start=now)

    def finalize(self, end: float) -> Optional[Note]:
        """
        Close the active segment at `end` and emit its note if it qualifies.

        Short segments, segments without voiced frames and pitches outside the
        notatable range are dropped without touching tempo or lyrics.
        """
        segment = self.segment
        if segment is None:
            return None
        self.segment = None

        duration = end - segment.start
        if duration < self.min_duration:
            logger.debug("Dropped %.3fs segment (too short)", duration)
            return None
        if not segment.pitches:
            logger.debug("Dropped %.3fs segment (no voiced frames)", duration)
            return None

        frequency = median(segment.pitches)
        key = note_to_vexflow(frequency_to_note(frequency))
        if key is None:
            logger.debug("Dropped segment at %.1f Hz (no notatable key)", frequency)
            return None

        if self.last_onset_time is not None:
            ioi = segment.start - self.last_onset_time
            if ioi > self.min_ioi:
                self.quantizer.add_interval(ioi)
        self.last_onset_time = segment.start

        return self.assembler.assemble(
            key=key,
            duration=self.quantizer.quantize(duration),
            frequency=frequency,
            start=segment.start,
            end=end,
        )

    def clear(self) -> None:
        """Abandon the active segment without emitting it."""
        self.segment = None

    def reset(self) -> None:
        self.segment = None
        self.last_onset_time = None
        self.last_voiced_time = 0.0
