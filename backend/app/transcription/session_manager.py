"""
Per-connection transcription sessions.

Each session pairs one MelodyTranscriber with the FrameBuffer feeding it, so
chunks from a client are analysed strictly in the order they arrived.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from frame_buffer import FrameBuffer
from note_assembler import CollectingRenderer, Note, TimeSignature
from transcriber import MelodyTranscriber, TranscriberConfig

from app.core.config import Settings

logger = logging.getLogger(__name__)


class TranscriptionSession:
    """State for one streaming client."""

    def __init__(self, session_id: str, settings: Optional[Settings] = None):
        self.session_id = session_id
        self.settings = settings or Settings()
        self.renderer = CollectingRenderer()
        self._sample_rate = self.settings.sample_rate
        self.transcriber = self._build_transcriber(self._sample_rate)
        self.frames = self._build_buffer(self._sample_rate)
        self.frames_processed = 0

    def _build_transcriber(self, sample_rate: int) -> MelodyTranscriber:
        config = TranscriberConfig(sample_rate=sample_rate, fft_size=self.settings.frame_size)
        return MelodyTranscriber(config=config, renderer=self.renderer)

    def _build_buffer(self, sample_rate: int) -> FrameBuffer:
        return FrameBuffer(
            frame_size=self.settings.frame_size,
            hop_size=self.settings.hop_size,
            sample_rate=sample_rate,
        )

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def process_chunk(self, samples: np.ndarray, sample_rate: Optional[int] = None) -> List[Note]:
        """
        Feed a chunk of float samples; return the notes it completed.

        A different sample rate than the session's restarts the stream,
        since timestamps and tempo are meaningless across the change.
        """
        if sample_rate and sample_rate != self._sample_rate:
            logger.info(
                "Session %s: sample rate %d -> %d, restarting stream",
                self.session_id, self._sample_rate, sample_rate,
            )
            time_signature = self.renderer.time_signature
            lyrics = self.transcriber.assembler.lyrics
            self._sample_rate = sample_rate
            self.transcriber = self._build_transcriber(sample_rate)

            assembler = self.transcriber.assembler
            assembler.lyrics.load(lyrics.tokens)
            assembler.lyrics.index = lyrics.index
            assembler.time_signature = time_signature
            # Redraw so the renderer matches the new, empty note history
            assembler.clear()
            self.frames = self._build_buffer(sample_rate)

        notes: List[Note] = []
        for frame, timestamp in self.frames.add_chunk(samples):
            self.frames_processed += 1
            note = self.transcriber.process_samples(frame, timestamp)
            if note is not None:
                notes.append(note)
        return notes

    def load_lyrics(self, tokens: Sequence[str]) -> int:
        self.transcriber.load_lyrics(tokens)
        return len(tokens)

    def set_time_signature(self, numerator: Any, denominator: Any) -> TimeSignature:
        return self.transcriber.set_time_signature(numerator, denominator)

    def clear_notes(self) -> None:
        self.transcriber.clear()

    def stop(self) -> None:
        self.transcriber.stop()
        self.frames.reset()
        self.frames_processed = 0

    def snapshot(self) -> Dict[str, Any]:
        """Visible notes and layout, as sent to the score renderer."""
        return {
            "notes": [note.to_dict() for note in self.renderer.notes],
            "time_signature": str(self.renderer.time_signature),
        }


# Global session store (one process, one event loop)
active_sessions: Dict[str, TranscriptionSession] = {}


def get_session(session_id: str) -> Optional[TranscriptionSession]:
    """Get existing transcription session by ID."""
    return active_sessions.get(session_id)


def create_session(session_id: str, settings: Optional[Settings] = None) -> TranscriptionSession:
    """Create a new transcription session."""
    session = TranscriptionSession(session_id, settings)
    active_sessions[session_id] = session
    logger.info("Session %s started", session_id)
    return session


def end_session(session_id: str) -> None:
    """End and remove a transcription session."""
    if session_id in active_sessions:
        del active_sessions[session_id]
        logger.info("Session %s ended", session_id)
