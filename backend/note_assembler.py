"""
Turn finalized note segments into Note records for a score renderer.

The assembler owns the lyric cursor and the bounded history of recent notes.
Each new note (and each clear) hands the whole visible history to the
renderer, which redraws the stave from scratch.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from rolling_window import RollingWindow

logger = logging.getLogger(__name__)

VALID_DENOMINATORS = (1, 2, 4, 8, 16, 32)


@dataclass(frozen=True)
class Note:
    """A transcribed note, ready for a VexFlow-style renderer."""
    key: str          # e.g. "c#/4"
    duration: str     # one of "32", "16", "8", "q", "h", "w"
    lyric: str = ""
    frequency: float = 0.0
    start: float = 0.0
    end: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TimeSignature:
    """Time signature used for stave layout only."""
    numerator: int = 4
    denominator: int = 4

    @classmethod
    def parse(cls, numerator: Any, denominator: Any) -> "TimeSignature":
        """
        Build a time signature from loosely typed input.

        Numerators outside 1..16 and denominators outside 1, 2, 4, 8, 16, 32
        (or anything non-numeric) fall back to 4.
        """
        num = _parse_int(numerator)
        den = _parse_int(denominator)
        valid_num = num if num is not None and 1 <= num <= 16 else 4
        valid_den = den if den in VALID_DENOMINATORS else 4
        return cls(valid_num, valid_den)

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None


class NoteRenderer(Protocol):
    def render(self, notes: Sequence[Note], time_signature: TimeSignature) -> None:
        ...


class CollectingRenderer:
    """Renderer that keeps the last drawn sequence, for services and tests."""

    def __init__(self) -> None:
        self.notes: List[Note] = []
        self.time_signature = TimeSignature()
        self.render_count = 0

    def render(self, notes: Sequence[Note], time_signature: TimeSignature) -> None:
        self.notes = list(notes)
        self.time_signature = time_signature
        self.render_count += 1


class LyricCursor:
    """Lyric tokens consumed one per emitted note."""

    def __init__(self, tokens: Optional[Sequence[str]] = None) -> None:
        self.tokens: List[str] = list(tokens or [])
        self.index = 0

    def load(self, tokens: Sequence[str]) -> None:
        self.tokens = list(tokens)
        self.index = 0

    def next(self) -> str:
        """Next token, or "" once the tokens are exhausted."""
        if self.index < len(self.tokens):
            token = self.tokens[self.index]
            self.index += 1
            return token
        return ""

    @property
    def remaining(self) -> int:
        return len(self.tokens) - self.index

    def reset(self) -> None:
        self.tokens = []
        self.index = 0


class NoteAssembler:
    """
    Builds notes, keeps the last max_notes of them and drives the renderer.

    Args:
        max_notes: Size of the visible note history.
        renderer: Optional collaborator redrawn on every change.
    """

    def __init__(self, max_notes: int = 32, renderer: Optional[NoteRenderer] = None) -> None:
        self.renderer = renderer
        self.lyrics = LyricCursor()
        self.time_signature = TimeSignature()
        self._history: RollingWindow[Note] = RollingWindow(max_notes)

    def assemble(
        self,
        key: str,
        duration: str,
        frequency: float,
        start: float,
        end: float,
    ) -> Note:
        """Create a note with the next lyric token, record it and re-render."""
        note = Note(
            key=key,
            duration=duration,
            lyric=self.lyrics.next(),
            frequency=frequency,
            start=start,
            end=end,
        )
        self._history.push(note)
        logger.info("Note %s (%s) lyric=%r at %.3fs", note.key, note.duration, note.lyric, start)
        self._render()
        return note

    @property
    def notes(self) -> List[Note]:
        return self._history.values()

    def set_time_signature(self, time_signature: TimeSignature) -> None:
        self.time_signature = time_signature
        self._render()

    def clear(self) -> None:
        """Drop the visible notes; lyric position is kept."""
        self._history.clear()
        self._render()

    def reset(self) -> None:
        self._history.clear()
        self.lyrics.reset()
        self._render()

    def _render(self) -> None:
        if self.renderer is not None:
            self.renderer.render(self._history.values(), self.time_signature)
