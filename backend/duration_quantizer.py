"""
Snap note durations to symbolic note values relative to a tracked tempo.

The quarter-note length is the median of recent inter-onset intervals (IOIs),
so the grid follows the singer instead of a fixed metronome.
"""

from typing import List, Tuple

from rolling_window import RollingWindow, median

DEFAULT_QUARTER_SEC = 0.5  # ~120 BPM until an IOI has been observed

# (symbol, multiple of a quarter note), shortest first; ties go to the earlier entry
NOTE_VALUES: Tuple[Tuple[str, float], ...] = (
    ("32", 1 / 8),
    ("16", 1 / 4),
    ("8", 1 / 2),
    ("q", 1.0),
    ("h", 2.0),
    ("w", 4.0),
)

DURATION_SYMBOLS = tuple(symbol for symbol, _ in NOTE_VALUES)


class DurationQuantizer:
    """
    Maps elapsed seconds to the nearest of 32, 16, 8, q, h, w.

    Args:
        ioi_window: How many recent inter-onset intervals the tempo follows.
        default_quarter_sec: Quarter-note length used while no IOI is known.
    """

    def __init__(self, ioi_window: int = 16, default_quarter_sec: float = DEFAULT_QUARTER_SEC) -> None:
        self.default_quarter_sec = default_quarter_sec
        self._ioi_history: RollingWindow[float] = RollingWindow(ioi_window)

    def add_interval(self, ioi_sec: float) -> None:
        self._ioi_history.push(ioi_sec)

    @property
    def ioi_history(self) -> List[float]:
        return self._ioi_history.values()

    def quarter_sec(self) -> float:
        """Current quarter-note length in seconds."""
        if not self._ioi_history:
            return self.default_quarter_sec
        return median(self._ioi_history.values())

    def tempo_bpm(self) -> float:
        return 60.0 / self.quarter_sec()

    def quantize(self, duration_sec: float) -> str:
        """Return the note value whose length is closest to duration_sec."""
        quarter = self.quarter_sec()
        best_symbol, best_multiple = NOTE_VALUES[0]
        min_error = abs(duration_sec - quarter * best_multiple)
        for symbol, multiple in NOTE_VALUES[1:]:
            error = abs(duration_sec - quarter * multiple)
            if error < min_error:
                min_error = error
                best_symbol = symbol
        return best_symbol

    def reset(self) -> None:
        self._ioi_history.clear()
