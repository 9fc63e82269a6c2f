"""
Chunk-to-frame buffering for streamed audio.

Network clients send audio in whatever chunk sizes their capture API
produces. FrameBuffer accumulates those chunks and returns fixed-size analysis
frames, each stamped with the stream time of its first sample, strictly in
arrival order.
"""

from typing import List, Optional, Tuple

import numpy as np


class FrameBuffer:
    """
    Accumulates incoming audio chunks and returns fixed-size frames.

    Parameters
    ----------
    frame_size : int
        Samples per analysis frame.
    hop_size : int
        Samples the read cursor advances between frames. Equal to
        ``frame_size`` for back-to-back frames, smaller for overlap.
    sample_rate : int
        Sample rate of the incoming audio, used for frame timestamps.
    """

    def __init__(self, frame_size: int = 2048, hop_size: Optional[int] = None, sample_rate: int = 44100) -> None:
        hop_size = frame_size if hop_size is None else hop_size
        if frame_size <= 0:
            raise ValueError(f"frame_size must be positive, got {frame_size}")
        if not 0 < hop_size <= frame_size:
            raise ValueError(f"hop_size must be in 1..{frame_size}, got {hop_size}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        self.frame_size = frame_size
        self.hop_size = hop_size
        self.sample_rate = sample_rate

        self._buffer: np.ndarray = np.array([], dtype=np.float32)
        # Sample index (within _buffer) where the next frame starts
        self._read_pos: int = 0
        # Samples dropped from the front of _buffer by compaction
        self._compacted_offset: int = 0

    def add_chunk(self, chunk: np.ndarray) -> List[Tuple[np.ndarray, float]]:
        """
        Append *chunk* and return every frame that is now complete.

        Returns
        -------
        list[tuple[np.ndarray, float]]
            Frame samples and start time in seconds, oldest first.
        """
        chunk = np.asarray(chunk, dtype=np.float32).ravel()
        self._buffer = np.concatenate([self._buffer, chunk])

        frames: List[Tuple[np.ndarray, float]] = []
        while len(self._buffer) - self._read_pos >= self.frame_size:
            start = self._compacted_offset + self._read_pos
            frame = self._buffer[self._read_pos:self._read_pos + self.frame_size].copy()
            self._read_pos += self.hop_size
            frames.append((frame, start / self.sample_rate))

        # Compact the consumed prefix so memory stays bounded
        if self._read_pos > self.frame_size * 4:
            self._compacted_offset += self._read_pos
            self._buffer = self._buffer[self._read_pos:]
            self._read_pos = 0

        return frames

    @property
    def pending_samples(self) -> int:
        return len(self._buffer) - self._read_pos

    @property
    def current_offset_s(self) -> float:
        """Stream time of the next frame start."""
        return (self._compacted_offset + self._read_pos) / self.sample_rate

    def reset(self) -> None:
        """Clear all internal state between sessions."""
        self._buffer = np.array([], dtype=np.float32)
        self._read_pos = 0
        self._compacted_offset = 0
