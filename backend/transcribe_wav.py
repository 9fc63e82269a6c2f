#!/usr/bin/env python3
"""
Offline melody transcription of a WAV file.

Feeds the file through the same frame-by-frame pipeline used for live audio
and prints one JSON object per detected note.

Usage:
    python3 transcribe_wav.py song.wav --lyrics "twin kle twin kle" --time-signature 3/4
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

import numpy as np
from scipy.io import wavfile

from app.core.config import configure_logging
from frame_buffer import FrameBuffer
from note_assembler import Note, TimeSignature
from transcriber import MelodyTranscriber, TranscriberConfig

logger = logging.getLogger(__name__)


def to_mono_float(audio: np.ndarray) -> np.ndarray:
    """Down-mix to mono and scale integer PCM into [-1, 1]."""
    if audio.ndim > 1:
        audio = audio.mean(axis=1)
    if np.issubdtype(audio.dtype, np.integer):
        info = np.iinfo(audio.dtype)
        if info.min == 0:
            # unsigned 8-bit PCM is centred on 128
            midpoint = (info.max + 1) / 2.0
            return (audio.astype(np.float64) - midpoint) / midpoint
        return audio.astype(np.float64) / float(-info.min)
    return audio.astype(np.float64)


def transcribe_file(
    path: str,
    frame_size: int = 2048,
    hop_size: Optional[int] = None,
    lyrics: Optional[List[str]] = None,
) -> List[Note]:
    sample_rate, audio = wavfile.read(path)
    samples = to_mono_float(np.asarray(audio))
    logger.info("Loaded %s: %.2fs @ %d Hz", path, len(samples) / sample_rate, sample_rate)

    transcriber = MelodyTranscriber(TranscriberConfig(sample_rate=sample_rate, fft_size=frame_size))
    if lyrics:
        transcriber.load_lyrics(lyrics)
    buffer = FrameBuffer(frame_size=frame_size, hop_size=hop_size, sample_rate=sample_rate)

    notes: List[Note] = []
    for frame, timestamp in buffer.add_chunk(samples):
        note = transcriber.process_samples(frame, timestamp)
        if note is not None:
            notes.append(note)
    return notes


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Transcribe a monophonic melody from a WAV file")
    parser.add_argument("wav", help="Path to WAV file")
    parser.add_argument("--frame-size", type=int, default=2048, help="Samples per analysis frame")
    parser.add_argument("--hop-size", type=int, default=None, help="Samples between frames (default: frame size)")
    parser.add_argument("--lyrics", default="", help="Whitespace-separated lyric tokens")
    parser.add_argument("--time-signature", default="4/4", help="Time signature for the output header, e.g. 3/4")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    num, _, den = args.time_signature.partition("/")
    lyric_tokens = args.lyrics.split() or None
    try:
        notes = transcribe_file(args.wav, args.frame_size, args.hop_size, lyric_tokens)
    except (OSError, ValueError) as e:
        logger.error("Cannot transcribe %s: %s", args.wav, e)
        return 1

    print(json.dumps({"time_signature": str(TimeSignature.parse(num, den)), "notes": len(notes)}))
    for note in notes:
        print(json.dumps(note.to_dict(), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
