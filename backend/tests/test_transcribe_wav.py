import sys
import os
import json

import numpy as np
import pytest
from scipy.io import wavfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from transcribe_wav import main, to_mono_float, transcribe_file
from synth import SAMPLE_RATE, render_frames


@pytest.fixture
def melody_wav(tmp_path):
    signal = render_frames([(None, 10), (440.0, 11), (None, 12), (523.25, 11), (None, 12)])
    path = tmp_path / "melody.wav"
    wavfile.write(str(path), SAMPLE_RATE, (signal * 32767).astype(np.int16))
    return path


def test_to_mono_float_scales_int16():
    audio = np.array([0, 16384, -32768], dtype=np.int16)
    np.testing.assert_allclose(to_mono_float(audio), [0.0, 0.5, -1.0])


def test_to_mono_float_centres_uint8():
    audio = np.array([128, 255, 0], dtype=np.uint8)
    np.testing.assert_allclose(to_mono_float(audio), [0.0, 127 / 128, -1.0])


def test_to_mono_float_downmixes_channels():
    audio = np.array([[0.5, -0.5], [1.0, 0.0]], dtype=np.float32)
    np.testing.assert_allclose(to_mono_float(audio), [0.0, 0.5])


def test_transcribe_file(melody_wav):
    notes = transcribe_file(str(melody_wav), lyrics=["twin", "kle"])
    assert [(n.key, n.lyric) for n in notes] == [("a/4", "twin"), ("c/5", "kle")]


def test_main_prints_json_lines(melody_wav, capsys):
    assert main([str(melody_wav), "--time-signature", "3/4", "--lyrics", "twin kle"]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    header = json.loads(lines[0])
    assert header == {"time_signature": "3/4", "notes": 2}
    notes = [json.loads(line) for line in lines[1:]]
    assert [n["key"] for n in notes] == ["a/4", "c/5"]
    assert notes[0]["lyric"] == "twin"


def test_main_reports_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.wav")]) == 1
