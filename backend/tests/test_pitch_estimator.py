import sys
import os

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autocorr_pitch import (
    PitchEstimator,
    PitchReading,
    frequency_to_midi,
    frequency_to_note,
    note_to_doremi,
    note_to_vexflow,
    rms,
)
from synth import FRAME_SIZE, SAMPLE_RATE, generate_sine


def test_frequency_to_note_reference_points():
    assert frequency_to_midi(440.0) == 69
    assert frequency_to_note(440.0) == "A4"
    assert frequency_to_note(261.63) == "C4"
    assert frequency_to_note(523.25) == "C5"
    assert frequency_to_note(277.18) == "C#4"


def test_frequency_to_note_handles_missing_pitch():
    assert frequency_to_note(None) is None
    assert frequency_to_note(0.0) is None
    assert frequency_to_note(-1) is None


def test_note_to_vexflow():
    assert note_to_vexflow("A4") == "a/4"
    assert note_to_vexflow("C#5") == "c#/5"
    # Only single-digit octaves are notatable
    assert note_to_vexflow("C10") is None
    assert note_to_vexflow("C-1") is None
    assert note_to_vexflow(None) is None


def test_note_to_doremi():
    assert note_to_doremi("C4") == "도"
    assert note_to_doremi("A4") == "라"
    assert note_to_doremi("F#3") == "파#"
    assert note_to_doremi("--") is None


def test_pitch_reading_from_frequency():
    reading = PitchReading.from_frequency(440.0)
    assert reading.note == "A4"
    assert reading.octave == 4
    assert reading.doremi == "라"


def test_rms():
    assert rms(np.zeros(128)) == 0.0
    assert rms(np.full(64, 0.5)) == pytest.approx(0.5)
    assert rms(np.array([])) == 0.0


def test_silence_is_unvoiced():
    estimator = PitchEstimator()
    assert estimator.estimate(np.zeros(FRAME_SIZE), SAMPLE_RATE) is None


def test_quiet_tone_below_gate_is_unvoiced():
    estimator = PitchEstimator()
    # RMS of a 0.01 amplitude sine is ~0.007
    samples = generate_sine(440.0, FRAME_SIZE, amplitude=0.01)
    assert estimator.estimate(samples, SAMPLE_RATE) is None


def test_constant_signal_is_unvoiced():
    # No lag ever rises above lag 0, so no peak is found
    estimator = PitchEstimator()
    assert estimator.estimate(np.full(FRAME_SIZE, 0.5), SAMPLE_RATE) is None


def test_too_short_frame_is_unvoiced():
    estimator = PitchEstimator()
    assert estimator.estimate(np.array([0.5, -0.5, 0.5]), SAMPLE_RATE) is None


@pytest.mark.parametrize("freq,expected", [
    (261.63, "C4"),
    (440.0, "A4"),
    (523.25, "C5"),
])
def test_sine_wave_pitch(freq, expected):
    estimator = PitchEstimator()
    samples = generate_sine(freq, FRAME_SIZE, amplitude=0.5)

    pitch = estimator.estimate(samples, SAMPLE_RATE)

    assert pitch is not None
    assert abs(pitch - freq) < freq * 0.01
    assert frequency_to_note(pitch) == expected


def test_estimate_is_deterministic():
    estimator = PitchEstimator()
    samples = generate_sine(330.0, FRAME_SIZE, amplitude=0.3)
    assert estimator.estimate(samples, SAMPLE_RATE) == estimator.estimate(samples.copy(), SAMPLE_RATE)


def test_refinement_coefficient_is_tunable():
    samples = generate_sine(440.0, FRAME_SIZE, amplitude=0.5)
    unrefined = PitchEstimator(refine_coefficient=0.0).estimate(samples, SAMPLE_RATE)
    refined = PitchEstimator().estimate(samples, SAMPLE_RATE)

    # Without refinement the lag is an integer number of samples
    assert SAMPLE_RATE / unrefined == pytest.approx(round(SAMPLE_RATE / unrefined))
    assert abs(refined - 440.0) <= abs(unrefined - 440.0)
