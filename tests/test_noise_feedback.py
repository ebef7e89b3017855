import numpy as np
import pytest

from livemeter.analyzers.feedback import FeedbackDetector
from livemeter.analyzers.noise import SnrEstimator

SR = 48000
FFT = 4096
BIN_HZ = SR / FFT


def _flat(db):
    return np.full(FFT // 2, db)


def test_snr_calibrates_for_thirty_frames():
    estimator = SnrEstimator()
    for _ in range(30):
        result = estimator.process(_flat(-80.0))
        assert result.calibrating
        assert result.snr is None
        assert result.snr_string == "Calibrating..."

    loud = estimator.process(_flat(-60.0))
    assert not loud.calibrating
    assert loud.snr == pytest.approx(20.0)
    assert loud.noise_floor == pytest.approx(-80.0)
    assert loud.signal_level == pytest.approx(-60.0)
    assert loud.snr_string == "20.0 dB"


def test_snr_is_never_negative():
    estimator = SnrEstimator()
    for _ in range(30):
        estimator.process(_flat(-60.0))
    assert estimator.process(_flat(-90.0)).snr == 0.0


def _ringing(bin_index, level=-10.0):
    db = _flat(-100.0)
    db[bin_index] = level
    return db


def test_sustained_peak_raises_feedback_risk_once():
    detector = FeedbackDetector(SR, FFT)
    results = [detector.process(_ringing(85)) for _ in range(40)]

    assert not any(r.is_feedback_risk for r in results[:24])
    assert results[24].is_feedback_risk
    assert [i for i, r in enumerate(results) if r.new_event] == [24]

    notch = results[24].notch_suggestion
    assert notch is not None
    assert notch.frequency == pytest.approx(85 * BIN_HZ)
    assert notch.bandwidth == "1/3 octave"
    assert notch.suggested_cut == "-6 to -12 dB"
    assert results[24].ringing_frequency == pytest.approx(85 * BIN_HZ)


def test_feedback_hold_outlasts_the_ringing():
    detector = FeedbackDetector(SR, FFT)
    for _ in range(25):
        detector.process(_ringing(85))
    after = [detector.process(_flat(-100.0)) for _ in range(60)]
    assert after[0].is_feedback_risk
    assert after[10].is_feedback_risk
    assert not after[-1].is_feedback_risk
    assert not any(r.new_event for r in after)


def test_low_or_quiet_peaks_are_ignored():
    low = FeedbackDetector(SR, FFT)
    # ~199 Hz is above the 100 Hz search floor but below the ringing range
    assert not any(low.process(_ringing(17)).is_feedback_risk for _ in range(40))

    quiet = FeedbackDetector(SR, FFT)
    assert not any(quiet.process(_ringing(85, level=-40.0)).is_feedback_risk for _ in range(40))


def test_dominant_peak_reported():
    detector = FeedbackDetector(SR, FFT)
    result = detector.process(_ringing(200, level=-15.0))
    assert result.dominant_frequency == pytest.approx(200 * BIN_HZ)
    assert result.dominant_db == -15.0
