import numpy as np
import pytest

from livemeter.analyzers.levels import (
    ClippingDetector,
    DynamicsMeter,
    TruePeakMeter,
    measure_dc_offset,
    measure_phase,
    measure_zcr,
)

SR = 48000
FFT = 4096


def _clip_frame(tone):
    samples = tone(440.0, amp=0.2)
    samples[100] = 1.0
    return samples


def test_full_scale_sample_counts_one_event_across_hold(tone):
    detector = ClippingDetector()
    first = detector.process(_clip_frame(tone))
    assert first.is_clipping
    assert first.total_clip_events == 1
    assert first.clipped_samples == 1

    quiet = tone(440.0, amp=0.2)
    for i in range(60):
        result = detector.process(quiet)
        assert result.total_clip_events == 1
        assert not result.is_clipping
        assert result.clip_led_active == (i < 59)


def test_consecutive_clipping_frames_are_one_event(tone):
    detector = ClippingDetector()
    totals = [detector.process(_clip_frame(tone)).total_clip_events for _ in range(3)]
    assert totals == [1, 1, 1]

    detector.process(tone(440.0, amp=0.2))
    again = detector.process(_clip_frame(tone))
    assert again.new_event
    assert again.total_clip_events == 2


def test_clipping_all_time_peak_and_ratio(tone):
    detector = ClippingDetector()
    detector.process(tone(440.0, amp=0.5))
    result = detector.process(tone(440.0, amp=0.25))
    assert result.all_time_peak == pytest.approx(20 * np.log10(0.5), abs=0.05)
    assert result.clip_ratio == 0.0
    assert not result.clip_led_active


def test_true_peak_holds_maximum(tone):
    meter = TruePeakMeter()
    loud = meter.process(tone(997.0, amp=0.5))
    assert loud.true_peak == pytest.approx(-6.02, abs=0.1)
    assert not loud.is_over

    hot = meter.process(tone(997.0, amp=0.95))
    assert hot.is_over

    quiet = meter.process(tone(997.0, amp=0.1))
    assert quiet.true_peak < hot.true_peak
    assert quiet.true_peak_hold == hot.true_peak
    assert quiet.is_over


def test_true_peak_interpolates_between_samples():
    meter = TruePeakMeter()
    result = meter.process(np.array([0.0, 0.8, 0.8, 0.0]))
    assert result.true_peak == pytest.approx(20 * np.log10(0.8))
    assert meter.process(np.zeros(8)).true_peak == float("-inf")


@pytest.mark.parametrize("position", [0, FFT // 2, FFT - 1])
def test_true_peak_never_below_sample_peak(position):
    samples = np.zeros(FFT)
    samples[position] = -1.0
    true_peak = TruePeakMeter().process(samples).true_peak
    sample_peak = ClippingDetector().process(samples).peak_db
    assert true_peak == pytest.approx(0.0)
    assert true_peak >= sample_peak


def test_true_peak_of_single_sample():
    assert TruePeakMeter().process(np.array([0.5])).true_peak == pytest.approx(20 * np.log10(0.5))


def test_dynamics_of_sine(tone):
    meter = DynamicsMeter()
    for _ in range(20):
        result = meter.process(tone(440.0, amp=0.5))
    assert result.crest_factor == pytest.approx(3.01, abs=0.05)
    assert result.dynamic_range == pytest.approx(3.01, abs=0.05)
    assert result.compression_amount == pytest.approx(1 - 3.01 / 20, abs=0.01)


def test_dynamics_of_silence():
    meter = DynamicsMeter()
    for _ in range(20):
        result = meter.process(np.zeros(FFT))
    assert result.rms_db == float("-inf")
    assert result.crest_factor == 0.0
    assert result.dynamic_range == 0.0
    assert result.compression_amount == 1.0


@pytest.mark.parametrize(
    "offset, severity",
    [(0.0, "ok"), (0.004, "ok"), (0.01, "warning"), (0.03, "critical"), (-0.03, "critical")],
)
def test_dc_offset_severity(offset, severity):
    result = measure_dc_offset(np.full(FFT, offset))
    assert result.severity == severity
    assert result.has_issue == (severity != "ok")
    assert result.dc_offset == pytest.approx(offset)


def test_zcr_classification(tone, rng):
    tonal = measure_zcr(tone(440.0), SR)
    assert tonal.zcr == pytest.approx(440.0, abs=15.0)
    assert tonal.type == "tonal"

    noisy = measure_zcr(rng.normal(size=FFT), SR)
    assert noisy.type == "noisy"


def test_phase_correlation(tone, rng):
    left = tone(440.0)

    mono = measure_phase(left)
    assert (mono.correlation, mono.phase_string, mono.mono_compatible) == (1.0, "Mono", True)

    same = measure_phase(left, left.copy())
    assert same.correlation == pytest.approx(1.0)
    assert same.phase_string == "Mono-ish"
    assert same.width == pytest.approx(0.0, abs=1e-9)

    inverted = measure_phase(left, -left)
    assert inverted.correlation == pytest.approx(-1.0)
    assert not inverted.mono_compatible
    assert inverted.phase_string == "Out-of-Phase!"
    assert inverted.width == pytest.approx(2.0)

    wide = measure_phase(rng.normal(size=FFT), rng.normal(size=FFT))
    assert abs(wide.correlation) < 0.1
    assert wide.mono_compatible

    silent = measure_phase(np.zeros(FFT), np.zeros(FFT))
    assert silent.correlation == 0.0
