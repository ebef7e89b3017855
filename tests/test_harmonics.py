import numpy as np
import pytest

from livemeter.analyzers.harmonics import measure_inharmonicity, measure_thd

SR = 48000
FFT = 4096
BIN_HZ = SR / FFT
F0 = 1125.0  # exactly bin 96


def _spectrum(peaks):
    db = np.full(FFT // 2, -100.0)
    for bin_index, level in peaks.items():
        db[bin_index] = level
    return db


def test_thd_from_known_harmonic_levels():
    peaks = {96: -6.0}
    peaks.update({96 * n: -46.0 for n in range(2, 9)})
    result = measure_thd(_spectrum(peaks), SR, FFT, F0)

    # seven harmonics each 40 dB under the fundamental
    assert result.applicable
    assert result.thd == pytest.approx(100.0 * np.sqrt(7 * 1e-4), rel=1e-3)
    assert [h.harmonic for h in result.harmonics] == list(range(2, 9))
    assert result.thd_string.endswith("%")


def test_thd_stops_at_nyquist():
    result = measure_thd(_spectrum({960: -6.0}), SR, FFT, 11250.0)
    assert [h.harmonic for h in result.harmonics] == [2]


@pytest.mark.parametrize("fundamental", [None, 0.0, 10.0, float("nan")])
def test_thd_without_fundamental_is_not_applicable(fundamental):
    result = measure_thd(_spectrum({96: -6.0}), SR, FFT, fundamental)
    assert not result.applicable
    assert result.thd == 0.0
    assert result.harmonics == ()


def test_harmonic_partials_are_very_clean():
    peaks = {96 * n: -10.0 for n in range(1, 11)}
    result = measure_inharmonicity(_spectrum(peaks), SR, FFT, F0)
    assert len(result.harmonics_found) == 9
    assert result.inharmonicity == pytest.approx(0.0, abs=1e-9)
    assert result.inharmonicity_score == "Very Clean"


def test_stretched_partials():
    peaks = {96: -10.0}
    peaks.update({int(round(96 * n * 1.03)): -10.0 for n in range(2, 11)})
    result = measure_inharmonicity(_spectrum(peaks), SR, FFT, F0)
    assert 2.0 < result.inharmonicity < 5.0
    assert result.inharmonicity_score == "Stretched"
    assert all(h.deviation > 0 for h in result.harmonics_found)


def test_partials_below_floor_are_ignored():
    peaks = {96 * n: -70.0 for n in range(2, 11)}
    result = measure_inharmonicity(_spectrum(peaks), SR, FFT, F0)
    assert result.harmonics_found == ()
    assert result.inharmonicity == 0.0


def test_inharmonicity_without_fundamental():
    result = measure_inharmonicity(_spectrum({}), SR, FFT, None)
    assert result.inharmonicity_score == "N/A"
