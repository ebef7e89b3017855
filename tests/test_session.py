import numpy as np
import pytest

from livemeter.engine import AnalysisEngine
from livemeter.session import SessionAggregate

SR = 48000
FFT = 4096


def _clip(tone):
    samples = tone(440.0, amp=0.2)
    samples[5] = 1.0
    return samples


def test_session_counts_clip_runs_and_tracks_peaks(make_frame, tone):
    engine = AnalysisEngine().use("clipping", "loudness", "true_peak")
    session = SessionAggregate()

    session.update(engine.process_frame(make_frame(samples=_clip(tone), index=0)))
    assert session.frames == 0

    session.start()
    for i in range(10):
        samples = _clip(tone) if i in (0, 1, 3) else tone(440.0, amp=0.2)
        session.update(engine.process_frame(make_frame(samples=samples, index=i)))
    session.stop()
    session.update(engine.process_frame(make_frame(samples=_clip(tone), index=10)))

    assert session.frames == 10
    assert session.total_clip_events == 2
    assert session.peak_dbfs == pytest.approx(0.0)
    assert session.true_peak_dbtp >= session.peak_dbfs
    assert session.duration_seconds == pytest.approx(9 * FFT / SR)
    assert -40.0 < session.average_lufs < -5.0


def test_session_opened_mid_clip_run_counts_it(make_frame, tone):
    engine = AnalysisEngine().use("clipping")
    session = SessionAggregate()
    engine.process_frame(make_frame(samples=_clip(tone), index=0))

    session.start()
    joined = engine.process_frame(make_frame(samples=_clip(tone), index=1))
    assert not joined.clipping.new_event
    session.update(joined)
    session.update(engine.process_frame(make_frame(samples=_clip(tone), index=2)))

    assert session.total_clip_events == 1


def test_session_counts_feedback_onsets(make_frame):
    engine = AnalysisEngine().use("feedback")
    session = SessionAggregate()
    session.start()
    ringing = np.full(FFT // 2, -100.0)
    ringing[85] = -10.0
    for i in range(30):
        session.update(engine.process_frame(make_frame(magnitude_db=ringing, index=i)))
    assert session.total_feedback_events == 1


def test_empty_session_summary(make_frame):
    session = SessionAggregate()
    session.start()
    engine = AnalysisEngine().use("loudness")
    for i in range(5):
        session.update(engine.process_frame(make_frame(index=i)))

    summary = session.to_dict()
    assert set(summary) == {
        "duration_seconds",
        "frames",
        "peak_dbfs",
        "true_peak_dbtp",
        "average_lufs",
        "total_clip_events",
        "total_feedback_events",
        "dominant_key",
        "dominant_bpm",
    }
    assert summary["average_lufs"] == float("-inf")
    assert summary["dominant_key"] is None
    assert summary["frames"] == 5


def test_start_clears_previous_session(make_frame, tone):
    engine = AnalysisEngine().use("clipping")
    session = SessionAggregate()
    session.start()
    session.update(engine.process_frame(make_frame(samples=_clip(tone))))
    assert session.total_clip_events == 1

    session.start()
    assert session.total_clip_events == 0
    assert session.start_time is None
    assert session.started
