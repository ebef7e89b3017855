import io

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from livemeter.main import app

SR = 48000


@pytest.fixture
def client():
    return TestClient(app)


def _wav(samples, sr=SR):
    buf = io.BytesIO()
    sf.write(buf, samples, sr, format="WAV", subtype="PCM_16")
    buf.seek(0)
    return buf


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_modules_catalog(client):
    body = client.get("/modules").json()
    assert len(body["modules"]) == 19
    assert body["processing_order"][0] == "clipping"
    assert body["processing_order"].index("pitch") < body["processing_order"].index("thd")
    assert body["defaults"]["fft_size"] == 4096
    assert body["defaults"]["window_type"] == "hann"


def test_analyze_upload(client, tone):
    samples = tone(440.0, n=SR, amp=0.1)
    response = client.post(
        "/analyze",
        files={"file": ("tone.wav", _wav(samples), "audio/wav")},
        data={"fft_size": "2048", "modules": "loudness, pitch"},
    )
    assert response.status_code == 200
    body = response.json()

    assert body["sample_rate"] == SR
    assert body["channels"] == 1
    assert body["duration"] == pytest.approx(1.0)
    assert body["stream"]["frames"] == SR // 2048

    last = body["stream"]["last_result"]
    assert last["fft_size"] == 2048
    assert set(last) - {"frame_index", "timestamp", "sample_rate", "fft_size", "processing_ms"} == {
        "loudness",
        "pitch",
    }
    assert last["pitch"]["frequency"] == pytest.approx(440.0, rel=0.005)
    assert last["pitch"]["note"]["name"] == "A4"
    assert body["buffer"]["integrated_lufs"] < -20.0


def test_analyze_stereo_upload(client, tone):
    left = tone(440.0, n=SR // 2, amp=0.1)
    response = client.post(
        "/analyze",
        files={"file": ("stereo.wav", _wav(np.stack([left, left], axis=1)), "audio/wav")},
        data={"modules": "phase"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["channels"] == 2
    assert body["stream"]["last_result"]["phase"]["mono_compatible"]


def test_silent_upload_reports_null_loudness(client):
    response = client.post(
        "/analyze",
        files={"file": ("silence.wav", _wav(np.zeros(SR)), "audio/wav")},
        data={"modules": "loudness"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["buffer"]["integrated_lufs"] is None
    assert body["stream"]["last_result"]["loudness"]["momentary"] is None
    assert body["stream"]["summary"]["average_lufs"] is None


@pytest.mark.parametrize(
    "data, error",
    [
        ({"fft_size": "1000"}, "INVALID_CONFIGURATION"),
        ({"window_type": "triangle"}, "INVALID_CONFIGURATION"),
        ({"modules": "loudness,bogus"}, "INVALID_CONFIGURATION"),
    ],
)
def test_analyze_rejects_bad_settings(client, tone, data, error):
    response = client.post(
        "/analyze",
        files={"file": ("tone.wav", _wav(tone(440.0, n=SR // 2)), "audio/wav")},
        data=data,
    )
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == error


def test_analyze_rejects_undecodable_upload(client):
    response = client.post(
        "/analyze",
        files={"file": ("notes.txt", io.BytesIO(b"definitely not audio"), "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "AUDIO_DECODE_FAILED"
