import logging
import os
from typing import Any, Dict, Optional

import soundfile as sf
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from livemeter.analysis import analyze_buffer, analyze_stream
from livemeter.catalog import ALL_MODULES, PROCESSING_ORDER
from livemeter.config import EngineConfig
from livemeter.errors import ConfigurationError, FrameContractError
from livemeter.models import AnalyzeResponse, HealthResponse, ModulesResponse

logger = logging.getLogger("livemeter")

app = FastAPI(title="Livemeter Analysis Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("LIVEMETER_CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
async def health():
    """Static payload for uptime checks; touches no DSP code."""

    return {"status": "ok"}


@app.get("/modules", response_model=ModulesResponse)
async def modules():
    """The analysis catalog and the default engine settings."""

    defaults = EngineConfig().model_dump(exclude={"active_modules"})
    return {
        "modules": sorted(m.value for m in ALL_MODULES),
        "processing_order": [m.value for m in PROCESSING_ORDER],
        "defaults": defaults,
    }


def _bad_request(error: str, exc: Exception) -> HTTPException:
    detail: Dict[str, Any] = {"error": error, "message": str(exc)}
    return HTTPException(status_code=400, detail=detail)


@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    file: UploadFile = File(...),
    fft_size: Optional[int] = Form(None),
    window_type: Optional[str] = Form(None),
    use_a_weighting: Optional[bool] = Form(None),
    modules: Optional[str] = Form(None),
):
    """Decode an uploaded recording and run both offline analyses over it.

    ``modules`` is a comma-separated subset of the catalog; omitted means
    all modules. Unset fields fall back to LIVEMETER_* environment
    defaults.
    """

    try:
        audio, sr = sf.read(file.file, dtype="float64", always_2d=False)
    except Exception as exc:
        logger.warning("[API] Failed to decode upload %s: %s", file.filename, exc)
        raise _bad_request("AUDIO_DECODE_FAILED", exc) from exc
    finally:
        file.file.close()

    overrides: Dict[str, Any] = {}
    if fft_size is not None:
        overrides["fft_size"] = fft_size
    if window_type is not None:
        overrides["window_type"] = window_type.strip().lower()
    if use_a_weighting is not None:
        overrides["use_a_weighting"] = use_a_weighting
    selected = [m.strip() for m in modules.split(",") if m.strip()] if modules else None

    try:
        config = EngineConfig.from_env(sample_rate=int(sr), **overrides)
        buffer_result = analyze_buffer(audio, int(sr))
        stream_result = analyze_stream(audio, int(sr), config=config, modules=selected)
    except ConfigurationError as exc:
        raise _bad_request("INVALID_CONFIGURATION", exc) from exc
    except FrameContractError as exc:
        raise _bad_request("FRAME_CONTRACT_VIOLATION", exc) from exc
    except ValueError as exc:
        raise _bad_request("INVALID_AUDIO", exc) from exc

    logger.info("[API] Analysed %s: %d frames @ %d Hz", file.filename, stream_result.frames, sr)
    return {
        "sample_rate": int(sr),
        "duration": buffer_result.duration,
        "channels": 1 if audio.ndim == 1 else int(audio.shape[1]),
        "buffer": buffer_result.as_dict(json_safe=True),
        "stream": stream_result.as_dict(json_safe=True),
    }
