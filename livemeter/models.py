"""Pydantic response models for the HTTP surface."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str


class ModulesResponse(BaseModel):
    modules: List[str]
    processing_order: List[str]
    defaults: Dict[str, Any]


class EventModel(BaseModel):
    kind: str
    frame_index: int
    timestamp: float
    payload: Dict[str, Any]


class StreamModel(BaseModel):
    frames: int
    summary: Dict[str, Any]
    last_result: Optional[Dict[str, Any]] = None
    events: List[EventModel]


class AnalyzeResponse(BaseModel):
    """Non-finite readings (e.g. -inf LUFS on silence) are reported as null."""

    sample_rate: int
    duration: float
    channels: int
    buffer: Dict[str, Any]
    stream: StreamModel
