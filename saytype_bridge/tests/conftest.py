"""Shared fixtures for the SayType bridge tests."""

import base64
import io
from typing import List, Optional

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from saytype_bridge.api.main import create_app
from saytype_bridge.api.state import ServerState

TOKEN = "t1"


def make_wav(
    data: np.ndarray,
    sample_rate: int = 16000,
    subtype: str = "PCM_16",
    format: str = "WAV",
) -> bytes:
    """Encode samples (frames or frames x channels) into container bytes."""
    buf = io.BytesIO()
    sf.write(buf, data, sample_rate, format=format, subtype=subtype)
    return buf.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def auth(token: str = TOKEN) -> dict:
    return {"Authorization": f"Bearer {token}"}


class StubEngine:
    """In-memory TranscriptionEngine."""

    def __init__(
        self,
        text: str = "hello",
        loaded: bool = True,
        model_name: Optional[str] = "stub-model",
        error: Optional[Exception] = None,
    ):
        self.text = text
        self.loaded = loaded
        self.model_name = model_name
        self.error = error
        self.calls: List[np.ndarray] = []

    def is_model_loaded(self) -> bool:
        return self.loaded

    def current_model_name(self) -> Optional[str]:
        return self.model_name if self.loaded else None

    def transcribe(self, samples: np.ndarray) -> str:
        self.calls.append(samples)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def engine() -> StubEngine:
    return StubEngine()


@pytest.fixture
def client(engine) -> TestClient:
    return TestClient(create_app(ServerState(token=TOKEN, engine=engine)))


@pytest.fixture
def mono_wav() -> bytes:
    """Half a second of a 440 Hz tone, mono 16 kHz PCM_16."""
    t = np.arange(8000) / 16000
    return make_wav((0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32))


@pytest.fixture
def wav_factory():
    """Return the ``make_wav`` encoder."""
    return make_wav


@pytest.fixture
def b64encode():
    return b64


@pytest.fixture
def headers() -> dict:
    return auth()
