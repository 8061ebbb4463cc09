"""
Speech-to-text engine interface for the SayType bridge.

The bridge only consumes an engine; it never decides how inference is
scheduled. ``FasterWhisperEngine`` is the reference implementation used by
the command line entry point.

NOTE: faster_whisper is imported lazily inside ``load_model`` so that the API
can be imported (and tested) without the inference stack installed.
"""

import logging
import threading
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "Systran/faster-whisper-small"


class TranscriptionError(Exception):
    """Raised when inference fails on otherwise valid audio."""

    pass


@runtime_checkable
class TranscriptionEngine(Protocol):
    """What the request handlers need from a speech-to-text engine."""

    def is_model_loaded(self) -> bool: ...

    def current_model_name(self) -> Optional[str]: ...

    def transcribe(self, samples: np.ndarray) -> str:
        """Transcribe mono 16 kHz float32 samples; raise on failure."""
        ...


class FasterWhisperEngine:
    """
    TranscriptionEngine backed by faster-whisper.

    Inference calls are serialized with a lock, so overlapping transcribe
    requests queue up behind one another instead of racing on the model.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        device: str = "auto",
        compute_type: str = "default",
        beam_size: int = 5,
        language: Optional[str] = None,
    ):
        """
        Initialize the engine without loading the model.

        Args:
            model: Whisper model path or name
            device: Device to run on ("cuda", "cpu" or "auto")
            compute_type: CTranslate2 compute type
            beam_size: Beam size for decoding
            language: Language code (None for auto-detect)
        """
        self.model_path = model
        self.device = device
        self.compute_type = compute_type
        self.beam_size = beam_size
        self.language = language

        self._model: Optional[Any] = None
        self._lock = threading.Lock()

        logger.info(f"FasterWhisperEngine initialized: model={model}, device={device}")

    def load_model(self) -> None:
        """Load the Whisper model."""
        if self._model is not None:
            logger.debug("Model already loaded")
            return

        import faster_whisper

        logger.info(f"Loading Whisper model: {self.model_path}")
        try:
            self._model = faster_whisper.WhisperModel(
                model_size_or_path=self.model_path,
                device=self.device,
                compute_type=self.compute_type,
            )
        except Exception as e:
            logger.error(f"Failed to load model: {e}")
            raise
        logger.info("Whisper model loaded successfully")

    def unload_model(self) -> None:
        """Drop the model reference."""
        with self._lock:
            if self._model is None:
                return
            logger.info("Unloading Whisper model")
            self._model = None

    def is_model_loaded(self) -> bool:
        return self._model is not None

    def current_model_name(self) -> Optional[str]:
        return self.model_path if self._model is not None else None

    def transcribe(self, samples: np.ndarray) -> str:
        """
        Transcribe canonical audio.

        Args:
            samples: Mono 16 kHz float32 samples in [-1.0, 1.0]

        Returns:
            The transcript with segment texts joined by spaces

        Raises:
            TranscriptionError: If the model is not loaded or inference fails
        """
        with self._lock:
            if self._model is None:
                raise TranscriptionError("Model not available")

            logger.info(f"Transcribing {len(samples) / 16000:.2f}s of audio")
            try:
                segments, info = self._model.transcribe(
                    samples,
                    language=self.language,
                    beam_size=self.beam_size,
                )
                text = " ".join(segment.text.strip() for segment in segments)
            except Exception as e:
                raise TranscriptionError(str(e)) from e

        logger.info(f"Transcription complete: language={info.language}")
        return text.strip()
