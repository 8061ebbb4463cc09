"""
Core audio and inference components.

This module contains:
- audio_utils: Base64/container decoding, down-mixing and resampling
- engine: TranscriptionEngine interface and the faster-whisper implementation
- network: Local address discovery for the LAN URL
"""


# Lazy imports so the API does not pull numpy/soundfile until it needs them
def __getattr__(name: str):
    if name == "TranscriptionEngine":
        from saytype_bridge.core.engine import TranscriptionEngine

        return TranscriptionEngine
    elif name == "FasterWhisperEngine":
        from saytype_bridge.core.engine import FasterWhisperEngine

        return FasterWhisperEngine
    elif name == "NormalizedAudio":
        from saytype_bridge.core.audio_utils import NormalizedAudio

        return NormalizedAudio
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "TranscriptionEngine",
    "FasterWhisperEngine",
    "NormalizedAudio",
]
