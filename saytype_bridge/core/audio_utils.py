"""
Audio ingestion utilities for the SayType bridge.

Turns the base64 payload of a transcribe request into canonical audio:
- Base64 decoding
- Container decoding (RIFF/WAVE via libsndfile)
- Down-mixing to mono
- Linear-interpolation resampling to 16 kHz

The resampler is a plain linear interpolator with no anti-aliasing filter.
Downsampled audio may alias; it trades fidelity for latency and is not
meant for high-fidelity audio.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000
DEFAULT_FORMAT = "wav"

# Format tag -> libsndfile major format. None marks a recognized container
# that has no decoder yet.
AUDIO_FORMATS: Dict[str, Optional[str]] = {
    "wav": "WAV",
    "wave": "WAV",
    "ogg": None,
    "opus": None,
}

# libsndfile major formats accepted for the "wav" tag
_WAV_CONTAINERS = {"WAV", "WAVEX", "RF64"}

# Integer subtypes and their bit depth; floating-point subtypes pass through
_INT_SUBTYPES = {"PCM_U8": 8, "PCM_S8": 8, "PCM_16": 16, "PCM_24": 24, "PCM_32": 32}
_FLOAT_SUBTYPES = {"FLOAT", "DOUBLE"}


class AudioDecodeError(Exception):
    """Base class for failures while turning a payload into samples."""


class Base64DecodeError(AudioDecodeError):
    """The payload is not valid base64."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Base64 decode error: {detail}")


class UnsupportedFormatError(AudioDecodeError):
    """The format tag is unknown, or known but without a decoder."""

    def __init__(self, tag: str, not_implemented: bool = False):
        self.tag = tag
        self.not_implemented = not_implemented
        label = f"{tag} (not yet implemented)" if not_implemented else tag
        super().__init__(f"Unsupported format: {label}")


class MalformedContainerError(AudioDecodeError):
    """The bytes do not parse as the claimed container."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"WAV decode error: {detail}")


class UnsupportedSampleFormatError(AudioDecodeError):
    """The container parsed but uses a sample encoding we do not decode."""

    def __init__(self, subtype: str):
        self.subtype = subtype
        super().__init__(f"Unsupported sample format: {subtype}")


@dataclass
class AudioBuffer:
    """Decoded audio. ``samples`` is channel-interleaved when channel_count > 1."""

    samples: np.ndarray
    sample_rate: int
    channel_count: int
    bits_per_sample: Optional[int] = None
    is_float: bool = False

    @property
    def frame_count(self) -> int:
        if self.channel_count <= 0:
            return 0
        return -(-len(self.samples) // self.channel_count)


@dataclass
class NormalizedAudio:
    """Canonical audio: mono, 16 kHz, float32 in [-1.0, 1.0]."""

    samples: np.ndarray = field(repr=False)
    duration_ms: int

    sample_rate: int = field(default=TARGET_SAMPLE_RATE, init=False)
    channel_count: int = field(default=1, init=False)

    @classmethod
    def from_samples(cls, samples: np.ndarray) -> "NormalizedAudio":
        return cls(samples=samples, duration_ms=duration_ms(len(samples)))


def duration_ms(sample_count: int, sample_rate: int = TARGET_SAMPLE_RATE) -> int:
    """Duration in whole milliseconds, truncated."""
    return sample_count * 1000 // sample_rate


def decode_base64(text: str) -> bytes:
    """
    Decode a standard-alphabet, padded base64 string.

    Raises:
        Base64DecodeError: If the text contains characters outside the
            alphabet or has invalid padding
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(str(e)) from e


def decode_audio(data: bytes, format_tag: str) -> AudioBuffer:
    """
    Decode a container into interleaved float32 samples.

    Args:
        data: Raw container bytes
        format_tag: Container tag, matched case-insensitively

    Returns:
        AudioBuffer carrying the original sample rate and channel count

    Raises:
        UnsupportedFormatError: Unknown tag, or a recognized tag without a decoder
        MalformedContainerError: The bytes are not a readable container
        UnsupportedSampleFormatError: The sample encoding is not PCM or IEEE float
    """
    tag = format_tag.lower()
    if tag not in AUDIO_FORMATS:
        raise UnsupportedFormatError(format_tag)
    if AUDIO_FORMATS[tag] is None:
        raise UnsupportedFormatError(tag, not_implemented=True)

    return _decode_wav(data)


def _decode_wav(data: bytes) -> AudioBuffer:
    """
    Decode RIFF/WAVE bytes with libsndfile.

    Integer PCM comes back divided by 2^(bits-1); float PCM is unchanged.

    A payload cut short is decoded as far as it goes rather than rejected,
    so the sample count can be lower than the header's data size implies.
    libsndfile only returns whole frames: a trailing partial frame is lost
    entirely. A stereo payload holding 19 samples decodes to 18, which
    down-mix to 9 mono samples, not 10.
    """
    try:
        with sf.SoundFile(io.BytesIO(data)) as f:
            if f.format not in _WAV_CONTAINERS:
                raise MalformedContainerError(f"expected RIFF/WAVE container, got {f.format}")
            if f.subtype not in _INT_SUBTYPES and f.subtype not in _FLOAT_SUBTYPES:
                raise UnsupportedSampleFormatError(f.subtype)

            frames = f.read(dtype="float32", always_2d=True)
            sample_rate = f.samplerate
            channels = f.channels
            subtype = f.subtype
    except AudioDecodeError:
        raise
    except (sf.SoundFileError, RuntimeError, TypeError) as e:
        raise MalformedContainerError(str(e)) from e

    return AudioBuffer(
        samples=np.ascontiguousarray(frames, dtype=np.float32).reshape(-1),
        sample_rate=sample_rate,
        channel_count=channels,
        bits_per_sample=_INT_SUBTYPES.get(subtype, 64 if subtype == "DOUBLE" else 32),
        is_float=subtype in _FLOAT_SUBTYPES,
    )


def downmix(buffer: AudioBuffer) -> AudioBuffer:
    """
    Reduce an interleaved buffer to mono by averaging each frame.

    A trailing partial frame is averaged over the values it has.
    """
    channels = buffer.channel_count
    if channels <= 1:
        return buffer

    samples = buffer.samples
    full = (len(samples) // channels) * channels
    mono = samples[:full].reshape(-1, channels).mean(axis=1, dtype=np.float32)
    if full < len(samples):
        tail = samples[full:].mean(dtype=np.float32)
        mono = np.append(mono, np.float32(tail))

    return AudioBuffer(
        samples=mono.astype(np.float32, copy=False),
        sample_rate=buffer.sample_rate,
        channel_count=1,
        bits_per_sample=buffer.bits_per_sample,
        is_float=buffer.is_float,
    )


def resample(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """
    Resample mono samples with linear interpolation.

    The output has ceil(len * to_rate / from_rate) samples. Output sample i
    reads source position p = i * from_rate / to_rate and blends the two
    neighbouring samples; past the last pair it repeats the final sample,
    past the end it is 0.0.

    Args:
        samples: Mono float samples
        from_rate: Source sample rate
        to_rate: Target sample rate

    Returns:
        float32 array; the input itself when the rates match
    """
    samples = np.asarray(samples, dtype=np.float32)
    if from_rate == to_rate:
        return samples
    if from_rate <= 0 or to_rate <= 0:
        return np.zeros(0, dtype=np.float32)

    n = len(samples)
    ratio = from_rate / to_rate
    output_len = -(-n * to_rate // from_rate)

    positions = np.arange(output_len, dtype=np.float64) * ratio
    idx = np.floor(positions).astype(np.int64)
    frac = (positions - idx).astype(np.float32)

    out = np.zeros(output_len, dtype=np.float32)

    pair = idx + 1 < n
    lo = idx[pair]
    out[pair] = samples[lo] * (1.0 - frac[pair]) + samples[lo + 1] * frac[pair]

    last = ~pair & (idx < n)
    out[last] = samples[idx[last]]

    return out


def to_canonical(buffer: AudioBuffer) -> NormalizedAudio:
    """Down-mix, resample to 16 kHz and clip a decoded buffer."""
    mono = downmix(buffer)
    samples = resample(mono.samples, mono.sample_rate, TARGET_SAMPLE_RATE)
    samples = np.clip(samples, -1.0, 1.0).astype(np.float32, copy=False)
    return NormalizedAudio.from_samples(samples)


def convert_from_bytes(data: bytes, format_tag: str = DEFAULT_FORMAT) -> NormalizedAudio:
    """Decode container bytes into canonical audio."""
    buffer = decode_audio(data, format_tag)
    logger.debug(
        f"Decoded {buffer.frame_count} frames "
        f"({buffer.channel_count}ch @ {buffer.sample_rate} Hz)"
    )
    return to_canonical(buffer)


def convert_from_base64(text: str, format_tag: str = DEFAULT_FORMAT) -> NormalizedAudio:
    """
    Decode a base64 payload into canonical audio.

    Base64 is decoded before the container is looked at, so a bad payload
    always fails with Base64DecodeError.
    """
    data = decode_base64(text)
    return convert_from_bytes(data, format_tag)
