"""
Request and response models for the SayType bridge API.

Field names on the wire are snake_case. Requests also accept the camelCase
spellings used by some companion clients.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TranscribeRequest(BaseModel):
    """Request model for POST /api/transcribe."""

    model_config = ConfigDict(populate_by_name=True)

    audio_base64: str = Field(validation_alias=AliasChoices("audio_base64", "audioBase64"))
    format: Optional[str] = None
    # Accepted for compatibility; decoding reads the rate from the container
    sample_rate: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("sample_rate", "sampleRate", "sampleRateHint"),
    )
    # Accepted for compatibility; the transcript is never post-processed
    polish: Optional[bool] = None


class TranscribeResponse(BaseModel):
    """Response model for a successful transcription."""

    success: bool = True
    raw_text: str
    polished_text: str
    language: str = "auto"
    processing_time_ms: int


class StatusResponse(BaseModel):
    """Response model for GET /api/status."""

    model_config = ConfigDict(protected_namespaces=())

    status: str
    model_loaded: bool
    current_model: Optional[str] = None
    version: str


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    code: str
