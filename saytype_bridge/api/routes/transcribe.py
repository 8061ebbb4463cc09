"""
Transcription endpoint for the SayType bridge.

Handles:
- Bearer token check (before the body is read)
- Base64/container decoding and resampling to canonical audio
- Inference through the attached TranscriptionEngine
"""

import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import ValidationError

from saytype_bridge.api.errors import (
    InvalidFormat,
    ModelNotLoaded,
    TranscribeFailed,
    from_audio_error,
)
from saytype_bridge.api.models import ErrorResponse, TranscribeRequest, TranscribeResponse
from saytype_bridge.api.routes.utils import sanitize_for_log, verify_token
from saytype_bridge.api.state import get_server_state
from saytype_bridge.core.audio_utils import (
    DEFAULT_FORMAT,
    AudioDecodeError,
    convert_from_base64,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "DECODE_ERROR or INVALID_FORMAT"},
    401: {"model": ErrorResponse, "description": "UNAUTHORIZED"},
    500: {"model": ErrorResponse, "description": "TRANSCRIBE_ERROR"},
    503: {"model": ErrorResponse, "description": "MODEL_NOT_LOADED"},
}


async def read_transcribe_request(request: Request) -> TranscribeRequest:
    """
    Parse the JSON body into a TranscribeRequest.

    Raises:
        InvalidFormat: If the body is not JSON or does not match the model
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidFormat(f"Invalid request body: {e}") from e

    try:
        return TranscribeRequest.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise InvalidFormat(f"Invalid request body: {location}: {first.get('msg')}") from e


@router.post("/transcribe", response_model=TranscribeResponse, responses=ERROR_RESPONSES)
async def transcribe(request: Request) -> TranscribeResponse:
    """
    Transcribe a base64-encoded recording.

    The body is a TranscribeRequest; ``format`` defaults to "wav". The
    transcript is returned unchanged in both ``raw_text`` and
    ``polished_text``.
    """
    state = get_server_state(request)
    verify_token(request.headers, state.token)

    start_time = time.perf_counter()
    body = await read_transcribe_request(request)
    # An explicit empty tag is not the default; it fails as an unknown format
    format_tag = body.format if body.format is not None else DEFAULT_FORMAT

    try:
        audio = await asyncio.to_thread(convert_from_base64, body.audio_base64, format_tag)
    except AudioDecodeError as e:
        error = from_audio_error(e)
        logger.info(
            f"Rejected audio payload (format={sanitize_for_log(format_tag)}): {e}",
            extra={"format_tag": format_tag, "error_code": error.code.value},
        )
        raise error from e

    engine = state.engine
    if engine is None:
        raise ModelNotLoaded("Transcription service not available")
    if not engine.is_model_loaded():
        raise ModelNotLoaded()

    try:
        text = await asyncio.to_thread(engine.transcribe, audio.samples)
    except Exception as e:
        logger.error(f"Transcription failed: {e}", exc_info=True)
        raise TranscribeFailed(str(e) or type(e).__name__) from e

    processing_time_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info(
        f"Transcribed {audio.duration_ms} ms of audio in {processing_time_ms} ms",
        extra={"audio_ms": audio.duration_ms, "processing_ms": processing_time_ms},
    )

    return TranscribeResponse(
        success=True,
        raw_text=text,
        polished_text=text,
        language="auto",
        processing_time_ms=processing_time_ms,
    )
