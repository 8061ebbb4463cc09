"""
Status endpoint for the SayType bridge.
"""

from fastapi import APIRouter, Request

from saytype_bridge import __version__
from saytype_bridge.api.models import StatusResponse
from saytype_bridge.api.routes.utils import verify_token
from saytype_bridge.api.state import get_server_state

router = APIRouter()


@router.get("/status", response_model=StatusResponse)
async def get_status(request: Request) -> StatusResponse:
    """
    Report whether the transcription model is ready.

    Always 200 once authorized. ``status`` is "ready" when the model is
    loaded and "loading" otherwise, including when no engine is attached.
    """
    state = get_server_state(request)
    verify_token(request.headers, state.token)

    engine = state.engine
    if engine is not None:
        model_loaded = engine.is_model_loaded()
        current_model = engine.current_model_name()
    else:
        model_loaded = False
        current_model = None

    return StatusResponse(
        status="ready" if model_loaded else "loading",
        model_loaded=model_loaded,
        current_model=current_model,
        version=__version__,
    )
