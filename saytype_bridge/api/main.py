"""
FastAPI application for the SayType bridge.

Provides:
- GET /api/status
- POST /api/transcribe

Both endpoints require ``Authorization: Bearer <token>``. Cross-origin
requests are allowed from anywhere; the bridge is meant for a trusted LAN.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from saytype_bridge import __version__
from saytype_bridge.api.errors import BridgeError, ErrorCode
from saytype_bridge.api.routes import status, transcribe
from saytype_bridge.api.state import ServerState
from saytype_bridge.logging import get_logger

logger = get_logger("api")


def create_app(state: ServerState) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        state: Token and engine shared by all requests

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="SayType Bridge",
        description="LAN speech-to-text bridge for companion clients",
        version=__version__,
    )
    app.state.bridge = state

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # LAN-trust model
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(status.router, prefix="/api", tags=["Status"])
    app.include_router(transcribe.router, prefix="/api", tags=["Transcription"])

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": ErrorCode.TRANSCRIBE_ERROR.value},
        )

    return app
