"""
Shared state handed to every request handler.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from saytype_bridge.core.engine import TranscriptionEngine


@dataclass(frozen=True)
class ServerState:
    """
    Created once when the server starts and read by every request.

    ``token`` is a snapshot: regenerating the token in the config store does
    not reach a running server.
    """

    token: str
    engine: Optional[TranscriptionEngine] = None


def get_server_state(request: Request) -> ServerState:
    """Return the ServerState attached by ``create_app``."""
    return request.app.state.bridge
