"""
Local network helpers.
"""

import logging
import socket

logger = logging.getLogger(__name__)

# Any routable address works; connect() on a UDP socket sends nothing.
_PROBE_ADDRESS = ("8.8.8.8", 80)


def get_local_ip() -> str:
    """
    Return the IPv4 address this host uses for outbound traffic.

    Falls back to 127.0.0.1 when no route is available.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(_PROBE_ADDRESS)
            return sock.getsockname()[0]
    except OSError as e:
        logger.debug(f"Could not determine local IP: {e}")
        return "127.0.0.1"


def server_url(port: int, host: str | None = None) -> str:
    """URL a companion client on the LAN should use."""
    return f"http://{host or get_local_ip()}:{port}"
