"""
Command line entry point for the SayType bridge.

Usage:
    saytype-bridge serve [--port PORT] [--model MODEL] [--force]
    saytype-bridge show-config
    saytype-bridge regenerate-token
"""

import argparse
import sys
import threading
from pathlib import Path
from typing import List, Optional

from saytype_bridge import __version__
from saytype_bridge.api.state import ServerState
from saytype_bridge.config import ConfigStore, validate_port
from saytype_bridge.core.network import server_url
from saytype_bridge.logging import get_logger, setup_logging

logger = get_logger("main")


def _load_engine_in_background(engine) -> None:
    """Load the model off the main thread so /api/status reports "loading"."""

    def _load() -> None:
        try:
            engine.load_model()
        except Exception as e:
            logger.error(f"Model load failed, transcription stays unavailable: {e}")

    threading.Thread(target=_load, name="saytype-model-loader", daemon=True).start()


def cmd_serve(args: argparse.Namespace, store: ConfigStore) -> int:
    from saytype_bridge.server import BridgeServer, ServerStatus

    setup_logging(store.logging, log_dir=args.log_dir)
    config = store.get()

    if not config.enabled and not args.force:
        logger.warning("SayType API is disabled in the config; use --force to start anyway")
        return 0

    port = validate_port(args.port) if args.port is not None else config.port

    engine = None
    if args.model:
        from saytype_bridge.core.engine import FasterWhisperEngine

        engine = FasterWhisperEngine(
            model=args.model,
            device=args.device,
            compute_type=args.compute_type,
            language=args.language,
        )
        _load_engine_in_background(engine)
    else:
        logger.warning("No model configured; /api/transcribe will answer MODEL_NOT_LOADED")

    server = BridgeServer(ServerState(token=config.token, engine=engine), port=port)
    if not server.bind():
        return 1

    logger.info(f"Companion clients can connect to {server_url(port)}")
    server.serve()
    return 0 if server.status is not ServerStatus.FAILED else 1


def cmd_show_config(args: argparse.Namespace, store: ConfigStore) -> int:
    config = store.get()
    print(f"Config file: {store.path}")
    print(f"Enabled:     {config.enabled}")
    print(f"Port:        {config.port}")
    print(f"Token:       {config.token}")
    print(f"Onboarded:   {config.onboarded}")
    print(f"Server URL:  {server_url(config.port)}")
    return 0


def cmd_regenerate_token(args: argparse.Namespace, store: ConfigStore) -> int:
    token = store.regenerate_token()
    print(token)
    print("Restart a running server to apply the new token.", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="saytype-bridge", description="SayType LAN speech-to-text bridge"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Path to bridge.yaml")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--port", type=int, default=None, help="Override the configured port")
    serve.add_argument("--force", action="store_true", help="Start even if disabled in config")
    serve.add_argument("--model", default=None, help="faster-whisper model name or path")
    serve.add_argument("--device", default="auto", help="Inference device (cpu, cuda, auto)")
    serve.add_argument("--compute-type", default="default", help="CTranslate2 compute type")
    serve.add_argument("--language", default=None, help="Language code (default: detect)")
    serve.add_argument("--log-dir", type=Path, default=None, help="Override the log directory")
    serve.set_defaults(func=cmd_serve)

    show = subparsers.add_parser("show-config", help="Print the stored settings")
    show.set_defaults(func=cmd_show_config)

    regen = subparsers.add_parser("regenerate-token", help="Replace the bearer token")
    regen.set_defaults(func=cmd_regenerate_token)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    store = ConfigStore(args.config)
    try:
        return args.func(args, store)
    except ValueError as e:
        parser.error(str(e))
    return 2


if __name__ == "__main__":
    sys.exit(main())
