# src/main.py — v2
"""CLI entry point — resolve and serve commands.

Usage:
    shipparties resolve --imo 9319466 [--ais-static JSON] [--external JSON] [options]
    shipparties serve [--host HOST] [--port PORT]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING

from shipparties.version import __version__

if TYPE_CHECKING:
    from shipparties.config.settings import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_IDENTITY_MISSING = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FATAL

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FATAL


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="shipparties",
        description=f"shipparties v{__version__} — evidence-traceable ship parties resolution",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- resolve ---
    p_resolve = subparsers.add_parser(
        "resolve", help="Resolve the parties of one ship and print JSON",
    )
    p_resolve.add_argument("--imo", default=None, help="IMO number")
    p_resolve.add_argument("--mmsi", default=None, help="MMSI")
    p_resolve.add_argument("--name", default=None, help="Ship name")
    p_resolve.add_argument("--callsign", default=None, help="Radio call sign")
    p_resolve.add_argument(
        "--ais-static", default=None,
        help="AIS static record as a JSON object",
    )
    p_resolve.add_argument(
        "--external", default=None,
        help="External claims as a JSON array or object",
    )
    p_resolve.add_argument(
        "--mode", choices=["strict", "balanced", "aggressive"], default=None,
        help="AI policy (default: DEFAULT_MODE setting)",
    )
    p_resolve.add_argument(
        "--v1", action="store_true",
        help="Print the legacy v1 response shape",
    )
    p_resolve.add_argument(
        "--no-ai", action="store_true",
        help="Never call the AI collaborator",
    )
    p_resolve.add_argument(
        "--no-retrieval", action="store_true",
        help="Skip public-source retrieval",
    )
    p_resolve.set_defaults(func=_cmd_resolve)

    # --- serve ---
    p_serve = subparsers.add_parser(
        "serve", help="Run the HTTP API",
    )
    p_serve.add_argument("--host", default=None, help="Bind address (default: API_HOST)")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default: API_PORT)")
    p_serve.set_defaults(func=_cmd_serve)

    return parser


def _cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve one ship and print the result."""
    from shipparties.api.facade import create_collaborators, resolve_ship_parties
    from shipparties.config.settings import load_settings
    from shipparties.core.errors import IdentityMissingError
    from shipparties.core.models import PartiesRequest, ShipIdentity
    from shipparties.resolution.legacy import to_v1_response

    try:
        ais_static = _load_json_arg("--ais-static", args.ais_static, (dict,))
        external = _load_json_arg("--external", args.external, (list, dict))
    except ValueError as e:
        logger.error("%s", e)
        return EXIT_FATAL

    settings = load_settings()
    _configure_from_settings(settings, args.verbose)
    collaborators = create_collaborators(
        settings, retrieval=not args.no_retrieval, ai=not args.no_ai,
    )
    request = PartiesRequest(
        identity=ShipIdentity(
            imo=args.imo, mmsi=args.mmsi, name=args.name, callsign=args.callsign,
        ),
        ais_static=ais_static,
        external=external,
        mode=args.mode or settings.default_mode,
    )

    try:
        result = asyncio.run(
            resolve_ship_parties(
                request,
                settings=settings,
                retriever=collaborators.retriever,
                inferencer=collaborators.inferencer,
                cache_store=collaborators.cache_store,
            )
        )
    except IdentityMissingError as e:
        logger.error("%s", e)
        return EXIT_IDENTITY_MISSING

    payload = to_v1_response(result) if args.v1 else result.model_dump(mode="json")
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return EXIT_OK


def _cmd_serve(args: argparse.Namespace) -> int:
    """Run the FastAPI app under uvicorn."""
    import uvicorn

    from shipparties.api.app import create_app
    from shipparties.config.settings import load_settings

    settings = load_settings()
    _configure_from_settings(settings, args.verbose)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_config=None,
    )
    return EXIT_OK


def _load_json_arg(flag: str, raw: str | None, allowed: tuple[type, ...]) -> object:
    """Decode a JSON CLI argument, raising ValueError with the flag name."""
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{flag}: malformed JSON ({e.msg})") from e
    if not isinstance(value, allowed):
        raise ValueError(f"{flag}: unexpected JSON type {type(value).__name__}")
    return value


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage (before settings are loaded)."""
    from shipparties.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _configure_from_settings(settings: Settings, verbose: bool) -> None:
    """Re-apply logging from LOG_* settings."""
    from shipparties.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
