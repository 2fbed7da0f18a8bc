"""Command-line entry point: inline a page to a file, or serve the HTTP API."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from inliner.config import get_settings
from inliner.models import MainFetchError
from inliner.scraper import inline_page
from inliner.urls import ensure_scheme

logger = logging.getLogger("inliner.cli")


def _configure_logging(verbose: bool, level: str = "INFO") -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Turn a web page into one self-contained HTML document.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser("fetch", help="Inline a single page")
    fetch_parser.add_argument("url", help="Page to inline")
    fetch_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="File to write the HTML to (default: stdout)",
    )
    fetch_parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host, help="Interface to bind")
    serve_parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args(list(sys.argv[1:] if argv is None else argv))


def _run_fetch(args: argparse.Namespace) -> int:
    settings = get_settings()
    _configure_logging(args.verbose, settings.log_level)

    try:
        result = asyncio.run(inline_page(ensure_scheme(args.url), settings))
    except MainFetchError as exc:
        logger.error("%s", exc)
        return 1

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(result.html, encoding="utf-8")
        logger.info("Saved %s (%d bytes) to %s", result.title or result.url, result.size, args.output)
    else:
        sys.stdout.write(result.html)
        sys.stdout.flush()

    logger.info(
        "Finished in %.2fs (%d inlined, %d degraded, %d abandoned)",
        result.elapsed,
        result.stylesheets_inlined,
        result.stylesheets_failed,
        result.stylesheets_abandoned,
    )
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    _configure_logging(args.verbose, settings.log_level)
    uvicorn.run(
        "inliner.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if args.verbose else settings.log_level.lower(),
    )
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "fetch":
        sys.exit(_run_fetch(args))
    sys.exit(_run_serve(args))


if __name__ == "__main__":
    main()
