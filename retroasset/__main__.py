"""Command line entry point: ``retroasset [--listen ADDR] [--frontend DIR] ...``."""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from retroasset import __version__
from retroasset.config import DEFAULT_LISTEN, Settings

logger = logging.getLogger("retroasset")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="retroasset",
        description="Serve RetroArch frontend, system and core assets, "
                    "from local directories or proxied from the libretro buildbot.",
    )
    parser.add_argument(
        "--version", action="version", version=f"retroarch-asset-server {__version__}",
    )
    parser.add_argument("--listen", help=f"server listening address (default: {DEFAULT_LISTEN})")
    parser.add_argument("--frontend", help="path of the directory where frontend is stored (optional)")
    parser.add_argument("--system", help="path of the directory where systems are stored (optional)")
    parser.add_argument("--rom", help="path of the directory where ROMs are stored (optional)")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings, overridden by whatever was given on the command line."""
    overrides = {
        "listen": args.listen,
        "frontend_path": args.frontend,
        "system_path": args.system,
        "rom_path": args.rom,
    }
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 2

    from retroasset.main import setup_logging
    from retroasset.server import build_server

    setup_logging(settings)
    server = build_server(settings)
    try:
        server.start()
    except OSError as exc:
        logger.error("Cannot listen on %s: %s", settings.listen, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
