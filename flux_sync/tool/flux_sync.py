"""Command line tool for syncing flux Kustomizations from a local directory."""

import argparse
import asyncio
import logging
import sys
import traceback

from flux_sync.exceptions import FluxException
from . import get, run

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for building and applying flux Kustomizations.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    run.RunAction.register(subparsers)
    get.GetAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Flux-sync command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except FluxException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("flux-sync error: ", err, file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
