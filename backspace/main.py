from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, List, Optional

from . import __version__, config
from .commands.base import BaseCommand, common_options
from .commands.collection import CollectionCommand, ExcludeCommand
from .commands.content import ContentCommand, ServeCommand
from .commands.item import ItemCommand
from .commands.pipeline import PipelineCommand

COMMANDS = (PipelineCommand, CollectionCommand, ExcludeCommand, ItemCommand, ContentCommand, ServeCommand)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATEFMT,
        stream=sys.stderr,
    )


def build_parser(out: Any = None) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="backspace", description="SpaceCraft content tooling.", parents=[common_options()])
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="group", metavar="command")
    sub.required = True
    for cls in COMMANDS:
        cls(out=out).register(sub)
    return ap


def main(argv: Optional[List[str]] = None, out: Any = None) -> int:
    args = build_parser(out).parse_args(argv)
    configure_logging(getattr(args, "verbose", False))
    command: BaseCommand = args.command
    return command.run(args)


if __name__ == "__main__":
    raise SystemExit(main())
