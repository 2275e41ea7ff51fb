from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..errors import BackspaceError
from ..infra.http_client import HttpJsonError

logger = logging.getLogger(__name__)


def common_options() -> argparse.ArgumentParser:
    """Flags every command accepts, before or after its action."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Verbose (debug) logging.")
    parent.add_argument("--json", action="store_true", default=argparse.SUPPRESS, help="Print machine-readable JSON.")
    parent.add_argument("-f", "--force", action="store_true", default=argparse.SUPPRESS, help="Overwrite existing data.")
    return parent


class BaseCommand:
    """
    One `backspace <name>` command group.

    Subclasses set `name`/`help`, declare actions in `add_actions` and implement them as
    `do_<action>` methods returning an exit code (or None for success).
    """

    name: str = ""
    help: str = ""

    def __init__(self, out: Any = None) -> None:
        self.out = out or sys.stdout

    def register(self, subparsers: Any) -> argparse.ArgumentParser:
        parser = subparsers.add_parser(self.name, help=self.help, description=self.help, parents=[common_options()])
        parser.set_defaults(command=self)
        actions = parser.add_subparsers(dest="action", metavar="action")
        actions.required = True
        self.add_actions(actions)
        return parser

    def add_action(self, actions: Any, name: str, help: str) -> argparse.ArgumentParser:
        return actions.add_parser(name, help=help, description=help, parents=[common_options()])

    def add_actions(self, actions: Any) -> None:
        raise NotImplementedError

    # Output

    def emit(self, args: argparse.Namespace, payload: Any, lines: Optional[Iterable[str]] = None) -> None:
        if getattr(args, "json", False):
            self.out.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
            return
        for line in (lines if lines is not None else _default_lines(payload)):
            self.out.write(f"{line}\n")

    # Dispatch

    def handler_for(self, action: str) -> Callable[[argparse.Namespace], Optional[int]]:
        fn = getattr(self, "do_" + str(action).replace("-", "_"), None)
        if fn is None:
            raise BackspaceError(f"Unknown action for {self.name}: {action}")
        return fn

    def run(self, args: argparse.Namespace) -> int:
        try:
            rc = self.handler_for(args.action)(args)
        except (BackspaceError, HttpJsonError, OSError, ValueError) as e:
            logger.error(f"{self.name} {args.action} failed: {e}")
            if getattr(args, "verbose", False):
                logger.debug("Traceback", exc_info=True)
            if getattr(args, "json", False):
                self.emit(args, {"error": str(e)})
            return 1
        return int(rc or 0)


def _default_lines(payload: Any) -> List[str]:
    if isinstance(payload, dict):
        return [f"{k}: {v}" for k, v in payload.items()]
    if isinstance(payload, list):
        return [str(p) for p in payload]
    return [str(payload)]


def key_values(data: Dict[str, Any], keys: Iterable[str]) -> List[str]:
    return [f"{k}: {data.get(k, 0)}" for k in keys]
