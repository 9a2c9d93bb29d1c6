"""``verdict-ui`` - serve the ruleset inspector for rulesets defined in your code."""

from __future__ import annotations

import argparse
import importlib
import importlib.util
import sys
from pathlib import Path
from typing import Sequence

import structlog

from verdict.core.config import get_settings
from verdict.core.logging import configure_logging
from verdict.core.errors import RuleLoadError

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="verdict-ui", description="Serve the ruleset registry inspector"
    )
    parser.add_argument(
        "--host", default=settings.ui_host, help=f"Bind host (default: {settings.ui_host})"
    )
    parser.add_argument(
        "--port", type=int, default=settings.ui_port, help=f"Bind port (default: {settings.ui_port})"
    )
    parser.add_argument(
        "--load",
        action="append",
        default=None,
        metavar="MODULE_OR_FILE",
        help="Module, Python file or YAML ruleset to load before serving (repeatable)",
    )
    return parser


def load_target(target: str) -> None:
    """Import a module or file so the rulesets it defines register themselves.

    YAML files are loaded with ``RulesetLoader`` and always registered.
    """
    path = Path(target)
    if path.suffix in (".yaml", ".yml"):
        from verdict.rules.loader import RulesetLoader

        RulesetLoader(register=True).load_file(path)
    elif path.suffix == ".py":
        spec = importlib.util.spec_from_file_location(path.stem, path.resolve())
        if spec is None or spec.loader is None:
            raise RuleLoadError(f"Cannot import {target}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[path.stem] = module
        spec.loader.exec_module(module)
    else:
        importlib.import_module(target)
    logger.info("ruleset_source_loaded", target=target)


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging()

    targets = args.load if args.load is not None else get_settings().ui_load_paths
    for target in targets:
        load_target(target)

    import uvicorn

    from verdict.main import app

    logger.info("inspector_listening", url=f"http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
