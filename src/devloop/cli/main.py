"""
Command-line interface for the devloop development loop.

This module provides the `devloop` entry point with three subcommands:
`dev` runs the watch/rebuild/restart loop, `build` compiles once, and
`new` scaffolds an empty project.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import get_config, reload_config, set_project_dir
from ..models.config import DEFAULT_PORT, DESCRIPTOR_FILE_NAME
from ..models.results import BuildSuccess
from ..orchestration import DevLoop
from ..system.commands import check_executable_installed
from ..validation import (
    ArtifactNotFoundError,
    ConfigurationError,
    ValidationError,
    WatchError,
    handle_cli_error,
    validate_port,
    validate_project_name,
)

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

DESCRIPTOR_TEMPLATE = """\
name = "{name}"
port = {port}
source_dir = "src"
output_dir = "build"

[dependencies]
# postgresql = "42.7.1"
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devloop",
        description="Rebuild and restart a server application whenever its sources change.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    dev = subparsers.add_parser(
        "dev", parents=[common], help="Watch sources, rebuild and restart the server on change."
    )
    dev.add_argument(
        "-p",
        "--port",
        type=int,
        help="Port passed to the server. Overrides the port in the project descriptor.",
    )
    dev.add_argument(
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help=f"Directory containing {DESCRIPTOR_FILE_NAME} (default: current directory).",
    )
    dev.set_defaults(handler=run_dev)

    build = subparsers.add_parser("build", parents=[common], help="Resolve dependencies and compile once.")
    build.add_argument(
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help=f"Directory containing {DESCRIPTOR_FILE_NAME} (default: current directory).",
    )
    build.set_defaults(handler=run_build)

    new = subparsers.add_parser("new", parents=[common], help="Create an empty project.")
    new.add_argument("name", help="Name of the project directory to create.")
    new.set_defaults(handler=run_new)

    return parser


def _load_project(project_dir: Path):
    set_project_dir(project_dir)
    try:
        return get_config()
    except ConfigurationError as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            logger=logger,
        )


def _check_toolchain(config) -> None:
    for tool in (config.runtime.compiler, config.runtime.java):
        if not check_executable_installed(tool):
            logger.warning(f"'{tool}' was not found on PATH; builds or worker launches will fail")


def run_dev(args: argparse.Namespace) -> int:
    port = None
    if args.port is not None:
        try:
            port = validate_port(args.port, field_name="--port argument")
        except ValidationError as e:
            handle_cli_error(
                error=e,
                context="port argument validation",
                exit_code=1,
                logger=logger,
            )

    config = _load_project(args.project_dir)
    _check_toolchain(config)
    dev_loop = DevLoop(config, port_override=port, config_loader=reload_config)

    logger.info(f"Starting development loop for {config.project_dir}")
    try:
        asyncio.run(dev_loop.run())
    except ArtifactNotFoundError as e:
        handle_cli_error(
            error=e,
            context="runtime artifact lookup",
            exit_code=1,
            logger=logger,
        )
    except WatchError as e:
        handle_cli_error(
            error=e,
            context="source watching",
            exit_code=1,
            logger=logger,
        )
    except KeyboardInterrupt:
        logger.warning("Interrupted before shutdown completed")
    return 0


def run_build(args: argparse.Namespace) -> int:
    config = _load_project(args.project_dir)
    dev_loop = DevLoop(config, install_signal_handlers=False)
    try:
        result = asyncio.run(dev_loop.build_once())
    except ArtifactNotFoundError as e:
        handle_cli_error(
            error=e,
            context="runtime artifact lookup",
            exit_code=1,
            logger=logger,
        )

    if isinstance(result, BuildSuccess):
        logger.info(f"Compiled {result.source_count} source files in {result.duration_seconds:.2f}s")
        return 0
    return 1


def run_new(args: argparse.Namespace) -> int:
    try:
        name = validate_project_name(args.name, field_name="project name")
    except ValidationError as e:
        handle_cli_error(
            error=e,
            context="project name validation",
            exit_code=1,
            logger=logger,
        )

    project_dir = Path.cwd() / name
    if project_dir.exists() and any(project_dir.iterdir()):
        logger.error(f"Directory {project_dir} already exists and is not empty")
        return 1

    (project_dir / "src").mkdir(parents=True, exist_ok=True)
    (project_dir / DESCRIPTOR_FILE_NAME).write_text(
        DESCRIPTOR_TEMPLATE.format(name=name, port=DEFAULT_PORT), encoding="utf-8"
    )
    logger.info(f"Created project '{name}' in {project_dir}")
    logger.info(f"Next: cd {name} && devloop dev")
    return 0


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for devloop.

    Raises:
        SystemExit: With the exit code of the selected subcommand.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.getLogger().setLevel(args.log_level)

    sys.exit(args.handler(args))


if __name__ == "__main__":
    main_cli()
