"""
Entry points.

Two thin adapters over the same orchestrator: ``meshinit`` takes flags (with
environment defaults) followed by the workload command line, ``meshinit-run``
reads everything from a TOML file. Both initialize logging once, run the
orchestrator on a fresh event loop and turn the result into an exit status.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .config import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_MAX_BYTES,
    DEFAULT_READINESS_PATH,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_SHUTDOWN_PATH,
    DEFAULT_SIDECAR_ENDPOINT,
    Config,
    SidecarConfig,
    env_bool,
    env_float,
    load_config_file,
)
from .errors import FATAL_EXIT_STATUS, ConfigurationError, MeshInitError, TerminationError
from .logs import init_observability
from .orchestrator import Orchestrator
from .reaper import enable_subreaper, reap_orphans

logger = logging.getLogger(__name__)


def execute(config: Config) -> int:
    """Run the orchestrator for ``config`` and return the process exit status."""
    init_observability(config)

    try:
        if config.enable_process_subreaper:
            enable_subreaper()
        result = asyncio.run(Orchestrator(config).run())
    except TerminationError as e:
        logger.error(f"Error: {e}")
        if e.result is not None:
            logger.error(f"Workload exit status was {e.result.exit_status}")
        return FATAL_EXIT_STATUS
    except MeshInitError as e:
        logger.error(f"Error: {e}")
        return FATAL_EXIT_STATUS
    finally:
        if config.enable_process_subreaper:
            reap_orphans()

    return result.exit_status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meshinit",
        description="Run a workload beside a service-mesh sidecar.",
        # Prefix matching would swallow or reject workload flags such as --log
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-s",
        "--enable-process-subreaper",
        action="store_true",
        default=env_bool("ENABLE_PROCESS_SUBREAPER"),
        help="Adopt and reap orphaned descendants (Linux)",
    )
    parser.add_argument(
        "--with-sidecar",
        "--with-istio",
        action="store_true",
        default=env_bool("WITH_SIDECAR", env_bool("WITH_ISTIO")),
        help="Wait for the sidecar to be ready before starting the workload",
    )
    parser.add_argument(
        "--sidecar-endpoint",
        "--pilot-agent-endpoint",
        default=(
            os.environ.get("SIDECAR_ENDPOINT")
            or os.environ.get("PILOT_AGENT_ENDPOINT")
            or DEFAULT_SIDECAR_ENDPOINT
        ),
        help="Sidecar status/admin endpoint (default: %(default)s)",
    )
    parser.add_argument(
        "--terminate-sidecar",
        "--kill-istio",
        action="store_true",
        default=env_bool("TERMINATE_SIDECAR", env_bool("KILL_ISTIO")),
        help="Ask the sidecar to shut down after the workload exits",
    )
    parser.add_argument(
        "--readiness-path",
        default=os.environ.get("SIDECAR_READINESS_PATH", DEFAULT_READINESS_PATH),
    )
    parser.add_argument(
        "--shutdown-path",
        default=os.environ.get("SIDECAR_SHUTDOWN_PATH", DEFAULT_SHUTDOWN_PATH),
    )
    parser.add_argument(
        "--readiness-retry-interval",
        type=float,
        default=env_float("READINESS_RETRY_INTERVAL", DEFAULT_RETRY_INTERVAL),
        help="Seconds between readiness probes (default: %(default)s)",
    )
    parser.add_argument(
        "--readiness-timeout",
        type=float,
        default=env_float("READINESS_TIMEOUT"),
        help="Give up waiting for the sidecar after this many seconds (default: wait forever)",
    )
    parser.add_argument(
        "--no-forward-signals",
        dest="forward_signals",
        action="store_false",
        default=env_bool("FORWARD_SIGNALS", True),
        help="Do not relay termination signals to the workload",
    )
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"))
    parser.add_argument("--log-file", default=os.environ.get("LOG_FILE") or None)
    parser.add_argument("command", help="Workload executable")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Workload arguments")
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    sidecar = None
    if args.with_sidecar:
        sidecar = SidecarConfig(
            endpoint=args.sidecar_endpoint,
            terminate_after_exit=args.terminate_sidecar,
            readiness_path=args.readiness_path,
            shutdown_path=args.shutdown_path,
        )
    return Config(
        command=args.command,
        args=tuple(args.args),
        sidecar=sidecar,
        readiness_retry_interval=args.readiness_retry_interval,
        readiness_timeout=args.readiness_timeout,
        enable_process_subreaper=args.enable_process_subreaper,
        forward_signals=args.forward_signals,
        log_level=args.log_level,
        log_file=Path(args.log_file) if args.log_file else None,
        log_max_bytes=int(env_float("LOG_MAX_BYTES", DEFAULT_LOG_MAX_BYTES)),
        log_backup_count=int(env_float("LOG_BACKUP_COUNT", DEFAULT_LOG_BACKUP_COUNT)),
    )


def main(argv=None) -> int:
    """Interactive entry point: flags, then the workload command line."""
    try:
        parser = build_parser()
    except ConfigurationError as e:
        print(f"meshinit: {e}", file=sys.stderr)
        return FATAL_EXIT_STATUS

    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        parser.error(str(e))

    return execute(config)


def run_file(argv=None) -> int:
    """File-driven entry point: ``meshinit-run CONFIG.toml``."""
    parser = argparse.ArgumentParser(
        prog="meshinit-run",
        description="Run a workload beside a service-mesh sidecar, configured from a TOML file.",
        allow_abbrev=False,
    )
    parser.add_argument("config", type=Path, help="Path to the TOML configuration file")
    args = parser.parse_args(argv)

    try:
        config = load_config_file(args.config)
    except ConfigurationError as e:
        print(f"meshinit-run: {e}", file=sys.stderr)
        return FATAL_EXIT_STATUS

    return execute(config)
