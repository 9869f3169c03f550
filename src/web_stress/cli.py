"""Command line interface for Web Stress Tools."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from tqdm.contrib.logging import logging_redirect_tqdm

from .browser import session_factory
from .core.config import (
    BROWSER_ENGINES,
    ConfigurationError,
    RunConfig,
    describe_configuration,
    load_configuration,
    parse_bool,
)
from .recon.orchestrator import Orchestrator
from .ui.console import QuitKeyListener, print_summary
from .ui.status import LoggingStatusSink, ProgressStatusSink

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
EXIT_INTERRUPTED = 130

logger = logging.getLogger(__name__)


def _bool_value(value: str) -> bool:
    try:
        return parse_bool(value)
    except ConfigurationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="web-stress",
        description=(
            "Generating synthetic web traffic for your app to help with benchmarking "
            "and debugging of performance issues."
        ),
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "-u", "--url", help="starting URL for recursive browsing through extracted links on pages"
    )
    target.add_argument(
        "-l", "--url-list", type=Path, help="file path to a list of URLs (one per line) to browse"
    )
    parser.add_argument("-c", "--config", type=Path, help="file path to the TOML configuration, see Config.toml")
    parser.add_argument(
        "--same-domain",
        type=_bool_value,
        metavar="{true,false}",
        help="keep extracted links on the seed's domain (default: true)",
    )
    parser.add_argument(
        "--same-subdomain",
        type=_bool_value,
        metavar="{true,false}",
        help="keep extracted links on the seed's sub-domain (default: true)",
    )
    parser.add_argument("--depth", type=int, help="how deep to go with recursive browsing (default: 1)")
    parser.add_argument("--repeat", type=int, help="how many times to repeat browsing (default: 1)")
    parser.add_argument("--users", type=int, help="number of simulated users (default: 1)")
    parser.add_argument("--wait-ms", type=int, help="how many milliseconds to wait on each page (default: 500)")
    parser.add_argument(
        "--browser",
        choices=BROWSER_ENGINES,
        help="page loader: plain HTTP or headless Chromium (default: $BROWSER_ENGINE or http)",
    )
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="run Chromium headless (default comes from $HEADLESS, otherwise true)",
    )
    parser.add_argument("--no-progress", action="store_true", help="log status lines instead of progress bars")
    parser.add_argument(
        "--stop-on-quit",
        action="store_true",
        help="make the quit key stop simulated users at their next page or pause",
    )
    parser.add_argument("--log-level", help="logging level (default: $LOG_LEVEL or WARNING)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RunConfig:
    overrides = {
        "same_domain": args.same_domain,
        "same_subdomain": args.same_subdomain,
        "depth": args.depth,
        "repeat": args.repeat,
        "users": args.users,
        "wait_ms": args.wait_ms,
    }
    return load_configuration(
        url=args.url,
        url_list_path=args.url_list,
        config_path=args.config,
        overrides=overrides,
        engine=args.browser,
        headless=args.headless,
    )


def configure_logging(level_name: Optional[str], *, verbose_default: bool) -> None:
    name = (level_name or os.getenv("LOG_LEVEL") or ("INFO" if verbose_default else "WARNING")).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for noisy in ("urllib3", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def install_signal_handlers(event: threading.Event) -> None:
    """First SIGINT/SIGTERM stops waiting; the next one interrupts the process."""

    def handler(signum, frame):  # noqa: ARG001
        logger.warning(
            "Received %s, no longer waiting for users (send it again to abort)",
            signal.Signals(signum).name,
        )
        event.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)

    print("🔍 Loading configuration...")
    try:
        config = build_config(args)
    except ConfigurationError as exc:
        print(f"[!] {exc}")
        return 2

    configure_logging(args.log_level, verbose_default=args.no_progress)
    print("[+] Configuration loaded")
    for line in describe_configuration(config):
        print(f"    {line}")

    shutdown = threading.Event()
    install_signal_handlers(shutdown)
    if sys.stdin is not None and sys.stdin.isatty():
        QuitKeyListener(shutdown, sys.stdin).start()
        print("press 'q' + Enter to stop waiting ...")

    user_count = config.settings.user_count
    print(f"⌛ Spawning threads ({user_count})")
    sink = LoggingStatusSink(user_count) if args.no_progress else ProgressStatusSink(user_count)
    orchestrator = Orchestrator(
        session_factory(config.browser),
        sink,
        shutdown_event=shutdown,
        cancel_on_shutdown=args.stop_on_quit,
    )

    try:
        with logging_redirect_tqdm():
            summary = orchestrator.run(config.settings, config.target)
    finally:
        if isinstance(sink, ProgressStatusSink):
            sink.close()

    print_summary(summary)
    return 0 if summary.all_completed else 1


def main() -> None:
    try:
        code = run_cli()
    except KeyboardInterrupt:
        print("[!] Interrupted by user, abandoning running users")
        sys.stdout.flush()
        # Worker threads are not daemons; exiting normally would join them.
        os._exit(EXIT_INTERRUPTED)
    sys.exit(code)


if __name__ == "__main__":
    main()
