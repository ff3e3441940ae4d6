"""Qt application entry point for the VitalScope monitor.

This module wires up argument parsing and logging, loads the monitor
configuration, builds the :class:`~vitalscope.core.session.MonitorSession`,
the :class:`~vitalscope.remote.stream_client.StreamClient` and the
:class:`~vitalscope.gui.main_window.MonitorWindow`, and starts the Qt event
loop. ``python main.py``, ``python -m vitalscope.gui.application`` and the
``vitalscope`` console script all flow through ``main()`` here.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Tuple

import pyqtgraph as pg
from PySide6.QtCore import QLoggingCategory
from PySide6.QtWidgets import QApplication

from ..config.channels import ConfigError
from ..config.runtime import MonitorConfig, load_config
from ..core.session import MonitorSession
from ..remote.stream_client import StreamClient
from ..remote.synthetic import synthetic_transport_factory
from ..remote.transport import TransportFactory, sse_transport_factory
from .main_window import MonitorWindow

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="VitalScope live vitals monitor")
    parser.add_argument("--url", type=str, default=None, help="Stream endpoint URL")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML monitor configuration file",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use the built-in synthetic signal source instead of a server",
    )
    parser.add_argument(
        "--demo-rate",
        type=float,
        default=None,
        help="Synthetic envelope rate in Hz (default: 20)",
    )
    parser.add_argument(
        "--demo-detach",
        action="append",
        default=[],
        metavar="SENSOR",
        help="Start the synthetic source with SENSOR detached (repeatable)",
    )
    parser.add_argument(
        "--window-seconds",
        type=float,
        default=None,
        help="Visible waveform window in seconds (default: 6)",
    )
    parser.add_argument(
        "--capacity",
        type=int,
        default=None,
        help="Nominal per-channel buffer capacity in samples (default: 600)",
    )
    parser.add_argument(
        "--reconnect-delay-ms",
        type=int,
        default=None,
        help="Fixed delay before reconnecting (default: 2000)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: INFO)",
    )
    return parser


def _parse_cli_args(
    argv: list[str],
) -> tuple[argparse.Namespace, list[str]]:
    parser = _build_arg_parser()
    args, qt_args = parser.parse_known_args(argv[1:])
    qt_argv = [argv[0], *qt_args]
    return args, qt_argv


def configure_logging(level: str | None = None) -> None:
    if level is None:
        level = "DEBUG" if os.getenv("VITALSCOPE_DEBUG") else "INFO"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    """Load the config file and apply command-line overrides on top of it."""
    cfg = load_config(args.config)
    if args.url is not None:
        cfg.stream_url = args.url
    if args.demo:
        cfg.demo = True
    if args.demo_rate is not None:
        cfg.demo_rate_hz = args.demo_rate
    if args.window_seconds is not None:
        cfg.window_seconds = args.window_seconds
    if args.capacity is not None:
        cfg.buffer_capacity = args.capacity
    if args.reconnect_delay_ms is not None:
        cfg.reconnect_delay_ms = args.reconnect_delay_ms
    return cfg.validated()


def transport_factory_for(
    cfg: MonitorConfig, *, detached: tuple[str, ...] = ()
) -> TransportFactory:
    if cfg.demo:
        return synthetic_transport_factory(cfg.demo_rate_hz, detached=detached)
    return sse_transport_factory(cfg.stream_url)


def create_app(
    argv: list[str] | None = None,
    *,
    config: MonitorConfig | None = None,
    detached: tuple[str, ...] = (),
) -> Tuple[QApplication, MonitorWindow]:
    """
    Create the QApplication, the session, the stream client and the window.

    The stream client is parented to the window; call
    ``window.client.connect_stream()`` (done by :func:`main`) to start.
    """
    qt_args = argv if argv is not None else sys.argv
    app = QApplication.instance() or QApplication(qt_args)

    # Suppress noisy QObject::connect warnings from QStyleHints and similar internals
    QLoggingCategory.setFilterRules("qt.core.qobject.connect=false")
    pg.setConfigOptions(antialias=True)

    session = MonitorSession(config)
    client = StreamClient(
        transport_factory_for(session.config, detached=detached),
        session,
        reconnect_delay_ms=session.config.reconnect_delay_ms,
    )
    window = MonitorWindow(session, client)
    client.setParent(window)
    return app, window


def main(argv: list[str] | None = None) -> None:
    raw_argv = argv if argv is not None else sys.argv
    args, qt_argv = _parse_cli_args(raw_argv)
    configure_logging(args.log_level)

    try:
        cfg = config_from_args(args)
    except ConfigError as exc:
        print(f"vitalscope: configuration error: {exc}", file=sys.stderr)
        raise SystemExit(2)

    source = f"synthetic @ {cfg.demo_rate_hz:g} Hz" if cfg.demo else cfg.stream_url
    logger.info("Starting VitalScope (source: %s)", source)

    app, win = create_app(qt_argv, config=cfg, detached=tuple(args.demo_detach))
    win.show()
    win.client.connect_stream()
    raise SystemExit(app.exec())


if __name__ == "__main__":
    main()
