# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: command line launcher for the connection tracking agent. reads the configuration, builds the
reporters (JSON file, kafka topic, optional HTTP status view), and runs the ConnectionTracker loop in
the foreground until the process is terminated. configuration problems are reported as usage errors
before the loop starts.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import argparse  # for parsing command line arguments
import logging  # for console logging and quieting library loggers
import sys
from collections.abc import Sequence

# load environment variables from .env file before reading the config
try:
    from dotenv import load_dotenv

    load_dotenv()  # load .env file if it exists
except ImportError:
    pass  # python-dotenv is optional, but recommended

from agent.conn_tracker import ConnectionTracker
from app.config import Config, load_config
from reporters.fanout import ReporterFanout
from reporters.file_writer import JsonFileReporter
from reporters.kafka_publisher import KafkaReporter
from reporters.status_server import LatestSnapshot, start_status_server

log = logging.getLogger("conntrack")


def _colors() -> tuple[str, str, str]:
    # ANSI colours when colorama is around (Windows terminals need its init), plain text otherwise
    try:
        from colorama import init as _colorama_init

        _colorama_init(strip=False)  # keep codes, only convert where the console needs it
        return "\x1b[35m", "\x1b[36m", "\x1b[0m"
    except Exception:
        return "", "", ""


def print_banner(cfg: Config) -> None:
    purple, cyan, reset = _colors()
    ports = ",".join(str(p) for p in sorted(cfg.ports)) or "-"
    targets = []
    if cfg.output:
        targets.append(f"file {cfg.output}")
    if cfg.broker and cfg.topic:
        targets.append(f"kafka {cfg.broker}/{cfg.topic}")
    if cfg.serve_port:
        targets.append(f"http {cfg.serve_host}:{cfg.serve_port}")
    print(f"{purple}⬩{reset}{cyan}➢ {reset} conntrack agent on {purple}{cfg.host or '?'}{reset}")
    print(f"   ports {ports} every {cfg.interval:g}s -> {', '.join(targets)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="conntrack-agent",
        description="report the distinct remote IPs connected to selected local TCP ports",
    )
    parser.add_argument(
        "-p", "--ports", help="comma-separated list of local ports to monitor (e.g. 4317,4318)"
    )
    parser.add_argument("-o", "--output", help="JSON output file path")
    parser.add_argument("-b", "--broker", help="kafka bootstrap address (host:port)")
    parser.add_argument("-t", "--topic", help="kafka topic to publish per-port entries to")
    parser.add_argument("--interval", type=float, help="seconds between captures (default 10)")
    parser.add_argument("--tcp4", dest="tcp4_path", help="IPv4 table path (default /proc/net/tcp)")
    parser.add_argument("--tcp6", dest="tcp6_path", help="IPv6 table path (default /proc/net/tcp6)")
    parser.add_argument(
        "--serve", dest="serve_port", type=int, help="serve the latest snapshot over HTTP on this port"
    )
    parser.add_argument("--config", help="JSON config file (default data/config.json)")
    parser.add_argument("--log-level", dest="log_level", help="logging level (default WARNING)")
    parser.add_argument("--once", action="store_true", help="capture and deliver once, then exit")
    return parser


def _validate(parser: argparse.ArgumentParser, cfg: Config) -> None:
    if not cfg.ports_given:
        parser.error("no ports given, use --ports or CONNTRACK_PORTS")
    if bool(cfg.broker) != bool(cfg.topic):
        parser.error("--broker and --topic must be given together")
    if not cfg.output and not cfg.broker:
        parser.error("at least one of --output or --broker/--topic is required")
    if cfg.interval <= 0:
        parser.error("--interval must be positive")


def build_reporters(cfg: Config) -> ReporterFanout:
    fanout = ReporterFanout()
    if cfg.output:
        fanout.add(JsonFileReporter(cfg.output))
    if cfg.broker and cfg.topic:
        fanout.add(KafkaReporter(cfg.broker, cfg.topic))
    if cfg.serve_port:
        latest = LatestSnapshot()
        fanout.add(latest)
        start_status_server(latest, cfg.serve_host, cfg.serve_port)
    return fanout


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # keep library chatter out of the console
    logging.getLogger("waitress").setLevel(logging.ERROR)
    logging.getLogger("kafka").setLevel(logging.ERROR)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "ports": args.ports,
        "output": args.output,
        "broker": args.broker,
        "topic": args.topic,
        "interval": args.interval,
        "tcp4_path": args.tcp4_path,
        "tcp6_path": args.tcp6_path,
        "serve_port": args.serve_port,
        "log_level": args.log_level,
        "once": args.once or None,
    }
    try:
        cfg = load_config(overrides, config_file=args.config)
    except (TypeError, ValueError) as exc:
        parser.error(f"invalid configuration: {exc}")

    _validate(parser, cfg)
    _setup_logging(cfg.log_level)
    if not cfg.ports:
        log.warning("port list contains no valid ports, snapshots will be empty")

    fanout = build_reporters(cfg)
    tracker = ConnectionTracker(
        ports=cfg.ports,
        publish=fanout.publish,
        host=cfg.host,
        interval_sec=cfg.interval,
        tcp4_source=cfg.tcp4_path,
        tcp6_source=cfg.tcp6_path,
    )

    if not cfg.once:
        print_banner(cfg)
    try:
        if cfg.once:
            tracker.run_once()
        else:
            tracker.run()
    except KeyboardInterrupt:
        print("\nshutting down...")
    finally:
        fanout.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
