#!/usr/bin/env python3
"""
Command-line interface for the order notification service.

Usage:
    uv run python cli.py <command> [options]

Commands:
    serve       Start the API server (the overdue scanner runs inside it)
    scan        Run one overdue scan now and print the report
    notify      Send a manual reminder for one order
    test        Run the test suite

Configuration comes from the same environment variables as the server
(EMAIL_*, TWILIO_*, DATA_DIR, LOG_LEVEL, ...).

Examples:
    uv run python cli.py serve --port 8080 --reload
    uv run python cli.py scan
    uv run python cli.py notify ord-1001
"""

import argparse
import subprocess
import sys


def _container():
    from api.main import build_container
    from shared.config import AppConfig
    from shared.logging_setup import configure_logging

    config = AppConfig.from_env()
    configure_logging(config.log_level)
    return build_container(config)


def scan_command(args: argparse.Namespace) -> int:
    report = _container().scanner.run_once()
    print(report.model_dump_json(indent=2))
    return 1 if report.error else 0


def notify_command(args: argparse.Namespace) -> int:
    result = _container().ordering.send_manual_reminder(args.order_id)
    if result is None:
        print(f"Order not found: {args.order_id}", file=sys.stderr)
        return 1
    print(result.model_dump_json(indent=2))
    return 0 if result.sent else 1


def test_command(args: argparse.Namespace) -> int:
    return subprocess.run([sys.executable, "-m", "pytest", *args.pytest_args]).returncode


def serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    print(f"Order notifications on http://{args.host}:{args.port} (docs at /docs)")
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cli.py",
        description="PressFlow order notifications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    serve = commands.add_parser("serve", help="start the API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="restart on code changes")
    serve.set_defaults(handler=serve_command)

    scan = commands.add_parser("scan", help="run one overdue-order scan")
    scan.set_defaults(handler=scan_command)

    notify = commands.add_parser("notify", help="send a manual reminder")
    notify.add_argument("order_id")
    notify.set_defaults(handler=notify_command)

    tests = commands.add_parser("test", help="run pytest")
    tests.add_argument("pytest_args", nargs=argparse.REMAINDER)
    tests.set_defaults(handler=test_command)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 2
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
