#!/usr/bin/env python3
"""
Command-line interface for the order dispatch service.

Usage:
    uv run python cli.py [command] [options]

Commands:
    preview     Render the customer and owner messages for a payload
    sign        Compute the signature header value for a request body
    test        Run the test suite
    serve       Start the API server

Examples:
    uv run python cli.py preview order.json
    uv run python cli.py preview order.json --dry-run --owner +15550001111
    uv run python cli.py sign order.json --secret s3cret
    uv run python cli.py serve --reload
"""

import argparse
import json
import subprocess
import sys


def _read_body(path: str) -> bytes:
    """Read a request body from a file, or stdin for '-'."""
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def run_preview(path: str, dry_run: bool, owner: str) -> None:
    """Print the rendered messages, optionally dispatching to a mock channel."""
    from order_dispatch.channels import MockChannel
    from order_dispatch.dispatcher import OrderDispatcher
    from order_dispatch.models import normalize_payload
    from order_dispatch.templates import format_customer_message, format_owner_message

    try:
        body = json.loads(_read_body(path))
    except ValueError as e:
        print(f"Invalid JSON: {e}")
        sys.exit(1)

    payload = normalize_payload(body)
    customer_message = format_customer_message(payload)

    print("=== Customer message ===")
    print(customer_message)
    print()
    print("=== Owner message ===")
    print(format_owner_message(customer_message))

    if dry_run:
        channel = MockChannel()
        result = OrderDispatcher(channel, owner or None).dispatch(payload)
        print()
        print("=== Dry-run results ===")
        print(json.dumps({"ok": True, "results": result.to_results()}, indent=2, ensure_ascii=False))


def run_sign(path: str, secret: str) -> None:
    """Print the signature header value for a body."""
    from order_dispatch.auth import compute_signature

    print(f"sha256={compute_signature(_read_body(path), secret)}")


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Order Dispatch CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s preview order.json
  %(prog)s preview - --dry-run --owner +15550001111 < order.json
  %(prog)s sign order.json --secret s3cret
  %(prog)s test -v
  %(prog)s serve --reload
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Preview command
    preview_parser = subparsers.add_parser("preview", help="Render messages for a payload")
    preview_parser.add_argument("path", help="JSON payload file, or '-' for stdin")
    preview_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Also dispatch to an in-memory channel and print the results",
    )
    preview_parser.add_argument("--owner", default="", help="Owner number for the dry run")

    # Sign command
    sign_parser = subparsers.add_parser("sign", help="Compute a request signature")
    sign_parser.add_argument("path", help="Body file, or '-' for stdin")
    sign_parser.add_argument("--secret", required=True, help="Shared signing secret")

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command == "preview":
        run_preview(args.path, args.dry_run, args.owner)
    elif args.command == "sign":
        run_sign(args.path, args.secret)
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
