"""
Command-line entry point.

``mjolnir analyze`` and ``mjolnir convert`` read one JSON request (from a
file or stdin) and write exactly one JSON response to stdout; the exit status
is 0 on success and 1 when the response is an error envelope. Logs go to
stderr. ``mjolnir serve`` runs the HTTP API under uvicorn.
"""

from __future__ import annotations

import argparse
import sys

from mjolnir.services.protocol import OPERATIONS, process_request


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mjolnir", description="Smart-contract analysis and ink! <-> Solidity conversion")
    commands = parser.add_subparsers(dest="command", required=True)

    for operation in OPERATIONS:
        command = commands.add_parser(operation, help=f"{operation} one JSON request")
        command.add_argument(
            "input",
            nargs="?",
            default="-",
            help="Request JSON file ('-' or omitted reads stdin)",
        )

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def read_request(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as handle:
        return handle.read()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("mjolnir.main:app", host=args.host, port=args.port)
        return 0

    try:
        raw = read_request(args.input)
    except OSError as exc:
        print(f"mjolnir: cannot read {args.input}: {exc.strerror}", file=sys.stderr)
        return 1

    status, body = process_request(raw, args.command)
    sys.stdout.write(body + "\n")
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
