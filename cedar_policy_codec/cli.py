"""Command-line entry point: format, inspect, pull, and push policies."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, TextIO

import httpx

from .client import PolicyServiceClient, PolicyServiceError
from .config import load_config
from .policy import PolicyCodecError, parse_policy, serialize_policy
from .records import policy_to_dict

logger = logging.getLogger(__name__)

EXIT_SERVICE_ERROR = 1
EXIT_CODEC_ERROR = 2
EXIT_NOT_CANONICAL = 3


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cedar-policy", description="Cedar policy codec and policy service tool"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    fmt = sub.add_parser("fmt", help="print a policy in canonical form")
    fmt.add_argument("file", nargs="?", help="policy file (default: stdin)")
    fmt.add_argument(
        "--check",
        action="store_true",
        help=f"exit {EXIT_NOT_CANONICAL} instead of printing if the input is not canonical",
    )

    show = sub.add_parser("show", help="print a policy as structured JSON")
    show.add_argument("file", nargs="?", help="policy file (default: stdin)")
    show.add_argument("--id", default="", help="policy id to attach")

    sub.add_parser("pull", help="list remote policies as structured JSON")

    push = sub.add_parser("push", help="send a policy file to the policy service")
    push.add_argument("file", help="policy file")
    push.add_argument("--id", required=True, help="policy id")
    push.add_argument(
        "--update", action="store_true", help="replace an existing policy instead of creating"
    )
    return parser.parse_args(argv)


def _read_source(path: Optional[str], stdin: TextIO) -> str:
    if path is None or path == "-":
        return stdin.read()
    with open(path, encoding="utf-8") as fh:
        return fh.read()


def _emit_json(data: object, out: TextIO) -> None:
    out.write(json.dumps(data, indent=2) + "\n")


def run(
    args: argparse.Namespace,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """Execute a parsed command and return its exit code."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    if args.command == "fmt":
        source = _read_source(args.file, stdin)
        canonical = serialize_policy(parse_policy(source))
        if args.check:
            if source.strip() != canonical:
                logger.info("%s is not in canonical form", args.file or "<stdin>")
                return EXIT_NOT_CANONICAL
            return 0
        stdout.write(canonical + "\n")
        return 0

    if args.command == "show":
        doc = parse_policy(_read_source(args.file, stdin), policy_id=args.id)
        _emit_json(policy_to_dict(doc), stdout)
        return 0

    config = load_config()
    logger.info("policy service at %s", config.base_url)
    with PolicyServiceClient(config) as client:
        if args.command == "pull":
            _emit_json([policy_to_dict(doc) for doc in client.list_policies()], stdout)
            return 0

        doc = parse_policy(_read_source(args.file, stdin), policy_id=args.id)
        stored = client.update_policy(doc) if args.update else client.create_policy(doc)
        logger.info("%s policy %r", "updated" if args.update else "created", stored.id)
        _emit_json(policy_to_dict(stored), stdout)
        return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    try:
        code = run(args)
    except PolicyCodecError as exc:
        logger.error("invalid policy: %s", exc)
        sys.exit(EXIT_CODEC_ERROR)
    except (PolicyServiceError, httpx.HTTPError) as exc:
        logger.error("policy service error: %s", exc)
        sys.exit(EXIT_SERVICE_ERROR)
    except OSError as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_SERVICE_ERROR)
    sys.exit(code)


if __name__ == "__main__":
    main()
