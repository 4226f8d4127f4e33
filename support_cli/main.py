"""
CLI Main Entry Point

Parses command-line arguments, issues one request with HttpClient and
prints the outcome.

Usage:
    python -m support_cli get URL [-d key=value ...] [-i] [--json]
    python -m support_cli post URL [-d key=value ...] [--json-body]
    python -m support_cli put URL [-d key=value ...] [--payload] [--json-body]
    python -m support_cli patch URL [-d key=value ...] [--payload] [--json-body]
    python -m support_cli delete URL [-d key=value ...] [--payload]
    python -m support_cli purge URL [--host HOST]

Environment Variables:
    SUPPORT_SDK_LOG_LEVEL              Log level (default: WARNING)
    SUPPORT_SDK_LOG_FILE               Also write logs to this file
    SUPPORT_SDK_HTTP_CONNECT_TIMEOUT   Connect timeout in seconds
    SUPPORT_SDK_HTTP_TIMEOUT           Overall timeout in seconds
    SUPPORT_SDK_HTTP_VERIFY_PEER       Verify TLS certificates (true/false)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from support_sdk.config import HttpConfig
from support_sdk.http import HttpClient, HttpResult
from support_sdk.schemas.errors import SupportSdkException, ValidationError


logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_HTTP_ERROR = 2

VERBS = ("get", "post", "put", "patch", "delete", "purge")


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _add_request_arguments(parser: argparse.ArgumentParser, verb: str) -> None:
    parser.add_argument("url", type=str, help="Target URL")
    if verb != "purge":
        parser.add_argument(
            "--data", "-d",
            action="append",
            default=[],
            metavar="KEY=VALUE",
            help="Request data; query parameters for GET (repeatable)",
        )
    if verb in ("post", "put", "patch"):
        parser.add_argument(
            "--json-body",
            action="store_true",
            default=False,
            help="Send the data JSON-encoded",
        )
    if verb in ("put", "patch", "delete"):
        parser.add_argument(
            "--payload",
            action="store_true",
            default=False,
            help="Send the data as the body instead of the query string",
        )
    if verb == "purge":
        parser.add_argument(
            "--host",
            type=str,
            default=None,
            help="Host header to send with the purge",
        )
    parser.add_argument(
        "--header", "-H",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra request header (repeatable)",
    )
    parser.add_argument(
        "--cookie", "-b",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Cookie to send (repeatable)",
    )
    parser.add_argument(
        "--user", "-u",
        type=str,
        default=None,
        metavar="USER:PASSWORD",
        help="Basic authentication credentials",
    )
    parser.add_argument(
        "--include", "-i",
        action="store_true",
        default=False,
        help="Print response headers before the body",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output a machine-readable JSON summary instead of the body",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one subcommand per verb."""
    parser = argparse.ArgumentParser(
        prog="support-http",
        description="Issue HTTP requests through the support SDK client.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides SUPPORT_SDK_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file (overrides SUPPORT_SDK_LOG_FILE)",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=None,
        help="Seconds to wait while connecting",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed for the whole request",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        default=False,
        help="Verify the TLS certificate chain and host name",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=False,
        help="Log request and response header blocks",
    )

    subparsers = parser.add_subparsers(dest="command", help="HTTP method")
    for verb in VERBS:
        sub = subparsers.add_parser(verb, help=f"Send a {verb.upper()} request")
        _add_request_arguments(sub, verb)
    return parser


def parse_pairs(values: Sequence[str], option: str) -> dict[str, str]:
    """Parse KEY=VALUE arguments into a dict."""
    pairs: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValidationError(f"Expected KEY=VALUE for {option}, got {item!r}", field_path=option)
        pairs[key] = value
    return pairs


def parse_header(value: str) -> tuple[str, str]:
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise ValidationError(f"Expected 'NAME: VALUE' for --header, got {value!r}", field_path="header")
    return name.strip(), header_value.strip()


def build_config(args: argparse.Namespace) -> HttpConfig:
    config = HttpConfig.from_yaml(args.config) if args.config else HttpConfig()
    config = config.with_env_overrides()
    if args.connect_timeout is not None:
        config.connect_timeout = args.connect_timeout
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.verify:
        config.verify_peer = True
        config.verify_host = True
    if args.verbose:
        config.verbose = True
    return config


def send(client: HttpClient, args: argparse.Namespace) -> HttpResult:
    """Configure the client from the arguments and issue the request."""
    for value in args.header:
        client.set_header(*parse_header(value))
    for key, value in parse_pairs(args.cookie, "cookie").items():
        client.set_cookie(key, value)
    if args.user:
        username, _, password = args.user.partition(":")
        client.set_basic_authentication(username, password)

    verb = args.command
    if verb == "purge":
        client.purge(args.url, args.host)
        return client.result

    data = parse_pairs(args.data, "data")
    if verb == "get":
        client.get(args.url, data)
    elif verb == "post":
        client.post(args.url, data, as_json=args.json_body)
    elif verb == "delete":
        client.delete(args.url, data, payload=args.payload)
    else:
        getattr(client, verb)(args.url, data, payload=args.payload, as_json=args.json_body)
    return client.result


def print_result(result: HttpResult, args: argparse.Namespace) -> None:
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    if result.transport_error is not None:
        print(f"Error {result.error_code}: {result.error_message}", file=sys.stderr)
        return

    if args.include:
        for line in result.response_headers:
            print(line)
        print()
    sys.stdout.write(result.text)
    if result.text and not result.text.endswith("\n"):
        sys.stdout.write("\n")


def exit_code_for(result: HttpResult) -> int:
    if result.transport_error is not None:
        return EXIT_RUNTIME_ERROR
    if result.http_error is not None:
        return EXIT_HTTP_ERROR
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    level = args.log_level or os.getenv("SUPPORT_SDK_LOG_LEVEL", "WARNING")
    if args.verbose and not args.log_level:
        level = "DEBUG"
    setup_logging(level, log_file=args.log_file or os.getenv("SUPPORT_SDK_LOG_FILE"))

    try:
        with HttpClient(build_config(args)) as client:
            result = send(client, args)
    except SupportSdkException as e:
        logger.error(f"{e.code}: {e.message}")
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    print_result(result, args)
    return exit_code_for(result)
