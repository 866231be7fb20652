"""
Command-line entry point for the Janus gateway.

    janus server [--config config.toml]
    janus generate-jwt --subject svc-a [--config config.toml]
    janus version
"""

import argparse
import os
import sys
from typing import List, Optional

from service_gateway import __version__
from shared.config import DEFAULT_CONFIG_PATH, load_settings
from shared.errors import AuthError

from .auth.tokens import issue_token


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="janus", description="Janus API gateway")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    server = subparsers.add_parser("server", help="Start the web server")
    server.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH, help="Path to the TOML config file")

    generate = subparsers.add_parser("generate-jwt", help="Generate a JWT token")
    generate.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH, help="Path to the TOML config file")
    generate.add_argument("-s", "--subject", required=True,
                          help="Subject for the JWT (e.g., user ID or identifier)")

    subparsers.add_parser("version", help="Show version information")
    return parser


def _version_string() -> str:
    build = os.getenv("BUILD_SHA") or os.getenv("GITHUB_SHA") or "dev"
    return f"{__version__} ({build})"


def _run_server(config: str) -> int:
    from .main import GatewayService

    service = GatewayService(load_settings(config))
    service.run()
    return 0


def _generate_jwt(config: str, subject: str) -> int:
    settings = load_settings(config)
    if not settings.jwt.private_key:
        print("jwt.private_key is not configured", file=sys.stderr)
        return 1
    try:
        token = issue_token(subject, settings.jwt.private_key, expires_in=settings.jwt.token_ttl_seconds)
    except AuthError as exc:
        print(f"Failed to generate token: {exc.message}: {exc.details.get('error', '')}", file=sys.stderr)
        return 1
    print(f"Generated JWT token for subject '{subject}':")
    print(token)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "server":
            return _run_server(args.config)
        if args.command == "generate-jwt":
            return _generate_jwt(args.config, args.subject)
        print(_version_string())
        return 0
    except (FileNotFoundError, ValueError) as exc:
        # pydantic and TOML decode errors are both ValueErrors
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
