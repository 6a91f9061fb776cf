"""Command-line interface for the small-service user registry."""

from __future__ import annotations
import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence, Tuple

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Execute `pip install -e .` to install dependencies."
    ) from exc

from smallservice.arithmetic import OPERATIONS, calculate, format_result
from smallservice.config import load_settings
from smallservice.models import User

logger = logging.getLogger("smallservice.main")

_DEFAULT_SERVICE_URL = "http://localhost:8080"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Small service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP user registry")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from SERVER_ADDR)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: 8080)")
    serve_parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: SMALL_SERVICE_CONFIG or config/settings.yaml)",
    )

    calc_parser = subparsers.add_parser("calc", help="Run a simple arithmetic operation")
    calc_parser.add_argument("operation", choices=sorted(OPERATIONS), help="Operation to apply")
    calc_parser.add_argument("a", help="First number")
    calc_parser.add_argument("b", help="Second number")

    list_parser = subparsers.add_parser("list-users", help="List users held by a running service")
    list_parser.add_argument(
        "--service-url",
        default=_DEFAULT_SERVICE_URL,
        help=f"Base URL of a running service (default: {_DEFAULT_SERVICE_URL})",
    )

    add_parser = subparsers.add_parser("add-user", help="Create a user on a running service")
    add_parser.add_argument("name", help="Display name for the user")
    add_parser.add_argument("email", help="Email address for the user")
    add_parser.add_argument(
        "--service-url",
        default=_DEFAULT_SERVICE_URL,
        help=f"Base URL of a running service (default: {_DEFAULT_SERVICE_URL})",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "calc", "list-users", "add-user"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _parse_numbers(a: str, b: str) -> Tuple[float, float]:
    try:
        first = float(a)
    except ValueError:
        raise ValueError(f"invalid first number: {a}") from None
    try:
        second = float(b)
    except ValueError:
        raise ValueError(f"invalid second number: {b}") from None
    return first, second


def _run_calc(operation: str, a: str, b: str) -> int:
    try:
        first, second = _parse_numbers(a, b)
        result = calculate(operation, first, second)
    except (ValueError, ZeroDivisionError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(format_result(operation, first, second, result))
    return 0


def _serve(*, config_path: str | None, host: str | None, port: int | None) -> int:
    from smallservice.service import create_app, seed_demo_users
    from smallservice.storage import Storage
    import uvicorn

    settings = load_settings(Path(config_path).expanduser() if config_path else None)
    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("Starting server with config: %s", settings)

    storage = Storage(max_users=settings.max_users)
    if settings.seed_demo_users:
        seed_demo_users(storage)

    app = create_app(storage=storage, settings=settings)

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Server listening on http://%s:%s", bind_host, bind_port)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level="debug" if settings.debug else "info",
    )
    return 0


def _user_from_payload(item: dict) -> User:
    created_at = datetime.fromisoformat(str(item["created_at"]))
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return User(
        id=str(item["id"]),
        name=str(item["name"]),
        email=str(item["email"]),
        created_at=created_at,
    )


def _list_users(service_url: str) -> int:
    endpoint = service_url.rstrip("/") + "/users"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact service: {exc}")
        return 1

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    try:
        payload = response.json()
        users = [_user_from_payload(item) for item in payload.get("users", [])]
    except (ValueError, KeyError, TypeError, AttributeError):
        print("Service returned an unexpected response format.")
        return 1

    if not users:
        print("No users are currently registered.")
        return 0

    print(f"{payload.get('total', len(users))} user(s) found (* = created in the last 24h):")
    print(f"  {'ID':<12}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 92)
    for user in users:
        marker = "*" if user.is_recent() else " "
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{marker} {user.id:<12}  {user.name:<24}  {user.email:<32}  {created}")
    return 0


def _add_user(service_url: str, name: str, email: str) -> int:
    endpoint = service_url.rstrip("/") + "/users"

    try:
        response = httpx.post(endpoint, json={"name": name, "email": email}, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact service: {exc}")
        return 1

    if response.status_code != 201:
        print(f"Failed to create user: {response.text.strip()}")
        return 1

    try:
        user = _user_from_payload(response.json())
    except (ValueError, KeyError, TypeError):
        print("Service returned an unexpected response format.")
        return 1

    print(f"Created user {user.id}: {user.name} <{user.email}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "serve":
        return _serve(config_path=args.config, host=args.host, port=args.port)
    if args.command == "calc":
        return _run_calc(args.operation, args.a, args.b)
    if args.command == "list-users":
        return _list_users(args.service_url)
    if args.command == "add-user":
        return _add_user(args.service_url, args.name, args.email)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
