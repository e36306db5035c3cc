"""Command-line access to roles, profiles and users.

This module serves as a CLI wrapper around security_client.core.security.
"""
from __future__ import annotations
import argparse
import asyncio
import json
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from security_client.config.settings import load_settings
from security_client.core.security import (
    HttpQueryTransport,
    Profile,
    SecurityClient,
    SecurityDocument,
    SecurityError,
    User,
)

KINDS = {"role": "roles", "profile": "profiles", "user": "users"}


def _json_arg(value: str):
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return parsed


def _serialize(value):
    """Convert wrappers (and search results holding them) to plain JSON data."""
    if isinstance(value, SecurityDocument):
        data = {"_id": value.id, "body": _serialize(value.content)}
        if isinstance(value, Profile) and value.has_roles:
            data["body"]["roles"] = _serialize(value.roles)
        elif isinstance(value, User) and value.profile is not None:
            data["body"]["profile"] = _serialize(value.profile)
        if value.version is not None:
            data["_version"] = value.version
        return data
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Security controller helper")
    parser.add_argument("--api-url", default=None, help="Backend URL (default: SECURITY_API_URL)")
    parser.add_argument("--token", default=None, help="Bearer token (default: SECURITY_API_TOKEN)")

    kinds = parser.add_subparsers(dest="kind")
    for kind in KINDS:
        kind_parser = kinds.add_parser(kind)
        verbs = kind_parser.add_subparsers(dest="verb")

        get = verbs.add_parser("get")
        get.add_argument("id")

        search = verbs.add_parser("search")
        search.add_argument("--filters", type=_json_arg, default={})

        create = verbs.add_parser("create")
        create.add_argument("--id", default=None)
        create.add_argument("--body", type=_json_arg, required=True)

        delete = verbs.add_parser("delete")
        delete.add_argument("id")

        if kind != "role":
            get.add_argument("--hydrate", action="store_true")
            search.add_argument("--hydrate", action="store_true")
        if kind != "user":
            create.add_argument("--replace", action="store_true",
                                help="Replace the existing entity instead of failing")
    return parser


async def run_command(security: SecurityClient, args: argparse.Namespace):
    """Execute one parsed command through the awaitable client operations."""
    kind, verb = args.kind, args.verb
    hydrate = getattr(args, "hydrate", False)

    if verb == "get":
        operation = getattr(security, f"get_{kind}_async")
        if kind == "role":
            return await operation(args.id)
        return await operation(args.id, hydrate)

    if verb == "search":
        operation = getattr(security, f"search_{KINDS[kind]}_async")
        if kind == "role":
            return await operation(args.filters)
        return await operation(args.filters, hydrate)

    if verb == "create":
        options = None
        if getattr(args, "replace", False):
            options = {"replaceIfExist": True} if kind == "role" else {"updateIfExist": True}
        operation = getattr(security, f"create_{kind}_async")
        return await operation(args.body, args.id, options)

    if verb == "delete":
        operation = getattr(security, f"delete_{kind}_async")
        return {"_id": await operation(args.id)}

    raise ValueError(f"Unknown command: {kind} {verb}")


def main() -> None:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.kind or not args.verb:
        parser.print_help()
        return

    config = load_settings()
    transport = HttpQueryTransport(
        args.api_url or config.api_url,
        token=args.token or config.api_token,
        query_path=config.query_path,
        timeout=config.request_timeout,
        max_workers=config.max_workers,
    )
    security = SecurityClient(transport, promise_support=True)

    try:
        result = asyncio.run(run_command(security, args))
    except SecurityError as e:
        print(f"[security] Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        transport.close()

    print(json.dumps(_serialize(result), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
