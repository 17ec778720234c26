"""
Command line access to a predicate store.

Usage:
    predicate-store tables
    predicate-store query Users '{"userId": "u1"}' [--single] [--select name,email]
    predicate-store insert Users '{"userId": "u1", "name": "Al"}'
    predicate-store update Users '{"userId": "u1"}' '{"name": "Bo", "nickname": null}'
    predicate-store delete Users '{"userId": "u1"}'
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from .core.store import PredicateStore, create_store
from .db.dynamodb.errors import DdbConflict, DdbError
from .observability.logging import configure_logging, get_logger
from .settings import get_settings

log = get_logger("cli")


def _json_object(raw: str) -> dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}") from e
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return value


def _attribute_list(raw: str) -> list[str]:
    return [a.strip() for a in raw.split(",") if a.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="predicate-store", description="Query DynamoDB tables by predicate")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("tables", help="List tables and their key schemas")

    q = sub.add_parser("query", help="Items matching a predicate")
    q.add_argument("table")
    q.add_argument("predicate", type=_json_object)
    q.add_argument("--single", action="store_true", help="Return only the first match")
    q.add_argument("--select", type=_attribute_list, default=None, help="Comma-separated attributes to keep")

    i = sub.add_parser("insert", help="Insert an item")
    i.add_argument("table")
    i.add_argument("item", type=_json_object)

    u = sub.add_parser("update", help="Set/remove attributes of the item a predicate identifies")
    u.add_argument("table")
    u.add_argument("predicate", type=_json_object)
    u.add_argument("attributes", type=_json_object)

    d = sub.add_parser("delete", help="Delete the item a predicate identifies")
    d.add_argument("table")
    d.add_argument("predicate", type=_json_object)

    return parser


def run(args: argparse.Namespace, store: PredicateStore) -> Any:
    if args.command == "tables":
        out = {}
        for table in store.tables():
            schema = store.schema(table)
            out[table] = {"partitionKey": schema.partition_key, "sortKey": schema.sort_key}
        return out
    if args.command == "query":
        return store.query(args.table, args.predicate, args.single, args.select)
    if args.command == "insert":
        store.insert(args.table, args.item)
        return {"ok": True}
    if args.command == "update":
        store.update(args.table, args.predicate, args.attributes)
        return {"ok": True}
    if args.command == "delete":
        store.delete(args.table, args.predicate)
        return {"ok": True}
    raise ValueError(f"Unknown command {args.command!r}")


def main(argv: list[str] | None = None, *, store: PredicateStore | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    # stdout carries the JSON result.
    configure_logging(level=settings.log_level, stream=sys.stderr)
    log.debug("cli_settings", **settings.to_log_safe_dict())

    try:
        result = run(args, store or create_store(settings))
    except DdbConflict as e:
        print(json.dumps({"error": "conflict", "message": str(e)}), file=sys.stderr)
        return 2
    except DdbError as e:
        print(json.dumps({"error": type(e).__name__, "message": str(e)}), file=sys.stderr)
        return 1

    print(json.dumps(result, default=str, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
