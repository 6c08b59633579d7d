#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Any

from pydantic import ValidationError

from firestore_toolkit.firestore_client import create_firestore_client
from firestore_toolkit.settings import load_settings
from firestore_toolkit.storage.errors import DocumentOperationError, InvalidPathError
from firestore_toolkit.storage.firestore_query import FirestoreQueryBuilder
from firestore_toolkit.storage.firestore_store import FirestoreDocumentStore
from firestore_toolkit.storage.query_spec import QueryCondition, QueryOrder, QuerySpec


LOGGER = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read or query Firestore documents by path.")
    parser.add_argument("path", help="Collection or document path (e.g. users or users/u1/posts).")
    parser.add_argument("--id", dest="doc_id", default=None, help="Read a single document with this id.")
    parser.add_argument(
        "--where",
        nargs=3,
        action="append",
        default=[],
        metavar=("FIELD", "OP", "VALUE"),
        help="Filter condition. VALUE is parsed as JSON when possible.",
    )
    parser.add_argument("--order-by", default=None, help="Field to order by.")
    parser.add_argument("--desc", action="store_true", help="Order descending.")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of documents.")
    return parser.parse_args()


def parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_query_spec(args: argparse.Namespace) -> QuerySpec:
    return QuerySpec(
        where=[
            QueryCondition(field=field_name, operator=operator, value=parse_value(value))
            for field_name, operator, value in args.where
        ],
        order_by=(
            QueryOrder(field=args.order_by, direction="desc" if args.desc else "asc")
            if args.order_by
            else None
        ),
        limit=args.limit,
    )


async def run(args: argparse.Namespace, client: Any) -> list[dict[str, Any] | None]:
    if args.doc_id:
        return [await FirestoreDocumentStore(client).read(args.path, args.doc_id)]
    result = await FirestoreQueryBuilder(client).query(args.path, build_query_spec(args))
    return result.data


def main() -> int:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level_value, format="%(message)s")
    args = parse_args()
    client = create_firestore_client(settings)

    try:
        records = asyncio.run(run(args, client))
    except (DocumentOperationError, InvalidPathError, ValidationError) as exc:
        LOGGER.error("query_documents failed: %s", exc)
        return 1
    print(json.dumps(records, ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
