from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping

from firestore_toolkit.storage.errors import InvalidPathError, QueryError
from firestore_toolkit.storage.firestore_address import FirestoreAddressResolver
from firestore_toolkit.storage.firestore_store import snapshot_to_record
from firestore_toolkit.storage.query_spec import QuerySpec


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    data: list[dict[str, Any]] = field(default_factory=list)
    first_visible: Any = None
    last_visible: Any = None


class FirestoreQueryBuilder:
    """Filtered, ordered and keyset-paginated reads over one collection.

    ``last_visible`` of a page is meant to be passed back as ``start_after``
    (or ``first_visible`` as ``end_at``) to fetch the neighbouring page.
    """

    def __init__(self, client: Any) -> None:
        self._resolver = FirestoreAddressResolver(client)

    async def query(self, path: str, spec: QuerySpec | Mapping[str, Any] | None = None) -> QueryResult:
        if spec is None:
            spec = QuerySpec()
        elif not isinstance(spec, QuerySpec):
            spec = QuerySpec.model_validate(spec)

        try:
            query = self._build(self._resolver.resolve_collection(path), spec)
            snapshots = [snapshot async for snapshot in query.stream()]
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document query failed: path=%s", path)
            raise QueryError(path, exc) from exc

        if not snapshots:
            return QueryResult(data=[])
        return QueryResult(
            data=[snapshot_to_record(snapshot) for snapshot in snapshots],
            first_visible=snapshots[0],
            last_visible=snapshots[-1],
        )

    @staticmethod
    def _build(query: Any, spec: QuerySpec) -> Any:
        for condition in spec.where:
            query = query.where(condition.field, condition.operator, condition.value)
        if spec.order_by is not None:
            query = query.order_by(spec.order_by.field, direction=spec.order_by.direction)
        # Conflicting cursors are left to the client to reject.
        if spec.start_after is not None:
            query = query.start_after(spec.start_after)
        if spec.start_at is not None:
            query = query.start_at(spec.start_at)
        if spec.end_at is not None:
            query = query.end_at(spec.end_at)
        if spec.limit is not None:
            query = query.limit(spec.limit)
        return query
