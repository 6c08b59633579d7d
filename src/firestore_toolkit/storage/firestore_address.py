from __future__ import annotations

from typing import Any

from firestore_toolkit.storage.errors import InvalidPathError


def segment_count(path: str) -> int:
    return len(path.split("/"))


class FirestoreAddressResolver:
    """Turns string paths into Firestore references.

    Only the parity of ``path.split("/")`` decides whether a path names a
    collection or a document:

    * with ``doc_id``: even -> ``collection(path).document(doc_id)``,
      odd -> ``document(f"{path}/{doc_id}")``.
    * new document without ``doc_id``: allowed only for a top-level
      collection (no ``/``), the id is generated by the client.
    * existing document without ``doc_id``: segment count must be odd.
    * listing: odd -> ``collection(path)``, even -> parent of ``document(path)``.

    The two ``doc_id``-less rules are not mirror images of each other. Both are
    kept as they are; see DESIGN.md. No I/O happens here, but the client may
    reject a handle it considers malformed.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def resolve_new_document(self, path: str, doc_id: str | None = None) -> Any:
        _require_path(path)
        if doc_id:
            return self._with_doc_id(path, doc_id)
        if "/" in path:
            raise InvalidPathError(
                f"Auto-generated document IDs are only supported for top-level collections: {path}",
                path=path,
            )
        return self._client.collection(path).document()

    def resolve_document(self, path: str, doc_id: str | None = None) -> Any:
        _require_path(path)
        if doc_id:
            return self._with_doc_id(path, doc_id)
        if segment_count(path) % 2 != 1:
            raise InvalidPathError(
                f"Invalid document path - must contain odd number of segments when doc_id is omitted: {path}",
                path=path,
            )
        return self._client.document(path)

    def resolve_collection(self, path: str) -> Any:
        _require_path(path)
        if segment_count(path) % 2 == 1:
            return self._client.collection(path)
        return self._client.document(path).parent

    def _with_doc_id(self, path: str, doc_id: str) -> Any:
        if segment_count(path) % 2 == 0:
            return self._client.collection(path).document(doc_id)
        return self._client.document(f"{path}/{doc_id}")


def _require_path(path: str) -> None:
    if not path:
        raise InvalidPathError("Path must not be empty.", path=path)
