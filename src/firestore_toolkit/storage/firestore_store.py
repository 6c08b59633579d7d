from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Mapping

from firestore_toolkit.storage.errors import (
    DeleteError,
    DocumentNotFoundError,
    InvalidPathError,
    ReadError,
    UpdateError,
    WriteError,
)
from firestore_toolkit.storage.firestore_address import FirestoreAddressResolver
from firestore_toolkit.storage.payload import sanitize_payload
from firestore_toolkit.utils import now_ms


LOGGER = logging.getLogger(__name__)

LAST_UPDATED_FIELD = "lut"


@dataclass(frozen=True)
class WriteResult:
    reference: Any
    document_id: str


def snapshot_to_record(snapshot: Any) -> dict[str, Any]:
    data = snapshot.to_dict() or {}
    return {**data, "id": snapshot.id}


class FirestoreDocumentStore:
    """CRUD on Firestore documents addressed by string paths."""

    def __init__(self, client: Any, *, clock: Callable[[], int] = now_ms) -> None:
        self._resolver = FirestoreAddressResolver(client)
        self._clock = clock

    @property
    def resolver(self) -> FirestoreAddressResolver:
        return self._resolver

    async def create(
        self,
        path: str,
        doc_id: str | None,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> WriteResult:
        """Set a document, generating its id when ``doc_id`` is omitted.

        ``merge=False`` replaces the whole document.
        """

        payload = sanitize_payload(data)
        try:
            ref = self._resolver.resolve_new_document(path, doc_id)
            await ref.set(payload, merge=merge)
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document write failed: path=%s doc_id=%s", path, doc_id)
            raise WriteError(path, exc, doc_id=doc_id) from exc
        return WriteResult(reference=ref, document_id=ref.id)

    async def read(self, path: str, doc_id: str | None = None) -> dict[str, Any] | None:
        try:
            ref = self._resolver.resolve_document(path, doc_id)
            snapshot = await ref.get()
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document read failed: path=%s doc_id=%s", path, doc_id)
            raise ReadError(path, exc, doc_id=doc_id) from exc
        if not snapshot.exists:
            return None
        return snapshot_to_record(snapshot)

    async def list_documents(self, path: str, doc_id: str | None = None) -> list[dict[str, Any] | None]:
        """List a whole collection, or wrap a single lookup in a list.

        With ``doc_id`` the result is ``[record]`` or ``[None]``.
        """

        try:
            if doc_id:
                snapshot = await self._resolver.resolve_document(path, doc_id).get()
                return [snapshot_to_record(snapshot) if snapshot.exists else None]
            collection = self._resolver.resolve_collection(path)
            return [snapshot_to_record(snapshot) async for snapshot in collection.stream()]
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document list failed: path=%s doc_id=%s", path, doc_id)
            raise ReadError(path, exc, doc_id=doc_id) from exc

    async def update(self, path: str, doc_id: str | None, data: Mapping[str, Any]) -> Any:
        """Partially update an existing document and stamp ``lut``.

        Dotted keys such as ``"profile.age"`` update nested fields.
        """

        payload = sanitize_payload(data)
        payload[LAST_UPDATED_FIELD] = self._clock()
        try:
            ref = self._resolver.resolve_document(path, doc_id)
            await ref.update(payload)
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document update failed: path=%s doc_id=%s", path, doc_id)
            if exc.__class__.__name__ == "NotFound":
                raise DocumentNotFoundError(path, exc, doc_id=doc_id) from exc
            raise UpdateError(path, exc, doc_id=doc_id) from exc
        return ref

    async def delete(self, path: str, doc_id: str | None = None) -> None:
        try:
            ref = self._resolver.resolve_document(path, doc_id)
            await ref.delete()
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document delete failed: path=%s doc_id=%s", path, doc_id)
            raise DeleteError(path, exc, doc_id=doc_id) from exc

    def create_reference(self, path: str, doc_id: str | None = None) -> Any:
        """Build the reference ``create`` would write to, without any I/O."""

        try:
            return self._resolver.resolve_new_document(path, doc_id)
        except InvalidPathError:
            raise
        except Exception as exc:
            LOGGER.exception("document reference failed: path=%s doc_id=%s", path, doc_id)
            raise InvalidPathError(f"Failed to create document reference at path {path}: {exc}", path=path) from exc
