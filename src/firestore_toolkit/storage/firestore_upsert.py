from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Mapping

from firestore_toolkit.storage.errors import UpsertError
from firestore_toolkit.storage.payload import sanitize_payload


LOGGER = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    UPDATED = "UPDATED"
    CREATED = "CREATED"
    SKIPPED = "SKIPPED"


class FirestoreUpsertEngine:
    """Create-or-update decided by a preceding existence read.

    The read and the write are two separate calls, not a transaction. A writer
    that creates the document in between is overwritten by our ``set``; one
    that deletes it in between makes our ``update`` fail. Callers that need
    atomicity must use a Firestore transaction instead.
    """

    async def upsert(self, reference: Any, data: Mapping[str, Any]) -> UpsertOutcome:
        return await self.upsert_with_distinct_payloads(reference, data, data)

    async def upsert_with_distinct_payloads(
        self,
        reference: Any,
        update_data: Mapping[str, Any],
        create_data: Mapping[str, Any] | None = None,
    ) -> UpsertOutcome:
        """Update with ``update_data`` if the document exists, else create it.

        When the document is missing and ``create_data`` is None nothing is
        written and ``SKIPPED`` is returned.
        """

        path = getattr(reference, "path", str(reference))
        try:
            snapshot = await reference.get()
            if snapshot.exists:
                await reference.update(sanitize_payload(update_data))
                return UpsertOutcome.UPDATED
            if create_data is None:
                LOGGER.info("upsert skipped, document missing and no create data: path=%s", path)
                return UpsertOutcome.SKIPPED
            await reference.set(sanitize_payload(create_data))
            return UpsertOutcome.CREATED
        except Exception as exc:
            LOGGER.exception("document upsert failed: path=%s", path)
            raise UpsertError(path, exc) from exc
