from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import unittest

from fake_firestore import FakeDocumentRef, FakeFirestoreClient, FakeSnapshot, NotFound
from firestore_toolkit.storage.errors import UpsertError, WriteError
from firestore_toolkit.storage.firestore_store import FirestoreDocumentStore
from firestore_toolkit.storage.firestore_upsert import FirestoreUpsertEngine, UpsertOutcome
from firestore_toolkit.storage.payload import UNSET


@dataclass
class InterleavedDocumentRef(FakeDocumentRef):
    """Runs another writer's change right after the existence read."""

    concurrent_write: dict | None = None
    concurrent_delete: bool = False
    reads: list[FakeSnapshot] = field(default_factory=list)

    async def get(self) -> FakeSnapshot:
        snapshot = await super().get()
        if self.concurrent_delete:
            self.client.db.pop(self.path, None)
        if self.concurrent_write is not None:
            self.client.db[self.path] = dict(self.concurrent_write)
        self.reads.append(snapshot)
        return snapshot


class FirestoreUpsertEngineTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = FakeFirestoreClient()
        self.store = FirestoreDocumentStore(self.client)
        self.engine = FirestoreUpsertEngine()

    async def test_upsert_creates_missing_document(self) -> None:
        ref = self.store.create_reference("users", "u1")

        outcome = await self.engine.upsert(ref, {"name": "A", "nickname": UNSET})

        self.assertEqual(outcome, UpsertOutcome.CREATED)
        self.assertEqual(self.client.db, {"users/u1": {"name": "A"}})

    async def test_upsert_updates_existing_document_with_nested_keys(self) -> None:
        self.client.db["users/u1"] = {"name": "A", "profile": {"age": 1, "city": "Tokyo"}}
        ref = self.store.create_reference("users", "u1")

        outcome = await self.engine.upsert(ref, {"profile.age": 2})

        self.assertEqual(outcome, UpsertOutcome.UPDATED)
        self.assertEqual(self.client.db["users/u1"], {"name": "A", "profile": {"age": 2, "city": "Tokyo"}})

    async def test_upsert_twice_merges_into_one_document(self) -> None:
        self.client.db["users/u1"] = {"name": "A", "plan": "free"}
        ref = self.store.create_reference("users", "u1")

        first = await self.engine.upsert(ref, {"plan": "pro", "seats": 3})
        second = await self.engine.upsert(ref, {"plan": "pro", "seats": 3})

        self.assertEqual((first, second), (UpsertOutcome.UPDATED, UpsertOutcome.UPDATED))
        self.assertEqual(self.client.db, {"users/u1": {"name": "A", "plan": "pro", "seats": 3}})

    async def test_upsert_on_missing_then_existing(self) -> None:
        ref = self.store.create_reference("users", "u1")

        first = await self.engine.upsert(ref, {"name": "A"})
        second = await self.engine.upsert(ref, {"age": 5})

        self.assertEqual((first, second), (UpsertOutcome.CREATED, UpsertOutcome.UPDATED))
        self.assertEqual(self.client.db, {"users/u1": {"name": "A", "age": 5}})

    async def test_distinct_payloads_update_branch(self) -> None:
        self.client.db["counters/c1"] = {"count": 1, "label": "x"}
        ref = self.store.create_reference("counters", "c1")

        outcome = await self.engine.upsert_with_distinct_payloads(ref, {"count": 2}, {"count": 0, "label": "new"})

        self.assertEqual(outcome, UpsertOutcome.UPDATED)
        self.assertEqual(self.client.db["counters/c1"], {"count": 2, "label": "x"})

    async def test_distinct_payloads_create_branch(self) -> None:
        ref = self.store.create_reference("counters", "c1")

        outcome = await self.engine.upsert_with_distinct_payloads(ref, {"count": 2}, {"count": 0, "label": "new"})

        self.assertEqual(outcome, UpsertOutcome.CREATED)
        self.assertEqual(self.client.db["counters/c1"], {"count": 0, "label": "new"})

    async def test_distinct_payloads_without_create_data_is_a_no_op(self) -> None:
        ref = self.store.create_reference("counters", "c1")

        with self.assertLogs("firestore_toolkit.storage.firestore_upsert", level="INFO"):
            outcome = await self.engine.upsert_with_distinct_payloads(ref, {"count": 2})

        self.assertEqual(outcome, UpsertOutcome.SKIPPED)
        self.assertEqual(self.client.db, {})
        self.assertEqual(self.client.writes, [])

    async def test_driver_error_is_wrapped(self) -> None:
        ref = self.store.create_reference("users", "u1")
        self.client.fail_with = RuntimeError("unavailable")

        with self.assertRaises(UpsertError) as ctx:
            await self.engine.upsert(ref, {"name": "A"})

        self.assertIsInstance(ctx.exception, WriteError)
        self.assertEqual(ctx.exception.path, "users/u1")
        self.assertIs(ctx.exception.__cause__, self.client.fail_with)


class UpsertRaceTest(unittest.IsolatedAsyncioTestCase):
    """The existence read and the write are not atomic; these tests pin that down."""

    async def test_create_between_read_and_write_is_overwritten(self) -> None:
        client = FakeFirestoreClient()
        ref = InterleavedDocumentRef(path="users/u1", client=client, concurrent_write={"owner": "other"})

        outcome = await FirestoreUpsertEngine().upsert(ref, {"owner": "me"})

        self.assertEqual(outcome, UpsertOutcome.CREATED)
        self.assertFalse(ref.reads[0].exists)
        self.assertEqual(client.db["users/u1"], {"owner": "me"})

    async def test_delete_between_read_and_write_fails_update(self) -> None:
        client = FakeFirestoreClient(db={"users/u1": {"owner": "me"}})
        ref = InterleavedDocumentRef(path="users/u1", client=client, concurrent_delete=True)

        with self.assertRaises(UpsertError) as ctx:
            await FirestoreUpsertEngine().upsert(ref, {"owner": "me"})

        self.assertIsInstance(ctx.exception.__cause__, NotFound)
        self.assertNotIn("users/u1", client.db)

    async def test_concurrent_upserts_both_create(self) -> None:
        client = FakeFirestoreClient()
        store = FirestoreDocumentStore(client)
        engine = FirestoreUpsertEngine()

        outcomes = await asyncio.gather(
            engine.upsert(store.create_reference("users", "u1"), {"writer": "first"}),
            engine.upsert(store.create_reference("users", "u1"), {"writer": "second"}),
        )

        self.assertEqual(outcomes, [UpsertOutcome.CREATED, UpsertOutcome.CREATED])
        set_calls = [write for write in client.writes if write[0] == "set"]
        self.assertEqual(len(set_calls), 2)
        self.assertEqual(client.db["users/u1"], {"writer": "second"})


if __name__ == "__main__":
    unittest.main()
