import json
import os
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from drawpool.db import make_engine
from drawpool.errors import ConcurrentUpdate, PersistenceError
from drawpool.services.notifier import ChangeNotifier
from drawpool.services.state_store import JsonFileStateStore, SqlStateStore
from drawpool.state import DrawState


class JsonFileStateStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self._tmpdir.name) / "data" / "lottery_data.json"

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_load_initialises_empty_file(self) -> None:
        store = JsonFileStateStore(str(self.path))

        state = store.load()

        self.assertEqual(state.used_numbers, ())
        persisted = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(persisted["usedNumbers"], [])
        self.assertEqual(persisted["topicDrawers"], {})
        self.assertEqual(persisted["topicNumbers"], {})

    def test_save_replaces_file_and_leaves_no_temp_files(self) -> None:
        store = JsonFileStateStore(str(self.path))
        state = store.load().with_claim(7, topic_id="2", user_name="alice")

        store.save(state)

        persisted = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(persisted["usedNumbers"], [7])
        self.assertEqual(persisted["topicDrawers"], {"2": ["alice"]})
        self.assertEqual(persisted["topicNumbers"], {"2": {"alice": 7}})
        self.assertEqual(os.listdir(self.path.parent), [self.path.name])

    def test_reload_reads_previous_state(self) -> None:
        first = JsonFileStateStore(str(self.path))
        first.save(first.load().with_claim(3).with_claim(9, topic_id="1", user_name="bob"))

        second = JsonFileStateStore(str(self.path))
        state = second.load()

        self.assertEqual(state.used_numbers, (3, 9))
        self.assertEqual(state.topic_numbers, {"1": {"bob": 9}})
        self.assertEqual(state.version, 2)

    def test_corrupt_file_raises_instead_of_overwriting(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        store = JsonFileStateStore(str(self.path))

        with self.assertRaises(PersistenceError):
            store.load()
        self.assertEqual(self.path.read_text(encoding="utf-8"), "{not json")

    def test_assignment_outside_used_numbers_is_rejected(self) -> None:
        self.path.parent.mkdir(parents=True)
        record = {"usedNumbers": [3], "topicDrawers": {"1": ["bob"]}, "topicNumbers": {"1": {"bob": 9}}}
        self.path.write_text(json.dumps(record), encoding="utf-8")
        store = JsonFileStateStore(str(self.path))

        with self.assertRaisesRegex(PersistenceError, "not a used number"):
            store.load()
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), record)
        self.assertEqual(store.snapshot(), DrawState())

    def test_failed_write_keeps_snapshot_and_skips_notification(self) -> None:
        notifier = ChangeNotifier()
        store = JsonFileStateStore(str(self.path), notifier=notifier)
        baseline = store.load()
        subscription = notifier.subscribe()
        self.assertEqual(subscription.get(timeout=0), baseline)

        with mock.patch("drawpool.services.state_store.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(PersistenceError):
                store.save(baseline.with_claim(5))

        self.assertIs(store.snapshot(), baseline)
        self.assertIsNone(subscription.get(timeout=0))
        persisted = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(persisted["usedNumbers"], [])
        self.assertEqual(os.listdir(self.path.parent), [self.path.name])


class SqlStateStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.database_url = f"sqlite:///{Path(self._tmpdir.name) / 'drawpool.db'}"

    def _store(self, notifier=None) -> SqlStateStore:
        store = SqlStateStore(make_engine(self.database_url), notifier=notifier)
        self.addCleanup(store.dispose)
        return store

    def test_round_trip_through_database(self) -> None:
        store = self._store()
        self.assertEqual(store.load(), DrawState())

        store.save(store.snapshot().with_claim(11, topic_id="4", user_name="carol"))

        reloaded = self._store().load()
        self.assertEqual(reloaded.used_numbers, (11,))
        self.assertEqual(reloaded.topic_drawers, {"4": ("carol",)})
        self.assertEqual(reloaded.version, 1)

    def test_load_publishes_baseline(self) -> None:
        store = self._store()
        store.save(store.load().with_claim(1))

        notifier = ChangeNotifier()
        self._store(notifier=notifier).load()

        self.assertEqual(notifier.latest.used_numbers, (1,))

    def test_in_memory_database_is_shared_between_threads(self) -> None:
        store = SqlStateStore(make_engine("sqlite:///:memory:"))
        self.addCleanup(store.dispose)
        store.load()
        errors = []

        def worker() -> None:
            try:
                store.save(store.snapshot().with_claim(2))
            except Exception as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(store.load().used_numbers, (2,))

    def test_stale_writer_is_rejected(self) -> None:
        first = self._store()
        second = self._store()
        first.load()
        baseline = second.load()

        first.save(first.snapshot().with_claim(4))

        with self.assertRaises(ConcurrentUpdate):
            second.save(baseline.with_claim(4, topic_id="1", user_name="mallory"))
        self.assertIs(second.snapshot(), baseline)
        self.assertEqual(self._store().load().topic_numbers, {})

    def test_refresh_adopts_state_written_by_another_store(self) -> None:
        notifier = ChangeNotifier()
        local = self._store(notifier=notifier)
        remote = self._store()
        local.load()
        remote.load()
        subscription = notifier.subscribe()
        subscription.get(timeout=0)

        remote.save(remote.snapshot().with_claim(8, topic_id="2", user_name="dan"))
        refreshed = local.refresh()

        self.assertEqual(refreshed.used_numbers, (8,))
        self.assertEqual(refreshed.version, 1)
        self.assertIs(local.snapshot(), refreshed)
        self.assertEqual(subscription.get(timeout=0), refreshed)

        self.assertIs(local.refresh(), refreshed)
        self.assertIsNone(subscription.get(timeout=0))

        local.save(refreshed.with_claim(9))
        self.assertEqual(self._store().load().used_numbers, (8, 9))


if __name__ == "__main__":
    unittest.main()
