"""Tests for the thread-safe in-memory user registry."""

from __future__ import annotations

import sys
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from smallservice.models import InvalidFormatError, MissingFieldError  # noqa: E402
from smallservice.storage import RegistryFullError, Storage, UserNotFoundError  # noqa: E402


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self) -> None:
        self._current = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            self._current += timedelta(seconds=1)
            return self._current


class StorageTests(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = Storage(clock=TickingClock())

    def test_create_returns_stored_user(self) -> None:
        user = self.storage.create("Alice", "alice@example.com")

        self.assertEqual(user.id, "user_1")
        self.assertEqual(user.name, "Alice")
        self.assertEqual(user.email, "alice@example.com")
        self.assertIsNotNone(user.created_at.tzinfo)
        self.assertIs(self.storage.get_by_id(user.id), user)

    def test_ids_are_unique_and_sequential(self) -> None:
        users = [self.storage.create(f"User {i}", f"user{i}@example.com") for i in range(5)]

        self.assertEqual([user.id for user in users], [f"user_{i}" for i in range(1, 6)])

    def test_validation_errors(self) -> None:
        with self.assertRaises(MissingFieldError) as name_error:
            self.storage.create("", "a@b.com")
        self.assertEqual(name_error.exception.field, "name")

        with self.assertRaises(MissingFieldError) as email_error:
            self.storage.create("A", "")
        self.assertEqual(email_error.exception.field, "email")

        with self.assertRaises(InvalidFormatError) as format_error:
            self.storage.create("A", "nodomain")
        self.assertEqual(format_error.exception.field, "email")

        self.assertEqual(self.storage.count(), 0)

    def test_rejected_creates_do_not_consume_ids(self) -> None:
        first = self.storage.create("Alice", "alice@example.com")
        with self.assertRaises(InvalidFormatError):
            self.storage.create("Broken", "broken")
        second = self.storage.create("Bob", "bob@example.com")

        self.assertEqual(first.id, "user_1")
        self.assertEqual(second.id, "user_2")

    def test_count_tracks_successful_creates(self) -> None:
        for i in range(7):
            self.storage.create(f"User {i}", f"user{i}@example.com")
        with self.assertRaises(MissingFieldError):
            self.storage.create(" ", "nobody@example.com")

        self.assertEqual(self.storage.count(), 7)

    def test_list_orders_newest_first(self) -> None:
        first = self.storage.create("U1", "u1@example.com")
        second = self.storage.create("U2", "u2@example.com")
        third = self.storage.create("U3", "u3@example.com")

        self.assertEqual(self.storage.list(), [third, second, first])

    def test_list_on_empty_registry(self) -> None:
        self.assertEqual(self.storage.list(), [])
        self.assertEqual(self.storage.count(), 0)

    def test_list_returns_independent_snapshot(self) -> None:
        self.storage.create("Alice", "alice@example.com")
        snapshot = self.storage.list()
        snapshot.clear()

        self.assertEqual(len(self.storage.list()), 1)

    def test_get_by_id_unknown_user(self) -> None:
        self.storage.create("Alice", "alice@example.com")

        with self.assertRaises(UserNotFoundError) as excinfo:
            self.storage.get_by_id("user_999")
        self.assertIsInstance(excinfo.exception, LookupError)
        self.assertEqual(str(excinfo.exception), "user not found: user_999")

    def test_get_by_id_matches_created_user(self) -> None:
        created = self.storage.create("Carol", "carol@example.com")
        fetched = self.storage.get_by_id(created.id)

        self.assertEqual(fetched.name, "Carol")
        self.assertEqual(fetched.email, "carol@example.com")
        self.assertEqual(fetched.created_at, created.created_at)

    def test_max_users_is_enforced(self) -> None:
        storage = Storage(max_users=2)
        storage.create("Alice", "alice@example.com")
        storage.create("Bob", "bob@example.com")

        with self.assertRaises(RegistryFullError):
            storage.create("Carol", "carol@example.com")
        self.assertEqual(storage.count(), 2)

    def test_validation_is_reported_before_capacity(self) -> None:
        storage = Storage(max_users=1)
        storage.create("Alice", "alice@example.com")

        with self.assertRaises(MissingFieldError):
            storage.create("", "bob@example.com")

    def test_max_users_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            Storage(max_users=0)


class StorageConcurrencyTests(unittest.TestCase):
    def test_parallel_creates_yield_distinct_ids(self) -> None:
        storage = Storage()

        def create(index: int):
            return storage.create(f"User {index}", f"user{index}@example.com")

        with ThreadPoolExecutor(max_workers=16) as pool:
            users = list(pool.map(create, range(100)))

        self.assertEqual(len(users), 100)
        self.assertEqual(len({user.id for user in users}), 100)
        self.assertEqual(storage.count(), 100)
        self.assertEqual(len(storage.list()), 100)

    def test_readers_never_see_partial_state(self) -> None:
        storage = Storage()
        stop = threading.Event()
        errors: list[str] = []

        def reader() -> None:
            while not stop.is_set():
                users = storage.list()
                ids = {user.id for user in users}
                if len(ids) != len(users):
                    errors.append("duplicate ids in snapshot")
                for user in users:
                    if storage.get_by_id(user.id) is not user:
                        errors.append(f"lookup mismatch for {user.id}")

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                list(pool.map(lambda i: storage.create(f"U{i}", f"u{i}@example.com"), range(200)))
        finally:
            stop.set()
            for thread in readers:
                thread.join(timeout=5)

        self.assertEqual(errors, [])
        self.assertEqual(storage.count(), 200)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
