"""Behaviour shared by both Store backends: identity conflicts, listing order, counters, ratings."""

import os
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from studyshare.core.database import create_db_engine
from studyshare.core.errors import Conflict
from studyshare.models import Base
from studyshare.models.user import Role
from studyshare.repositories import MemoryStore, SqlStore, average_rating
from tests.helpers import StepClock, make_note, make_user


class TestAverageRating(unittest.TestCase):
    """average_rating rounds half-up to one decimal and is 0 for no ratings."""

    def test_empty_is_zero(self) -> None:
        self.assertEqual(average_rating([]), 0.0)

    def test_mean_rounded_to_one_decimal(self) -> None:
        self.assertEqual(average_rating([4, 4, 5]), 4.3)
        self.assertEqual(average_rating([5, 4]), 4.5)

    def test_half_rounds_up(self) -> None:
        self.assertEqual(average_rating([4, 4, 5, 4]), 4.3)  # 4.25
        self.assertEqual(average_rating([1, 2, 2, 2]), 1.8)  # 1.75


class StoreContract:
    """Mixed into a TestCase; subclasses provide make_store(clock)."""

    def make_store(self, clock):
        raise NotImplementedError

    def setUp(self) -> None:
        self.clock = StepClock()
        self.store = self.make_store(self.clock)
        self.alice = make_user(self.store)

    # Users

    def test_duplicate_email_conflicts(self) -> None:
        with self.assertRaises(Conflict):
            make_user(self.store, username="alice2", email="alice@u.edu")

    def test_duplicate_username_conflicts(self) -> None:
        with self.assertRaises(Conflict):
            make_user(self.store, username="alice", email="other@u.edu")

    def test_lookup_by_email_and_id(self) -> None:
        found = self.store.get_user_by_email("alice@u.edu")
        self.assertEqual(found.id, self.alice.id)
        self.assertEqual(self.store.get_user(self.alice.id).username, "alice")
        self.assertEqual(found.role, Role.USER)
        self.assertIsNone(self.store.get_user_by_email("nobody@u.edu"))
        self.assertIsNone(self.store.get_user(9999))

    def test_update_password_hash(self) -> None:
        updated = self.store.update_password_hash(self.alice.id, "new-hash")
        self.assertEqual(updated.password_hash, "new-hash")
        self.assertEqual(self.store.get_user(self.alice.id).password_hash, "new-hash")

    def test_list_users_ordered_by_id(self) -> None:
        bob = make_user(self.store, username="bob", email="bob@u.edu", role=Role.ADMIN)
        self.assertEqual([u.id for u in self.store.list_users()], [self.alice.id, bob.id])

    # Notes

    def test_create_note_starts_with_zero_counters_and_owner(self) -> None:
        note = make_note(self.store, self.alice)
        self.assertEqual(note.downloads, 0)
        self.assertEqual(note.rating, 0.0)
        self.assertEqual(note.ratings, {})
        self.assertEqual(note.owner.username, "alice")
        self.assertEqual(note.owner.email, "alice@u.edu")

    def test_list_is_newest_first(self) -> None:
        for title in ("first", "second", "third"):
            make_note(self.store, self.alice, title=title)
        notes, total = self.store.list_notes()
        self.assertEqual(total, 3)
        self.assertEqual([n.title for n in notes], ["third", "second", "first"])

    def test_equal_timestamps_keep_insertion_order(self) -> None:
        self.clock.step = timedelta(0)
        for title in ("a", "b", "c"):
            make_note(self.store, self.alice, title=title)
        notes, _ = self.store.list_notes()
        self.assertEqual([n.title for n in notes], ["a", "b", "c"])

    def test_subject_filter_is_exact(self) -> None:
        make_note(self.store, self.alice, title="m", subject="Math")
        make_note(self.store, self.alice, title="mm", subject="Mathematics")
        notes, total = self.store.list_notes(subject="Math")
        self.assertEqual(total, 1)
        self.assertEqual(notes[0].title, "m")

    def test_search_matches_title_or_description_case_insensitive(self) -> None:
        make_note(self.store, self.alice, title="Advanced Calculus Notes")
        make_note(self.store, self.alice, title="Physics Lab")
        make_note(self.store, self.alice, title="Week 3", description="Intro to CALCULUS")
        notes, total = self.store.list_notes(search="calc")
        self.assertEqual(total, 2)
        self.assertEqual({n.title for n in notes}, {"Advanced Calculus Notes", "Week 3"})

    def test_search_treats_wildcards_literally(self) -> None:
        make_note(self.store, self.alice, title="100% pass guide")
        make_note(self.store, self.alice, title="Pass guide")
        notes, total = self.store.list_notes(search="0% p")
        self.assertEqual(total, 1)
        self.assertEqual(notes[0].title, "100% pass guide")

    def test_search_folds_non_ascii_case(self) -> None:
        make_note(self.store, self.alice, title="Ärger im Labor")
        make_note(self.store, self.alice, title="Optik", description="ÜBUNGSBLATT 2")
        make_note(self.store, self.alice, title="Argon")
        notes, total = self.store.list_notes(search="ärger")
        self.assertEqual(total, 1)
        self.assertEqual(notes[0].title, "Ärger im Labor")
        notes, total = self.store.list_notes(search="Übungsblatt")
        self.assertEqual(total, 1)
        self.assertEqual(notes[0].title, "Optik")

    def test_offset_and_limit_slice_after_sorting(self) -> None:
        for i in range(5):
            make_note(self.store, self.alice, title=f"n{i}")
        notes, total = self.store.list_notes(offset=1, limit=2)
        self.assertEqual(total, 5)
        self.assertEqual([n.title for n in notes], ["n3", "n2"])

    def test_increment_downloads(self) -> None:
        note = make_note(self.store, self.alice)
        self.assertTrue(self.store.increment_downloads(note.id))
        self.assertTrue(self.store.increment_downloads(note.id))
        self.assertEqual(self.store.get_note(note.id).downloads, 2)
        self.assertFalse(self.store.increment_downloads(9999))

    def test_set_rating_recomputes_average_and_replaces_same_rater(self) -> None:
        bob = make_user(self.store, username="bob", email="bob@u.edu")
        note = make_note(self.store, self.alice)
        self.store.set_rating(note.id, self.alice.id, 5)
        rated = self.store.set_rating(note.id, bob.id, 4)
        self.assertEqual(rated.rating, 4.5)
        rated = self.store.set_rating(note.id, bob.id, 2)
        self.assertEqual(rated.ratings, {self.alice.id: 5, bob.id: 2})
        self.assertEqual(rated.rating, 3.5)
        self.assertEqual(self.store.get_note(note.id).rating, 3.5)
        self.assertIsNone(self.store.set_rating(9999, bob.id, 3))

    def test_delete_note(self) -> None:
        note = make_note(self.store, self.alice)
        self.store.set_rating(note.id, self.alice.id, 5)
        removed = self.store.delete_note(note.id)
        self.assertEqual(removed.id, note.id)
        self.assertIsNone(self.store.get_note(note.id))
        self.assertIsNone(self.store.delete_note(note.id))


class TestMemoryStore(StoreContract, unittest.TestCase):
    def make_store(self, clock):
        return MemoryStore(clock=clock)

    def test_note_with_missing_owner_has_no_owner(self) -> None:
        ghost = self.alice.model_copy(update={"id": 999})
        note = make_note(self.store, ghost)
        self.assertIsNone(self.store.get_note(note.id).owner)

    def test_concurrent_increments_are_not_lost(self) -> None:
        note = make_note(self.store, self.alice)
        with ThreadPoolExecutor(max_workers=10) as pool:
            list(pool.map(lambda _: self.store.increment_downloads(note.id), range(10)))
        self.assertEqual(self.store.get_note(note.id).downloads, 10)

    def test_reads_during_user_registration_do_not_fail(self) -> None:
        for i in range(2000):
            self.store.create_user(f"seed{i}", f"seed{i}@u.edu", "hash")

        def register() -> None:
            for i in range(500):
                self.store.create_user(f"new{i}", f"new{i}@u.edu", "hash")

        def look_up() -> None:
            for _ in range(200):
                self.store.get_user_by_email("missing@u.edu")
                self.store.get_user_by_username("missing")
            self.store.list_users()

        with ThreadPoolExecutor(max_workers=5) as pool:
            futures = [pool.submit(register)] + [pool.submit(look_up) for _ in range(4)]
            for future in futures:
                future.result()
        self.assertEqual(len(self.store.list_users()), 2501)

    def test_reads_during_rating_do_not_fail(self) -> None:
        note = make_note(self.store, self.alice)

        def rate() -> None:
            for user_id in range(1, 2001):
                self.store.set_rating(note.id, user_id, 4)

        def read() -> None:
            for _ in range(200):
                self.store.get_note(note.id)
                self.store.list_notes()

        with ThreadPoolExecutor(max_workers=5) as pool:
            futures = [pool.submit(rate)] + [pool.submit(read) for _ in range(4)]
            for future in futures:
                future.result()
        final = self.store.get_note(note.id)
        self.assertEqual(len(final.ratings), 2000)
        self.assertEqual(final.rating, 4.0)


class TestSqlStore(StoreContract, unittest.TestCase):
    def make_store(self, clock):
        engine = create_db_engine("sqlite://")
        Base.metadata.create_all(bind=engine)
        self.addCleanup(engine.dispose)
        return SqlStore(engine, clock=clock)

    def test_ping(self) -> None:
        self.assertTrue(self.store.ping())


class TestSqlStoreConcurrentDownloads(unittest.TestCase):
    """Ten threads incrementing the same note through separate connections add exactly ten."""

    def test_no_lost_updates(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        engine = create_db_engine(f"sqlite:///{os.path.join(tmp.name, 'test.db')}")
        self.addCleanup(engine.dispose)
        Base.metadata.create_all(bind=engine)
        store = SqlStore(engine)
        note = make_note(store, make_user(store))

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(lambda _: store.increment_downloads(note.id), range(10)))

        self.assertTrue(all(results))
        self.assertEqual(store.get_note(note.id).downloads, 10)


class TestSqlStoreConcurrentRatings(unittest.TestCase):
    """Simultaneous raters on separate connections leave rating equal to the mean of ratings."""

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        engine = create_db_engine(f"sqlite:///{os.path.join(tmp.name, 'test.db')}")
        self.addCleanup(engine.dispose)
        Base.metadata.create_all(bind=engine)
        self.store = SqlStore(engine)
        self.users = [
            make_user(self.store, username=f"rater{i}", email=f"rater{i}@u.edu")
            for i in range(10)
        ]
        self.note = make_note(self.store, self.users[0])

    def test_average_covers_every_rater(self) -> None:
        def rate(i: int):
            return self.store.set_rating(self.note.id, self.users[i].id, 5 if i % 2 == 0 else 1)

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(rate, range(10)))

        self.assertTrue(all(r is not None for r in results))
        final = self.store.get_note(self.note.id)
        self.assertEqual(len(final.ratings), 10)
        self.assertEqual(final.rating, 3.0)
        self.assertEqual(final.rating, average_rating(final.ratings.values()))

    def test_same_rater_at_once_keeps_one_rating(self) -> None:
        rater = self.users[1]
        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(
                pool.map(lambda _: self.store.set_rating(self.note.id, rater.id, 4), range(10))
            )

        self.assertTrue(all(r is not None for r in results))
        final = self.store.get_note(self.note.id)
        self.assertEqual(final.ratings, {rater.id: 4})
        self.assertEqual(final.rating, 4.0)


if __name__ == "__main__":
    unittest.main()
