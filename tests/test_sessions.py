"""
Session Store Test Suite

Lifecycle, idempotent creation, bounded attempts, claim flag and eviction,
including concurrent access to a single game.
"""

import threading
import unittest

from fakes import FakeClock

from royale_resolver.deriver import SecretDeriver
from royale_resolver.outcomes import Reason
from royale_resolver.sessions import GameOutcome, InMemorySessionStore

PLAYER = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20


def make_store(clock=None, ttl=3600):
    # Single-word corpus: every game's target is PLANT
    deriver = SecretDeriver("unit-test-secret", ["PLANT"])
    kwargs = {"max_attempts": 6, "ttl_seconds": ttl}
    if clock is not None:
        kwargs["clock"] = clock
    return InMemorySessionStore(deriver, **kwargs)


class TestCreate(unittest.TestCase):
    """Test game creation."""

    def setUp(self):
        self.store = make_store()

    def test_new_game(self):
        created = self.store.create("7", PLAYER)
        snap = created.snapshot
        self.assertTrue(created.created)
        self.assertRegex(snap.instance_id, r"^0x[a-f0-9]{32}$")
        self.assertEqual(len(created.credential), 64)
        self.assertEqual(snap.target, "PLANT")
        self.assertEqual(snap.outcome, GameOutcome.IN_PROGRESS)
        self.assertEqual(snap.attempt_count, 0)
        self.assertFalse(snap.attestation_issued)

    def test_create_is_idempotent_per_round_and_participant(self):
        first = self.store.create("7", PLAYER)
        second = self.store.create("7", PLAYER.upper().replace("0X", "0x"))
        self.assertFalse(second.created)
        self.assertEqual(first.snapshot.instance_id, second.snapshot.instance_id)
        self.assertEqual(first.credential, second.credential)
        self.assertEqual(len(self.store), 1)

    def test_distinct_rounds_and_participants_get_distinct_games(self):
        a = self.store.create("7", PLAYER)
        b = self.store.create("8", PLAYER)
        c = self.store.create("7", OTHER)
        ids = {a.snapshot.instance_id, b.snapshot.instance_id, c.snapshot.instance_id}
        self.assertEqual(len(ids), 3)
        self.assertEqual(len({a.credential, b.credential, c.credential}), 3)

    def test_terminal_game_is_returned_not_replaced(self):
        first = self.store.create("7", PLAYER)
        self.store.append_attempt(first.snapshot.instance_id, "PLANT")
        again = self.store.create("7", PLAYER)
        self.assertFalse(again.created)
        self.assertEqual(again.snapshot.outcome, GameOutcome.WON)

    def test_lost_game_is_returned_until_swept(self):
        first = self.store.create("8", PLAYER)
        for _ in range(6):
            self.store.append_attempt(first.snapshot.instance_id, "CRISP")
        again = self.store.create("8", PLAYER)
        self.assertFalse(again.created)
        self.assertEqual(again.snapshot.instance_id, first.snapshot.instance_id)
        self.assertEqual(again.snapshot.outcome, GameOutcome.LOST)

    def test_concurrent_create_yields_one_game(self):
        results = []

        def worker():
            results.append(self.store.create("42", PLAYER))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len({r.snapshot.instance_id for r in results}), 1)
        self.assertEqual(sum(1 for r in results if r.created), 1)
        self.assertEqual(len(self.store), 1)


class TestAttempts(unittest.TestCase):
    """Test guess recording and terminal states."""

    def setUp(self):
        self.store = make_store()
        self.game_id = self.store.create("1", PLAYER).snapshot.instance_id

    def test_win_on_first_guess(self):
        outcome = self.store.append_attempt(self.game_id, "PLANT")
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.value.attempt_number, 1)
        self.assertEqual(outcome.value.snapshot.outcome, GameOutcome.WON)

    def test_six_misses_lose_and_seventh_is_rejected(self):
        for n in range(1, 7):
            outcome = self.store.append_attempt(self.game_id, "CRISP")
            self.assertTrue(outcome.ok)
            self.assertEqual(outcome.value.attempt_number, n)

        self.assertEqual(outcome.value.snapshot.outcome, GameOutcome.LOST)

        seventh = self.store.append_attempt(self.game_id, "PLANT")
        self.assertFalse(seventh.ok)
        self.assertEqual(seventh.failure.reason, Reason.GAME_COMPLETED)
        self.assertEqual(self.store.get(self.game_id).attempt_count, 6)

    def test_guess_after_win_is_rejected(self):
        self.store.append_attempt(self.game_id, "PLANT")
        outcome = self.store.append_attempt(self.game_id, "CRISP")
        self.assertEqual(outcome.failure.reason, Reason.GAME_COMPLETED)

    def test_wrong_length_is_rejected(self):
        outcome = self.store.append_attempt(self.game_id, "PLAN")
        self.assertEqual(outcome.failure.reason, Reason.INVALID_GUESS)
        self.assertEqual(self.store.get(self.game_id).attempt_count, 0)

    def test_unknown_game(self):
        outcome = self.store.append_attempt("0x" + "0" * 32, "PLANT")
        self.assertEqual(outcome.failure.reason, Reason.INVALID_SESSION)

    def test_snapshots_are_immutable(self):
        before = self.store.get(self.game_id)
        self.store.append_attempt(self.game_id, "CRISP")
        self.assertEqual(before.attempt_count, 0)
        self.assertEqual(self.store.get(self.game_id).attempt_count, 1)

    def test_concurrent_guesses_never_exceed_max_attempts(self):
        accepted = []
        rejected = []
        lock = threading.Lock()

        def worker():
            outcome = self.store.append_attempt(self.game_id, "CRISP")
            with lock:
                (accepted if outcome.ok else rejected).append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(accepted), 6)
        self.assertEqual(len(rejected), 14)
        self.assertEqual(sorted(o.value.attempt_number for o in accepted), [1, 2, 3, 4, 5, 6])
        self.assertTrue(all(o.failure.reason is Reason.GAME_COMPLETED for o in rejected))


class TestAttestationFlag(unittest.TestCase):
    """Test the at-most-once claim flag."""

    def setUp(self):
        self.store = make_store()
        self.game_id = self.store.create("1", PLAYER).snapshot.instance_id

    def test_not_won_cannot_be_marked(self):
        self.assertFalse(self.store.mark_attestation_issued(self.game_id))

    def test_marked_once(self):
        self.store.append_attempt(self.game_id, "PLANT")
        self.assertTrue(self.store.mark_attestation_issued(self.game_id))
        self.assertFalse(self.store.mark_attestation_issued(self.game_id))
        self.assertTrue(self.store.get(self.game_id).attestation_issued)

    def test_concurrent_marks_flip_once(self):
        self.store.append_attempt(self.game_id, "PLANT")
        wins = []

        def worker():
            if self.store.mark_attestation_issued(self.game_id):
                wins.append(1)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(wins), 1)


class TestSweep(unittest.TestCase):
    """Test TTL eviction."""

    def setUp(self):
        self.clock = FakeClock()
        self.store = make_store(clock=self.clock, ttl=3600)

    def test_expired_in_progress_game_is_evicted(self):
        game_id = self.store.create("1", PLAYER).snapshot.instance_id
        self.clock.advance(3601)

        self.assertEqual(self.store.sweep(), 1)
        self.assertIsNone(self.store.get(game_id))
        self.assertIsNone(self.store.credential_for(game_id))
        self.assertEqual(self.store.append_attempt(game_id, "PLANT").failure.reason, Reason.INVALID_SESSION)
        self.assertEqual(len(self.store), 0)

    def test_young_games_survive(self):
        old_id = self.store.create("1", PLAYER).snapshot.instance_id
        self.clock.advance(3000)
        young_id = self.store.create("2", PLAYER).snapshot.instance_id
        self.clock.advance(700)

        self.assertEqual(self.store.sweep(), 1)
        self.assertIsNone(self.store.get(old_id))
        self.assertIsNotNone(self.store.get(young_id))

    def test_evicted_pair_gets_a_fresh_game(self):
        first = self.store.create("1", PLAYER)
        self.clock.advance(3601)
        self.store.sweep()

        second = self.store.create("1", PLAYER)
        self.assertTrue(second.created)
        self.assertNotEqual(first.snapshot.instance_id, second.snapshot.instance_id)

    def test_sweep_with_explicit_time(self):
        self.store.create("1", PLAYER)
        self.assertEqual(self.store.sweep(now=self.clock.now + 10), 0)
        self.assertEqual(self.store.sweep(now=self.clock.now + 7200), 1)


if __name__ == "__main__":
    unittest.main()
