# tests/test_draw.py
import unittest
import random
import time
import sys
import os
from unittest import mock

# Add parent directory to path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from santamatch.services import draw
from santamatch.services.constraints import ConstraintEvaluator
from santamatch.services.draw import (
    BACKTRACKING, SHUFFLE, InfeasibleConstraints, InsufficientParticipants, MatchOptions,
    SearchExhausted, find_hall_violation, find_secret_santa_assignment,
)
from helpers import NAMES, NoShuffleRandom, make_config

BOTH = (MatchOptions(strategy=BACKTRACKING), MatchOptions(strategy=SHUFFLE))


class TestDrawBasics(unittest.TestCase):

    def verify_assignment(self, assignment, config):
        """Bijection over the participants and every edge allowed."""
        keys = config.keys
        self.assertEqual(sorted(assignment.givers), sorted(keys))
        self.assertEqual(sorted(assignment.receivers), sorted(keys))
        self.assertEqual(len(assignment), len(keys))
        ev = ConstraintEvaluator(config)
        for giver, receiver in assignment:
            self.assertTrue(ev.is_valid_pairing(giver, receiver), f"{giver} -> {receiver} is not allowed")

    def test_two_people_swap(self):
        config = make_config(NAMES[:2])
        for options in BOTH:
            assignment = find_secret_santa_assignment(config, options)
            self.assertEqual(assignment.as_dict(), {"alice": "bob", "bob": "alice"})

    def test_needs_two_people(self):
        for keys in ([], NAMES[:1]):
            for options in BOTH:
                with mock.patch.object(draw, "_backtracking_search") as bt, \
                        mock.patch.object(draw, "_shuffle_search") as sh:
                    with self.assertRaises(InsufficientParticipants):
                        find_secret_santa_assignment(make_config(keys), options)
                    bt.assert_not_called()
                    sh.assert_not_called()

    def test_single_person_with_self_allowed_still_rejected(self):
        with self.assertRaises(InsufficientParticipants):
            find_secret_santa_assignment(make_config(NAMES[:1], allow_self_assignment=True))

    def test_everyone_gives_and_receives_once(self):
        config = make_config(NAMES[:6])
        for options in BOTH:
            for _ in range(20):
                self.verify_assignment(find_secret_santa_assignment(config, options), config)

    def test_self_assignment_allowed(self):
        config = make_config(NAMES[:3], allow_self_assignment=True)
        for options in BOTH:
            self.verify_assignment(find_secret_santa_assignment(config, options), config)

    def test_different_runs_give_different_assignments(self):
        config = make_config(NAMES[:5])
        for options in BOTH:
            seen = {find_secret_santa_assignment(config, options).pairs for _ in range(10)}
            self.assertGreater(len(seen), 1)

    def test_seeded_runs_repeat(self):
        config = make_config(NAMES[:8])
        a = find_secret_santa_assignment(config, rng=random.Random(7))
        b = find_secret_santa_assignment(config, rng=random.Random(7))
        self.assertEqual(a, b)

    def test_large_group(self):
        config = make_config([f"person_{i}" for i in range(100)])
        self.verify_assignment(find_secret_santa_assignment(config), config)


class TestDrawConstraints(unittest.TestCase):

    verify_assignment = TestDrawBasics.verify_assignment

    def test_forbidden_pair_and_group_scenario(self):
        config = make_config(["A", "B", "C", "D"], forbidden=[["A", "B"]], groups=[["C", "D"]])
        ev = ConstraintEvaluator(config)
        # A -> C -> B -> D -> A satisfies every constraint
        for g, r in [("A", "C"), ("C", "B"), ("B", "D"), ("D", "A")]:
            self.assertTrue(ev.is_valid_pairing(g, r))
        for options in BOTH:
            for _ in range(20):
                self.verify_assignment(find_secret_santa_assignment(config, options), config)

    def test_all_pairs_forbidden_fails(self):
        config = make_config(NAMES[:3], forbidden=[
            ["alice", "bob"], ["alice", "charlie"], ["bob", "charlie"],
        ])
        for options in BOTH:
            with self.assertRaises((InfeasibleConstraints, SearchExhausted)):
                find_secret_santa_assignment(config, options)

    def test_groups_split_people(self):
        config = make_config(NAMES[:6], groups=[NAMES[:3], NAMES[3:6]])
        for _ in range(10):
            assignment = find_secret_santa_assignment(config)
            self.verify_assignment(assignment, config)
            for giver, receiver in assignment:
                self.assertNotEqual(NAMES.index(giver) < 3, NAMES.index(receiver) < 3)

    def test_member_of_overlapping_groups_can_be_stuck(self):
        # charlie shares a group with everyone else
        config = make_config(NAMES[:5], groups=[NAMES[:3], NAMES[2:5]])
        with self.assertRaises(InfeasibleConstraints) as ctx:
            find_secret_santa_assignment(config)
        self.assertEqual(ctx.exception.givers, ("charlie",))

    def test_many_constraints(self):
        people = NAMES[:10]
        forbidden = [[people[i], people[j]]
                     for i in range(len(people)) for j in range(i + 1, min(len(people), i + 3))]
        config = make_config(people, forbidden=forbidden)
        for options in (MatchOptions(), MatchOptions(strategy=SHUFFLE, max_attempts=20000)):
            self.verify_assignment(find_secret_santa_assignment(config, options), config)

    def test_forced_pair_in_a_larger_group(self):
        # p29 may only swap with p0; everyone else is free
        people = [f"p{i}" for i in range(30)]
        config = make_config(people, forbidden=[["p29", k] for k in people[1:29]])
        options = MatchOptions(max_steps=10000)
        started = time.monotonic()
        for _ in range(10):
            assignment = find_secret_santa_assignment(config, options)
            self.verify_assignment(assignment, config)
            self.assertEqual(assignment.receiver_for("p29"), "p0")
            self.assertEqual(assignment.receiver_for("p0"), "p29")
        self.assertLess(time.monotonic() - started, 10)

    def test_forced_chain_with_groups(self):
        # two families of ten: every gift has to cross to the other family
        family_a = [f"a{i}" for i in range(10)]
        family_b = [f"b{i}" for i in range(10)]
        config = make_config(family_a + family_b, groups=[family_a, family_b])
        options = MatchOptions(max_steps=10000)
        for _ in range(10):
            assignment = find_secret_santa_assignment(config, options)
            self.verify_assignment(assignment, config)


class TestHallCheck(unittest.TestCase):

    def squeezed_config(self):
        # alice and bob can both only give to charlie
        return make_config(NAMES[:4], forbidden=[
            ["alice", "bob"], ["alice", "diana"], ["bob", "diana"],
        ])

    def test_detects_violation(self):
        config = self.squeezed_config()
        self.assertEqual(find_hall_violation(config), ("alice", "bob"))
        with self.assertRaises(InfeasibleConstraints) as ctx:
            find_secret_santa_assignment(config)
        self.assertEqual(ctx.exception.givers, ("alice", "bob"))

    def test_subset_cap_lets_violation_through_to_search(self):
        config = self.squeezed_config()
        self.assertIsNone(find_hall_violation(config, max_subset=1))
        options = MatchOptions(hall_check_max_subset=1)
        with self.assertRaises(SearchExhausted) as ctx:
            find_secret_santa_assignment(config, options)
        self.assertTrue(ctx.exception.proven)

    def test_disabled_check_falls_to_search(self):
        options = MatchOptions(hall_check=False)
        with self.assertRaises(SearchExhausted) as ctx:
            find_secret_santa_assignment(self.squeezed_config(), options)
        self.assertTrue(ctx.exception.proven)

    def test_skipped_above_participant_limit(self):
        options = MatchOptions(hall_check_max_participants=3)
        with mock.patch.object(draw, "find_hall_violation") as hall:
            with self.assertRaises(SearchExhausted):
                find_secret_santa_assignment(self.squeezed_config(), options)
            hall.assert_not_called()

    def test_never_rejects_feasible_instances(self):
        rng = random.Random(1234)
        for _ in range(200):
            n = rng.randint(2, 10)
            keys = [f"p{i}" for i in range(n)]
            order = keys[:]
            rng.shuffle(order)
            # plant a valid cycle, then forbid random pairs that keep it valid
            planted = {(order[i], order[(i + 1) % n]) for i in range(n)}
            forbidden = []
            for a in keys:
                for b in keys:
                    if a != b and (a, b) not in planted and (b, a) not in planted and rng.random() < 0.4:
                        forbidden.append([a, b])
            config = make_config(keys, forbidden=forbidden)
            self.assertIsNone(find_hall_violation(config, max_subset=4))
            find_secret_santa_assignment(config)


class TestSearchBudgets(unittest.TestCase):

    def test_step_bound_is_not_a_proof(self):
        options = MatchOptions(max_steps=1)
        with self.assertRaises(SearchExhausted) as ctx:
            find_secret_santa_assignment(make_config(NAMES[:6]), options)
        self.assertFalse(ctx.exception.proven)

    def test_shuffle_budget_is_not_a_proof(self):
        options = MatchOptions(strategy=SHUFFLE, max_attempts=5)
        with self.assertRaises(SearchExhausted) as ctx:
            find_secret_santa_assignment(make_config(NAMES[:3]), options, rng=NoShuffleRandom())
        self.assertFalse(ctx.exception.proven)

    def test_shuffle_falls_back_to_backtracking(self):
        config = make_config(NAMES[:3])
        options = MatchOptions(strategy=SHUFFLE, max_attempts=5, fallback_to_backtracking=True)
        assignment = find_secret_santa_assignment(config, options, rng=NoShuffleRandom())
        self.assertEqual(assignment.as_dict(), {"alice": "bob", "bob": "charlie", "charlie": "alice"})

    def test_invalid_options(self):
        with self.assertRaises(ValueError):
            MatchOptions(strategy="bogus")
        with self.assertRaises(ValueError):
            MatchOptions(max_attempts=0)
        with self.assertRaises(ValueError):
            MatchOptions(max_steps=0)


if __name__ == '__main__':
    unittest.main()
