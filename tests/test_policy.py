"""Tests for deterministic policies."""

from __future__ import annotations

import numpy as np
import pytest

from direction import Direction
from grid_world import FROZEN_LAKE_8X8, GridWorld
from mdp import GridWorldMDP
from policy import DeterministicPolicy, policy_from_actions, random_policy


class TestDeterministicPolicy:
    def test_lookup(self):
        policy = DeterministicPolicy({0: Direction.UP, 1: Direction.LEFT})
        assert policy.get_action(1) == Direction.LEFT
        assert policy(0) == Direction.UP
        assert 1 in policy
        assert len(policy) == 2

    def test_immutable(self):
        mapping = {0: Direction.UP}
        policy = DeterministicPolicy(mapping)
        mapping[0] = Direction.DOWN
        assert policy.get_action(0) == Direction.UP
        with pytest.raises(TypeError):
            policy.state_actions[0] = Direction.DOWN

    def test_equality_is_state_by_state(self):
        a = DeterministicPolicy({0: Direction.UP, 1: Direction.DOWN})
        b = DeterministicPolicy({1: Direction.DOWN, 0: Direction.UP})
        c = DeterministicPolicy({0: Direction.UP, 1: Direction.LEFT})
        assert a == b
        assert hash(a) == hash(b)
        assert a != c

    def test_as_array(self):
        policy = policy_from_actions([0, 1, 2], [Direction.RIGHT, Direction.UP, Direction.LEFT])
        np.testing.assert_array_equal(policy.as_array([0, 1, 2], Direction.all()), [3, 0, 2])

    def test_from_actions_length_mismatch(self):
        with pytest.raises(AssertionError):
            policy_from_actions([0, 1], [Direction.UP])


class TestRandomPolicy:
    def test_covers_every_state(self, lake_mdp, rng):
        policy = random_policy(lake_mdp, rng)
        assert len(policy) == lake_mdp.n_states
        assert all(policy.get_action(s) in lake_mdp.actions() for s in lake_mdp.states())

    def test_seeded(self, lake_mdp):
        first = random_policy(lake_mdp, np.random.default_rng(3))
        second = random_policy(lake_mdp, np.random.default_rng(3))
        assert first == second

    def test_uses_all_actions(self, rng):
        mdp = GridWorldMDP(GridWorld.from_map(FROZEN_LAKE_8X8))
        policy = random_policy(mdp, rng)
        assert {a for _, a in policy.items()} == set(Direction.all())
