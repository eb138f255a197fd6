"""Tests for the finite MDP model and the precomputed grid world transitions."""

from __future__ import annotations

import numpy as np
import pytest

from direction import Direction
from grid_world import FROZEN_LAKE_8X8, SLIPPERY_NOISE, GridWorld
from mdp import FiniteMDP, GridWorldMDP, MissingTransitionError, TabularMDP


TERMINALS_4X4 = {5, 7, 11, 12, 15}


# ---------------------------------------------------------------------------
# Grid world MDP
# ---------------------------------------------------------------------------


class TestGridWorldMDP:
    def test_shape(self, lake_mdp):
        assert isinstance(lake_mdp, FiniteMDP)
        assert lake_mdp.n_states == 16
        assert lake_mdp.n_actions == 4
        assert list(lake_mdp.actions()) == Direction.all()
        assert lake_mdp.starting_states() == (0,)

    @pytest.mark.parametrize("noise", [0.0, 0.2, SLIPPERY_NOISE, 1.0])
    def test_probabilities_sum_to_one(self, noise):
        mdp = GridWorldMDP(GridWorld.from_map(FROZEN_LAKE_8X8, noise=noise))
        for state in mdp.states():
            for action in mdp.actions():
                transitions = mdp.transition(state, action)
                if mdp.is_terminal(state):
                    assert transitions == ()
                else:
                    assert abs(sum(p for _, p in transitions) - 1.0) < 1e-9

    def test_terminal_states_have_no_transitions(self, slippery_mdp):
        for state in TERMINALS_4X4:
            assert slippery_mdp.is_terminal(state)
            for action in slippery_mdp.actions():
                assert slippery_mdp.transition(state, action) == ()

    def test_deterministic_transition(self, lake_mdp):
        assert lake_mdp.transition(0, Direction.RIGHT) == ((1, 1.0),)
        assert lake_mdp.transition(3, Direction.RIGHT) == ((3, 1.0),)

    def test_colliding_destinations_are_summed(self, slippery_mdp):
        # UP and LEFT both bump into the walls of the corner
        probs = dict(slippery_mdp.transition(0, Direction.UP))
        assert set(probs) == {0, 1}
        assert probs[0] == pytest.approx(2.0 / 3.0)
        assert probs[1] == pytest.approx(1.0 / 3.0)

    def test_destinations_sorted(self, slippery_mdp):
        next_states = [s for s, _ in slippery_mdp.transition(6, Direction.LEFT)]
        assert next_states == [2, 5, 10]

    def test_reward_depends_on_destination_only(self, slippery_mdp):
        for action in Direction.all():
            assert slippery_mdp.reward(14, action, 15) == 1.0
            assert slippery_mdp.reward(10, action, 14) == 0.0
            assert slippery_mdp.reward(6, action, 5) == 0.0

    def test_table_computed_once(self, slippery_mdp):
        assert slippery_mdp.transition(0, Direction.UP) is slippery_mdp.transition(0, Direction.UP)

    def test_missing_transition(self, lake_mdp):
        with pytest.raises(MissingTransitionError):
            lake_mdp.transition(99, Direction.UP)
        with pytest.raises(KeyError):
            lake_mdp.transition(0, "sideways")


class TestMatrices:
    def test_transition_matrices(self, slippery_mdp):
        P = slippery_mdp.transition_matrices()
        assert P.shape == (4, 16, 16)
        row_sums = P.sum(axis=2)
        for s in range(16):
            expected = 0.0 if s in TERMINALS_4X4 else 1.0
            np.testing.assert_allclose(row_sums[:, s], expected, atol=1e-9)

    def test_reward_matrix(self, slippery_mdp):
        R = slippery_mdp.reward_matrix()
        assert R.shape == (4, 16)
        right = Direction.all().index(Direction.RIGHT)
        assert R[right, 14] == pytest.approx(1.0 / 3.0)
        assert R[right, 0] == 0.0
        assert R[:, 15].sum() == 0.0


# ---------------------------------------------------------------------------
# Table-backed MDP
# ---------------------------------------------------------------------------


class TestTabularMDP:
    def test_reward_table(self):
        mdp = TabularMDP(["a", "b"], ["go"], {("a", "go"): [("b", 1.0)]}, {"b": 2.0})
        assert mdp.reward("a", "go", "b") == 2.0
        assert mdp.reward("a", "go", "a") == 0.0
        assert mdp.starting_states() == ("a",)
        assert mdp.is_terminal("b")
        assert not mdp.is_terminal("a")

    def test_reward_callable(self):
        mdp = TabularMDP([0, 1], ["go"], {(0, "go"): [(1, 1.0)]}, lambda s, a, s_new: s_new - s)
        assert mdp.reward(0, "go", 1) == 1

    def test_unnormalised_distribution(self):
        with pytest.raises(ValueError):
            TabularMDP([0, 1], ["go"], {(0, "go"): [(1, 0.5)]}, {})

    def test_unknown_state(self):
        mdp = TabularMDP([0, 1], ["go"], {(0, "go"): [(1, 1.0)]}, {})
        with pytest.raises(MissingTransitionError):
            mdp.transition(2, "go")

    def test_partially_defined_state(self):
        with pytest.raises(MissingTransitionError) as excinfo:
            TabularMDP(["a", "end"], ["stay", "go"], {("a", "go"): [("end", 1.0)]}, {"end": -1.0})
        assert excinfo.value.state == "a"
        assert excinfo.value.action == "stay"
