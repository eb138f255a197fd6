"""
Classes for specifying a finite Markov Decision Process.

    Let ``S`` = the number of states, and ``A`` = the number of actions.

    States and actions are opaque hashable values. A concrete MDP enumerates
    them once, in a fixed order, and answers transition and reward queries:

    transition(s, a)
        A sequence of ``(s', P(s' | s, a))`` pairs. The probabilities sum to
        1.0, or the sequence is empty when ``s`` is terminal: no transition
        ever leaves a terminal state, so no value propagates through it.
    reward(s, a, s')
        The reward received for the transition ``s -a-> s'``.

    Attributes
    ----------
    transitions : dict
        ``(s, a) -> ((s', p), ...)``, precomputed once for table-backed MDPs.

    Methods
    -------
    transition_matrices()
        Numpy array with shape (A, S, S) containing P(s' | s, a).
    reward_matrix()
        Numpy array with shape (A, S) containing r(s, a) = E(s')[R(s, a, s')].
"""
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Generic, Hashable, Sequence, Tuple, TypeVar

import numpy as np

from direction import Direction

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Hashable)
A = TypeVar("A", bound=Hashable)

PROBABILITY_TOLERANCE = 1e-9


class MissingTransitionError(KeyError):
    def __init__(self, state, action):
        super().__init__((state, action))
        self.state = state
        self.action = action

    def __str__(self):
        return f"no transition for state {self.state!r} and action {self.action!r}"


class FiniteMDP(ABC, Generic[S, A]):
    @abstractmethod
    def states(self) -> Sequence[S]:
        ...

    @abstractmethod
    def actions(self) -> Sequence[A]:
        ...

    @abstractmethod
    def transition(self, state: S, action: A) -> Sequence[Tuple[S, float]]:
        ...

    @abstractmethod
    def reward(self, state: S, action: A, next_state: S) -> float:
        ...

    @abstractmethod
    def starting_states(self) -> Sequence[S]:
        ...

    @property
    def n_states(self):
        return len(self.states())

    @property
    def n_actions(self):
        return len(self.actions())

    def is_terminal(self, state):
        return all(len(self.transition(state, a)) == 0 for a in self.actions())

    def state_index(self):
        return {s: i for i, s in enumerate(self.states())}

    def expected_reward(self, state, action):
        # r(s,a) = E(s')[r(s,a,s')] = \sum_s' [P(s'|s,a)*R(s,a,s')]
        return sum((p * self.reward(state, action, s_new) for s_new, p in self.transition(state, action)), 0.0)

    def transition_matrices(self):
        index = self.state_index()
        P = np.zeros((self.n_actions, self.n_states, self.n_states))
        for a, action in enumerate(self.actions()):
            for s, state in enumerate(self.states()):
                for s_new, p in self.transition(state, action):
                    P[a, s, index[s_new]] += p
        return P

    def reward_matrix(self):
        R = np.zeros((self.n_actions, self.n_states))
        for a, action in enumerate(self.actions()):
            for s, state in enumerate(self.states()):
                R[a, s] = self.expected_reward(state, action)
        return R


class TabularMDP(FiniteMDP[S, A]):
    """
    MDP backed by explicit tables.

    ``transitions`` maps ``(s, a)`` to ``[(s', p), ...]``. A state with no
    entries for any action is terminal; a state with entries for only some
    actions raises MissingTransitionError. ``rewards`` is either a callable
    ``r(s, a, s')`` or a mapping from ``s'`` to its reward.
    """

    def __init__(self, states, actions, transitions, rewards, starting_states=None):
        self._states = tuple(states)
        self._actions = tuple(actions)
        assert len(self._states) > 0, "An MDP needs at least one state."
        assert len(self._actions) > 0, "An MDP needs at least one action."

        self.transitions = {}
        for state in self._states:
            for action in self._actions:
                entries = tuple(transitions.get((state, action), ()))
                total = sum(p for _, p in entries)
                if entries and abs(total - 1.0) > PROBABILITY_TOLERANCE:
                    raise ValueError(f"transition probabilities for {(state, action)!r} sum to {total}, not 1")
                self.transitions[(state, action)] = entries

            # a state is either terminal (no entries at all) or defines every action
            missing = [a for a in self._actions if not self.transitions[(state, a)]]
            if missing and len(missing) < len(self._actions):
                raise MissingTransitionError(state, missing[0])

        if callable(rewards):
            self._reward = rewards
        else:
            reward_table = dict(rewards)
            self._reward = lambda s, a, s_new: reward_table.get(s_new, 0.0)

        if starting_states is None:
            starting_states = self._states[:1]
        self._starting_states = tuple(starting_states)

    def states(self):
        return self._states

    def actions(self):
        return self._actions

    def transition(self, state, action):
        try:
            return self.transitions[(state, action)]
        except KeyError:
            raise MissingTransitionError(state, action) from None

    def reward(self, state, action, next_state):
        return self._reward(state, action, next_state)

    def starting_states(self):
        return self._starting_states


class GridWorldMDP(FiniteMDP[int, Direction]):
    """
    MDP derived from a GridWorld.

    The ``(state, action) -> [(next_state, probability)]`` table is computed
    once here and shared by every solver call against this instance. Rewards
    depend only on the destination cell.
    """

    def __init__(self, grid_world):
        self.grid_world = grid_world
        self._states = tuple(range(grid_world.n_states))
        self._actions = tuple(Direction.all())
        self.rewards = tuple(cell.reward for cell in grid_world.grid)
        self.transitions = self._computeTransitions()

        logger.debug("Built grid world MDP: %d states, %d actions, %d terminal",
                     len(self._states), len(self._actions),
                     sum(grid_world.is_terminal(s) for s in self._states))

    def _computeTransitions(self):
        direction_probs = self.grid_world.direction_table()
        transitions = {}

        for state in self._states:
            for action in self._actions:
                if self.grid_world.is_terminal(state):
                    transitions[(state, action)] = ()
                    continue

                # several noisy directions can land on the same cell next to a wall
                next_state_probs = defaultdict(float)
                for noisy_action, p in direction_probs[action]:
                    next_state_probs[self.grid_world.next_position(state, noisy_action)] += p

                transitions[(state, action)] = tuple(
                    (s_new, p) for s_new, p in sorted(next_state_probs.items()) if p > 0.0
                )

        return transitions

    def states(self):
        return self._states

    def actions(self):
        return self._actions

    def transition(self, state, action):
        try:
            return self.transitions[(state, action)]
        except KeyError:
            raise MissingTransitionError(state, action) from None

    def reward(self, state, action, next_state):
        return self.rewards[next_state]

    def starting_states(self):
        return self.grid_world.starting_states

    def is_terminal(self, state):
        return self.grid_world.is_terminal(state)
