"""
Deterministic policies: a mapping from every state to exactly one action.
"""
from abc import ABC, abstractmethod
from types import MappingProxyType

import numpy as np


class Policy(ABC):
    @abstractmethod
    def get_action(self, state):
        ...

    def __call__(self, state):
        return self.get_action(state)


class DeterministicPolicy(Policy):
    def __init__(self, state_actions):
        self._state_actions = MappingProxyType(dict(state_actions))

    @property
    def state_actions(self):
        return self._state_actions

    def get_action(self, state):
        return self._state_actions[state]

    def items(self):
        return self._state_actions.items()

    def as_array(self, states, actions):
        """
        Returns the (S,) array of action indices, in the given state and
        action orderings.
        """
        action_index = {a: i for i, a in enumerate(actions)}
        return np.array([action_index[self._state_actions[s]] for s in states], dtype=np.int32)

    def __len__(self):
        return len(self._state_actions)

    def __contains__(self, state):
        return state in self._state_actions

    def __eq__(self, other):
        if not isinstance(other, DeterministicPolicy):
            return NotImplemented
        return dict(self._state_actions) == dict(other._state_actions)

    def __hash__(self):
        return hash(frozenset(self._state_actions.items()))

    def __repr__(self):
        return f"DeterministicPolicy({dict(self._state_actions)!r})"


def policy_from_actions(states, actions):
    states, actions = list(states), list(actions)
    assert len(states) == len(actions), "Need exactly one action per state."
    return DeterministicPolicy(zip(states, actions))


def random_policy(mdp, rng):
    """
    Assigns every state an action drawn independently and uniformly from
    ``mdp.actions()`` using the supplied numpy Generator.
    """
    actions = mdp.actions()
    states = mdp.states()
    choices = rng.integers(len(actions), size=len(states))
    return DeterministicPolicy((s, actions[i]) for s, i in zip(states, choices))
