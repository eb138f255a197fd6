"""
Simulation view of an MDP, used to empirically check solver output.

    The solvers never touch this module: it samples single steps from the
    transition distribution of an MDP and runs whole episodes under a fixed
    policy.

    Methods
    -------
    MDPEnvironment.step(action)
        Sample s' ~ P(. | s, action), returns StepResult(s', reward, is_done).
    MDPEnvironment.reset()
        Sample a new starting state uniformly from the MDP's starting states.
    generate_episode(env, policy)
        Run one episode from reset until termination, returns total reward.
    evaluate_policy(env, policy, n_episodes)
        Empirical return statistics over many episodes.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from mdp import MissingTransitionError

logger = logging.getLogger(__name__)


class EpisodeTerminatedError(RuntimeError):
    pass


class StepResult(NamedTuple):
    state: object
    reward: float
    is_done: bool


class Environment(ABC):
    @property
    @abstractmethod
    def current_state(self):
        ...

    @property
    @abstractmethod
    def is_done(self):
        ...

    @abstractmethod
    def step(self, action) -> StepResult:
        ...

    @abstractmethod
    def reset(self):
        ...


class MDPEnvironment(Environment):
    def __init__(self, mdp, rng, start=None):
        self.mdp = mdp
        self.rng = rng
        self._state = None
        if start is None:
            self.reset()
        else:
            assert start in mdp.state_index(), "Start must be a state of the MDP."
            self._state = start

    @property
    def current_state(self):
        return self._state

    @property
    def is_done(self):
        return self.mdp.is_terminal(self._state)

    def step(self, action):
        if self.is_done:
            raise EpisodeTerminatedError(f"episode has terminated in state {self._state!r}, call reset() first")

        transitions = self.mdp.transition(self._state, action)
        if not transitions:
            raise MissingTransitionError(self._state, action)
        probs = np.array([p for _, p in transitions])
        i = self.rng.choice(len(transitions), p=probs / probs.sum())
        next_state = transitions[i][0]

        reward = self.mdp.reward(self._state, action, next_state)
        self._state = next_state
        return StepResult(next_state, reward, self.is_done)

    def reset(self):
        starting_states = self.mdp.starting_states()
        self._state = starting_states[self.rng.integers(len(starting_states))]
        return self._state


def generate_episode(env, policy, max_steps=None):
    """
    Follow ``policy`` from a fresh reset until the episode terminates and
    return the total (undiscounted) reward. ``max_steps`` truncates
    episodes of policies that never reach a terminal state.
    """
    state = env.reset()
    total_reward = 0.0
    steps = 0
    is_done = env.is_done
    while not is_done:
        if max_steps is not None and steps >= max_steps:
            break
        state, reward, is_done = env.step(policy.get_action(state))
        total_reward += reward
        steps += 1
    return total_reward


@dataclass(frozen=True)
class EpisodeStats:
    mean: float
    std: float
    success_rate: float
    episodes: int


def evaluate_policy(env, policy, n_episodes=1000, max_steps=None):
    assert n_episodes > 0, "Need at least one episode."
    rewards = np.array([generate_episode(env, policy, max_steps) for _ in range(n_episodes)])
    stats = EpisodeStats(float(rewards.mean()), float(rewards.std()), float(np.mean(rewards > 0.0)), n_episodes)
    logger.info("Evaluated policy over %d episodes: mean reward %.4f, success rate %.3f",
                n_episodes, stats.mean, stats.success_rate)
    return stats
