import logging

import numpy as np

from policy import DeterministicPolicy

logger = logging.getLogger(__name__)


class LinearDecay:
    """Linear interpolation from ``start`` to ``end`` over ``decay_steps``, then constant."""

    def __init__(self, start: float, end: float, decay_steps: int):
        assert decay_steps > 0, "Decay steps must be greater than 0."
        self.start = float(start)
        self.end = float(end)
        self.decay_steps = decay_steps
        self.delta = (self.end - self.start) / decay_steps

    def get(self, step: int) -> float:
        if step < self.decay_steps:
            return self.start + self.delta * step
        return self.end


class ConstantSchedule:
    def __init__(self, value: float):
        self.value = float(value)

    def get(self, step: int) -> float:
        return self.value


def _as_schedule(value):
    if hasattr(value, "get"):
        return value
    return ConstantSchedule(value)


class QLearning:
    """
    Tabular Q-learning against an MDPEnvironment.

    The state and action orderings come from ``env.mdp``; ``rng`` is the
    numpy Generator behind every exploration draw. ``learning_rate`` and
    ``exploration`` are either floats or schedules with a ``get(step)``
    method. Episodes restart after ``timesteps`` steps or on termination.
    Q has shape (A, S).
    """

    def __init__(self, env, rng, discount: float = 0.99, learning_rate=0.5, exploration=0.1,
                 timesteps: int = 100):
        assert 0.0 < discount <= 1.0, "Discount must be in (0, 1]"
        assert timesteps > 0, "Timesteps must be greater than 0."

        self.env = env
        self.gamma = float(discount)
        self.alpha = _as_schedule(learning_rate)
        self.epsilon = _as_schedule(exploration)
        self.T = timesteps
        self.rng = rng

        self.states = env.mdp.states()
        self.actions = env.mdp.actions()
        self.index = env.mdp.state_index()
        self.S = len(self.states)
        self.A = len(self.actions)

        self.Q = np.zeros((self.A, self.S))
        self.t = 0
        self.n_steps = 0
        self.episodes = 0

        self.env.reset()

    def select_action(self, s):
        # epsilon-greedy action selection
        if self.rng.random() < self.epsilon.get(self.n_steps):
            return int(self.rng.integers(self.A))
        return int(np.argmax(self.Q[:, s]))

    def step(self):
        # Restart episode
        if self.t == self.T or self.env.is_done:
            self.env.reset()
            self.t = 0
            self.episodes += 1

        s = self.index[self.env.current_state]
        a = self.select_action(s)
        next_state, r, done = self.env.step(self.actions[a])
        new_s = self.index[next_state]

        target = r if done else r + self.gamma * np.max(self.Q[:, new_s])
        self.Q[a, s] += self.alpha.get(self.n_steps) * (target - self.Q[a, s])

        self.t += 1
        self.n_steps += 1
        return r

    def run(self, num_steps: int, log_interval=None):
        total_reward = 0.0
        for i in range(num_steps):
            total_reward += self.step()
            if log_interval and (i + 1) % log_interval == 0:
                logger.info("Q-learning step %d: %d episodes, reward so far %.1f, epsilon %.3f",
                            i + 1, self.episodes, total_reward, self.epsilon.get(self.n_steps))
        return self.greedy_policy()

    def greedy_policy(self):
        return DeterministicPolicy(
            (state, self.actions[int(np.argmax(self.Q[:, s]))]) for s, state in enumerate(self.states)
        )

    def value_function(self):
        return {state: float(self.Q[:, s].max()) for s, state in enumerate(self.states)}
