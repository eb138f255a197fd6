"""
Dynamic programming solvers for finite MDPs.

    All solvers work against the FiniteMDP interface and never mutate it.
    Sweeps run over the (A, S, S) transition and (A, S) reward arrays of the
    MDP, rows ordered by ``mdp.states()``. V starts at zero and is replaced
    wholesale after every sweep (synchronous / Jacobi updates: a sweep only
    ever reads the previous sweep's vector). Results are handed back as
    plain dicts ``state -> float``.

    Parameters
    ----------
    discount : float
        Discount factor ∈ (0, 1]. The per time-step discount factor on future rewards.
    threshold : float
        Stopping criterion: sweeping stops once max_s |V_k(s) - V_{k-1}(s)| < threshold.

    Methods
    -------
    policy_evaluation_iterative(mdp, policy)
        Bellman expectation sweeps for a fixed policy.
    policy_evaluation_direct(mdp, policy)
        Solve (I - γ P_π) V = R_π analytically.
    policy_improvement(mdp, values)
        Greedy policy with respect to a value table.
    policy_iteration(mdp, rng)
        Alternate evaluation and improvement until the policy is stable.
    bellman_update(mdp, values)
        One Bellman optimality sweep.
    value_iteration(mdp)
        Bellman optimality sweeps until convergence, then the greedy policy.
"""
import logging
from dataclasses import dataclass, field

import numpy as np

from policy import DeterministicPolicy, policy_from_actions, random_policy

logger = logging.getLogger(__name__)

DEFAULT_DISCOUNT = 0.99
DEFAULT_THRESHOLD = 1e-10

# action values closer than this to the best one count as tied
TIE_TOLERANCE = 1e-12


class ConvergenceError(RuntimeError):
    pass


@dataclass(frozen=True)
class EvaluationResult:
    values: dict
    iterations: int


@dataclass(frozen=True)
class SolverResult:
    policy: DeterministicPolicy
    values: dict
    iterations: int
    evaluation_sweeps: tuple = field(default=())


def _check_hyperparameters(discount, threshold=None):
    if not 0.0 < discount <= 1.0:
        raise ValueError(f"Discount must be in (0, 1], got {discount}")
    if threshold is not None and not threshold > 0.0:
        raise ValueError(f"Threshold must be greater than 0, got {threshold}")


def _as_vector(mdp, values):
    return np.array([values[s] for s in mdp.states()], dtype=float)


def _as_dict(mdp, V):
    return {s: float(v) for s, v in zip(mdp.states(), V)}


def value_difference(values, other):
    """L∞ distance between two value tables over the same states."""
    if not values:
        return 0.0
    return max(abs(v - other[s]) for s, v in values.items())


def _sweep_policy(P_pi, R_pi, discount, threshold, max_iterations=None):
    V_prev = np.zeros(len(R_pi))
    k = 0
    while True:
        V = R_pi + discount * P_pi.dot(V_prev)
        k += 1
        delta = np.max(np.abs(V - V_prev))
        logger.debug("policy evaluation sweep %d: delta=%.3e", k, delta)

        if delta < threshold:
            return V, k
        if max_iterations is not None and k >= max_iterations:
            raise ConvergenceError(f"policy evaluation did not converge in {max_iterations} sweeps "
                                   f"(delta={delta:.3e})")
        V_prev = V


def _select_policy(P, R, actions):
    rows = np.arange(P.shape[1])
    return P[actions, rows, :], R[actions, rows]


def policy_evaluation_iterative(mdp, policy, discount=DEFAULT_DISCOUNT, threshold=DEFAULT_THRESHOLD,
                                max_iterations=None):
    """
    Iteratively evaluate the value function of a deterministic policy.

    Each sweep computes
        V_k = R_π + γ P_π V_{k-1}
    over all states at once, from V_0 = 0, until max_s |V_k(s) - V_{k-1}(s)| < threshold.

    With discount == 1 this only terminates when every trajectory under the
    policy is either reward-free or eventually absorbed by a terminal state.
    """
    _check_hyperparameters(discount, threshold)
    P_pi, R_pi = compute_PR_policy(mdp, policy)
    V, k = _sweep_policy(P_pi, R_pi, discount, threshold, max_iterations)
    return EvaluationResult(_as_dict(mdp, V), k)


def compute_PR_policy(mdp, policy):
    """
    Compute the (S,S) transition matrix and (S,) expected reward vector of
    the MDP when actions are selected according to a deterministic policy.
    """
    actions = policy.as_array(mdp.states(), mdp.actions())
    return _select_policy(mdp.transition_matrices(), mdp.reward_matrix(), actions)


def policy_evaluation_direct(mdp, policy, discount=DEFAULT_DISCOUNT):
    """
    Evaluate the value function of a policy analytically.

    V = R + γPV  =>  (I - γP)V = R  =>  V = inv(I - γP) R

    Terminal states have all-zero rows, so the system is always solvable for
    discount < 1. With discount == 1 it is singular when the policy can cycle
    forever, and numpy raises LinAlgError.
    """
    _check_hyperparameters(discount)
    P_pi, R_pi = compute_PR_policy(mdp, policy)
    V_pi = np.linalg.solve(np.eye(mdp.n_states) - discount * P_pi, R_pi)
    return _as_dict(mdp, V_pi)


def _q_values(P, R, V, discount):
    # Q[a] = R[a] + γ P[a] V, shape (A, S)
    return R + discount * P.dot(V)


def action_values(mdp, values, discount=DEFAULT_DISCOUNT):
    """Q(s,a) for every state and action, as ``{state: {action: q}}``."""
    Q = _q_values(mdp.transition_matrices(), mdp.reward_matrix(), _as_vector(mdp, values), discount)
    actions = mdp.actions()
    return {
        state: {action: float(Q[a, s]) for a, action in enumerate(actions)}
        for s, state in enumerate(mdp.states())
    }


def _argmax(q_values, fallback):
    # first maximal action in canonical order wins
    if not q_values:
        return fallback
    best = max(q_values.values())
    for action, q in q_values.items():
        if q >= best - TIE_TOLERANCE:
            return action


def greedy_policy(mdp, q_table):
    fallback = mdp.actions()[0]
    return DeterministicPolicy((s, _argmax(q_table.get(s, {}), fallback)) for s in mdp.states())


def _greedy_actions(Q):
    # index of the first action within TIE_TOLERANCE of the column maximum
    return np.argmax(Q >= Q.max(axis=0) - TIE_TOLERANCE, axis=0)


def _as_policy(mdp, actions):
    return policy_from_actions(mdp.states(), [mdp.actions()[a] for a in actions])


def policy_improvement(mdp, values, discount=DEFAULT_DISCOUNT):
    """
    Given a value function V, improve the policy greedily.
    """
    _check_hyperparameters(discount)
    Q = _q_values(mdp.transition_matrices(), mdp.reward_matrix(), _as_vector(mdp, values), discount)
    return _as_policy(mdp, _greedy_actions(Q))


def policy_iteration(mdp, discount=DEFAULT_DISCOUNT, threshold=DEFAULT_THRESHOLD, rng=None,
                     initial_policy=None, max_iterations=None):
    """
    Policy iteration from a uniformly random initial policy.

    Evaluate the current policy, improve it greedily, and stop as soon as the
    improved policy is identical to the current one. ``iterations`` in the
    result counts improvement steps; ``evaluation_sweeps`` holds the number
    of sweeps every evaluation took.
    """
    _check_hyperparameters(discount, threshold)
    if initial_policy is None:
        if rng is None:
            raise ValueError("policy_iteration needs a random generator or an initial policy")
        initial_policy = random_policy(mdp, rng)

    P = mdp.transition_matrices()
    R = mdp.reward_matrix()
    policy = initial_policy.as_array(mdp.states(), mdp.actions())
    sweeps = []
    iterations = 0
    while True:
        V, k = _sweep_policy(*_select_policy(P, R, policy), discount, threshold)
        sweeps.append(k)

        new_policy = _greedy_actions(_q_values(P, R, V, discount))
        iterations += 1

        changed = int(np.count_nonzero(new_policy != policy))
        logger.debug("policy iteration %d: %d evaluation sweeps, %d actions changed",
                     iterations, k, changed)

        if changed == 0:
            logger.info("Policy iteration converged after %d iterations (%d evaluation sweeps)",
                        iterations, sum(sweeps))
            return SolverResult(_as_policy(mdp, policy), _as_dict(mdp, V), iterations, tuple(sweeps))

        if max_iterations is not None and iterations >= max_iterations:
            raise ConvergenceError(f"policy iteration did not converge in {max_iterations} iterations")
        policy = new_policy


def _bellman_sweep(P, R, V_prev, discount):
    Q = _q_values(P, R, V_prev, discount)
    return Q.max(axis=0), Q


def bellman_update(mdp, values, discount=DEFAULT_DISCOUNT):
    """
    One synchronous sweep of the Bellman optimality operator.
    Returns the new value table and the action-value table it was taken from.
    """
    V, Q = _bellman_sweep(mdp.transition_matrices(), mdp.reward_matrix(), _as_vector(mdp, values), discount)
    actions = mdp.actions()
    Q_table = {
        state: {action: float(Q[a, s]) for a, action in enumerate(actions)}
        for s, state in enumerate(mdp.states())
    }
    return _as_dict(mdp, V), Q_table


def value_iteration(mdp, discount=DEFAULT_DISCOUNT, threshold=DEFAULT_THRESHOLD, max_iterations=None):
    _check_hyperparameters(discount, threshold)
    P = mdp.transition_matrices()
    R = mdp.reward_matrix()

    V_prev = np.zeros(mdp.n_states)
    k = 0
    while True:
        V, Q = _bellman_sweep(P, R, V_prev, discount)
        k += 1
        delta = np.max(np.abs(V - V_prev))
        logger.debug("value iteration sweep %d: delta=%.3e", k, delta)

        if delta < threshold:
            break
        if max_iterations is not None and k >= max_iterations:
            raise ConvergenceError(f"value iteration did not converge in {max_iterations} sweeps "
                                   f"(delta={delta:.3e})")
        V_prev = V

    logger.info("Value iteration converged after %d sweeps", k)
    return SolverResult(_as_policy(mdp, _greedy_actions(Q)), _as_dict(mdp, V), k)
