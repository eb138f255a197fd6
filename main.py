import argparse
import logging

import numpy as np

from dynamic_programming import (DEFAULT_DISCOUNT, DEFAULT_THRESHOLD, policy_iteration, value_difference,
                                 value_iteration)
from environment import MDPEnvironment, evaluate_policy
from grid_world import MAPS, SLIPPERY_NOISE, GridWorld
from mdp import GridWorldMDP
from render import render_grid, render_policy, render_values

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Solve a frozen lake grid world with dynamic programming.")
    parser.add_argument("--map", choices=sorted(MAPS), default="4x4", help="grid layout")
    parser.add_argument("--noise", type=float, default=SLIPPERY_NOISE,
                        help="probability of slipping to a perpendicular direction")
    parser.add_argument("--discount", type=float, default=DEFAULT_DISCOUNT, help="discount factor in (0, 1]")
    parser.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD,
                        help="convergence tolerance on the max value change")
    parser.add_argument("--solver", choices=["policy", "value", "both"], default="both")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--episodes", type=int, default=0, help="simulate this many episodes per solved policy")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    grid_world = GridWorld.from_map(MAPS[args.map], noise=args.noise)
    mdp = GridWorldMDP(grid_world)
    rng = np.random.default_rng(args.seed)
    logger.info("Loaded %r", grid_world)
    print(render_grid(grid_world))

    results = {}
    if args.solver in ("policy", "both"):
        results["policy iteration"] = policy_iteration(mdp, args.discount, args.threshold, rng=rng)
    if args.solver in ("value", "both"):
        results["value iteration"] = value_iteration(mdp, args.discount, args.threshold)

    for name, result in results.items():
        print(f"============{name}=============")
        print(f"iterations: {result.iterations}")
        print(render_policy(grid_world, result.policy))
        print(render_values(grid_world, result.values))

        if args.episodes > 0:
            env = MDPEnvironment(mdp, rng)
            stats = evaluate_policy(env, result.policy, args.episodes)
            print(f"mean reward over {stats.episodes} episodes: {stats.mean:.4f} (std {stats.std:.4f})")

    if len(results) == 2:
        pi, vi = results.values()
        print(f"max value difference: {value_difference(pi.values, vi.values):.3e}")


if __name__ == "__main__":
    main()
