"""
Class for specifying a grid world whose dynamics can be turned into an MDP.

    Cells are stored row-major, so the state of cell (row, col) is
    ``row * n_cols + col``.

    Parameters
    ----------
    grid : sequence of Cell
        Row-major cells, ``len(grid) == n_rows * n_cols``.
    n_rows, n_cols : int
        Shape of the grid.
    starting_states : sequence of int
        States an episode may start from. At least one is required.
    noise : float
        Slip probability ∈ [0, 1]. The intended direction is executed with
        probability ``1 - noise``; each perpendicular direction receives
        ``noise / 2``.

    Methods
    -------
    from_map(rows, noise)
        Build a grid world from strings over ``F S H G``.
    from_layout(rows, cols, start, goal, holes, noise)
        Build a grid world from a fixed start, goal and hole indices.
    next_position(state, action)
        The state reached by executing ``action``, clamped at the borders.
    direction_probs(action)
        Distribution over actually executed directions for an intended one.
"""
from dataclasses import dataclass

from direction import Direction


FROZEN_LAKE_4X4 = (
    "SFFF",
    "FHFH",
    "FFFH",
    "HFFG",
)

FROZEN_LAKE_8X8 = (
    "SFFFFFFF",
    "FFFFFFFF",
    "FFFHFFFF",
    "FFFFFHFF",
    "FFFHFFFF",
    "FHHFFFHF",
    "FHFFHFHF",
    "FFFHFFFG",
)

MAPS = {
    "4x4": FROZEN_LAKE_4X4,
    "8x8": FROZEN_LAKE_8X8,
}

# slippery frozen lake: intended and both perpendicular directions equally likely
SLIPPERY_NOISE = 2.0 / 3.0


class InvalidMapError(ValueError):
    pass


@dataclass(frozen=True)
class Cell:
    reward: float = 0.0
    is_terminal: bool = False


FREE = Cell()
HOLE = Cell(reward=0.0, is_terminal=True)
GOAL = Cell(reward=1.0, is_terminal=True)


class GridWorld():
    def __init__(self, grid, n_rows, n_cols, starting_states, noise=0.0):
        assert len(grid) == n_rows * n_cols, "Grid must have n_rows * n_cols cells."
        assert len(starting_states) > 0, "At least one starting state is required."
        assert all(0 <= s < len(grid) for s in starting_states), "Starting state outside the grid."
        assert 0.0 <= noise <= 1.0, "Noise must be in [0, 1]"

        self.grid = tuple(grid)
        self.n_rows = n_rows
        self.n_cols = n_cols
        self.starting_states = tuple(starting_states)
        self.noise = float(noise)

    @classmethod
    def from_map(cls, rows, noise=0.0):
        rows = list(rows)
        n_rows = len(rows)
        if n_rows == 0:
            raise InvalidMapError("zero rows")

        n_cols = len(rows[0])
        if n_cols == 0:
            raise InvalidMapError("zero cols")

        if not all(len(row) == n_cols for row in rows):
            raise InvalidMapError("different length rows")

        grid = []
        starting_states = []
        for i, ch in enumerate("".join(rows)):
            if ch == "F":
                grid.append(FREE)
            elif ch == "S":
                starting_states.append(i)
                grid.append(FREE)
            elif ch == "H":
                grid.append(HOLE)
            elif ch == "G":
                grid.append(GOAL)
            else:
                raise InvalidMapError(f"invalid grid cell: {ch!r}")

        if not starting_states:
            raise InvalidMapError("map has no starting state")

        return cls(grid, n_rows, n_cols, starting_states, noise)

    @classmethod
    def from_layout(cls, rows, cols, start, goal, holes=(), noise=0.0):
        """
        Legacy fixed-grid constructor: one start, one goal, and hole indices.
        """
        if rows <= 0 or cols <= 0:
            raise InvalidMapError("grid must have at least one row and one column")

        size = rows * cols
        for index in [start, goal, *holes]:
            if not 0 <= index < size:
                raise InvalidMapError(f"cell index {index} outside a {rows}x{cols} grid")
        if start == goal or start in holes:
            raise InvalidMapError(f"start {start} is on a terminal cell")

        grid = [FREE] * size
        grid[goal] = GOAL
        for hole in holes:
            grid[hole] = HOLE

        return cls(grid, rows, cols, [start], noise)

    @classmethod
    def frozen_lake(cls, size="4x4", is_slippery=True):
        try:
            rows = MAPS[size]
        except KeyError:
            raise InvalidMapError(f"unknown map {size!r}, expected one of {sorted(MAPS)}") from None
        return cls.from_map(rows, noise=SLIPPERY_NOISE if is_slippery else 0.0)

    @property
    def n_states(self):
        return len(self.grid)

    @property
    def shape(self):
        return (self.n_rows, self.n_cols)

    def is_terminal(self, state):
        return self.grid[state].is_terminal

    def reward(self, state):
        return self.grid[state].reward

    def to_coordinates(self, state):
        return divmod(state, self.n_cols)

    def to_state(self, row, col):
        return row * self.n_cols + col

    def next_position(self, state, action):
        row, col = self.to_coordinates(state)
        d_row, d_col = action.delta

        # moving into a wall leaves that axis unchanged
        row = min(max(row + d_row, 0), self.n_rows - 1)
        col = min(max(col + d_col, 0), self.n_cols - 1)
        return self.to_state(row, col)

    def direction_probs(self, action):
        probs = [(action, 1.0 - self.noise)]
        if self.noise > 0.0:
            noisy_prob = self.noise / 2.0
            for noisy_action in action.perpendicular():
                probs.append((noisy_action, noisy_prob))
        return probs

    def direction_table(self):
        return {action: self.direction_probs(action) for action in Direction.all()}

    def __repr__(self):
        return (f"GridWorld(n_rows={self.n_rows}, n_cols={self.n_cols}, "
                f"starting_states={list(self.starting_states)}, noise={self.noise:.4g})")
