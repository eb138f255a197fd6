"""
The four movement actions of a grid world.

Declaration order (UP, DOWN, LEFT, RIGHT) is the canonical action ordering,
so solvers break ties in favour of the action declared first.
"""
from enum import Enum


class Direction(Enum):
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3

    @classmethod
    def all(cls):
        return list(cls)

    def opposite(self):
        return _OPPOSITES[self]

    def perpendicular(self):
        """Returns the two directions orthogonal to this one."""
        if self in (Direction.UP, Direction.DOWN):
            return (Direction.LEFT, Direction.RIGHT)
        return (Direction.UP, Direction.DOWN)

    @property
    def delta(self):
        # (d_row, d_col)
        return _DELTAS[self]

    def __str__(self):
        return _ARROWS[self]

    def __lt__(self, other):
        if not isinstance(other, Direction):
            return NotImplemented
        return self.value < other.value


_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

_DELTAS = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}

_ARROWS = {
    Direction.UP: "↑",
    Direction.DOWN: "↓",
    Direction.LEFT: "←",
    Direction.RIGHT: "→",
}
