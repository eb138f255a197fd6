"""
Text rendering of grid worlds, policies and value tables.

These only format data that has already been computed.
"""
import numpy as np

CELL_GLYPHS = {
    "free": "_",
    "hole": "O",
    "goal": "*",
    "agent": "A",
}


def _glyph(cell):
    if not cell.is_terminal:
        return CELL_GLYPHS["free"]
    return CELL_GLYPHS["goal"] if cell.reward > 0 else CELL_GLYPHS["hole"]


def render_grid(grid_world, position=None):
    lines = []
    for row in range(grid_world.n_rows):
        line = ""
        for col in range(grid_world.n_cols):
            state = grid_world.to_state(row, col)
            line += CELL_GLYPHS["agent"] if state == position else _glyph(grid_world.grid[state])
        lines.append(line)
    return "\n".join(lines) + "\n"


def render_policy(grid_world, policy):
    """Arrows for non-terminal cells, the cell glyph for terminal ones."""
    lines = []
    for row in range(grid_world.n_rows):
        symbols = []
        for col in range(grid_world.n_cols):
            state = grid_world.to_state(row, col)
            cell = grid_world.grid[state]
            symbols.append(_glyph(cell) if cell.is_terminal else str(policy.get_action(state)))
        lines.append(" ".join(symbols))
    return "\n".join(lines) + "\n"


def values_as_grid(grid_world, values):
    V = np.array([values[s] for s in range(grid_world.n_states)])
    return V.reshape(grid_world.shape)


def render_values(grid_world, values, precision=4):
    V = values_as_grid(grid_world, values)
    width = precision + 3
    return "\n".join(
        " ".join(f"{v:>{width}.{precision}f}" for v in row) for row in V
    ) + "\n"


def format_transitions(mdp):
    lines = []
    for state in mdp.states():
        lines.append(f"{state!r}")
        for action in mdp.actions():
            label = action.name if hasattr(action, "name") else repr(action)
            lines.append(f"  {label}")
            for s_new, p in mdp.transition(state, action):
                lines.append(f"    -> {s_new!r}: {p:.4f}")
    return "\n".join(lines) + "\n"
