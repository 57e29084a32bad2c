import logging
from typing import Optional, Sequence, Tuple

import numpy as np


logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]


def check_order(order, minimum=0):
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise ValueError(f"Curve order must be an integer, got {order!r}")
    if order < minimum:
        raise ValueError(f"Curve order must be at least {minimum}, got {order}")
    return int(order)


class Curve:
    """Base class for the space-filling curves. A curve visits every cell of a
    side x side grid exactly once and is read-only once constructed.

    Components:
        order: Recursion depth of the curve.
        side: Grid side length, 2 ** order.
        size: Number of cells, side ** 2, and the length of the visiting sequence.
        forward_map: forward_map[i] is the (x, y) cell visited at step i.
        backward_map: backward_map[x][y] is the step at which (x, y) is visited.
        closed: Whether the curve is a loop, so that stepping past the last
            cell continues at the first.

    Subclasses fill the storage through _record() and finish with _freeze().
    Lookups outside the grid return None; malformed inputs raise ValueError.
    """
    kind = 'curve'
    closed = False

    def __init__(self, order):
        self.order = order
        self.side = 2 ** order
        self.size = self.side * self.side
        # None marks a slot that has not been written yet.
        self._forward = [None] * self.size
        self._backward = [[None] * self.side for _ in range(self.side)]
        self._written = 0

    def _record(self, position, x, y):
        assert self._in_grid(x, y), f"step {position} left the grid at {(x, y)}"
        assert self._forward[position] is None, f"step {position} written twice"
        assert self._backward[x][y] is None, f"cell {(x, y)} visited twice"
        self._forward[position] = (x, y)
        self._backward[x][y] = position
        self._written += 1

    def _freeze(self):
        assert self._written == self.size, \
            f"{self.kind} curve wrote {self._written} of {self.size} steps"
        self.forward_map = tuple(self._forward)
        self.backward_map = tuple(tuple(column) for column in self._backward)
        del self._forward, self._backward, self._written
        logger.debug(f"Built {self!r}")

    def __len__(self):
        return self.size

    def __iter__(self):
        return iter(self.forward_map)

    def __repr__(self):
        return f"{type(self).__name__}(order={self.order}, side={self.side}, size={self.size})"

    def _in_grid(self, x, y):
        return 0 <= x < self.side and 0 <= y < self.side

    def forward(self, index) -> Optional[Coordinate]:
        if 0 <= index < self.size:
            return self.forward_map[index]
        return None

    def forward_slice(self, indices):
        return [self.forward(index) for index in indices]

    def forward_circular(self, index) -> Coordinate:
        """Wraps any integer step, negative ones included, into [0, size)."""
        return self.forward_map[index % self.size]

    def forward_circular_slice(self, indices):
        return [self.forward_circular(index) for index in indices]

    def backward(self, x, y) -> Optional[int]:
        if self._in_grid(x, y):
            return self.backward_map[x][y]
        return None

    def backward_slice(self, coordinates):
        return [self.backward(x, y) for x, y in coordinates]

    def forward_field(self, values: Sequence):
        """Lays a sequence in visiting order out on the grid.

        Returns a side x side list of lists with grid[x][y] == values[backward(x, y)].
        """
        if len(values) != self.size:
            raise ValueError(f"Expected {self.size} values for {self!r}, got {len(values)}")
        grid = [[None] * self.side for _ in range(self.side)]
        for index, value in enumerate(values):
            x, y = self.forward_map[index]
            grid[x][y] = value
        return grid

    def backward_grid(self, grid):
        """Inverse of forward_field: reads a fully populated side x side grid
        back into a list ordered by visiting step.
        """
        if len(grid) != self.side or any(len(column) != self.side for column in grid):
            raise ValueError(f"Expected a {self.side} x {self.side} grid for {self!r}")
        return [grid[x][y] for x, y in self.forward_map]

    def ends_adjacent(self):
        """True when the last step is a grid neighbour of the first. A small open
        curve can satisfy this by chance, so use `closed` to tell a loop apart.
        """
        if self.size < 2:
            return False
        (x0, y0), (x1, y1) = self.forward_map[-1], self.forward_map[0]
        return abs(x0 - x1) + abs(y0 - y1) == 1

    def as_arrays(self):
        """Returns the (size, 2) forward and (side, side) backward tables as int64 arrays."""
        forward = np.array(self.forward_map, dtype=np.int64).reshape(self.size, 2)
        backward = np.array(self.backward_map, dtype=np.int64).reshape(self.side, self.side)
        return forward, backward
