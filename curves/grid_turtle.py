from enum import Enum


class Direction(Enum):
    """One of the four cardinal orientations on the grid.

    Turning is a 4-cycle: up -> left -> down -> right -> up for a left turn,
    and the reverse for a right turn.
    """
    UP = 0
    LEFT = 1
    DOWN = 2
    RIGHT = 3

    def turn_left(self):
        return _CYCLE[(self.value + 1) % 4]

    def turn_right(self):
        return _CYCLE[(self.value - 1) % 4]

    def offsets(self):
        return _OFFSETS[self]


_CYCLE = (Direction.UP, Direction.LEFT, Direction.DOWN, Direction.RIGHT)

_OFFSETS = {
    Direction.UP: (0, 1),
    Direction.DOWN: (0, -1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}


class GridTurtle:
    """A cursor with an integer position and a facing direction.

    Args:
        x: Starting column.
        y: Starting row.
        direction: Starting orientation. Default: Direction.UP.
    """
    def __init__(self, x=0, y=0, direction=Direction.UP):
        self.x = x
        self.y = y
        self.direction = direction

    def turn_left(self, invert=False):
        # An inverted turn mirrors the sub-curve being drawn.
        if invert:
            self.direction = self.direction.turn_right()
        else:
            self.direction = self.direction.turn_left()

    def turn_right(self, invert=False):
        if invert:
            self.direction = self.direction.turn_left()
        else:
            self.direction = self.direction.turn_right()

    def forward(self):
        dx, dy = self.direction.offsets()
        self.x += dx
        self.y += dy

    def pos(self):
        return self.x, self.y

    def __repr__(self):
        return f"GridTurtle(x={self.x}, y={self.y}, direction={self.direction.name})"
