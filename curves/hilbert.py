import logging

from .curve import Curve, check_order
from .grid_turtle import Direction, GridTurtle


logger = logging.getLogger(__name__)


class Hilbert(Curve):
    """The Hilbert Curve
    A curve of the given order covers a 2 ** order square grid. It starts at
    (0, 0), and for order 1 visits (0, 0), (1, 0), (1, 1), (0, 1).

    Args:
        order: Recursion depth, any non-negative integer. Order 0 is the
            single cell curve.
    """
    kind = 'hilbert'

    def __init__(self, order):
        super().__init__(check_order(order))
        _HilbertBuilder(self).build()
        self._freeze()


class _HilbertBuilder:
    """Holds the state mutated while the turtle draws one Hilbert curve."""

    def __init__(self, curve):
        self.curve = curve
        self.turtle = GridTurtle(0, 0, Direction.UP)
        self.position = 0

    def build(self):
        self._record()
        self._iterate(self.curve.order, False)
        logger.debug(f"Hilbert order {self.curve.order}: recorded {self.position} steps")

    def _record(self):
        x, y = self.turtle.pos()
        self.curve._record(self.position, x, y)
        self.position += 1

    def _step(self):
        self.turtle.forward()
        self._record()

    def _iterate(self, level, invert):
        if level == 0:
            return
        turtle = self.turtle

        turtle.turn_right(invert)
        self._iterate(level - 1, not invert)
        self._step()

        turtle.turn_left(invert)
        self._iterate(level - 1, invert)
        self._step()

        self._iterate(level - 1, invert)
        turtle.turn_left(invert)
        self._step()

        self._iterate(level - 1, not invert)
        turtle.turn_right(invert)
