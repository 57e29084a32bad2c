import logging

from .curve import Curve, check_order
from .hilbert import Hilbert


logger = logging.getLogger(__name__)


class Moore(Curve):
    """The Moore Curve
    A closed loop over a 2 ** order square grid made of four copies of the
    Hilbert curve of order - 1, one per quadrant. The copies in the right
    half are translated, the ones in the left half are reflected through a
    point, which joins the last step back to the first.

    Args:
        order: Recursion depth, at least 2.
    """
    kind = 'moore'
    closed = True

    def __init__(self, order):
        order = check_order(order)
        if order <= 1:
            raise ValueError(f"Moore curve requires an order of at least 2, got {order}")
        super().__init__(order)

        hilbert = Hilbert(order - 1)
        half = hilbert.side
        side = self.side
        # Bottom right, top right, top left, bottom left.
        quadrants = [
            lambda xs, ys: (half + xs, ys),
            lambda xs, ys: (half + xs, half + ys),
            lambda xs, ys: (half - 1 - xs, side - 1 - ys),
            lambda xs, ys: (half - 1 - xs, half - 1 - ys),
        ]
        for quadrant, transform in enumerate(quadrants):
            start = quadrant * hilbert.size
            for i, (xs, ys) in enumerate(hilbert.forward_map):
                x, y = transform(xs, ys)
                self._record(start + i, x, y)
            logger.debug(f"Moore order {order}: placed quadrant {quadrant} at steps "
                         f"[{start}, {start + hilbert.size})")
        self._freeze()


if __name__ == "__main__":
    curve = Moore(3)
    print(curve)
    for row in reversed(range(curve.side)):
        print(' '.join(f"{curve.backward(x, row):2}" for x in range(curve.side)))
