from .grid_turtle import Direction, GridTurtle
from .curve import Curve
from .hilbert import Hilbert
from .moore import Moore


CURVES = {
    'hilbert': Hilbert,
    'moore': Moore,
}


def build_curve(kind, order):
    if kind not in CURVES:
        raise ValueError(f"Unknown curve kind {kind!r}, expected one of {sorted(CURVES)}")
    return CURVES[kind](order)
