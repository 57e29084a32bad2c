from .curve_ordering import CurveConfig, CurveOrdering
