"""
Token ordering and curve-window aggregation in the torch adapter.
"""

import pytest

torch = pytest.importorskip("torch")

from curves import Hilbert, Moore
from models import CurveConfig, CurveOrdering


class HilbertConfig(CurveConfig):
    mode = 'hilbert'
    window = 2


class MooreConfig(CurveConfig):
    mode = 'moore'
    window = 2


class PlainConfig(CurveConfig):
    param = 'none'


def test_index_buffers_follow_the_curve():
    ordering = CurveOrdering(MooreConfig, hw_shape=4)
    curve = Moore(2)
    expected = [x * 4 + y for x, y in curve.forward_map]
    assert ordering.curve_index.tolist() == expected
    assert ordering.curve_index.dtype == torch.long
    assert sorted(ordering.raster_index.tolist()) == list(range(16))


@pytest.mark.parametrize('cfg', [HilbertConfig, MooreConfig])
def test_to_curve_and_back(cfg):
    ordering = CurveOrdering(cfg, hw_shape=(8, 8), head_dim=3)
    x = torch.randn(2, 64, 3)
    in_curve = ordering.to_curve(x)
    step = 5
    xs, ys = ordering.curve.forward(step)
    assert torch.equal(in_curve[:, step], x[:, xs * 8 + ys])
    assert torch.equal(ordering.to_raster(in_curve), x)


def test_window_table_wraps_on_closed_curves():
    ordering = CurveOrdering(MooreConfig, hw_shape=4)
    table = ordering.window_table
    assert table.shape == (16, 16, 4)
    # Every token has two neighbours behind and two ahead on the loop.
    assert table.sum().item() == 16 * 4
    first = ordering._rank(ordering.curve.forward(0))
    last = ordering._rank(ordering.curve.forward(15))
    assert table[first, last, 0].item() == 1.


def test_window_table_stops_at_open_ends():
    ordering = CurveOrdering(HilbertConfig, hw_shape=4)
    table = ordering.window_table
    first = ordering._rank(Hilbert(2).forward(0))
    assert table[first, :, :2].sum().item() == 0
    assert table[first, :, 2:].sum().item() == 2
    # 16 tokens * 4 slots, less 1 + 2 missing at each end.
    assert table.sum().item() == 16 * 4 - 6


def test_zero_weights_leave_tokens_unchanged():
    ordering = CurveOrdering(MooreConfig, hw_shape=4, head_dim=2)
    with torch.no_grad():
        ordering.window_parameters.zero_()
    x = torch.randn(3, 16, 2)
    assert torch.allclose(ordering(x), x)


def test_aggregates_curve_neighbours():
    ordering = CurveOrdering(MooreConfig, hw_shape=4, head_dim=1)
    with torch.no_grad():
        ordering.window_parameters.fill_(1.)
    x = torch.arange(16, dtype=torch.float).reshape(1, 16, 1)
    out = ordering(x)
    curve = ordering.curve
    step = 0
    ranks = [ordering._rank(curve.forward_circular(step + offset)) for offset in range(-2, 3)]
    assert out[0, ranks[2], 0].item() == pytest.approx(sum(ranks))


def test_skip_keeps_class_token():
    ordering = CurveOrdering(MooreConfig, hw_shape=4, num_heads=2, head_dim=2, skip=1)
    x = torch.randn(1, 2, 17, 2)
    out = ordering(x)
    assert out.shape == x.shape
    assert torch.equal(out[:, :, :1], x[:, :, :1])


def test_param_none_is_identity():
    ordering = CurveOrdering(PlainConfig, hw_shape=8)
    x = torch.randn(1, 64, 5)
    assert ordering(x) is x
    assert sum(p.numel() for p in ordering.parameters()) == 0


@pytest.mark.parametrize('hw_shape', [(4, 8), 6, 0])
def test_rejects_non_square_grids(hw_shape):
    with pytest.raises(ValueError):
        CurveOrdering(CurveConfig, hw_shape=hw_shape)


def test_moore_needs_four_cells_per_side():
    with pytest.raises(ValueError):
        CurveOrdering(MooreConfig, hw_shape=2)
    assert CurveOrdering(HilbertConfig, hw_shape=2).length == 4


def test_smallest_hilbert_grid_is_not_wrapped():
    ordering = CurveOrdering(HilbertConfig, hw_shape=2)
    table = ordering.window_table
    curve = ordering.curve
    first = ordering._rank(curve.forward(0))
    last = ordering._rank(curve.forward(3))
    assert table[first, :, :2].sum().item() == 0
    assert table[last, :, 2:].sum().item() == 0
    # With window 2, steps 0 to 3 miss 2, 1, 1 and 2 slots.
    assert table.sum().item() == 4 * 4 - 6


class WideMooreConfig(MooreConfig):
    window = 16


def test_wide_window_never_reaches_the_token_itself():
    ordering = CurveOrdering(WideMooreConfig, hw_shape=4)
    table = ordering.window_table
    assert table.shape == (16, 16, 32)
    assert torch.diagonal(table.sum(dim=2)).sum().item() == 0
    # Each neighbour along the loop is counted once, seven on either side.
    assert table.sum(dim=2).max().item() == 1
    assert table.sum().item() == 16 * 14


def test_skip_keeps_class_token_when_reordering():
    ordering = CurveOrdering(MooreConfig, hw_shape=4, skip=1)
    x = torch.randn(2, 17, 3)
    in_curve = ordering.to_curve(x)
    assert torch.equal(in_curve[:, :1], x[:, :1])
    xs, ys = ordering.curve.forward(0)
    assert torch.equal(in_curve[:, 1], x[:, 1 + xs * 4 + ys])
    assert torch.equal(ordering.to_raster(in_curve), x)
