import logging
import math
from typing import Union

import torch
import torch.nn as nn
from timm.layers import to_2tuple, trunc_normal_

import curves


logger = logging.getLogger(__name__)


class CurveConfig:
    """The curve ordering configurations.

    Components:
        mode: Space-filling curve used to order the tokens.
        window: Number of curve steps aggregated on each side of a token.
        param: Parameterized mode of the aggregation. 'none' disables it and
            leaves the tokens unchanged.

    mode Options: ['hilbert', 'moore']
    param Options: ['single', 'none']
    """
    mode = 'moore'
    window = 4
    param = 'single'


class CurveOrdering(nn.Module):
    """Orders the tokens of a square patch grid along a space-filling curve and
    aggregates every token with its neighbours along that curve.

    Input (vector tensor): Tokens in raster order, [..., N, C] where
        N = side * side and the token of cell (x, y) sits at rank x * side + y.
    Output (vector tensor): Aggregated tokens, same shape and order.

    Args:
        curve_cfg: Curve configuration class. Default: CurveConfig.
        hw_shape: Grid shape, an int or a pair. Must be square with a power
            of two side.
        num_heads: Number of attention heads.
        head_dim: Dimensions of each position to aggregate.
        skip: Whether to skip the class token. Default: None. The int value
            means skipping the first which. To skip class token, specify 1.
    """
    def __init__(self, curve_cfg=None, hw_shape=4, num_heads=1, head_dim=1, skip: Union[None, int]=None):
        super().__init__()
        self.curve_cfg = curve_cfg if curve_cfg is not None else CurveConfig
        self.hw_shape = to_2tuple(hw_shape)
        self.num_heads = num_heads
        self.head_dim = head_dim
        self.skip = skip

        height, width = self.hw_shape
        if height != width or height < 1 or height & (height - 1):
            raise ValueError(f"Curve ordering needs a square grid with a power of two side, got {self.hw_shape}")
        self.curve = curves.build_curve(self.curve_cfg.mode, int(math.log2(height)))
        self.side = self.curve.side
        self.length = self.curve.size
        self.window = self.curve_cfg.window
        self.num_nodes = 2 * self.window

        forward, backward = self.curve.as_arrays()
        self.register_buffer('curve_index', torch.from_numpy(forward[:, 0] * self.side + forward[:, 1]))
        self.register_buffer('raster_index', torch.from_numpy(backward.reshape(-1)))

        indices, values = self.build_window_table()
        self.register_buffer('window_table',
                             torch.sparse_coo_tensor(
                                 indices=torch.tensor(indices, dtype=torch.long).reshape(-1, 3).transpose(0, 1),
                                 values=torch.tensor(values).float(),
                                 size=[self.length, self.length, self.num_nodes],
                             ).to_dense())
        logger.debug(f"CurveOrdering over {self.curve!r}: {len(indices)} window entries")

        if self.curve_cfg.param == 'single':
            self.window_parameters = nn.Parameter(torch.zeros(1, self.num_nodes, self.head_dim, self.num_heads))
            trunc_normal_(self.window_parameters, std=.02)
        elif self.curve_cfg.param != 'none':
            raise ValueError(f"Unknown curve aggregation param {self.curve_cfg.param!r}")

    def _rank(self, coordinate):
        x, y = coordinate
        return x * self.side + y

    def build_window_table(self):
        closed = self.curve.closed
        # On a loop, stop before the window wraps onto cells already covered or the token itself.
        reach = min(self.window, (self.length - 1) // 2) if closed else self.window

        indices = []
        values = []
        for step in range(self.length):
            rank = self._rank(self.curve.forward(step))
            for offset in range(1, reach + 1):
                if closed:
                    behind = self.curve.forward_circular(step - offset)
                    ahead = self.curve.forward_circular(step + offset)
                else:
                    behind = self.curve.forward(step - offset) if step >= offset else None
                    ahead = self.curve.forward(step + offset)
                if behind is not None:
                    indices.append([rank, self._rank(behind), offset - 1])
                    values.append(1.)
                if ahead is not None:
                    indices.append([rank, self._rank(ahead), self.window + offset - 1])
                    values.append(1.)
        return indices, values

    def _split(self, x):
        skip = self.skip or 0
        return x[..., :skip, :], x[..., skip:, :]

    def to_curve(self, x):
        cls_vectors, img_vectors = self._split(x)
        return torch.cat([cls_vectors, img_vectors.index_select(-2, self.curve_index)], dim=-2)

    def to_raster(self, x):
        cls_vectors, img_vectors = self._split(x)
        return torch.cat([cls_vectors, img_vectors.index_select(-2, self.raster_index)], dim=-2)

    def aggregation(self, x):
        # x: [b, n, p, c]
        weights = self.window_parameters.expand(self.length, -1, -1, -1)
        if self.num_heads == 1:
            weights = weights.expand(-1, -1, -1, x.shape[1])
        anchor = torch.eye(self.length, dtype=x.dtype, device=x.device)[:, :, None, None]
        trans_mat = torch.einsum('p q a, p a c n -> p q c n', self.window_table, weights) + anchor
        return torch.einsum('p q c n, b n q c -> b n p c', trans_mat, x).contiguous()

    def forward(self, x):
        if self.curve_cfg.param == 'none':
            return x
        cls_vectors, img_vectors = self._split(x)
        if self.skip is None:
            img_vectors = self.aggregation(img_vectors.unsqueeze(1)).squeeze(1)
        else:
            img_vectors = self.aggregation(img_vectors)
        return torch.cat([cls_vectors, img_vectors], dim=-2)


if __name__ == "__main__":
    ordering = CurveOrdering(CurveConfig, hw_shape=8, head_dim=1)
    n_parameters = sum(p.numel() for p in ordering.parameters() if p.requires_grad)
    print('Params', n_parameters)
    print(ordering.curve_index.reshape(8, 8))
