"""Locally weighted polynomial regression (loess) in several predictors.

A direct-evaluation implementation of Cleveland's loess with the gaussian
family:

1. Predictors are optionally normalised by their 10 % trimmed standard
   deviation so that distances are comparable across units.
2. For each evaluation point the ``q = floor(n * span)`` nearest training
   points are selected and weighted with the tricube kernel
   ``(1 - (d / h)**3)**3`` where *h* is the distance to the q-th neighbour.
3. A weighted polynomial of degree 1 or 2, centred on the evaluation point,
   is solved by SVD least squares; the local intercept is the fitted value.
   When the neighbourhood has no more points than the polynomial has terms
   the local system is underdetermined and the minimum-norm solution
   passes through every neighbour, so the fit interpolates the data.

Because every fitted value is a linear combination of the responses, the
fit is summarised by an operator matrix *L* (``fitted = L @ y``).  The
"exact" statistics are derived from it:

.. math::

    \\delta_1 = \\operatorname{tr}\\left[(I - L)^T (I - L)\\right], \\qquad
    \\delta_2 = \\operatorname{tr}\\left[\\left((I - L)^T (I - L)\\right)^2\\right]

    \\hat{s} = \\sqrt{\\frac{\\sum_i r_i^2}{\\delta_1}}, \\qquad
    \\operatorname{se}\\left[\\hat{f}(x)\\right] = \\hat{s} \\, \\lVert l(x) \\rVert_2

Reference:
    Cleveland, W.S. & Grosse, E. (1991). Computational methods for local
    regression. Statistics and Computing, 1(1), 47-62.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from itertools import combinations_with_replacement

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial import cKDTree

from powersurface.core.errors import FitFailure

# Evaluation points processed per batch of stacked pseudo-inverses.
_CHUNK = 2048

# Relative widening of the q-th neighbour distance; keeps equidistant
# neighbourhoods from collapsing to all-zero weights.
_BANDWIDTH_PAD = 1e-3

# Smallest neighbourhood; a single neighbour cannot interpolate between points.
_MIN_NEIGHBORS = 2

# one_delta below this is treated as an interpolating fit (no residual dof).
_DELTA_EPS = 1e-10


def n_local_terms(n_predictors: int, degree: int) -> int:
    """Number of coefficients in a full local polynomial."""
    terms = 1 + n_predictors
    if degree == 2:
        terms += n_predictors * (n_predictors + 1) // 2
    return terms


def trimmed_scale(x: NDArray[np.floating], trim: float = 0.1) -> NDArray[np.floating]:
    """Per-column standard deviation after trimming *trim* from each tail.

    Falls back to the untrimmed standard deviation for columns whose
    central part is constant.
    """
    n = x.shape[0]
    k = math.ceil(trim * n)
    ordered = np.sort(x, axis=0)
    central = ordered[k:n - k] if n - 2 * k >= 2 else ordered
    scale = np.std(central, axis=0, ddof=1)
    full = np.std(x, axis=0, ddof=1)
    return np.where(scale > 0, scale, full)


def _design(dx: NDArray[np.floating], degree: int) -> NDArray[np.floating]:
    """Local polynomial columns for offsets *dx* of shape (..., p)."""
    p = dx.shape[-1]
    cols = [np.ones(dx.shape[:-1])]
    cols.extend(dx[..., j] for j in range(p))
    if degree == 2:
        cols.extend(dx[..., j] * dx[..., k] for j, k in combinations_with_replacement(range(p), 2))
    return np.stack(cols, axis=-1)


def _local_operator(
    tree: cKDTree,
    scaled_train: NDArray[np.floating],
    scaled_pts: NDArray[np.floating],
    degree: int,
    span: float,
    q: int,
) -> tuple[NDArray[np.intp], NDArray[np.floating]]:
    m, p = scaled_pts.shape
    idx_out = np.empty((m, q), dtype=np.intp)
    l_out = np.empty((m, q), dtype=np.float64)

    for start in range(0, m, _CHUNK):
        stop = min(start + _CHUNK, m)
        chunk = scaled_pts[start:stop]
        dist, idx = tree.query(chunk, k=q)
        dist = np.asarray(dist, dtype=np.float64).reshape(len(chunk), q)
        idx = np.asarray(idx, dtype=np.intp).reshape(len(chunk), q)

        h = dist[:, -1] * (1.0 + _BANDWIDTH_PAD)
        if span > 1:
            h = h * span ** (1.0 / p)

        with np.errstate(divide="ignore", invalid="ignore"):
            u = np.where(h[:, None] > 0, dist / h[:, None], 0.0)
        sqrt_w = np.sqrt(np.clip(1.0 - u**3, 0.0, None) ** 3)

        dx = scaled_train[idx] - chunk[:, None, :]
        a = _design(dx, degree) * sqrt_w[..., None]
        pinv = np.linalg.pinv(a)  # (chunk, terms, q)

        idx_out[start:stop] = idx
        l_out[start:stop] = pinv[:, 0, :] * sqrt_w

    return idx_out, l_out


@dataclass(frozen=True, eq=False)
class LoessFit:
    """Immutable result of :func:`loess_fit`.

    Attributes
    ----------
    x, y : ndarray
        Training predictors (n, p) and responses (n,), unscaled, read-only.
    scale : ndarray
        Per-predictor divisor applied before distance computations.
    degree, span, n_neighbors :
        Smoothing configuration actually used.
    fitted, residuals : ndarray
        Values at the training points.
    enp : float
        Equivalent number of parameters, ``trace(L)``.
    one_delta, two_delta : float
        Exact residual degrees-of-freedom statistics.
    residual_se : float
        Residual standard error; 0 when the fit interpolates the data.
    """

    x: NDArray[np.floating] = field(repr=False)
    y: NDArray[np.floating] = field(repr=False)
    scale: NDArray[np.floating]
    degree: int
    span: float
    n_neighbors: int
    fitted: NDArray[np.floating] = field(repr=False)
    residuals: NDArray[np.floating] = field(repr=False)
    enp: float
    one_delta: float
    two_delta: float
    residual_se: float
    tree: cKDTree = field(repr=False)

    @property
    def n_points(self) -> int:
        return int(self.x.shape[0])

    @property
    def n_predictors(self) -> int:
        return int(self.x.shape[1])

    def operator_rows(
        self,
        x_new: ArrayLike,
    ) -> tuple[NDArray[np.intp], NDArray[np.floating]]:
        """Neighbour indices and operator weights for each evaluation point.

        Returns ``(idx, weights)`` both of shape (m, q) such that the fitted
        value at point *i* is ``weights[i] @ y[idx[i]]``.
        """
        pts = np.asarray(x_new, dtype=np.float64).reshape(-1, self.n_predictors)
        return _local_operator(
            self.tree,
            self.x / self.scale,
            pts / self.scale,
            self.degree,
            self.span,
            self.n_neighbors,
        )

    def evaluate(
        self,
        x_new: ArrayLike,
        se: bool = False,
    ) -> tuple[NDArray[np.floating], NDArray[np.floating] | None]:
        """Evaluate the surface directly at *x_new* of shape (m, p)."""
        idx, weights = self.operator_rows(x_new)
        values = np.einsum("ij,ij->i", weights, self.y[idx])
        if not se:
            return values, None
        return values, self.residual_se * np.sqrt(np.einsum("ij,ij->i", weights, weights))


def loess_fit(
    x: ArrayLike,
    y: ArrayLike,
    degree: int = 2,
    span: float = 0.75,
    normalize: bool = True,
    min_neighbors: int | None = None,
) -> LoessFit:
    """Fit a loess smoother with exact statistics.

    Parameters
    ----------
    x : array-like, shape (n, p)
        Predictors.
    y : array-like, shape (n,)
        Responses.
    degree : {1, 2}
        Local polynomial degree.
    span : float
        Fraction of points in each neighbourhood.  Values above 1 use all
        points and widen the bandwidth by ``span ** (1/p)``.
    normalize : bool
        Scale predictors by their trimmed standard deviation.
    min_neighbors : int, optional
        Lower bound for the neighbourhood size.  By default the span alone
        decides, with at least two neighbours; pass the number of local
        terms plus one to force an overdetermined (smoothing) local fit.

    Raises
    ------
    FitFailure
        On non-finite or insufficient data, predictors without spread, or
        colinear predictors.
    """
    x = np.array(x, dtype=np.float64)
    y = np.array(y, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2 or y.ndim != 1 or x.shape[0] != y.shape[0]:
        raise FitFailure(f"Incompatible shapes x={x.shape}, y={y.shape}")
    if degree not in (1, 2):
        raise FitFailure(f"degree must be 1 or 2, got {degree}")
    if not span > 0:
        raise FitFailure(f"span must be > 0, got {span}")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise FitFailure("Training data contains missing or non-finite values")

    n, p = x.shape
    terms = n_local_terms(p, degree)
    if n < terms + 1:
        raise FitFailure(
            f"Need at least {terms + 1} points for a degree-{degree} fit in {p} predictors, got {n}"
        )

    spread = np.ptp(x, axis=0)
    if np.any(spread == 0):
        raise FitFailure(f"Predictor(s) {np.flatnonzero(spread == 0).tolist()} have no spread")
    if np.linalg.matrix_rank(np.column_stack([np.ones(n), x])) < p + 1:
        raise FitFailure("Predictors are colinear")

    scale = trimmed_scale(x) if normalize else np.ones(p)

    floor = _MIN_NEIGHBORS if min_neighbors is None else int(min_neighbors)
    q = n if span >= 1 else int(math.floor(n * span))
    q = int(min(max(q, floor, 1), n))

    scaled = x / scale
    tree = cKDTree(scaled)

    # Exact statistics from the full operator matrix at the training points.
    idx, weights = _local_operator(tree, scaled, scaled, degree, span, q)
    operator = np.zeros((n, n))
    np.add.at(operator, (np.repeat(np.arange(n), q), idx.ravel()), weights.ravel())

    fitted = operator @ y
    residuals = y - fitted
    resid_op = np.eye(n) - operator
    mtm = resid_op.T @ resid_op
    one_delta = float(np.trace(mtm))
    two_delta = float(np.sum(mtm * mtm))
    rss = float(residuals @ residuals)
    residual_se = math.sqrt(rss / one_delta) if one_delta > _DELTA_EPS else 0.0

    for arr in (x, y, fitted, residuals):
        arr.setflags(write=False)

    return LoessFit(
        x=x,
        y=y,
        scale=scale,
        degree=degree,
        span=float(span),
        n_neighbors=q,
        fitted=fitted,
        residuals=residuals,
        enp=float(np.trace(operator)),
        one_delta=one_delta,
        two_delta=two_delta,
        residual_se=residual_se,
        tree=tree,
    )
