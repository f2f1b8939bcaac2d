"""
Preconditioners for the iterative solvers.

Every preconditioner follows the same small protocol: ``set_matrix(A)``
takes a snapshot of ``A`` and builds the approximate inverse from it, and
``apply(b, x)`` / ``trans_apply(b, x)`` write ``M^{-1} b`` / ``M^{-T} b`` into
``x``. ``b`` and ``x`` may be the same tensor. Later changes to ``A`` are not
seen until ``set_matrix`` is called again.

Available preconditioners:
- 'none': identity
- 'jacobi': diagonal scaling
- 'ssor': symmetric successive over-relaxation
- 'ilu': incomplete LU without fill-in, ILU(0)
- 'icc': incomplete Cholesky without fill-in
- 'ilut': incomplete LU with threshold dropping and bounded fill-in
- 'amg': smoothed aggregation algebraic multigrid
- 'chebyshev': fixed-degree Chebyshev polynomial in A

The triangular sweeps are inherently sequential and run on NumPy views of
the CPU tensors.
"""

import heapq
import math
import numpy as np
import torch
from torch import Tensor
from typing import Callable, List, NamedTuple, Optional, Protocol, Set, Tuple

from .check import Singular, check_square, check_vector
from .convert import coo2csr, scipy2coo
from .eigen import spectral_bounds
from .matrix import AbstractSparseMatrix, CompColMatrix, CompRowMatrix, FlexCompRowMatrix
from .vector import INDEX_DTYPE, VALUE_DTYPE, Norm, SparseVector, vector_norm


class Preconditioner(Protocol):
    def set_matrix(self, A: AbstractSparseMatrix) -> None: ...

    def apply(self, b: Tensor, x: Tensor) -> Tensor: ...

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor: ...


def _numpy(b: Tensor) -> np.ndarray:
    return b.detach().to(VALUE_DTYPE).cpu().numpy()


def _write(x: Tensor, values) -> Tensor:
    x.copy_(torch.as_tensor(values, dtype=VALUE_DTYPE))
    return x


# ============================================================================
# Compressed row factor shared by ILU, ICC and ILUT
# ============================================================================

class _CompRowFactor:
    """
    Square CSR arrays (NumPy) with the position of every diagonal entry.

    Raises :class:`Singular` when a row has no diagonal entry.
    """

    def __init__(self, val: Tensor, row: Tensor, col: Tensor, n: int):
        val, rowptr, col, _ = coo2csr(val.to(VALUE_DTYPE), row, col, (n, n))
        self.n = n
        self.ptr = rowptr.cpu().numpy().copy()
        self.col = col.cpu().numpy().copy()
        self.data = val.cpu().numpy().copy()
        self.diag = np.empty(n, dtype=np.int64)
        for i in range(n):
            start, end = self.ptr[i], self.ptr[i + 1]
            k = start + np.searchsorted(self.col[start:end], i)
            if k >= end or self.col[k] != i:
                raise Singular(i, "missing diagonal entry")
            self.diag[i] = k

    def check_pivots(self):
        zero = np.flatnonzero(self.data[self.diag] == 0.0)
        if zero.size:
            raise Singular(int(zero[0]))

    def lower_solve(self, b: np.ndarray) -> np.ndarray:
        """solve L y = b, L unit lower triangular"""
        y = b.copy()
        ptr, col, data, diag = self.ptr, self.col, self.data, self.diag
        for i in range(self.n):
            s, d = ptr[i], diag[i]
            if d > s:
                y[i] -= data[s:d] @ y[col[s:d]]
        return y

    def upper_solve(self, b: np.ndarray) -> np.ndarray:
        """solve U x = b, U upper triangular including the diagonal"""
        x = b.copy()
        ptr, col, data, diag = self.ptr, self.col, self.data, self.diag
        for i in range(self.n - 1, -1, -1):
            d, e = diag[i], ptr[i + 1]
            if e > d + 1:
                x[i] -= data[d + 1:e] @ x[col[d + 1:e]]
            x[i] /= data[d]
        return x

    def trans_upper_solve(self, b: np.ndarray) -> np.ndarray:
        """solve U^T y = b"""
        y = b.copy()
        ptr, col, data, diag = self.ptr, self.col, self.data, self.diag
        for i in range(self.n):
            d, e = diag[i], ptr[i + 1]
            y[i] /= data[d]
            if e > d + 1:
                y[col[d + 1:e]] -= data[d + 1:e] * y[i]
        return y

    def trans_lower_solve(self, b: np.ndarray) -> np.ndarray:
        """solve L^T x = b, L unit lower triangular"""
        x = b.copy()
        ptr, col, data, diag = self.ptr, self.col, self.data, self.diag
        for i in range(self.n - 1, -1, -1):
            s, d = ptr[i], diag[i]
            if d > s:
                x[col[s:d]] -= data[s:d] * x[i]
        return x


def _snapshot(A: AbstractSparseMatrix):
    check_square(A)
    val, row, col, _ = A.to_coo()
    return val.clone(), row.clone(), col.clone()


# ============================================================================
# Simple preconditioners
# ============================================================================

class IdentityPreconditioner:
    """M = I"""

    def set_matrix(self, A: AbstractSparseMatrix):
        pass

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        return x.copy_(b)

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        return x.copy_(b)


class DiagonalPreconditioner:
    """Jacobi preconditioner, M = diag(A)."""

    def __init__(self):
        self.inverse_diagonal: Optional[Tensor] = None

    def set_matrix(self, A: AbstractSparseMatrix):
        check_square(A)
        diag = A.diagonal()
        zero = torch.nonzero(diag == 0)
        if zero.numel():
            raise Singular(int(zero[0]), "zero diagonal entry")
        self.inverse_diagonal = 1.0 / diag

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.inverse_diagonal.shape[0])
        return x.copy_(b * self.inverse_diagonal)

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        return self.apply(b, x)


# ============================================================================
# SSOR
# ============================================================================

class SSORConfig(NamedTuple):
    omega_forward: float = 1.0
    omega_reverse: float = 1.0
    reverse: bool = True


class SSOR:
    """
    Symmetric successive over-relaxation.

    One forward Gauss-Seidel sweep with relaxation ``omega_forward``
    followed, when ``reverse`` is set, by one backward sweep with
    ``omega_reverse``, both starting from a zero guess.
    ``trans_apply`` runs the same sweeps on ``A^T``.
    """

    def __init__(self, config: SSORConfig = SSORConfig()):
        for name in ("omega_forward", "omega_reverse"):
            omega = getattr(config, name)
            if not 0 <= omega <= 2:
                raise ValueError(f"{name} must be in [0, 2], got {omega}")
        self.config = config
        self.factor: Optional[_CompRowFactor] = None
        self.trans_factor: Optional[_CompRowFactor] = None

    def set_matrix(self, A: AbstractSparseMatrix):
        val, row, col = _snapshot(A)
        n = A.num_rows
        self.factor = _CompRowFactor(val, row, col, n)
        self.trans_factor = _CompRowFactor(val, col, row, n)
        self.factor.check_pivots()

    def _sweep(self, F: _CompRowFactor, b: np.ndarray,
               x0: Optional[np.ndarray] = None) -> np.ndarray:
        ptr, col, data, diag = F.ptr, F.col, F.data, F.diag
        omega_f, omega_r, reverse = self.config
        n = F.n
        x = np.zeros(n) if x0 is None else x0.copy()
        xx = np.zeros(n)

        for i in range(n):
            s, d, e = ptr[i], diag[i], ptr[i + 1]
            sigma = data[s:d] @ xx[col[s:d]] + data[d + 1:e] @ x[col[d + 1:e]]
            sigma = (b[i] - sigma) / data[d]
            xx[i] = x[i] + omega_f * (sigma - x[i])

        if not reverse:
            return xx

        for i in range(n - 1, -1, -1):
            s, d, e = ptr[i], diag[i], ptr[i + 1]
            sigma = data[s:d] @ xx[col[s:d]] + data[d + 1:e] @ x[col[d + 1:e]]
            sigma = (b[i] - sigma) / data[d]
            x[i] = xx[i] + omega_r * (sigma - xx[i])
        return x

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        return _write(x, self._sweep(self.factor, _numpy(b)))

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        return _write(x, self._sweep(self.trans_factor, _numpy(b)))

    def relax(self, b: np.ndarray, x: np.ndarray, transpose: bool = False) -> np.ndarray:
        """one sweep pair starting from the guess ``x`` instead of zero"""
        return self._sweep(self.trans_factor if transpose else self.factor, b, x)


# ============================================================================
# Incomplete factorizations
# ============================================================================

class ILU:
    """
    Incomplete LU factorization without fill-in, ILU(0).

    L (unit lower) and U share the pattern of ``A``. Raises
    :class:`Singular` on a missing diagonal or a zero pivot.
    """

    def __init__(self):
        self.factor: Optional[_CompRowFactor] = None

    def set_matrix(self, A: AbstractSparseMatrix):
        F = _CompRowFactor(*_snapshot(A), A.num_rows)
        ptr, col, data, diag = F.ptr, F.col, F.data, F.diag
        position = np.full(F.n, -1, dtype=np.int64)

        for k in range(F.n):
            start, end = ptr[k], ptr[k + 1]
            position[col[start:end]] = np.arange(start, end)
            for i in range(start, diag[k]):
                j = col[i]
                pivot = data[diag[j]]
                if pivot == 0.0:
                    raise Singular(int(j))
                data[i] /= pivot
                upper = slice(diag[j] + 1, ptr[j + 1])
                target = position[col[upper]]
                mask = target >= 0
                data[target[mask]] -= data[i] * data[upper][mask]
            position[col[start:end]] = -1

        F.check_pivots()
        self.factor = F

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        F = self.factor
        return _write(x, F.upper_solve(F.lower_solve(_numpy(b))))

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        F = self.factor
        return _write(x, F.trans_lower_solve(F.trans_upper_solve(_numpy(b))))


class ICC:
    """
    Incomplete Cholesky without fill-in, ``A ~ R^T R`` with R on the upper
    pattern of ``A``. Meant for symmetric positive definite matrices; a
    non-positive pivot raises :class:`Singular`.
    """

    def __init__(self):
        self.factor: Optional[_CompRowFactor] = None

    def set_matrix(self, A: AbstractSparseMatrix):
        val, row, col = _snapshot(A)
        upper = row <= col
        F = _CompRowFactor(val[upper], row[upper], col[upper], A.num_rows)
        ptr, col, data, diag = F.ptr, F.col, F.data, F.diag
        position = np.full(F.n, -1, dtype=np.int64)

        for k in range(F.n):
            d, e = diag[k], ptr[k + 1]
            if data[d] <= 0.0:
                raise Singular(k, "non-positive pivot")
            data[d] = math.sqrt(data[d])
            data[d + 1:e] /= data[d]
            for i in range(d + 1, e):
                j = col[i]
                s, t = diag[j], ptr[j + 1]
                position[col[s:t]] = np.arange(s, t)
                target = position[col[i:e]]
                mask = target >= 0
                data[target[mask]] -= data[i] * data[i:e][mask]
                position[col[s:t]] = -1

        self.factor = F

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        F = self.factor
        return _write(x, F.upper_solve(F.trans_upper_solve(_numpy(b))))

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        return self.apply(b, x)


class ILUTConfig(NamedTuple):
    drop_tolerance: float = 1e-6
    fill_limit: int = 25


class ILUT:
    """
    Incomplete LU with threshold dropping and bounded fill-in.

    Row ``i`` is eliminated against the already factored rows; multipliers
    and updated entries below ``drop_tolerance * |a_i|_2`` are dropped, and
    at most ``nl + fill_limit`` lower and ``nu + fill_limit`` upper entries
    are kept (the largest ones), where ``nl`` and ``nu`` count the entries
    of the original row. The diagonal is always kept. The factors live in a
    :class:`FlexCompRowMatrix`.
    """

    def __init__(self, config: ILUTConfig = ILUTConfig()):
        if config.drop_tolerance < 0:
            raise ValueError(f"drop_tolerance must be non-negative, got {config.drop_tolerance}")
        if config.fill_limit < 0:
            raise ValueError(f"fill_limit must be non-negative, got {config.fill_limit}")
        self.config = config
        self.LU: Optional[FlexCompRowMatrix] = None
        self.factor: Optional[_CompRowFactor] = None

    def set_matrix(self, A: AbstractSparseMatrix):
        check_square(A)
        LU = FlexCompRowMatrix.from_matrix(A)
        LU.compact()
        n = A.num_rows
        tau, p = self.config
        diag_value = np.zeros(n)
        upper_rows = [None] * n

        for i in range(n):
            x = LU.get_row(i)
            cols = x.get_index().cpu().numpy()
            vals = x.get_data().cpu().numpy()
            n_lower = int((cols < i).sum())
            n_upper = int((cols > i).sum())
            tau_i = tau * vector_norm(x.get_data(), Norm.TWO)

            w = dict(zip(cols.tolist(), vals.tolist()))
            heap = [c for c in w if c < i]
            heapq.heapify(heap)
            while heap:
                k = heapq.heappop(heap)
                if diag_value[k] == 0.0:
                    raise Singular(k)
                wk = w[k] / diag_value[k]
                if abs(wk) <= tau_i:
                    w[k] = 0.0
                    continue
                w[k] = wk
                ucols, uvals = upper_rows[k]
                for j, u in zip(ucols, uvals):
                    if j not in w:
                        w[j] = 0.0
                        if j < i:
                            heapq.heappush(heap, j)
                    w[j] -= wk * u

            LU.set_row(i, self._gather(w, i, n, tau_i, n_lower + p, n_upper + p))
            row = LU.get_row(i)
            rcols = row.get_index().cpu().numpy()
            rvals = row.get_data().cpu().numpy()
            # the pivot position moves when entries left of it are dropped
            d = int(np.searchsorted(rcols, i))
            if d >= rcols.shape[0] or rcols[d] != i or rvals[d] == 0.0:
                raise Singular(i)
            diag_value[i] = rvals[d]
            upper_rows[i] = (rcols[d + 1:].tolist(), rvals[d + 1:].tolist())

        self.LU = LU
        self.factor = _CompRowFactor(*LU.to_coo()[:3], n)

    @staticmethod
    def _gather(w: dict, i: int, n: int, tau_i: float, max_lower: int, max_upper: int) -> SparseVector:
        lower = [(c, v) for c, v in w.items() if c < i and abs(v) > tau_i]
        upper = [(c, v) for c, v in w.items() if c > i and abs(v) > tau_i]
        lower = sorted(lower, key=lambda e: -abs(e[1]))[:max_lower]
        upper = sorted(upper, key=lambda e: -abs(e[1]))[:max_upper]
        kept = sorted(lower + upper + [(i, w.get(i, 0.0))])
        index = torch.tensor([c for c, _ in kept], dtype=torch.int64)
        data = torch.tensor([v for _, v in kept], dtype=VALUE_DTYPE)
        return SparseVector.from_arrays(n, index, data)

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        F = self.factor
        return _write(x, F.upper_solve(F.lower_solve(_numpy(b))))

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.factor.n)
        F = self.factor
        return _write(x, F.trans_lower_solve(F.trans_upper_solve(_numpy(b))))


# ============================================================================
# Algebraic multigrid
# ============================================================================

class AMGConfig(NamedTuple):
    omega_pre_forward: float = 1.0
    omega_pre_reverse: float = 1.85
    omega_post_forward: float = 1.85
    omega_post_reverse: float = 1.0
    reverse: bool = True
    nu1: int = 1
    nu2: int = 1
    gamma: int = 1
    min_size: int = 40
    omega: float = 2.0 / 3.0


def _aggregate(F: _CompRowFactor, eps: float) -> Tuple[List[Set[int]], List[Set[int]]]:
    """
    Group strongly coupled nodes into aggregates

    Node ``j`` is a strong neighbour of ``i`` when
    ``|a_ij| >= eps * sqrt(|a_ii a_jj|)``. Nodes without off-diagonal entries
    are left out of every aggregate.

    Returns
    -------
    aggregates: List[Set[int]]
    neighbours: List[Set[int]]
        strong neighbourhood of every node, the node itself included
    """
    ptr, col, data, diag = F.ptr, F.col, F.data, F.diag
    n = F.n
    d = np.abs(data[diag])
    neighbours = []
    free = np.zeros(n, dtype=bool)
    for i in range(n):
        s, e = ptr[i], ptr[i + 1]
        cols, vals = col[s:e], data[s:e]
        strong = np.abs(vals) >= eps * np.sqrt(d[i] * d[cols])
        neighbours.append(set(cols[strong].tolist()))
        free[i] = bool(((cols != i) & (vals != 0)).any())

    # whole neighbourhoods that are still unassigned
    aggregates = []
    for i in range(n):
        if free[i] and all(free[j] for j in neighbours[i]):
            aggregates.append(set(neighbours[i]))
            free[list(neighbours[i])] = False

    # join the aggregate sharing most of the neighbourhood
    belong = [[] for _ in range(n)]
    for k, C in enumerate(aggregates):
        for j in C:
            belong[j].append(k)
    for i in range(n):
        if not free[i]:
            continue
        counts = {}
        for j in neighbours[i]:
            for k in belong[j]:
                counts[k] = counts.get(k, 0) + 1
        if counts:
            aggregates[max(counts, key=counts.get)].add(i)
            free[i] = False

    # leftovers form aggregates of their own
    for i in range(n):
        if not free[i]:
            continue
        C = {j for j in neighbours[i] if free[j]}
        free[list(C)] = False
        if C:
            aggregates.append(C)

    return aggregates, neighbours


def _prolongation(F: _CompRowFactor, aggregates: List[Set[int]], neighbours: List[Set[int]],
                  omega: float) -> Tuple[Tensor, Tensor, Tensor, Tuple[int, int]]:
    """
    Interpolation from the aggregates to the fine nodes, as COO tensors

    The tentative operator maps every node to its aggregate; with
    ``omega != 0`` it is smoothed by one damped Jacobi step on the filtered
    matrix, where weak couplings are lumped onto the diagonal.
    """
    ptr, col, data, diag = F.ptr, F.col, F.data, F.diag
    n, c = F.n, len(aggregates)
    owner = np.full(n, -1, dtype=np.int64)
    for k, C in enumerate(aggregates):
        owner[list(C)] = k
    assigned = np.flatnonzero(owner >= 0)

    if omega == 0.0:
        return (torch.ones(assigned.size, dtype=VALUE_DTYPE), torch.from_numpy(assigned),
                torch.from_numpy(owner[assigned]), (n, c))

    rows, cols, vals = [], [], []
    for i in assigned:
        s, e = ptr[i], ptr[i + 1]
        weights = {}
        weak = 0.0
        for j, a in zip(col[s:e], data[s:e]):
            if owner[j] < 0:
                continue
            if a != 0.0 and j not in neighbours[i]:
                weak += a
            else:
                weights[owner[j]] = weights.get(owner[j], 0.0) + a
        weights[owner[i]] = weights.get(owner[i], 0.0) - weak

        scale = -omega / data[diag[i]]
        for k, w in weights.items():
            w = scale * w + (1.0 if k == owner[i] else 0.0)
            if w != 0.0:
                rows.append(int(i))
                cols.append(int(k))
                vals.append(float(w))

    return (torch.tensor(vals, dtype=VALUE_DTYPE), torch.tensor(rows, dtype=INDEX_DTYPE),
            torch.tensor(cols, dtype=INDEX_DTYPE), (n, c))


class AMG:
    """
    Smoothed aggregation algebraic multigrid, one cycle per application.

    Levels are coarsened until at most ``min_size`` unknowns remain, with the
    Galerkin operator ``I^T A I`` on every coarser level and a dense LU on the
    coarsest. Each level is smoothed with SSOR before (``nu1`` times) and
    after (``nu2`` times) the coarse correction; ``gamma`` is the number of
    recursive visits (1 for a V-cycle, 2 for a W-cycle). The cycle starts
    from a zero guess.

    Parameters
    ----------
    config : AMGConfig
        smoother relaxation, cycle shape, coarsest size and prolongation
        damping ``omega`` (0 gives plain aggregation)
    """

    def __init__(self, config: AMGConfig = AMGConfig()):
        for name in ("omega_pre_forward", "omega_pre_reverse", "omega_post_forward",
                     "omega_post_reverse"):
            omega = getattr(config, name)
            if not 0 <= omega <= 2:
                raise ValueError(f"{name} must be in [0, 2], got {omega}")
        if config.nu1 < 0 or config.nu2 < 0:
            raise ValueError(f"smoothing steps must be non-negative, got {config.nu1}, {config.nu2}")
        if config.gamma < 1:
            raise ValueError(f"gamma must be positive, got {config.gamma}")
        if config.min_size < 1:
            raise ValueError(f"min_size must be positive, got {config.min_size}")
        self.config = config
        self.levels: List[CompRowMatrix] = []
        self.interpolations: List[CompColMatrix] = []

    def set_matrix(self, A: AbstractSparseMatrix):
        check_square(A)
        cfg = self.config
        levels = [CompRowMatrix.from_coo(*_snapshot(A), A.shape)]
        interpolations = []

        while levels[-1].num_rows > cfg.min_size:
            Af = levels[-1]
            F = _CompRowFactor(*Af.to_coo()[:3], Af.num_rows)
            aggregates, neighbours = _aggregate(F, 0.08 * 0.5 ** len(interpolations))
            if not aggregates or len(aggregates) >= Af.num_rows:
                break
            I = CompColMatrix.from_coo(*_prolongation(F, aggregates, neighbours, cfg.omega))
            P = I.to_scipy("csc")
            levels.append(CompRowMatrix.from_coo(*scipy2coo(P.T @ Af.to_scipy("csr") @ P)))
            interpolations.append(I)

        self.levels = levels
        self.interpolations = interpolations
        self._matrices = [L.to_scipy("csr") for L in levels[:-1]]
        self._prolongations = [I.to_scipy("csr") for I in interpolations]
        self.smoothers = []
        for L in levels[:-1]:
            pre = SSOR(SSORConfig(cfg.omega_pre_forward, cfg.omega_pre_reverse, cfg.reverse))
            post = SSOR(SSORConfig(cfg.omega_post_forward, cfg.omega_post_reverse, cfg.reverse))
            pre.set_matrix(L)
            post.set_matrix(L)
            self.smoothers.append((pre, post))

        LU, pivots, info = torch.linalg.lu_factor_ex(levels[-1].to_dense())
        if int(info) > 0:
            raise Singular(int(info) - 1, "singular coarsest level")
        self.lu = (LU, pivots)

    def _direct(self, f: np.ndarray, transpose: bool) -> np.ndarray:
        LU, pivots = self.lu
        rhs = torch.from_numpy(f).to(VALUE_DTYPE).unsqueeze(1)
        return torch.linalg.lu_solve(LU, pivots, rhs, adjoint=transpose).squeeze(1).numpy()

    def _cycle(self, k: int, f: np.ndarray, u: np.ndarray, transpose: bool) -> np.ndarray:
        if k == len(self.smoothers):
            return self._direct(f, transpose)

        cfg = self.config
        pre, post = self.smoothers[k]
        A = self._matrices[k].T if transpose else self._matrices[k]
        I = self._prolongations[k]

        for _ in range(cfg.nu1):
            u = pre.relax(f, u, transpose)
        fc = I.T @ (f - A @ u)
        uc = np.zeros(fc.shape[0])
        for _ in range(cfg.gamma):
            uc = self._cycle(k + 1, fc, uc, transpose)
        u = u + I @ uc
        for _ in range(cfg.nu2):
            u = post.relax(f, u, transpose)
        return u

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        n = self.levels[0].num_rows
        check_vector("b", b, n)
        return _write(x, self._cycle(0, _numpy(b), np.zeros(n), False))

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        n = self.levels[0].num_rows
        check_vector("b", b, n)
        return _write(x, self._cycle(0, _numpy(b), np.zeros(n), True))


# ============================================================================
# Polynomial preconditioner
# ============================================================================

def chebyshev_steps(matvec: Callable[[Tensor], Tensor], b: Tensor, x: Tensor,
                    eig_min: float, eig_max: float, steps: int) -> Tensor:
    """
    Run ``steps`` Chebyshev iterations on ``A x = b`` in place, no inner products

    ``A`` only enters through ``matvec``; its spectrum must lie in
    ``[eig_min, eig_max]`` with ``0 < eig_min <= eig_max``.
    """
    theta = (eig_max + eig_min) / 2.0
    delta = (eig_max - eig_min) / 2.0
    r = b - matvec(x)
    d = r / theta
    if delta == 0.0:
        # single point spectrum: one Richardson step is exact
        return x.add_(d) if steps > 0 else x
    sigma = theta / delta
    rho = 1.0 / sigma
    for _ in range(steps):
        x.add_(d)
        r.sub_(matvec(d))
        rho_next = 1.0 / (2.0 * sigma - rho)
        d = rho_next * rho * d + (2.0 * rho_next / delta) * r
        rho = rho_next
    return x


class ChebyshevConfig(NamedTuple):
    eig_min: Optional[float] = None
    eig_max: Optional[float] = None
    degree: int = 5


class ChebyshevPreconditioner:
    """
    Polynomial approximate inverse: ``degree`` Chebyshev steps from a zero
    guess. Without explicit bounds the spectral interval is taken from a
    dense eigen-decomposition of ``A`` (symmetric matrices only).
    """

    def __init__(self, config: ChebyshevConfig = ChebyshevConfig()):
        if config.degree < 1:
            raise ValueError(f"degree must be positive, got {config.degree}")
        self.config = config
        self.A: Optional[CompRowMatrix] = None
        self.bounds = None

    def set_matrix(self, A: AbstractSparseMatrix):
        check_square(A)
        eig_min, eig_max = self.config.eig_min, self.config.eig_max
        if eig_min is None or eig_max is None:
            lo, hi = spectral_bounds(A)
            eig_min = lo if eig_min is None else eig_min
            eig_max = hi if eig_max is None else eig_max
        check_eigenvalue_bounds(eig_min, eig_max)
        self.A = CompRowMatrix.from_matrix(A)
        self.bounds = (eig_min, eig_max)

    def apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.A.num_rows)
        z = torch.zeros(self.A.num_rows, dtype=VALUE_DTYPE)
        chebyshev_steps(self.A.__matmul__, b.to(VALUE_DTYPE), z, *self.bounds, self.config.degree)
        return x.copy_(z)

    def trans_apply(self, b: Tensor, x: Tensor) -> Tensor:
        check_vector("b", b, self.A.num_rows)
        z = torch.zeros(self.A.num_rows, dtype=VALUE_DTYPE)
        matvec = lambda v: self.A.trans_mult(v, torch.empty_like(v))
        chebyshev_steps(matvec, b.to(VALUE_DTYPE), z, *self.bounds, self.config.degree)
        return x.copy_(z)


def check_eigenvalue_bounds(eig_min: float, eig_max: float):
    if eig_min <= 0:
        raise ValueError(f"eig_min must be positive, got {eig_min}")
    if eig_max <= 0:
        raise ValueError(f"eig_max must be positive, got {eig_max}")
    if eig_min > eig_max:
        raise ValueError(f"eig_min > eig_max ({eig_min} > {eig_max})")


# ============================================================================
# Registry
# ============================================================================

PRECONDITIONERS = {
    'none': IdentityPreconditioner,
    'jacobi': DiagonalPreconditioner,
    'ssor': lambda **kw: SSOR(SSORConfig(**kw)),
    'ilu': ILU,
    'icc': ICC,
    'ilut': lambda **kw: ILUT(ILUTConfig(**kw)),
    'amg': lambda **kw: AMG(AMGConfig(**kw)),
    'chebyshev': lambda **kw: ChebyshevPreconditioner(ChebyshevConfig(**kw)),
}


def get_preconditioner(A: AbstractSparseMatrix, name: str = 'jacobi', **options) -> Preconditioner:
    """
    Get preconditioner by name, already set up for ``A``.

    Parameters
    ----------
    A : AbstractSparseMatrix
        square system matrix
    name : str
        one of 'none', 'jacobi', 'ssor', 'ilu', 'icc', 'ilut', 'amg', 'chebyshev'
    **options
        fields of the matching config (``SSORConfig``, ``ILUTConfig``,
        ``AMGConfig``, ``ChebyshevConfig``)
    """
    if name not in PRECONDITIONERS:
        raise ValueError(f"Unknown preconditioner: {name}. "
                         f"Available: {', '.join(PRECONDITIONERS)}")
    M = PRECONDITIONERS[name](**options)
    M.set_matrix(A)
    return M
