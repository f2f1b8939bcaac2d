"""
Krylov-subspace iterative solvers.

All solvers share one calling convention: ``solver.solve(A, b, x)`` starts
from the guess in ``x``, overwrites ``x`` with the final iterate and returns
a :class:`SolveResult`. A solve that does not converge still returns (the
partial iterate stays in ``x``) and issues a warning; call
``result.unwrap()`` to turn it into a :class:`NotConvergedError`.

Methods:
- 'cg': Conjugate Gradient (for SPD matrices)
- 'bicg': BiConjugate Gradient (needs A^T products)
- 'cgs': Conjugate Gradient Squared
- 'bicgstab': BiCGStab (for general matrices)
- 'gmres': restarted GMRES (for general matrices)
- 'qmr': Quasi-Minimal Residual (needs A^T products)
- 'ir': Iterative Refinement (preconditioned Richardson)
- 'chebyshev': Chebyshev iteration, no inner products (needs spectral bounds)
"""

import math
import warnings
import torch
from torch import Tensor
from typing import Optional, Protocol

from .check import check_square, check_vector
from .matrix import AbstractSparseMatrix
from .monitor import DefaultIterationMonitor, SolveResult, Status
from .preconditioners import IdentityPreconditioner, Preconditioner, check_eigenvalue_bounds
from .vector import VALUE_DTYPE, Norm, vector_norm


class IterativeSolver(Protocol):
    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult: ...


def _dot(x: Tensor, y: Tensor) -> float:
    return float(torch.dot(x, y))


def _residual(A: AbstractSparseMatrix, b: Tensor, x: Tensor, r: Optional[Tensor] = None) -> Tensor:
    """r = b - A x"""
    if r is None:
        r = torch.empty_like(b)
    r.copy_(b)
    return A.mult_add(-1.0, x, r)


class _KrylovSolver:
    """Holds the preconditioner and monitor, and validates/finishes a solve."""

    name = "solver"

    def __init__(self, preconditioner: Optional[Preconditioner] = None,
                 monitor: Optional[DefaultIterationMonitor] = None):
        self.preconditioner = preconditioner if preconditioner is not None else IdentityPreconditioner()
        self.monitor = monitor if monitor is not None else DefaultIterationMonitor()

    def _start(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> Tensor:
        check_square(A)
        check_vector("b", b, A.num_rows)
        check_vector("x", x, A.num_columns)
        if x.dtype != VALUE_DTYPE or b.dtype != VALUE_DTYPE:
            raise TypeError(f"b and x must be {VALUE_DTYPE}, got {b.dtype} and {x.dtype}")
        self.monitor.reset()
        return _residual(A, b, x)

    def _finish(self, x: Tensor) -> SolveResult:
        result = self.monitor.result(x)
        if not result.converged:
            detail = f", {result.detail}" if result.detail else ""
            warnings.warn(f"{self.name} did not converge in {result.num_iters} iterations "
                          f"({result.status.value}{detail}, residual={result.residual:.2e})")
        return result


# ============================================================================
# Conjugate gradient family
# ============================================================================

class CG(_KrylovSolver):
    """Preconditioned conjugate gradients, for symmetric positive definite A."""

    name = "CG"

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it = self.preconditioner, self.monitor
        z = torch.empty_like(r)
        p = torch.empty_like(r)
        q = torch.empty_like(r)
        rho_1 = 0.0

        while it.check(r, x) == Status.ITERATING:
            M.apply(r, z)
            rho = _dot(r, z)
            if rho == 0.0:
                it.breakdown("rho")
                break

            if it.is_first():
                p.copy_(z)
            else:
                p.mul_(rho / rho_1).add_(z)

            A.mult(p, q)
            pq = _dot(p, q)
            if pq == 0.0:
                it.breakdown("p'Ap")
                break
            alpha = rho / pq
            x.add_(p, alpha=alpha)
            r.add_(q, alpha=-alpha)
            rho_1 = rho
            it.next()

        return self._finish(x)


class BiCG(_KrylovSolver):
    """Bi-conjugate gradients; uses ``A.trans_mult`` and ``M.trans_apply``."""

    name = "BiCG"

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it = self.preconditioner, self.monitor
        r_tld = r.clone()
        z, z_tld = torch.empty_like(r), torch.empty_like(r)
        p, p_tld = torch.empty_like(r), torch.empty_like(r)
        q, q_tld = torch.empty_like(r), torch.empty_like(r)
        rho_2 = 0.0

        while it.check(r, x) == Status.ITERATING:
            M.apply(r, z)
            M.trans_apply(r_tld, z_tld)
            rho_1 = _dot(z, r_tld)
            if rho_1 == 0.0:
                it.breakdown("rho")
                break

            if it.is_first():
                p.copy_(z)
                p_tld.copy_(z_tld)
            else:
                beta = rho_1 / rho_2
                p.mul_(beta).add_(z)
                p_tld.mul_(beta).add_(z_tld)

            A.mult(p, q)
            A.trans_mult(p_tld, q_tld)
            denominator = _dot(p_tld, q)
            if denominator == 0.0:
                it.breakdown("p~'Ap")
                break
            alpha = rho_1 / denominator
            x.add_(p, alpha=alpha)
            r.add_(q, alpha=-alpha)
            r_tld.add_(q_tld, alpha=-alpha)
            rho_2 = rho_1
            it.next()

        return self._finish(x)


class CGS(_KrylovSolver):
    """Conjugate gradients squared."""

    name = "CGS"

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it = self.preconditioner, self.monitor
        r_tld = r.clone()
        p, q, u = torch.empty_like(r), torch.empty_like(r), torch.empty_like(r)
        p_hat, u_hat = torch.empty_like(r), torch.empty_like(r)
        q_hat, v_hat = torch.empty_like(r), torch.empty_like(r)
        rho_2 = 0.0

        while it.check(r, x) == Status.ITERATING:
            rho_1 = _dot(r_tld, r)
            if rho_1 == 0.0:
                it.breakdown("rho")
                break

            if it.is_first():
                u.copy_(r)
                p.copy_(u)
            else:
                beta = rho_1 / rho_2
                torch.add(r, q, alpha=beta, out=u)
                p.mul_(beta).add_(q).mul_(beta).add_(u)

            M.apply(p, p_hat)
            A.mult(p_hat, v_hat)
            denominator = _dot(r_tld, v_hat)
            if denominator == 0.0:
                it.breakdown("r~'Ap")
                break
            alpha = rho_1 / denominator
            torch.add(u, v_hat, alpha=-alpha, out=q)

            M.apply(u.add_(q), u_hat)
            x.add_(u_hat, alpha=alpha)
            A.mult(u_hat, q_hat)
            r.add_(q_hat, alpha=-alpha)
            rho_2 = rho_1
            it.next()

        return self._finish(x)


class BiCGstab(_KrylovSolver):
    """
    Stabilised bi-conjugate gradients.

    The intermediate residual ``s`` is tested as well, so a solve may
    converge in the middle of an iteration.
    """

    name = "BiCGstab"

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it = self.preconditioner, self.monitor
        r_tld = r.clone()
        p, s, t, v = (torch.zeros_like(r) for _ in range(4))
        p_hat, s_hat = torch.empty_like(r), torch.empty_like(r)
        rho_2 = alpha = omega = 1.0

        while it.check(r, x) == Status.ITERATING:
            rho_1 = _dot(r_tld, r)
            if rho_1 == 0.0:
                it.breakdown("rho")
                break
            if omega == 0.0:
                it.breakdown("omega")
                break

            if it.is_first():
                p.copy_(r)
            else:
                beta = (rho_1 / rho_2) * (alpha / omega)
                p.sub_(v, alpha=omega).mul_(beta).add_(r)

            M.apply(p, p_hat)
            A.mult(p_hat, v)
            denominator = _dot(r_tld, v)
            if denominator == 0.0:
                it.breakdown("r~'Ap")
                break
            alpha = rho_1 / denominator
            torch.add(r, v, alpha=-alpha, out=s)
            x.add_(p_hat, alpha=alpha)

            if it.check(s, x) != Status.ITERATING:
                break

            M.apply(s, s_hat)
            A.mult(s_hat, t)
            tt = _dot(t, t)
            if tt == 0.0:
                it.breakdown("t't")
                break
            omega = _dot(t, s) / tt
            x.add_(s_hat, alpha=omega)
            torch.add(s, t, alpha=-omega, out=r)
            rho_2 = rho_1
            it.next()

        return self._finish(x)


# ============================================================================
# GMRES
# ============================================================================

def _givens(a: float, b: float):
    """(c, s) such that [c s; -s c] [a; b] = [r; 0]"""
    scale = abs(a) + abs(b)
    if scale == 0.0:
        return 1.0, 0.0
    roe = a if abs(a) > abs(b) else b
    r = math.copysign(scale * math.hypot(a / scale, b / scale), roe)
    return a / r, b / r


class GMRES(_KrylovSolver):
    """
    Restarted GMRES with left preconditioning.

    The monitor sees the norm of the preconditioned residual; inside a
    cycle that norm comes from the Givens-rotated least squares problem.

    Parameters
    ----------
    restart : int, optional
        Krylov subspace dimension before a restart, by default 30
    """

    name = "GMRES"

    def __init__(self, preconditioner: Optional[Preconditioner] = None,
                 monitor: Optional[DefaultIterationMonitor] = None,
                 restart: int = 30):
        super().__init__(preconditioner, monitor)
        if restart < 1:
            raise ValueError(f"restart must be positive, got {restart}")
        self.restart = restart

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it, m = self.preconditioner, self.monitor, self.restart
        n = b.shape[0]
        u = torch.empty_like(r)
        w = torch.empty_like(r)
        V = torch.zeros(m + 1, n, dtype=VALUE_DTYPE)
        H = torch.zeros(m + 1, m, dtype=VALUE_DTYPE)
        rotations = [(1.0, 0.0)] * m

        M.apply(r, u)
        while it.check(u, x) == Status.ITERATING:
            beta = vector_norm(u, Norm.TWO)
            V[0] = u / beta
            g = [0.0] * (m + 1)
            g[0] = beta
            H.zero_()

            # one check per step: the cycle's first residual was checked above,
            # the last one is checked after the restart
            i = 0
            while True:
                A.mult(V[i], r)
                M.apply(r, w)
                for k in range(i + 1):
                    H[k, i] = _dot(w, V[k])
                    w.sub_(V[k], alpha=float(H[k, i]))
                h = vector_norm(w, Norm.TWO)
                H[i + 1, i] = h
                if h != 0.0:
                    V[i + 1] = w / h

                for k in range(i):
                    c, s = rotations[k]
                    a0, a1 = float(H[k, i]), float(H[k + 1, i])
                    H[k, i], H[k + 1, i] = c * a0 + s * a1, -s * a0 + c * a1
                c, s = _givens(float(H[i, i]), h)
                rotations[i] = (c, s)
                H[i, i], H[i + 1, i] = c * float(H[i, i]) + s * h, 0.0
                g[i], g[i + 1] = c * g[i], -s * g[i]

                i += 1
                it.next()
                # h == 0: invariant subspace reached, the update below is exact
                if h == 0.0 or i == m or it.check(abs(g[i]), x) != Status.ITERATING:
                    break

            y = torch.linalg.solve_triangular(
                H[:i, :i], torch.tensor(g[:i], dtype=VALUE_DTYPE).unsqueeze(1), upper=True)
            x.add_(V[:i].T @ y.squeeze(1))

            if it.status != Status.ITERATING:
                break
            _residual(A, b, x, r)
            M.apply(r, u)

        return self._finish(x)


# ============================================================================
# Quasi-minimal residual
# ============================================================================

class QMR(_KrylovSolver):
    """
    Quasi-minimal residual with a left (``preconditioner``) and a right
    (``right_preconditioner``) split preconditioner; uses ``A.trans_mult``.
    """

    name = "QMR"

    def __init__(self, preconditioner: Optional[Preconditioner] = None,
                 monitor: Optional[DefaultIterationMonitor] = None,
                 right_preconditioner: Optional[Preconditioner] = None):
        super().__init__(preconditioner, monitor)
        self.right_preconditioner = (right_preconditioner if right_preconditioner is not None
                                     else IdentityPreconditioner())

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M1, M2, it = self.preconditioner, self.right_preconditioner, self.monitor
        v, w = torch.empty_like(r), torch.empty_like(r)
        y, z = torch.empty_like(r), torch.empty_like(r)
        y_tld, z_tld = torch.empty_like(r), torch.empty_like(r)
        p, q = torch.zeros_like(r), torch.zeros_like(r)
        p_tld = torch.empty_like(r)
        d, s = torch.zeros_like(r), torch.zeros_like(r)

        v_tld = r.clone()
        M1.apply(v_tld, y)
        rho = vector_norm(y)
        w_tld = r.clone()
        M2.trans_apply(w_tld, z)
        xi = vector_norm(z)
        gamma, eta, theta, ep = 1.0, -1.0, 0.0, 0.0

        while it.check(r, x) == Status.ITERATING:
            if rho == 0.0:
                it.breakdown("rho")
                break
            if xi == 0.0:
                it.breakdown("xi")
                break

            torch.div(v_tld, rho, out=v)
            y.div_(rho)
            torch.div(w_tld, xi, out=w)
            z.div_(xi)

            delta = _dot(z, y)
            if delta == 0.0:
                it.breakdown("delta")
                break

            M2.apply(y, y_tld)
            M1.trans_apply(z, z_tld)

            if it.is_first():
                p.copy_(y_tld)
                q.copy_(z_tld)
            else:
                p.mul_(-xi * delta / ep).add_(y_tld)
                q.mul_(-rho * delta / ep).add_(z_tld)

            A.mult(p, p_tld)
            ep = _dot(q, p_tld)
            if ep == 0.0:
                it.breakdown("ep")
                break
            beta = ep / delta
            if beta == 0.0:
                it.breakdown("beta")
                break

            torch.add(p_tld, v, alpha=-beta, out=v_tld)
            M1.apply(v_tld, y)
            rho_1, rho = rho, vector_norm(y)

            torch.mul(w, -beta, out=w_tld)
            A.trans_mult_add(1.0, q, w_tld)
            M2.trans_apply(w_tld, z)
            xi = vector_norm(z)

            gamma_1, theta_1 = gamma, theta
            theta = rho / (gamma_1 * abs(beta))
            gamma = 1.0 / math.sqrt(1.0 + theta * theta)
            if gamma == 0.0:
                it.breakdown("gamma")
                break
            eta = -eta * rho_1 * gamma * gamma / (beta * gamma_1 * gamma_1)

            if it.is_first():
                torch.mul(p, eta, out=d)
                torch.mul(p_tld, eta, out=s)
            else:
                scale = (theta_1 * gamma) ** 2
                d.mul_(scale).add_(p, alpha=eta)
                s.mul_(scale).add_(p_tld, alpha=eta)

            x.add_(d)
            r.sub_(s)
            it.next()

        return self._finish(x)


# ============================================================================
# Stationary and polynomial iterations
# ============================================================================

class IR(_KrylovSolver):
    """Iterative refinement: ``x += M^{-1} (b - A x)`` until converged."""

    name = "IR"

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it = self.preconditioner, self.monitor
        z = torch.empty_like(r)

        while it.check(r, x) == Status.ITERATING:
            M.apply(r, z)
            x.add_(z)
            _residual(A, b, x, r)
            it.next()

        return self._finish(x)


class Chebyshev(_KrylovSolver):
    """
    Chebyshev iteration for matrices whose (preconditioned) spectrum lies in
    ``[eig_min, eig_max]``, ``0 < eig_min <= eig_max``. No inner products
    are computed; the bounds are typically obtained from
    :func:`torch_krylov.eigen.spectral_bounds`.
    """

    name = "Chebyshev"

    def __init__(self, eig_min: float, eig_max: float,
                 preconditioner: Optional[Preconditioner] = None,
                 monitor: Optional[DefaultIterationMonitor] = None):
        super().__init__(preconditioner, monitor)
        self.set_eigenvalues(eig_min, eig_max)

    def set_eigenvalues(self, eig_min: float, eig_max: float):
        check_eigenvalue_bounds(eig_min, eig_max)
        self.eig_min = eig_min
        self.eig_max = eig_max

    def solve(self, A: AbstractSparseMatrix, b: Tensor, x: Tensor) -> SolveResult:
        r = self._start(A, b, x)
        M, it = self.preconditioner, self.monitor
        z = torch.empty_like(r)
        p = torch.empty_like(r)
        q = torch.empty_like(r)

        theta = (self.eig_max + self.eig_min) / 2.0
        delta = (self.eig_max - self.eig_min) / 2.0
        sigma = theta / delta if delta > 0 else math.inf
        rho = 1.0 / sigma

        while it.check(r, x) == Status.ITERATING:
            M.apply(r, z)
            if it.is_first() or delta == 0.0:
                torch.div(z, theta, out=p)
            else:
                rho_next = 1.0 / (2.0 * sigma - rho)
                p.mul_(rho_next * rho).add_(z, alpha=2.0 * rho_next / delta)
                rho = rho_next

            A.mult(p, q)
            x.add_(p)
            r.sub_(q)
            it.next()

        return self._finish(x)


SOLVER_METHODS = {
    'cg': CG,
    'bicg': BiCG,
    'cgs': CGS,
    'bicgstab': BiCGstab,
    'gmres': GMRES,
    'qmr': QMR,
    'ir': IR,
    'chebyshev': Chebyshev,
}
