#!/usr/bin/env python
"""
Basic Usage Examples for torch-krylov

This example demonstrates:
1. Building sparse vectors and matrices in the different storage formats
2. Matrix-vector products and norms
3. Preconditioned Krylov solves and iteration monitoring
4. Matrix Market files
"""

import logging
import os
import tempfile

import torch
from torch_krylov import (SparseVector, CompRowMatrix, CompDiagMatrix, LinkedSparseMatrix,
                          FlexCompRowMatrix, Norm, CG, GMRES, Chebyshev, DefaultIterationMonitor,
                          MonitorConfig, LoggingIterationReporter, HistoryReporter,
                          NotConvergedError, get_preconditioner, solve, spsolve,
                          spectral_bounds, save_mtx, load_mtx)


def create_poisson_2d(n):
    """2D Poisson matrix on an n x n grid, assembled entry by entry."""
    N = n * n
    A = LinkedSparseMatrix(N, N)
    for i in range(n):
        for j in range(n):
            k = i * n + j
            A.set(k, k, 4.0)
            if i > 0:
                A.set(k, k - n, -1.0)
            if i < n - 1:
                A.set(k, k + n, -1.0)
            if j > 0:
                A.set(k, k - 1, -1.0)
            if j < n - 1:
                A.set(k, k + 1, -1.0)
    return A


# =============================================================================
# 1. Storage
# =============================================================================

def example_1_sparse_vector():
    """Structural zeros stay until compact() is called."""
    x = SparseVector(10)
    x.set(7, 2.0)
    x.set(2, -1.0)
    x.set(7, 0.0)
    print(f"Before compact: {x}, indices {x.get_index().tolist()}")
    x.compact()
    print(f"After compact:  {x}, indices {x.get_index().tolist()}")


def example_2_formats():
    """The same matrix in every storage format."""
    A = create_poisson_2d(4)
    print(f"Linked: {A}")
    for cls in [CompRowMatrix, CompDiagMatrix, FlexCompRowMatrix]:
        B = cls.from_matrix(A)
        print(f"{cls.__name__}: {B}, equal = {torch.equal(A.to_dense(), B.to_dense())}")

    # compressed formats have a fixed pattern
    C = CompRowMatrix(3, 3, [[0, 1], [0, 1, 2], [1, 2]])
    C.set(1, 2, 5.0)
    print(f"C[0, 2] outside the pattern reads {C[0, 2]}")


def example_3_products():
    A = CompRowMatrix.from_matrix(create_poisson_2d(4))
    x = torch.ones(16, dtype=torch.float64)
    y = torch.zeros(16, dtype=torch.float64)
    A.mult(x, y)
    print(f"A @ ones: {y.tolist()}")
    print(f"||A||_1 = {A.norm(Norm.ONE)}, ||A||_F = {A.norm(Norm.TWO):.4f}")


# =============================================================================
# 2. Solving
# =============================================================================

def example_4_solve():
    """One-call solve with a named method and preconditioner."""
    A = CompRowMatrix.from_matrix(create_poisson_2d(16))
    b = torch.ones(A.num_rows, dtype=torch.float64)

    for method, preconditioner in [('cg', 'none'), ('cg', 'icc'), ('bicgstab', 'ilu'),
                                   ('gmres', 'ilut'), ('gmres', 'amg'), ('qmr', 'jacobi')]:
        result = solve(A, b, method=method, preconditioner=preconditioner, rtol=1e-10)
        residual = torch.linalg.vector_norm(b - A @ result.x)
        print(f"{method:>8} + {preconditioner:<6}: {result.num_iters:4d} iterations, "
              f"||b - Ax|| = {residual:.2e}")


def example_5_solver_objects():
    """Solver objects with an explicit monitor and reporter."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    A = CompRowMatrix.from_matrix(create_poisson_2d(8))
    b = torch.ones(A.num_rows, dtype=torch.float64)
    x = torch.zeros(A.num_rows, dtype=torch.float64)

    M = get_preconditioner(A, 'ssor', omega_forward=1.2, omega_reverse=1.2)
    monitor = DefaultIterationMonitor(MonitorConfig(rtol=1e-8), LoggingIterationReporter())
    CG(M, monitor).solve(A, b, x)

    history = HistoryReporter()
    x.zero_()
    GMRES(monitor=DefaultIterationMonitor(MonitorConfig(rtol=1e-8), history),
          restart=10).solve(A, b, x)
    print(f"GMRES(10) residual history: {[f'{r:.1e}' for _, r in history.entries[:5]]} ...")


def example_6_chebyshev():
    """Chebyshev iteration needs bounds on the spectrum."""
    A = CompRowMatrix.from_matrix(create_poisson_2d(8))
    b = torch.ones(A.num_rows, dtype=torch.float64)
    lo, hi = spectral_bounds(A)
    x = torch.zeros(A.num_rows, dtype=torch.float64)
    result = Chebyshev(lo, hi, monitor=DefaultIterationMonitor(MonitorConfig(rtol=1e-8))).solve(A, b, x)
    print(f"Spectrum in [{lo:.4f}, {hi:.4f}], Chebyshev: {result.num_iters} iterations")


def example_7_failures():
    """A failed solve is a result; unwrap() turns it into an exception."""
    A = CompRowMatrix.from_matrix(create_poisson_2d(8))
    b = torch.ones(A.num_rows, dtype=torch.float64)
    result = solve(A, b, method='cg', rtol=1e-12, maxiter=3)
    print(f"status = {result.status.value}, converged = {result.converged}")
    try:
        result.unwrap()
    except NotConvergedError as e:
        print(f"unwrap(): {e}")


def example_8_spsolve():
    """COO input, returns the solution or raises."""
    val = torch.tensor([4.0, -1.0, -1.0, 4.0, -1.0, -1.0, 4.0], dtype=torch.float64)
    row = torch.tensor([0, 0, 1, 1, 1, 2, 2])
    col = torch.tensor([0, 1, 0, 1, 2, 1, 2])
    b = torch.tensor([1.0, 2.0, 3.0], dtype=torch.float64)
    x = spsolve(val, row, col, (3, 3), b)
    print(f"Solution x: {x.tolist()}")


# =============================================================================
# 3. Files
# =============================================================================

def example_9_matrix_market():
    A = CompRowMatrix.from_matrix(create_poisson_2d(4))
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "poisson.mtx")
        save_mtx(A, path, symmetry="symmetric", comment="2D Poisson, 4 x 4 grid")
        B = load_mtx(path, layout="csc")
        print(f"Loaded {B}, equal = {torch.equal(A.to_dense(), B.to_dense())}")


if __name__ == "__main__":
    print("=" * 60)
    print("1. STORAGE")
    print("=" * 60)
    example_1_sparse_vector()
    print()
    example_2_formats()
    print()
    example_3_products()

    print("\n" + "=" * 60)
    print("2. SOLVING")
    print("=" * 60)
    example_4_solve()
    print()
    example_5_solver_objects()
    print()
    example_6_chebyshev()
    print()
    example_7_failures()
    print()
    example_8_spsolve()

    print("\n" + "=" * 60)
    print("3. FILES")
    print("=" * 60)
    example_9_matrix_market()

    print("\n" + "=" * 60)
    print("All examples completed!")
    print("=" * 60)
