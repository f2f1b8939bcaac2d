import warnings
import torch
from typing import Optional, Tuple

from .check import check_coo, check_vector
from .matrix import AbstractSparseMatrix, CompRowMatrix
from .monitor import DefaultIterationMonitor, MonitorConfig, Reporter, SolveResult
from .preconditioners import PRECONDITIONERS, get_preconditioner
from .solvers import SOLVER_METHODS
from .vector import VALUE_DTYPE


def solve(A: AbstractSparseMatrix,
          b: torch.Tensor,
          x0: Optional[torch.Tensor] = None,
          method: str = "cg",
          preconditioner: str = "none",
          rtol: float = 1e-5,
          atol: float = 1e-50,
          maxiter: int = 100000,
          preconditioner_options: Optional[dict] = None,
          reporter: Optional[Reporter] = None,
          **solver_options) -> SolveResult:
    """Solve ``A x = b`` with an iterative method chosen by name

    Parameters
    ----------
    A : AbstractSparseMatrix
        square system matrix
    b : torch.Tensor
        [n] right-hand side
    x0 : torch.Tensor, optional
        [n] initial guess, zero by default; it is not modified
    method : str, optional
        {'cg', 'bicg', 'cgs', 'bicgstab', 'gmres', 'qmr', 'ir', 'chebyshev'},
        by default "cg"
    preconditioner : str, optional
        {'none', 'jacobi', 'ssor', 'ilu', 'icc', 'ilut', 'amg', 'chebyshev'},
        by default "none"
    rtol : float, optional
        tolerance relative to the initial residual, by default 1e-5
    atol : float, optional
        absolute tolerance, by default 1e-50
    maxiter : int, optional
        iteration limit, by default 100000
    preconditioner_options : dict, optional
        fields of the preconditioner config
    reporter : callable, optional
        per-iteration callback ``reporter(residual, iteration)``
    **solver_options
        extra solver arguments, e.g. ``restart`` for GMRES or ``eig_min``
        and ``eig_max`` for Chebyshev

    Returns
    -------
    SolveResult
    """
    if method not in SOLVER_METHODS:
        raise ValueError(f"Unknown method: {method}. Available: {', '.join(SOLVER_METHODS)}")
    if preconditioner not in PRECONDITIONERS:
        raise ValueError(f"Unknown preconditioner: {preconditioner}. "
                         f"Available: {', '.join(PRECONDITIONERS)}")
    check_vector("b", b, A.num_rows)
    if b.dtype != VALUE_DTYPE:
        warnings.warn("You'd better use float64 to maintain good precision")
        b = b.to(VALUE_DTYPE)

    x = torch.zeros(A.num_columns, dtype=VALUE_DTYPE) if x0 is None else x0.to(VALUE_DTYPE).clone()
    M = get_preconditioner(A, preconditioner, **(preconditioner_options or {}))
    monitor = DefaultIterationMonitor(MonitorConfig(max_iterations=maxiter, rtol=rtol, atol=atol),
                                      reporter=reporter)
    solver = SOLVER_METHODS[method](preconditioner=M, monitor=monitor, **solver_options)
    return solver.solve(A, b, x)


def spsolve(val: torch.Tensor,
            row: torch.Tensor,
            col: torch.Tensor,
            shape: Tuple[int, int],
            b: torch.Tensor,
            method: str = "bicgstab",
            preconditioner: str = "none",
            atol: float = 1e-10,
            maxiter: int = 10000,
            **solver_options) -> torch.Tensor:
    """Solve the sparse linear system given in COO format

    .. math::
        Ax = b

    Duplicated entries are summed. Raises :class:`NotConvergedError` when the
    absolute residual does not drop below ``atol``.

    Parameters
    ----------
    val : torch.Tensor
        [nnz]
    row : torch.Tensor
        [nnz]
    col : torch.Tensor
        [nnz]
    shape : Tuple[int, int]
        (n, n)
    b : torch.Tensor
        [n]
    method : str, optional
        see :func:`solve`, by default "bicgstab"
    preconditioner : str, optional
        see :func:`solve`, by default "none"
    atol : float, optional
        , by default 1e-10
    maxiter : int, optional
        , by default 10000

    Returns
    -------
    torch.Tensor
        [n]
    """
    check_coo(val, row, col, shape)
    assert atol > 0, f"atol must be positive, got {atol}"
    assert maxiter > 0, f"maxiter must be positive, got {maxiter}"

    A = CompRowMatrix.from_coo(val, row, col, shape)
    result = solve(A, b, method=method, preconditioner=preconditioner,
                   rtol=0.0, atol=atol, maxiter=maxiter, **solver_options)
    return result.unwrap()
