from .check import (KrylovError, ShapeException, IndexOutOfRange,
                    StructurallyMissingEntry, Singular)
from .vector import SparseVector, Norm, vector_norm
from .matrix import (AbstractSparseMatrix, CompRowMatrix, CompColMatrix, CompDiagMatrix,
                     FlexCompRowMatrix, FlexCompColMatrix, LinkedSparseMatrix)
from .monitor import (Status, MonitorConfig, DefaultIterationMonitor, MatrixIterationMonitor,
                      LoggingIterationReporter, HistoryReporter, SolveResult, NotConvergedError)
from .preconditioners import (Preconditioner, IdentityPreconditioner, DiagonalPreconditioner,
                              SSOR, SSORConfig, ILU, ICC, ILUT, ILUTConfig,
                              AMG, AMGConfig, ChebyshevPreconditioner, ChebyshevConfig,
                              PRECONDITIONERS,
                              get_preconditioner)
from .solvers import (IterativeSolver, CG, BiCG, CGS, BiCGstab, GMRES, QMR, IR, Chebyshev,
                      SOLVER_METHODS)
from .linear_solve import solve, spsolve
from .eigen import symmetric_eig, spectral_bounds, eigsh
from .io import save_mtx, load_mtx, load_mtx_info, save_vector, load_vector
from .compare import coo_eq, matrix_eq

__version__ = "0.1.0"

__all__ = [
    # errors
    "KrylovError", "ShapeException", "IndexOutOfRange", "StructurallyMissingEntry",
    "Singular", "NotConvergedError",
    # storage
    "SparseVector", "Norm", "vector_norm",
    "AbstractSparseMatrix", "CompRowMatrix", "CompColMatrix", "CompDiagMatrix",
    "FlexCompRowMatrix", "FlexCompColMatrix", "LinkedSparseMatrix",
    # monitors
    "Status", "MonitorConfig", "DefaultIterationMonitor", "MatrixIterationMonitor",
    "LoggingIterationReporter", "HistoryReporter", "SolveResult",
    # preconditioners
    "Preconditioner", "IdentityPreconditioner", "DiagonalPreconditioner", "SSOR", "SSORConfig",
    "ILU", "ICC", "ILUT", "ILUTConfig", "AMG", "AMGConfig", "ChebyshevPreconditioner",
    "ChebyshevConfig",
    "PRECONDITIONERS", "get_preconditioner",
    # solvers
    "IterativeSolver", "CG", "BiCG", "CGS", "BiCGstab", "GMRES", "QMR", "IR", "Chebyshev",
    "SOLVER_METHODS", "solve", "spsolve",
    # collaborators
    "symmetric_eig", "spectral_bounds", "eigsh",
    "save_mtx", "load_mtx", "load_mtx_info", "save_vector", "load_vector",
    "coo_eq", "matrix_eq",
    "__version__",
]
