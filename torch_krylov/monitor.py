"""
Iteration monitors: stopping criteria and residual bookkeeping for the
iterative solvers.

A monitor only ever sees scalar residual norms (or a residual tensor it
reduces to one) and keeps a per-solve history. Solvers call
:meth:`DefaultIterationMonitor.check` once per iteration and stop as soon as
it returns anything other than ``Status.ITERATING``.
"""

import enum
import logging
import math
from torch import Tensor
from typing import Callable, List, NamedTuple, Optional, Tuple, Union

from .check import KrylovError
from .vector import Norm, vector_norm


logger = logging.getLogger(__name__)


class Status(enum.Enum):
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DIVERGED = "diverged"
    BREAKDOWN = "breakdown"


class MonitorConfig(NamedTuple):
    """Stopping criteria of :class:`DefaultIterationMonitor`."""
    max_iterations: int = 100000
    rtol: float = 1e-5
    atol: float = 1e-50
    dtol: float = 1e5
    norm: Norm = Norm.TWO


class NotConvergedError(KrylovError, RuntimeError):
    def __init__(self, status: Status, residual: float, iterations: int, detail: Optional[str] = None):
        self.status = status
        self.residual = residual
        self.iterations = iterations
        self.detail = detail
        msg = f"not converged ({status.value}) after {iterations} iterations, residual={residual:.3e}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class SolveResult(NamedTuple):
    """Result of iterative solve."""
    x: Tensor
    num_iters: int
    residual: float
    converged: bool
    status: Status = Status.CONVERGED
    detail: Optional[str] = None

    def unwrap(self) -> Tensor:
        """The solution, or :class:`NotConvergedError` if the solve failed."""
        if not self.converged:
            raise NotConvergedError(self.status, self.residual, self.num_iters, self.detail)
        return self.x


# ============================================================================
# Reporters
# ============================================================================

Reporter = Callable[[float, int], None]


class LoggingIterationReporter:
    """Writes one line per iteration to the ``torch_krylov`` logger."""

    def __init__(self, logger: logging.Logger = logger, level: int = logging.INFO):
        self.logger = logger
        self.level = level

    def __call__(self, residual: float, iteration: int):
        self.logger.log(self.level, "%10d % .12e", iteration, residual)


class HistoryReporter:
    def __init__(self):
        self.entries: List[Tuple[int, float]] = []

    def __call__(self, residual: float, iteration: int):
        self.entries.append((iteration, residual))


# ============================================================================
# Monitors
# ============================================================================

class DefaultIterationMonitor:
    """
    Relative/absolute residual test with divergence detection.

    Converged when ``r <= max(rtol * r0, atol)``, where ``r0`` is the first
    residual seen after :meth:`reset`. Diverged when ``r > dtol * r0`` or ``r``
    is NaN. Stops with ``MAX_ITERATIONS`` once ``max_iterations`` steps have
    been taken.

    Parameters
    ----------
    config : MonitorConfig, optional
        tolerances and iteration limit
    reporter : callable, optional
        called as ``reporter(residual, iteration)`` on every check
    """

    def __init__(self, config: Optional[MonitorConfig] = None, reporter: Optional[Reporter] = None):
        self.config = config if config is not None else MonitorConfig()
        self.reporter = reporter
        self.reset()

    def reset(self):
        self.iterations = 0
        self.residual = math.nan
        self.initial_residual: Optional[float] = None
        self.history: List[float] = []
        self.status = Status.ITERATING
        self.detail: Optional[str] = None

    def is_first(self) -> bool:
        return self.iterations == 0

    def next(self):
        self.iterations += 1

    def norm(self, r: Union[Tensor, float]) -> float:
        if isinstance(r, Tensor):
            return vector_norm(r, self.config.norm)
        return float(r)

    def check(self, r: Union[Tensor, float], x: Optional[Tensor] = None) -> Status:
        """
        Record the residual ``r`` and decide whether to keep iterating

        Parameters
        ----------
        r : Tensor or float
            residual vector, or its norm
        x : Tensor, optional
            current iterate, used by monitors that scale by ``|x|``

        Returns
        -------
        Status
        """
        value = self.norm(r)
        self.residual = value
        self.history.append(value)
        if self.reporter is not None:
            self.reporter(value, self.iterations)
        if self.initial_residual is None:
            self.initial_residual = value
        self.status = self._decide(value, x)
        return self.status

    def _tolerance(self, x: Optional[Tensor]) -> float:
        return max(self.config.rtol * self.initial_residual, self.config.atol)

    def _decide(self, r: float, x: Optional[Tensor]) -> Status:
        if math.isnan(r):
            self.detail = "residual is NaN"
            return Status.DIVERGED
        if r <= self._tolerance(x):
            return Status.CONVERGED
        if r > self.config.dtol * self.initial_residual:
            self.detail = f"residual grew beyond {self.config.dtol:g} times the initial residual"
            return Status.DIVERGED
        if self.iterations >= self.config.max_iterations:
            return Status.MAX_ITERATIONS
        return Status.ITERATING

    def breakdown(self, quantity: str) -> Status:
        """Terminate because ``quantity`` vanished in the recurrence."""
        self.status = Status.BREAKDOWN
        self.detail = f"{quantity} vanished"
        return self.status

    @property
    def converged(self) -> bool:
        return self.status == Status.CONVERGED

    def result(self, x: Tensor) -> SolveResult:
        return SolveResult(x, self.iterations, self.residual, self.converged,
                           self.status, self.detail)


class MatrixIterationMonitor(DefaultIterationMonitor):
    """
    Residual test scaled by the problem: converged when
    ``r <= max(rtol * (norm_a * |x| + norm_b), atol)``.

    Parameters
    ----------
    norm_a : float
        norm of the system matrix
    norm_b : float
        norm of the right-hand side
    """

    def __init__(self, norm_a: float, norm_b: float,
                 config: Optional[MonitorConfig] = None, reporter: Optional[Reporter] = None):
        self.norm_a = norm_a
        self.norm_b = norm_b
        super().__init__(config, reporter)

    def _tolerance(self, x: Optional[Tensor]) -> float:
        norm_x = vector_norm(x, self.config.norm) if x is not None else 0.0
        return max(self.config.rtol * (self.norm_a * norm_x + self.norm_b), self.config.atol)
