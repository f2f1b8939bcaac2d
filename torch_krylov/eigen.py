"""
Eigenvalue helpers used to calibrate the Chebyshev methods and as test oracles.

- ``symmetric_eig`` / ``spectral_bounds``: dense symmetric decomposition
  (``torch.linalg.eigh``), for small matrices
- ``eigsh``: a few eigenpairs of a large sparse symmetric matrix through
  SciPy's ARPACK wrapper
"""

import torch
import numpy as np
import scipy.sparse.linalg as spla
from torch import Tensor
from typing import Dict, Tuple

from .check import check_square
from .matrix import AbstractSparseMatrix
from .vector import VALUE_DTYPE


def symmetric_eig(A: AbstractSparseMatrix) -> Tuple[Tensor, Tensor]:
    """
    Eigen-decomposition of a symmetric matrix through its dense form

    Returns
    -------
    eigenvalues : Tensor
        [n] ascending
    eigenvectors : Tensor
        [n, n] one eigenvector per column
    """
    check_square(A)
    return torch.linalg.eigh(A.to_dense())


def spectral_bounds(A: AbstractSparseMatrix) -> Tuple[float, float]:
    """Smallest and largest eigenvalue of a symmetric matrix."""
    check_square(A)
    eigenvalues = torch.linalg.eigvalsh(A.to_dense())
    return float(eigenvalues[0]), float(eigenvalues[-1])


def eigsh(A: AbstractSparseMatrix, k: int = 6, which: str = "LA",
          tol: float = 0.0, maxiter: int = None) -> Dict[float, Tensor]:
    """
    Selected eigenpairs of a sparse symmetric matrix (ARPACK)

    Parameters
    ----------
    A : AbstractSparseMatrix
        symmetric [n, n] matrix
    k : int, optional
        number of eigenpairs, ``0 < k < n``
    which : str, optional
        {'LA', 'SA', 'LM', 'SM', 'BE'}, largest/smallest algebraic,
        largest/smallest magnitude, or both ends of the spectrum
    tol : float, optional
        relative accuracy, 0 means machine precision
    maxiter : int, optional
        Arnoldi update limit

    Returns
    -------
    Dict[float, Tensor]
        eigenvalue to eigenvector, ordered by ascending eigenvalue
    """
    check_square(A)
    if which not in ("LA", "SA", "LM", "SM", "BE"):
        raise ValueError(f"which must be one of LA, SA, LM, SM, BE, got {which}")
    if not 0 < k < A.num_rows:
        raise ValueError(f"k must satisfy 0 < k < {A.num_rows}, got {k}")

    values, vectors = spla.eigsh(A.to_scipy("csr"), k=k, which=which, tol=tol, maxiter=maxiter)
    order = np.argsort(values)
    return {float(values[i]): torch.from_numpy(np.ascontiguousarray(vectors[:, i])).to(VALUE_DTYPE)
            for i in order}
