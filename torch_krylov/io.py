"""
Matrix Market interchange for sparse matrices and vectors.

Reading and writing go through ``scipy.io``; this module only maps between
the Matrix Market records and the storage classes. Coordinate files hold
one-based ``row column value`` triples, array files a dense column-major
payload. Symmetric files store one triangle and are expanded on read.
"""

import numpy as np
import scipy.io
import scipy.sparse as sp
import torch
from typing import NamedTuple, Union

from .check import ShapeException
from .convert import scipy2coo
from .matrix import (AbstractSparseMatrix, CompColMatrix, CompDiagMatrix, CompRowMatrix,
                     FlexCompColMatrix, FlexCompRowMatrix, LinkedSparseMatrix)
from .vector import VALUE_DTYPE, SparseVector


LAYOUTS = {
    'csr': CompRowMatrix,
    'csc': CompColMatrix,
    'diag': CompDiagMatrix,
    'flex': FlexCompRowMatrix,
    'flexcol': FlexCompColMatrix,
    'linked': LinkedSparseMatrix,
}


class MatrixInfo(NamedTuple):
    rows: int
    columns: int
    entries: int
    format: str
    field: str
    symmetry: str


def load_mtx_info(path) -> MatrixInfo:
    """Header and size record of a Matrix Market file, without the payload."""
    rows, columns, entries, format, field, symmetry = scipy.io.mminfo(path)
    return MatrixInfo(int(rows), int(columns), int(entries), format, field, symmetry)


def load_mtx(path, layout: str = "csr") -> AbstractSparseMatrix:
    """
    Read a matrix

    Parameters
    ----------
    path : str or PathLike
        Matrix Market file
    layout : str, optional
        {'csr', 'csc', 'diag', 'flex', 'flexcol', 'linked'}, storage class of the result

    Returns
    -------
    AbstractSparseMatrix
    """
    if layout not in LAYOUTS:
        raise ValueError(f"Unknown layout: {layout}. Available: {', '.join(LAYOUTS)}")
    return LAYOUTS[layout].from_coo(*scipy2coo(scipy.io.mmread(path)))


def save_mtx(A: AbstractSparseMatrix, path, symmetry: str = "general",
             comment: str = "", precision: int = None):
    """
    Write a matrix in coordinate format

    Parameters
    ----------
    A : AbstractSparseMatrix
    path : str or PathLike
    symmetry : str, optional
        {'general', 'symmetric'}; symmetric output stores the lower triangle
        and requires a symmetric matrix
    comment : str, optional
    precision : int, optional
        significant digits, full precision by default
    """
    if symmetry not in ("general", "symmetric"):
        raise ValueError(f"symmetry must be 'general' or 'symmetric', got {symmetry}")
    if symmetry == "symmetric" and not A.is_square:
        raise ShapeException("A", A.shape, "(n,n)")
    coo = A.to_scipy("coo")
    if symmetry == "symmetric":
        coo = sp.tril(coo, format="coo")
    scipy.io.mmwrite(path, coo, comment=comment, field="real",
                     precision=precision, symmetry=symmetry)


def save_vector(x: Union[torch.Tensor, SparseVector], path, comment: str = "",
                precision: int = None):
    """Write a dense tensor as an array file, a SparseVector as a coordinate file."""
    if isinstance(x, SparseVector):
        index = x.get_index().cpu().numpy()
        data = x.get_data().cpu().numpy()
        column = sp.coo_matrix((data, (index, np.zeros_like(index))), shape=(x.size, 1))
        scipy.io.mmwrite(path, column, comment=comment, field="real", precision=precision)
    else:
        if x.ndim != 1:
            raise ShapeException("x", tuple(x.shape), "[n]")
        scipy.io.mmwrite(path, x.detach().cpu().numpy().astype(np.float64).reshape(-1, 1),
                         comment=comment, field="real", precision=precision)


def load_vector(path, sparse: bool = False) -> Union[torch.Tensor, SparseVector]:
    """
    Read a single-column matrix as a vector

    Parameters
    ----------
    path : str or PathLike
    sparse : bool, optional
        return a compacted :class:`SparseVector` instead of a dense tensor
    """
    val, row, col, shape = scipy2coo(scipy.io.mmread(path))
    if shape[1] != 1:
        raise ShapeException("vector", shape, "(n, 1)")
    x = torch.zeros(shape[0], dtype=VALUE_DTYPE).index_add_(0, row, val)
    if sparse:
        return SparseVector.from_dense(x)
    return x
