import torch


class KrylovError(Exception):
    """Base class of every error raised by torch_krylov."""


class ShapeException(KrylovError, ValueError):
    def __init__(self, name, shape, expected_shape):
        self.name = name
        self.shape = shape
        self.expected_shape = expected_shape
        super().__init__(f"{name} has shape {shape} expected {expected_shape}")


class IndexOutOfRange(KrylovError, IndexError):
    def __init__(self, name, index, bound):
        self.name = name
        self.index = index
        self.bound = bound
        super().__init__(f"{name} index {index} out of range [0, {bound})")


class StructurallyMissingEntry(KrylovError, KeyError):
    """Write to a position outside the fixed non-zero pattern of a matrix."""

    def __init__(self, row, column):
        self.row = row
        self.column = column
        super().__init__(row, column)

    def __str__(self):
        return f"entry ({self.row}, {self.column}) is not in the sparsity pattern"


class Singular(KrylovError, ArithmeticError):
    """A factorization hit a zero pivot or a structurally missing diagonal."""

    def __init__(self, row, reason="zero pivot"):
        self.row = row
        self.reason = reason
        super().__init__(f"{reason} in row {row}")


def check_index(name: str, index: int, bound: int):
    if not 0 <= index < bound:
        raise IndexOutOfRange(name, index, bound)


def check_vector(name: str, x: torch.Tensor, size: int):
    """
    Check that ``x`` is a 1-D tensor of length ``size``

    Parameters
    ----------
    name: str
        name of the operand, used in the error message
    x: torch.Tensor
        [size] operand
    size: int
        expected length
    """
    if not (x.ndim == 1 and x.shape[0] == size):
        raise ShapeException(name, tuple(x.shape), f"[{size}]")


def check_square(A):
    if A.num_rows != A.num_columns:
        raise ShapeException("A", A.shape, "(n,n)")


def check_coo(val: torch.Tensor,
              row: torch.Tensor,
              col: torch.Tensor,
              shape: tuple
              ):
    """
    Check the COO format

    Parameters
    ----------
    val: torch.Tensor
        [nnz] values of the sparse matrix
    row: torch.Tensor
        [nnz] row indices of the sparse matrix
    col: torch.Tensor
        [nnz] column indices of the sparse matrix
    shape: tuple
        (m,n) shape of the sparse matrix
    """
    if not row.ndim == 1:
        raise ShapeException("row", tuple(row.shape), "[nnz]")
    if not col.ndim == 1:
        raise ShapeException("col", tuple(col.shape), "[nnz]")
    if not val.shape[0] == row.shape[0]:
        raise ShapeException("val", tuple(val.shape), "[nnz]")
    if not val.shape[0] == col.shape[0]:
        raise ShapeException("val", tuple(val.shape), "[nnz]")
    if not (shape[0] >= 0 and shape[1] >= 0):
        raise ShapeException("shape", shape, "(m,n)")
    if row.numel() > 0:
        if int(row.min()) < 0 or int(row.max()) >= shape[0]:
            bad = int(row.max()) if int(row.max()) >= shape[0] else int(row.min())
            raise IndexOutOfRange("row", bad, shape[0])
        if int(col.min()) < 0 or int(col.max()) >= shape[1]:
            bad = int(col.max()) if int(col.max()) >= shape[1] else int(col.min())
            raise IndexOutOfRange("column", bad, shape[1])


def check_csr(val: torch.Tensor,
              rowptr: torch.Tensor,
              col: torch.Tensor,
              shape: tuple):
    """
    Check the CSR format

    Parameters
    ----------
    val: torch.Tensor
        [nnz] values of the sparse matrix
    rowptr: torch.Tensor
        [m+1] rowptr of the sparse matrix
    col: torch.Tensor
        [nnz] column indices of the sparse matrix
    shape: tuple
        (m,n) shape of the sparse matrix
    """
    m, n = shape
    if not (rowptr.ndim == 1 and rowptr.shape[0] == m + 1):
        raise ShapeException("rowptr", tuple(rowptr.shape), f"[{m+1}]")
    if not col.ndim == 1:
        raise ShapeException("col", tuple(col.shape), "[nnz]")
    if not val.shape[0] == int(rowptr[-1]):
        raise ShapeException("val", tuple(val.shape), "[nnz]")
    if not val.shape[0] == col.shape[0]:
        raise ShapeException("val", tuple(val.shape), "[nnz]")


def check_csc(val: torch.Tensor,
              row: torch.Tensor,
              colptr: torch.Tensor,
              shape: tuple):
    """
    Check the CSC format

    Parameters
    ----------
    val: torch.Tensor
        [nnz] values of the sparse matrix
    row: torch.Tensor
        [nnz] row indices of the sparse matrix
    colptr: torch.Tensor
        [n+1] colptr of the sparse matrix
    shape: tuple
        (m,n) shape of the sparse matrix
    """
    m, n = shape
    if not row.ndim == 1:
        raise ShapeException("row", tuple(row.shape), "[nnz]")
    if not (colptr.ndim == 1 and colptr.shape[0] == n + 1):
        raise ShapeException("colptr", tuple(colptr.shape), f"[{n+1}]")
    if not val.shape[0] == int(colptr[-1]):
        raise ShapeException("val", tuple(val.shape), "[nnz]")
    if not val.shape[0] == row.shape[0]:
        raise ShapeException("val", tuple(val.shape), "[nnz]")
