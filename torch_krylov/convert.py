import torch
import scipy.sparse as sp
from typing import Tuple
from .check import check_coo, check_csr, check_csc, IndexOutOfRange, ShapeException
from .sort import lexsort

#################
# coo, csr, csc
#################

def coalesce(val: torch.Tensor,
             row: torch.Tensor,
             col: torch.Tensor,
             shape: tuple,
             order: str = "row"
             ) -> Tuple[torch.Tensor,
                        torch.Tensor,
                        torch.Tensor,
                        Tuple[int, int]]:
    """
    Sort COO triples and sum duplicated positions

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
    order: str
        {'row', 'col'}, row-major or column-major result

    Returns
    -------
    val, row, col, shape
        triples without duplicates, sorted in the requested order
    """
    check_coo(val, row, col, shape)
    if order not in ("row", "col"):
        raise ValueError(f"order must be 'row' or 'col', got {order}")

    row = row.long()
    col = col.long()
    if val.shape[0] == 0:
        return val, row, col, shape

    arg = lexsort([col, row] if order == "row" else [row, col])
    row = row[arg]
    col = col[arg]
    val = val[arg]

    first = torch.ones(val.shape[0], dtype=torch.bool, device=val.device)
    first[1:] = (row[1:] != row[:-1]) | (col[1:] != col[:-1])
    group = torch.cumsum(first, 0) - 1
    summed = torch.zeros(int(first.sum()), dtype=val.dtype, device=val.device)
    summed.index_add_(0, group, val)

    return summed, row[first], col[first], shape


def coo2csr(val: torch.Tensor,
            row: torch.Tensor,
            col: torch.Tensor,
            shape: tuple
            ) -> Tuple[torch.Tensor,
                       torch.Tensor,
                       torch.Tensor,
                       Tuple[int, int]]:
    """
    Convert COO format to CSR format, summing duplicates

    Returns
    -------
        val: torch.Tensor
            [nnz] values of the sparse matrix
        rowptr: torch.Tensor
            [m+1] rowptr of the sparse matrix
        col: torch.Tensor
            [nnz] column indices, ascending within each row
        shape: tuple
            (m,n) shape of the sparse matrix
    """
    val, row, col, shape = coalesce(val, row, col, shape, order="row")

    m, n = shape
    rowptr = torch.zeros(m + 1, dtype=torch.long, device=val.device)
    rowcount = torch.bincount(row, minlength=m)
    rowptr[1:] = torch.cumsum(rowcount, 0)

    return val, rowptr, col, shape


def csr2coo(val: torch.Tensor,
            rowptr: torch.Tensor,
            col: torch.Tensor,
            shape: tuple
            ) -> Tuple[torch.Tensor,
                       torch.Tensor,
                       torch.Tensor,
                       Tuple[int, int]]:
    """
    Convert CSR format to COO format

    Returns
    -------
        val, row, col, shape
    """
    check_csr(val, rowptr, col, shape)

    m, n = shape
    row = torch.repeat_interleave(
        torch.arange(m, dtype=torch.long, device=val.device),
        rowptr[1:] - rowptr[:-1]
    )
    return val, row, col, shape


def coo2csc(val: torch.Tensor,
            row: torch.Tensor,
            col: torch.Tensor,
            shape: tuple
            ) -> Tuple[torch.Tensor,
                       torch.Tensor,
                       torch.Tensor,
                       Tuple[int, int]]:
    """
    Convert COO format to CSC format, summing duplicates

    Returns
    -------
        val: torch.Tensor
            [nnz] values of the sparse matrix
        row: torch.Tensor
            [nnz] row indices, ascending within each column
        colptr: torch.Tensor
            [n+1] colptr of the sparse matrix
        shape: tuple
            (m,n) shape of the sparse matrix
    """
    val, row, col, shape = coalesce(val, row, col, shape, order="col")

    m, n = shape
    colptr = torch.zeros(n + 1, dtype=torch.long, device=val.device)
    colcount = torch.bincount(col, minlength=n)
    colptr[1:] = torch.cumsum(colcount, 0)

    return val, row, colptr, shape


def csc2coo(val: torch.Tensor,
            row: torch.Tensor,
            colptr: torch.Tensor,
            shape: tuple
            ) -> Tuple[torch.Tensor,
                       torch.Tensor,
                       torch.Tensor,
                       Tuple[int, int]]:
    """
    Convert CSC format to COO format

    Returns
    -------
        val, row, col, shape
    """
    check_csc(val, row, colptr, shape)

    m, n = shape
    col = torch.repeat_interleave(
        torch.arange(n, dtype=torch.long, device=val.device),
        colptr[1:] - colptr[:-1]
    )
    return val, row, col, shape


######################
# index lists
######################

def pattern2coo(pattern, num_outer: int, num_inner: int):
    """
    Flatten per-row (or per-column) index lists into outer/inner index tensors

    Each list is sorted and deduplicated. Used to pre-allocate the fixed
    pattern of compressed matrices.

    Parameters
    ----------
    pattern: Sequence[Sequence[int]]
        ``num_outer`` lists of inner indices
    num_outer: int
        number of rows (CSR) or columns (CSC)
    num_inner: int
        number of columns (CSR) or rows (CSC)

    Returns
    -------
    outer: torch.Tensor
        [nnz]
    inner: torch.Tensor
        [nnz]
    ptr: torch.Tensor
        [num_outer+1]
    """

    if pattern is None:
        pattern = [[] for _ in range(num_outer)]
    if len(pattern) != num_outer:
        raise ValueError(f"expected {num_outer} index lists, got {len(pattern)}")

    inner = []
    counts = []
    for indices in pattern:
        indices = sorted(set(int(i) for i in indices))
        if indices and (indices[0] < 0 or indices[-1] >= num_inner):
            bad = indices[0] if indices[0] < 0 else indices[-1]
            raise IndexOutOfRange("index list", bad, num_inner)
        inner.extend(indices)
        counts.append(len(indices))

    counts = torch.tensor(counts, dtype=torch.long)
    ptr = torch.zeros(num_outer + 1, dtype=torch.long)
    ptr[1:] = torch.cumsum(counts, 0)
    outer = torch.repeat_interleave(torch.arange(num_outer, dtype=torch.long), counts)
    return outer, torch.tensor(inner, dtype=torch.long), ptr


######################
# dense
######################

def dense2coo(dense: torch.Tensor
              ) -> Tuple[torch.Tensor,
                         torch.Tensor,
                         torch.Tensor,
                         Tuple[int, int]]:
    """
    Convert a dense matrix to COO format, keeping the non-zeros only

    Parameters
    ----------
    dense: torch.Tensor
        [m, n] dense matrix

    Returns
    -------
    val, row, col, shape
    """
    if dense.ndim != 2:
        raise ShapeException("dense", tuple(dense.shape), "[m, n]")
    m, n = dense.shape
    row, col = torch.where(dense != 0)
    val = dense[row, col]

    return val, row, col, (m, n)


def coo2dense(val: torch.Tensor,
              row: torch.Tensor,
              col: torch.Tensor,
              shape: Tuple[int, int]
              ) -> torch.Tensor:
    """
    Convert COO format to a dense matrix, summing duplicates

    Returns
    -------
    dense: torch.Tensor
        [m, n] dense matrix
    """
    check_coo(val, row, col, shape)

    m, n = shape
    dense = torch.zeros(m * n, dtype=val.dtype, device=val.device)
    dense.index_add_(0, row.long() * n + col.long(), val)

    return dense.view(m, n)


######################
# scipy
######################

def coo2scipy(val: torch.Tensor,
              row: torch.Tensor,
              col: torch.Tensor,
              shape: Tuple[int, int],
              format: str = "csr"):
    """Convert COO tensors to a SciPy sparse matrix"""
    check_coo(val, row, col, shape)
    val_np = val.detach().cpu().numpy()
    row_np = row.detach().cpu().numpy()
    col_np = col.detach().cpu().numpy()

    coo = sp.coo_matrix((val_np, (row_np, col_np)), shape=shape)
    return coo.asformat(format)


def scipy2coo(matrix) -> Tuple[torch.Tensor,
                               torch.Tensor,
                               torch.Tensor,
                               Tuple[int, int]]:
    """Convert any SciPy sparse matrix (or dense ndarray) to COO tensors"""
    coo = sp.coo_matrix(matrix)
    val = torch.from_numpy(coo.data.astype("float64"))
    row = torch.from_numpy(coo.row.astype("int64"))
    col = torch.from_numpy(coo.col.astype("int64"))
    return val, row, col, (int(coo.shape[0]), int(coo.shape[1]))
