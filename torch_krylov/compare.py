import torch
from .convert import coalesce


def coo_eq(
    val1: torch.Tensor,
    row1: torch.Tensor,
    col1: torch.Tensor,
    shape1: tuple,
    val2: torch.Tensor,
    row2: torch.Tensor,
    col2: torch.Tensor,
    shape2: tuple,
    drop_zeros: bool = True
    ) -> bool:
    """
    Parameters
    ----------
    val1, row1, col1, shape1
        first COO matrix
    val2, row2, col2, shape2
        second COO matrix
    drop_zeros: bool
        ignore explicitly stored zeros

    Returns
    -------
    bool
        whether both matrices have the same entries at the same positions,
        compared exactly, after summing duplicates
    """
    if tuple(shape1) != tuple(shape2):
        return False

    val1, row1, col1, _ = coalesce(val1, row1, col1, shape1)
    val2, row2, col2, _ = coalesce(val2, row2, col2, shape2)

    if drop_zeros:
        keep1, keep2 = val1 != 0, val2 != 0
        val1, row1, col1 = val1[keep1], row1[keep1], col1[keep1]
        val2, row2, col2 = val2[keep2], row2[keep2], col2[keep2]

    if val1.shape[0] != val2.shape[0]:  # not same number of nnz
        return False

    return bool((val1 == val2).all() and (row1 == row2).all() and (col1 == col2).all())


def matrix_eq(A, B, drop_zeros: bool = True) -> bool:
    """exact entry-wise equality of two sparse matrices of any storage format"""
    return coo_eq(*A.to_coo(), *B.to_coo(), drop_zeros=drop_zeros)
