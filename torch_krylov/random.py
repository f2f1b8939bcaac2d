import torch
from typing import List, Optional, Sequence, Tuple

from .convert import coalesce
from .vector import VALUE_DTYPE


def coo(shape,
        density: float = 0.1,
        generator: Optional[torch.Generator] = None,
        dtype=VALUE_DTYPE
        ) -> Tuple[torch.Tensor,
                   torch.Tensor,
                   torch.Tensor,
                   Tuple[int, int]]:
    """
    random COO matrix generator, duplicated positions are summed

    Parameters
    ----------
    shape : tuple
        (m,n) shape of the matrix
    density : float, optional
        Density of the matrix, by default 0.1
    generator : torch.Generator, optional
        source of randomness, the global one if omitted
    dtype : torch.dtype, optional
        Data type of the values, by default torch.float64

    Returns
    -------
    Tuple[torch.Tensor, torch.Tensor, torch.Tensor, Tuple[int, int]]
        val, row, col, shape
    """
    assert 0 <= density <= 1, "density must be in [0, 1]"

    m, n = shape[:2]
    nnz = int(m * n * density)
    row = torch.randint(0, m, (nnz,), generator=generator)
    col = torch.randint(0, n, (nnz,), generator=generator)
    val = torch.randn(nnz, generator=generator, dtype=dtype)
    return coalesce(val, row, col, (m, n))


def spd(n: int,
        density: float = 0.1,
        shift: Optional[float] = None,
        generator: Optional[torch.Generator] = None
        ) -> Tuple[torch.Tensor,
                   torch.Tensor,
                   torch.Tensor,
                   Tuple[int, int]]:
    """
    random symmetric positive definite COO matrix

    A random symmetric matrix plus ``shift`` on the diagonal. The default
    shift makes the matrix strictly diagonally dominant.
    """
    val, row, col, _ = coo((n, n), density, generator)
    val, row, col, _ = coalesce(torch.cat([val, val]), torch.cat([row, col]),
                                torch.cat([col, row]), (n, n))
    if shift is None:
        row_sums = torch.zeros(n, dtype=VALUE_DTYPE).index_add_(0, row, val.abs())
        shift = float(row_sums.max()) + 1.0 if n > 0 else 1.0
    diag = torch.arange(n)
    return coalesce(torch.cat([val, torch.full((n,), float(shift), dtype=VALUE_DTYPE)]),
                    torch.cat([row, diag]), torch.cat([col, diag]), (n, n))


def vector(n: int, generator: Optional[torch.Generator] = None) -> torch.Tensor:
    """uniform [0, 1) dense vector"""
    return torch.rand(n, generator=generator, dtype=VALUE_DTYPE)


def pattern(num_outer: int,
            num_inner: int,
            per_row: int,
            generator: Optional[torch.Generator] = None,
            diagonal: bool = False) -> List[List[int]]:
    """
    random per-row (or per-column) index lists

    Parameters
    ----------
    num_outer : int
        number of lists
    num_inner : int
        indices are drawn from ``range(num_inner)``
    per_row : int
        distinct indices per list, clipped to ``num_inner``
    diagonal : bool, optional
        always include index ``i`` in list ``i``
    """
    per_row = min(per_row, num_inner)
    lists = []
    for i in range(num_outer):
        indices = set(torch.randperm(num_inner, generator=generator)[:per_row].tolist())
        if diagonal and i < num_inner:
            indices.add(i)
        lists.append(sorted(indices))
    return lists


def populate(A, generator: Optional[torch.Generator] = None):
    """
    overwrite every stored entry of ``A`` with a random non-zero value

    Returns the dense reference of the populated matrix.
    """
    entries = list(A)
    values = torch.rand(len(entries), generator=generator, dtype=VALUE_DTYPE) + 0.5
    for (r, c, _), v in zip(entries, values.tolist()):
        A.set(r, c, v)
    return A.to_dense()


def tridiagonal(n: int, diagonal: float, off_diagonal: float) -> Tuple[Sequence[Sequence[int]],
                                                                       torch.Tensor]:
    """
    pattern and dense form of a constant tridiagonal matrix

    Returns
    -------
    nz : list of per-row column lists
    dense : torch.Tensor
        [n, n]
    """
    nz = [[j for j in (i - 1, i, i + 1) if 0 <= j < n] for i in range(n)]
    dense = torch.diag(torch.full((n,), diagonal, dtype=VALUE_DTYPE))
    if n > 1:
        off = torch.full((n - 1,), off_diagonal, dtype=VALUE_DTYPE)
        dense += torch.diag(off, 1) + torch.diag(off, -1)
    return nz, dense
