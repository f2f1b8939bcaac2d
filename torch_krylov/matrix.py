"""
Sparse matrix storage formats.

Every format shares the contract of :class:`AbstractSparseMatrix`: entries
that were never stored read as exactly ``0.0``, indices are bounds checked,
and matrix-vector products write into a caller supplied dense tensor.

- ``CompRowMatrix``: compressed rows, fixed pattern
- ``CompColMatrix``: compressed columns, fixed pattern
- ``CompDiagMatrix``: dense diagonals, grows by whole diagonals
- ``FlexCompRowMatrix``: one growable :class:`SparseVector` per row
- ``LinkedSparseMatrix``: per-row and per-column adjacency lists
"""

import bisect
import copy
import torch
from torch import Tensor
from typing import Iterator, List, Optional, Sequence, Tuple

from .check import (IndexOutOfRange, ShapeException, StructurallyMissingEntry,
                    check_coo, check_index, check_vector)
from .convert import coo2csc, coo2csr, coo2dense, coo2scipy, dense2coo, pattern2coo
from .vector import INDEX_DTYPE, VALUE_DTYPE, Norm, SparseVector


Entry = Tuple[int, int, float]


class AbstractSparseMatrix:
    """
    Shared behaviour of the sparse formats.

    Subclasses implement ``get``, ``set``, ``add``, ``__iter__``, ``zero`` and
    ``from_coo``; products go through :meth:`to_coo` and are vectorized.
    """

    def __init__(self, num_rows: int, num_columns: int):
        if num_rows < 0 or num_columns < 0:
            raise ShapeException("shape", (num_rows, num_columns), "(m,n) with m,n >= 0")
        self.num_rows = num_rows
        self.num_columns = num_columns

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.num_rows, self.num_columns)

    @property
    def is_square(self) -> bool:
        return self.num_rows == self.num_columns

    def _check(self, row: int, column: int):
        check_index("row", row, self.num_rows)
        check_index("column", column, self.num_columns)

    def _in_pattern(self, row: int, column: int) -> bool:
        """whether (row, column) can hold a value"""
        return True

    # ------------------------------------------------------------------
    # element access
    # ------------------------------------------------------------------

    def get(self, row: int, column: int) -> float:
        raise NotImplementedError

    def set(self, row: int, column: int, value: float):
        raise NotImplementedError

    def add(self, row: int, column: int, value: float):
        raise NotImplementedError

    def __getitem__(self, key: Tuple[int, int]) -> float:
        return self.get(*key)

    def __setitem__(self, key: Tuple[int, int], value: float):
        self.set(key[0], key[1], value)

    def __iter__(self) -> Iterator[Entry]:
        raise NotImplementedError

    def zero(self):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        raise NotImplementedError

    @classmethod
    def from_dense(cls, dense: Tensor):
        """Build from a dense [m, n] tensor, storing its non-zeros only."""
        return cls.from_coo(*dense2coo(dense.to(VALUE_DTYPE)))

    @classmethod
    def from_matrix(cls, A: "AbstractSparseMatrix"):
        """Copy the stored entries of any other sparse matrix."""
        return cls.from_coo(*A.to_coo())

    def copy(self):
        return copy.deepcopy(self)

    def assign(self, other: "AbstractSparseMatrix"):
        """Overwrite the values with those of ``other`` (same shape)."""
        if other.shape != self.shape:
            raise ShapeException("other", other.shape, f"{self.shape}")
        entries = [(r, c, v) for r, c, v in other if v != 0.0]
        for r, c, _ in entries:
            if not self._in_pattern(r, c):
                raise StructurallyMissingEntry(r, c)
        self.zero()
        for r, c, v in entries:
            self.set(r, c, v)
        return self

    # ------------------------------------------------------------------
    # conversion
    # ------------------------------------------------------------------

    def to_coo(self) -> Tuple[Tensor, Tensor, Tensor, Tuple[int, int]]:
        """
        Stored entries as COO tensors, in iteration order

        Returns
        -------
        val: Tensor
            [nnz] float64 values
        row: Tensor
            [nnz] int64 row indices
        col: Tensor
            [nnz] int64 column indices
        shape: tuple
            (m,n)
        """
        entries = list(self)
        if not entries:
            empty = torch.zeros(0, dtype=INDEX_DTYPE)
            return torch.zeros(0, dtype=VALUE_DTYPE), empty, empty.clone(), self.shape
        row, col, val = zip(*entries)
        return (torch.tensor(val, dtype=VALUE_DTYPE),
                torch.tensor(row, dtype=INDEX_DTYPE),
                torch.tensor(col, dtype=INDEX_DTYPE),
                self.shape)

    def to_dense(self) -> Tensor:
        return coo2dense(*self.to_coo())

    def to_scipy(self, format: str = "csr"):
        return coo2scipy(*self.to_coo(), format=format)

    @property
    def nnz(self) -> int:
        """number of stored entries, structural zeros included"""
        return self.to_coo()[0].shape[0]

    def diagonal(self) -> Tensor:
        val, row, col, _ = self.to_coo()
        d = torch.zeros(min(self.shape), dtype=VALUE_DTYPE)
        mask = row == col
        d.index_add_(0, row[mask], val[mask])
        return d

    def norm(self, kind: Norm = Norm.ONE) -> float:
        """
        Matrix norm: ``ONE`` is the largest column sum, ``INFINITY`` the largest
        row sum, ``TWO`` and ``TWO_ROBUST`` the Frobenius norm.
        """
        val, row, col, _ = self.to_coo()
        if val.numel() == 0:
            return 0.0
        if kind == Norm.ONE:
            sums = torch.zeros(self.num_columns, dtype=VALUE_DTYPE).index_add_(0, col, val.abs())
            return float(sums.max())
        if kind == Norm.INFINITY:
            sums = torch.zeros(self.num_rows, dtype=VALUE_DTYPE).index_add_(0, row, val.abs())
            return float(sums.max())
        scale = float(val.abs().max())
        if scale == 0.0:
            return 0.0
        return scale * float(((val / scale) ** 2).sum()) ** 0.5

    # ------------------------------------------------------------------
    # products
    # ------------------------------------------------------------------

    def _product(self, x: Tensor, transpose: bool = False) -> Tensor:
        val, row, col, _ = self.to_coo()
        if transpose:
            row, col = col, row
        out = torch.zeros(self.num_columns if transpose else self.num_rows, dtype=VALUE_DTYPE)
        out.index_add_(0, row, val * x.to(VALUE_DTYPE)[col])
        return out

    def mult(self, x: Tensor, y: Tensor) -> Tensor:
        """y = A x, written into ``y``"""
        check_vector("x", x, self.num_columns)
        check_vector("y", y, self.num_rows)
        y.copy_(self._product(x))
        return y

    def mult_add(self, alpha: float, x: Tensor, y: Tensor) -> Tensor:
        """y = alpha A x + y"""
        check_vector("x", x, self.num_columns)
        check_vector("y", y, self.num_rows)
        y.add_(self._product(x), alpha=alpha)
        return y

    def trans_mult(self, x: Tensor, y: Tensor) -> Tensor:
        """y = A^T x"""
        check_vector("x", x, self.num_rows)
        check_vector("y", y, self.num_columns)
        y.copy_(self._product(x, transpose=True))
        return y

    def trans_mult_add(self, alpha: float, x: Tensor, y: Tensor) -> Tensor:
        """y = alpha A^T x + y"""
        check_vector("x", x, self.num_rows)
        check_vector("y", y, self.num_columns)
        y.add_(self._product(x, transpose=True), alpha=alpha)
        return y

    def __matmul__(self, x: Tensor) -> Tensor:
        check_vector("x", x, self.num_columns)
        return self._product(x)

    def __repr__(self):
        return f"{type(self).__name__}(shape={self.shape}, nnz={self.nnz})"


# ============================================================================
# Compressed formats with a fixed pattern
# ============================================================================

class CompRowMatrix(AbstractSparseMatrix):
    """
    Compressed row storage.

    The pattern is fixed at construction: ``nz[r]`` lists the columns that
    may hold a value in row ``r``. Writing outside it raises
    :class:`StructurallyMissingEntry`.

    Parameters
    ----------
    num_rows : int
    num_columns : int
    nz : Sequence[Sequence[int]], optional
        per-row column indices, sorted and deduplicated on construction
    """

    def __init__(self, num_rows: int, num_columns: int,
                 nz: Optional[Sequence[Sequence[int]]] = None):
        super().__init__(num_rows, num_columns)
        rows, cols, ptr = pattern2coo(nz, num_rows, num_columns)
        self._init_storage(ptr, cols, rows, torch.zeros(cols.shape[0], dtype=VALUE_DTYPE))

    def _init_storage(self, row_pointers: Tensor, column_indices: Tensor,
                      rows: Tensor, data: Tensor):
        self.row_pointers = row_pointers
        self.column_indices = column_indices
        self.data = data
        self._rows = rows
        self._ptr = row_pointers.tolist()

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        """
        Build from COO triples; the pattern is the set of given positions
        and duplicated positions are summed
        """
        val, rowptr, col, shape = coo2csr(val.to(VALUE_DTYPE), row, col, shape)
        A = cls(*shape)
        rows = torch.repeat_interleave(torch.arange(shape[0], dtype=INDEX_DTYPE),
                                       rowptr[1:] - rowptr[:-1])
        A._init_storage(rowptr, col.clone(), rows, val.clone())
        return A

    def _find(self, row: int, column: int) -> int:
        start, end = self._ptr[row], self._ptr[row + 1]
        if start == end:
            return -1
        cols = self.column_indices[start:end]
        pos = int(torch.searchsorted(cols, torch.tensor([column], dtype=INDEX_DTYPE))[0])
        if pos < end - start and int(cols[pos]) == column:
            return start + pos
        return -1

    def _in_pattern(self, row: int, column: int) -> bool:
        return self._find(row, column) >= 0

    def _index(self, row: int, column: int) -> int:
        self._check(row, column)
        k = self._find(row, column)
        if k < 0:
            raise StructurallyMissingEntry(row, column)
        return k

    def get(self, row: int, column: int) -> float:
        self._check(row, column)
        k = self._find(row, column)
        return float(self.data[k]) if k >= 0 else 0.0

    def set(self, row: int, column: int, value: float):
        self.data[self._index(row, column)] = value

    def add(self, row: int, column: int, value: float):
        self.data[self._index(row, column)] += value

    def __iter__(self) -> Iterator[Entry]:
        cols = self.column_indices.tolist()
        vals = self.data.tolist()
        for r in range(self.num_rows):
            for k in range(self._ptr[r], self._ptr[r + 1]):
                yield r, cols[k], vals[k]

    def to_coo(self):
        return self.data, self._rows, self.column_indices, self.shape

    def zero(self):
        self.data.zero_()

    def get_row_pointers(self) -> Tensor:
        return self.row_pointers

    def get_column_indices(self) -> Tensor:
        return self.column_indices

    def get_data(self) -> Tensor:
        return self.data


class CompColMatrix(AbstractSparseMatrix):
    """
    Compressed column storage, the column-major twin of :class:`CompRowMatrix`.

    Parameters
    ----------
    num_rows : int
    num_columns : int
    nz : Sequence[Sequence[int]], optional
        per-column row indices
    """

    def __init__(self, num_rows: int, num_columns: int,
                 nz: Optional[Sequence[Sequence[int]]] = None):
        super().__init__(num_rows, num_columns)
        cols, rows, ptr = pattern2coo(nz, num_columns, num_rows)
        self._init_storage(ptr, rows, cols, torch.zeros(rows.shape[0], dtype=VALUE_DTYPE))

    def _init_storage(self, column_pointers: Tensor, row_indices: Tensor,
                      cols: Tensor, data: Tensor):
        self.column_pointers = column_pointers
        self.row_indices = row_indices
        self.data = data
        self._cols = cols
        self._ptr = column_pointers.tolist()

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        val, row, colptr, shape = coo2csc(val.to(VALUE_DTYPE), row, col, shape)
        A = cls(*shape)
        cols = torch.repeat_interleave(torch.arange(shape[1], dtype=INDEX_DTYPE),
                                       colptr[1:] - colptr[:-1])
        A._init_storage(colptr, row.clone(), cols, val.clone())
        return A

    def _find(self, row: int, column: int) -> int:
        start, end = self._ptr[column], self._ptr[column + 1]
        if start == end:
            return -1
        rows = self.row_indices[start:end]
        pos = int(torch.searchsorted(rows, torch.tensor([row], dtype=INDEX_DTYPE))[0])
        if pos < end - start and int(rows[pos]) == row:
            return start + pos
        return -1

    def _in_pattern(self, row: int, column: int) -> bool:
        return self._find(row, column) >= 0

    def _index(self, row: int, column: int) -> int:
        self._check(row, column)
        k = self._find(row, column)
        if k < 0:
            raise StructurallyMissingEntry(row, column)
        return k

    def get(self, row: int, column: int) -> float:
        self._check(row, column)
        k = self._find(row, column)
        return float(self.data[k]) if k >= 0 else 0.0

    def set(self, row: int, column: int, value: float):
        self.data[self._index(row, column)] = value

    def add(self, row: int, column: int, value: float):
        self.data[self._index(row, column)] += value

    def __iter__(self) -> Iterator[Entry]:
        rows = self.row_indices.tolist()
        vals = self.data.tolist()
        for c in range(self.num_columns):
            for k in range(self._ptr[c], self._ptr[c + 1]):
                yield rows[k], c, vals[k]

    def to_coo(self):
        return self.data, self.row_indices, self._cols, self.shape

    def zero(self):
        self.data.zero_()

    def get_column_pointers(self) -> Tensor:
        return self.column_pointers

    def get_row_indices(self) -> Tensor:
        return self.row_indices

    def get_data(self) -> Tensor:
        return self.data


# ============================================================================
# Diagonal storage
# ============================================================================

class CompDiagMatrix(AbstractSparseMatrix):
    """
    Compressed diagonal storage.

    Diagonal ``d`` holds the entries with ``column - row == d`` in a dense
    tensor indexed by ``min(row, column)``. Writing to an absent diagonal
    allocates it.
    """

    def __init__(self, num_rows: int, num_columns: int, diagonals: Sequence[int] = ()):
        super().__init__(num_rows, num_columns)
        self.offsets: List[int] = []
        self.diagonals: List[Tensor] = []
        for d in sorted(set(int(d) for d in diagonals)):
            self._allocate(d)

    def _length(self, d: int) -> int:
        if d < 0:
            return min(self.num_rows + d, self.num_columns)
        return min(self.num_rows, self.num_columns - d)

    def _allocate(self, d: int) -> int:
        if not -self.num_rows < d < self.num_columns:
            raise IndexOutOfRange("diagonal", d, self.num_columns)
        k = bisect.bisect_left(self.offsets, d)
        self.offsets.insert(k, d)
        self.diagonals.insert(k, torch.zeros(self._length(d), dtype=VALUE_DTYPE))
        return k

    def _find(self, d: int) -> int:
        k = bisect.bisect_left(self.offsets, d)
        if k < len(self.offsets) and self.offsets[k] == d:
            return k
        return -1

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        check_coo(val, row, col, shape)
        offsets = torch.unique(col.long() - row.long()).tolist()
        A = cls(shape[0], shape[1], offsets)
        for r, c, v in zip(row.tolist(), col.tolist(), val.tolist()):
            A.add(r, c, v)
        return A

    def get(self, row: int, column: int) -> float:
        self._check(row, column)
        k = self._find(column - row)
        return float(self.diagonals[k][min(row, column)]) if k >= 0 else 0.0

    def set(self, row: int, column: int, value: float):
        self._check(row, column)
        k = self._find(column - row)
        if k < 0:
            k = self._allocate(column - row)
        self.diagonals[k][min(row, column)] = value

    def add(self, row: int, column: int, value: float):
        self._check(row, column)
        k = self._find(column - row)
        if k < 0:
            k = self._allocate(column - row)
        self.diagonals[k][min(row, column)] += value

    def __iter__(self) -> Iterator[Entry]:
        for d, diag in zip(self.offsets, self.diagonals):
            r0, c0 = max(0, -d), max(0, d)
            for i, v in enumerate(diag.tolist()):
                yield r0 + i, c0 + i, v

    def to_coo(self):
        if not self.offsets:
            return super().to_coo()
        rows, cols = [], []
        for d, diag in zip(self.offsets, self.diagonals):
            i = torch.arange(diag.shape[0], dtype=INDEX_DTYPE)
            rows.append(i + max(0, -d))
            cols.append(i + max(0, d))
        return torch.cat(self.diagonals), torch.cat(rows), torch.cat(cols), self.shape

    def zero(self):
        for diag in self.diagonals:
            diag.zero_()

    def get_diagonal(self, offset: int) -> Tensor:
        k = self._find(offset)
        if k < 0:
            raise StructurallyMissingEntry(max(0, -offset), max(0, offset))
        return self.diagonals[k]


# ============================================================================
# Mutable structure
# ============================================================================

class FlexCompRowMatrix(AbstractSparseMatrix):
    """Row-wise storage where each row is an independent :class:`SparseVector`."""

    def __init__(self, num_rows: int, num_columns: int):
        super().__init__(num_rows, num_columns)
        self.rows = [SparseVector(num_columns) for _ in range(num_rows)]

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        val, rowptr, col, shape = coo2csr(val.to(VALUE_DTYPE), row, col, shape)
        A = cls(*shape)
        ptr = rowptr.tolist()
        for r in range(shape[0]):
            A.rows[r] = SparseVector.from_arrays(shape[1], col[ptr[r]:ptr[r + 1]],
                                                 val[ptr[r]:ptr[r + 1]])
        return A

    def get(self, row: int, column: int) -> float:
        self._check(row, column)
        return self.rows[row].get(column)

    def set(self, row: int, column: int, value: float):
        self._check(row, column)
        self.rows[row].set(column, value)

    def add(self, row: int, column: int, value: float):
        self._check(row, column)
        self.rows[row].add(column, value)

    def get_row(self, row: int) -> SparseVector:
        """The row itself (not a copy)."""
        check_index("row", row, self.num_rows)
        return self.rows[row]

    def set_row(self, row: int, x: SparseVector):
        check_index("row", row, self.num_rows)
        if x.size != self.num_columns:
            raise ShapeException("row", (x.size,), f"[{self.num_columns}]")
        self.rows[row] = x

    def compact(self):
        for x in self.rows:
            x.compact()

    def __iter__(self) -> Iterator[Entry]:
        for r, x in enumerate(self.rows):
            for c, v in x:
                yield r, c, v

    def to_coo(self):
        counts = torch.tensor([x.get_used() for x in self.rows], dtype=INDEX_DTYPE)
        if int(counts.sum()) == 0:
            return super().to_coo()
        rows = torch.repeat_interleave(torch.arange(self.num_rows, dtype=INDEX_DTYPE), counts)
        cols = torch.cat([x.get_index() for x in self.rows])
        vals = torch.cat([x.get_data() for x in self.rows])
        return vals, rows, cols, self.shape

    def zero(self):
        for x in self.rows:
            x.zero()


class FlexCompColMatrix(AbstractSparseMatrix):
    """Column-wise twin of :class:`FlexCompRowMatrix`, one :class:`SparseVector` per column."""

    def __init__(self, num_rows: int, num_columns: int):
        super().__init__(num_rows, num_columns)
        self.columns = [SparseVector(num_rows) for _ in range(num_columns)]

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        val, row, colptr, shape = coo2csc(val.to(VALUE_DTYPE), row, col, shape)
        A = cls(*shape)
        ptr = colptr.tolist()
        for c in range(shape[1]):
            A.columns[c] = SparseVector.from_arrays(shape[0], row[ptr[c]:ptr[c + 1]],
                                                    val[ptr[c]:ptr[c + 1]])
        return A

    def get(self, row: int, column: int) -> float:
        self._check(row, column)
        return self.columns[column].get(row)

    def set(self, row: int, column: int, value: float):
        self._check(row, column)
        self.columns[column].set(row, value)

    def add(self, row: int, column: int, value: float):
        self._check(row, column)
        self.columns[column].add(row, value)

    def get_column(self, column: int) -> SparseVector:
        """The column itself (not a copy)."""
        check_index("column", column, self.num_columns)
        return self.columns[column]

    def set_column(self, column: int, x: SparseVector):
        check_index("column", column, self.num_columns)
        if x.size != self.num_rows:
            raise ShapeException("column", (x.size,), f"[{self.num_rows}]")
        self.columns[column] = x

    def compact(self):
        for x in self.columns:
            x.compact()

    def __iter__(self) -> Iterator[Entry]:
        for c, x in enumerate(self.columns):
            for r, v in x:
                yield r, c, v

    def to_coo(self):
        counts = torch.tensor([x.get_used() for x in self.columns], dtype=INDEX_DTYPE)
        if int(counts.sum()) == 0:
            return super().to_coo()
        cols = torch.repeat_interleave(torch.arange(self.num_columns, dtype=INDEX_DTYPE), counts)
        rows = torch.cat([x.get_index() for x in self.columns])
        vals = torch.cat([x.get_data() for x in self.columns])
        return vals, rows, cols, self.shape

    def zero(self):
        for x in self.columns:
            x.zero()


class LinkedSparseMatrix(AbstractSparseMatrix):
    """
    Fully mutable matrix kept as index-based adjacency lists.

    Each row holds a sorted column list with a parallel value list, and each
    column holds a sorted list of the rows that have an entry there, so both
    row and column traversal are ordered. Setting an entry to ``0.0``
    removes it.
    """

    def __init__(self, num_rows: int, num_columns: int):
        super().__init__(num_rows, num_columns)
        self._row_cols: List[List[int]] = [[] for _ in range(num_rows)]
        self._row_vals: List[List[float]] = [[] for _ in range(num_rows)]
        self._col_rows: List[List[int]] = [[] for _ in range(num_columns)]

    @classmethod
    def from_coo(cls, val: Tensor, row: Tensor, col: Tensor, shape: Tuple[int, int]):
        check_coo(val, row, col, shape)
        A = cls(*shape)
        for r, c, v in zip(row.tolist(), col.tolist(), val.tolist()):
            A.add(r, c, v)
        return A

    def get(self, row: int, column: int) -> float:
        self._check(row, column)
        cols = self._row_cols[row]
        k = bisect.bisect_left(cols, column)
        if k < len(cols) and cols[k] == column:
            return self._row_vals[row][k]
        return 0.0

    def set(self, row: int, column: int, value: float):
        self._check(row, column)
        cols = self._row_cols[row]
        vals = self._row_vals[row]
        k = bisect.bisect_left(cols, column)
        present = k < len(cols) and cols[k] == column
        value = float(value)
        if value == 0.0:
            if present:
                del cols[k]
                del vals[k]
                rows = self._col_rows[column]
                del rows[bisect.bisect_left(rows, row)]
        elif present:
            vals[k] = value
        else:
            cols.insert(k, column)
            vals.insert(k, value)
            bisect.insort(self._col_rows[column], row)

    def add(self, row: int, column: int, value: float):
        self.set(row, column, self.get(row, column) + value)

    def row(self, row: int) -> Iterator[Tuple[int, float]]:
        """(column, value) pairs of a row, by ascending column"""
        check_index("row", row, self.num_rows)
        return iter(list(zip(self._row_cols[row], self._row_vals[row])))

    def column(self, column: int) -> Iterator[Tuple[int, float]]:
        """(row, value) pairs of a column, by ascending row"""
        check_index("column", column, self.num_columns)
        pairs = []
        for r in self._col_rows[column]:
            cols = self._row_cols[r]
            pairs.append((r, self._row_vals[r][bisect.bisect_left(cols, column)]))
        return iter(pairs)

    def __iter__(self) -> Iterator[Entry]:
        for r in range(self.num_rows):
            for c, v in zip(self._row_cols[r], self._row_vals[r]):
                yield r, c, v

    def transpose(self) -> "LinkedSparseMatrix":
        """Transpose in place."""
        row_cols = [list(rows) for rows in self._col_rows]
        row_vals = [[v for _, v in self.column(c)] for c in range(self.num_columns)]
        self._col_rows = self._row_cols
        self._row_cols = row_cols
        self._row_vals = row_vals
        self.num_rows, self.num_columns = self.num_columns, self.num_rows
        return self

    def zero(self):
        for lst in self._row_cols + self._row_vals + self._col_rows:
            lst.clear()
