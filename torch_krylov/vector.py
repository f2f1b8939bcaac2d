"""
Sparse vector storage and vector norms.

A :class:`SparseVector` keeps two parallel physical buffers, ``index`` (int64,
strictly increasing) and ``data`` (float64), of which the first ``used``
entries are live. The logical size may be as large as the largest index
(no storage proportional to the size is ever allocated).

Zero-valued entries written with :meth:`SparseVector.set` stay structurally
present until :meth:`SparseVector.compact` is called. ``get_index`` and
``get_data`` therefore only list the true non-zeros of a compacted vector;
:attr:`SparseVector.is_compact` tells whether that is currently the case.
"""

import enum
import torch
from torch import Tensor
from typing import Iterator, Tuple

from .check import IndexOutOfRange, ShapeException, check_index
from .sort import sorted_unique


INDEX_DTYPE = torch.int64
VALUE_DTYPE = torch.float64


class Norm(enum.Enum):
    ONE = "one"
    TWO = "two"
    TWO_ROBUST = "two_robust"
    INFINITY = "infinity"


def vector_norm(x: Tensor, kind: Norm = Norm.TWO) -> float:
    """
    Norm of a dense vector

    ``Norm.TWO_ROBUST`` rescales by the largest magnitude before squaring so
    that it neither overflows nor underflows for extreme entries.
    """
    if x.numel() == 0:
        return 0.0
    if kind == Norm.ONE:
        return float(x.abs().sum())
    if kind == Norm.TWO:
        return float(torch.linalg.vector_norm(x))
    if kind == Norm.TWO_ROBUST:
        scale = float(x.abs().max())
        if scale == 0.0:
            return 0.0
        return scale * float(((x / scale) ** 2).sum()) ** 0.5
    if kind == Norm.INFINITY:
        return float(x.abs().max())
    raise ValueError(f"Unknown norm: {kind}")


class SparseVector:
    """
    Growable, index-sorted sparse vector of doubles.

    Parameters
    ----------
    size : int
        logical length of the vector
    nz : int, optional
        initial physical capacity, clipped to ``size``
    """

    def __init__(self, size: int, nz: int = 0):
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        nz = max(0, min(nz, size))
        self.size = size
        self.index = torch.zeros(nz, dtype=INDEX_DTYPE)
        self.data = torch.zeros(nz, dtype=VALUE_DTYPE)
        self.used = 0

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dense(cls, x: Tensor) -> "SparseVector":
        """Sparse copy of a dense 1-D tensor, storing its non-zeros only."""
        if x.ndim != 1:
            raise ShapeException("x", tuple(x.shape), "[n]")
        nz = torch.nonzero(x, as_tuple=True)[0]
        v = cls(x.shape[0], nz.shape[0])
        v.index[:] = nz
        v.data[:] = x[nz].to(VALUE_DTYPE)
        v.used = nz.shape[0]
        return v

    @classmethod
    def from_arrays(cls, size: int, index: Tensor, data: Tensor,
                    deep: bool = True) -> "SparseVector":
        """
        Vector over existing index/data buffers

        Parameters
        ----------
        size : int
            logical length
        index : Tensor
            [nnz] strictly increasing indices below ``size``
        data : Tensor
            [nnz] values
        deep : bool, optional
            copy the buffers when True, otherwise share them
        """
        if index.shape != data.shape or index.ndim != 1:
            raise ShapeException("data", tuple(data.shape), f"{tuple(index.shape)}")
        if index.numel() > 0:
            if int(index.min()) < 0 or int(index.max()) >= size:
                bad = int(index.max()) if int(index.max()) >= size else int(index.min())
                raise IndexOutOfRange("vector", bad, size)
            if not sorted_unique(index):
                raise ValueError("index must be strictly increasing")
        v = cls(size)
        index = index.to(INDEX_DTYPE)
        data = data.to(VALUE_DTYPE)
        v.index = index.clone() if deep else index
        v.data = data.clone() if deep else data
        v.used = index.shape[0]
        return v

    def copy(self) -> "SparseVector":
        v = SparseVector(self.size)
        v.index = self.index.clone()
        v.data = self.data.clone()
        v.used = self.used
        return v

    # ------------------------------------------------------------------
    # element access
    # ------------------------------------------------------------------

    def _search(self, i: int) -> int:
        """insertion point of ``i`` among the live entries"""
        if self.used == 0:
            return 0
        live = self.index[:self.used]
        return int(torch.searchsorted(live, torch.tensor([i], dtype=INDEX_DTYPE))[0])

    def _find(self, i: int) -> int:
        """position of ``i`` in the live entries, or -1"""
        live = self.index[:self.used]
        pos = self._search(i)
        if pos < self.used and int(live[pos]) == i:
            return pos
        return -1

    def _slot(self, i: int) -> int:
        """position of ``i``, inserting a zero entry when it is absent"""
        live = self.index[:self.used]
        pos = self._search(i)
        if pos < self.used and int(live[pos]) == i:
            return pos

        if self.used == self.index.shape[0]:
            capacity = self.index.shape[0]
            capacity = min(capacity * 2 if capacity else 1, self.size)
            index = torch.zeros(capacity, dtype=INDEX_DTYPE)
            data = torch.zeros(capacity, dtype=VALUE_DTYPE)
            index[:self.used] = self.index[:self.used]
            data[:self.used] = self.data[:self.used]
            self.index, self.data = index, data

        # shift the tail one slot to the right
        if pos < self.used:
            self.index[pos + 1:self.used + 1] = self.index[pos:self.used].clone()
            self.data[pos + 1:self.used + 1] = self.data[pos:self.used].clone()
        self.index[pos] = i
        self.data[pos] = 0.0
        self.used += 1
        return pos

    def get(self, i: int) -> float:
        check_index("vector", i, self.size)
        pos = self._find(i)
        return float(self.data[pos]) if pos >= 0 else 0.0

    def set(self, i: int, value: float):
        check_index("vector", i, self.size)
        pos = self._slot(i)
        self.data[pos] = value

    def add(self, i: int, value: float):
        check_index("vector", i, self.size)
        pos = self._slot(i)
        self.data[pos] += value

    def __getitem__(self, i: int) -> float:
        return self.get(i)

    def __setitem__(self, i: int, value: float):
        self.set(i, value)

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[Tuple[int, float]]:
        for i, v in zip(self.index[:self.used].tolist(), self.data[:self.used].tolist()):
            yield i, v

    # ------------------------------------------------------------------
    # structure
    # ------------------------------------------------------------------

    def get_used(self) -> int:
        return self.used

    def get_index(self) -> Tensor:
        """Indices of the live entries (structural zeros included unless compacted)."""
        return self.index[:self.used]

    def get_data(self) -> Tensor:
        return self.data[:self.used]

    def get_raw_index(self) -> Tensor:
        """The physical index buffer itself; may be longer than ``get_used()``."""
        return self.index

    def get_raw_data(self) -> Tensor:
        return self.data

    @property
    def is_compact(self) -> bool:
        return bool((self.data[:self.used] != 0).all())

    def compact(self):
        """Drop exact zeros and trim the buffers to the live entries."""
        keep = self.data[:self.used] != 0
        self.index = self.index[:self.used][keep].clone()
        self.data = self.data[:self.used][keep].clone()
        self.used = self.index.shape[0]

    def zero(self):
        self.data.zero_()
        self.used = 0

    def nnz(self) -> int:
        return int((self.data[:self.used] != 0).sum())

    # ------------------------------------------------------------------
    # algebra
    # ------------------------------------------------------------------

    def to_dense(self) -> Tensor:
        x = torch.zeros(self.size, dtype=VALUE_DTYPE)
        x[self.index[:self.used]] = self.data[:self.used]
        return x

    def scale(self, alpha: float) -> "SparseVector":
        self.data[:self.used] *= alpha
        return self

    def assign(self, other: "SparseVector") -> "SparseVector":
        if other.size != self.size:
            raise ShapeException("other", (other.size,), f"[{self.size}]")
        self.index = other.index[:other.used].clone()
        self.data = other.data[:other.used].clone()
        self.used = other.used
        return self

    def dot(self, y: Tensor) -> float:
        """inner product with a dense vector"""
        if y.ndim != 1 or y.shape[0] != self.size:
            raise ShapeException("y", tuple(y.shape), f"[{self.size}]")
        return float(torch.dot(self.data[:self.used], y[self.index[:self.used]].to(VALUE_DTYPE)))

    def norm(self, kind: Norm = Norm.TWO) -> float:
        return vector_norm(self.data[:self.used], kind)

    def __repr__(self):
        return f"SparseVector(size={self.size}, used={self.used}, capacity={self.index.shape[0]})"
