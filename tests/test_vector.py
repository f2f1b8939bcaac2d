"""Tests for SparseVector storage and vector norms."""

import os
import sys
import pytest
import torch
from itertools import product

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from torch_krylov import SparseVector, Norm, vector_norm, IndexOutOfRange


class TestSparseVector:
    """Element access and structure."""

    def test_compact_from_dense(self):
        """Compacting [0, 0.5, 0, 0.4, 0] leaves two entries."""
        x = SparseVector.from_dense(torch.tensor([0.0, 0.5, 0.0, 0.4, 0.0], dtype=torch.float64))
        x.compact()

        assert x.get_used() == 2
        assert x.get_index().tolist() == [1, 3]
        assert x.get_data().tolist() == [0.5, 0.4]

    def test_set_survives_growth(self):
        """Values written while the buffers grow are kept."""
        x = SparseVector(16)
        x.set(3, 1.5)
        assert x.get(3) == 1.5

        for k, i in enumerate([9, 0, 12, 5, 15, 7], start=2):
            x.set(i, float(k))
        assert x.get_index().tolist() == [0, 3, 5, 7, 9, 12, 15]
        assert x.get_data().tolist() == [4.0, 1.5, 6.0, 8.0, 3.0, 5.0, 7.0]

    def test_structural_zero_needs_compact(self):
        """Writing zero keeps the slot until compact() is called."""
        x = SparseVector(10)
        x.set(3, 1.0)
        x.set(7, 2.0)
        x.set(3, 0.0)

        assert x.get_used() == 2
        assert not x.is_compact
        assert x.get_index().tolist() == [3, 7]

        x.compact()
        assert x.is_compact
        assert x.get_used() == 1
        assert x.get_index().tolist() == [7]
        assert x.get_data().tolist() == [2.0]

    def test_compact_is_idempotent(self):
        x = SparseVector.from_dense(torch.tensor([1.0, 0.0, 3.0], dtype=torch.float64))
        x.set(0, 0.0)
        x.compact()
        index, data = x.get_index().clone(), x.get_data().clone()
        x.compact()
        assert torch.equal(index, x.get_index())
        assert torch.equal(data, x.get_data())

    def test_insert_keeps_order(self):
        x = SparseVector(100)
        for i in [50, 3, 99, 0, 42, 3]:
            x.add(i, 1.0)
        assert x.get_index().tolist() == [0, 3, 42, 50, 99]
        assert x.get(3) == 2.0
        assert x.get(4) == 0.0

    @pytest.mark.parametrize('d', range(10))
    def test_no_over_allocation(self, d):
        """A completely filled vector never holds more than `size` slots."""
        x = SparseVector(d, 0)
        assert x.get_raw_index().shape[0] == 0
        for i in range(d):
            x.set(i, 1.0 + i)
        assert x.get_raw_index().shape[0] == d
        assert x.get_raw_data().shape[0] == d

    def test_raw_buffers_are_aliased(self):
        """Raw buffers are the physical storage and may exceed get_used()."""
        x = SparseVector(2 ** 31 - 1)
        assert x.get_raw_index().shape[0] == 0
        assert x.get_raw_index() is x.index

        x.set(2, 1.0)
        x.set(1, 0.0)
        x.set(4, 2.0)

        index, data = x.get_raw_index(), x.get_raw_data()
        assert index is x.index
        assert data is x.data
        assert index.shape[0] == data.shape[0]
        assert index.shape[0] > x.get_used()
        assert index.shape[0] > x.get_index().shape[0]

    @pytest.mark.parametrize('i', [-1, 5, 100])
    def test_index_out_of_range(self, i):
        x = SparseVector(5)
        with pytest.raises(IndexOutOfRange):
            x.set(i, 1.0)
        with pytest.raises(IndexOutOfRange):
            x.get(i)
        with pytest.raises(IndexOutOfRange):
            x.add(i, 1.0)

    @pytest.mark.parametrize(['n', 'seed'], product([1, 10, 57], range(3)))
    def test_matches_dense_reference(self, n, seed):
        """After compact(), iteration matches the non-zeros of a dense array."""
        g = torch.Generator().manual_seed(seed)
        dense = torch.rand(n, generator=g, dtype=torch.float64)
        dense[dense < 0.5] = 0.0

        x = SparseVector(n)
        order = torch.randperm(n, generator=g).tolist()
        for i in order:
            x.set(i, float(dense[i]))
        x.compact()

        expected = torch.nonzero(dense).flatten().tolist()
        assert x.get_used() == len(expected)
        assert [i for i, _ in x] == expected
        assert [v for _, v in x] == dense[expected].tolist()
        torch.testing.assert_close(x.to_dense(), dense)

    def test_zero_and_copy(self):
        x = SparseVector.from_dense(torch.tensor([1.0, 2.0, 0.0, 4.0], dtype=torch.float64))
        y = x.copy()
        x.zero()
        assert x.get_used() == 0
        assert y.get_used() == 3
        assert y.get(3) == 4.0

    def test_dot_and_scale(self):
        x = SparseVector.from_dense(torch.tensor([0.0, 2.0, 0.0, 3.0], dtype=torch.float64))
        y = torch.tensor([1.0, 1.0, 5.0, 2.0], dtype=torch.float64)
        assert x.dot(y) == 8.0
        x.scale(0.5)
        assert x.get(3) == 1.5

    def test_from_arrays_shallow(self):
        index = torch.tensor([1, 4], dtype=torch.int64)
        data = torch.tensor([1.0, 2.0], dtype=torch.float64)
        x = SparseVector.from_arrays(6, index, data, deep=False)
        data[0] = 7.0
        assert x.get(1) == 7.0

    def test_from_arrays_rejects_unsorted(self):
        with pytest.raises(ValueError):
            SparseVector.from_arrays(6, torch.tensor([3, 1]), torch.tensor([1.0, 2.0]))


class TestNorms:

    @pytest.mark.parametrize('kind', list(Norm))
    def test_against_torch(self, kind):
        x = torch.tensor([3.0, -4.0, 0.0, 1e-3], dtype=torch.float64)
        expected = {
            Norm.ONE: torch.linalg.vector_norm(x, 1),
            Norm.TWO: torch.linalg.vector_norm(x, 2),
            Norm.TWO_ROBUST: torch.linalg.vector_norm(x, 2),
            Norm.INFINITY: torch.linalg.vector_norm(x, float('inf')),
        }[kind]
        assert vector_norm(x, kind) == pytest.approx(float(expected), rel=1e-12)

    def test_robust_norm_does_not_overflow(self):
        x = torch.tensor([1e200, 1e200], dtype=torch.float64)
        assert vector_norm(x, Norm.TWO_ROBUST) == pytest.approx(2 ** 0.5 * 1e200, rel=1e-12)

    def test_sparse_norm(self):
        x = SparseVector.from_dense(torch.tensor([0.0, 3.0, 0.0, 4.0], dtype=torch.float64))
        assert x.norm(Norm.TWO) == pytest.approx(5.0)
        assert x.norm(Norm.INFINITY) == 4.0
