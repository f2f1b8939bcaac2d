import os
import sys
import pytest
import torch
from itertools import product

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from torch_krylov import (CompRowMatrix, CompColMatrix, CompDiagMatrix, FlexCompRowMatrix,
                          FlexCompColMatrix, LinkedSparseMatrix, SparseVector, Norm,
                          ShapeException, IndexOutOfRange, StructurallyMissingEntry, matrix_eq)
from torch_krylov import random


FORMATS = [CompRowMatrix, CompColMatrix, CompDiagMatrix, FlexCompRowMatrix, FlexCompColMatrix,
           LinkedSparseMatrix]
SHAPES = [(1, 1), (5, 5), (7, 4), (3, 8)]


def random_dense(shape, seed, density=0.3):
    g = torch.Generator().manual_seed(seed)
    dense = torch.rand(shape, generator=g, dtype=torch.float64) - 0.5
    mask = torch.rand(shape, generator=g) < density
    return dense * mask


@pytest.mark.parametrize(['cls', 'shape', 'seed'], product(FORMATS, SHAPES, range(2)))
def test_get_matches_dense(cls, shape, seed):
    dense = random_dense(shape, seed)
    A = cls.from_dense(dense)

    assert A.shape == shape
    for i, j in product(range(shape[0]), range(shape[1])):
        assert A.get(i, j) == float(dense[i, j])
        assert A[i, j] == float(dense[i, j])
    torch.testing.assert_close(A.to_dense(), dense)


@pytest.mark.parametrize(['cls', 'shape', 'seed'], product(FORMATS, SHAPES, range(2)))
def test_products(cls, shape, seed):
    dense = random_dense(shape, seed)
    A = cls.from_dense(dense)
    g = torch.Generator().manual_seed(100 + seed)
    x = torch.rand(shape[1], generator=g, dtype=torch.float64)
    z = torch.rand(shape[0], generator=g, dtype=torch.float64)

    y = torch.zeros(shape[0], dtype=torch.float64)
    torch.testing.assert_close(A.mult(x, y), dense @ x)
    torch.testing.assert_close(y, dense @ x)

    y = torch.ones(shape[0], dtype=torch.float64)
    A.mult_add(2.0, x, y)
    torch.testing.assert_close(y, 2.0 * (dense @ x) + 1.0)

    w = torch.zeros(shape[1], dtype=torch.float64)
    A.trans_mult(z, w)
    torch.testing.assert_close(w, dense.T @ z)

    w = torch.ones(shape[1], dtype=torch.float64)
    A.trans_mult_add(-1.0, z, w)
    torch.testing.assert_close(w, 1.0 - dense.T @ z)

    torch.testing.assert_close(A @ x, dense @ x)


@pytest.mark.parametrize('cls', FORMATS)
def test_product_with_aliased_operands(cls):
    dense = random_dense((6, 6), 3, density=0.5)
    A = cls.from_dense(dense)
    x = torch.arange(1, 7, dtype=torch.float64)
    expected = dense @ x
    A.mult(x, x)
    torch.testing.assert_close(x, expected)


@pytest.mark.parametrize('cls', FORMATS)
def test_product_shape_mismatch(cls):
    A = cls.from_dense(random_dense((4, 3), 0, density=0.5))
    with pytest.raises(ShapeException):
        A.mult(torch.zeros(4, dtype=torch.float64), torch.zeros(4, dtype=torch.float64))
    with pytest.raises(ShapeException):
        A.mult(torch.zeros(3, dtype=torch.float64), torch.zeros(3, dtype=torch.float64))
    with pytest.raises(ShapeException):
        A.trans_mult(torch.zeros(3, dtype=torch.float64), torch.zeros(3, dtype=torch.float64))


@pytest.mark.parametrize(['cls', 'index'], product(FORMATS, [(-1, 0), (0, -1), (4, 0), (0, 3)]))
def test_index_out_of_range(cls, index):
    A = cls.from_dense(random_dense((4, 3), 0, density=0.5))
    with pytest.raises(IndexOutOfRange):
        A.get(*index)


@pytest.mark.parametrize(['cls', 'kind'], product(FORMATS, [Norm.ONE, Norm.TWO, Norm.INFINITY]))
def test_norm(cls, kind):
    dense = random_dense((6, 5), 7, density=0.5)
    A = cls.from_dense(dense)
    expected = {
        Norm.ONE: torch.linalg.matrix_norm(dense, 1),
        Norm.TWO: torch.linalg.matrix_norm(dense, 'fro'),
        Norm.INFINITY: torch.linalg.matrix_norm(dense, float('inf')),
    }[kind]
    assert A.norm(kind) == pytest.approx(float(expected), rel=1e-12)


@pytest.mark.parametrize(['source', 'target'], product(FORMATS, FORMATS))
def test_from_matrix(source, target):
    dense = random_dense((5, 6), 11, density=0.4)
    A = source.from_dense(dense)
    B = target.from_matrix(A)
    assert matrix_eq(A, B)
    torch.testing.assert_close(B.to_dense(), dense)


@pytest.mark.parametrize('cls', FORMATS)
def test_copy_is_independent(cls):
    dense = torch.eye(4, dtype=torch.float64)
    A = cls.from_dense(dense)
    B = A.copy()
    B.set(1, 1, 5.0)
    assert A.get(1, 1) == 1.0
    assert B.get(1, 1) == 5.0


@pytest.mark.parametrize('cls', [CompDiagMatrix, FlexCompRowMatrix, FlexCompColMatrix,
                                 LinkedSparseMatrix])
def test_assign(cls):
    dense = random_dense((4, 5), 2, density=0.5)
    A = cls.from_dense(torch.ones(4, 5, dtype=torch.float64))
    A.assign(LinkedSparseMatrix.from_dense(dense))
    torch.testing.assert_close(A.to_dense(), dense)
    with pytest.raises(ShapeException):
        A.assign(LinkedSparseMatrix(5, 4))


class TestCompressed:
    """Fixed-pattern behaviour of the compressed row and column formats."""

    @pytest.mark.parametrize('cls', [CompRowMatrix, CompColMatrix])
    def test_outside_pattern(self, cls):
        A = cls(3, 3, [[0, 2], [1], [0]])
        A.set(0, 2, 1.5)
        A.add(0, 2, 1.0)

        assert A.get(0, 2) == 2.5
        # absent entries read as exactly zero
        assert A.get(2, 2) == 0.0
        with pytest.raises(StructurallyMissingEntry):
            A.set(2, 2, 1.0)
        with pytest.raises(StructurallyMissingEntry):
            A.add(2, 2, 1.0)

    @pytest.mark.parametrize('cls', [CompRowMatrix, CompColMatrix])
    def test_assign_outside_pattern_keeps_values(self, cls):
        A = cls(3, 3, [[0, 2], [1], [0]])
        A.set(0, 2, 1.5)
        A.set(1, 1, -2.0)
        other = LinkedSparseMatrix(3, 3)
        other.set(1, 1, 4.0)
        other.set(2, 2, 1.0)

        with pytest.raises(StructurallyMissingEntry):
            A.assign(other)
        assert A.get(0, 2) == 1.5
        assert A.get(1, 1) == -2.0

        other.set(2, 2, 0.0)
        A.assign(other)
        assert A.get(0, 2) == 0.0
        assert A.get(1, 1) == 4.0

    def test_pattern_is_sorted_and_deduplicated(self):
        A = CompRowMatrix(2, 5, [[4, 1, 1, 3], [2]])
        assert A.get_row_pointers().tolist() == [0, 3, 4]
        assert A.get_column_indices().tolist() == [1, 3, 4, 2]
        assert A.nnz == 4

    def test_pattern_index_out_of_range(self):
        with pytest.raises(IndexOutOfRange):
            CompRowMatrix(2, 2, [[0, 2], [1]])

    def test_row_major_iteration(self):
        dense = random_dense((5, 4), 1, density=0.6)
        A = CompRowMatrix.from_dense(dense)
        positions = [(r, c) for r, c, _ in A]
        assert positions == sorted(positions)

    def test_column_major_iteration(self):
        dense = random_dense((5, 4), 1, density=0.6)
        A = CompColMatrix.from_dense(dense)
        positions = [(c, r) for r, c, _ in A]
        assert positions == sorted(positions)
        assert A.get_column_pointers().shape[0] == 5

    @pytest.mark.parametrize(['n', 'seed'], product([4, 20], range(3)))
    def test_populate(self, n, seed):
        g = torch.Generator().manual_seed(seed)
        nz = random.pattern(n, n, 3, generator=g, diagonal=True)
        A = CompRowMatrix(n, n, nz)
        dense = random.populate(A, generator=g)

        assert A.nnz == sum(len(cols) for cols in nz)
        for i in range(n):
            for j in range(n):
                assert A.get(i, j) == float(dense[i, j])
                assert (A.get(i, j) != 0.0) == (j in nz[i])

    def test_duplicates_are_summed(self):
        val = torch.tensor([1.0, 2.0, 3.0], dtype=torch.float64)
        row = torch.tensor([0, 0, 1])
        col = torch.tensor([1, 1, 0])
        A = CompRowMatrix.from_coo(val, row, col, (2, 2))
        assert A.get(0, 1) == 3.0
        assert A.nnz == 2


class TestCompDiag:

    def test_write_allocates_diagonal(self):
        A = CompDiagMatrix(4, 4, [0])
        assert A.offsets == [0]
        A.set(3, 1, 2.0)
        assert A.offsets == [-2, 0]
        assert A.get(3, 1) == 2.0
        assert A.get_diagonal(-2).tolist() == [0.0, 2.0]

    def test_missing_diagonal(self):
        A = CompDiagMatrix(3, 3, [0, 1])
        assert A.get(2, 0) == 0.0
        with pytest.raises(StructurallyMissingEntry):
            A.get_diagonal(-1)

    @pytest.mark.parametrize('shape', [(5, 3), (3, 5)])
    def test_rectangular_diagonal_lengths(self, shape):
        m, n = shape
        A = CompDiagMatrix(m, n, range(-m + 1, n))
        for d, diag in zip(A.offsets, A.diagonals):
            rows = [r for r in range(m) if 0 <= r + d < n]
            assert diag.shape[0] == len(rows)

    def test_offset_out_of_range(self):
        with pytest.raises(IndexOutOfRange):
            CompDiagMatrix(3, 3, [3])


class TestFlex:

    def test_row_is_aliased(self):
        A = FlexCompRowMatrix(3, 5)
        A.set(1, 4, 2.0)
        row = A.get_row(1)
        row.set(0, 1.0)
        assert A.get(1, 0) == 1.0
        assert A.get(1, 4) == 2.0

    def test_compact(self):
        A = FlexCompRowMatrix(2, 4)
        A.set(0, 1, 1.0)
        A.set(0, 2, 3.0)
        A.set(0, 1, 0.0)
        assert A.nnz == 2
        A.compact()
        assert A.nnz == 1
        assert A.get_row(0).get_index().tolist() == [2]

    def test_set_row_shape(self):
        A = FlexCompRowMatrix(2, 4)
        with pytest.raises(ShapeException):
            A.set_row(0, SparseVector(5))


class TestFlexCol:

    def test_column_is_aliased(self):
        A = FlexCompColMatrix(5, 3)
        A.set(4, 1, 2.0)
        column = A.get_column(1)
        column.set(0, 1.0)
        assert A.get(0, 1) == 1.0
        assert A.get(4, 1) == 2.0
        assert A.get_column(0).get_used() == 0

    def test_column_major_iteration(self):
        dense = random_dense((5, 4), 1, density=0.6)
        A = FlexCompColMatrix.from_dense(dense)
        positions = [(c, r) for r, c, _ in A]
        assert positions == sorted(positions)
        assert len(positions) == int((dense != 0).sum())

    def test_compact(self):
        A = FlexCompColMatrix(4, 2)
        A.set(1, 0, 1.0)
        A.set(2, 0, 3.0)
        A.set(1, 0, 0.0)
        assert A.nnz == 2
        A.compact()
        assert A.nnz == 1
        assert A.get_column(0).get_index().tolist() == [2]

    def test_set_column_shape(self):
        A = FlexCompColMatrix(2, 4)
        A.set_column(3, SparseVector.from_dense(torch.tensor([0.0, 2.0], dtype=torch.float64)))
        assert A.get(1, 3) == 2.0
        with pytest.raises(ShapeException):
            A.set_column(0, SparseVector(4))


class TestLinked:

    def test_zero_removes_entry(self):
        A = LinkedSparseMatrix(3, 3)
        A.set(0, 1, 1.0)
        A.set(2, 1, 2.0)
        assert list(A.column(1)) == [(0, 1.0), (2, 2.0)]
        A.set(0, 1, 0.0)
        assert A.nnz == 1
        assert list(A.column(1)) == [(2, 2.0)]
        assert list(A.row(0)) == []

    def test_add_accumulates(self):
        A = LinkedSparseMatrix(2, 2)
        A.add(1, 0, 1.5)
        A.add(1, 0, 1.5)
        assert A.get(1, 0) == 3.0
        A.add(1, 0, -3.0)
        assert A.nnz == 0

    @pytest.mark.parametrize('shape', [(4, 4), (3, 6), (6, 2)])
    def test_transpose(self, shape):
        dense = random_dense(shape, 5, density=0.5)
        A = LinkedSparseMatrix.from_dense(dense)
        A.transpose()
        assert A.shape == (shape[1], shape[0])
        torch.testing.assert_close(A.to_dense(), dense.T)
        for c in range(A.num_columns):
            assert [r for r, _ in A.column(c)] == torch.nonzero(dense.T[:, c]).flatten().tolist()

    def test_ordered_traversal(self):
        A = LinkedSparseMatrix(4, 4)
        for r, c in [(3, 0), (0, 3), (1, 1), (0, 0), (3, 3)]:
            A.set(r, c, float(r + c + 1))
        assert [(r, c) for r, c, _ in A] == [(0, 0), (0, 3), (1, 1), (3, 0), (3, 3)]
        assert [c for c, _ in A.row(3)] == [0, 3]
