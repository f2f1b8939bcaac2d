"""Tests for Matrix Market matrix and vector I/O."""

import os
import sys
import tempfile
import torch
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from torch_krylov import (CompRowMatrix, LinkedSparseMatrix, SparseVector, ShapeException,
                          save_mtx, load_mtx, load_mtx_info, save_vector, load_vector, matrix_eq)
from torch_krylov.io import LAYOUTS


def create_poisson_2d(n, dtype=torch.float64):
    """Create 2D Poisson matrix."""
    N = n * n
    idx = torch.arange(N)
    i, j = idx // n, idx % n
    entries = [
        (idx, idx, torch.full((N,), 4.0, dtype=dtype)),
        (idx[i > 0], idx[i > 0] - n, torch.full(((i > 0).sum(),), -1.0, dtype=dtype)),
        (idx[i < n-1], idx[i < n-1] + n, torch.full(((i < n-1).sum(),), -1.0, dtype=dtype)),
        (idx[j > 0], idx[j > 0] - 1, torch.full(((j > 0).sum(),), -1.0, dtype=dtype)),
        (idx[j < n-1], idx[j < n-1] + 1, torch.full(((j < n-1).sum(),), -1.0, dtype=dtype)),
    ]
    vals = torch.cat([e[2] for e in entries])
    rows = torch.cat([e[0] for e in entries])
    cols = torch.cat([e[1] for e in entries])
    return vals, rows, cols, (N, N)


class TestMatrixIO:
    """Test save_mtx/load_mtx."""

    @pytest.mark.parametrize('layout', list(LAYOUTS))
    def test_save_load_basic(self, layout):
        """Every storage layout reads back the same entries."""
        A = CompRowMatrix.from_coo(*create_poisson_2d(4))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "matrix.mtx")
            save_mtx(A, path)
            assert os.path.exists(path)

            B = load_mtx(path, layout=layout)
            assert isinstance(B, LAYOUTS[layout])
            assert B.shape == A.shape
            assert matrix_eq(A, B)

    def test_symmetric(self):
        """Symmetric files store one triangle and expand on read."""
        A = CompRowMatrix.from_coo(*create_poisson_2d(3))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "matrix.mtx")
            save_mtx(A, path, symmetry="symmetric", comment="poisson")

            info = load_mtx_info(path)
            assert info.symmetry == "symmetric"
            assert info.format == "coordinate"
            assert (info.rows, info.columns) == (9, 9)
            # diagonal plus the lower triangle
            assert info.entries == (A.nnz + 9) // 2

            B = load_mtx(path)
            assert matrix_eq(A, B)

    def test_rectangular(self):
        dense = torch.tensor([[1.0, 0.0, 2.5],
                              [0.0, -3.0, 0.0]], dtype=torch.float64)
        A = LinkedSparseMatrix.from_dense(dense)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "matrix.mtx")
            save_mtx(A, path)
            info = load_mtx_info(path)
            assert (info.rows, info.columns, info.entries) == (2, 3, 3)
            torch.testing.assert_close(load_mtx(path, layout="csc").to_dense(), dense)

    def test_full_precision(self):
        dense = torch.tensor([[1.0 / 3.0, 0.0], [0.0, 0.1]], dtype=torch.float64)
        A = CompRowMatrix.from_dense(dense)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "matrix.mtx")
            save_mtx(A, path)
            assert torch.equal(load_mtx(path).to_dense(), dense)

    def test_invalid_arguments(self):
        A = CompRowMatrix.from_dense(torch.ones(2, 3, dtype=torch.float64))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "matrix.mtx")
            with pytest.raises(ShapeException):
                save_mtx(A, path, symmetry="symmetric")
            with pytest.raises(ValueError):
                save_mtx(A, path, symmetry="hermitian")
            save_mtx(A, path)
            with pytest.raises(ValueError):
                load_mtx(path, layout="coo")


class TestVectorIO:
    """Test save_vector/load_vector."""

    def test_dense(self):
        x = torch.tensor([1.0, 0.0, -2.0, 0.25], dtype=torch.float64)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "x.mtx")
            save_vector(x, path)
            assert load_mtx_info(path).format == "array"
            torch.testing.assert_close(load_vector(path), x)

    def test_sparse(self):
        x = SparseVector(10)
        x.set(7, 2.0)
        x.set(2, -1.0)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "x.mtx")
            save_vector(x, path)
            info = load_mtx_info(path)
            assert info.format == "coordinate"
            assert (info.rows, info.columns, info.entries) == (10, 1, 2)

            y = load_vector(path, sparse=True)
            assert isinstance(y, SparseVector)
            assert y.size == 10
            assert y.get_index().tolist() == [2, 7]
            assert y.get_data().tolist() == [-1.0, 2.0]

    def test_not_a_column(self):
        A = CompRowMatrix.from_dense(torch.ones(2, 2, dtype=torch.float64))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "matrix.mtx")
            save_mtx(A, path)
            with pytest.raises(ShapeException):
                load_vector(path)
