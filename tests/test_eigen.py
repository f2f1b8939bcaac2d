import os
import sys
import pytest
import torch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from torch_krylov import CompRowMatrix, ShapeException, symmetric_eig, spectral_bounds, eigsh
from torch_krylov import random


def laplacian_1d(n):
    _, dense = random.tridiagonal(n, 2.0, -1.0)
    return CompRowMatrix.from_dense(dense), dense


def exact_eigenvalues(n):
    k = torch.arange(1, n + 1, dtype=torch.float64)
    return 2.0 - 2.0 * torch.cos(k * torch.pi / (n + 1))


def test_symmetric_eig():
    A, dense = laplacian_1d(12)
    values, vectors = symmetric_eig(A)
    torch.testing.assert_close(values, exact_eigenvalues(12))
    torch.testing.assert_close(dense @ vectors, vectors * values)


def test_spectral_bounds():
    A, _ = laplacian_1d(12)
    lo, hi = spectral_bounds(A)
    expected = exact_eigenvalues(12)
    assert lo == pytest.approx(float(expected[0]))
    assert hi == pytest.approx(float(expected[-1]))


@pytest.mark.parametrize('which', ['LA', 'SA'])
def test_eigsh(which):
    n, k = 40, 4
    A, dense = laplacian_1d(n)
    pairs = eigsh(A, k=k, which=which)

    expected = exact_eigenvalues(n)
    expected = expected[-k:] if which == 'LA' else expected[:k]
    values = list(pairs)
    assert values == sorted(values)
    torch.testing.assert_close(torch.tensor(values, dtype=torch.float64), expected)
    for value, vector in pairs.items():
        assert vector.dtype == torch.float64
        torch.testing.assert_close(dense @ vector, value * vector, rtol=1e-6, atol=1e-6)


def test_eigsh_invalid_arguments():
    A, _ = laplacian_1d(5)
    with pytest.raises(ValueError):
        eigsh(A, k=5)
    with pytest.raises(ValueError):
        eigsh(A, k=2, which='XX')
    with pytest.raises(ShapeException):
        eigsh(CompRowMatrix(3, 4), k=1)
