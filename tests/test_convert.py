import os
import sys
import pytest
import torch
from itertools import product

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from torch_krylov import IndexOutOfRange, ShapeException, coo_eq
from torch_krylov.convert import (coalesce, coo2csr, csr2coo, coo2csc, csc2coo, coo2dense,
                                  dense2coo, coo2scipy, scipy2coo, pattern2coo)
from torch_krylov import random


@pytest.mark.parametrize(['shape', 'density', 'seed'],
                         product([(1, 1), (10, 10), (7, 13), (20, 3)], [0.1, 0.5, 2.0], range(3)))
def test_coalesce_against_dense(shape, density, seed):
    g = torch.Generator().manual_seed(seed)
    m, n = shape
    nnz = int(m * n * density)
    row = torch.randint(0, m, (nnz,), generator=g)
    col = torch.randint(0, n, (nnz,), generator=g)
    val = torch.randn(nnz, generator=g, dtype=torch.float64)

    for order in ["row", "col"]:
        cval, crow, ccol, _ = coalesce(val, row, col, shape, order=order)
        keys = crow * n + ccol if order == "row" else ccol * m + crow
        assert bool((keys[1:] > keys[:-1]).all())
        torch.testing.assert_close(coo2dense(cval, crow, ccol, shape),
                                   coo2dense(val, row, col, shape))


def test_coalesce_invalid_order():
    val, row, col, shape = random.coo((3, 3), 0.5, torch.Generator().manual_seed(0))
    with pytest.raises(ValueError):
        coalesce(val, row, col, shape, order="diag")


@pytest.mark.parametrize('seed', range(5))
def test_csr_round_trip(seed):
    val, row, col, shape = random.coo((8, 6), 0.4, torch.Generator().manual_seed(seed))
    cval, rowptr, ccol, _ = coo2csr(val, row, col, shape)
    assert rowptr.shape[0] == 9
    assert int(rowptr[-1]) == cval.shape[0]
    assert coo_eq(*csr2coo(cval, rowptr, ccol, shape), val, row, col, shape)


@pytest.mark.parametrize('seed', range(5))
def test_csc_round_trip(seed):
    val, row, col, shape = random.coo((8, 6), 0.4, torch.Generator().manual_seed(seed))
    cval, crow, colptr, _ = coo2csc(val, row, col, shape)
    assert colptr.shape[0] == 7
    assert coo_eq(*csc2coo(cval, crow, colptr, shape), val, row, col, shape)


def test_dense_and_scipy():
    dense = torch.tensor([[0.0, 1.0, 0.0],
                          [2.0, 0.0, 3.0]], dtype=torch.float64)
    val, row, col, shape = dense2coo(dense)
    assert shape == (2, 3)
    assert val.tolist() == [1.0, 2.0, 3.0]

    for format in ["csr", "csc", "coo"]:
        S = coo2scipy(val, row, col, shape, format=format)
        assert S.format == format
        assert coo_eq(*scipy2coo(S), val, row, col, shape)
    torch.testing.assert_close(torch.from_numpy(coo2scipy(val, row, col, shape).toarray()), dense)


def test_pattern2coo():
    outer, inner, ptr = pattern2coo([[2, 0, 2], [], [1]], 3, 3)
    assert outer.tolist() == [0, 0, 2]
    assert inner.tolist() == [0, 2, 1]
    assert ptr.tolist() == [0, 2, 2, 3]

    outer, inner, ptr = pattern2coo(None, 2, 5)
    assert inner.numel() == 0
    assert ptr.tolist() == [0, 0, 0]

    with pytest.raises(ValueError):
        pattern2coo([[0]], 2, 2)
    with pytest.raises(IndexOutOfRange):
        pattern2coo([[-1], []], 2, 2)


def test_check_coo():
    val = torch.ones(2, dtype=torch.float64)
    with pytest.raises(ShapeException):
        coalesce(val, torch.tensor([0]), torch.tensor([0, 1]), (2, 2))
    with pytest.raises(IndexOutOfRange):
        coalesce(val, torch.tensor([0, 2]), torch.tensor([0, 1]), (2, 2))
    with pytest.raises(IndexOutOfRange):
        coalesce(val, torch.tensor([0, 1]), torch.tensor([0, -1]), (2, 2))


class TestCompare:

    def test_drop_zeros(self):
        val1 = torch.tensor([1.0, 0.0], dtype=torch.float64)
        val2 = torch.tensor([1.0], dtype=torch.float64)
        row1, col1 = torch.tensor([0, 1]), torch.tensor([0, 1])
        row2, col2 = torch.tensor([0]), torch.tensor([0])
        assert coo_eq(val1, row1, col1, (2, 2), val2, row2, col2, (2, 2))
        assert not coo_eq(val1, row1, col1, (2, 2), val2, row2, col2, (2, 2), drop_zeros=False)

    def test_shape_and_values(self):
        val = torch.tensor([1.0], dtype=torch.float64)
        row, col = torch.tensor([0]), torch.tensor([0])
        assert not coo_eq(val, row, col, (2, 2), val, row, col, (3, 3))
        assert not coo_eq(val, row, col, (2, 2), val + 1e-12, row, col, (2, 2))
