import torch
from typing import Sequence


def lexsort(keys: Sequence[torch.Tensor], dim=-1) -> torch.Tensor:
    """ Multi level stable sort, same key order as ``numpy.lexsort``
    (the last key is the primary one)

    Parameters
    ----------
    keys: Sequence[torch.Tensor]
        keys of equal shape
    dim: int
        the dimension for sorting

    Returns
    -------
    indices: torch.Tensor
        the sorted indices
    """
    if len(keys) == 0:
        raise ValueError(f"Must have at least 1 key, but {len(keys)=}.")

    idx = keys[0].argsort(dim=dim, stable=True)
    for k in keys[1:]:
        idx = idx.gather(dim, k.gather(dim, idx).argsort(dim=dim, stable=True))

    return idx


def sorted_unique(index: torch.Tensor) -> bool:
    """whether a 1-D index tensor is strictly increasing"""
    if index.numel() < 2:
        return True
    return bool((index[1:] > index[:-1]).all())
