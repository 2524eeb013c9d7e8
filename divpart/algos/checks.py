from __future__ import annotations

import numpy as np
import numpy.typing as npt
from numba import njit  # type: ignore

from divpart import config


class DimensionMismatch(ValueError):
    """Raised when the dimensions of arrays, or of arrays and their descriptive structures, disagree."""


@njit(cache=True, fastmath=config.FASTMATH)
def _count_invalid(data_arr: npt.NDArray[np.float64]) -> tuple[int, int]:
    """Count non-finite and negative entries in a 2d array."""
    non_finite = 0
    negative = 0
    for i in range(data_arr.shape[0]):
        for j in range(data_arr.shape[1]):
            val = data_arr[i, j]
            if not np.isfinite(val):
                non_finite += 1
            elif val < 0:
                negative += 1
    return non_finite, negative


def check_abundance_data(data_arr: npt.NDArray[np.float64]) -> None:
    """Check the integrity of an abundance or proportions array (types x subcommunities)."""
    if not data_arr.ndim == 2:
        raise ValueError(
            "The abundance array must have a dimensionality 2, consisting of the number of types x the number of "
            "subcommunities."
        )
    if data_arr.shape[0] == 0 or data_arr.shape[1] == 0:
        raise ValueError("Zero length abundance array.")
    non_finite, negative = _count_invalid(np.asarray(data_arr, dtype=np.float64))
    if non_finite:
        raise ValueError("The abundance values must consist of finite numbers.")
    if negative:
        raise ValueError("The abundance values must be non-negative.")


def check_similarity_data(sim_arr: npt.NDArray[np.float64], n_types: int | None = None) -> None:
    """Check the integrity of a similarity matrix, optionally against the number of types it describes."""
    if not sim_arr.ndim == 2 or sim_arr.shape[0] != sim_arr.shape[1]:
        raise DimensionMismatch("The similarity matrix must be a square NxN pairwise matrix.")
    if n_types is not None and sim_arr.shape[0] != n_types:
        raise DimensionMismatch(
            f"The similarity matrix is {sim_arr.shape[0]}x{sim_arr.shape[1]} but there are {n_types} types."
        )
    non_finite, negative = _count_invalid(np.asarray(sim_arr, dtype=np.float64))
    if non_finite:
        raise ValueError("The similarity values must consist of finite numbers.")
    if negative:
        raise ValueError("The similarity values must be non-negative.")


def check_values_and_weights(values: npt.NDArray[np.float64], weights: npt.NDArray[np.float64]) -> None:
    """Check that power mean values and weights are of matching shapes."""
    if values.ndim not in (1, 2):
        raise ValueError("Power mean values must be a vector, or a matrix of column vectors.")
    if values.shape != weights.shape:
        if values.ndim == 1:
            raise DimensionMismatch("powermean: Weight and value vectors must be the same length")
        raise DimensionMismatch("powermean: Weight and value matrixes must be the same size")


def sums_to_one(data_arr: npt.NDArray[np.float64]) -> bool:
    """
    Check whether an array sums to 1 within floating point tolerance.

    The relative tolerance is the square root of the machine epsilon of the array's floating point type, or of float64
    for non floating point arrays.
    """
    data_arr = np.asarray(data_arr)
    rtol = config.PROPORTION_RTOL
    if np.issubdtype(data_arr.dtype, np.floating):
        rtol = float(np.sqrt(np.finfo(data_arr.dtype).eps))
    return bool(np.isclose(np.sum(data_arr), 1.0, rtol=rtol, atol=0.0))
