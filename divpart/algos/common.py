from __future__ import annotations

import numpy as np
import numpy.typing as npt
from numba import njit  # type: ignore

from divpart import config


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def power_mean(
    values: npt.NDArray[np.float64],
    order: np.float64,
    weights: npt.NDArray[np.float64],
) -> np.float64:
    """
    Compute the weighted power mean of a vector of values for a single order.

    Weights are normalised to sum to 1 (as per Rényi). Entries with zero weight are dropped before reducing, so that
    zero or non-finite values carrying no weight cannot leak into the result through `0 * value ** order`.

    Order +inf is the maximum, -inf the minimum, and 0 the weighted geometric mean.

    If all weights are zero then normalisation produces NaNs, which are propagated as a NaN result.

    """
    total = 0.0
    for wt in weights:
        total += wt
    props = weights / total
    if np.all(np.isnan(props)):
        return np.nan
    if np.isinf(order):
        # +Inf -> maximum
        if order > 0:
            agg = -np.inf
            for prop, val in zip(props, values):
                if prop != 0 and val > agg:
                    agg = val
            return agg
        # -Inf -> minimum
        agg = np.inf
        for prop, val in zip(props, values):
            if prop != 0 and val < agg:
                agg = val
        return agg
    # geometric mean
    if order == 0:
        agg = 1.0
        for prop, val in zip(props, values):
            if prop != 0:
                agg *= val**prop
        return agg
    agg = 0.0
    for prop, val in zip(props, values):
        if prop != 0:
            agg += prop * val**order
    return agg ** (1.0 / order)


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def power_means(
    values: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
    weights: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """Compute the weighted power mean of a vector of values for each of a series of orders."""
    means = np.full(len(orders), np.nan, dtype=np.float64)
    for order_idx, order in enumerate(orders):
        means[order_idx] = power_mean(values, order, weights)
    return means


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def column_power_means(
    values: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
    weights: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Compute weighted power means column by column.

    Column `i` of `values` is paired with column `i` of `weights`. Returns an array of columns x orders.

    """
    n_cols = values.shape[1]
    means = np.full((n_cols, len(orders)), np.nan, dtype=np.float64)
    for col_idx in range(n_cols):
        means[col_idx, :] = power_means(values[:, col_idx], orders, weights[:, col_idx])
    return means
