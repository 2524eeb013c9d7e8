"""
Similarity-sensitive diversity kernels.

Diversities are expressed as Hill numbers, i.e. effective numbers of types, following the Leinster-Cobbold / Reeve et
al. framework for similarity-sensitive diversity partitioned over subcommunities.

Ordinariness is the similarity-weighted abundance of each type, i.e. `Z @ p`. Every measure is a power mean of order
`q - 1` (subcommunity) or `1 - q` (ecosystem) of some ordinariness-derived quantity, weighted by abundance.

Order 0 = variety, i.e. count of unique types (for naive similarity)
Order 1 = limit as exponential of entropy
Order 2 = diversity form of simpson index
Order inf = reciprocal of the most abundant type's ordinariness

"""
from __future__ import annotations

import numpy as np
import numpy.typing as npt
from numba import njit  # type: ignore

from divpart import config
from divpart.algos import common


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def similarity_diversity(
    ordinariness: npt.NDArray[np.float64],
    proportions: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Compute the similarity-sensitive diversity of a single population for a series of orders.

    The reciprocal of the power mean of order `q - 1` of the ordinariness, weighted by the proportions. Where the
    ordinariness is the proportions themselves (naive similarity) this is the Hill number.

    """
    return 1.0 / common.power_means(ordinariness, orders - 1.0, proportions)


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def subcommunity_alpha(
    ordinariness: npt.NDArray[np.float64],
    proportions: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Compute alpha diversity for each subcommunity column.

    Whether this is raw or normalised alpha depends on whether the proportions (and the ordinariness derived from them)
    have been normalised per subcommunity. Returns subcommunities x orders.

    """
    return 1.0 / common.column_power_means(ordinariness, orders - 1.0, proportions)


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def subcommunity_beta(
    ordinariness: npt.NDArray[np.float64],
    meta_ordinariness: npt.NDArray[np.float64],
    proportions: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Compute beta diversity for each subcommunity column.

    The power mean of order `q - 1` of the ratio of subcommunity to metacommunity ordinariness, weighted by the
    subcommunity proportions. Returns subcommunities x orders.

    """
    n_types, n_subs = proportions.shape
    ratios = np.full((n_types, n_subs), np.nan, dtype=np.float64)
    for sub_idx in range(n_subs):
        for type_idx in range(n_types):
            ratios[type_idx, sub_idx] = ordinariness[type_idx, sub_idx] / meta_ordinariness[type_idx]
    return common.column_power_means(ratios, orders - 1.0, proportions)


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def subcommunity_gamma(
    meta_ordinariness: npt.NDArray[np.float64],
    proportions: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Compute gamma diversity for each subcommunity column.

    The reciprocal of the power mean of order `q - 1` of the metacommunity ordinariness, weighted by the subcommunity
    proportions. Returns subcommunities x orders.

    """
    n_subs = proportions.shape[1]
    gammas = np.full((n_subs, len(orders)), np.nan, dtype=np.float64)
    for sub_idx in range(n_subs):
        gammas[sub_idx, :] = 1.0 / common.power_means(meta_ordinariness, orders - 1.0, proportions[:, sub_idx])
    return gammas


@njit(cache=True, fastmath=config.FASTMATH, nogil=True, error_model="numpy")
def ecosystem_diversity(
    community: npt.NDArray[np.float64],
    weights: npt.NDArray[np.float64],
    orders: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Aggregate subcommunity diversities into an ecosystem diversity per order.

    For each order `q`, the power mean of order `1 - q` of the subcommunity diversities (subcommunities x orders),
    weighted by the subcommunity weights.

    """
    ecosystem = np.full(len(orders), np.nan, dtype=np.float64)
    for order_idx, order in enumerate(orders):
        ecosystem[order_idx] = common.power_mean(community[:, order_idx], 1.0 - order, weights)
    return ecosystem
