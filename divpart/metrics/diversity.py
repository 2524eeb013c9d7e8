r"""
Generalised similarity-sensitive diversity measures for partitioned metacommunities.

The measures follow the framework of Reeve et al. (2016) "How to partition diversity", which generalises Hill numbers
and the Leinster-Cobbold similarity-sensitive diversities to metacommunities divided into subcommunities. Each measure is
parameterised by an order $q$ which controls the sensitivity to rare ($q$ small) versus common ($q$ large) types.

Subcommunity measures:

- [`community_alpha`](#community-alpha) $\alpha$: raw alpha;
- [`community_alpha_bar`](#community-alpha-bar) $\bar{\alpha}$: normalised alpha, i.e. the diversity of the
subcommunity in isolation;
- [`community_beta`](#community-beta) $\beta$: raw beta;
- [`community_beta_bar`](#community-beta-bar) $\bar{\beta}$: normalised beta;
- [`community_gamma`](#community-gamma) $\gamma$: raw gamma, i.e. the contribution of the subcommunity to metacommunity
diversity;
- [`community_gamma_bar`](#community-gamma-bar) $\bar{\gamma}$: normalised gamma.

The ecosystem measures $A$, $\bar{A}$, $B$, $\bar{B}$, $G$, $\bar{G}$ aggregate the above across subcommunities, weighted by
subcommunity weight, through [`diversity`](#diversity).

Each measure accepts either a proportions array of types x subcommunities together with an optional similarity, or an
[`AbstractMetacommunity`](/structures#abstractmetacommunity), in which case its cached ordinariness is reused.

:::note
Undefined values, such as the normalised diversity of an empty subcommunity, are returned as `NaN` rather than raised.
:::
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import numpy as np
import numpy.typing as npt

from divpart import dvtypes
from divpart.algos import checks, common, diversity as div_algos
from divpart.structures import AbstractMetacommunity, AbstractTypes

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ProportionsType = Union[npt.NDArray[np.float64], AbstractMetacommunity]
MeasureType = Callable[..., npt.NDArray[np.float64]]


def _cast_qs(qs: dvtypes.QsType) -> tuple[npt.NDArray[np.float64], bool]:
    """Type checks and casts orders to an array, reporting whether a single order was provided."""
    if qs is None:
        raise TypeError("Expected q values but encountered None value.")
    if isinstance(qs, (int, float, np.integer, np.floating)):
        qs_arr, single = np.array([qs], dtype=np.float64), True
    elif isinstance(qs, (list, tuple, np.ndarray)):
        qs_arr, single = np.array(qs, dtype=np.float64), False
    else:
        raise TypeError("Please provide a float, list, tuple, or numpy.ndarray of q values.")
    if qs_arr.ndim == 0:
        qs_arr, single = qs_arr.reshape(1), True
    if qs_arr.ndim != 1:
        raise ValueError("Please provide a one dimensional sequence of q values.")
    if len(qs_arr) == 0:
        raise ValueError("Encountered empty iterable of q values.")
    if np.any(np.isnan(qs_arr)):
        raise ValueError("Encountered NaN q value.")
    return qs_arr, single


def powermean(
    values: Union[npt.ArrayLike, npt.NDArray[np.float64]],
    order: dvtypes.QsType = 1,
    weights: Optional[Union[npt.ArrayLike, npt.NDArray[np.float64]]] = None,
) -> Union[float, npt.NDArray[np.float64]]:
    r"""
    Compute the weighted power mean of a vector, or of each column of a matrix, for one or more orders.

    $$M_{r}(w, x) = \Big(\sum_{i} w_{i} x_{i}^{r}\Big)^{1/r}$$

    Weights are normalised to sum to 1. Values with zero weight are ignored. Order $+\infty$ gives the maximum, order
    $-\infty$ the minimum, and order $0$ the weighted geometric mean.

    Parameters
    ----------
    values: ndarray[float]
        A vector of values, or a matrix of column vectors.
    order: float | list[float]
        An order, or sequence of orders, by default 1 (the arithmetic mean).
    weights: ndarray[float]
        Weights of the same shape as `values`, by default equal.

    Returns
    -------
    float | ndarray[float]
        A `float` for a vector and a single order; a vector over orders for a vector and multiple orders; a vector over
        columns for a matrix and a single order; or an array of columns x orders for a matrix and multiple orders. If
        all weights are zero the result is `NaN`.

    Examples
    --------
    ```python
    from divpart.metrics import diversity

    diversity.powermean([1, 2, 3], 1)  # 2.0
    diversity.powermean([1, 2, 4], 0)  # 2.0
    diversity.powermean([1, 2, 3], [-np.inf, np.inf])  # array([1., 3.])
    ```

    """
    values = np.array(values, dtype=np.float64)
    if weights is None:
        weights = np.ones_like(values)
    weights = np.array(weights, dtype=np.float64)
    checks.check_values_and_weights(values, weights)
    orders, single = _cast_qs(order)
    if values.ndim == 1:
        means = common.power_means(values, orders, weights)
        return float(means[0]) if single else means
    means = common.column_power_means(values, orders, weights)
    return means[:, 0] if single else means


def resolve_similarity(
    proportions: npt.NDArray[np.float64], similarity: dvtypes.SimilarityType = None
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Resolve a similarity argument against a proportions array.

    Parameters
    ----------
    proportions: ndarray[float]
        Proportions of raw types, either a vector or an array of types x subcommunities.
    similarity: None | ndarray[float] | AbstractTypes
        `None` for naive (identity) similarity, a square similarity matrix, or an `AbstractTypes` instance.

    Returns
    -------
    proportions: ndarray[float]
        The proportions of processed types, unchanged unless the `AbstractTypes` processes raw types.
    zmatrix: ndarray[float]
        A similarity matrix with dimensions matching the processed types.

    """
    n_types = proportions.shape[0]
    if similarity is None:
        return proportions, np.identity(n_types, dtype=proportions.dtype)
    if isinstance(similarity, AbstractTypes):
        if similarity.count_types(True) != n_types:
            raise checks.DimensionMismatch(
                f"There are {similarity.count_types(True)} raw types but the proportions have {n_types} rows."
            )
        processed, scale = similarity.calc_abundance(proportions)
        processed = np.asarray(processed, dtype=proportions.dtype)
        zmatrix = np.asarray(similarity.calc_similarity(scale), dtype=proportions.dtype)
        if zmatrix.shape != (processed.shape[0], processed.shape[0]):
            raise checks.DimensionMismatch(
                f"The similarity matrix is {zmatrix.shape} but there are {processed.shape[0]} processed types."
            )
        return processed, zmatrix
    if isinstance(similarity, np.ndarray):
        checks.check_similarity_data(similarity, n_types)
        return proportions, np.asarray(similarity, dtype=proportions.dtype)
    raise TypeError("Please provide the similarity as None, a numpy.ndarray, or an AbstractTypes instance.")


def qD(  # pylint: disable=invalid-name
    proportions: Union[npt.ArrayLike, npt.NDArray[np.float64]], qs: dvtypes.QsType
) -> Union[float, npt.NDArray[np.float64]]:
    r"""
    Compute the Hill number (naive diversity) of a population for one or more orders.

    $$^{q}D = \Big(\sum_{i} p_{i}^{q}\Big)^{1/(1-q)}$$

    The limit at $q=1$ is the exponential of Shannon entropy, $q=0$ gives the count of types present, and $q=\infty$ the
    reciprocal of the largest proportion.

    Parameters
    ----------
    proportions: ndarray[float]
        Relative proportions of the types in the population. If these do not sum to 1 a warning is logged and they are
        rescaled.
    qs: float | list[float]
        An order, or sequence of orders, of diversity.

    Returns
    -------
    float | ndarray[float]
        The diversity, or a vector of diversities over orders.

    """
    proportions = np.array(proportions, dtype=np.float64)
    if proportions.ndim != 1:
        raise ValueError("Please provide the population proportions as a vector.")
    if not checks.sums_to_one(proportions):
        logger.warning("qD: Population proportions don't sum to 1, fixing...")
        proportions = proportions / proportions.sum()
    orders, single = _cast_qs(qs)
    divs = div_algos.similarity_diversity(proportions, proportions, orders)
    return float(divs[0]) if single else divs


def qDZ(  # pylint: disable=invalid-name
    proportions: Union[npt.ArrayLike, npt.NDArray[np.float64]],
    qs: dvtypes.QsType,
    similarity: dvtypes.SimilarityType = None,
) -> Union[float, npt.NDArray[np.float64]]:
    r"""
    Compute the Leinster-Cobbold (similarity-sensitive) diversity of a population for one or more orders.

    $$^{q}D^{Z} = M_{q-1}(p, Zp)^{-1}$$

    With the default (identity) similarity this is identical to [`qD`](#qd).

    Parameters
    ----------
    proportions: ndarray[float]
        Relative proportions of the types in a population, or an array of types x populations. Populations which do not
        sum to 1 are rescaled with a warning.
    qs: float | list[float]
        An order, or sequence of orders, of diversity.
    similarity: None | ndarray[float] | AbstractTypes
        The similarity between types, by default naive similarity (the identity matrix).

    Returns
    -------
    float | ndarray[float]
        For a vector, the diversity or a vector of diversities over orders. For an array, a vector over populations or
        an array of populations x orders.

    """
    proportions = np.array(proportions, dtype=np.float64)
    if proportions.ndim not in (1, 2):
        raise ValueError("Please provide the population proportions as a vector or as an array of column vectors.")
    orders, single = _cast_qs(qs)
    if proportions.ndim == 1:
        if not checks.sums_to_one(proportions):
            logger.warning("qDZ: Population proportions don't sum to 1, fixing...")
            proportions = proportions / proportions.sum()
        processed, zmatrix = resolve_similarity(proportions, similarity)
        divs = div_algos.similarity_diversity(zmatrix @ processed, processed, orders)
        return float(divs[0]) if single else divs
    col_sums = proportions.sum(axis=0)
    if not all(checks.sums_to_one(col) for col in proportions.T):
        logger.warning("qDZ: Population proportions don't sum to 1, fixing...")
        proportions = proportions / col_sums
    processed, zmatrix = resolve_similarity(proportions, similarity)
    divs = div_algos.subcommunity_alpha(zmatrix @ processed, processed, orders)
    return divs[:, 0] if single else divs


@dataclass(frozen=True)
class _Prepared:
    """Proportions and ordinariness derived once for the subcommunity measures."""

    proportions: npt.NDArray[np.float64]
    ordinariness: npt.NDArray[np.float64]
    meta_ordinariness: npt.NDArray[np.float64]
    weights: npt.NDArray[np.float64]

    @property
    def total(self) -> float:
        return float(self.proportions.sum())

    @property
    def normalised(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Column normalised proportions and their ordinariness."""
        return self.proportions / self.weights, self.ordinariness / self.weights


def _prepare(proportions: ProportionsType, similarity: dvtypes.SimilarityType = None) -> _Prepared:
    """Validate inputs and derive the (processed) proportions, ordinariness, and subcommunity weights."""
    if isinstance(proportions, AbstractMetacommunity):
        if similarity is not None:
            raise TypeError("A metacommunity carries its own similarity, please do not provide another.")
        return _Prepared(
            proportions=np.asarray(proportions.get_abundance(False), dtype=np.float64),
            ordinariness=np.asarray(proportions.get_ordinariness(), dtype=np.float64),
            meta_ordinariness=np.asarray(proportions.get_meta_ordinariness(), dtype=np.float64),
            weights=np.asarray(proportions.get_weight(), dtype=np.float64),
        )
    proportions = np.asarray(proportions, dtype=np.float64)
    checks.check_abundance_data(proportions)
    processed, zmatrix = resolve_similarity(proportions, similarity)
    ordinariness = zmatrix @ processed
    return _Prepared(
        proportions=processed,
        ordinariness=ordinariness,
        meta_ordinariness=ordinariness.sum(axis=1),
        weights=processed.sum(axis=0),
    )


def _shape_community(community: npt.NDArray[np.float64], single: bool) -> npt.NDArray[np.float64]:
    return community[:, 0] if single else community


def community_alpha(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""
    Compute raw similarity-sensitive subcommunity alpha diversity $\alpha$.

    The Leinster-Cobbold diversity formula applied directly to each raw (un-normalised) subcommunity column, so that
    $\alpha_{j} = \bar{\alpha}_{j} / w_{j}$ where $w_{j}$ is the subcommunity weight.

    Parameters
    ----------
    proportions: ndarray[float] | AbstractMetacommunity
        Population proportions of types x subcommunities, or a metacommunity.
    qs: float | list[float]
        An order, or sequence of orders, of diversity.
    similarity: None | ndarray[float] | AbstractTypes
        The similarity between types, by default the identity.

    Returns
    -------
    ndarray[float]
        A vector over subcommunities for a single order, else an array of subcommunities x orders.

    """
    prep = _prepare(proportions, similarity)
    orders, single = _cast_qs(qs)
    community = div_algos.subcommunity_alpha(prep.ordinariness, prep.proportions, orders)
    return _shape_community(community, single)


def community_alpha_bar(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""
    Compute normalised similarity-sensitive subcommunity alpha diversity $\bar{\alpha}$.

    The diversity of each subcommunity in isolation, computed on column normalised proportions. See
    [`community_alpha`](#community-alpha) for parameters and return shapes.

    """
    prep = _prepare(proportions, similarity)
    orders, single = _cast_qs(qs)
    norm_props, norm_ordinariness = prep.normalised
    community = div_algos.subcommunity_alpha(norm_ordinariness, norm_props, orders)
    return _shape_community(community, single)


def community_beta(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""
    Compute raw similarity-sensitive subcommunity beta diversity $\beta$.

    $$\beta_{j} = M_{q-1}\Big(P_{\cdot j}, \frac{(ZP)_{\cdot j}}{Zp}\Big)$$

    where $Zp$ is the ordinariness of the metacommunity. See [`community_alpha`](#community-alpha) for parameters and
    return shapes.

    """
    prep = _prepare(proportions, similarity)
    orders, single = _cast_qs(qs)
    community = div_algos.subcommunity_beta(prep.ordinariness, prep.meta_ordinariness, prep.proportions, orders)
    return _shape_community(community, single)


def community_beta_bar(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""
    Compute normalised similarity-sensitive subcommunity beta diversity $\bar{\beta}$.

    As for [`community_beta`](#community-beta), but on column normalised proportions and with the metacommunity
    ordinariness scaled by the total abundance.

    """
    prep = _prepare(proportions, similarity)
    orders, single = _cast_qs(qs)
    norm_props, norm_ordinariness = prep.normalised
    community = div_algos.subcommunity_beta(
        norm_ordinariness, prep.meta_ordinariness / prep.total, norm_props, orders
    )
    return _shape_community(community, single)


def community_gamma(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""
    Compute raw similarity-sensitive subcommunity gamma diversity $\gamma$.

    $$\gamma_{j} = M_{q-1}(P_{\cdot j}, Zp)^{-1}$$

    See [`community_alpha`](#community-alpha) for parameters and return shapes.

    """
    prep = _prepare(proportions, similarity)
    orders, single = _cast_qs(qs)
    community = div_algos.subcommunity_gamma(prep.meta_ordinariness, prep.proportions, orders)
    return _shape_community(community, single)


def community_gamma_bar(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""
    Compute normalised similarity-sensitive subcommunity gamma diversity $\bar{\gamma}$.

    As for [`community_gamma`](#community-gamma), with the metacommunity ordinariness scaled by the total abundance.

    """
    prep = _prepare(proportions, similarity)
    orders, single = _cast_qs(qs)
    norm_props, _ = prep.normalised
    community = div_algos.subcommunity_gamma(prep.meta_ordinariness / prep.total, norm_props, orders)
    return _shape_community(community, single)


@dataclass
class DiversityResult:
    """
    Results of [`diversity`](#diversity).

    Fields which were not requested are `None`.
    """

    ecosystem: Optional[npt.NDArray[np.float64]] = None
    """Ecosystem diversity, a vector over orders."""
    community: Optional[npt.NDArray[np.float64]] = None
    """Subcommunity diversities, an array of subcommunities x orders."""
    weights: Optional[npt.NDArray[np.float64]] = None
    """Subcommunity weights."""


def diversity(
    measure: MeasureType,
    proportions: ProportionsType,
    qs: dvtypes.QsType,
    similarity: dvtypes.SimilarityType = None,
    return_ecosystem: bool = True,
    return_community: bool = True,
    return_weights: bool = True,
) -> DiversityResult:
    r"""
    Compute subcommunity and ecosystem diversities for a measure.

    The ecosystem diversity for order $q$ is the power mean of order $1-q$ of the subcommunity diversities, weighted by
    the subcommunity weights.

    Parameters
    ----------
    measure: Callable
        One of the subcommunity measures, e.g. [`community_alpha`](#community-alpha).
    proportions: ndarray[float] | AbstractMetacommunity
        Population proportions of types x subcommunities, or a metacommunity.
    qs: float | list[float]
        An order, or sequence of orders, of diversity.
    similarity: None | ndarray[float] | AbstractTypes
        The similarity between types, by default the identity.
    return_ecosystem: bool
        Whether to compute the ecosystem diversity.
    return_community: bool
        Whether to return the subcommunity diversities.
    return_weights: bool
        Whether to return the subcommunity weights.

    Returns
    -------
    DiversityResult
        The requested results.

    Examples
    --------
    ```python
    import numpy as np
    from divpart.metrics import diversity

    props = np.array([[0.25, 0.125], [0.125, 0.25], [0.125, 0.125]])
    result = diversity.diversity(diversity.community_alpha_bar, props, [0, 1, 2])
    print(result.ecosystem, result.community.shape, result.weights)
    ```

    """
    # only weights requested, skip the diversity computation
    if not return_ecosystem and not return_community:
        if not return_weights:
            return DiversityResult()
        return DiversityResult(weights=_prepare(proportions, similarity).weights)
    orders, _ = _cast_qs(qs)
    community = measure(proportions, orders, similarity)
    result = DiversityResult(community=community if return_community else None)
    if return_ecosystem or return_weights:
        weights = _prepare(proportions, similarity).weights
        if return_ecosystem:
            result.ecosystem = div_algos.ecosystem_diversity(community, weights, orders)
        if return_weights:
            result.weights = weights
    return result


def _ecosystem(
    measure: MeasureType,
    proportions: ProportionsType,
    qs: dvtypes.QsType,
    similarity: dvtypes.SimilarityType,
) -> npt.NDArray[np.float64]:
    ecosystem = diversity(measure, proportions, qs, similarity, True, False, False).ecosystem
    return ecosystem  # type: ignore


def ecosystem_alpha(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""Compute raw similarity-sensitive ecosystem alpha diversity $A$, a vector over orders."""
    return _ecosystem(community_alpha, proportions, qs, similarity)


def ecosystem_alpha_bar(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""Compute normalised similarity-sensitive ecosystem alpha diversity $\bar{A}$, a vector over orders."""
    return _ecosystem(community_alpha_bar, proportions, qs, similarity)


def ecosystem_beta(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""Compute raw similarity-sensitive ecosystem beta diversity $B$, a vector over orders."""
    return _ecosystem(community_beta, proportions, qs, similarity)


def ecosystem_beta_bar(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""Compute normalised similarity-sensitive ecosystem beta diversity $\bar{B}$, a vector over orders."""
    return _ecosystem(community_beta_bar, proportions, qs, similarity)


def ecosystem_gamma(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""Compute raw similarity-sensitive ecosystem gamma diversity $G$, a vector over orders."""
    return _ecosystem(community_gamma, proportions, qs, similarity)


def ecosystem_gamma_bar(
    proportions: ProportionsType, qs: dvtypes.QsType, similarity: dvtypes.SimilarityType = None
) -> npt.NDArray[np.float64]:
    r"""Compute normalised similarity-sensitive ecosystem gamma diversity $\bar{G}$, a vector over orders."""
    return _ecosystem(community_gamma_bar, proportions, qs, similarity)


@dataclass(frozen=True)
class Measure:
    """A named pairing of a subcommunity measure with its ecosystem aggregate."""

    label: str
    community: MeasureType
    ecosystem: MeasureType


MEASURES: dict[str, Measure] = {
    "raw_alpha": Measure("RawAlpha", community_alpha, ecosystem_alpha),
    "normalised_alpha": Measure("NormalisedAlpha", community_alpha_bar, ecosystem_alpha_bar),
    "raw_beta": Measure("RawBeta", community_beta, ecosystem_beta),
    "normalised_beta": Measure("NormalisedBeta", community_beta_bar, ecosystem_beta_bar),
    "raw_gamma": Measure("RawGamma", community_gamma, ecosystem_gamma),
    "normalised_gamma": Measure("NormalisedGamma", community_gamma_bar, ecosystem_gamma_bar),
}


def get_measure(measure: Any) -> Measure:
    """Look up a measure by key, e.g. "raw_alpha", or by its subcommunity or ecosystem function."""
    if isinstance(measure, Measure):
        return measure
    if isinstance(measure, str):
        if measure not in MEASURES:
            raise ValueError(f'Invalid measure: {measure}. Must be one of {", ".join(MEASURES)}.')
        return MEASURES[measure]
    for candidate in MEASURES.values():
        if measure in (candidate.community, candidate.ecosystem):
            return candidate
    raise TypeError(f"Unrecognised measure: {measure}.")
