# pyright: basic
from __future__ import annotations

import logging

import numpy as np
import pytest
from scipy.stats import entropy

from divpart import config, structures
from divpart.algos import checks
from divpart.metrics import diversity
from divpart.tools import mock

COMMUNITY_MEASURES = [
    diversity.community_alpha,
    diversity.community_alpha_bar,
    diversity.community_beta,
    diversity.community_beta_bar,
    diversity.community_gamma,
    diversity.community_gamma_bar,
]
ORDERS = [0, 0.5, 1, 2, 5, np.inf]


def test_powermean():
    assert np.isclose(diversity.powermean([1, 2, 3], 1, [1, 1, 1]), 2)
    assert np.isclose(diversity.powermean([1, 2, 4], 0, [1, 1, 1]), 2)
    assert diversity.powermean([1, 2, 3], np.inf, [1, 1, 1]) == 3
    assert diversity.powermean([1, 2, 3], -np.inf, [1, 1, 1]) == 1
    # default weights and order
    assert np.isclose(diversity.powermean([1, 2, 3]), 2)
    assert isinstance(diversity.powermean([1, 2, 3], 2), float)
    # vector of orders
    means = diversity.powermean([1, 2, 3], [-np.inf, 1, np.inf])
    assert means.shape == (3,)
    assert np.allclose(means, [1, 2, 3])
    # matrix of columns
    values = np.array([[1.0, 2.0], [2.0, 2.0], [3.0, 8.0]])
    means = diversity.powermean(values, 1)
    assert means.shape == (2,)
    assert np.allclose(means, [2, 4])
    means = diversity.powermean(values, [0, 1, np.inf], np.ones((3, 2)))
    assert means.shape == (2, 3)
    assert np.allclose(means[1], [np.cbrt(32), 4, 8])
    # all zero weights propagates NaN
    assert np.isnan(diversity.powermean([1, 2, 3], 1, [0, 0, 0]))


def test_powermean_dimension_mismatch():
    with pytest.raises(checks.DimensionMismatch):
        diversity.powermean([1, 2, 3], 1, [1, 1])
    with pytest.raises(checks.DimensionMismatch):
        diversity.powermean(np.ones((3, 2)), 1, np.ones((2, 3)))
    # qs must be numeric
    with pytest.raises(TypeError):
        diversity.powermean([1, 2, 3], None)
    with pytest.raises(TypeError):
        diversity.powermean([1, 2, 3], "1")
    with pytest.raises(ValueError):
        diversity.powermean([1, 2, 3], [])
    with pytest.raises(ValueError):
        diversity.powermean([1, 2, 3], np.nan)
    with pytest.raises(ValueError):
        diversity.qD([0.5, 0.5], [1, np.nan])


def test_qD_special_orders():
    for counts, probs in mock.mock_species_data():
        # order 0 is richness
        assert np.isclose(diversity.qD(probs, 0), len(counts))
        # order 1 is the exponential of Shannon entropy
        assert np.isclose(diversity.qD(probs, 1), np.exp(entropy(probs)))
        assert np.allclose(
            diversity.qD(probs, [0.99999, 1.00001]), np.exp(entropy(probs)), atol=config.ATOL, rtol=config.RTOL
        )
        # order inf is the reciprocal of the largest proportion
        assert np.isclose(diversity.qD(probs, np.inf), 1 / probs.max())
    # absent types are not counted
    assert np.isclose(diversity.qD([0.5, 0.0, 0.25, 0.25], 0), 3)
    assert np.isclose(diversity.qD([0.5, 0.0, 0.25, 0.25], 1), np.exp(entropy([0.5, 0.25, 0.25])))


def test_qD_monotonic():
    qs = np.concatenate([np.linspace(0, 10, 41), [np.inf]])
    for _counts, probs in mock.mock_species_data():
        divs = diversity.qD(probs, qs)
        assert divs.shape == qs.shape
        assert np.all(np.diff(divs) <= 1e-9)
    # strictly decreasing where proportions are uneven
    divs = diversity.qD([0.7, 0.2, 0.1], qs)
    assert np.all(np.diff(divs) < 0)
    # constant where proportions are even
    divs = diversity.qD([0.25, 0.25, 0.25, 0.25], qs)
    assert np.allclose(divs, 4)


def test_qD_rescales(caplog):
    with caplog.at_level(logging.WARNING):
        rescued = diversity.qD([0.2, 0.2], 1)
    assert "don't sum to 1" in caplog.text
    assert np.isclose(rescued, diversity.qD([0.5, 0.5], 1))
    assert np.isclose(rescued, 2)
    caplog.clear()
    with caplog.at_level(logging.WARNING):
        diversity.qD([0.5, 0.5], 1)
    assert "don't sum to 1" not in caplog.text


def test_qDZ_matches_qD():
    for _counts, probs in mock.mock_species_data():
        for q in ORDERS:
            assert abs(diversity.qDZ(probs, q) - diversity.qD(probs, q)) < 1e-9
        # the identity matrix and unique types are equivalent to no similarity
        identity = np.identity(len(probs))
        assert np.allclose(diversity.qDZ(probs, ORDERS, identity), diversity.qD(probs, ORDERS), atol=1e-9)
        unique = structures.UniqueTypes(len(probs))
        assert np.allclose(diversity.qDZ(probs, ORDERS, unique), diversity.qD(probs, ORDERS), atol=1e-9)


def test_qDZ_similarity():
    probs = np.array([0.2, 0.3, 0.5])
    # complete similarity
    assert np.allclose(diversity.qDZ(probs, ORDERS, np.ones((3, 3))), 1)
    # similarity never increases diversity
    sim = mock.mock_similarity_matrix(3)
    assert np.all(diversity.qDZ(probs, ORDERS, sim) <= diversity.qD(probs, ORDERS) + 1e-12)
    # an array and GeneralTypes are equivalent
    assert np.allclose(diversity.qDZ(probs, ORDERS, sim), diversity.qDZ(probs, ORDERS, structures.GeneralTypes(sim)))
    # known value: two identical types and one distinct type
    sim = np.array([[1.0, 1.0, 0.0], [1.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    assert np.allclose(diversity.qDZ(probs, ORDERS, sim), 2)
    # mismatched similarity
    with pytest.raises(checks.DimensionMismatch):
        diversity.qDZ(probs, 1, np.ones((4, 4)))
    with pytest.raises(checks.DimensionMismatch):
        diversity.qDZ(probs, 1, structures.UniqueTypes(4))
    with pytest.raises(TypeError):
        diversity.qDZ(probs, 1, [[1, 0, 0], [0, 1, 0], [0, 0, 1]])


def test_qDZ_columns(caplog):
    props = mock.mock_abundances(n_types=4, n_subcommunities=3)
    sim = mock.mock_similarity_matrix(4)
    with caplog.at_level(logging.WARNING):
        divs = diversity.qDZ(props, ORDERS, sim)
    assert "don't sum to 1" in caplog.text
    assert divs.shape == (3, len(ORDERS))
    for col_idx in range(3):
        col = props[:, col_idx] / props[:, col_idx].sum()
        assert np.allclose(divs[col_idx], diversity.qDZ(col, ORDERS, sim))
    assert diversity.qDZ(props, 1, sim).shape == (3,)


def test_resolve_similarity(collapsed_types):
    props = np.array([[0.1, 0.2], [0.2, 0.1], [0.15, 0.05], [0.05, 0.15]])
    processed, zmatrix = diversity.resolve_similarity(props)
    assert processed is props
    assert np.array_equal(zmatrix, np.identity(4))
    # processed types
    processed, zmatrix = diversity.resolve_similarity(props, collapsed_types)
    assert np.allclose(processed, [[0.3, 0.3], [0.2, 0.2]])
    # rescaled by the types' scale factor
    assert np.allclose(zmatrix, [[1, 0.25], [0.25, 1]])
    with pytest.raises(checks.DimensionMismatch):
        diversity.resolve_similarity(props[:3], collapsed_types)


def test_example_metacommunity(example_proportions):
    weights = np.array([0.5, 0.5])
    alpha_bar = diversity.community_alpha_bar(example_proportions, 1)
    expected = np.exp(entropy([0.5, 0.25, 0.25]))
    assert alpha_bar.shape == (2,)
    assert np.allclose(alpha_bar, expected)
    alpha = diversity.community_alpha(example_proportions, 1)
    assert np.allclose(alpha, expected / weights)
    # ecosystem alpha is the order 1 - q power mean of subcommunity alphas
    ecosystem_a = diversity.ecosystem_alpha(example_proportions, 1, np.identity(3))
    assert ecosystem_a.shape == (1,)
    assert np.isclose(ecosystem_a[0], diversity.powermean(alpha, 0, weights))
    for q in ORDERS:
        assert np.isclose(
            diversity.ecosystem_alpha(example_proportions, q)[0],
            diversity.powermean(diversity.community_alpha(example_proportions, q), 1 - q, weights),
        )
    # q = 0 gamma counts the types in the metacommunity
    assert np.allclose(diversity.community_gamma(example_proportions, 0), 3)
    assert np.allclose(diversity.ecosystem_gamma(example_proportions, 0), 3)


def test_alpha_relations(mock_proportions, mock_similarity):
    weights = mock_proportions.sum(axis=0)
    for sim in [None, mock_similarity]:
        alpha = diversity.community_alpha(mock_proportions, ORDERS, sim)
        alpha_bar = diversity.community_alpha_bar(mock_proportions, ORDERS, sim)
        assert alpha.shape == (3, len(ORDERS))
        # raw alpha is normalised alpha divided by the subcommunity weight
        assert np.allclose(alpha, alpha_bar / weights[:, np.newaxis])
        # normalised alpha is the diversity of each subcommunity in isolation
        assert np.allclose(alpha_bar, diversity.qDZ(mock_proportions / weights, ORDERS, sim))
        # raw and normalised gamma coincide when proportions sum to 1
        assert np.allclose(
            diversity.community_gamma(mock_proportions, ORDERS, sim),
            diversity.community_gamma_bar(mock_proportions, ORDERS, sim),
        )


def test_identical_subcommunities():
    props = np.array([[0.1, 0.1], [0.15, 0.15], [0.25, 0.25]])
    for sim in [None, mock.mock_similarity_matrix(3)]:
        assert np.allclose(diversity.community_beta_bar(props, ORDERS, sim), 1)
        assert np.allclose(diversity.community_beta(props, ORDERS, sim), 0.5)
        assert np.allclose(diversity.ecosystem_beta_bar(props, ORDERS, sim), 1)
        # all subcommunities look like the metacommunity
        assert np.allclose(
            diversity.community_alpha_bar(props, ORDERS, sim), diversity.community_gamma(props, ORDERS, sim)
        )


def test_distinct_subcommunities():
    props = np.array([[0.5, 0.0], [0.0, 0.5]])
    assert np.allclose(diversity.community_alpha_bar(props, ORDERS), 1)
    assert np.allclose(diversity.community_alpha(props, ORDERS), 2)
    assert np.allclose(diversity.community_beta_bar(props, ORDERS), 2)
    assert np.allclose(diversity.community_beta(props, ORDERS), 1)
    assert np.allclose(diversity.community_gamma(props, ORDERS), 2)
    for ecosystem_measure, expected in [
        (diversity.ecosystem_alpha, 2),
        (diversity.ecosystem_alpha_bar, 1),
        (diversity.ecosystem_beta, 1),
        (diversity.ecosystem_beta_bar, 2),
        (diversity.ecosystem_gamma, 2),
        (diversity.ecosystem_gamma_bar, 2),
    ]:
        ecosystem = ecosystem_measure(props, ORDERS)
        assert ecosystem.shape == (len(ORDERS),)
        assert np.allclose(ecosystem, expected)


def test_empty_subcommunity():
    props = np.array([[0.5, 0.0], [0.5, 0.0]])
    alpha_bar = diversity.community_alpha_bar(props, ORDERS)
    assert np.allclose(alpha_bar[0], 2)
    assert np.all(np.isnan(alpha_bar[1]))
    # the empty subcommunity carries no weight
    assert np.allclose(diversity.ecosystem_alpha_bar(props, ORDERS), 2)


def test_measure_shapes(mock_proportions, mock_similarity):
    for measure in COMMUNITY_MEASURES:
        assert measure(mock_proportions, 1).shape == (3,)
        assert measure(mock_proportions, [1]).shape == (3, 1)
        assert measure(mock_proportions, ORDERS, mock_similarity).shape == (3, len(ORDERS))
        assert np.all(np.isfinite(measure(mock_proportions, ORDERS, mock_similarity)))
    with pytest.raises(ValueError):
        diversity.community_alpha(mock_proportions[:, 0], 1)
    with pytest.raises(checks.DimensionMismatch):
        diversity.community_beta(mock_proportions, 1, mock_similarity[:4, :4])


def test_metacommunity_inputs(mock_proportions, mock_similarity):
    meta = structures.Metacommunity(mock_proportions, structures.GeneralTypes(mock_similarity))
    for measure in COMMUNITY_MEASURES:
        assert np.allclose(measure(meta, ORDERS), measure(mock_proportions, ORDERS, mock_similarity))
    assert np.allclose(
        diversity.ecosystem_beta(meta, ORDERS), diversity.ecosystem_beta(mock_proportions, ORDERS, mock_similarity)
    )
    with pytest.raises(TypeError):
        diversity.community_alpha(meta, 1, mock_similarity)


def test_collapsed_types_metacommunity(collapsed_types):
    props = np.array([[0.1, 0.2], [0.2, 0.1], [0.15, 0.05], [0.05, 0.15]])
    meta = structures.Metacommunity(props, collapsed_types)
    # measures act on the processed types with the rescaled similarity
    processed, zmatrix = diversity.resolve_similarity(props, collapsed_types)
    assert np.allclose(
        diversity.community_alpha_bar(meta, ORDERS), diversity.community_alpha_bar(processed, ORDERS, zmatrix)
    )
    assert np.allclose(
        diversity.community_alpha_bar(props, ORDERS, collapsed_types),
        diversity.community_alpha_bar(meta, ORDERS),
    )


def test_diversity(mock_proportions, mock_similarity):
    weights = mock_proportions.sum(axis=0)
    for measure in COMMUNITY_MEASURES:
        result = diversity.diversity(measure, mock_proportions, ORDERS, mock_similarity)
        assert isinstance(result, diversity.DiversityResult)
        assert result.community.shape == (3, len(ORDERS))
        assert np.allclose(result.community, measure(mock_proportions, ORDERS, mock_similarity))
        assert np.allclose(result.weights, weights)
        assert result.ecosystem.shape == (len(ORDERS),)
        for q_idx, q in enumerate(ORDERS):
            assert np.isclose(result.ecosystem[q_idx], diversity.powermean(result.community[:, q_idx], 1 - q, weights))
        # the community array has orders as columns even for a single order
        result = diversity.diversity(measure, mock_proportions, 2, mock_similarity)
        assert result.community.shape == (3, 1)
        assert result.ecosystem.shape == (1,)


def test_diversity_flags(mock_proportions):
    weights = mock_proportions.sum(axis=0)
    measure = diversity.community_alpha
    result = diversity.diversity(measure, mock_proportions, ORDERS, None, False, False, True)
    assert result.ecosystem is None and result.community is None
    assert np.allclose(result.weights, weights)
    result = diversity.diversity(measure, mock_proportions, ORDERS, None, False, False, False)
    assert result == diversity.DiversityResult()
    result = diversity.diversity(measure, mock_proportions, ORDERS, None, True, False, False)
    assert result.community is None and result.weights is None
    assert np.allclose(result.ecosystem, diversity.ecosystem_alpha(mock_proportions, ORDERS))
    result = diversity.diversity(measure, mock_proportions, ORDERS, None, False, True, False)
    assert result.ecosystem is None and result.weights is None
    assert result.community.shape == (3, len(ORDERS))
    result = diversity.diversity(measure, mock_proportions, ORDERS, None, False, True, True)
    assert result.ecosystem is None
    assert result.community is not None and result.weights is not None
    result = diversity.diversity(measure, mock_proportions, ORDERS, None, True, False, True)
    assert result.community is None
    assert result.ecosystem is not None and result.weights is not None


def test_get_measure():
    assert diversity.get_measure("raw_alpha").community is diversity.community_alpha
    assert diversity.get_measure(diversity.ecosystem_gamma_bar).label == "NormalisedGamma"
    assert diversity.get_measure(diversity.community_beta).ecosystem is diversity.ecosystem_beta
    measure = diversity.MEASURES["normalised_beta"]
    assert diversity.get_measure(measure) is measure
    with pytest.raises(ValueError):
        diversity.get_measure("rho")
    with pytest.raises(TypeError):
        diversity.get_measure(diversity.qD)
