"""
A collection of functions for the generation of mock data.

This module is intended for project development and writing code tests, but may otherwise be useful for demonstration
and utility purposes.
"""
from __future__ import annotations

import logging
from typing import Generator

import numpy as np
import numpy.typing as npt

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def mock_species_data(
    random_seed: int = 0,
) -> Generator[tuple[npt.NDArray[np.int_], npt.NDArray[np.float64]], None, None]:
    """
    Generate a series of randomly generated counts and corresponding probabilities.

    This function is used for testing diversity measures. The data is generated in varying lengths from randomly
    assigned integers between 1 and 10. Matching integers are then collapsed into species "classes" with probabilities
    computed accordingly.

    Parameters
    ----------
    random_seed: int
        An optional random seed, by default 0

    Yields
    ------
    counts: ndarray[int]
        The number of members for each species class.
    probs: ndarray[float]
        The probability of encountering the respective species classes.

    Examples
    --------
    ```python
    from divpart.tools import mock

    for counts, probs in mock.mock_species_data():
        cs = [c for c in counts]
        print(f'c = {cs}')
        ps = [round(p, 3) for p in probs]
        print(f'p = {ps}')

    # c = [1]
    # p = [1.0]

    # etc.
    ```

    """
    rng = np.random.default_rng(random_seed)
    for n in range(1, 50, 5):
        data = rng.integers(1, 10, n)
        unique: npt.NDArray[np.int_] = np.unique(data)
        counts: npt.NDArray[np.int_] = np.zeros_like(unique, dtype=np.int_)
        for idx, uniq in enumerate(unique):
            counts[idx] = (data == uniq).sum()
        probs = counts / len(data)

        yield counts, probs


def mock_abundances(
    n_types: int = 6,
    n_subcommunities: int = 3,
    random_seed: int = 0,
    empty_types: int = 0,
) -> npt.NDArray[np.float64]:
    """
    Generate a mock metacommunity proportions array of types x subcommunities, summing to 1.

    Parameters
    ----------
    n_types: int
        The number of types (rows).
    n_subcommunities: int
        The number of subcommunities (columns).
    random_seed: int
        An optional random seed, by default 0
    empty_types: int
        The number of leading types to zero out in the first subcommunity, for exercising zero-abundance edge cases.

    Returns
    -------
    ndarray[float]
        A proportions array summing to 1.

    """
    rng = np.random.default_rng(random_seed)
    counts = rng.integers(1, 20, (n_types, n_subcommunities)).astype(np.float64)
    counts[:empty_types, 0] = 0
    return counts / counts.sum()


def mock_similarity_matrix(n_types: int = 6, random_seed: int = 0) -> npt.NDArray[np.float64]:
    """
    Generate a mock symmetric similarity matrix with ones on the diagonal and off-diagonal values in [0, 1).

    Parameters
    ----------
    n_types: int
        The number of types.
    random_seed: int
        An optional random seed, by default 0

    Returns
    -------
    ndarray[float]
        An NxN similarity matrix.

    """
    rng = np.random.default_rng(random_seed)
    raw = rng.uniform(0, 1, (n_types, n_types))
    sim = (raw + raw.T) / 2
    np.fill_diagonal(sim, 1)
    return sim
