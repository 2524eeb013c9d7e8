# pyright: basic
from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt
import pytest

from divpart import structures
from divpart.tools import mock


class CollapsedTypes(structures.AbstractTypes):
    """
    Types where raw types are pooled into fewer processed types.

    Stands in for similarity providers, such as phylogenies, where abundances are mapped from raw types onto a different
    set of processed types, and where the similarity is rescaled.
    """

    def __init__(self, membership: npt.NDArray[np.float64], zmatrix: npt.NDArray[np.float64], scale: float = 1.0):
        self.membership = membership
        self.zmatrix = zmatrix
        self.scale = scale

    def get_type_names(self, raw: bool = False) -> list[str]:
        if raw:
            return [f"raw_{idx}" for idx in range(self.membership.shape[1])]
        return [f"pooled_{idx}" for idx in range(self.membership.shape[0])]

    def calc_abundance(self, abundance: npt.NDArray[np.float64]) -> tuple[npt.NDArray[np.float64], float]:
        return self.membership @ abundance, self.scale

    def calc_similarity(self, scale: float = 1.0) -> npt.NDArray[np.float64]:
        return self.zmatrix**scale

    def get_diversity_name(self) -> str:
        return "Collapsed"

    def added_output_cols(self) -> dict[str, Any]:
        return {"scale": 1.0}

    def get_added_output(self) -> dict[str, Any]:
        return {"scale": self.scale}


@pytest.fixture
def example_proportions() -> npt.NDArray[np.float64]:
    """Three types in two subcommunities, summing to 1."""
    return np.array([[0.25, 0.125], [0.125, 0.25], [0.125, 0.125]])


@pytest.fixture
def mock_proportions() -> npt.NDArray[np.float64]:
    """Six types in three subcommunities, summing to 1."""
    return mock.mock_abundances(n_types=6, n_subcommunities=3)


@pytest.fixture
def mock_similarity() -> npt.NDArray[np.float64]:
    """A similarity matrix for six types."""
    return mock.mock_similarity_matrix(n_types=6)


@pytest.fixture
def collapsed_types() -> CollapsedTypes:
    """Four raw types pooled into two processed types."""
    membership = np.array([[1.0, 1.0, 0.0, 0.0], [0.0, 0.0, 1.0, 1.0]])
    zmatrix = np.array([[1.0, 0.5], [0.5, 1.0]])
    return CollapsedTypes(membership, zmatrix, scale=2.0)
