from __future__ import annotations

from typing import TYPE_CHECKING, Union

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from divpart.structures import AbstractTypes

QsType = Union[  # pylint: disable=invalid-name
    int,
    float,
    Union[list[int], list[float]],
    Union[tuple[int], tuple[float]],
    Union[npt.NDArray[np.int_], npt.NDArray[np.float64]],
]
SimilarityType = Union[  # pylint: disable=invalid-name
    None,
    npt.NDArray[np.float64],
    "AbstractTypes",
]
