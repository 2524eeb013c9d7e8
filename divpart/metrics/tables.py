"""
Tabulate diversity measures for a metacommunity as `pandas` `DataFrame`s.

Rows are labelled with the measure, order, diversity type and subcommunity names, plus any additional columns the
metacommunity's types require to disambiguate results (e.g. a similarity scaling parameter).
"""
from __future__ import annotations

import logging
from typing import Any, Union

import numpy as np
import numpy.typing as npt
import pandas as pd

from divpart import config, dvtypes
from divpart.metrics import diversity
from divpart.structures import AbstractMetacommunity, Metacommunity

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

OUTPUT_COLS: list[str] = [
    "div_type",
    "measure",
    "q",
    "type_level",
    "type_name",
    "partition_level",
    "partition_name",
    "diversity",
]


def _append_added_output(frame: pd.DataFrame, meta: AbstractMetacommunity) -> pd.DataFrame:
    added = {**meta.added_output_cols(), **meta.get_added_output()}
    for col, val in added.items():
        frame[col] = val
    return frame


def subdiv(meta: AbstractMetacommunity, measure: Any, qs: dvtypes.QsType) -> pd.DataFrame:
    """
    Compute a subcommunity diversity measure and tabulate one row per subcommunity and order.

    Parameters
    ----------
    meta: AbstractMetacommunity
        The metacommunity.
    measure: str | Callable
        A key of [`diversity.MEASURES`](/metrics/diversity#measures), e.g. "normalised_alpha", or one of the measure
        functions.
    qs: float | list[float]
        An order, or sequence of orders, of diversity.

    Returns
    -------
    DataFrame
        Columns `div_type`, `measure`, `q`, `type_level`, `type_name`, `partition_level`, `partition_name`,
        `diversity`, followed by any additional output columns from the metacommunity's types.

    """
    selected = diversity.get_measure(measure)
    orders, _ = diversity._cast_qs(qs)  # pylint: disable=protected-access
    if not config.QUIET_MODE:
        logger.info(f"Computing {selected.label} subcommunity diversity for q = {', '.join(map(str, orders))}")
    community = selected.community(meta, orders)
    rows: list[dict[str, Union[str, float]]] = []
    for sub_idx, sub_name in enumerate(meta.get_subcommunity_names()):
        for q_idx, q_key in enumerate(orders):
            rows.append(
                {
                    "div_type": meta.get_diversity_name(),
                    "measure": selected.label,
                    "q": q_key,
                    "type_level": "types",
                    "type_name": "",
                    "partition_level": "subcommunity",
                    "partition_name": sub_name,
                    "diversity": community[sub_idx, q_idx],
                }
            )
    return _append_added_output(pd.DataFrame(rows, columns=OUTPUT_COLS), meta)


def metadiv(meta: AbstractMetacommunity, measure: Any, qs: dvtypes.QsType) -> pd.DataFrame:
    """
    Compute an ecosystem (metacommunity) diversity measure and tabulate one row per order.

    See [`subdiv`](#subdiv) for parameters. The `partition_level` column is "metacommunity".

    """
    selected = diversity.get_measure(measure)
    orders, _ = diversity._cast_qs(qs)  # pylint: disable=protected-access
    if not config.QUIET_MODE:
        logger.info(f"Computing {selected.label} metacommunity diversity for q = {', '.join(map(str, orders))}")
    ecosystem = selected.ecosystem(meta, orders)
    rows = [
        {
            "div_type": meta.get_diversity_name(),
            "measure": selected.label,
            "q": q_key,
            "type_level": "types",
            "type_name": "",
            "partition_level": "metacommunity",
            "partition_name": "",
            "diversity": ecosystem[q_idx],
        }
        for q_idx, q_key in enumerate(orders)
    ]
    return _append_added_output(pd.DataFrame(rows, columns=OUTPUT_COLS), meta)


def hill_number(proportions: Union[npt.ArrayLike, npt.NDArray[np.float64]], qs: dvtypes.QsType) -> pd.DataFrame:
    """
    Compute the Hill number (naive diversity) of one or more populations.

    Parameters
    ----------
    proportions: ndarray[float]
        Relative proportions of types in a population, or an array where each column is a separate population.
    qs: float | list[float]
        An order, or sequence of orders, of diversity.

    Returns
    -------
    DataFrame
        As for [`subdiv`](#subdiv) of normalised alpha, with `measure` set to "HillNumber" and without `div_type`.

    """
    hill = subdiv(Metacommunity(proportions), "normalised_alpha", qs)
    hill["measure"] = "HillNumber"
    return hill.drop(columns=["div_type"])
