"""
The `structures` module defines the types, partition and metacommunity abstractions used by `divpart`.

A metacommunity composes three things: an abundance array (types x subcommunities), an `AbstractTypes` describing what
the types are and how similar they are to one another, and an `AbstractPartition` describing how the metacommunity is
divided into subcommunities. The diversity measures in [`metrics.diversity`](/metrics/diversity) operate on these.

New similarity representations (e.g. phylogenetic similarity computed elsewhere) can be supported by subclassing
`AbstractTypes` and implementing `get_type_names` and `calc_similarity`; the remaining methods have generic defaults.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

import numpy as np
import numpy.typing as npt

from divpart import config
from divpart.algos import checks

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

FLOAT_TYPES: frozenset[type] = frozenset({np.float16, np.float32, np.float64, np.longdouble})


def _cast_dtype(dtype: Any) -> Optional[type]:
    """Cast a dtype-like to a numpy floating point scalar type, or None if not declared."""
    if dtype is None:
        return None
    dtype = np.dtype(dtype).type
    if dtype not in FLOAT_TYPES:
        raise TypeError(f"Expected a floating point dtype but encountered {dtype}.")
    return dtype


def _default_names(names_or_count: Union[int, list[str], tuple[str], npt.NDArray[np.str_]]) -> list[str]:
    """Expand a count into "1".."n" names, or copy a sequence of names."""
    if isinstance(names_or_count, (int, np.integer)):
        if names_or_count < 1:
            raise ValueError("Please provide a positive count.")
        return [str(idx) for idx in range(1, names_or_count + 1)]
    names = [str(name) for name in names_or_count]
    if len(names) == 0:
        raise ValueError("Encountered empty iterable of names.")
    if len(set(names)) != len(names):
        raise ValueError("Names must be unique.")
    return names


class AbstractTypes(ABC):
    """
    Abstract supertype for all similarity types.

    Subclasses define how similarity is measured between individuals. Only `get_type_names` and `calc_similarity`
    must be implemented. `raw` types are those in which abundances are supplied, processed types are those over which
    similarity is measured. These differ where, for instance, a phylogeny maps raw species onto branches.
    """

    dtype: Optional[type] = None

    @abstractmethod
    def get_type_names(self, raw: bool = False) -> list[str]:
        """Return the names of the raw or processed types."""

    @abstractmethod
    def calc_similarity(self, scale: float = 1.0) -> npt.NDArray[np.float64]:
        """Return (and possibly calculate) the processed types similarity matrix."""

    def count_types(self, raw: bool = False) -> int:
        """Return the number of raw or processed types."""
        return len(self.get_type_names(raw))

    def calc_abundance(self, abundance: npt.NDArray[np.float64]) -> tuple[npt.NDArray[np.float64], float]:
        """
        Convert raw type abundances into processed type abundances.

        Returns the processed abundances and a scale factor for use with `calc_similarity`. By default there is no
        transformation and the scale factor is 1.
        """
        return abundance, 1.0

    def calc_ordinariness(self, abundance: npt.NDArray[np.float64], scale: float = 1.0) -> npt.NDArray[np.float64]:
        """Return the ordinariness (similarity-weighted abundance) of raw type abundances."""
        processed, _ = self.calc_abundance(abundance)
        return self.calc_similarity(scale) @ processed

    def get_diversity_name(self) -> str:
        """Return the name of the diversity type, used to tag reported results."""
        return type(self).__name__

    def added_output_cols(self) -> dict[str, Any]:
        """Return the names (and default values) of any additional columns needed to disambiguate reported results."""
        return {}

    def get_added_output(self) -> dict[str, Any]:
        """Return the contents of any additional columns to be added to reported results."""
        return {}

    def floattypes(self) -> set[type]:
        """Return the floating point types this object is compatible with."""
        if self.dtype is None:
            return set(FLOAT_TYPES)
        return {self.dtype}


class UniqueTypes(AbstractTypes):
    """
    Types which are each entirely distinct from one another.

    The similarity matrix is the identity, which reduces similarity-sensitive measures to naive (Hill number) ones.
    """

    def __init__(
        self,
        names: Union[int, list[str], tuple[str], npt.NDArray[np.str_]],
        dtype: Any = None,
    ):
        """
        Instance `UniqueTypes`.

        Parameters
        ----------
        names: int | list[str]
            Either the number of types, in which case they are named "1" to "n", or the type names.
        dtype: numpy float dtype
            An optional floating point type to restrict compatibility to.

        """
        self.names = _default_names(names)
        self.dtype = _cast_dtype(dtype)
        self._similarity: Optional[npt.NDArray[np.float64]] = None

    def get_type_names(self, raw: bool = False) -> list[str]:
        return list(self.names)

    def calc_similarity(self, scale: float = 1.0) -> npt.NDArray[np.float64]:
        if self._similarity is None:
            similarity = np.identity(len(self.names), dtype=self.dtype or np.float64)
            similarity.flags.writeable = False
            self._similarity = similarity
        return self._similarity

    def calc_ordinariness(self, abundance: npt.NDArray[np.float64], scale: float = 1.0) -> npt.NDArray[np.float64]:
        # identity similarity
        processed, _ = self.calc_abundance(abundance)
        return np.array(processed, copy=True)

    def get_diversity_name(self) -> str:
        return "Unique"


class GeneralTypes(AbstractTypes):
    """
    Types with an arbitrary, caller-supplied, similarity matrix.

    The matrix is validated for shape and for finite non-negative values only; entries are conventionally in [0, 1]
    with 1s on the diagonal, but this is not enforced.
    """

    def __init__(
        self,
        zmatrix: npt.NDArray[np.float64],
        names: Optional[Union[list[str], tuple[str], npt.NDArray[np.str_]]] = None,
        dtype: Any = None,
    ):
        """
        Instance `GeneralTypes`.

        Parameters
        ----------
        zmatrix: ndarray[float]
            A square NxN similarity matrix between types.
        names: list[str]
            Optional type names, by default "1" to "n".
        dtype: numpy float dtype
            An optional floating point type, by default that of `zmatrix` if floating point.

        """
        if not isinstance(zmatrix, np.ndarray):
            raise TypeError("Please provide the similarity matrix as a numpy.ndarray.")
        if dtype is None and zmatrix.dtype.type in FLOAT_TYPES:
            dtype = zmatrix.dtype
        self.dtype = _cast_dtype(dtype)
        checks.check_similarity_data(zmatrix)
        if names is None:
            names = len(zmatrix)
        self.names = _default_names(names)
        if len(self.names) != len(zmatrix):
            raise checks.DimensionMismatch("Number of type names must match the similarity matrix dimensions.")
        zmatrix = np.array(zmatrix, dtype=self.dtype or np.float64)
        zmatrix.flags.writeable = False
        self.zmatrix = zmatrix

    def get_type_names(self, raw: bool = False) -> list[str]:
        return list(self.names)

    def calc_similarity(self, scale: float = 1.0) -> npt.NDArray[np.float64]:
        return self.zmatrix

    def get_diversity_name(self) -> str:
        return "Arbitrary Z"


class AbstractPartition(ABC):
    """
    Abstract supertype for all partitioning types.

    Subclasses define how the metacommunity (e.g. an ecosystem) is partitioned into subcommunities. Only
    `get_subcommunity_names` must be implemented.
    """

    dtype: Optional[type] = None

    @abstractmethod
    def get_subcommunity_names(self) -> list[str]:
        """Return the names of the subcommunities."""

    def count_subcommunities(self) -> int:
        """Return the number of subcommunities."""
        return len(self.get_subcommunity_names())

    def floattypes(self) -> set[type]:
        """Return the floating point types this object is compatible with."""
        if self.dtype is None:
            return set(FLOAT_TYPES)
        return {self.dtype}


class Onecommunity(AbstractPartition):
    """A partition consisting of a single subcommunity."""

    def __init__(self, name: str = "1"):
        self.name = str(name)

    def get_subcommunity_names(self) -> list[str]:
        return [self.name]


class Subcommunities(AbstractPartition):
    """A partition into named subcommunities."""

    def __init__(self, names: Union[int, list[str], tuple[str], npt.NDArray[np.str_]]):
        """
        Instance `Subcommunities`.

        Parameters
        ----------
        names: int | list[str]
            Either the number of subcommunities, in which case they are named "1" to "n", or the subcommunity names.

        """
        self.names = _default_names(names)

    def get_subcommunity_names(self) -> list[str]:
        return list(self.names)


class AbstractMetacommunity(ABC):
    """
    Abstract supertype for all metacommunity types.

    Composes an `AbstractTypes`, an `AbstractPartition`, and an abundance array of types x subcommunities. Subclasses
    must provide `types`, `partition`, `get_abundance`, and `get_scale`. Ordinariness is computed on first access and
    then cached for the lifetime of the instance; abundances must therefore not change after construction.
    """

    dtype: type = np.float64

    def __init__(self) -> None:
        self._cache_lock = threading.Lock()
        self._ordinariness: Optional[npt.NDArray[np.float64]] = None
        self._meta_ordinariness: Optional[npt.NDArray[np.float64]] = None

    @property
    @abstractmethod
    def types(self) -> AbstractTypes:
        """The `AbstractTypes` component of the metacommunity."""

    @property
    @abstractmethod
    def partition(self) -> AbstractPartition:
        """The `AbstractPartition` component of the metacommunity."""

    @abstractmethod
    def get_abundance(self, raw: bool = False) -> npt.NDArray[np.float64]:
        """Return the raw or processed abundances, types x subcommunities."""

    @abstractmethod
    def get_scale(self) -> float:
        """Return the similarity scaling factor for the metacommunity, 1 unless the types rescale similarity."""

    def get_meta_abundance(self, raw: bool = False) -> npt.NDArray[np.float64]:
        """Return the metacommunity abundance of each raw or processed type, summed across subcommunities."""
        return self.get_abundance(raw).sum(axis=1)

    def get_weight(self) -> npt.NDArray[np.float64]:
        """Return the subcommunity weights, i.e. the total processed abundance of each subcommunity."""
        return self.get_abundance(False).sum(axis=0)

    def get_ordinariness(self) -> npt.NDArray[np.float64]:
        """Return (calculating on first access) the ordinariness of each processed type in each subcommunity."""
        if self._ordinariness is None:
            with self._cache_lock:
                if self._ordinariness is None:
                    ordinariness = self.types.calc_ordinariness(self.get_abundance(True), self.get_scale())
                    if config.DEBUG_MODE:
                        logger.info(f"Computed ordinariness of shape {ordinariness.shape}.")
                    ordinariness.flags.writeable = False
                    self._ordinariness = ordinariness
        return self._ordinariness

    def get_meta_ordinariness(self) -> npt.NDArray[np.float64]:
        """Return (calculating on first access) the ordinariness of each processed type in the metacommunity."""
        if self._meta_ordinariness is None:
            ordinariness = self.get_ordinariness()
            with self._cache_lock:
                if self._meta_ordinariness is None:
                    meta_ordinariness = ordinariness.sum(axis=1)
                    meta_ordinariness.flags.writeable = False
                    self._meta_ordinariness = meta_ordinariness
        return self._meta_ordinariness

    def count_types(self, raw: bool = False) -> int:
        """Return the number of raw or processed types."""
        return self.types.count_types(raw)

    def get_type_names(self, raw: bool = False) -> list[str]:
        """Return the names of the raw or processed types."""
        return self.types.get_type_names(raw)

    def count_subcommunities(self) -> int:
        """Return the number of subcommunities."""
        return self.partition.count_subcommunities()

    def get_subcommunity_names(self) -> list[str]:
        """Return the names of the subcommunities."""
        return self.partition.get_subcommunity_names()

    def get_diversity_name(self) -> str:
        """Return the name of the diversity type used."""
        return self.types.get_diversity_name()

    def added_output_cols(self) -> dict[str, Any]:
        """Return the names of any additional columns needed to disambiguate the diversity type used."""
        return self.types.added_output_cols()

    def get_added_output(self) -> dict[str, Any]:
        """Return the contents of any additional columns to be added to outputs."""
        return self.types.get_added_output()

    def floattypes(self) -> set[type]:
        """Return the floating point types this object is compatible with."""
        return {self.dtype}


class Metacommunity(AbstractMetacommunity):
    """
    A metacommunity of abundances, types and a partition.

    Abundances are normalised to sum to 1. Integer counts are normalised silently; floating point abundances which do
    not already sum to 1 are normalised with a warning.
    """

    def __init__(
        self,
        abundances: Union[npt.NDArray[np.float64], npt.NDArray[np.int_], list[Any]],
        types: Optional[AbstractTypes] = None,
        partition: Optional[AbstractPartition] = None,
        dtype: Any = None,
    ):
        """
        Instance a `Metacommunity`.

        Parameters
        ----------
        abundances: ndarray[float | int]
            Abundances of raw types (rows) in each subcommunity (columns). A vector is treated as a single
            subcommunity.
        types: AbstractTypes
            Optional types, by default `UniqueTypes` matching the number of rows.
        partition: AbstractPartition
            Optional partition, by default `Onecommunity` for a vector, else `Subcommunities` matching the number of
            columns.
        dtype: numpy float dtype
            The floating point type to hold abundances in, by default that of `abundances` if floating point, else
            float64.

        """
        super().__init__()
        abundances = np.asarray(abundances)
        if abundances.ndim == 1:
            abundances = abundances.reshape(-1, 1)
            if partition is None:
                partition = Onecommunity()
        counts = not np.issubdtype(abundances.dtype, np.floating)
        if dtype is None:
            dtype = np.float64 if counts else abundances.dtype
        self.dtype = _cast_dtype(dtype)  # type: ignore
        abundances = np.array(abundances, dtype=self.dtype)
        checks.check_abundance_data(abundances)
        total = abundances.sum()
        if total == 0:
            raise ValueError("The abundances must not all be zero.")
        if not checks.sums_to_one(abundances):
            if not counts:
                logger.warning("Abundances not normalised to 1, correcting...")
            abundances = abundances / total
        if types is None:
            types = UniqueTypes(abundances.shape[0])
        if partition is None:
            partition = Subcommunities(abundances.shape[1])
        if not typematch(abundances, types, partition):
            raise TypeError("Abundances, types and partition have incompatible floating point types.")
        if not mcmatch(abundances, types, partition):
            raise checks.DimensionMismatch(
                "Types and partition are incompatible with the abundances: "
                f"{types.count_types(True)} raw types and {partition.count_subcommunities()} subcommunities for a "
                f"{abundances.shape[0]}x{abundances.shape[1]} abundance array."
            )
        abundances.flags.writeable = False
        self._types = types
        self._partition = partition
        self._raw_abundance = abundances
        processed, scale = types.calc_abundance(abundances)
        processed = np.array(processed, dtype=self.dtype)
        processed.flags.writeable = False
        self._abundance = processed
        self._scale = float(scale)

    @property
    def types(self) -> AbstractTypes:
        return self._types

    @property
    def partition(self) -> AbstractPartition:
        return self._partition

    def get_abundance(self, raw: bool = False) -> npt.NDArray[np.float64]:
        return self._raw_abundance if raw else self._abundance

    def get_scale(self) -> float:
        return self._scale


def floattypes(obj: Any) -> set[type]:
    """
    Return the set of floating point types compatible with a `divpart` related object.

    Arrays are compatible with their own element type; types, partitions and metacommunities report their own
    compatibility.
    """
    if isinstance(obj, (AbstractTypes, AbstractPartition, AbstractMetacommunity)):
        return obj.floattypes()
    if isinstance(obj, np.ndarray):
        return {obj.dtype.type}
    raise TypeError(f"Unable to determine floating point types for {type(obj)}.")


def typematch(*args: Any) -> bool:
    """Check whether a variety of `divpart` related objects have compatible floating point types."""
    compatible = set(FLOAT_TYPES)
    for arg in args:
        compatible &= floattypes(arg)
    return len(compatible) >= 1


def mcmatch(procm: npt.NDArray[np.float64], sim: AbstractTypes, part: AbstractPartition) -> bool:
    """
    Check for type and size compatibility between the elements contributing to a metacommunity.

    Parameters
    ----------
    procm: ndarray[float]
        An abundance array of raw types x subcommunities.
    sim: AbstractTypes
        The types describing the rows of `procm`.
    part: AbstractPartition
        The partition describing the columns of `procm`.

    Returns
    -------
    bool
        Whether the floating point types agree, the raw and processed type counts match the raw and processed abundance
        rows, the subcommunity count matches the columns, and the abundances sum to 1.

    """
    if procm.ndim != 2:
        return False
    if sim.count_types(True) != procm.shape[0]:
        return False
    realm = sim.calc_abundance(procm)[0]
    return (
        typematch(realm, sim, part)
        and sim.count_types(False) == realm.shape[0]
        and part.count_subcommunities() == realm.shape[1]
        and checks.sums_to_one(realm)
    )
