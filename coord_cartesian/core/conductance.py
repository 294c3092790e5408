"""Conductance model and transition structure for least-cost routing.

Conductance is the ease of moving between two adjacent cells. It is computed
from the two endpoint elevations by a transform and then length-corrected, so
that the cost of an edge (1 / conductance) equals its length divided by the raw
conductance. With the default constant transform, least-cost distances are
plain path lengths through the navigable medium (kilometres for geographic
rasters).

Edges touching a blocked cell never enter the transition structure: barriers
are absolute, not merely expensive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Union

import numpy as np
from scipy.sparse import csr_matrix

from coord_cartesian.constants import ConductanceConfig
from coord_cartesian.core.barrier import BarrierPredicate
from coord_cartesian.core.geo_calculator import GeoCalculator
from coord_cartesian.core.raster_grid import GridCell
from coord_cartesian.errors import InvalidInputError

if TYPE_CHECKING:
    from coord_cartesian.core.grid_graph import GridGraph

logger = logging.getLogger(__name__)

ConductanceTransform = Callable[[np.ndarray, np.ndarray], np.ndarray]


def constant_conductance(from_elev: np.ndarray, to_elev: np.ndarray) -> np.ndarray:
    """Every in-band edge conducts equally."""
    return np.ones_like(from_elev, dtype=np.float64)


def reciprocal_difference_conductance(from_elev: np.ndarray, to_elev: np.ndarray) -> np.ndarray:
    """Conductance falls with the elevation step: 1 / (1 + |e_to - e_from|)."""
    return 1.0 / (1.0 + np.abs(to_elev - from_elev))


_TRANSFORMS: dict[str, ConductanceTransform] = {
    "constant": constant_conductance,
    "reciprocal_difference": reciprocal_difference_conductance,
}
TRANSFORM_NAMES = tuple(_TRANSFORMS)


class ConductanceModel:
    """Edge conductance as a function of the two endpoint elevations.

    Args:
        transform: "constant", "reciprocal_difference", or a callable
            (from_elev, to_elev) -> conductance over NumPy arrays
        distance: Length correction - "geodesic" (haversine km), "planar"
            (raster units) or "none"
        symmetric: Whether transform(a, b) == transform(b, a). Defaults to True
            for the built-in transforms and False for callables.

    Example:
        model = ConductanceModel(transform="reciprocal_difference", distance="planar")
    """

    def __init__(
        self,
        transform: Union[str, ConductanceTransform] = ConductanceConfig.DEFAULT_TRANSFORM,
        distance: str = ConductanceConfig.DEFAULT_DISTANCE,
        symmetric: Optional[bool] = None,
    ) -> None:
        if isinstance(transform, str):
            if transform not in _TRANSFORMS:
                raise InvalidInputError(
                    f"Unknown conductance transform {transform!r}, expected one of {TRANSFORM_NAMES}"
                )
            self._transform = _TRANSFORMS[transform]
            self.name = transform
            self.symmetric = True if symmetric is None else symmetric
        elif callable(transform):
            self._transform = transform
            self.name = getattr(transform, "__name__", "custom")
            self.symmetric = bool(symmetric)
        else:
            raise InvalidInputError(f"Conductance transform must be a name or callable, got {type(transform).__name__}")

        if distance not in ConductanceConfig.DISTANCE_MODES:
            raise InvalidInputError(
                f"Unknown distance mode {distance!r}, expected one of {ConductanceConfig.DISTANCE_MODES}"
            )
        self.distance = distance

    def raw_conductance(self, from_elev: np.ndarray, to_elev: np.ndarray) -> np.ndarray:
        """Apply the transform and check its output.

        Raises:
            InvalidInputError: If the transform yields negative or non-finite values.
        """
        from_elev = np.asarray(from_elev, dtype=np.float64)
        to_elev = np.asarray(to_elev, dtype=np.float64)
        values = np.broadcast_to(
            np.asarray(self._transform(from_elev, to_elev), dtype=np.float64),
            from_elev.shape,
        )
        if not np.all(np.isfinite(values)):
            raise InvalidInputError(f"Conductance transform {self.name!r} produced non-finite values")
        if np.any(values < 0):
            raise InvalidInputError(f"Conductance transform {self.name!r} produced negative values")
        return values

    def edge_length(self, from_x, from_y, to_x, to_y) -> np.ndarray:
        """Length of edges between cell centres in the model's distance mode."""
        if self.distance == "geodesic":
            return np.asarray(GeoCalculator.haversine_distance_km(from_x, from_y, to_x, to_y), dtype=np.float64)
        if self.distance == "planar":
            return np.asarray(GeoCalculator.planar_distance(from_x, from_y, to_x, to_y), dtype=np.float64)
        return np.ones(np.shape(from_x), dtype=np.float64)

    def conductance(self, from_elev, to_elev, from_x, from_y, to_x, to_y) -> np.ndarray:
        """Length-corrected conductance; zero means no edge."""
        raw = self.raw_conductance(from_elev, to_elev)
        return raw / self.edge_length(from_x, from_y, to_x, to_y)

    def __repr__(self) -> str:
        return f"ConductanceModel(transform={self.name!r}, distance={self.distance!r}, symmetric={self.symmetric})"


@dataclass(frozen=True, eq=False)
class TransitionModel:
    """Directed conductance between adjacent navigable cells.

    Built once by GridGraph.build_transition and read-only afterwards, so a single
    instance can be shared by concurrent searches and reused across runs on the
    same grid.

    Attributes:
        conductance: (n_cells, n_cells) CSR matrix, cell id = row * n_cols + col
        shape: Raster shape the model was built for
        raster_fingerprint: RasterGrid.fingerprint of that raster
        barrier: BarrierPredicate used to exclude cells
        description: Human-readable summary of the conductance model
        costs: Matching CSR matrix of edge costs (1 / conductance)
    """

    conductance: csr_matrix
    shape: tuple[int, int]
    raster_fingerprint: str
    barrier: BarrierPredicate
    description: str = ""
    costs: csr_matrix = field(init=False, repr=False)

    def __post_init__(self) -> None:
        conductance = csr_matrix(self.conductance, dtype=np.float64)
        conductance.sum_duplicates()
        conductance.sort_indices()
        conductance.eliminate_zeros()
        object.__setattr__(self, "conductance", conductance)

        costs = conductance.copy()
        costs.data = 1.0 / costs.data
        object.__setattr__(self, "costs", costs)

    @property
    def n_cols(self) -> int:
        return self.shape[1]

    @property
    def n_cells(self) -> int:
        return self.shape[0] * self.shape[1]

    @property
    def n_edges(self) -> int:
        return self.conductance.nnz

    def matches(self, graph: "GridGraph") -> bool:
        """True if this model was built for the same raster and barrier as graph."""
        return graph.raster.fingerprint == self.raster_fingerprint and graph.barrier == self.barrier

    def neighbors(self, cell: GridCell) -> list[tuple[GridCell, float]]:
        """Reachable neighbours of a cell with their edge conductance."""
        cell_id = cell.row * self.n_cols + cell.col
        start, end = self.conductance.indptr[cell_id], self.conductance.indptr[cell_id + 1]
        return [
            (GridCell(row=int(j) // self.n_cols, col=int(j) % self.n_cols), float(c))
            for j, c in zip(self.conductance.indices[start:end], self.conductance.data[start:end])
        ]

    def is_symmetric(self, rtol: float = 1e-12) -> bool:
        """True if conductance(a -> b) == conductance(b -> a) for every edge."""
        difference = abs(self.conductance - self.conductance.T)
        if difference.nnz == 0:
            return True
        scale = max(float(abs(self.conductance).max()), 1.0)
        return float(difference.max()) <= rtol * scale

    def __repr__(self) -> str:
        return f"TransitionModel(shape={self.shape}, edges={self.n_edges}, {self.description})"
