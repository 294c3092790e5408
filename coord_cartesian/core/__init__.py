"""Core foundation classes for the least-cost surface.

This module provides the raster and graph backbone:
- RasterGrid / GridCell: Elevation raster with affine lon/lat mapping
- GeoTiffRasterSource: Reads raster windows around the sites
- BarrierPredicate: Navigable elevation band
- ConductanceModel / TransitionModel: Edge conductance between adjacent cells
- GridGraph: Navigable cells and transition construction
- GeoCalculator: Haversine and planar distances
"""

from coord_cartesian.core.barrier import BarrierPredicate
from coord_cartesian.core.conductance import ConductanceModel, TransitionModel
from coord_cartesian.core.geo_calculator import GeoCalculator
from coord_cartesian.core.grid_graph import GridGraph
from coord_cartesian.core.raster_grid import (
    GeoTiffRasterSource,
    GridCell,
    RasterGrid,
    RasterSource,
)

__all__ = [
    # Raster
    "RasterGrid",
    "GridCell",
    "RasterSource",
    "GeoTiffRasterSource",
    # Barrier and conductance
    "BarrierPredicate",
    "ConductanceModel",
    "TransitionModel",
    # Graph
    "GridGraph",
    # Geo calculator
    "GeoCalculator",
]
