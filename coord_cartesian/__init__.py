"""coord_cartesian - least-cost distances between sites, embedded in Cartesian space.

Sites (e.g. marine sampling locations) are connected by least-cost paths over
an elevation raster that only allows movement through a navigable band (by
default: below sea level). The resulting distance matrix is embedded with
nonmetric MDS, so that downstream spatial analyses can use plain Euclidean
coordinates that respect coastlines.

Package structure:
- core/: Raster grid, barrier, conductance, grid graph
- model/: Sites and result dataclasses
- routing/: Least-cost router and distance matrix builder
- embedding/: Nonmetric MDS and the fit diagnostic
- pipeline.py: End-to-end run
- io.py: CSV reading and writing
"""

from coord_cartesian.core import BarrierPredicate, ConductanceModel, GeoTiffRasterSource, RasterGrid, TransitionModel
from coord_cartesian.embedding import FitReporter, NonmetricMDS
from coord_cartesian.errors import (
    ConvergenceWarning,
    CoordCartesianError,
    DegenerateEmbeddingError,
    InvalidGridError,
    InvalidInputError,
    SiteOnBarrierError,
    UnreachablePairError,
)
from coord_cartesian.model import CartesianResult, DistanceMatrix, Embedding, FitSummary, Site
from coord_cartesian.pipeline import CartesianPipeline, PipelineConfig, coord_cartesian
from coord_cartesian.routing import DistanceMatrixBuilder, LeastCostRouter

__all__ = [
    "coord_cartesian",
    "CartesianPipeline",
    "PipelineConfig",
    "RasterGrid",
    "GeoTiffRasterSource",
    "BarrierPredicate",
    "ConductanceModel",
    "TransitionModel",
    "LeastCostRouter",
    "DistanceMatrixBuilder",
    "NonmetricMDS",
    "FitReporter",
    "Site",
    "DistanceMatrix",
    "Embedding",
    "FitSummary",
    "CartesianResult",
    "CoordCartesianError",
    "InvalidInputError",
    "InvalidGridError",
    "SiteOnBarrierError",
    "UnreachablePairError",
    "DegenerateEmbeddingError",
    "ConvergenceWarning",
]
