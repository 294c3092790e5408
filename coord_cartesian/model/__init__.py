"""Data model classes for sites and computed artifacts.

- Site / BoundingBox: Inputs (ordered sites, raster request window)
- SitePlacement / SiteCheck: Barrier validation outcome per site
- DistanceMatrix: Least-cost distances in site order
- Embedding: Cartesian coordinates and stress
- FitSummary: Log-log fit diagnostic
- CartesianResult: Bundle returned by the pipeline
- Warning: Advisories attached to results
"""

from coord_cartesian.model.results import (
    CartesianResult,
    DistanceMatrix,
    Embedding,
    FitSummary,
    SiteCheck,
    SitePlacement,
)
from coord_cartesian.model.site import BoundingBox, Site
from coord_cartesian.model.warning import (
    HighStressWarning,
    SharedCellWarning,
    Warning,
)

__all__ = [
    "Site",
    "BoundingBox",
    "SitePlacement",
    "SiteCheck",
    "DistanceMatrix",
    "Embedding",
    "FitSummary",
    "CartesianResult",
    "Warning",
    "HighStressWarning",
    "SharedCellWarning",
]
