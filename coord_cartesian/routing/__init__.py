"""Least-cost routing between sites.

- LeastCostRouter: Single-source Dijkstra searches on a thread pool
- DistanceMatrixBuilder: Site validation and the symmetric distance matrix
"""

from coord_cartesian.routing.distance_matrix import DistanceMatrixBuilder
from coord_cartesian.routing.least_cost_router import LeastCostRouter

__all__ = [
    "LeastCostRouter",
    "DistanceMatrixBuilder",
]
