"""Embedding of least-cost distances into Cartesian coordinates.

- NonmetricMDS: SMACOF nonmetric scaling with Kruskal stress-1
- monotone_regression / disparities: Pool-adjacent-violators fit
- FitReporter: Log-log regression diagnostic
"""

from coord_cartesian.embedding.fit_reporter import FitReporter
from coord_cartesian.embedding.isotonic import disparities, monotone_regression
from coord_cartesian.embedding.nonmetric_mds import NonmetricMDS, kruskal_stress

__all__ = [
    "NonmetricMDS",
    "kruskal_stress",
    "monotone_regression",
    "disparities",
    "FitReporter",
]
