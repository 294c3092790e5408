"""Fit diagnostic: how well embedded distances track least-cost distances.

Regresses log10(least-cost distance) on log10(Cartesian distance) over all
site pairs where both distances are positive.
"""

import logging
from typing import Optional

import numpy as np
from scipy.stats import linregress

from coord_cartesian.errors import InvalidInputError
from coord_cartesian.model.results import DistanceMatrix, Embedding, FitSummary

logger = logging.getLogger(__name__)


class FitReporter:
    """Log-log fit of least-cost against embedded distances."""

    @staticmethod
    def pairs(distance_matrix: DistanceMatrix, embedding: Embedding) -> np.ndarray:
        """(least_cost, cartesian) for every site pair, in condensed order.

        Returns:
            (n_pairs, 2) array.
        """
        if tuple(distance_matrix.site_ids) != tuple(embedding.site_ids):
            raise InvalidInputError("Distance matrix and embedding describe different sites")
        return np.column_stack([distance_matrix.condensed(), embedding.pairwise_distances()])

    @staticmethod
    def report(distance_matrix: DistanceMatrix, embedding: Embedding) -> Optional[FitSummary]:
        """Fit log10(least_cost) = intercept + slope * log10(cartesian).

        Returns:
            FitSummary, or None if there are fewer than two usable pairs or the
            Cartesian distances have no spread.
        """
        pairs = FitReporter.pairs(distance_matrix, embedding)
        usable = pairs[(pairs[:, 0] > 0) & (pairs[:, 1] > 0)]

        if len(usable) < 2:
            logger.warning(f"Skipping fit report: only {len(usable)} pair(s) with positive distances")
            return None

        log_least_cost = np.log10(usable[:, 0])
        log_cartesian = np.log10(usable[:, 1])
        if np.ptp(log_cartesian) == 0:
            logger.warning("Skipping fit report: all Cartesian distances are equal")
            return None

        fit = linregress(log_cartesian, log_least_cost)
        summary = FitSummary(
            slope=float(fit.slope),
            intercept=float(fit.intercept),
            r_squared=float(fit.rvalue**2),
            p_value=float(fit.pvalue),
            stderr=float(fit.stderr),
            n_pairs=len(usable),
            stress=embedding.stress,
        )
        logger.info(f"Fit report: {summary}")
        return summary
