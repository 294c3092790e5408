"""Nonmetric multidimensional scaling (SMACOF with monotone regression).

Finds k-dimensional coordinates whose Euclidean distances preserve the rank
order of the input distances. Quality is measured by Kruskal stress-1:

    stress = sqrt( sum (disparity - distance)^2 / sum distance^2 )

Each iteration:
1. Distances of the current configuration
2. Disparities: monotone regression of those distances on the input order
3. Stress of the current configuration
4. Guttman transform towards the (normalised) disparities

Several starts are run (classical scaling first, then seeded random draws)
and the lowest-stress iterate over all of them wins.
"""

import logging
import time
import warnings
from typing import Optional, Sequence, Union

import numpy as np
from scipy.spatial.distance import pdist, squareform

from coord_cartesian.constants import MDSConfig
from coord_cartesian.embedding.isotonic import disparities
from coord_cartesian.errors import ConvergenceWarning, DegenerateEmbeddingError, InvalidInputError
from coord_cartesian.model.results import DistanceMatrix, Embedding
from coord_cartesian.model.warning import HighStressWarning

logger = logging.getLogger(__name__)


def kruskal_stress(disparity: np.ndarray, distance: np.ndarray) -> float:
    """Kruskal stress-1 of condensed distances against their disparities."""
    denominator = float(np.sum(distance**2))
    if denominator == 0:
        return float("inf")
    return float(np.sqrt(np.sum((disparity - distance) ** 2) / denominator))


def classical_scaling(dissimilarities: np.ndarray, n_components: int) -> np.ndarray:
    """Torgerson scaling: top eigenvectors of the double-centred squared distances."""
    n = dissimilarities.shape[0]
    centering = np.eye(n) - np.full((n, n), 1.0 / n)
    b = -0.5 * centering @ (dissimilarities**2) @ centering
    eigenvalues, eigenvectors = np.linalg.eigh(b)
    top = np.argsort(eigenvalues)[::-1][:n_components]
    return eigenvectors[:, top] * np.sqrt(np.clip(eigenvalues[top], 0.0, None))


def guttman_transform(coordinates: np.ndarray, distance: np.ndarray, disparity: np.ndarray) -> np.ndarray:
    """One majorization step: X <- B(X) X / n."""
    n = coordinates.shape[0]
    ratio = np.zeros_like(distance)
    nonzero = distance > 0
    ratio[nonzero] = disparity[nonzero] / distance[nonzero]

    b = -squareform(ratio)
    b[np.diag_indices(n)] = -b.sum(axis=1)
    return b @ coordinates / n


def principal_axes(coordinates: np.ndarray) -> np.ndarray:
    """Centre, rotate to principal axes and fix signs (largest |value| positive)."""
    centred = coordinates - coordinates.mean(axis=0)
    _, _, vt = np.linalg.svd(centred, full_matrices=False)
    rotated = centred @ vt.T
    for j in range(rotated.shape[1]):
        pivot = np.argmax(np.abs(rotated[:, j]))
        if rotated[pivot, j] < 0:
            rotated[:, j] *= -1
    return rotated


class NonmetricMDS:
    """Nonmetric MDS embedder.

    Deterministic for a given seed: random starts come from a local
    numpy Generator, never the global RNG.

    Example:
        embedding = NonmetricMDS(n_components=2).fit(distance_matrix)
        embedding.coordinates  # (n_sites, 2)
    """

    def __init__(
        self,
        n_components: int = MDSConfig.N_COMPONENTS,
        max_iter: int = MDSConfig.MAX_ITER,
        tolerance: float = MDSConfig.TOLERANCE,
        n_init: int = MDSConfig.N_INIT,
        seed: int = MDSConfig.SEED,
        stress_threshold: float = MDSConfig.STRESS_THRESHOLD,
        time_limit_s: Optional[float] = None,
    ) -> None:
        if n_components < 1:
            raise InvalidInputError(f"n_components must be at least 1, got {n_components}")
        if max_iter < 1:
            raise InvalidInputError(f"max_iter must be at least 1, got {max_iter}")
        if n_init < 1:
            raise InvalidInputError(f"n_init must be at least 1, got {n_init}")
        if time_limit_s is not None and time_limit_s <= 0:
            raise InvalidInputError(f"time_limit_s must be positive, got {time_limit_s}")

        self.n_components = n_components
        self.max_iter = max_iter
        self.tolerance = tolerance
        self.n_init = n_init
        self.seed = seed
        self.stress_threshold = stress_threshold
        self.time_limit_s = time_limit_s

    def fit(
        self,
        distances: Union[DistanceMatrix, np.ndarray],
        site_ids: Optional[Sequence[str]] = None,
    ) -> Embedding:
        """Embed a distance matrix.

        Args:
            distances: DistanceMatrix or square symmetric array
            site_ids: Row labels for a plain array (default "0", "1", ...)

        Returns:
            Embedding with coordinates, stress and iteration info.

        Raises:
            InvalidInputError: Malformed distance matrix.
            DegenerateEmbeddingError: Too few sites or no distance spread.
        """
        values, ids = self._validate(distances, site_ids)
        n = values.shape[0]
        delta = squareform(values, checks=False)

        rng = np.random.default_rng(self.seed)
        deadline = None if self.time_limit_s is None else time.monotonic() + self.time_limit_s
        start_time = time.time()

        best = None
        for start in range(self.n_init):
            if start == 0:
                initial = classical_scaling(values, self.n_components)
            else:
                initial = rng.standard_normal((n, self.n_components))

            result = self._smacof(delta, initial, deadline)
            if result is None:
                continue
            logger.debug(f"Start {start}: stress {result[1]:.6f} after {result[2]} iterations")
            if best is None or result[1] < best[1]:
                best = result
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(f"MDS time limit of {self.time_limit_s}s reached after {start + 1} start(s)")
                break

        if best is None:
            raise DegenerateEmbeddingError("No start produced a non-degenerate configuration")

        coordinates, stress, n_iter, converged = best
        elapsed = time.time() - start_time
        logger.info(f"MDS done in {elapsed:.2f}s: stress {stress:.4f} ({n_iter} iterations, converged={converged})")

        if stress > self.stress_threshold:
            advisory = HighStressWarning(stress=stress, threshold=self.stress_threshold)
            logger.warning(advisory.message)
            warnings.warn(advisory.message, ConvergenceWarning, stacklevel=2)

        return Embedding(
            coordinates=principal_axes(coordinates),
            site_ids=ids,
            stress=stress,
            n_iter=n_iter,
            converged=converged,
        )

    def _smacof(self, delta: np.ndarray, initial: np.ndarray, deadline: Optional[float]):
        """Run one start. Returns (coordinates, stress, n_iter, converged) of the best iterate."""
        n = initial.shape[0]
        target_norm = n * (n - 1) / 2.0

        coordinates = np.array(initial, dtype=np.float64)
        distance = pdist(coordinates)
        if not np.any(distance > 0):
            return None

        best_coordinates, best_stress, best_iter = coordinates, float("inf"), 0
        previous = None
        converged = False

        for iteration in range(1, self.max_iter + 1):
            disparity = disparities(delta, distance)
            stress = kruskal_stress(disparity, distance)
            if stress < best_stress:
                best_coordinates, best_stress, best_iter = coordinates, stress, iteration

            if stress < MDSConfig.ZERO_STRESS:
                converged = True
                break
            if previous is not None and previous - stress < self.tolerance:
                converged = True
                break
            if deadline is not None and time.monotonic() >= deadline:
                break
            previous = stress

            scale = np.sqrt(target_norm / np.sum(disparity**2))
            coordinates = guttman_transform(coordinates, distance, disparity * scale)
            distance = pdist(coordinates)
            if not np.any(distance > 0):
                break

        return best_coordinates, best_stress, best_iter, converged

    def _validate(self, distances, site_ids):
        if isinstance(distances, DistanceMatrix):
            values = np.array(distances.values, dtype=np.float64)
            ids = distances.site_ids
        else:
            try:
                values = np.array(distances, dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"Distance matrix is not numeric: {e}") from e
            if values.ndim != 2 or values.shape[0] != values.shape[1]:
                raise InvalidInputError(f"Distance matrix must be square, got shape {values.shape}")
            if not np.all(np.isfinite(values)):
                raise InvalidInputError("Distance matrix contains non-finite values")
            if np.any(values < 0):
                raise InvalidInputError("Distance matrix contains negative values")
            if np.any(np.diag(values) != 0):
                raise InvalidInputError("Distance matrix diagonal must be zero")
            if not np.allclose(values, values.T, rtol=1e-9, atol=1e-12):
                raise InvalidInputError("Distance matrix is not symmetric")
            ids = tuple(str(i) for i in range(values.shape[0]))

        if site_ids is not None:
            if len(site_ids) != values.shape[0]:
                raise InvalidInputError(f"Got {len(site_ids)} site ids for {values.shape[0]} rows")
            ids = tuple(str(s) for s in site_ids)

        n = values.shape[0]
        if n < self.n_components + 1:
            raise DegenerateEmbeddingError(
                f"{n} site(s) cannot be embedded in {self.n_components} dimensions; need at least {self.n_components + 1}"
            )

        delta = squareform(values, checks=False)
        if np.ptp(delta) == 0:
            raise DegenerateEmbeddingError("All pairwise distances are equal; the rank order carries no information")

        return values, ids
