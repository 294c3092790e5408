"""Pipeline - least-cost distances to Cartesian coordinates in one call.

Stages:
1. Site check against the barrier (before anything expensive)
2. Transition model (built, or reused from an earlier run on the same grid)
3. Least-cost distance matrix
4. Nonmetric MDS embedding
5. Optional log-log fit report

The pipeline owns no state between runs; every choice travels in a
PipelineConfig.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from coord_cartesian.constants import MDSConfig, RasterConfig, RouterConfig, SiteConfig
from coord_cartesian.core.barrier import BarrierPredicate
from coord_cartesian.core.conductance import ConductanceModel, TransitionModel
from coord_cartesian.core.raster_grid import RasterGrid, RasterSource
from coord_cartesian.embedding.fit_reporter import FitReporter
from coord_cartesian.embedding.nonmetric_mds import NonmetricMDS
from coord_cartesian.model.results import CartesianResult
from coord_cartesian.model.site import BoundingBox, Site
from coord_cartesian.model.warning import HighStressWarning, Warning
from coord_cartesian.routing.distance_matrix import DistanceMatrixBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """All run-time choices for one pipeline run.

    Attributes:
        barrier: Navigable elevation band
        conductance: Edge conductance model
        engine: Least-cost search engine ("scipy" or "heap")
        max_workers: Search threads (None = one per core)
        n_components: Embedding dimensionality
        seed: Seed for the random MDS starts
        max_iter: Iteration cap per MDS start
        tolerance: Minimum stress improvement per iteration
        n_init: Number of MDS starts
        stress_threshold: Stress above which results are flagged
        time_limit_s: Wall-clock cap for the MDS stage (None = no cap)
        compute_fit: Whether to attach a FitSummary
    """

    barrier: BarrierPredicate = field(default_factory=BarrierPredicate)
    conductance: ConductanceModel = field(default_factory=ConductanceModel)
    engine: str = RouterConfig.DEFAULT_ENGINE
    max_workers: Optional[int] = RouterConfig.MAX_WORKERS
    n_components: int = MDSConfig.N_COMPONENTS
    seed: int = MDSConfig.SEED
    max_iter: int = MDSConfig.MAX_ITER
    tolerance: float = MDSConfig.TOLERANCE
    n_init: int = MDSConfig.N_INIT
    stress_threshold: float = MDSConfig.STRESS_THRESHOLD
    time_limit_s: Optional[float] = None
    compute_fit: bool = True

    def embedder(self) -> NonmetricMDS:
        return NonmetricMDS(
            n_components=self.n_components,
            max_iter=self.max_iter,
            tolerance=self.tolerance,
            n_init=self.n_init,
            seed=self.seed,
            stress_threshold=self.stress_threshold,
            time_limit_s=self.time_limit_s,
        )


class CartesianPipeline:
    """Runs the full least-cost to Cartesian workflow.

    Example:
        pipeline = CartesianPipeline(PipelineConfig(n_components=3))
        result = pipeline.run(raster, sites)
        # Same grid, new sites, no transition rebuild:
        result2 = pipeline.run(raster, other_sites, transition=result.transition)
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()

    def builder(self, raster: RasterGrid) -> DistanceMatrixBuilder:
        return DistanceMatrixBuilder(
            raster=raster,
            barrier=self.config.barrier,
            conductance=self.config.conductance,
            engine=self.config.engine,
            max_workers=self.config.max_workers,
        )

    def run(
        self,
        raster: RasterGrid,
        sites: Sequence[Site],
        transition: Optional[TransitionModel] = None,
    ) -> CartesianResult:
        """Compute least-cost distances and their Cartesian embedding.

        Args:
            raster: Elevation grid covering every site
            sites: Ordered sites
            transition: Transition model from an earlier run on this raster

        Returns:
            CartesianResult in input site order.
        """
        sites = tuple(sites)
        start_time = time.time()
        logger.info(f"Running least-cost analysis for {len(sites)} sites on {raster!r}")

        builder = self.builder(raster)
        distance_matrix, transition = builder.build(sites, transition=transition)

        logger.info(f"MDS scaling into {self.config.n_components} Cartesian coordinates")
        embedding = self.config.embedder().fit(distance_matrix)
        logger.info(f"Stress value for MDS: {embedding.stress:.4f}")

        advisories: list[Warning] = list(builder.shared_cells)
        if embedding.stress > self.config.stress_threshold:
            advisories.append(HighStressWarning(stress=embedding.stress, threshold=self.config.stress_threshold))

        fit = FitReporter.report(distance_matrix, embedding) if self.config.compute_fit else None

        elapsed = time.time() - start_time
        logger.info(f"Pipeline finished in {elapsed:.2f}s")

        return CartesianResult(
            sites=sites,
            site_check=builder.site_check,
            distance_matrix=distance_matrix,
            embedding=embedding,
            transition=transition,
            raster=raster,
            fit=fit,
            warnings=tuple(advisories),
        )

    def run_from_source(
        self,
        source: RasterSource,
        sites: Sequence[Site],
        resolution_deg: Optional[float] = RasterConfig.DEFAULT_RESOLUTION_DEG,
        buffer_deg: float = SiteConfig.BBOX_BUFFER_DEG,
    ) -> CartesianResult:
        """Fetch the raster window around the sites, then run."""
        sites = tuple(sites)
        bbox = BoundingBox.around(sites, buffer_deg=buffer_deg)
        raster = source.fetch(bbox, resolution_deg=resolution_deg)
        return self.run(raster, sites)


def coord_cartesian(
    sites: Sequence[Site],
    raster: RasterGrid,
    transition: Optional[TransitionModel] = None,
    config: Optional[PipelineConfig] = None,
) -> CartesianResult:
    """One-call entry point: sites and raster in, CartesianResult out."""
    return CartesianPipeline(config).run(raster, sites, transition=transition)
