"""Distance matrix builder - validated all-pairs least-cost distances.

Order of work:
1. Cheap validation: site ids, raster coverage, barrier check (no routing yet)
2. Transition model: reuse the supplied one or build it
3. Upper-triangle least-cost searches, mirrored into a symmetric matrix
4. Unreachable pairs are fatal; infinities never leave this module
"""

import logging
from collections import defaultdict
from typing import Callable, Optional, Sequence

import numpy as np

from coord_cartesian.constants import RouterConfig
from coord_cartesian.core.barrier import BarrierPredicate
from coord_cartesian.core.conductance import ConductanceModel, TransitionModel
from coord_cartesian.core.grid_graph import GridGraph
from coord_cartesian.core.raster_grid import RasterGrid
from coord_cartesian.errors import InvalidInputError, SiteOnBarrierError, UnreachablePairError
from coord_cartesian.model.results import DistanceMatrix, SiteCheck, SitePlacement
from coord_cartesian.model.site import Site
from coord_cartesian.model.warning import SharedCellWarning
from coord_cartesian.routing.least_cost_router import LeastCostRouter

logger = logging.getLogger(__name__)


class DistanceMatrixBuilder:
    """Builds the least-cost DistanceMatrix for an ordered list of sites.

    Example:
        builder = DistanceMatrixBuilder(raster, BarrierPredicate(max_elevation=0.0))
        matrix, transition = builder.build(sites)
        # Same grid again, no rebuild:
        matrix2, _ = builder.build(other_sites, transition=transition)
    """

    def __init__(
        self,
        raster: RasterGrid,
        barrier: BarrierPredicate,
        conductance: Optional[ConductanceModel] = None,
        engine: str = RouterConfig.DEFAULT_ENGINE,
        max_workers: Optional[int] = RouterConfig.MAX_WORKERS,
        on_search: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.graph = GridGraph(raster=raster, barrier=barrier)
        self.conductance = conductance or ConductanceModel()
        self.engine = engine
        self.max_workers = max_workers
        self.on_search = on_search
        self.shared_cells: list[SharedCellWarning] = []
        self.site_check: Optional[SiteCheck] = None

    @property
    def raster(self) -> RasterGrid:
        return self.graph.raster

    def check_sites(self, sites: Sequence[Site]) -> SiteCheck:
        """Snap every site to its cell and classify it against the barrier.

        Cheap: touches only one cell per site.
        """
        placements = []
        for site in sites:
            cell = self.raster.nearest_cell(lon=site.lon, lat=site.lat)
            if cell is None:
                placements.append(SitePlacement(site=site, cell=None, elevation=None, navigable=False))
                continue
            placements.append(
                SitePlacement(
                    site=site,
                    cell=cell,
                    elevation=self.raster.elevation_at(cell),
                    navigable=self.graph.is_navigable(cell),
                )
            )
        return SiteCheck(placements=tuple(placements))

    def validate(self, sites: Sequence[Site]) -> SiteCheck:
        """Run all pre-routing checks, raising on the first structural problem.

        Raises:
            InvalidInputError: No sites, duplicate ids, or sites outside the raster.
            SiteOnBarrierError: Sites snapping to blocked cells.
        """
        if not sites:
            raise InvalidInputError("At least one site is required")

        seen: set[str] = set()
        duplicates = []
        for site in sites:
            if site.site_id in seen:
                duplicates.append(site.site_id)
            seen.add(site.site_id)
        if duplicates:
            raise InvalidInputError(f"Duplicate site identifiers: {', '.join(duplicates)}")

        check = self.check_sites(sites)
        if check.outside_ids:
            raise InvalidInputError(f"Sites outside the raster extent: {', '.join(check.outside_ids)}")
        if not check.ok:
            raise SiteOnBarrierError(check.blocked_ids)

        logger.info(f"All {len(check)} sites lie inside the navigable band")
        return check

    def build(
        self,
        sites: Sequence[Site],
        transition: Optional[TransitionModel] = None,
    ) -> tuple[DistanceMatrix, TransitionModel]:
        """Compute the symmetric least-cost distance matrix.

        Args:
            sites: Ordered sites; order defines matrix rows/columns
            transition: Previously built model for this grid (skips rebuilding)

        Returns:
            (DistanceMatrix, TransitionModel) - the model for reuse by the caller.

        Raises:
            InvalidInputError: Bad sites, or a transition built for another grid.
            SiteOnBarrierError: Sites on blocked cells (before any search).
            UnreachablePairError: Sites in disjoint navigable components.
        """
        check = self.validate(sites)
        self.site_check = check

        if transition is None:
            logger.info("Calculating transition object for least-cost analysis")
            transition = self.graph.build_transition(self.conductance)
        elif not transition.matches(self.graph):
            raise InvalidInputError("Supplied transition model was built for a different raster or barrier")
        else:
            logger.info(f"Reusing {transition!r}")

        cells = [p.cell for p in check]
        self.shared_cells = self._find_shared_cells(check)
        for warning in self.shared_cells:
            logger.warning(warning.message)

        router = LeastCostRouter(
            transition=transition,
            engine=self.engine,
            max_workers=self.max_workers,
            on_search=self.on_search,
        )
        logger.info("Calculating least-cost distances")
        raw = router.route([self.graph.cell_id(c) for c in cells], upper_triangle=True)

        upper = np.triu(raw, k=1)
        values = upper + upper.T

        site_ids = [s.site_id for s in sites]
        rows, cols = np.nonzero(np.isinf(np.triu(values, k=1)))
        if rows.size:
            raise UnreachablePairError([(site_ids[i], site_ids[j]) for i, j in zip(rows, cols)])

        return DistanceMatrix(values=values, site_ids=tuple(site_ids)), transition

    @staticmethod
    def _find_shared_cells(check: SiteCheck) -> list[SharedCellWarning]:
        by_cell = defaultdict(list)
        for placement in check:
            by_cell[placement.cell].append(placement.site.site_id)
        return [
            SharedCellWarning(site_ids=tuple(ids), row=cell.row, col=cell.col)
            for cell, ids in by_cell.items()
            if len(ids) > 1
        ]
