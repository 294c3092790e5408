"""Tests for least-cost routing.

Tests: LeastCostRouter, DistanceMatrixBuilder
Focus: Exact costs on open unit grids, barrier handling, validation order, transition reuse

Note: Fixtures are defined in conftest.py.
"""

import itertools

import numpy as np
import pytest

from conftest import WATER_M, expected_grid_cost, grid_from_array
from coord_cartesian.core.conductance import ConductanceModel
from coord_cartesian.core.grid_graph import GridGraph
from coord_cartesian.core.raster_grid import GridCell, RasterGrid
from coord_cartesian.errors import InvalidInputError, SiteOnBarrierError, UnreachablePairError
from coord_cartesian.model.results import DistanceMatrix
from coord_cartesian.model.site import Site
from coord_cartesian.routing.distance_matrix import DistanceMatrixBuilder
from coord_cartesian.routing.least_cost_router import LeastCostRouter


def _cell_ids(graph: GridGraph, cells: list[tuple[int, int]]) -> list[int]:
    return [graph.cell_id(GridCell(row=r, col=c)) for r, c in cells]


# =============================================================================
# LEAST-COST ROUTER
# =============================================================================


class TestLeastCostRouter:
    """LeastCostRouter - Dijkstra searches over a transition model."""

    CELLS = [(0, 0), (0, 6), (6, 0), (9, 9), (2, 7)]

    @pytest.mark.parametrize("engine", ["scipy", "heap"])
    def test_open_grid_costs(self, open_grid: RasterGrid, sea, planar, engine: str) -> None:
        """Costs equal the octile distance between cells."""
        graph = GridGraph(open_grid, sea)
        router = LeastCostRouter(graph.build_transition(planar), engine=engine, max_workers=2)
        matrix = router.route(_cell_ids(graph, self.CELLS), upper_triangle=False)

        for (i, a), (j, b) in itertools.product(enumerate(self.CELLS), repeat=2):
            assert matrix[i, j] == pytest.approx(expected_grid_cost(a, b))

    def test_engines_agree(self, rough_grid: RasterGrid, sea) -> None:
        """scipy and heap engines give the same costs on a non-uniform surface."""
        graph = GridGraph(rough_grid, sea)
        transition = graph.build_transition(ConductanceModel(transform="reciprocal_difference", distance="planar"))
        cells = _cell_ids(graph, [(0, 0), (11, 11), (3, 8), (7, 2), (5, 5)])

        scipy_costs = LeastCostRouter(transition, engine="scipy").route(cells, upper_triangle=False)
        heap_costs = LeastCostRouter(transition, engine="heap").route(cells, upper_triangle=False)
        assert np.allclose(scipy_costs, heap_costs)

    def test_triangle_inequality(self, rough_grid: RasterGrid, sea) -> None:
        """Shortest-path costs satisfy d(i,k) <= d(i,j) + d(j,k)."""
        graph = GridGraph(rough_grid, sea)
        transition = graph.build_transition(ConductanceModel(transform="reciprocal_difference", distance="planar"))
        cells = _cell_ids(graph, [(0, 0), (11, 11), (3, 8), (7, 2), (5, 5), (0, 11)])
        d = LeastCostRouter(transition).route(cells, upper_triangle=False)

        n = len(cells)
        for i, j, k in itertools.product(range(n), repeat=3):
            assert d[i, k] <= d[i, j] + d[j, k] + 1e-9

    def test_detour_around_island(self, island_grid: RasterGrid, sea, planar) -> None:
        """A path blocked by land costs more than the straight line."""
        graph = GridGraph(island_grid, sea)
        router = LeastCostRouter(graph.build_transition(planar))
        cost = router.route(_cell_ids(graph, [(4, 1), (4, 8)]), upper_triangle=False)[0, 1]
        assert cost > expected_grid_cost((4, 1), (4, 8))
        assert np.isfinite(cost)

    @pytest.mark.parametrize("engine", ["scipy", "heap"])
    def test_unreachable_is_inf(self, walled_grid: RasterGrid, sea, planar, engine: str) -> None:
        """Cells on opposite sides of a full wall are unreachable."""
        graph = GridGraph(walled_grid, sea)
        router = LeastCostRouter(graph.build_transition(planar), engine=engine)
        matrix = router.route(_cell_ids(graph, [(0, 0), (9, 9)]), upper_triangle=False)
        assert np.isinf(matrix[0, 1])
        assert np.isinf(matrix[1, 0])

    def test_upper_triangle_search_count(self, open_grid: RasterGrid, sea, planar) -> None:
        """Upper-triangle mode runs N-1 searches and leaves the lower triangle unset."""
        graph = GridGraph(open_grid, sea)
        sources = []
        router = LeastCostRouter(graph.build_transition(planar), on_search=sources.append)
        matrix = router.route(_cell_ids(graph, self.CELLS), upper_triangle=True)

        assert router.searches_run == len(self.CELLS) - 1
        assert len(sources) == len(self.CELLS) - 1
        assert np.all(np.isnan(matrix[np.tril_indices(len(self.CELLS), k=-1)]))
        assert np.all(np.diag(matrix) == 0)

    def test_unknown_engine(self, open_grid: RasterGrid, sea, planar) -> None:
        """Only scipy and heap engines exist."""
        transition = GridGraph(open_grid, sea).build_transition(planar)
        with pytest.raises(InvalidInputError):
            LeastCostRouter(transition, engine="astar")


# =============================================================================
# DISTANCE MATRIX BUILDER
# =============================================================================


class TestDistanceMatrixBuilder:
    """DistanceMatrixBuilder - validation, routing, symmetric output."""

    def test_symmetric_zero_diagonal(self, open_grid: RasterGrid, builder_for, site_at) -> None:
        """Output is symmetric, non-negative, zero on the diagonal, in site order."""
        sites = [site_at("A", 0, 0), site_at("B", 0, 6), site_at("C", 6, 0), site_at("D", 9, 9)]
        matrix, _ = builder_for(open_grid).build(sites)

        assert isinstance(matrix, DistanceMatrix)
        assert matrix.site_ids == ("A", "B", "C", "D")
        assert np.array_equal(matrix.values, matrix.values.T)
        assert np.all(np.diag(matrix.values) == 0)
        assert matrix[0, 1] == pytest.approx(6.0)
        assert matrix[1, 2] == pytest.approx(6.0 * np.sqrt(2))

    def test_site_on_barrier_before_any_search(self, walled_grid: RasterGrid, builder_for, site_at) -> None:
        """A site on land fails before the transition is built or any search runs."""
        sources = []
        builder = builder_for(walled_grid, on_search=sources.append)
        sites = [site_at("A", 0, 0), site_at("LAND", 5, 3), site_at("B", 2, 2)]

        with pytest.raises(SiteOnBarrierError) as exc_info:
            builder.build(sites)

        assert exc_info.value.site_ids == ("LAND",)
        assert sources == []

    def test_all_sites_in_water_runs_n_minus_one_searches(self, open_grid: RasterGrid, builder_for, site_at) -> None:
        """With every site navigable, exactly N-1 searches run."""
        sources = []
        builder = builder_for(open_grid, on_search=sources.append)
        builder.build([site_at("A", 0, 0), site_at("B", 3, 3), site_at("C", 8, 1)])
        assert len(sources) == 2

    def test_check_sites_classifies(self, walled_grid: RasterGrid, builder_for, site_at) -> None:
        """check_sites reports navigable, blocked and outside sites without raising."""
        sites = [site_at("WET", 0, 0), site_at("DRY", 5, 5), Site(site_id="FAR", lon=20.0, lat=20.0)]
        check = builder_for(walled_grid).check_sites(sites)

        assert not check.ok
        assert check.navigable_ids == ["WET"]
        assert check.blocked_ids == ["DRY"]
        assert check.outside_ids == ["FAR"]

    def test_build_keeps_site_check(self, open_grid: RasterGrid, builder_for, site_at) -> None:
        """The placement from validation is kept on the builder after build."""
        builder = builder_for(open_grid)
        assert builder.site_check is None

        builder.build([site_at("A", 0, 0), site_at("B", 3, 3)])

        assert builder.site_check is not None
        assert builder.site_check.navigable_ids == ["A", "B"]
        assert [p.cell for p in builder.site_check] == [GridCell(row=0, col=0), GridCell(row=3, col=3)]

    def test_full_wall_unreachable(self, walled_grid: RasterGrid, builder_for, site_at) -> None:
        """Sites separated by a full-width wall raise UnreachablePairError."""
        sites = [site_at("NORTH", 1, 1), site_at("NORTH2", 2, 8), site_at("SOUTH", 8, 4)]
        with pytest.raises(UnreachablePairError) as exc_info:
            builder_for(walled_grid).build(sites)
        assert set(exc_info.value.pairs) == {("NORTH", "SOUTH"), ("NORTH2", "SOUTH")}

    def test_site_outside_raster(self, open_grid: RasterGrid, builder_for, site_at) -> None:
        """Sites beyond the raster extent are invalid input."""
        with pytest.raises(InvalidInputError):
            builder_for(open_grid).build([site_at("A", 0, 0), Site(site_id="FAR", lon=-3.0, lat=5.0)])

    def test_duplicate_ids(self, open_grid: RasterGrid, builder_for, site_at) -> None:
        """Site ids must be unique."""
        with pytest.raises(InvalidInputError):
            builder_for(open_grid).build([site_at("A", 0, 0), site_at("A", 3, 3)])

    def test_no_sites(self, open_grid: RasterGrid, builder_for) -> None:
        """An empty site list is invalid."""
        with pytest.raises(InvalidInputError):
            builder_for(open_grid).build([])

    def test_transition_reuse_is_bit_identical(self, island_grid: RasterGrid, builder_for, site_at) -> None:
        """Reusing the transition gives the same matrix without rebuilding."""
        builder = builder_for(island_grid)
        sites = [site_at("A", 0, 0), site_at("B", 9, 9), site_at("C", 4, 1), site_at("D", 4, 8)]

        first, transition = builder.build(sites)
        second, reused = builder.build(sites, transition=transition)

        assert reused is transition
        assert np.array_equal(first.values, second.values)

    def test_transition_from_other_grid_rejected(self, open_grid: RasterGrid, island_grid, builder_for, site_at) -> None:
        """A transition built for a different raster is refused."""
        sites = [site_at("A", 0, 0), site_at("B", 9, 9)]
        _, transition = builder_for(open_grid).build(sites)
        with pytest.raises(InvalidInputError):
            builder_for(island_grid).build(sites, transition=transition)

    def test_shared_cell_distance_zero(self, open_grid: RasterGrid, builder_for) -> None:
        """Two sites in one cell get distance 0 and a shared-cell advisory."""
        builder = builder_for(open_grid)
        sites = [Site("A", lon=0.2, lat=9.2), Site("B", lon=0.8, lat=9.8), Site("C", lon=5.5, lat=5.5)]
        matrix, _ = builder.build(sites)

        assert matrix[0, 1] == 0.0
        assert len(builder.shared_cells) == 1
        assert builder.shared_cells[0].site_ids == ("A", "B")

    def test_small_grid_single_site(self, sea, planar) -> None:
        """A single site gives a 1x1 zero matrix without any search."""
        grid = grid_from_array(np.full((2, 2), WATER_M))
        matrix, _ = DistanceMatrixBuilder(grid, sea, planar).build([Site("ONLY", lon=0.5, lat=0.5)])
        assert matrix.values.tolist() == [[0.0]]
