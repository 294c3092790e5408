"""End-to-end tests for the pipeline.

Tests: CartesianPipeline, PipelineConfig, coord_cartesian()
Focus: Small unit grids where the least-cost geometry is known exactly

Note: Fixtures are defined in conftest.py.
"""

import logging
from pathlib import Path

import numpy as np
import pytest

from coord_cartesian import coord_cartesian
from coord_cartesian.core.raster_grid import GeoTiffRasterSource, RasterGrid
from coord_cartesian.errors import ConvergenceWarning, SiteOnBarrierError, UnreachablePairError
from coord_cartesian.model.results import CartesianResult
from coord_cartesian.model.site import Site
from coord_cartesian.model.warning import HighStressWarning, SharedCellWarning
from coord_cartesian.pipeline import CartesianPipeline, PipelineConfig
from coord_cartesian.routing.distance_matrix import DistanceMatrixBuilder


@pytest.fixture
def corner_sites(site_at) -> list[Site]:
    """Three sites forming a right isosceles triangle on the open grid.

    A-B and A-C are 6 cells apart in a straight line; B-C is 6 diagonal steps.
    """
    return [site_at("A", 0, 0), site_at("B", 0, 6), site_at("C", 6, 0)]


# =============================================================================
# END TO END
# =============================================================================


class TestCartesianPipeline:
    """CartesianPipeline - least-cost distances to coordinates."""

    def test_three_sites_open_grid(self, open_grid: RasterGrid, corner_sites, planar_config) -> None:
        """Known distances, near-zero stress, and geometry preserved."""
        result = CartesianPipeline(planar_config).run(open_grid, corner_sites)

        assert isinstance(result, CartesianResult)
        assert result.distance_matrix[0, 1] == pytest.approx(6.0)
        assert result.distance_matrix[0, 2] == pytest.approx(6.0)
        assert result.distance_matrix[1, 2] == pytest.approx(6.0 * np.sqrt(2))

        assert result.stress < 1e-4
        assert result.embedding.coordinates.shape == (3, 2)
        ab, ac, bc = result.embedding.pairwise_distances()
        assert bc > ab and bc > ac
        assert bc / ab == pytest.approx(np.sqrt(2), rel=1e-3)
        assert result.warnings == ()

    def test_fit_attached(self, open_grid: RasterGrid, corner_sites, planar_config) -> None:
        """The fit report rides along with the result."""
        result = CartesianPipeline(planar_config).run(open_grid, corner_sites)
        assert result.fit is not None
        assert result.fit.slope == pytest.approx(1.0, abs=1e-3)
        assert result.fit.n_pairs == 3

    def test_fit_can_be_skipped(self, open_grid: RasterGrid, corner_sites, planar) -> None:
        """compute_fit=False leaves fit empty."""
        result = CartesianPipeline(PipelineConfig(conductance=planar, compute_fit=False)).run(open_grid, corner_sites)
        assert result.fit is None

    def test_site_order_preserved(self, open_grid: RasterGrid, corner_sites, planar_config) -> None:
        """Every artifact follows the input site order."""
        reordered = list(reversed(corner_sites))
        result = CartesianPipeline(planar_config).run(open_grid, reordered)
        assert result.distance_matrix.site_ids == ("C", "B", "A")
        assert result.embedding.site_ids == ("C", "B", "A")
        assert [p.site.site_id for p in result.site_check] == ["C", "B", "A"]

    def test_transition_reuse(self, island_grid: RasterGrid, site_at, planar_config) -> None:
        """A second run on the same grid reuses the transition and matches exactly."""
        sites = [site_at("A", 0, 0), site_at("B", 9, 9), site_at("C", 4, 1), site_at("D", 4, 8)]
        pipeline = CartesianPipeline(planar_config)

        first = pipeline.run(island_grid, sites)
        second = pipeline.run(island_grid, sites, transition=first.transition)

        assert second.transition is first.transition
        assert np.array_equal(first.distance_matrix.values, second.distance_matrix.values)
        assert np.array_equal(first.embedding.coordinates, second.embedding.coordinates)

    def test_site_on_land_fails_fast(self, walled_grid: RasterGrid, site_at, planar_config) -> None:
        """A site on the barrier aborts the run with its id."""
        sites = [site_at("A", 0, 0), site_at("ASHORE", 5, 5), site_at("B", 9, 9)]
        with pytest.raises(SiteOnBarrierError, match="ASHORE"):
            CartesianPipeline(planar_config).run(walled_grid, sites)

    def test_shared_cell_advisory(self, open_grid: RasterGrid, planar_config) -> None:
        """Sites snapping to one cell are reported on the result."""
        sites = [
            Site("A", lon=0.2, lat=9.2),
            Site("B", lon=0.8, lat=9.8),
            Site("C", lon=5.5, lat=5.5),
            Site("D", lon=9.5, lat=0.5),
        ]
        result = CartesianPipeline(planar_config).run(open_grid, sites)
        shared = [w for w in result.warnings if isinstance(w, SharedCellWarning)]
        assert len(shared) == 1
        assert shared[0].site_ids == ("A", "B")

    def test_high_stress_advisory(self, open_grid: RasterGrid, site_at, planar) -> None:
        """A square squeezed onto a line is flagged but still returned."""
        sites = [site_at("NW", 0, 0), site_at("NE", 0, 6), site_at("SE", 6, 6), site_at("SW", 6, 0)]
        config = PipelineConfig(conductance=planar, n_components=1, stress_threshold=0.0)

        with pytest.warns(ConvergenceWarning):
            result = CartesianPipeline(config).run(open_grid, sites)

        assert any(isinstance(w, HighStressWarning) for w in result.warnings)
        assert result.embedding.coordinates.shape == (4, 1)

    def test_convenience_function(self, open_grid: RasterGrid, corner_sites, planar_config) -> None:
        """coord_cartesian() equals a pipeline run with the same config."""
        direct = coord_cartesian(corner_sites, open_grid, config=planar_config)
        via_pipeline = CartesianPipeline(planar_config).run(open_grid, corner_sites)
        assert np.array_equal(direct.embedding.coordinates, via_pipeline.embedding.coordinates)

    def test_run_from_geotiff(self, sea_geotiff: Path) -> None:
        """The raster window around the sites is fetched from a GeoTIFF."""
        sites = [Site("A", lon=5.0, lat=5.0), Site("B", lon=6.0, lat=5.0), Site("C", lon=5.0, lat=6.0)]
        source = GeoTiffRasterSource(sea_geotiff)

        result = CartesianPipeline().run_from_source(source, sites, resolution_deg=None, buffer_deg=2.0)

        assert result.raster.shape == (10, 10)
        assert np.all(result.distance_matrix.condensed() > 0)
        assert result.embedding.coordinates.shape == (3, 2)

    def test_full_wall_fails_unreachable(self, walled_grid: RasterGrid, site_at, planar_config) -> None:
        """Sites on both sides of a full-width wall stop the run before MDS."""
        sites = [site_at("N1", 1, 1), site_at("N2", 2, 8), site_at("S1", 8, 4)]
        with pytest.raises(UnreachablePairError) as exc_info:
            CartesianPipeline(planar_config).run(walled_grid, sites)
        assert set(exc_info.value.pairs) == {("N1", "S1"), ("N2", "S1")}

    def test_sites_checked_once(self, open_grid: RasterGrid, corner_sites, planar_config, monkeypatch) -> None:
        """The placement from validation is reused for the result."""
        calls = []
        original = DistanceMatrixBuilder.check_sites

        def counting(builder, sites):
            calls.append(len(sites))
            return original(builder, sites)

        monkeypatch.setattr(DistanceMatrixBuilder, "check_sites", counting)
        result = CartesianPipeline(planar_config).run(open_grid, corner_sites)

        assert calls == [3]
        assert result.site_check.navigable_ids == ["A", "B", "C"]

    def test_high_stress_logged_once(self, open_grid: RasterGrid, site_at, planar, caplog) -> None:
        """The stress advisory reaches the log a single time per run."""
        sites = [site_at("NW", 0, 0), site_at("NE", 0, 6), site_at("SE", 6, 6), site_at("SW", 6, 0)]
        config = PipelineConfig(conductance=planar, n_components=1, stress_threshold=0.0)

        with caplog.at_level(logging.WARNING, logger="coord_cartesian"), pytest.warns(ConvergenceWarning):
            result = CartesianPipeline(config).run(open_grid, sites)

        advisory = next(w for w in result.warnings if isinstance(w, HighStressWarning))
        assert [r.getMessage() for r in caplog.records].count(advisory.message) == 1
