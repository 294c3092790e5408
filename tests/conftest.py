"""Shared pytest fixtures for coord_cartesian tests.

GRID CONVENTION:
    Test rasters span (0, 0) to (n_cols, n_rows) in raster units, so every cell
    is 1 x 1 and cell (row, col) has its centre at (col + 0.5, n_rows - row - 0.5).
    With the planar conductance model every orthogonal step costs 1 and every
    diagonal step costs sqrt(2), which keeps expected distances easy to derive:

        cost((r1, c1), (r2, c2)) = sqrt(2) * min(dr, dc) + |dr - dc|

    Water is -10 m, land is +5 m; the default barrier keeps water navigable.
"""

from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_bounds
from scipy.spatial.distance import pdist, squareform

from coord_cartesian.core.barrier import BarrierPredicate
from coord_cartesian.core.conductance import ConductanceModel
from coord_cartesian.core.raster_grid import RasterGrid
from coord_cartesian.model.site import Site
from coord_cartesian.pipeline import PipelineConfig
from coord_cartesian.routing.distance_matrix import DistanceMatrixBuilder

WATER_M = -10.0
LAND_M = 5.0
GRID_SIZE = 10


def grid_from_array(elevations: np.ndarray) -> RasterGrid:
    """Unit-cell grid with its south-west corner at the origin."""
    n_rows, n_cols = elevations.shape
    return RasterGrid.from_bounds(elevations, west=0.0, south=0.0, east=float(n_cols), north=float(n_rows))


def expected_grid_cost(a: tuple[int, int], b: tuple[int, int]) -> float:
    """Least-cost distance between two cells of an open unit grid (8-connected, planar)."""
    dr, dc = abs(a[0] - b[0]), abs(a[1] - b[1])
    return np.sqrt(2) * min(dr, dc) + abs(dr - dc)


# =============================================================================
# RASTERS AND MODELS
# =============================================================================


@pytest.fixture
def open_grid() -> RasterGrid:
    """10x10 grid of open water."""
    return grid_from_array(np.full((GRID_SIZE, GRID_SIZE), WATER_M))


@pytest.fixture
def walled_grid() -> RasterGrid:
    """10x10 water grid split in two by a full-width land wall on row 5."""
    elevations = np.full((GRID_SIZE, GRID_SIZE), WATER_M)
    elevations[5, :] = LAND_M
    return grid_from_array(elevations)


@pytest.fixture
def island_grid() -> RasterGrid:
    """10x10 water grid with a 4x4 island in the middle (rows/cols 3-6)."""
    elevations = np.full((GRID_SIZE, GRID_SIZE), WATER_M)
    elevations[3:7, 3:7] = LAND_M
    return grid_from_array(elevations)


@pytest.fixture
def rough_grid() -> RasterGrid:
    """12x12 grid of random depths (seeded), all navigable."""
    rng = np.random.default_rng(7)
    return grid_from_array(-rng.uniform(1.0, 100.0, size=(12, 12)))


@pytest.fixture
def sea() -> BarrierPredicate:
    """Default barrier: everything below 0 m is navigable."""
    return BarrierPredicate()


@pytest.fixture
def planar() -> ConductanceModel:
    """Constant conductance, edges measured in raster units."""
    return ConductanceModel(transform="constant", distance="planar")


@pytest.fixture
def planar_config(planar: ConductanceModel) -> PipelineConfig:
    return PipelineConfig(conductance=planar)


# =============================================================================
# SITES
# =============================================================================


@pytest.fixture
def site_at() -> Callable[..., Site]:
    """Factory: Site at the centre of cell (row, col) of a unit grid."""

    def make(site_id: str, row: int, col: int, n_rows: int = GRID_SIZE) -> Site:
        return Site(site_id=site_id, lon=col + 0.5, lat=n_rows - row - 0.5)

    return make


@pytest.fixture
def builder_for(sea: BarrierPredicate, planar: ConductanceModel) -> Callable[..., DistanceMatrixBuilder]:
    """Factory: DistanceMatrixBuilder with the sea barrier and planar model."""

    def make(raster: RasterGrid, **kwargs) -> DistanceMatrixBuilder:
        return DistanceMatrixBuilder(raster=raster, barrier=sea, conductance=planar, **kwargs)

    return make


@pytest.fixture
def square_distances() -> np.ndarray:
    """Euclidean distances between the corners of a unit square."""
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    return squareform(pdist(corners))


# =============================================================================
# FILES
# =============================================================================


def write_geotiff(
    path: Path,
    elevations: np.ndarray,
    bounds: tuple[float, float, float, float],
    crs: str = "EPSG:4326",
    nodata: Optional[float] = None,
) -> Path:
    """Write a single-band float GeoTIFF covering bounds (west, south, east, north)."""
    height, width = elevations.shape
    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": "float32",
        "crs": crs,
        "transform": from_bounds(*bounds, width, height),
    }
    if nodata is not None:
        profile["nodata"] = nodata
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(elevations.astype(np.float32), 1)
    return path


@pytest.fixture
def sea_geotiff(tmp_path: Path) -> Path:
    """20x20 water GeoTIFF at 0.5° resolution covering (0, 0) to (10, 10)."""
    return write_geotiff(tmp_path / "sea.tif", np.full((20, 20), WATER_M), bounds=(0.0, 0.0, 10.0, 10.0))
