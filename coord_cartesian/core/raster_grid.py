"""Raster grid of scalar elevations with an affine lon/lat mapping.

Provides:
- RasterGrid: immutable elevation array + affine transform, cell snapping
- GridCell: (row, col) address of a raster cell
- RasterSource: protocol for collaborators that deliver RasterGrids
- GeoTiffRasterSource: reads the window around a bounding box from a GeoTIFF

Elevations follow the bathymetric convention: negative below sea level.
"""

import hashlib
import logging
import math
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Optional, Protocol

import numpy as np
import rasterio
from rasterio.enums import Resampling
from rasterio.transform import Affine, from_bounds
from rasterio.windows import Window
from rasterio.windows import from_bounds as window_from_bounds

from coord_cartesian.constants import RasterConfig
from coord_cartesian.errors import InvalidGridError
from coord_cartesian.model.site import BoundingBox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCell:
    """A cell address in the raster."""

    row: int
    col: int

    def __lt__(self, other: "GridCell") -> bool:
        """Comparison for sorting and debugging."""
        return (self.row, self.col) < (other.row, other.col)


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """Immutable 2-D elevation raster.

    Attributes:
        elevations: (n_rows, n_cols) float64 array, read-only
        transform: Affine mapping pixel (col, row) to (lon, lat) of the cell corner

    Example:
        grid = RasterGrid.from_bounds(depths, west=-70, south=40, east=-60, north=50)
        cell = grid.nearest_cell(lon=-65.2, lat=44.1)
    """

    elevations: np.ndarray
    transform: Affine

    def __post_init__(self) -> None:
        """Copy, validate and freeze the elevation array."""
        try:
            array = np.array(self.elevations, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidGridError(f"Raster values are not numeric: {e}") from e

        if array.ndim != 2:
            raise InvalidGridError(f"Raster must be two-dimensional, got shape {array.shape}")
        if array.shape[0] == 0 or array.shape[1] == 0:
            raise InvalidGridError(f"Raster has no cells (shape {array.shape})")
        n_bad = int(np.count_nonzero(~np.isfinite(array)))
        if n_bad:
            raise InvalidGridError(f"Raster contains {n_bad} non-finite value(s); fill nodata before building the grid")
        if self.transform.determinant == 0:
            raise InvalidGridError("Raster transform is singular (zero cell size)")

        array.setflags(write=False)
        object.__setattr__(self, "elevations", array)

    @classmethod
    def from_bounds(
        cls,
        elevations,
        west: float,
        south: float,
        east: float,
        north: float,
    ) -> "RasterGrid":
        """Build a north-up grid whose cells exactly tile the given bounds.

        Row 0 is the northern edge, column 0 the western edge.
        """
        array = np.asarray(elevations, dtype=np.float64)
        if array.ndim != 2:
            raise InvalidGridError(f"Raster must be two-dimensional, got shape {array.shape}")
        height, width = array.shape
        return cls(elevations=array, transform=from_bounds(west, south, east, north, width, height))

    @property
    def shape(self) -> tuple[int, int]:
        return self.elevations.shape

    @property
    def n_rows(self) -> int:
        return self.elevations.shape[0]

    @property
    def n_cols(self) -> int:
        return self.elevations.shape[1]

    @property
    def n_cells(self) -> int:
        return self.elevations.size

    @cached_property
    def fingerprint(self) -> str:
        """Content hash of elevations and transform (used to validate model reuse)."""
        digest = hashlib.sha1()
        digest.update(str(self.shape).encode())
        digest.update(repr(tuple(self.transform)[:6]).encode())
        digest.update(self.elevations.tobytes())
        return digest.hexdigest()

    def elevation_at(self, cell: GridCell) -> float:
        return float(self.elevations[cell.row, cell.col])

    def cell_center(self, cell: GridCell) -> tuple[float, float]:
        """Return (lon, lat) of the cell centre."""
        x, y = self.transform * (cell.col + 0.5, cell.row + 0.5)
        return float(x), float(y)

    def cell_centers(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (lons, lats) arrays of all cell centres, each shaped like the grid."""
        cols, rows = np.meshgrid(np.arange(self.n_cols) + 0.5, np.arange(self.n_rows) + 0.5)
        xs, ys = self.transform * (cols, rows)
        return np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64)

    def nearest_cell(self, lon: float, lat: float) -> Optional[GridCell]:
        """Snap a coordinate to the cell containing it.

        Args:
            lon: Longitude (raster x)
            lat: Latitude (raster y)

        Returns:
            GridCell, or None if the coordinate lies outside the raster.
        """
        col_f, row_f = ~self.transform * (lon, lat)
        row, col = math.floor(row_f), math.floor(col_f)

        # Points on the far edges belong to the last row/column
        if row == self.n_rows and math.isclose(row_f, self.n_rows):
            row -= 1
        if col == self.n_cols and math.isclose(col_f, self.n_cols):
            col -= 1

        if 0 <= row < self.n_rows and 0 <= col < self.n_cols:
            return GridCell(row=row, col=col)
        return None

    def contains(self, lon: float, lat: float) -> bool:
        return self.nearest_cell(lon=lon, lat=lat) is not None

    def __repr__(self) -> str:
        return f"RasterGrid(shape={self.shape}, transform={tuple(self.transform)[:6]})"


class RasterSource(Protocol):
    """Collaborator that delivers elevation rasters for a geographic window."""

    def fetch(self, bbox: BoundingBox, resolution_deg: Optional[float] = None) -> RasterGrid:
        ...


class GeoTiffRasterSource:
    """Read elevation windows from a local GeoTIFF in geographic coordinates.

    Example:
        source = GeoTiffRasterSource(Path("bathymetry.tif"), nodata_fill=1.0)
        grid = source.fetch(BoundingBox.around(sites), resolution_deg=1 / 60)
    """

    def __init__(self, path: Path, nodata_fill: Optional[float] = None) -> None:
        """Initialize the source.

        Args:
            path: GeoTIFF file with elevations in band 1
            nodata_fill: Value substituted for nodata cells. A positive value marks
                them as land; None leaves them NaN, which RasterGrid rejects.
        """
        self.path = Path(path)
        self.nodata_fill = nodata_fill

    def fetch(self, bbox: BoundingBox, resolution_deg: Optional[float] = None) -> RasterGrid:
        """Read the window covering bbox, optionally resampled to resolution_deg.

        Raises:
            FileNotFoundError: If the GeoTIFF does not exist.
            InvalidGridError: If the raster is not geographic or the window misses it.
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Raster file not found at {self.path}")

        logger.info(f"Reading raster window {bbox.as_tuple()} from {self.path}")

        with rasterio.open(self.path) as src:
            if src.crs is not None and not src.crs.is_geographic:
                raise InvalidGridError(
                    f"Raster CRS {src.crs} is not geographic; reproject to {RasterConfig.EXPECTED_CRS} first"
                )

            window = self._pixel_window(src, bbox)
            if resolution_deg is None:
                out_shape = (int(window.height), int(window.width))
            else:
                out_shape = (
                    max(1, round(window.height * abs(src.res[1]) / resolution_deg)),
                    max(1, round(window.width * abs(src.res[0]) / resolution_deg)),
                )

            data = src.read(
                1,
                window=window,
                out_shape=out_shape,
                resampling=Resampling.bilinear,
                masked=True,
            )
            transform = src.window_transform(window) * Affine.scale(
                window.width / out_shape[1],
                window.height / out_shape[0],
            )

        fill = np.nan if self.nodata_fill is None else self.nodata_fill
        elevations = np.ma.filled(data.astype(np.float64), fill_value=fill)

        logger.info(f"Raster window read (shape: {elevations.shape})")
        return RasterGrid(elevations=elevations, transform=transform)

    @staticmethod
    def _pixel_window(src, bbox: BoundingBox) -> Window:
        """Whole-pixel window covering bbox, clipped to the dataset."""
        window = window_from_bounds(*bbox.as_tuple(), transform=src.transform)
        col_start = max(0, math.floor(window.col_off))
        row_start = max(0, math.floor(window.row_off))
        col_stop = min(src.width, math.ceil(window.col_off + window.width))
        row_stop = min(src.height, math.ceil(window.row_off + window.height))

        if col_stop <= col_start or row_stop <= row_start:
            raise InvalidGridError(f"Bounding box {bbox.as_tuple()} does not overlap raster {src.bounds}")

        return Window(col_start, row_start, col_stop - col_start, row_stop - row_start)
