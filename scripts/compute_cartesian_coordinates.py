"""Compute Cartesian coordinates for sampling sites from least-cost marine distances.

Reads a site table (first column id, plus Long/Lat columns), reads the raster
window around the sites from a local GeoTIFF (with a 2 degree buffer), and
writes two files into the output directory:
- MyCartesianCoordinates.csv: the site table plus MDS1..k columns
- LeastCostDistances.csv: the least-cost distance matrix

Run: python scripts/compute_cartesian_coordinates.py sites.csv bathymetry.tif --out results/
"""

import argparse
import logging
import sys
import warnings
from pathlib import Path

from coord_cartesian.constants import BarrierConfig, ConductanceConfig, MDSConfig, OutputConfig, RasterConfig, RouterConfig
from coord_cartesian.core.barrier import BarrierPredicate
from coord_cartesian.core.conductance import TRANSFORM_NAMES, ConductanceModel
from coord_cartesian.core.raster_grid import GeoTiffRasterSource
from coord_cartesian.errors import ConvergenceWarning, CoordCartesianError
from coord_cartesian.io import read_sites_csv, write_coordinates_csv, write_distance_matrix_csv
from coord_cartesian.pipeline import CartesianPipeline, PipelineConfig

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("sites", type=Path, help="CSV with site id, Long and Lat columns")
    parser.add_argument("raster", type=Path, help="GeoTIFF with elevations (negative = below sea level)")
    parser.add_argument("--out", type=Path, default=Path("."), help="Output directory")
    parser.add_argument("--resolution", type=float, default=RasterConfig.DEFAULT_RESOLUTION_DEG, help="Cell size in degrees")
    parser.add_argument("--min-depth", type=float, default=BarrierConfig.MIN_ELEVATION_M, help="Deepest navigable elevation")
    parser.add_argument("--max-depth", type=float, default=BarrierConfig.MAX_ELEVATION_M, help="Shallowest navigable bound (exclusive)")
    parser.add_argument("--nodata-fill", type=float, default=1.0, help="Elevation substituted for nodata cells")
    parser.add_argument("--transform", choices=TRANSFORM_NAMES, default=ConductanceConfig.DEFAULT_TRANSFORM)
    parser.add_argument("--engine", choices=RouterConfig.ENGINES, default=RouterConfig.DEFAULT_ENGINE)
    parser.add_argument("--dimensions", type=int, default=MDSConfig.N_COMPONENTS, help="Number of Cartesian axes")
    parser.add_argument("--seed", type=int, default=MDSConfig.SEED)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)

    config = PipelineConfig(
        barrier=BarrierPredicate(min_elevation=args.min_depth, max_elevation=args.max_depth),
        conductance=ConductanceModel(transform=args.transform),
        engine=args.engine,
        n_components=args.dimensions,
        seed=args.seed,
    )

    try:
        sites = read_sites_csv(args.sites)
        source = GeoTiffRasterSource(args.raster, nodata_fill=args.nodata_fill)
        with warnings.catch_warnings():
            # High stress is already logged by the embedder
            warnings.simplefilter("ignore", ConvergenceWarning)
            result = CartesianPipeline(config).run_from_source(source, sites, resolution_deg=args.resolution)
    except (CoordCartesianError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    args.out.mkdir(parents=True, exist_ok=True)
    write_coordinates_csv(args.out / OutputConfig.COORDINATES_CSV, result)
    write_distance_matrix_csv(args.out / OutputConfig.DISTANCE_MATRIX_CSV, result.distance_matrix)

    logger.info(f"Stress: {result.stress:.4f}")
    if result.fit is not None:
        logger.info(f"Fit: {result.fit}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
