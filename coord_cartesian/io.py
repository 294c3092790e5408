"""CSV boundary: site tables in, coordinates and distance matrices out.

Site tables follow the common population-genetics layout: first column is the
site identifier, with "Long" and "Lat" columns in decimal degrees. Any other
columns are carried through to the coordinate output unchanged.
"""

import csv
import logging
from pathlib import Path
from typing import Union

from coord_cartesian.constants import OutputConfig, SiteConfig
from coord_cartesian.errors import InvalidInputError
from coord_cartesian.model.results import CartesianResult, DistanceMatrix
from coord_cartesian.model.site import Site

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_sites_csv(path: PathLike) -> list[Site]:
    """Read sites from a CSV file.

    Args:
        path: CSV with a header row; first column is the site id

    Returns:
        Sites in file order, each carrying its full row as attributes.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidInputError: Too few columns, missing Long/Lat, or bad coordinates.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Site table not found at {path}")

    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        columns = reader.fieldnames or []
        if len(columns) < SiteConfig.MIN_COLUMNS:
            raise InvalidInputError(
                f"Site table needs at least {SiteConfig.MIN_COLUMNS} columns "
                f"(id, {SiteConfig.LON_COLUMN}, {SiteConfig.LAT_COLUMN}), got {len(columns)}"
            )
        missing = [c for c in (SiteConfig.LON_COLUMN, SiteConfig.LAT_COLUMN) if c not in columns]
        if missing:
            raise InvalidInputError(f"Site table is missing column(s): {', '.join(missing)}")

        id_column = columns[0]
        sites = []
        for line_number, row in enumerate(reader, start=2):
            try:
                lon = float(row[SiteConfig.LON_COLUMN])
                lat = float(row[SiteConfig.LAT_COLUMN])
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"{path}:{line_number}: invalid coordinates: {e}") from e
            sites.append(Site(site_id=row[id_column], lon=lon, lat=lat, attributes=dict(row)))

    logger.info(f"Read {len(sites)} sites from {path}")
    return sites


def write_coordinates_csv(path: PathLike, result: CartesianResult) -> Path:
    """Write the site table augmented with MDS1..k columns."""
    path = Path(path)
    rows = result.augmented_rows()
    # Sites built in code and sites read from a table carry different columns
    site_columns = dict.fromkeys(key for row in rows for key in row if key not in result.coordinate_columns)
    columns = list(site_columns) + result.coordinate_columns

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, restval="")
        writer.writeheader()
        for row in rows:
            writer.writerow(
                {k: OutputConfig.CSV_FLOAT_FORMAT.format(v) if k in result.coordinate_columns else v for k, v in row.items()}
            )

    logger.info(f"Wrote coordinates for {len(rows)} sites to {path}")
    return path


def write_distance_matrix_csv(path: PathLike, matrix: DistanceMatrix) -> Path:
    """Write the least-cost distance matrix with site ids as header and first column."""
    path = Path(path)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([""] + list(matrix.site_ids))
        for site_id, row in zip(matrix.site_ids, matrix.values):
            writer.writerow([site_id] + [OutputConfig.CSV_FLOAT_FORMAT.format(v) for v in row])

    logger.info(f"Wrote {matrix.n_sites}x{matrix.n_sites} distance matrix to {path}")
    return path
