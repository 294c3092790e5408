"""Site - a named geographic location to be placed in Cartesian space.

The ordered sequence of Sites handed to the pipeline defines the row and
column order of every downstream matrix and of the embedding.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from coord_cartesian.constants import SiteConfig
from coord_cartesian.errors import InvalidInputError


@dataclass(frozen=True)
class Site:
    """A sampling site with WGS84 coordinates.

    Attributes:
        site_id: Identifier (population name or code)
        lon: Longitude in decimal degrees
        lat: Latitude in decimal degrees
        attributes: Extra columns from the source table, carried to the output unchanged

    Example:
        site = Site(site_id="POP1", lon=-63.5, lat=44.6)
    """

    site_id: str
    lon: float
    lat: float
    attributes: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        """Validate data after initialization."""
        if not str(self.site_id):
            raise InvalidInputError("Site identifier must not be empty")
        if not (math.isfinite(self.lon) and math.isfinite(self.lat)):
            raise InvalidInputError(f"Site {self.site_id} has non-finite coordinates ({self.lon}, {self.lat})")

    @property
    def lon_lat(self) -> tuple[float, float]:
        """Return (lon, lat) tuple - raster x/y order."""
        return (self.lon, self.lat)

    def __repr__(self) -> str:
        return f"Site({self.site_id}, lon={self.lon:.5f}, lat={self.lat:.5f})"


@dataclass(frozen=True)
class BoundingBox:
    """Geographic window in decimal degrees."""

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self) -> None:
        if not (self.west < self.east and self.south < self.north):
            raise InvalidInputError(
                f"Bounding box must have west < east and south < north, got "
                f"({self.west}, {self.south}, {self.east}, {self.north})"
            )

    @classmethod
    def around(cls, sites: Iterable[Site], buffer_deg: float = SiteConfig.BBOX_BUFFER_DEG) -> "BoundingBox":
        """Window enclosing all sites plus a buffer on every side.

        Args:
            sites: Sites to enclose
            buffer_deg: Degrees added around the site extent

        Returns:
            BoundingBox covering the buffered extent.
        """
        sites = list(sites)
        if not sites:
            raise InvalidInputError("Cannot build a bounding box around zero sites")
        lons = [s.lon for s in sites]
        lats = [s.lat for s in sites]
        return cls(
            west=min(lons) - buffer_deg,
            south=min(lats) - buffer_deg,
            east=max(lons) + buffer_deg,
            north=max(lats) + buffer_deg,
        )

    def as_tuple(self) -> tuple[float, float, float, float]:
        """Return (west, south, east, north)."""
        return (self.west, self.south, self.east, self.north)
