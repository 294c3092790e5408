"""Geodesic calculations on Earth's surface.

Provides the distance helpers used to length-correct grid edges:
- Great-circle distance (Haversine formula), scalar or NumPy arrays
- Planar distance between raster coordinates

All geodesic calculations use the WGS84 spherical Earth approximation (R = 6,371 km).
"""

import numpy as np

# Earth's radius in kilometres (WGS84 spherical approximation)
EARTH_RADIUS_KM = 6371.0


class GeoCalculator:
    """Static methods for distance calculations.

    Coordinates are in decimal degrees (WGS84). Inputs may be floats or
    equally-shaped NumPy arrays; outputs follow NumPy broadcasting.
    """

    EARTH_RADIUS_KM = EARTH_RADIUS_KM

    @staticmethod
    def haversine_distance_km(lon1, lat1, lon2, lat2):
        """Calculate great-circle distance between points using the Haversine formula.

        Args:
            lon1: Longitude of first point(s) (decimal degrees)
            lat1: Latitude of first point(s) (decimal degrees)
            lon2: Longitude of second point(s) (decimal degrees)
            lat2: Latitude of second point(s) (decimal degrees)

        Returns:
            Distance in kilometres (float for scalar input, ndarray otherwise).
        """
        lon1, lat1, lon2, lat2 = (np.radians(np.asarray(v, dtype=np.float64)) for v in (lon1, lat1, lon2, lat2))
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
        a = np.clip(a, 0.0, 1.0)
        distance = EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
        if distance.ndim == 0:
            return float(distance)
        return distance

    @staticmethod
    def planar_distance(x1, y1, x2, y2):
        """Euclidean distance in raster coordinate units."""
        distance = np.hypot(np.asarray(x2, dtype=np.float64) - x1, np.asarray(y2, dtype=np.float64) - y1)
        if distance.ndim == 0:
            return float(distance)
        return distance
