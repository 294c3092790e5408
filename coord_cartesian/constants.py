"""Configuration constants for coord_cartesian.

All configurable defaults are centralized here for easy tuning.
Runtime choices are passed explicitly (PipelineConfig, constructor arguments);
these classes only provide the defaults.

Classes:
    BarrierConfig: Navigable elevation band
    SiteConfig: Site table columns and raster request window
    RasterConfig: Raster source defaults
    ConductanceConfig: Transition surface construction
    RouterConfig: Least-cost search engine and worker pool
    MDSConfig: Nonmetric MDS iteration and stress convention
    OutputConfig: Result table and file names
"""


class BarrierConfig:
    """Navigable elevation band.

    A cell is navigable when MIN_ELEVATION_M <= elevation < MAX_ELEVATION_M.
    The upper bound is exclusive: with the default of 0 m, sea level counts as land.
    """

    MIN_ELEVATION_M = float("-inf")
    MAX_ELEVATION_M = 0.0


class SiteConfig:
    """Site table layout and raster request window."""

    # Site tables need an identifier column plus longitude and latitude
    MIN_COLUMNS = 3
    LON_COLUMN = "Long"
    LAT_COLUMN = "Lat"

    # Degrees added around the sites when requesting raster data
    # (a wider window gives least-cost paths room to go around coastlines)
    BBOX_BUFFER_DEG = 2.0


class RasterConfig:
    """Raster source defaults."""

    # Target cell size for resampled rasters (1 arc-minute)
    DEFAULT_RESOLUTION_DEG = 1.0 / 60.0

    # Sources must deliver geographic coordinates
    EXPECTED_CRS = "EPSG:4326"


class ConductanceConfig:
    """Transition surface construction parameters."""

    DEFAULT_TRANSFORM = "constant"

    # geodesic: haversine km, planar: raster units, none: uncorrected
    DISTANCE_MODES = ("geodesic", "planar", "none")
    DEFAULT_DISTANCE = "geodesic"

    # 8-connected grid neighbor directions
    NEIGHBORS_8 = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]


class RouterConfig:
    """Least-cost search configuration."""

    ENGINES = ("scipy", "heap")
    DEFAULT_ENGINE = "scipy"

    # None = one worker per available core
    MAX_WORKERS = None


class MDSConfig:
    """Nonmetric MDS parameters.

    Stress is Kruskal's stress formula 1. Values above STRESS_THRESHOLD are
    flagged for review but never treated as errors.
    """

    N_COMPONENTS = 2
    MAX_ITER = 300
    TOLERANCE = 1e-7  # Minimum stress improvement per iteration
    N_INIT = 4  # Classical start plus seeded random starts
    SEED = 1
    STRESS_THRESHOLD = 0.05
    ZERO_STRESS = 1e-12  # Below this the configuration is exact


class OutputConfig:
    """Result table and file names."""

    COORDINATE_PREFIX = "MDS"  # Columns MDS1, MDS2, ...
    COORDINATES_CSV = "MyCartesianCoordinates.csv"
    DISTANCE_MATRIX_CSV = "LeastCostDistances.csv"
    CSV_FLOAT_FORMAT = "{:.6f}"
