"""Error taxonomy for coord_cartesian.

Structural problems (bad input, sites on land, unreachable pairs, degenerate
matrices) are fatal and raised before expensive work where possible.
High embedding stress is advisory only and surfaces as ConvergenceWarning.
"""

from typing import Sequence


class CoordCartesianError(Exception):
    """Base class for all coord_cartesian errors."""


class InvalidInputError(CoordCartesianError, ValueError):
    """Malformed sites, site tables, configuration or reused transition models."""


class InvalidGridError(InvalidInputError):
    """Raster is empty, not two-dimensional, or contains non-finite values."""


class SiteOnBarrierError(CoordCartesianError):
    """One or more sites snap to a cell outside the navigable band.

    Attributes:
        site_ids: Identifiers of the offending sites, in input order
    """

    def __init__(self, site_ids: Sequence[str]) -> None:
        self.site_ids = tuple(site_ids)
        super().__init__(
            f"{len(self.site_ids)} site(s) lie outside the navigable band: {', '.join(self.site_ids)}. "
            "Move these sites farther from the barrier (e.g. off land)."
        )


class UnreachablePairError(CoordCartesianError):
    """Two or more sites lie in disjoint navigable components.

    Attributes:
        pairs: (site_id_a, site_id_b) tuples with infinite least-cost distance
    """

    def __init__(self, pairs: Sequence[tuple[str, str]]) -> None:
        self.pairs = tuple(pairs)
        shown = ", ".join(f"{a}-{b}" for a, b in self.pairs[:10])
        more = f" (+{len(self.pairs) - 10} more)" if len(self.pairs) > 10 else ""
        super().__init__(f"No navigable path between {len(self.pairs)} site pair(s): {shown}{more}")


class DegenerateEmbeddingError(CoordCartesianError):
    """Distance matrix cannot be embedded (too few sites or no distance spread)."""


class ConvergenceWarning(UserWarning):
    """Embedding stress above the advisory threshold."""
