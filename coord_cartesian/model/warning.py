"""Warning - advisories attached to a result.

Advisories flag results that deserve a second look but are still valid:
- Embedding stress above the review threshold
- Several sites snapping to the same raster cell
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Warning(ABC):
    """Abstract base class for result advisories.

    Subclasses store specific parameters and compute message as property.
    Use isinstance() to check warning type.
    """

    @property
    @abstractmethod
    def message(self) -> str:
        """Human-readable warning message."""

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class HighStressWarning(Warning):
    """Embedding stress exceeds the review threshold.

    Attributes:
        stress: Achieved Kruskal stress-1
        threshold: Review threshold (0.05 by convention)
        warning_type: Type identifier for serialization
    """

    stress: float
    threshold: float
    warning_type: str = "HighStressWarning"

    @property
    def message(self) -> str:
        return (
            f"Potentially high stress (>{self.threshold}) value detected in MDS reprojection: "
            f"{self.stress:.4f}"
        )


@dataclass(frozen=True)
class SharedCellWarning(Warning):
    """Distinct sites snapped to the same raster cell (least-cost distance 0).

    Attributes:
        site_ids: Sites sharing the cell
        row: Cell row
        col: Cell column
        warning_type: Type identifier for serialization
    """

    site_ids: tuple[str, ...]
    row: int
    col: int
    warning_type: str = "SharedCellWarning"

    @property
    def message(self) -> str:
        return (
            f"Sites {', '.join(self.site_ids)} share raster cell ({self.row}, {self.col}); "
            "their least-cost distance is 0. Consider a finer raster resolution."
        )
