"""Contracts for drawn-shape conflict resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from shapely.geometry.base import BaseGeometry

COORDINATE_MODES = ("planar", "geodetic")


class ShapeCategory(Enum):
    """User-facing drawing type, independent of the geometric encoding."""

    POLYGON = "polygon"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    MARKER = "marker"


# Never intersected, contained, or trimmed.
EXEMPT_CATEGORIES = frozenset({ShapeCategory.LINE, ShapeCategory.MARKER})


class RejectionReason(Enum):
    FULLY_INSIDE_EXISTING = "FullyInsideExisting"
    FULLY_ENCOMPASSES_EXISTING = "FullyEncompassesExisting"
    FULLY_CONSUMED_BY_OVERLAP = "FullyConsumedByOverlap"
    RESULT_TOO_SMALL = "ResultTooSmall"
    INVALID_GEOMETRY_FOR_SPATIAL_CHECK = "InvalidGeometryForSpatialCheck"
    CATEGORY_LIMIT_REACHED = "CategoryLimitReached"


REJECTION_MESSAGES: Dict[RejectionReason, str] = {
    RejectionReason.FULLY_INSIDE_EXISTING: "New shape is fully inside an existing shape.",
    RejectionReason.FULLY_ENCOMPASSES_EXISTING: "New shape fully encompasses an existing shape.",
    RejectionReason.FULLY_CONSUMED_BY_OVERLAP: "Shape fully consumed by overlap.",
    RejectionReason.RESULT_TOO_SMALL: "Resulting shape is too small.",
    RejectionReason.INVALID_GEOMETRY_FOR_SPATIAL_CHECK: "Invalid geometry for spatial check.",
    RejectionReason.CATEGORY_LIMIT_REACHED: "Limit reached for {category} (Max: {limit})",
}

DEFAULT_CATEGORY_LIMITS: Dict[ShapeCategory, int] = {
    ShapeCategory.POLYGON: 10,
    ShapeCategory.RECTANGLE: 10,
    ShapeCategory.CIRCLE: 10,
    ShapeCategory.LINE: 10,
}


@dataclass(frozen=True)
class ConflictConfig:
    """Tunables for normalization, trimming and capacity checks."""

    circle_segments: int = 64
    min_area_m2: float = 10.0  # trim results below this are artifacts
    coordinate_mode: str = "planar"
    # Read-only view; left out of the hash since mappings are unhashable.
    category_limits: Mapping[ShapeCategory, int] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_LIMITS), hash=False
    )
    default_category_limit: int = 10

    def __post_init__(self):
        if self.circle_segments < 3:
            raise ValueError(f"circle_segments must be >= 3, got {self.circle_segments}")
        if self.min_area_m2 < 0:
            raise ValueError(f"min_area_m2 must be >= 0, got {self.min_area_m2}")
        if self.coordinate_mode not in COORDINATE_MODES:
            raise ValueError(
                f"coordinate_mode must be one of {COORDINATE_MODES}, got {self.coordinate_mode!r}"
            )
        if self.default_category_limit < 0:
            raise ValueError("default_category_limit must be >= 0")
        for category, limit in self.category_limits.items():
            if limit < 0:
                raise ValueError(f"Limit for {category.value} must be >= 0, got {limit}")
        object.__setattr__(self, "category_limits", MappingProxyType(dict(self.category_limits)))

    def limit_for(self, category: ShapeCategory) -> int:
        return int(self.category_limits.get(category, self.default_category_limit))


@dataclass(frozen=True)
class Shape:
    """A drawn shape, either a raw candidate or an accepted store entry."""

    shape_id: str
    category: ShapeCategory
    geometry: BaseGeometry
    radius_m: Optional[float] = None
    metadata: Dict[str, float | int | str] = field(default_factory=dict)

    @property
    def is_exempt(self) -> bool:
        return self.category in EXEMPT_CATEGORIES


@dataclass(frozen=True)
class Accepted:
    """Shape accepted as-is (``modified=False``) or after trimming."""

    shape: Shape
    modified: bool = False
    trimmed_against: Tuple[str, ...] = ()

    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    """Recoverable rejection; the store is left untouched."""

    reason: RejectionReason
    message: str
    conflicting_id: Optional[str] = None
    category: Optional[ShapeCategory] = None
    limit: Optional[int] = None

    @property
    def accepted(self) -> bool:
        return False


Outcome = Union[Accepted, Rejected]


def reject(reason: RejectionReason, **kwargs) -> Rejected:
    """Build a Rejected with the canonical message for *reason*."""
    message = REJECTION_MESSAGES[reason]
    if reason is RejectionReason.CATEGORY_LIMIT_REACHED:
        message = message.format(
            category=kwargs["category"].value, limit=kwargs["limit"]
        )
    return Rejected(reason=reason, message=message, **kwargs)
