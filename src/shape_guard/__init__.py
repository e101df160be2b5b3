"""Public API for drawn-shape conflict resolution."""

from shape_guard.contracts import (
    Accepted,
    ConflictConfig,
    Rejected,
    RejectionReason,
    Shape,
    ShapeCategory,
)
from shape_guard.normalize import InvalidGeometryKind, normalize
from shape_guard.resolver import resolve
from shape_guard.store import DuplicateShapeIdError, ShapeStore

__all__ = [
    "Accepted",
    "ConflictConfig",
    "DuplicateShapeIdError",
    "InvalidGeometryKind",
    "Rejected",
    "RejectionReason",
    "Shape",
    "ShapeCategory",
    "ShapeStore",
    "normalize",
    "resolve",
]
