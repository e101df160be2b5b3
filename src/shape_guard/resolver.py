"""Accept, reject, or trim a candidate shape against existing shapes.

A candidate is checked against every existing areal shape in the order the
caller supplies them (insertion order for ``ShapeStore``).  For each
overlapping neighbour:

1. containment in either direction blocks the candidate outright;
2. otherwise the neighbour is subtracted from the running geometry;
3. an empty or sub-threshold remainder blocks the candidate.

The running geometry is threaded through the neighbours one at a time, so
when three or more shapes are entangled the outcome depends on visit order.
That order is part of the contract.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence

from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from shape_guard.contracts import (
    Accepted,
    ConflictConfig,
    Outcome,
    RejectionReason,
    Shape,
    ShapeCategory,
    reject,
)
from shape_guard.measure import area_m2
from shape_guard.normalize import InvalidGeometryKind, normalize

logger = logging.getLogger(__name__)


def _polygonal_part(geom: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """Keep only the areal parts of a difference result, or ``None``."""
    if geom is None or geom.is_empty:
        return None
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    # GeometryCollection: drop slivers collapsed to lines/points
    polys: List[Polygon] = []
    for part in getattr(geom, "geoms", []):
        if isinstance(part, Polygon) and not part.is_empty:
            polys.append(part)
        elif isinstance(part, MultiPolygon):
            polys.extend(p for p in part.geoms if not p.is_empty)
    if not polys:
        return None
    return polys[0] if len(polys) == 1 else MultiPolygon(polys)


def _overlaps_area(a: BaseGeometry, b: BaseGeometry) -> bool:
    """True when *a* and *b* share area; a boundary touch does not count."""
    return a.intersects(b) and not a.touches(b)


def _relevant_existing(candidate: Shape, existing: Sequence[Shape]) -> List[Shape]:
    return [
        other
        for other in existing
        if other.shape_id != candidate.shape_id and not other.is_exempt
    ]


def resolve(
    candidate: Shape,
    existing: Sequence[Shape],
    config: Optional[ConflictConfig] = None,
) -> Outcome:
    """Decide whether *candidate* may join *existing*.

    Returns ``Accepted`` carrying either the original candidate (nothing was
    trimmed) or a rewritten polygon shape, or ``Rejected`` with a reason.
    Never mutates *candidate* or *existing*.
    """
    config = config or ConflictConfig()
    mode = config.coordinate_mode

    try:
        current = normalize(candidate, config)
    except InvalidGeometryKind as exc:
        logger.info("Rejecting %s: %s", candidate.shape_id, exc)
        return reject(RejectionReason.INVALID_GEOMETRY_FOR_SPATIAL_CHECK)
    if current is None:
        return Accepted(shape=candidate)

    trimmed_against: List[str] = []

    for other in _relevant_existing(candidate, existing):
        try:
            other_geom = normalize(other, config)
        except InvalidGeometryKind as exc:
            logger.warning("Existing shape %s failed normalization: %s", other.shape_id, exc)
            return reject(
                RejectionReason.INVALID_GEOMETRY_FOR_SPATIAL_CHECK,
                conflicting_id=other.shape_id,
            )
        if other_geom is None:
            continue

        if not _overlaps_area(current, other_geom):
            continue

        # Containment must be tested before the difference: a contained
        # shape would otherwise look "consumed".
        if other_geom.contains(current):
            return reject(RejectionReason.FULLY_INSIDE_EXISTING, conflicting_id=other.shape_id)
        if current.contains(other_geom):
            return reject(
                RejectionReason.FULLY_ENCOMPASSES_EXISTING, conflicting_id=other.shape_id
            )

        diff = _polygonal_part(current.difference(other_geom))
        if diff is None:
            return reject(
                RejectionReason.FULLY_CONSUMED_BY_OVERLAP, conflicting_id=other.shape_id
            )

        remaining = area_m2(diff, mode)
        if remaining < config.min_area_m2:
            logger.debug(
                "Trim of %s by %s leaves %.3f m2 (< %.3f)",
                candidate.shape_id, other.shape_id, remaining, config.min_area_m2,
            )
            return reject(RejectionReason.RESULT_TOO_SMALL, conflicting_id=other.shape_id)

        logger.debug(
            "Trimmed %s by %s: %.3f m2 remaining", candidate.shape_id, other.shape_id, remaining
        )
        current = diff
        trimmed_against.append(other.shape_id)

    if not trimmed_against:
        # Untouched: keep the native encoding (a circle stays point + radius).
        return Accepted(shape=candidate)

    trimmed = dataclasses.replace(
        candidate,
        category=ShapeCategory.POLYGON,
        geometry=current,
        radius_m=None,
        metadata=dict(candidate.metadata),
    )
    return Accepted(shape=trimmed, modified=True, trimmed_against=tuple(trimmed_against))
