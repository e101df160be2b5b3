"""In-memory, single-writer store of accepted shapes."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Iterator, Optional, Tuple

from shape_guard.audit import DecisionLog
from shape_guard.contracts import (
    Accepted,
    ConflictConfig,
    Outcome,
    RejectionReason,
    Shape,
    ShapeCategory,
    reject,
)
from shape_guard.normalize import check_shape_invariants, shape_area_m2
from shape_guard.resolver import resolve

logger = logging.getLogger(__name__)


class DuplicateShapeIdError(ValueError):
    """A shape id is already present in the store."""


class ShapeStore:
    """Ordered ``shape_id -> Shape`` mapping guarded by one lock.

    ``try_insert`` holds the lock across the capacity check, conflict
    resolution and the write, so a decision always sees a stable snapshot.
    Existing shapes are offered to the resolver in insertion order.
    """

    def __init__(
        self,
        config: Optional[ConflictConfig] = None,
        audit: Optional[DecisionLog] = None,
    ):
        self.config = config or ConflictConfig()
        self.audit = audit
        self._shapes: Dict[str, Shape] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(self.list_shapes())

    def __contains__(self, shape_id: object) -> bool:
        with self._lock:
            return shape_id in self._shapes

    def get(self, shape_id: str) -> Optional[Shape]:
        with self._lock:
            return self._shapes.get(shape_id)

    def list_shapes(self) -> Tuple[Shape, ...]:
        """Read-only snapshot in insertion order."""
        with self._lock:
            return tuple(self._shapes.values())

    def count(self, category: ShapeCategory) -> int:
        with self._lock:
            return sum(1 for s in self._shapes.values() if s.category is category)

    def try_insert(self, candidate: Shape) -> Outcome:
        """Capacity check, then conflict resolution, then insert on acceptance."""
        with self._lock:
            if candidate.shape_id in self._shapes:
                raise DuplicateShapeIdError(f"Shape id already stored: {candidate.shape_id}")

            limit = self.config.limit_for(candidate.category)
            if self.count(candidate.category) >= limit:
                outcome: Outcome = reject(
                    RejectionReason.CATEGORY_LIMIT_REACHED,
                    category=candidate.category,
                    limit=limit,
                )
            else:
                outcome = resolve(candidate, self.list_shapes(), self.config)

            area = None
            if isinstance(outcome, Accepted):
                self._shapes[outcome.shape.shape_id] = outcome.shape
                area = shape_area_m2(outcome.shape, self.config)
                logger.info(
                    "Accepted %s %s (%s, %.1f m2)",
                    outcome.shape.category.value,
                    outcome.shape.shape_id,
                    "trimmed" if outcome.modified else "unchanged",
                    area,
                )
            else:
                logger.info(
                    "Rejected %s %s: %s",
                    candidate.category.value, candidate.shape_id, outcome.reason.value,
                )

            if self.audit is not None:
                self.audit.append_decision(candidate=candidate, outcome=outcome, area_m2=area)
            return outcome

    def remove(self, shape_id: str) -> None:
        with self._lock:
            self._shapes.pop(shape_id, None)

    def replace_all(self, shapes: Iterable[Shape]) -> None:
        """Swap in a new collection; nothing changes if any shape is invalid."""
        replacement: Dict[str, Shape] = {}
        for shape in shapes:
            check_shape_invariants(shape)
            if shape.shape_id in replacement:
                raise DuplicateShapeIdError(f"Duplicate shape id in bulk load: {shape.shape_id}")
            replacement[shape.shape_id] = shape
        with self._lock:
            self._shapes = replacement
        logger.info("Loaded %d shapes", len(replacement))

    def clear(self) -> None:
        with self._lock:
            self._shapes = {}

