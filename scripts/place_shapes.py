#!/usr/bin/env python3
"""Replay drawn GeoJSON shapes through the conflict resolver."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shape_guard import (
    Accepted,
    ConflictConfig,
    DuplicateShapeIdError,
    ShapeCategory,
    ShapeStore,
)
from shape_guard.audit import DecisionLog
from shape_guard.contracts import DEFAULT_CATEGORY_LIMITS
from shape_guard.geojson_io import read_features, write_feature_collection
from shape_guard.run_protocol import open_run, point_latest, stage_input, write_json

logger = logging.getLogger(__name__)

# Decision code for candidates whose id is already taken; not a resolver outcome.
DUPLICATE_ID = "DuplicateShapeId"


def _parse_limit(value: str) -> tuple[ShapeCategory, int]:
    name, sep, raw = value.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"Expected CATEGORY=N, got {value!r}")
    try:
        category = ShapeCategory(name.strip())
        limit = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    if limit < 0:
        raise argparse.ArgumentTypeError(f"Limit must be >= 0, got {limit}")
    return category, limit


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Place drawn shapes, trimming overlaps and rejecting conflicts"
    )
    parser.add_argument(
        "--input", required=True, help="GeoJSON FeatureCollection of candidate shapes"
    )
    parser.add_argument(
        "--existing",
        default=None,
        help="GeoJSON FeatureCollection of already accepted shapes (bulk-loaded first)",
    )
    parser.add_argument("--name", default="place_shapes", help="Run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument(
        "--coordinates",
        choices=["geodetic", "planar"],
        default="geodetic",
        help="geodetic: lon/lat degrees; planar: metric coordinates",
    )
    parser.add_argument(
        "--min-area-m2",
        type=float,
        default=10.0,
        help="Reject trim results smaller than this area",
    )
    parser.add_argument(
        "--circle-segments",
        type=int,
        default=64,
        help="Polygon sides used to approximate circles",
    )
    parser.add_argument(
        "--limit",
        action="append",
        type=_parse_limit,
        default=[],
        metavar="CATEGORY=N",
        help="Per-category maximum count (repeatable)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def _build_summary(
    *,
    run_id: str,
    elapsed_s: float,
    candidates: int,
    accepted: int,
    trimmed: int,
    skipped: int,
    rejected_by_reason: Dict[str, int],
    stored: int,
) -> str:
    lines = [
        f"# Run {run_id}",
        "",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Candidates: {candidates}",
        f"- Accepted: {accepted} ({trimmed} trimmed)",
        f"- Rejected: {sum(rejected_by_reason.values())}",
        f"- Skipped (duplicate id): {skipped}",
        f"- Shapes stored: {stored}",
        "",
    ]
    if rejected_by_reason:
        lines.append("## Rejections")
        for reason, count in sorted(rejected_by_reason.items()):
            lines.append(f"- {reason}: {count}")
        lines.append("")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    limits = dict(DEFAULT_CATEGORY_LIMITS)
    limits.update(dict(args.limit))
    try:
        config = ConflictConfig(
            circle_segments=args.circle_segments,
            min_area_m2=args.min_area_m2,
            coordinate_mode=args.coordinates,
            category_limits=limits,
        )
    except ValueError as exc:
        parser.error(str(exc))

    # Inputs are read and bulk-loaded before any run folder exists, so bad
    # files never leave a partial run behind.
    store = ShapeStore(config=config)
    try:
        candidates = read_features(args.input)
        if args.existing:
            store.replace_all(read_features(args.existing))
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    started = time.perf_counter()
    run = open_run(args.runs_dir, args.name)
    staged_input = stage_input(run, args.input)
    staged_existing = stage_input(run, args.existing, subdir="existing") if args.existing else None

    audit = DecisionLog(run_id=run.run_id, artifacts_dir=run.artifacts_dir)
    store.audit = audit

    decisions: List[Dict[str, object]] = []
    rejected_by_reason: Dict[str, int] = {}
    accepted = trimmed = skipped = 0
    for candidate in candidates:
        record: Dict[str, object] = {
            "shape_id": candidate.shape_id,
            "category": candidate.category.value,
        }
        try:
            outcome = store.try_insert(candidate)
        except DuplicateShapeIdError as exc:
            logger.warning("Skipping %s: %s", candidate.shape_id, exc)
            skipped += 1
            record.update(accepted=False, skipped=True, reason=DUPLICATE_ID, message=str(exc))
            decisions.append(record)
            continue

        record["accepted"] = outcome.accepted
        if isinstance(outcome, Accepted):
            accepted += 1
            trimmed += int(outcome.modified)
            record["modified"] = outcome.modified
            record["result_category"] = outcome.shape.category.value
            record["trimmed_against"] = list(outcome.trimmed_against)
        else:
            code = outcome.reason.value
            rejected_by_reason[code] = rejected_by_reason.get(code, 0) + 1
            record["reason"] = code
            record["message"] = outcome.message
        decisions.append(record)
    audit.finalize()
    elapsed = time.perf_counter() - started
    rejected = sum(rejected_by_reason.values())

    write_feature_collection(run.accepted_geojson, store.list_shapes())
    write_json(run.decisions, {"run_id": run.run_id, "decisions": decisions})
    write_json(
        run.metrics,
        {
            "run_id": run.run_id,
            "elapsed_s": round(elapsed, 3),
            "coordinate_mode": config.coordinate_mode,
            "counts": {
                "candidates": len(candidates),
                "accepted": accepted,
                "trimmed": trimmed,
                "rejected": rejected,
                "skipped": skipped,
                "stored": len(store),
            },
            "rejections": rejected_by_reason,
        },
    )
    run.summary.write_text(
        _build_summary(
            run_id=run.run_id,
            elapsed_s=elapsed,
            candidates=len(candidates),
            accepted=accepted,
            trimmed=trimmed,
            skipped=skipped,
            rejected_by_reason=rejected_by_reason,
            stored=len(store),
        ),
        encoding="utf-8",
    )
    write_json(
        run.manifest,
        {
            "run_id": run.run_id,
            "name": args.name,
            "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "input": str(staged_input),
            "existing": str(staged_existing) if staged_existing else None,
            "config": {
                "coordinate_mode": config.coordinate_mode,
                "circle_segments": config.circle_segments,
                "min_area_m2": config.min_area_m2,
                "category_limits": {c.value: n for c, n in config.category_limits.items()},
            },
            "artifacts": run.artifact_index(),
        },
    )
    point_latest(args.runs_dir, run)

    print(f"Run ID: {run.run_id}")
    print(f"Run dir: {run.root}")
    print(f"Candidates: {len(candidates)}")
    print(f"Accepted: {accepted} ({trimmed} trimmed)")
    print(f"Rejected: {rejected}")
    if skipped:
        print(f"Skipped (duplicate id): {skipped}")
    print(f"Accepted GeoJSON: {run.accepted_geojson}")
    print(f"Decision log: {run.decision_log}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
