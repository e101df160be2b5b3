"""Append-only decision log for shape placement, with hash chaining."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from shape_guard.contracts import Accepted, Outcome, Shape

SCHEMA_DECISION_V1 = "shape_guard.decision.v1"
SCHEMA_HASH_CHAIN_V1 = "shape_guard.hash_chain.v1"
GENESIS_HASH = "0" * 64
DECISION_LOG_NAME = "decision_log.jsonl"
HASH_CHAIN_NAME = "decision_hash_chain.json"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _canonical_json(payload: Dict[str, object]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class DecisionLog:
    """JSONL writer; each record carries the hash of its predecessor."""

    def __init__(self, run_id: str, artifacts_dir: Path):
        self.run_id = run_id
        self.artifacts_dir = Path(artifacts_dir)
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)
        self.decision_log_path = self.artifacts_dir / DECISION_LOG_NAME
        self.hash_chain_path = self.artifacts_dir / HASH_CHAIN_NAME
        self._sequence = 0
        self._prev_hash = GENESIS_HASH
        self._chain: List[Dict[str, object]] = []

    @property
    def decision_count(self) -> int:
        return self._sequence

    def append_decision(
        self,
        *,
        candidate: Shape,
        outcome: Outcome,
        area_m2: Optional[float] = None,
    ) -> Dict[str, object]:
        self._sequence += 1
        payload: Dict[str, object] = {
            "schema_version": SCHEMA_DECISION_V1,
            "run_id": self.run_id,
            "seq": self._sequence,
            "timestamp_utc": _utc_now_iso(),
            "shape_id": candidate.shape_id,
            "category": candidate.category.value,
            "outcome": "accepted" if outcome.accepted else "rejected",
            "reason_code": None,
            "message": None,
            "conflicting_id": None,
            "modified": False,
            "result_category": None,
            "trimmed_against": [],
            "area_m2": None if area_m2 is None else float(area_m2),
            "previous_hash": self._prev_hash,
        }
        if isinstance(outcome, Accepted):
            payload["modified"] = bool(outcome.modified)
            payload["result_category"] = outcome.shape.category.value
            payload["trimmed_against"] = list(outcome.trimmed_against)
        else:
            payload["reason_code"] = outcome.reason.value
            payload["message"] = outcome.message
            payload["conflicting_id"] = outcome.conflicting_id

        digest = sha256_text(_canonical_json(payload))
        payload["hash"] = digest

        with self.decision_log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, sort_keys=True) + "\n")

        self._chain.append(
            {
                "seq": self._sequence,
                "hash": digest,
                "previous_hash": self._prev_hash,
            }
        )
        self._prev_hash = digest
        return payload

    def finalize(self) -> None:
        payload = {
            "schema_version": SCHEMA_HASH_CHAIN_V1,
            "run_id": self.run_id,
            "final_hash": self._prev_hash,
            "decision_count": self._sequence,
            "entries": self._chain,
        }
        self.hash_chain_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
        )
