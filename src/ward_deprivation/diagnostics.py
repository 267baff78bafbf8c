from __future__ import annotations

import logging
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class ContainmentReport:
    total_points: int
    outside_ward: int
    outside_lsoa: int
    ambiguous_ward: int
    ambiguous_lsoa: int
    assigned: int

    @property
    def excluded(self) -> int:
        return self.total_points - self.assigned

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["excluded"] = self.excluded
        return d


@dataclass
class JoinReport:
    stage: str
    left_rows: int
    matched: int
    unmatched: int
    unmatched_keys: List[Any] = field(default_factory=list)
    # right-side keys the left side never referenced
    unmatched_right: int = 0
    unmatched_right_keys: List[Any] = field(default_factory=list)

    def log(self) -> None:
        if self.unmatched:
            logger.warning(
                f"[{self.stage}] {self.unmatched} of {self.left_rows} rows unmatched "
                f"(e.g. {self.unmatched_keys[:5]})"
            )
        else:
            logger.info(f"[{self.stage}] all {self.left_rows} rows matched")
        if self.unmatched_right:
            logger.warning(
                f"[{self.stage}] {self.unmatched_right} right-side keys unused "
                f"(e.g. {self.unmatched_right_keys[:5]})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_join_report(stage: str, keys, matched_mask, right_missing=()) -> JoinReport:
    """
    Summarise a join from the left-side keys and a boolean matched mask.

    `right_missing` holds right-side keys with no partner on the left.
    """
    right_missing = sorted({str(k) for k in right_missing})
    keys = list(keys)
    matched_mask = list(matched_mask)
    missing = sorted({str(k) for k, ok in zip(keys, matched_mask) if not ok})
    n_matched = sum(1 for ok in matched_mask if ok)
    report = JoinReport(
        stage=stage,
        left_rows=len(keys),
        matched=n_matched,
        unmatched=len(keys) - n_matched,
        unmatched_keys=missing[:20],
        unmatched_right=len(right_missing),
        unmatched_right_keys=right_missing[:20],
    )
    report.log()
    return report
