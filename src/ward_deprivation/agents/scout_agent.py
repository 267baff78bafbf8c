"""
ScoutAgent
Pre-run diagnostics for the ward deprivation inputs.

This agent:
- Reads the dataset registry from config/datasets.yaml
- Loads each dataset with its registered loader (vector / csv / excel)
- Checks the columns the pipeline needs are present
- Produces a diagnostics JSON report in outputs/diagnostics
- Prints a summary to stdout

Safe to run anytime. Does not modify data.
"""

from __future__ import annotations

import json
import datetime as dt
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional, Any

from ward_deprivation.config import (
    ROOT,
    DATASETS_CONFIG,
    dataset_path,
    load_datasets_config,
    load_pipeline_settings,
)
from ward_deprivation.ingestion import load_imd, load_lsoa_boundaries, load_population, load_wards
from ward_deprivation.ingestion.readers import column_map, read_table, read_vector

# dataset key -> (vector?, default column map)
EXPECTED_DATASETS = {
    "wards": (True, load_wards.DEFAULT_COLUMNS),
    "lsoa_boundaries": (True, load_lsoa_boundaries.DEFAULT_COLUMNS),
    "addresses": (True, {}),
    "lsoa_population": (False, load_population.DEFAULT_COLUMNS),
    "imd": (False, load_imd.DEFAULT_COLUMNS),
}

# Columns the loaders only use when present
OPTIONAL_COLUMNS = {"lsoa_name", "label_x", "label_y"}


# -------------------------------------------------------
# Dataclasses
# -------------------------------------------------------

@dataclass
class DatasetCheck:
    dataset_key: str
    name: str
    path: str
    exists: bool
    readable: bool
    n_rows: Optional[int]
    columns: List[str]
    missing_columns: List[str]
    crs: Optional[str]
    errors: List[str]

    @property
    def ok(self) -> bool:
        return self.exists and self.readable and not self.missing_columns and not self.errors


@dataclass
class ScoutReport:
    timestamp_utc: str
    repo_root: str
    datasets_registry_path: str
    all_ok: bool
    datasets: List[DatasetCheck]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_utc": self.timestamp_utc,
            "repo_root": self.repo_root,
            "datasets_registry_path": self.datasets_registry_path,
            "all_ok": self.all_ok,
            "datasets": [asdict(d) for d in self.datasets]
        }


def required_columns(key: str, meta: Dict[str, Any]) -> List[str]:
    _, defaults = EXPECTED_DATASETS[key]
    cols = column_map(meta, defaults)
    # The IMD name column is optional; the authority filter needs the rest
    return [src for canon, src in cols.items() if canon not in OPTIONAL_COLUMNS]


# -------------------------------------------------------
# ScoutAgent
# -------------------------------------------------------

class ScoutAgent:
    def __init__(self, registry_path: Path | None = None, diag_dir: Path | None = None):
        self.registry_path = registry_path or DATASETS_CONFIG
        # same place the composer writes its report
        self.diag_dir = diag_dir or load_pipeline_settings().diagnostics_path

    def run(self) -> ScoutReport:
        registry = load_datasets_config(self.registry_path)
        results = []

        for key in EXPECTED_DATASETS:
            if key not in registry:
                results.append(DatasetCheck(
                    dataset_key=key, name=key, path="", exists=False,
                    readable=False, n_rows=None, columns=[], missing_columns=[],
                    crs=None, errors=[f"Dataset {key!r} not registered"],
                ))
                continue
            results.append(self._check_dataset(key, registry[key]))

        return ScoutReport(
            timestamp_utc=dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds"),
            repo_root=str(ROOT),
            datasets_registry_path=str(self.registry_path),
            all_ok=all(r.ok for r in results),
            datasets=results,
        )

    def save(self, report: ScoutReport, diag_dir: Path | None = None) -> Path:
        diag_dir = diag_dir or self.diag_dir
        diag_dir.mkdir(parents=True, exist_ok=True)
        out_path = diag_dir / "scout_report.json"
        with out_path.open("w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2)
        print(f"[ScoutAgent] Report written to {out_path}")
        return out_path

    # ----------------------------
    # Internal: dataset check
    # ----------------------------
    def _check_dataset(self, key: str, meta: Dict[str, Any]) -> DatasetCheck:
        errors = []
        name = meta.get("description", key)

        try:
            path = dataset_path(meta)
        except ValueError as exc:
            return DatasetCheck(
                dataset_key=key, name=name, path="", exists=False,
                readable=False, n_rows=None, columns=[], missing_columns=[],
                crs=None, errors=[str(exc)],
            )

        if not path.exists():
            errors.append(f"File does not exist: {path}")
            return DatasetCheck(
                dataset_key=key, name=name, path=str(path),
                exists=False, readable=False, n_rows=None, columns=[],
                missing_columns=[], crs=None, errors=errors,
            )

        is_vector, _ = EXPECTED_DATASETS[key]
        crs = None
        # Try reading
        try:
            if is_vector:
                df = read_vector(meta)
                crs = df.crs.to_string() if df.crs is not None else None
                if crs is None:
                    errors.append("Geometry has no CRS")
            else:
                df = read_table(meta)
        except Exception as exc:
            errors.append(f"Failed to read file: {exc}")
            return DatasetCheck(
                dataset_key=key, name=name, path=str(path),
                exists=True, readable=False, n_rows=None, columns=[],
                missing_columns=["<unreadable>"], crs=None, errors=errors,
            )

        columns = [str(c) for c in df.columns]
        missing = [c for c in required_columns(key, meta) if c not in df.columns]

        return DatasetCheck(
            dataset_key=key,
            name=name,
            path=str(path),
            exists=True,
            readable=True,
            n_rows=len(df),
            columns=columns,
            missing_columns=missing,
            crs=crs,
            errors=errors,
        )


# -------------------------------------------------------
# CLI entrypoint
# -------------------------------------------------------

def main() -> int:
    agent = ScoutAgent()
    report = agent.run()
    agent.save(report)
    print("=== ScoutAgent Summary ===")
    print(f"All OK: {report.all_ok}")
    for d in report.datasets:
        print(
            f"[{d.dataset_key}] {d.name} | Exists={d.exists} | Readable={d.readable} "
            f"| Missing={d.missing_columns} | CRS={d.crs}"
        )
    return 0 if report.all_ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
