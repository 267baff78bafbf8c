from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml


# Paths
ROOT = Path(__file__).resolve().parents[2]
CONFIG_DIR = ROOT / "config"
DATASETS_CONFIG = CONFIG_DIR / "datasets.yaml"
PIPELINE_CONFIG = CONFIG_DIR / "pipeline.yaml"

ON_MISSING_MODES = ("exclude", "raise")
DIAG_SUBDIR = "diagnostics"


@dataclass(frozen=True)
class PipelineSettings:
    target_city: str
    crs: str = "EPSG:27700"
    age_band: str = "All Ages"
    on_missing: str = "exclude"
    output_dir: str = "outputs"

    def __post_init__(self) -> None:
        if self.on_missing not in ON_MISSING_MODES:
            raise ValueError(
                f"on_missing must be one of {ON_MISSING_MODES}, got {self.on_missing!r}"
            )

    @property
    def output_path(self) -> Path:
        path = Path(self.output_dir)
        return path if path.is_absolute() else ROOT / path

    @property
    def diagnostics_path(self) -> Path:
        return self.output_path / DIAG_SUBDIR


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_datasets_config(path: Path | None = None) -> Dict[str, Dict[str, Any]]:
    """Load the datasets registry from YAML."""
    doc = _read_yaml(path or DATASETS_CONFIG)
    # either {datasets: {...}} or direct mapping
    return doc.get("datasets", doc)


def get_dataset_config(datasets_cfg: dict, key: str) -> dict:
    """Return the config block for one dataset key."""
    try:
        return datasets_cfg[key]
    except KeyError:
        raise KeyError(f"Dataset {key!r} not found in config/datasets.yaml")


def dataset_path(dataset_cfg: dict) -> Path:
    path_str = dataset_cfg.get("path")
    if not path_str:
        raise ValueError(f"Dataset config must contain a 'path' field: {dataset_cfg}")
    path = Path(path_str)
    return path if path.is_absolute() else ROOT / path


def load_pipeline_settings(path: Path | None = None) -> PipelineSettings:
    doc = _read_yaml(path or PIPELINE_CONFIG)
    pipeline = doc.get("pipeline", doc)
    if not pipeline.get("target_city"):
        raise ValueError("pipeline.yaml must set 'target_city'")
    known = {"target_city", "crs", "age_band", "on_missing", "output_dir"}
    unknown = sorted(set(pipeline) - known)
    if unknown:
        raise ValueError(f"Unknown keys in pipeline.yaml: {unknown}")
    return PipelineSettings(**pipeline)
