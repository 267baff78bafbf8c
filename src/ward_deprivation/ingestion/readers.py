from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import geopandas as gpd
import pandas as pd

from ward_deprivation.config import dataset_path


def read_table(dataset_cfg: Dict[str, Any]) -> pd.DataFrame:
    """
    Read a tabular dataset (csv or excel) according to its registry block.

    Only minimal cleaning happens here: column names are stripped.
    """
    path = dataset_path(dataset_cfg)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    loader = dataset_cfg.get("loader", "csv")
    read_kwargs = {}
    skip = dataset_cfg.get("header_rows_to_skip")
    if skip is not None:
        read_kwargs["skiprows"] = skip

    if loader == "excel":
        read_kwargs["sheet_name"] = dataset_cfg.get("sheet", 0)
        df = pd.read_excel(path, **read_kwargs)
    elif loader == "csv":
        df = pd.read_csv(path, **read_kwargs)
    else:
        raise ValueError(f"Unsupported tabular loader {loader!r} for {path}")

    df.columns = [c.strip() if isinstance(c, str) else c for c in df.columns]
    return df


def read_vector(dataset_cfg: Dict[str, Any]) -> gpd.GeoDataFrame:
    """Read a vector dataset (shapefile, GeoPackage, GeoJSON...)."""
    path = dataset_path(dataset_cfg)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    loader = dataset_cfg.get("loader", "vector")
    if loader != "vector":
        raise ValueError(f"Expected loader='vector' for {path}, found loader={loader!r}")

    read_kwargs = {}
    if dataset_cfg.get("layer"):
        read_kwargs["layer"] = dataset_cfg["layer"]
    gdf = gpd.read_file(Path(path), **read_kwargs)

    # Some exports ship without a .prj; the registry can say what the CRS is
    if gdf.crs is None and dataset_cfg.get("crs"):
        gdf = gdf.set_crs(dataset_cfg["crs"])
    return gdf


def column_map(dataset_cfg: Dict[str, Any], defaults: Dict[str, str]) -> Dict[str, str]:
    """Canonical name -> source column, registry entries override defaults."""
    mapping = dict(defaults)
    mapping.update(dataset_cfg.get("columns") or {})
    return mapping


def require_columns(df: pd.DataFrame, columns: List[str], label: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"[{label}] Missing required columns: " + ", ".join(map(str, missing)))


def to_common_crs(gdf: gpd.GeoDataFrame, crs: str, label: str) -> gpd.GeoDataFrame:
    """Reproject to the shared CRS; a frame without a CRS cannot be placed."""
    if gdf.crs is None:
        raise ValueError(f"[{label}] Geometry has no CRS; set 'crs' in config/datasets.yaml")
    return gdf.to_crs(crs)
