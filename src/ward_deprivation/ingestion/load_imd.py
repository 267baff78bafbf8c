from __future__ import annotations

from typing import Any, Dict, Optional

import pandas as pd

from ward_deprivation.ingestion.readers import column_map, read_table, require_columns

DEFAULT_COLUMNS = {
    "lsoa_code": "LSOA code (2011)",
    "lsoa_name": "LSOA name (2011)",
    "authority_name": "Local Authority District name (2019)",
    "imd_rank": "Index of Multiple Deprivation (IMD) Rank",
}


def normalise_imd(
    df: pd.DataFrame,
    code_col: str = "LSOA code (2011)",
    authority_col: str = "Local Authority District name (2019)",
    rank_col: str = "Index of Multiple Deprivation (IMD) Rank",
    name_col: Optional[str] = None,
) -> pd.DataFrame:
    """
    Load IMD LSOA-level data into canonical columns.

    Returns columns:
        lsoa_code
        authority_name
        imd_rank
        lsoa_name (only if `name_col` is present in the source)
    """
    require_columns(df, [code_col, authority_col, rank_col], "IMD")

    rename = {
        code_col: "lsoa_code",
        authority_col: "authority_name",
        rank_col: "imd_rank",
    }
    keep = [code_col, authority_col, rank_col]
    if name_col and name_col in df.columns:
        rename[name_col] = "lsoa_name"
        keep.append(name_col)

    out = df[keep].rename(columns=rename)
    for col in [c for c in ["lsoa_code", "authority_name", "lsoa_name"] if c in out.columns]:
        out[col] = out[col].astype(str).str.strip()

    out["imd_rank"] = pd.to_numeric(out["imd_rank"], errors="coerce")
    if out["imd_rank"].isna().any():
        bad = out.loc[out["imd_rank"].isna(), "lsoa_code"].head(10).tolist()
        raise ValueError(f"[IMD] Non-numeric IMD rank for: {bad}")
    out["imd_rank"] = out["imd_rank"].astype(int)
    return out


def filter_authority(imd: pd.DataFrame, target_city: str) -> pd.DataFrame:
    """Keep the target authority's LSOAs, projected to (lsoa_code, imd_rank[, lsoa_name])."""
    city = imd[imd["authority_name"] == target_city]
    if city.empty:
        raise ValueError(f"[IMD] No LSOAs found for authority {target_city!r}")
    cols = [c for c in ["lsoa_code", "lsoa_name", "imd_rank"] if c in city.columns]
    return city[cols].sort_values("lsoa_code").reset_index(drop=True)


def load_imd(dataset_cfg: Dict[str, Any], target_city: str) -> pd.DataFrame:
    cols = column_map(dataset_cfg, DEFAULT_COLUMNS)
    df = normalise_imd(
        read_table(dataset_cfg),
        code_col=cols["lsoa_code"],
        authority_col=cols["authority_name"],
        rank_col=cols["imd_rank"],
        name_col=cols.get("lsoa_name"),
    )
    return filter_authority(df, target_city)
