from __future__ import annotations

from typing import Any, Dict

import geopandas as gpd

from ward_deprivation.ingestion.readers import (
    column_map,
    read_vector,
    require_columns,
    to_common_crs,
)

DEFAULT_COLUMNS = {"lsoa_code": "LSOA11CD", "lsoa_name": "LSOA11NM"}


def normalise_lsoa_boundaries(
    gdf: gpd.GeoDataFrame,
    crs: str,
    code_col: str = "LSOA11CD",
    name_col: str = "LSOA11NM",
) -> gpd.GeoDataFrame:
    """Return LSOA polygons as (lsoa_code, lsoa_name, geometry) in `crs`."""
    require_columns(gdf, [code_col, name_col], "LSOA_BOUNDARIES")

    lsoas = to_common_crs(gdf, crs, "LSOA_BOUNDARIES")
    lsoas = lsoas.rename(columns={code_col: "lsoa_code", name_col: "lsoa_name"})
    for col in ["lsoa_code", "lsoa_name"]:
        lsoas[col] = lsoas[col].astype(str).str.strip()

    lsoas = lsoas[["lsoa_code", "lsoa_name", "geometry"]]
    return lsoas.sort_values("lsoa_code").reset_index(drop=True)


def load_lsoa_boundaries(dataset_cfg: Dict[str, Any], crs: str) -> gpd.GeoDataFrame:
    cols = column_map(dataset_cfg, DEFAULT_COLUMNS)
    return normalise_lsoa_boundaries(
        read_vector(dataset_cfg),
        crs,
        code_col=cols["lsoa_code"],
        name_col=cols["lsoa_name"],
    )
