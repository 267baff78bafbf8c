from __future__ import annotations

from typing import Any, Dict, Optional

import geopandas as gpd
import pandas as pd

from ward_deprivation.ingestion.readers import (
    column_map,
    read_vector,
    require_columns,
    to_common_crs,
)

DEFAULT_COLUMNS = {"ward_name": "WD_NAME"}


def filter_ward_authority(
    gdf: gpd.GeoDataFrame, authority_col: str, target_city: str
) -> gpd.GeoDataFrame:
    """Keep the target authority's wards from a national boundary file."""
    authority = gdf[authority_col].astype(str).str.strip()
    city = gdf[authority == target_city]
    if city.empty:
        raise ValueError(f"[WARDS] No wards found for authority {target_city!r}")
    return city


def normalise_wards(
    gdf: gpd.GeoDataFrame,
    crs: str,
    name_col: str = "WD_NAME",
    label_x_col: Optional[str] = None,
    label_y_col: Optional[str] = None,
    label_crs: Optional[str] = None,
    authority_col: Optional[str] = None,
    target_city: Optional[str] = None,
) -> gpd.GeoDataFrame:
    """
    Return wards as (ward_name, label_x, label_y, geometry) in `crs`.

    With `authority_col` and `target_city` set, wards of other authorities are
    dropped first; ward names only need to be unique within the city.

    The label anchor comes from the source when both label columns are given,
    otherwise from each polygon's representative point. Source label columns
    are read in `label_crs` (e.g. EPSG:4326 for long/lat columns), defaulting
    to the geometry's CRS.
    """
    required = [name_col] + [c for c in (label_x_col, label_y_col, authority_col) if c]
    require_columns(gdf, required, "WARDS")

    if authority_col and target_city:
        gdf = filter_ward_authority(gdf, authority_col, target_city)

    wards = to_common_crs(gdf, crs, "WARDS")
    wards = wards.rename(columns={name_col: "ward_name"})
    wards["ward_name"] = wards["ward_name"].astype(str).str.strip()

    dupes = wards["ward_name"][wards["ward_name"].duplicated()].unique().tolist()
    if dupes:
        raise ValueError(f"[WARDS] Ward names must be unique; duplicated: {dupes}")

    if label_x_col and label_y_col:
        anchors = gpd.GeoSeries(
            gpd.points_from_xy(
                pd.to_numeric(gdf[label_x_col], errors="coerce"),
                pd.to_numeric(gdf[label_y_col], errors="coerce"),
            ),
            crs=label_crs or gdf.crs,
            index=gdf.index,
        ).to_crs(crs)
    else:
        anchors = wards.geometry.representative_point()

    wards["label_x"] = anchors.x
    wards["label_y"] = anchors.y

    wards = wards[["ward_name", "label_x", "label_y", "geometry"]]
    return wards.sort_values("ward_name").reset_index(drop=True)


def load_wards(
    dataset_cfg: Dict[str, Any], crs: str, target_city: Optional[str] = None
) -> gpd.GeoDataFrame:
    cols = column_map(dataset_cfg, DEFAULT_COLUMNS)
    gdf = read_vector(dataset_cfg)
    return normalise_wards(
        gdf,
        crs,
        name_col=cols["ward_name"],
        label_x_col=cols.get("label_x"),
        label_y_col=cols.get("label_y"),
        label_crs=dataset_cfg.get("label_crs"),
        authority_col=cols.get("authority_name"),
        target_city=target_city,
    )
