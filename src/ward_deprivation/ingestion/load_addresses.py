from __future__ import annotations

from typing import Any, Dict

import geopandas as gpd

from ward_deprivation.ingestion.readers import read_vector, to_common_crs


def normalise_addresses(gdf: gpd.GeoDataFrame, crs: str) -> gpd.GeoDataFrame:
    """
    Return one row per residential address point, (point_id, geometry) in `crs`.

    Address extracts often arrive as MultiPoint features; these are exploded
    into individual points. Empty or non-point geometries are dropped.
    """
    points = to_common_crs(gdf, crs, "ADDRESSES")
    points = points[points.geometry.notna() & ~points.geometry.is_empty]
    points = points[["geometry"]].explode(index_parts=False)
    points = points[points.geometry.geom_type == "Point"]

    points = points.reset_index(drop=True)
    points.insert(0, "point_id", range(len(points)))
    return points


def load_addresses(dataset_cfg: Dict[str, Any], crs: str) -> gpd.GeoDataFrame:
    return normalise_addresses(read_vector(dataset_cfg), crs)
