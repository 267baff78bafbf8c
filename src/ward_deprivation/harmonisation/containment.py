"""
Spatial containment of address points in wards and LSOAs.

Boundary rule: containment uses the `within` predicate, so a point lying
exactly on a polygon edge is not inside that polygon. A point on an edge
shared by two wards is therefore in neither and is excluded. The rule is a
pure geometric test and gives the same answer on every run.
"""
from __future__ import annotations

import logging
from typing import Tuple

import geopandas as gpd
import pandas as pd

from ward_deprivation.diagnostics import ContainmentReport
from ward_deprivation.ingestion.readers import to_common_crs

logger = logging.getLogger(__name__)


def _contain(
    points: gpd.GeoDataFrame, polygons: gpd.GeoDataFrame, key: str
) -> Tuple[pd.DataFrame, int]:
    """
    Match each point to the polygon that strictly contains it.

    Returns (point_id, key) for matched points and the number of points that
    fell inside more than one polygon. Those keep the smallest key so that no
    point is counted twice.
    """
    joined = gpd.sjoin(
        points[["point_id", "geometry"]],
        polygons[[key, "geometry"]],
        how="inner",
        predicate="within",
    )
    matches = pd.DataFrame(joined[["point_id", key]])

    per_point = matches.groupby("point_id").size()
    ambiguous = int((per_point > 1).sum())

    matches = (
        matches.sort_values(["point_id", key])
        .drop_duplicates("point_id", keep="first")
        .reset_index(drop=True)
    )
    return matches, ambiguous


def resolve_containment(
    addresses: gpd.GeoDataFrame,
    wards: gpd.GeoDataFrame,
    lsoas: gpd.GeoDataFrame,
    crs: str,
) -> Tuple[pd.DataFrame, ContainmentReport]:
    """
    Assign each address point to one ward and one LSOA.

    Inputs are reprojected to `crs` before testing. Points outside every ward,
    or inside a ward but outside every LSOA, are dropped and counted.

    Returns
    -------
    assignments:
        point_id, ward_name, lsoa_code (sorted by point_id)
    report:
        ContainmentReport with the excluded counts
    """
    addresses = to_common_crs(addresses, crs, "ADDRESSES")
    wards = to_common_crs(wards, crs, "WARDS")
    lsoas = to_common_crs(lsoas, crs, "LSOA_BOUNDARIES")

    total = len(addresses)

    in_ward, ambiguous_ward = _contain(addresses, wards, "ward_name")
    in_lsoa, ambiguous_lsoa = _contain(addresses, lsoas, "lsoa_code")

    assignments = in_ward.merge(in_lsoa, on="point_id", how="inner")
    assignments = assignments.sort_values("point_id").reset_index(drop=True)

    report = ContainmentReport(
        total_points=total,
        outside_ward=total - len(in_ward),
        outside_lsoa=len(in_ward) - len(assignments),
        ambiguous_ward=ambiguous_ward,
        ambiguous_lsoa=ambiguous_lsoa,
        assigned=len(assignments),
    )

    logger.info(
        f"Containment: {report.assigned} of {total} addresses assigned, "
        f"{report.excluded} addresses excluded "
        f"({report.outside_ward} outside wards, {report.outside_lsoa} outside LSOAs)"
    )
    if ambiguous_ward or ambiguous_lsoa:
        logger.warning(
            f"Overlapping polygons: {ambiguous_ward} points in several wards, "
            f"{ambiguous_lsoa} in several LSOAs; kept the first by key"
        )

    return assignments, report
