from __future__ import annotations

import pandas as pd


def compute_allocation(assignments: pd.DataFrame) -> pd.DataFrame:
    """
    Share of each LSOA's addresses falling in each ward.

    Expects address assignments with columns lsoa_code, ward_name.

    Returns columns:
        lsoa_code
        ward_name
        address_count        addresses of this LSOA in this ward
        lsoa_address_total   addresses of this LSOA in any ward
        proportion           address_count / lsoa_address_total

    LSOAs with no matched addresses produce no rows, so their population is
    never apportioned.
    """
    counts = (
        assignments.groupby(["lsoa_code", "ward_name"])
        .size()
        .reset_index(name="address_count")
    )
    totals = (
        assignments.groupby("lsoa_code")
        .size()
        .reset_index(name="lsoa_address_total")
    )

    alloc = counts.merge(totals, on="lsoa_code", how="inner")
    alloc["proportion"] = alloc["address_count"] / alloc["lsoa_address_total"]

    return alloc.sort_values(["lsoa_code", "ward_name"]).reset_index(drop=True)


def proportion_totals(allocation: pd.DataFrame) -> pd.Series:
    """Sum of proportions per LSOA (1.0 for every LSOA, up to float error)."""
    return allocation.groupby("lsoa_code")["proportion"].sum()
