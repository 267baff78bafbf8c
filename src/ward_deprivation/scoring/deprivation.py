from __future__ import annotations

from typing import Tuple

import pandas as pd

from ward_deprivation.diagnostics import JoinReport, build_join_report
from ward_deprivation.errors import ReferentialMismatchError


def join_deprivation(
    apportioned: pd.DataFrame,
    imd: pd.DataFrame,
    on_missing: str = "exclude",
) -> Tuple[pd.DataFrame, JoinReport]:
    """
    Attach the IMD rank to each (LSOA, ward) row and weight it by population.

    `imd` is the city-filtered (lsoa_code, imd_rank) table. Rows whose LSOA
    has no rank are reported; they keep a null rank and drop out of the ward
    averages, or raise when `on_missing="raise"`. City LSOAs that no row
    references are counted as `unmatched_right`.

    Adds columns:
        imd_rank
        rank_population_product   population * imd_rank
    """
    dupes = sorted(imd.loc[imd["lsoa_code"].duplicated(), "lsoa_code"].unique())
    if dupes:
        raise ReferentialMismatchError("Duplicate LSOA codes in IMD table", dupes)

    merged = apportioned.merge(imd[["lsoa_code", "imd_rank"]], on="lsoa_code", how="left")

    # City LSOAs never apportioned: no boundary or no contained addresses
    unused = sorted(set(imd["lsoa_code"]) - set(apportioned["lsoa_code"]))
    report = build_join_report(
        "apportioned->imd_rank",
        merged["lsoa_code"],
        merged["imd_rank"].notna(),
        right_missing=unused,
    )
    if report.unmatched and on_missing == "raise":
        raise ReferentialMismatchError(
            "Apportioned LSOAs missing from IMD table", report.unmatched_keys
        )

    merged["imd_rank"] = merged["imd_rank"].astype("Int64")
    merged["rank_population_product"] = merged["population"] * merged["imd_rank"]
    return merged, report
