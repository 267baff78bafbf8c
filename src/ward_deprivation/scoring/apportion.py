from __future__ import annotations

import logging
from typing import Tuple

import pandas as pd

from ward_deprivation.diagnostics import JoinReport, build_join_report
from ward_deprivation.errors import ReferentialMismatchError

logger = logging.getLogger(__name__)


def apportion_population(
    allocation: pd.DataFrame,
    population: pd.DataFrame,
    on_missing: str = "exclude",
) -> Tuple[pd.DataFrame, JoinReport]:
    """
    Split each LSOA's population across its wards by address proportion.

    `population` must already be keyed by lsoa_code (see
    harmonisation.canonical_lsoa) and hold one "All Ages" row per LSOA.

    Each (LSOA, ward) pair is rounded on its own, half to even, so the ward
    parts of an LSOA may not add back to its total (see `rounding_drift`).

    An allocated LSOA with no population row keeps a null population and is
    left out of the ward sums when `on_missing="exclude"`; with
    `on_missing="raise"` it is a ReferentialMismatchError.

    Returns allocation columns plus:
        lsoa_population
        population
    """
    dupes = sorted(population.loc[population["lsoa_code"].duplicated(), "lsoa_code"].unique())
    if dupes:
        raise ReferentialMismatchError("Duplicate LSOA codes in population table", dupes)

    pop = population[["lsoa_code", "population"]].rename(
        columns={"population": "lsoa_population"}
    )
    merged = allocation.merge(pop, on="lsoa_code", how="left")

    report = build_join_report(
        "allocation->population", merged["lsoa_code"], merged["lsoa_population"].notna()
    )
    if report.unmatched and on_missing == "raise":
        raise ReferentialMismatchError(
            "Allocated LSOAs missing from population table", report.unmatched_keys
        )

    merged["population"] = (
        (merged["proportion"] * merged["lsoa_population"].astype(float))
        .round()
        .astype("Int64")
    )
    merged["lsoa_population"] = merged["lsoa_population"].astype("Int64")
    return merged, report


def rounding_drift(apportioned: pd.DataFrame) -> pd.DataFrame:
    """
    Per-LSOA difference between the apportioned parts and the source total.

    Returns columns:
        lsoa_code
        source_population
        apportioned_total
        ward_count
        drift                apportioned_total - source_population
    """
    known = apportioned.dropna(subset=["lsoa_population", "population"])
    drift = (
        known.groupby("lsoa_code", as_index=False)
        .agg(
            source_population=("lsoa_population", "first"),
            apportioned_total=("population", "sum"),
            ward_count=("ward_name", "nunique"),
        )
    )
    drift["source_population"] = drift["source_population"].astype(int)
    drift["apportioned_total"] = drift["apportioned_total"].astype(int)
    drift["drift"] = drift["apportioned_total"] - drift["source_population"]
    return drift.sort_values("lsoa_code").reset_index(drop=True)
