"""
One canonical LSOA identifier for the whole pipeline.

Population tables are published by LSOA name and the IMD by LSOA code. The
boundary file carries both, so it is used as the cross-reference: names are
resolved to codes once here and every later join uses `lsoa_code`.
"""
from __future__ import annotations

from typing import Tuple

import pandas as pd

from ward_deprivation.diagnostics import JoinReport, build_join_report
from ward_deprivation.errors import ReferentialMismatchError


def _one_to_one(df: pd.DataFrame, key: str, other: str) -> list:
    """Keys of `key` that map to more than one value of `other`."""
    counts = df.groupby(key)[other].nunique()
    return sorted(counts[counts > 1].index.tolist())


def build_lsoa_lookup(lsoas: pd.DataFrame) -> pd.DataFrame:
    """
    Build the (lsoa_code, lsoa_name) cross-reference from the boundaries.

    A code carrying two names, or a name shared by two codes, cannot be
    resolved and is fatal.
    """
    pairs = lsoas[["lsoa_code", "lsoa_name"]].drop_duplicates()

    bad_codes = _one_to_one(pairs, "lsoa_code", "lsoa_name")
    if bad_codes:
        raise ReferentialMismatchError("LSOA codes with more than one name", bad_codes)

    bad_names = _one_to_one(pairs, "lsoa_name", "lsoa_code")
    if bad_names:
        raise ReferentialMismatchError("LSOA names with more than one code", bad_names)

    return pairs.sort_values("lsoa_code").reset_index(drop=True)


def resolve_population_codes(
    population: pd.DataFrame, lookup: pd.DataFrame
) -> Tuple[pd.DataFrame, JoinReport]:
    """
    Attach `lsoa_code` to the name-keyed population table.

    Names absent from the boundaries are dropped and reported.

    Returns columns:
        lsoa_code
        lsoa_name
        population
    """
    dupes = sorted(population.loc[population["lsoa_name"].duplicated(), "lsoa_name"].unique())
    if dupes:
        raise ReferentialMismatchError("Duplicate LSOA names in population table", dupes)

    merged = population.merge(lookup, on="lsoa_name", how="left")
    report = build_join_report(
        "population->lsoa_code", merged["lsoa_name"], merged["lsoa_code"].notna()
    )

    out = merged.dropna(subset=["lsoa_code"])[["lsoa_code", "lsoa_name", "population"]]
    return out.sort_values("lsoa_code").reset_index(drop=True), report


def check_imd_names(imd: pd.DataFrame, lookup: pd.DataFrame) -> JoinReport:
    """
    Cross-reference the IMD table's LSOA codes against the boundaries.

    IMD codes absent from the boundaries cannot receive addresses; they are
    counted in the returned report. A code whose IMD name differs from the
    boundary name is fatal. Tables without an `lsoa_name` column only get
    the code check.
    """
    known = imd["lsoa_code"].isin(lookup["lsoa_code"])
    report = build_join_report("imd->lsoa_boundaries", imd["lsoa_code"], known)

    if "lsoa_name" not in imd.columns:
        return report
    both = imd[["lsoa_code", "lsoa_name"]].merge(
        lookup, on="lsoa_code", how="inner", suffixes=("_imd", "")
    )
    bad = both.loc[both["lsoa_name_imd"] != both["lsoa_name"], "lsoa_code"]
    if not bad.empty:
        raise ReferentialMismatchError(
            "IMD LSOA names disagree with boundary names", sorted(bad.unique())
        )
    return report
