from __future__ import annotations

import pandas as pd

from ward_deprivation.errors import ZeroPopulationError

OUTPUT_COLUMNS = ["ward_name", "ward_population", "avg_rank", "dense_rank"]


def dense_rank(values: pd.Series) -> pd.Series:
    """Ascending dense rank: ties share a rank and the next value gets rank + 1."""
    return values.rank(method="dense", ascending=True).astype(int)


def aggregate_wards(joined: pd.DataFrame) -> pd.DataFrame:
    """
    Population-weighted average IMD rank per ward, densely ranked.

    Rows without a population or a rank are left out of the sums. Wards with
    no remaining rows do not appear at all; wards whose rows add up to zero
    population raise ZeroPopulationError.

    Returns OUTPUT_COLUMNS ordered by dense_rank, then ward_name.
    """
    usable = joined.dropna(subset=["population", "imd_rank"])
    if usable.empty:
        return pd.DataFrame(columns=OUTPUT_COLUMNS)

    wards = usable.groupby("ward_name", as_index=False).agg(
        ward_population=("population", "sum"),
        rank_population_total=("rank_population_product", "sum"),
    )
    wards["ward_population"] = wards["ward_population"].astype(int)

    zero = wards.loc[wards["ward_population"] == 0, "ward_name"]
    if not zero.empty:
        raise ZeroPopulationError(zero.tolist())

    wards["avg_rank"] = (
        wards["rank_population_total"].astype(float) / wards["ward_population"]
    ).round(1)
    wards["dense_rank"] = dense_rank(wards["avg_rank"])

    wards = wards.sort_values(["dense_rank", "ward_name"]).reset_index(drop=True)
    return wards[OUTPUT_COLUMNS]
