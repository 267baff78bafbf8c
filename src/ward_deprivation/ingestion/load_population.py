from __future__ import annotations

from typing import Any, Dict

import pandas as pd

from ward_deprivation.ingestion.readers import column_map, read_table, require_columns

DEFAULT_COLUMNS = {
    "lsoa_name": "LSOA name",
    "age_band": "Age",
    "population": "Population",
}


def normalise_population(
    df: pd.DataFrame,
    age_band: str,
    name_col: str = "LSOA name",
    age_col: str = "Age",
    pop_col: str = "Population",
) -> pd.DataFrame:
    """
    Keep only the `age_band` rows of a long LSOA population table.

    Returns columns:
        lsoa_name
        population
    """
    require_columns(df, [name_col, age_col, pop_col], "POPULATION")

    bands = df[age_col].astype(str).str.strip()
    out = df.loc[bands == age_band, [name_col, pop_col]].copy()
    if out.empty:
        raise ValueError(f"[POPULATION] No rows with age band {age_band!r}")

    out = out.rename(columns={name_col: "lsoa_name", pop_col: "population"})
    out["lsoa_name"] = out["lsoa_name"].astype(str).str.strip()

    # Published tables use thousands separators
    out["population"] = pd.to_numeric(
        out["population"].astype(str).str.replace(",", "", regex=False),
        errors="coerce",
    )
    bad = out["population"].isna() | (out["population"] < 0)
    if bad.any():
        raise ValueError(
            "[POPULATION] Non-numeric or negative population for: "
            + ", ".join(out.loc[bad, "lsoa_name"].head(10))
        )
    out["population"] = out["population"].astype(int)

    return out.sort_values("lsoa_name").reset_index(drop=True)


def load_population(dataset_cfg: Dict[str, Any], age_band: str) -> pd.DataFrame:
    cols = column_map(dataset_cfg, DEFAULT_COLUMNS)
    return normalise_population(
        read_table(dataset_cfg),
        age_band,
        name_col=cols["lsoa_name"],
        age_col=cols["age_band"],
        pop_col=cols["population"],
    )
