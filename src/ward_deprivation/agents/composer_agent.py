from __future__ import annotations

import json
import logging
from typing import Any, Dict, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd

from ward_deprivation.analysis.ward_export import export_all
from ward_deprivation.config import (
    PipelineSettings,
    get_dataset_config,
    load_datasets_config,
    load_pipeline_settings,
)
from ward_deprivation.harmonisation.canonical_lsoa import (
    build_lsoa_lookup,
    check_imd_names,
    resolve_population_codes,
)
from ward_deprivation.harmonisation.containment import resolve_containment
from ward_deprivation.ingestion.load_addresses import load_addresses
from ward_deprivation.ingestion.load_imd import load_imd
from ward_deprivation.ingestion.load_lsoa_boundaries import load_lsoa_boundaries
from ward_deprivation.ingestion.load_population import load_population
from ward_deprivation.ingestion.load_wards import load_wards
from ward_deprivation.scoring.aggregate import aggregate_wards
from ward_deprivation.scoring.allocation import compute_allocation, proportion_totals
from ward_deprivation.scoring.apportion import apportion_population, rounding_drift
from ward_deprivation.scoring.deprivation import join_deprivation

logger = logging.getLogger(__name__)


def summarise_drift(drift: pd.DataFrame) -> Dict[str, int]:
    if drift.empty:
        return {"lsoas": 0, "lsoas_with_drift": 0, "total_drift": 0, "max_abs_drift": 0}
    return {
        "lsoas": int(len(drift)),
        "lsoas_with_drift": int((drift["drift"] != 0).sum()),
        "total_drift": int(drift["drift"].sum()),
        "max_abs_drift": int(drift["drift"].abs().max()),
    }


def run_pipeline(
    addresses: gpd.GeoDataFrame,
    wards: gpd.GeoDataFrame,
    lsoas: gpd.GeoDataFrame,
    population: pd.DataFrame,
    imd: pd.DataFrame,
    settings: PipelineSettings,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Compute the ward summary from already-loaded inputs.

    `population` is the name-keyed "All Ages" table; `imd` is already
    filtered to the target city. Returns the ward summary and a diagnostics
    dict. Raises on any fatal condition before returning anything.
    """
    logger.info("Resolving canonical LSOA identifiers...")
    lookup = build_lsoa_lookup(lsoas)
    population_by_code, population_report = resolve_population_codes(population, lookup)
    imd_lookup_report = check_imd_names(imd, lookup)

    logger.info("Resolving address containment...")
    assignments, containment = resolve_containment(addresses, wards, lsoas, settings.crs)

    logger.info("Computing allocation proportions...")
    allocation = compute_allocation(assignments)
    totals = proportion_totals(allocation)
    off = totals[~np.isclose(totals.to_numpy(), 1.0, rtol=0.0, atol=1e-9)]
    if not off.empty:
        logger.warning(f"{len(off)} LSOAs have proportions not summing to 1: {off.index.tolist()[:5]}")

    logger.info("Apportioning population...")
    apportioned, apportion_report = apportion_population(
        allocation, population_by_code, on_missing=settings.on_missing
    )
    drift = rounding_drift(apportioned)

    logger.info("Joining IMD ranks...")
    joined, imd_report = join_deprivation(apportioned, imd, on_missing=settings.on_missing)

    logger.info("Aggregating to wards...")
    summary = aggregate_wards(joined)

    unranked_wards = sorted(set(wards["ward_name"]) - set(summary["ward_name"]))
    if unranked_wards:
        logger.warning(f"{len(unranked_wards)} wards have no apportioned LSOAs: {unranked_wards}")

    diagnostics = {
        "target_city": settings.target_city,
        "crs": settings.crs,
        "age_band": settings.age_band,
        "on_missing": settings.on_missing,
        "containment": containment.to_dict(),
        "joins": [
            population_report.to_dict(),
            imd_lookup_report.to_dict(),
            apportion_report.to_dict(),
            imd_report.to_dict(),
        ],
        "rounding_drift": summarise_drift(drift),
        "wards_in_boundaries": int(len(wards)),
        "wards_ranked": int(len(summary)),
        "wards_without_lsoas": unranked_wards,
    }
    return summary, diagnostics


def compose(
    settings: PipelineSettings | None = None,
    datasets_cfg: Dict[str, Dict[str, Any]] | None = None,
) -> pd.DataFrame:
    logger.info("=== ComposerAgent: start composition ===")
    settings = settings or load_pipeline_settings()
    datasets_cfg = datasets_cfg or load_datasets_config()

    # Load inputs; a missing file stops the run before anything is written
    wards = load_wards(
        get_dataset_config(datasets_cfg, "wards"), settings.crs, target_city=settings.target_city
    )
    lsoas = load_lsoa_boundaries(get_dataset_config(datasets_cfg, "lsoa_boundaries"), settings.crs)
    addresses = load_addresses(get_dataset_config(datasets_cfg, "addresses"), settings.crs)
    population = load_population(
        get_dataset_config(datasets_cfg, "lsoa_population"), settings.age_band
    )
    imd = load_imd(get_dataset_config(datasets_cfg, "imd"), settings.target_city)
    logger.info(
        f"Loaded {len(wards)} wards, {len(lsoas)} LSOAs, {len(addresses)} addresses, "
        f"{len(population)} population rows, {len(imd)} IMD rows for {settings.target_city}"
    )

    summary, diagnostics = run_pipeline(addresses, wards, lsoas, population, imd, settings)

    out_dir = settings.output_path
    paths = export_all(summary, wards, out_dir)
    for kind, path in paths.items():
        logger.info(f"Wrote {kind} -> {path}")

    diag_file = settings.diagnostics_path / "composer_report.json"
    diag_file.parent.mkdir(parents=True, exist_ok=True)
    with open(diag_file, "w") as f:
        json.dump(diagnostics, f, indent=2)

    logger.info("=== ComposerAgent finished successfully ===")
    return summary


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    summary = compose()
    print(summary.to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
