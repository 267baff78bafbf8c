from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict

import geopandas as gpd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from ward_deprivation.config import load_pipeline_settings  # noqa: E402
from ward_deprivation.scoring.aggregate import OUTPUT_COLUMNS  # noqa: E402

SUMMARY_STEM = "ward_summary"
CHOROPLETH_FILE = "ward_choropleth.png"


def write_summary_tables(summary: pd.DataFrame, out_dir: Path) -> Dict[str, Path]:
    """Write the ward summary as CSV, Excel and a pandas pickle."""
    missing = [c for c in OUTPUT_COLUMNS if c not in summary.columns]
    if missing:
        raise ValueError(f"[EXPORT] Summary is missing columns: {missing}")

    out_dir.mkdir(parents=True, exist_ok=True)
    summary = summary[OUTPUT_COLUMNS]

    paths = {
        "csv": out_dir / f"{SUMMARY_STEM}.csv",
        "xlsx": out_dir / f"{SUMMARY_STEM}.xlsx",
        "pkl": out_dir / f"{SUMMARY_STEM}.pkl",
    }
    summary.to_csv(paths["csv"], index=False)
    summary.to_excel(paths["xlsx"], index=False, sheet_name="wards", engine="openpyxl")
    summary.to_pickle(paths["pkl"])
    return paths


def render_choropleth(
    summary: pd.DataFrame,
    wards: gpd.GeoDataFrame,
    path: Path,
    title: str = "Population-weighted average IMD rank by ward",
) -> Path:
    """
    Map avg_rank over the ward polygons, joined back by ward_name.

    Wards without a summary row are drawn in grey. Each ward is labelled
    with its dense rank at the ward's label anchor.
    """
    mapped = wards.merge(summary[OUTPUT_COLUMNS], on="ward_name", how="left")

    fig, ax = plt.subplots(figsize=(10, 10))
    mapped.plot(
        column="avg_rank",
        cmap="RdYlGn",
        legend=True,
        edgecolor="black",
        linewidth=0.4,
        missing_kwds={"color": "lightgrey"},
        ax=ax,
    )
    for row in mapped.dropna(subset=["dense_rank"]).itertuples():
        ax.annotate(
            str(int(row.dense_rank)),
            xy=(row.label_x, row.label_y),
            ha="center",
            va="center",
            fontsize=7,
        )
    ax.set_title(title)
    ax.set_axis_off()

    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def export_all(summary: pd.DataFrame, wards: gpd.GeoDataFrame, out_dir: Path) -> Dict[str, Path]:
    """
    Write every output, or none of them.

    Files are built in a staging directory inside `out_dir` and only moved
    into place once the tables and the map have all been written.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {}
    with tempfile.TemporaryDirectory(dir=out_dir, prefix=".staging-") as tmp:
        staged = write_summary_tables(summary, Path(tmp))
        staged["png"] = render_choropleth(summary, wards, Path(tmp) / CHOROPLETH_FILE)
        for kind, path in staged.items():
            final = out_dir / path.name
            os.replace(path, final)
            paths[kind] = final
    return paths


def main() -> int:
    settings = load_pipeline_settings()
    summary_file = settings.output_path / f"{SUMMARY_STEM}.csv"
    if not summary_file.exists():
        raise FileNotFoundError(
            f"Ward summary not found: {summary_file}. "
            "Run ward_deprivation.agents.composer_agent first."
        )

    print(f"[WARD_SNAPSHOT] Loading ward summary from: {summary_file}")
    df = pd.read_csv(summary_file)
    print(f"[WARD_SNAPSHOT] Wards in {settings.target_city}: {df['ward_name'].nunique()}")
    print("[WARD_SNAPSHOT] Most deprived 5 wards:")
    print(df.head())
    print("[WARD_SNAPSHOT] Least deprived 5 wards:")
    print(df.tail())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
