import pandas as pd
import pytest

from ward_deprivation.analysis import ward_export
from ward_deprivation.analysis.ward_export import export_all, write_summary_tables
from ward_deprivation.scoring.aggregate import OUTPUT_COLUMNS


@pytest.fixture
def summary():
    return pd.DataFrame(
        {
            "ward_name": ["Brook", "Ashby"],
            "ward_population": [1100, 1200],
            "avg_rank": [15.9, 44.6],
            "dense_rank": [1, 2],
        }
    )


def test_tables_keep_record_shape(tmp_path, summary):
    paths = write_summary_tables(summary, tmp_path)

    assert pd.read_csv(paths["csv"]).equals(summary)
    assert pd.read_excel(paths["xlsx"], sheet_name="wards").equals(summary)
    assert pd.read_pickle(paths["pkl"]).equals(summary)


def test_summary_missing_columns_rejected(tmp_path, summary):
    with pytest.raises(ValueError, match="missing columns"):
        write_summary_tables(summary.drop(columns="dense_rank"), tmp_path)


def test_choropleth_includes_unranked_wards(tmp_path, summary, wards):
    paths = export_all(summary, wards, tmp_path)

    assert set(paths) == {"csv", "xlsx", "pkl", "png"}
    assert paths["png"].stat().st_size > 0
    assert list(pd.read_csv(paths["csv"]).columns) == OUTPUT_COLUMNS


def test_failed_render_leaves_no_output(tmp_path, summary, wards, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("no display")

    monkeypatch.setattr(ward_export, "render_choropleth", broken)
    out_dir = tmp_path / "out"
    with pytest.raises(RuntimeError):
        ward_export.export_all(summary, wards, out_dir)

    assert list(out_dir.iterdir()) == []
