import json

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from ward_deprivation.agents.composer_agent import compose, run_pipeline
from ward_deprivation.config import PipelineSettings
from ward_deprivation.errors import ReferentialMismatchError

from conftest import CRS, on_grid


def test_ward_summary(addresses, wards, lsoas, population, imd, settings):
    summary, diagnostics = run_pipeline(addresses, wards, lsoas, population, imd, settings)

    assert summary.values.tolist() == [
        ["Brook", 1100, 15.9, 1],
        ["Ashby", 1200, 44.6, 2],
    ]
    # Castle has addresses but no LSOA, so it is left out rather than ranked
    assert "Castle" not in summary["ward_name"].tolist()
    assert diagnostics["wards_without_lsoas"] == ["Castle"]
    assert diagnostics["containment"]["excluded"] == 3
    assert diagnostics["rounding_drift"]["max_abs_drift"] == 0
    assert [j["unmatched"] for j in diagnostics["joins"]] == [0, 0, 0, 0]
    assert [j["unmatched_right"] for j in diagnostics["joins"]] == [0, 0, 0, 0]


def test_unused_city_lsoas_are_counted(addresses, wards, lsoas, population, imd, settings):
    extra = pd.concat(
        [imd, pd.DataFrame({"lsoa_code": ["E01000099"], "imd_rank": [1]})], ignore_index=True
    )
    summary, diagnostics = run_pipeline(addresses, wards, lsoas, population, extra, settings)
    joins = {j["stage"]: j for j in diagnostics["joins"]}

    # E01000099 has no boundary, so it can never be apportioned
    assert joins["imd->lsoa_boundaries"]["unmatched"] == 1
    assert joins["imd->lsoa_boundaries"]["unmatched_keys"] == ["E01000099"]
    assert joins["apportioned->imd_rank"]["unmatched"] == 0
    assert joins["apportioned->imd_rank"]["unmatched_right"] == 1
    assert joins["apportioned->imd_rank"]["unmatched_right_keys"] == ["E01000099"]
    assert summary["ward_population"].tolist() == [1100, 1200]


def test_runs_are_byte_identical(addresses, wards, lsoas, population, imd, settings):
    first, _ = run_pipeline(addresses, wards, lsoas, population, imd, settings)
    second, _ = run_pipeline(
        addresses.sample(frac=1, random_state=3).reset_index(drop=True),
        wards.iloc[::-1].reset_index(drop=True),
        lsoas,
        population.iloc[::-1].reset_index(drop=True),
        imd,
        settings,
    )
    assert first.to_csv(index=False) == second.to_csv(index=False)


def test_unmatched_rank_reported_then_strict(addresses, wards, lsoas, population, imd, settings):
    partial = imd[imd["lsoa_code"] != "E01000003"]
    summary, diagnostics = run_pipeline(addresses, wards, lsoas, population, partial, settings)

    assert diagnostics["joins"][3]["unmatched"] == 1
    # Brook now only carries its share of E01000001
    assert summary.set_index("ward_name").loc["Brook", "ward_population"] == 300

    strict = PipelineSettings(target_city=settings.target_city, crs=settings.crs, on_missing="raise")
    with pytest.raises(ReferentialMismatchError):
        run_pipeline(addresses, wards, lsoas, population, partial, strict)


def test_compose_writes_nothing_when_input_missing(tmp_path, settings):
    settings = PipelineSettings(target_city="Testville", output_dir=str(tmp_path / "out"))
    datasets = {
        key: {"path": str(tmp_path / f"{key}.gpkg"), "loader": "vector"}
        for key in ["wards", "lsoa_boundaries", "addresses"]
    }
    datasets["lsoa_population"] = {"path": str(tmp_path / "pop.csv"), "loader": "csv"}
    datasets["imd"] = {"path": str(tmp_path / "imd.csv"), "loader": "csv"}

    with pytest.raises(FileNotFoundError):
        compose(settings, datasets)
    assert not (tmp_path / "out").exists()


def test_compose_end_to_end(tmp_path, addresses, wards, lsoas):
    # A neighbouring authority with its own "Ashby" shares the national ward file
    neighbour = gpd.GeoDataFrame(
        {"ward_name": ["Ashby"], "label_x": [105.0], "label_y": [5.0]},
        geometry=[box(100, 0, 110, 10)],
        crs=CRS,
    )
    national = pd.concat(
        [wards.assign(lad="Testville"), neighbour.assign(lad="Otherton")], ignore_index=True
    )
    on_grid(national).to_file(tmp_path / "wards.gpkg", driver="GPKG")
    on_grid(lsoas).to_file(tmp_path / "lsoas.gpkg", driver="GPKG")
    on_grid(addresses).to_crs("EPSG:4326").to_file(tmp_path / "addresses.gpkg", driver="GPKG")
    pd.DataFrame(
        {
            "LSOA name": ["Testville 001A", "Testville 001B", "Testville 001C", "Testville 001A"],
            "Age": ["All Ages", "All Ages", "All Ages", "90+"],
            "Population": [1000, 500, 800, 12],
        }
    ).to_csv(tmp_path / "pop.csv", index=False)
    pd.DataFrame(
        {
            "LSOA code (2011)": ["E01000001", "E01000002", "E01000003", "E01000099"],
            "Local Authority District name (2019)": ["Testville"] * 3 + ["Otherton"],
            "Index of Multiple Deprivation (IMD) Rank": [5, 100, 20, 1],
        }
    ).to_csv(tmp_path / "imd.csv", index=False)

    datasets = {
        "wards": {
            "path": str(tmp_path / "wards.gpkg"),
            "loader": "vector",
            "columns": {
                "ward_name": "ward_name",
                "authority_name": "lad",
                "label_x": "label_x",
                "label_y": "label_y",
            },
        },
        "lsoa_boundaries": {
            "path": str(tmp_path / "lsoas.gpkg"),
            "loader": "vector",
            "columns": {"lsoa_code": "lsoa_code", "lsoa_name": "lsoa_name"},
        },
        "addresses": {"path": str(tmp_path / "addresses.gpkg"), "loader": "vector"},
        "lsoa_population": {"path": str(tmp_path / "pop.csv"), "loader": "csv"},
        "imd": {"path": str(tmp_path / "imd.csv"), "loader": "csv"},
    }
    out_dir = tmp_path / "out"
    settings = PipelineSettings(target_city="Testville", output_dir=str(out_dir))

    summary = compose(settings, datasets)

    assert summary["ward_name"].tolist() == ["Brook", "Ashby"]
    written = pd.read_csv(out_dir / "ward_summary.csv")
    assert written.values.tolist() == [["Brook", 1100, 15.9, 1], ["Ashby", 1200, 44.6, 2]]
    assert (out_dir / "diagnostics" / "composer_report.json").exists()
    assert (out_dir / "ward_choropleth.png").exists()
    assert not [p for p in out_dir.iterdir() if p.name.startswith(".staging-")]

    report = json.loads((out_dir / "diagnostics" / "composer_report.json").read_text())
    # Otherton's Ashby was filtered out before the uniqueness check
    assert report["wards_in_boundaries"] == 3
