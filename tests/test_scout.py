import json

import pandas as pd
import yaml

from ward_deprivation.agents import scout_agent
from ward_deprivation.agents.scout_agent import ScoutAgent
from ward_deprivation.config import PipelineSettings


def write_registry(tmp_path, datasets):
    path = tmp_path / "datasets.yaml"
    path.write_text(yaml.safe_dump({"datasets": datasets}))
    return path


def test_reports_missing_and_incomplete_datasets(tmp_path):
    pd.DataFrame({"LSOA name": ["A"], "Age": ["All Ages"], "Population": [1]}).to_csv(
        tmp_path / "pop.csv", index=False
    )
    pd.DataFrame({"LSOA code (2011)": ["E1"], "Index of Multiple Deprivation (IMD) Rank": [3]}).to_csv(
        tmp_path / "imd.csv", index=False
    )
    registry = write_registry(
        tmp_path,
        {
            "wards": {"path": str(tmp_path / "wards.shp"), "loader": "vector"},
            "lsoa_population": {"path": str(tmp_path / "pop.csv"), "loader": "csv"},
            "imd": {"path": str(tmp_path / "imd.csv"), "loader": "csv"},
        },
    )

    agent = ScoutAgent(registry_path=registry, diag_dir=tmp_path / "out" / "diagnostics")
    report = agent.run()
    checks = {d.dataset_key: d for d in report.datasets}

    assert not report.all_ok
    assert not checks["wards"].exists
    assert checks["lsoa_boundaries"].errors == ["Dataset 'lsoa_boundaries' not registered"]
    assert checks["lsoa_population"].ok
    assert checks["lsoa_population"].n_rows == 1
    assert checks["imd"].readable
    assert checks["imd"].missing_columns == ["Local Authority District name (2019)"]

    out = agent.save(report)
    assert out == tmp_path / "out" / "diagnostics" / "scout_report.json"
    saved = json.loads(out.read_text())
    assert saved["all_ok"] is False
    assert len(saved["datasets"]) == 5


def test_report_lands_beside_composer_output(tmp_path, monkeypatch):
    settings = PipelineSettings(target_city="Testville", output_dir=str(tmp_path / "run"))
    monkeypatch.setattr(scout_agent, "load_pipeline_settings", lambda: settings)

    agent = ScoutAgent(registry_path=write_registry(tmp_path, {}))
    assert agent.diag_dir == settings.diagnostics_path == tmp_path / "run" / "diagnostics"
