from __future__ import annotations

from copy import deepcopy

import jsonschema
import pytest
import yaml

from shared.configs import compute_fingerprint, load_config, parse_set_args, section_fingerprints


def test_workflow_layers_resolve():
    cfg = load_config("cells_rf")
    resolved = cfg.resolved
    assert resolved["dataset"]["path"] == "data/cells.csv"
    assert resolved["output"]["dir"] == "artifacts/runs"
    assert resolved["model"]["args"]["mtry"] == "tune"
    assert resolved["resamples"]["v"] == 5
    assert resolved["tune"]["n_jobs"] == 1
    assert cfg.schema_version == "1.0"
    assert cfg.sources[-1].endswith("cells_rf.yaml")


def test_env_override(monkeypatch):
    monkeypatch.setenv("TIDYML_tune__n_jobs", "2")
    cfg = load_config("cells_rf")
    assert cfg.resolved["tune"]["n_jobs"] == 2


def test_cli_override():
    cfg = load_config("housing_lm", cli_overrides=parse_set_args(["resamples.v=3", "split.prop=0.5"]))
    assert cfg.resolved["resamples"]["v"] == 3
    assert cfg.resolved["split"]["prop"] == 0.5


def test_extend_and_null_removal(tmp_path):
    override = {
        "recipe": {"+prepend": [{"step": "impute_mean"}], "+extend": [{"step": "zv"}]},
        "tune": {"order_by": None},
    }
    override_path = tmp_path / "override.yaml"
    override_path.write_text(yaml.safe_dump(override))
    cfg = load_config("housing_lm", overrides_paths=[override_path])
    assert [s["step"] for s in cfg.resolved["recipe"]] == ["impute_mean", "log", "dummy", "normalize", "zv"]
    assert "order_by" not in cfg.resolved["tune"]


def test_schema_rejects_bad_values():
    with pytest.raises(jsonschema.ValidationError):
        load_config("housing_lm", cli_overrides={"split": {"prop": "2"}})
    with pytest.raises(jsonschema.ValidationError):
        load_config("housing_lm", cli_overrides={"tune": {"select": "fastest"}})


def test_fingerprint_stable_to_paths_change():
    cfg = load_config("housing_lm")
    modified = deepcopy(cfg.resolved)
    modified["paths"]["artifacts"] = "artifacts_alt"
    modified["output"]["plots"] = False
    assert compute_fingerprint(modified) == cfg.fingerprint


def test_fingerprint_changes_on_param_change():
    cfg = load_config("housing_lm")
    modified = deepcopy(cfg.resolved)
    modified["model"]["args"]["mixture"] = 0.5
    assert compute_fingerprint(modified) != cfg.fingerprint


def test_section_fingerprints_point_at_changed_section():
    cfg = load_config("housing_lm")
    before = section_fingerprints(cfg.resolved)
    assert set(before) == {"formula", "dataset", "split", "resamples", "recipe", "model", "tune"}
    modified = deepcopy(cfg.resolved)
    modified["model"]["args"]["mixture"] = 0.5
    after = section_fingerprints(modified)
    assert [k for k in before if before[k] != after[k]] == ["model"]


def test_loader_errors():
    with pytest.raises(FileNotFoundError):
        load_config("no_such_workflow")
    with pytest.raises(ValueError):
        parse_set_args(["tune.n_jobs"])
