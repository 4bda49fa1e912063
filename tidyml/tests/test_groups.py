import numpy as np
import pandas as pd
import pytest

from tidyml.errors import WorkflowError
from tidyml.groups import collect_coefficients, fit_by_group
from tidyml.models import linear_reg
from tidyml.workflow import Workflow


def _panel(seed=0):
    rng = np.random.RandomState(seed)
    frames = []
    for site, slope in [("north", 1.0), ("south", -2.0), ("east", 0.5)]:
        x = rng.uniform(0, 10, size=30)
        frames.append(pd.DataFrame({"site": site, "x": x, "y": 4.0 + slope * x + rng.normal(scale=0.05, size=30)}))
    return pd.concat(frames, ignore_index=True)


def test_fit_by_group_recovers_slopes():
    df = _panel()
    fits = fit_by_group(df, "site", Workflow().add_formula("y ~ x", df).add_model(linear_reg()))
    assert list(fits) == ["east", "north", "south"]
    assert fits["north"].n == 30
    slopes = {k: g.coefficients.set_index("term").loc["x", "estimate"] for k, g in fits.items()}
    assert slopes["north"] == pytest.approx(1.0, abs=0.05)
    assert slopes["south"] == pytest.approx(-2.0, abs=0.05)
    assert slopes["east"] == pytest.approx(0.5, abs=0.05)


def test_collect_coefficients_stacks_groups():
    df = _panel()
    fits = fit_by_group(df, "site", Workflow().add_formula("y ~ x", df).add_model(linear_reg()))
    table = collect_coefficients(fits, by="site")
    assert list(table.columns) == ["site", "term", "estimate", "n"]
    assert len(table) == 6
    assert table["site"].tolist()[:2] == ["east", "east"]


def test_small_groups_are_skipped():
    df = _panel()
    tiny = pd.DataFrame({"site": ["west"], "x": [1.0], "y": [2.0]})
    data = pd.concat([df, tiny], ignore_index=True)
    fits = fit_by_group(data, "site", Workflow().add_formula("y ~ x", data).add_model(linear_reg()), min_rows=5)
    assert "west" not in fits
    with pytest.raises(WorkflowError):
        fit_by_group(tiny, "site", Workflow().add_formula("y ~ x", tiny).add_model(linear_reg()), min_rows=5)
    with pytest.raises(KeyError):
        fit_by_group(df, "region", Workflow().add_formula("y ~ x", df).add_model(linear_reg()))
