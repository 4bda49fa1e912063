import numpy as np
import pandas as pd
import pytest

from tidyml.errors import MetricError
from tidyml.metrics import conf_mat, get_metric, metric_set, roc_curve


def _binary():
    truth = pd.Series(pd.Categorical(["yes", "yes", "no", "no", "yes", "no"], categories=["yes", "no"]))
    pred_class = pd.Categorical(["yes", "no", "no", "yes", "yes", "no"], categories=["yes", "no"])
    p_yes = [0.9, 0.4, 0.2, 0.6, 0.8, 0.1]
    preds = pd.DataFrame({"pred_class": pred_class, "pred_yes": p_yes, "pred_no": [1 - p for p in p_yes]})
    return truth, preds


def test_regression_metrics():
    truth = pd.Series([1.0, 2.0, 3.0, 4.0])
    preds = pd.DataFrame({"pred": [1.0, 2.0, 3.0, 6.0]})
    out = metric_set("rmse", "mae", "rsq", "rsq_trad", "mape")(truth, preds).set_index("metric")["estimate"]
    assert out["rmse"] == pytest.approx(1.0)
    assert out["mae"] == pytest.approx(0.5)
    assert out["rsq"] == pytest.approx(np.corrcoef(truth, preds["pred"])[0, 1] ** 2)
    assert out["rsq_trad"] == pytest.approx(1 - 4.0 / 5.0)
    assert out["mape"] == pytest.approx(12.5)


def test_rsq_constant_prediction_is_nan():
    assert np.isnan(get_metric("rsq")([1.0, 2.0, 3.0], [2.0, 2.0, 2.0]))


def test_class_metrics_first_level_is_event():
    truth, preds = _binary()
    out = metric_set("accuracy", "sensitivity", "specificity", "precision", "f_meas", "kap")(truth, preds)
    est = out.set_index("metric")["estimate"]
    # yes: TP=2, FN=1, FP=1, TN=2
    assert est["accuracy"] == pytest.approx(4 / 6)
    assert est["sensitivity"] == pytest.approx(2 / 3)
    assert est["specificity"] == pytest.approx(2 / 3)
    assert est["precision"] == pytest.approx(2 / 3)
    assert est["f_meas"] == pytest.approx(2 / 3)
    assert est["kap"] == pytest.approx(1 / 3)
    assert set(out["estimator"]) == {"binary"}


def test_event_level_second_swaps_positive_class():
    truth = pd.Series(pd.Categorical(["yes", "yes", "yes", "no"], categories=["yes", "no"]))
    preds = pd.DataFrame({"pred_class": pd.Categorical(["yes", "yes", "no", "no"], categories=["yes", "no"])})
    ms = metric_set("sensitivity")
    first = ms(truth, preds).loc[0, "estimate"]
    second = ms(truth, preds, event_level="second").loc[0, "estimate"]
    assert first == pytest.approx(2 / 3)
    assert second == pytest.approx(1.0)


def test_roc_auc_and_log_loss():
    truth, preds = _binary()
    out = metric_set("roc_auc", "mn_log_loss")(truth, preds).set_index("metric")["estimate"]
    # yes scores 0.9, 0.4, 0.8 vs no scores 0.2, 0.6, 0.1: 8 of 9 pairs ordered
    assert out["roc_auc"] == pytest.approx(8 / 9)
    expected = -np.mean(np.log([0.9, 0.4, 0.8, 0.4, 0.8, 0.9]))
    assert out["mn_log_loss"] == pytest.approx(expected)


def test_roc_auc_single_class_raises():
    truth = pd.Series(pd.Categorical(["yes", "yes"], categories=["yes", "no"]))
    preds = pd.DataFrame({"pred_yes": [0.7, 0.2], "pred_no": [0.3, 0.8]})
    with pytest.raises(MetricError):
        get_metric("roc_auc")(truth, preds, levels=["yes", "no"])


def test_multiclass_estimators():
    levels = ["a", "b", "c"]
    truth = pd.Series(pd.Categorical(["a", "b", "c", "a", "b", "c"], categories=levels))
    pred_class = pd.Categorical(["a", "b", "c", "a", "c", "c"], categories=levels)
    probs = np.array(
        [[0.8, 0.1, 0.1], [0.1, 0.7, 0.2], [0.1, 0.1, 0.8], [0.6, 0.2, 0.2], [0.2, 0.3, 0.5], [0.1, 0.2, 0.7]]
    )
    preds = pd.DataFrame(probs, columns=[f"pred_{lvl}" for lvl in levels]).assign(pred_class=pred_class)
    out = metric_set("accuracy", "sensitivity", "roc_auc")(truth, preds)
    assert out["estimator"].tolist() == ["multiclass", "macro", "macro"]
    assert out.loc[0, "estimate"] == pytest.approx(5 / 6)


def test_metric_set_validation():
    with pytest.raises(MetricError):
        metric_set("rmse", "accuracy")
    with pytest.raises(MetricError):
        metric_set("nope")
    with pytest.raises(MetricError):
        metric_set("rmse", "rmse")
    with pytest.raises(MetricError):
        metric_set("rmse").check_mode("classification")
    assert metric_set("rmse").direction("rmse") == "minimize"
    assert metric_set("roc_auc").direction("roc_auc") == "maximize"


def test_conf_mat_and_roc_curve():
    truth, preds = _binary()
    cm = conf_mat(truth, preds["pred_class"])
    assert cm.index.name == "Prediction"
    assert cm.columns.name == "Truth"
    assert cm.loc["yes", "yes"] == 2
    assert cm.loc["no", "yes"] == 1
    assert cm.loc["yes", "no"] == 1
    assert int(cm.to_numpy().sum()) == 6

    curve = roc_curve(truth, preds)
    assert list(curve.columns) == ["threshold", "specificity", "sensitivity"]
    assert curve["sensitivity"].is_monotonic_increasing
    assert curve["sensitivity"].iloc[-1] == 1.0
