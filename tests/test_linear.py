import numpy as np
import pandas as pd
import pytest

from appliedstats import fit_lm, predict_lm, tidy, glance


def test_fit_lm_recovers_slope(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    assert fit["kind"] == "lm"
    assert fit["terms"] == ["(Intercept)", "x"]
    assert abs(fit["beta"][1] - 1.5) < 0.2
    assert abs(fit["beta"][0] - 2.0) < 0.2
    assert fit["df_resid"] == len(linear_data) - 2
    assert np.allclose(fit["fitted"] + fit["residuals"], linear_data["y"])


def test_tidy_lm_table(linear_data):
    fit = fit_lm(linear_data, "y", ["x", "group"])
    table = tidy(fit)
    assert list(table.columns) == ["term", "estimate", "std_error", "statistic",
                                   "p_value", "conf_low", "conf_high"]
    assert list(table["term"]) == ["(Intercept)", "x", "groupb", "groupc"]
    assert np.all(table["conf_low"] < table["estimate"])
    assert np.all(table["estimate"] < table["conf_high"])
    assert table.loc[table["term"] == "x", "p_value"].iloc[0] < 1e-10


def test_tidy_conf_level_widens_interval(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    t90 = tidy(fit, conf_level=0.90)
    t99 = tidy(fit, conf_level=0.99)
    assert np.all((t99["conf_high"] - t99["conf_low"]) > (t90["conf_high"] - t90["conf_low"]))


def test_glance_lm_matches_definitions(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    g = glance(fit).iloc[0]
    y = linear_data["y"].to_numpy()
    r2 = 1 - np.sum(fit["residuals"] ** 2) / np.sum((y - y.mean()) ** 2)
    assert np.isclose(g["r_squared"], r2)
    assert g["adj_r_squared"] < g["r_squared"]
    assert np.isclose(g["sigma"], np.sqrt(fit["s2"]))
    assert g["nobs"] == len(linear_data)
    assert g["df"] == 1
    # single regressor: F equals t^2
    t = tidy(fit).loc[1, "statistic"]
    assert np.isclose(g["statistic"], t ** 2)


def test_intercept_only_model(linear_data):
    fit = fit_lm(linear_data, "y", [])
    assert np.isclose(fit["beta"][0], linear_data["y"].mean())
    assert np.isnan(glance(fit).iloc[0]["statistic"])


def test_predict_lm_intervals(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    new = pd.DataFrame({"x": [-1.0, 0.0, 1.0]})
    pred = predict_lm(fit, new)
    assert np.allclose(pred, fit["beta"][0] + fit["beta"][1] * new["x"])

    conf = predict_lm(fit, new, interval="confidence")
    pint = predict_lm(fit, new, interval="prediction")
    assert np.allclose(conf["fit"], pred)
    assert np.all(pint["upper"] - pint["lower"] > conf["upper"] - conf["lower"])

    with pytest.raises(ValueError):
        predict_lm(fit, new, interval="bogus")


def test_fit_lm_too_few_rows():
    df = pd.DataFrame({"x": [1.0, 2.0], "y": [1.0, 3.0]})
    with pytest.raises(ValueError, match="more rows"):
        fit_lm(df, "y", ["x"])
