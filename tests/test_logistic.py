import numpy as np
import pandas as pd
import pytest

from appliedstats import fit_logit, predict_logit, tidy, glance
from appliedstats.logistic import (logistic, logit_ame, classification_table,
                                   encode_binary)


def _newton_logit(X, y, iters=30):
    b = np.zeros(X.shape[1])
    for _ in range(iters):
        p = logistic(X @ b)
        W = p * (1 - p)
        b = b + np.linalg.solve(X.T @ (X * W[:, None]), X.T @ (y - p))
    return b


def test_fit_logit_matches_newton(admissions):
    fit = fit_logit(admissions, "admit", ["gre", "gpa", "rank"])
    assert fit["converged"]
    assert fit["terms"] == ["(Intercept)", "gre", "gpa", "rank2", "rank3", "rank4"]
    b_ref = _newton_logit(fit["X"], fit["y"])
    assert np.allclose(fit["beta"], b_ref, rtol=1e-3, atol=1e-4)


def test_fit_logit_near_truth(admissions):
    fit = fit_logit(admissions, "admit", ["gre", "gpa", "rank"])
    j = fit["terms"].index("gpa")
    assert abs(fit["beta"][j] - 0.804) < 4 * fit["se"][j]
    assert fit["beta"][fit["terms"].index("rank4")] < 0


def test_tidy_logit_exponentiate(admissions):
    fit = fit_logit(admissions, "admit", ["gpa"])
    raw = tidy(fit)
    odds = tidy(fit, exponentiate=True)
    assert np.allclose(odds["estimate"], np.exp(raw["estimate"]))
    assert np.allclose(odds["conf_low"], np.exp(raw["conf_low"]))
    assert np.allclose(odds["std_error"], raw["std_error"])


def test_glance_logit(admissions):
    fit = fit_logit(admissions, "admit", ["gre", "gpa"])
    g = glance(fit).iloc[0]
    assert np.isclose(g["deviance"], 2 * fit["nll"])
    assert g["deviance"] < g["null_deviance"]
    assert np.isclose(g["aic"], g["deviance"] + 2 * 3)
    assert g["nobs"] == len(admissions)
    assert bool(g["converged"])


def test_predict_logit_link_and_response(admissions):
    fit = fit_logit(admissions, "admit", ["gpa"])
    new = pd.DataFrame({"gpa": [2.5, 3.5]})
    eta = predict_logit(fit, new, type="link")
    p = predict_logit(fit, new)
    assert np.allclose(p, 1 / (1 + np.exp(-eta)))
    assert p[1] > p[0]
    with pytest.raises(ValueError):
        predict_logit(fit, new, type="odds")


def test_encode_binary_variants():
    y, levels = encode_binary(pd.Series([True, False, True]))
    assert y.tolist() == [1.0, 0.0, 1.0] and levels == [False, True]

    y, levels = encode_binary(pd.Series(["no", "yes", "yes"]))
    assert y.tolist() == [0.0, 1.0, 1.0] and levels == ["no", "yes"]

    with pytest.raises(ValueError, match="two levels"):
        encode_binary(pd.Series(["a", "b", "c"]))
    with pytest.raises(ValueError, match="single value"):
        encode_binary(pd.Series([1, 1, 1]))


def test_fit_logit_text_outcome(admissions):
    df = admissions.assign(decision=np.where(admissions["admit"] == 1, "yes", "no"))
    a = fit_logit(df, "decision", ["gpa"])
    b = fit_logit(admissions, "admit", ["gpa"])
    assert a["outcome_levels"] == ["no", "yes"]
    assert np.allclose(a["beta"], b["beta"], atol=1e-6)


def test_classification_table_counts(admissions):
    fit = fit_logit(admissions, "admit", ["gre", "gpa", "rank"])
    tab = classification_table(fit)
    assert tab["tp"] + tab["fp"] + tab["tn"] + tab["fn"] == len(admissions)
    assert 0 <= tab["accuracy"] <= 1
    # everything predicted positive at threshold 0
    tab0 = classification_table(fit, threshold=0.0)
    assert tab0["sensitivity"] == 1.0 and tab0["specificity"] == 0.0


def test_logit_ame_bounded_by_quarter_beta(admissions):
    fit = fit_logit(admissions, "admit", ["gpa"])
    ame = logit_ame(fit["X"], fit["beta"], 1)
    assert 0 < ame < 0.25 * fit["beta"][1]


def test_fit_logit_warns_on_perfect_separation():
    x = np.linspace(-3, 3, 40)
    df = pd.DataFrame({"x": x, "y": (x > 0).astype(int)})
    with pytest.warns(RuntimeWarning, match="separation"):
        fit = fit_logit(df, "y", ["x"])
    assert not fit["converged"]
    assert not glance(fit).iloc[0]["converged"]


def test_fit_logit_rejects_bad_outcomes():
    df = pd.DataFrame({"x": np.arange(10.0), "y": [True] * 10})
    with pytest.raises(ValueError, match="single value"):
        fit_logit(df, "y", ["x"])

    df["y"] = ["a", "b", "c", "a", "b", "c", "a", "b", "c", "a"]
    with pytest.raises(ValueError, match="two levels"):
        fit_logit(df, "y", ["x"])
