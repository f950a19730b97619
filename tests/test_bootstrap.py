import numpy as np
import pytest

from appliedstats import fit_lm, fit_logit, tidy
from appliedstats import bootstrap as bs
from appliedstats.utils import add_const


def test_bootstraps_shapes(linear_data):
    splits = bs.bootstraps(linear_data, times=20, seed=1)
    assert len(splits) == 20
    assert splits[0]["id"] == "Bootstrap001"
    assert splits[-1]["id"] == "Bootstrap020"
    for s in splits:
        assert len(s["analysis"]) == len(linear_data)
        assert not set(s["assessment"]) & set(s["analysis"])
        assert len(set(s["assessment"]) | set(s["analysis"])) == len(linear_data)


def test_bootstraps_seed_reproducible(linear_data):
    a = bs.bootstraps(linear_data, times=3, seed=9)
    b = bs.bootstraps(linear_data, times=3, seed=9)
    assert all(np.array_equal(x["analysis"], y["analysis"]) for x, y in zip(a, b))


def test_bootstraps_strata_keep_group_sizes(linear_data):
    counts = linear_data["group"].value_counts()
    for s in bs.bootstraps(linear_data, times=5, seed=2, strata="group"):
        resampled = linear_data.iloc[s["analysis"]]["group"].value_counts()
        assert resampled.sort_index().equals(counts.sort_index())

    with pytest.raises(ValueError):
        bs.bootstraps(linear_data, times=5, strata="nope")
    with pytest.raises(ValueError):
        bs.bootstraps(linear_data, times=0)


def test_bootstrap_models_stacks_tidy_tables(linear_data):
    boot = bs.bootstrap_models(linear_data, fit_lm, times=50, seed=3,
                               outcome="y", predictors=["x"])
    assert list(boot.columns[:2]) == ["id", "term"]
    assert len(boot) == 100
    assert boot["id"].nunique() == 50


def test_bootstrap_se_close_to_analytic(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    boot = bs.bootstrap_models(linear_data, fit_lm, times=500, seed=4,
                               outcome="y", predictors=["x"])
    ci = bs.bootstrap_intervals(boot).set_index("term")
    assert ci.loc["x", "n_boot"] == 500
    ratio = ci.loc["x", "std_error"] / fit["se"][1]
    assert 0.75 < ratio < 1.33
    assert ci.loc["x", "conf_low"] < 1.5 < ci.loc["x", "conf_high"]


def test_bootstrap_interval_methods(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    est = tidy(fit)
    boot = bs.bootstrap_models(linear_data, fit_lm, times=200, seed=5,
                               outcome="y", predictors=["x"])
    normal = bs.bootstrap_intervals(boot, method="normal", estimates=est).set_index("term")
    basic = bs.bootstrap_intervals(boot, method="basic", estimates=est).set_index("term")
    assert np.isclose(normal.loc["x", "estimate"], fit["beta"][1])
    mid = (normal.loc["x", "conf_low"] + normal.loc["x", "conf_high"]) / 2
    assert np.isclose(mid, fit["beta"][1])
    assert basic.loc["x", "conf_low"] < fit["beta"][1] < basic.loc["x", "conf_high"]

    with pytest.raises(ValueError, match="full-sample"):
        bs.bootstrap_intervals(boot, method="basic")
    with pytest.raises(ValueError, match="Unknown"):
        bs.bootstrap_intervals(boot, method="bca")


def test_bootstrap_logit_with_strata(admissions):
    boot = bs.bootstrap_models(admissions, fit_logit, times=30, seed=6,
                               strata="admit", outcome="admit", predictors=["gpa"])
    assert set(boot["term"]) == {"(Intercept)", "gpa"}


def test_bootstrap_statistic_and_ols_slope(linear_data):
    X = add_const(linear_data["x"].to_numpy())
    y = linear_data["y"].to_numpy()
    res = bs.bootstrap_ols_slope(X, y, n_boot=300, seed=7)
    assert len(res["boot_estimates"]) == 300
    assert res["ci_lo"] < res["beta_hat"] < res["ci_hi"]
    assert 0.7 < res["se"] / res["analytic_se"] < 1.4

    med = bs.bootstrap_statistic(X, y, lambda Xb, yb: np.median(yb), n_boot=100, seed=8)
    assert med["n_failed"] == 0
    assert med["ci_lo"] <= med["mean"] <= med["ci_hi"]


def test_bootstrap_statistic_drops_failed_replicates():
    X = np.ones((10, 1))
    y = np.arange(10.0)
    calls = {"n": 0}

    def flaky(Xb, yb):
        calls["n"] += 1
        if calls["n"] % 2:
            raise np.linalg.LinAlgError("singular")
        return yb.mean()

    res = bs.bootstrap_statistic(X, y, flaky, n_boot=20, seed=0)
    assert res["n_failed"] == 10
    assert len(res["boot_estimates"]) == 10


def test_unique_obs_fraction():
    assert np.isclose(bs.unique_obs_fraction(1_000_000), 1 - np.exp(-1), atol=1e-6)
    assert bs.unique_obs_fraction(1) == 1.0


def test_every_replicate_failing_raises(linear_data):
    X = add_const(linear_data["x"].to_numpy())
    y = linear_data["y"].to_numpy()

    def broken(Xb, yb):
        raise np.linalg.LinAlgError("singular")

    with pytest.raises(ValueError, match="Every bootstrap replication failed"):
        bs.bootstrap_statistic(X, y, broken, n_boot=5, seed=0)

    # more coefficients than rows in every resample
    tiny = linear_data.head(3)
    with pytest.raises(ValueError, match="Every bootstrap replication failed"):
        bs.bootstrap_models(tiny, fit_lm, times=5, seed=0,
                            outcome="y", predictors=["x", "I(x^2)", "I(x^3)"])
