import numpy as np
import pandas as pd
import pytest

from appliedstats import fit_gam, predict_gam, fit_lm, tidy, glance
from appliedstats.gam import (knot_sequence, bspline_basis, smooth_curve,
                              smooth_tests)


@pytest.fixture
def wiggly():
    rng = np.random.default_rng(7)
    n = 400
    x = rng.uniform(0, 1, n)
    z = rng.normal(0, 1, n)
    f = np.sin(2 * np.pi * x)
    y = 1.0 + f + 0.5 * z + rng.normal(0, 0.3, n)
    return pd.DataFrame({"x": x, "z": z, "y": y, "f": f})


def test_bspline_basis_partition_of_unity():
    x = np.linspace(0, 1, 50)
    knots = knot_sequence(x, n_knots=8)
    B = bspline_basis(x, knots)
    assert B.shape == (50, 8 + 3)
    assert np.allclose(B.sum(axis=1), 1.0)


def test_bspline_basis_extrapolates_linearly():
    knots = knot_sequence(np.array([0.0, 1.0]), n_knots=5)
    coef = np.arange(8, dtype=float)
    xs = np.array([1.5, 2.0, 2.5])
    vals = bspline_basis(xs, knots) @ coef
    assert np.isclose(vals[1] - vals[0], vals[2] - vals[1])


def test_knot_sequence_constant_raises():
    with pytest.raises(ValueError, match="constant"):
        knot_sequence(np.ones(10))


def test_fit_gam_tracks_nonlinear_curve(wiggly):
    fit = fit_gam(wiggly, "y", smooth=["x"], linear=["z"])
    assert fit["kind"] == "gam"
    assert 3 < fit["edf"] < 14
    assert abs(fit["beta"][fit["terms"].index("z")] - 0.5) < 0.1

    # fitted curve close to the truth after removing the intercept
    bz = fit["beta"][fit["terms"].index("z")]
    pred = fit["fitted"] - fit["beta"][0] - bz * wiggly["z"].to_numpy()
    resid_f = pred - wiggly["f"].to_numpy()
    assert np.sqrt(np.mean((resid_f - resid_f.mean()) ** 2)) < 0.15

    lin = fit_lm(wiggly, "y", ["x", "z"])
    assert glance(fit).iloc[0]["r_squared"] > glance(lin).iloc[0]["r_squared"] + 0.1


def test_large_lambda_gives_straight_line(wiggly):
    fit = fit_gam(wiggly, "y", smooth=["x"], lam=1e8)
    # intercept + unpenalized linear direction of the spline
    assert abs(fit["edf"] - 2) < 0.1
    assert fit["gcv_path"] is None


def test_gcv_selects_from_grid(wiggly):
    grid = [0.01, 1.0, 100.0]
    fit = fit_gam(wiggly, "y", smooth=["x"], lam_grid=grid)
    assert fit["lam"] in grid
    assert list(fit["gcv_path"]["lam"]) == grid
    assert np.isclose(fit["gcv"], fit["gcv_path"]["gcv"].min())


def test_predict_gam(wiggly):
    fit = fit_gam(wiggly, "y", smooth=["x"], linear=["z"])
    assert np.allclose(predict_gam(fit), fit["fitted"])
    assert np.allclose(predict_gam(fit, wiggly), fit["fitted"])

    new = pd.DataFrame({"x": [-0.2, 0.5, 1.3], "z": [0.0, 0.0, 0.0]})
    out = predict_gam(fit, new, se_fit=True)
    assert np.all(np.isfinite(out["fit"]))
    assert np.all(out["se"] > 0)


def test_smooth_curve_and_tests(wiggly):
    fit = fit_gam(wiggly, "y", smooth=["x"])
    curve = smooth_curve(fit, "x", n_points=25)
    assert list(curve.columns) == ["x", "fit", "se", "lower", "upper"]
    assert len(curve) == 25
    assert np.all(curve["lower"] <= curve["upper"])
    assert smooth_curve(fit, "s(x)", n_points=5).shape[0] == 5

    tests = smooth_tests(fit)
    assert tests.loc[0, "term"] == "s(x)"
    assert tests.loc[0, "p_value"] < 1e-6

    with pytest.raises(ValueError):
        smooth_curve(fit, "nope")


def test_tidy_gam_has_parametric_and_smooth_rows(wiggly):
    fit = fit_gam(wiggly, "y", smooth=["x"], linear=["z"])
    table = tidy(fit)
    assert list(table["term"]) == ["(Intercept)", "z", "s(x)"]
    smooth_row = table[table["term"] == "s(x)"].iloc[0]
    assert np.isclose(smooth_row["estimate"], fit["edf_terms"]["s(x)"])
    assert np.isnan(smooth_row["std_error"])


def test_fit_gam_input_errors(wiggly):
    with pytest.raises(ValueError, match="smooth"):
        fit_gam(wiggly, "y", smooth=[])
    with pytest.raises(ValueError, match="not found"):
        fit_gam(wiggly, "y", smooth=["nope"])
