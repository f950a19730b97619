import numpy as np
import pandas as pd
import pytest

from appliedstats.utils import ols_fit, add_const, design_matrix, check_rank


def test_ols_fit_matches_polyfit(linear_data):
    X = add_const(linear_data["x"].to_numpy())
    b, se, e, s2 = ols_fit(X, linear_data["y"].to_numpy())
    slope, intercept = np.polyfit(linear_data["x"], linear_data["y"], 1)
    assert np.allclose(b, [intercept, slope])
    assert np.isclose(s2, (e @ e) / (len(e) - 2))
    assert np.all(se > 0)


def test_design_matrix_dummy_codes_text_columns(linear_data):
    X, y, terms, levels, index = design_matrix(linear_data, ["x", "group"], "y")
    assert terms == ["(Intercept)", "x", "groupb", "groupc"]
    assert levels == {"group": ["a", "b", "c"]}
    assert X.shape == (len(linear_data), 4)
    assert np.array_equal(X[:, 2], (linear_data["group"] == "b").to_numpy(dtype=float))
    assert len(y) == len(index) == len(linear_data)


def test_design_matrix_interactions_and_powers(linear_data):
    X, _, terms, _, _ = design_matrix(linear_data, ["x", "I(x^2)", "group:x"])
    assert terms == ["(Intercept)", "x", "I(x^2)", "groupb:x", "groupc:x"]
    x = linear_data["x"].to_numpy()
    assert np.allclose(X[:, 2], x ** 2)
    assert np.allclose(X[:, 3], x * (linear_data["group"] == "b"))


def test_design_matrix_drops_missing_rows(linear_data):
    df = linear_data.copy()
    df.loc[0, "x"] = np.nan
    df.loc[5, "y"] = np.nan
    X, y, _, _, index = design_matrix(df, ["x"], "y")
    assert len(index) == len(df) - 2
    assert 0 not in index and 5 not in index
    assert X.shape[0] == len(y)


def test_design_matrix_unknown_column_raises(linear_data):
    with pytest.raises(ValueError, match="not found"):
        design_matrix(linear_data, ["nope"], "y")


def test_design_matrix_reuses_levels_and_rejects_unseen(linear_data):
    _, _, _, levels, _ = design_matrix(linear_data, ["group"])
    new = pd.DataFrame({"group": ["c", "a"]})
    X, _, terms, _, _ = design_matrix(new, ["group"], levels=levels)
    assert terms == ["(Intercept)", "groupb", "groupc"]
    assert X.tolist() == [[1.0, 0.0, 1.0], [1.0, 0.0, 0.0]]

    with pytest.raises(ValueError, match="not seen"):
        design_matrix(pd.DataFrame({"group": ["z"]}), ["group"], levels=levels)


def test_check_rank_names_aliased_term(linear_data):
    df = linear_data.assign(x2=2 * linear_data["x"])
    X, _, terms, _, _ = design_matrix(df, ["x", "x2"])
    with pytest.raises(ValueError, match="x2"):
        check_rank(X, terms)


def test_categorical_subset_uses_present_levels(housing):
    from appliedstats import fit_lm

    sub = housing[housing["borough"] != "Bronx"]
    fit = fit_lm(sub, "log_price", ["log_sqft", "borough"])
    assert fit["levels"]["borough"] == ["Brooklyn", "Manhattan", "Queens", "Staten Island"]
    assert fit["terms"] == ["(Intercept)", "log_sqft", "boroughManhattan",
                            "boroughQueens", "boroughStaten Island"]

    with pytest.raises(ValueError, match="not seen"):
        design_matrix(housing, ["borough"], levels=fit["levels"])


def test_categorical_unused_category_is_ignored():
    df = pd.DataFrame({"g": pd.Categorical(["b", "c", "b", "c"], categories=["a", "b", "c"])})
    X, _, terms, levels, _ = design_matrix(df, ["g"])
    assert levels["g"] == ["b", "c"]
    assert terms == ["(Intercept)", "gc"]
    assert X[:, 1].tolist() == [0.0, 1.0, 0.0, 1.0]
