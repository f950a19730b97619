import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from appliedstats import fit_lm, fit_gam
from appliedstats import bootstrap as bs
from appliedstats import crossval as cv
from appliedstats import nested as nd
from appliedstats import plotting


def test_plot_fit_and_diagnostics(housing, tmp_path):
    fit = fit_lm(housing, "log_price", ["log_sqft", "borough"])
    fig = plotting.plot_fit(housing, fit, "log_sqft")
    assert isinstance(fig, Figure)
    out = plotting.savefig(fig, tmp_path / "fit.png")
    assert out.exists() and out.stat().st_size > 0

    fig = plotting.plot_diagnostics(fit)
    assert len(fig.axes) == 4
    plt.close(fig)


def test_plot_nested_coefs(housing):
    fits = nd.fit_nested(housing, "borough", outcome="log_price", predictors=["log_sqft"])
    fig = plotting.plot_nested_coefs(nd.nested_tidy(fits), "log_sqft", "borough")
    labels = [t.get_text() for t in fig.axes[0].get_yticklabels()]
    assert labels == list(fits["borough"].astype(str))
    plt.close(fig)


def test_plot_bootstrap(linear_data):
    fit = fit_lm(linear_data, "y", ["x"])
    boot = bs.bootstrap_models(linear_data, fit_lm, times=30, seed=0,
                               outcome="y", predictors=["x"])
    fig = plotting.plot_bootstrap(linear_data, "x", "y", boot, fit, "x", n_lines=10)
    assert len(fig.axes) == 2
    plt.close(fig)


def test_plot_cv(linear_data):
    splits = cv.crossv_kfold(linear_data, k=4, seed=0)
    results, _ = cv.compare_models(linear_data, {
        "x": (fit_lm, dict(outcome="y", predictors=["x"])),
        "x + group": (fit_lm, dict(outcome="y", predictors=["x", "group"])),
    }, splits)
    fig = plotting.plot_cv(results)
    assert [t.get_text() for t in fig.axes[0].get_xticklabels()] == ["x", "x + group"]
    plt.close(fig)


def test_plot_smooth(housing):
    fit = fit_gam(housing, "log_price", smooth=["year_built"], linear=["log_sqft"])
    fig = plotting.plot_smooth(fit, "year_built", data=housing)
    assert "edf=" in fig.axes[0].get_ylabel()
    plt.close(fig)
