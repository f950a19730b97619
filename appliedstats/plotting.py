"""
Figures for the worked examples, in one shared style.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy import stats

from .linear import predict_lm
from .diagnostics import leverage
from .gam import smooth_curve

STYLE = {
    "figure.facecolor": "#FAFAFA", "axes.facecolor": "#FAFAFA",
    "axes.edgecolor": "#333", "axes.labelcolor": "#222",
    "xtick.color": "#555", "ytick.color": "#555", "text.color": "#222",
    "font.size": 10, "axes.titlesize": 12, "axes.titleweight": "bold",
    "axes.grid": True, "grid.alpha": 0.25, "grid.color": "#AAA", "figure.dpi": 140,
}
CB, CO, CG, CR, CP, CY = "#2171B5", "#E6550D", "#31A354", "#DE2D26", "#756BB1", "#888"
PALETTE = [CB, CO, CG, CR, CP, CY]


def use_style():
    plt.rcParams.update(STYLE)


def savefig(fig, path):
    """Save `fig` as a PNG and close it."""
    fig.savefig(path, bbox_inches="tight", dpi=150)
    plt.close(fig)
    return path


def plot_fit(data, fit, x, ax=None, n_points=100):
    """
    Scatter of outcome against `x` with the fitted line and its 95%
    confidence band. Other predictors are held at their mean (numeric) or
    value in the first row (categorical).
    """
    use_style()
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4.5))
    else:
        fig = ax.figure
    ax.scatter(data[x], data[fit["outcome"]], s=12, alpha=.35, c=CB,
               edgecolors="none")

    grid = data.iloc[[0] * n_points].copy().reset_index(drop=True)
    for col in data.columns:
        if col == x or col == fit["outcome"]:
            continue
        if pd.api.types.is_numeric_dtype(data[col]):
            grid[col] = data[col].mean()
    grid[x] = np.linspace(data[x].min(), data[x].max(), n_points)
    band = predict_lm(fit, grid, interval="confidence")
    ax.fill_between(grid[x], band["lower"], band["upper"], color=CO, alpha=.25)
    ax.plot(grid[x], band["fit"], c=CR, lw=2, label="OLS fit")
    ax.set_xlabel(x)
    ax.set_ylabel(fit["outcome"])
    ax.legend(fontsize=9)
    return fig


def plot_diagnostics(fit):
    """
    The four standard residual plots for a linear fit: residuals vs
    fitted, normal Q-Q, scale-location, residuals vs leverage.
    """
    use_style()
    e = fit["residuals"]
    yhat = fit["fitted"]
    h = leverage(fit["X"])
    k = fit["X"].shape[1]
    std_e = e / np.sqrt(fit["s2"] * (1 - h))

    fig, axes = plt.subplots(2, 2, figsize=(11, 9))

    ax = axes[0, 0]
    ax.scatter(yhat, e, s=12, alpha=.4, c=CB, edgecolors="none")
    ax.axhline(0, color=CR, ls="--", lw=1)
    ax.set_xlabel("Fitted"); ax.set_ylabel("Residual"); ax.set_title("Residuals vs Fitted")

    ax = axes[0, 1]
    (osm, osr), (slope, icept, _) = stats.probplot(std_e, dist="norm")
    ax.scatter(osm, osr, s=12, alpha=.4, c=CB, edgecolors="none")
    ax.plot(osm, icept + slope * osm, c=CR, lw=1.5)
    ax.set_xlabel("Theoretical quantile"); ax.set_ylabel("Std. residual")
    ax.set_title("Normal Q-Q")

    ax = axes[1, 0]
    ax.scatter(yhat, np.sqrt(np.abs(std_e)), s=12, alpha=.4, c=CB, edgecolors="none")
    ax.set_xlabel("Fitted"); ax.set_ylabel("sqrt(|Std. residual|)")
    ax.set_title("Scale-Location")

    ax = axes[1, 1]
    ax.scatter(h, std_e, s=12, alpha=.4, c=CB, edgecolors="none")
    hs = np.linspace(max(h.min(), 1e-3), h.max(), 100)
    for d in (0.5, 1.0):
        bound = np.sqrt(d * k * (1 - hs) / hs)
        ax.plot(hs, bound, c=CO, ls="--", lw=1)
        ax.plot(hs, -bound, c=CO, ls="--", lw=1)
    ax.set_ylim(std_e.min() * 1.2, std_e.max() * 1.2)
    ax.set_xlabel("Leverage"); ax.set_ylabel("Std. residual")
    ax.set_title("Residuals vs Leverage (Cook's 0.5, 1)")

    fig.tight_layout()
    return fig


def plot_nested_coefs(nested_table, term, by):
    """Per-group estimate of `term` with its confidence interval."""
    use_style()
    sub = nested_table[nested_table["term"] == term].reset_index(drop=True)
    fig, ax = plt.subplots(figsize=(7, 0.6 * len(sub) + 1.5))
    y = np.arange(len(sub))
    ax.errorbar(sub["estimate"], y,
                xerr=[sub["estimate"] - sub["conf_low"],
                      sub["conf_high"] - sub["estimate"]],
                fmt="o", c=CB, ecolor=CO, capsize=4)
    ax.set_yticks(y)
    ax.set_yticklabels(sub[by].astype(str))
    ax.set_xlabel(f"Estimate of {term}")
    ax.set_title(f"{term} by {by}")
    return fig


def plot_bootstrap(data, x, outcome, boot_tidy, fit, term, n_lines=80):
    """
    Panel A: bootstrap regression lines over the data.
    Panel B: bootstrap distribution of `term` vs the analytic normal.
    """
    use_style()
    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))

    ax = axes[0]
    ax.scatter(data[x], data[outcome], s=12, alpha=.35, c=CB, edgecolors="none")
    xp = np.linspace(data[x].min(), data[x].max(), 100)
    wide = boot_tidy.pivot(index="id", columns="term", values="estimate")
    for _, row in wide.head(n_lines).iterrows():
        ax.plot(xp, row["(Intercept)"] + row[x] * xp, c=CO, alpha=.05, lw=1)
    j0, j1 = fit["terms"].index("(Intercept)"), fit["terms"].index(x)
    ax.plot(xp, fit["beta"][j0] + fit["beta"][j1] * xp, c=CR, lw=2.5,
            label="Full-sample fit")
    ax.set_xlabel(x); ax.set_ylabel(outcome)
    ax.set_title(f"A) {min(n_lines, len(wide))} Bootstrap Lines"); ax.legend(fontsize=9)

    ax = axes[1]
    reps = boot_tidy.loc[boot_tidy["term"] == term, "estimate"]
    ax.hist(reps, bins=50, density=True, alpha=.6, color=CB, edgecolor="white")
    j = fit["terms"].index(term)
    xn = np.linspace(reps.min(), reps.max(), 200)
    ax.plot(xn, stats.norm.pdf(xn, fit["beta"][j], fit["se"][j]), c=CR, lw=2,
            label="Normal (analytic)")
    ax.set_xlabel(term); ax.set_title("B) Bootstrap Distribution"); ax.legend(fontsize=9)

    fig.tight_layout()
    return fig


def plot_cv(results, metric_label="RMSE"):
    """Per-split metric values for each candidate model."""
    use_style()
    models = list(dict.fromkeys(results["model"]))
    fig, ax = plt.subplots(figsize=(1.8 * len(models) + 3, 4.5))
    data = [results.loc[results["model"] == m, "value"] for m in models]
    ax.boxplot(data, showmeans=True)
    ax.set_xticks(np.arange(1, len(models) + 1))
    ax.set_xticklabels(models)
    for i, vals in enumerate(data):
        jitter = np.random.default_rng(i).uniform(-.12, .12, len(vals))
        ax.scatter(i + 1 + jitter, vals, s=10, alpha=.4,
                   c=PALETTE[i % len(PALETTE)], edgecolors="none")
    ax.set_ylabel(metric_label)
    ax.set_title("Cross-validated prediction error")
    return fig


def plot_smooth(fit, term, data=None, ax=None):
    """GAM partial effect of one smooth term with a +/- 2 SE band."""
    use_style()
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4.5))
    else:
        fig = ax.figure
    curve = smooth_curve(fit, term)
    ax.fill_between(curve["x"], curve["lower"], curve["upper"], color=CO, alpha=.25)
    ax.plot(curve["x"], curve["fit"], c=CR, lw=2)
    if data is not None:
        x = data[term].to_numpy(dtype=float)
        ax.plot(x, np.full_like(x, curve["lower"].min()), "|", c=CY, alpha=.3)
    label = next(sm["label"] for sm in fit["smooths"]
                 if term in (sm["term"], sm["label"]))
    edf = fit["edf_terms"][label]
    ax.set_xlabel(term)
    ax.set_ylabel(f"{label}, edf={edf:.2f}")
    ax.set_title(f"Smooth effect of {term}")
    return fig
