"""
Bootstrap Inference

Implements the nonparametric bootstrap for standard errors and
confidence intervals: a generic array version for any estimator, and a
DataFrame version that refits a model on every resample and summarises
the replicate coefficient tables.
"""

import numpy as np
import pandas as pd
from scipy import stats

from .utils import ols_fit
from .linear import fit_lm
from .tidy import tidy

DEFAULT_N_BOOT = 1000


def bootstrap_statistic(data_X, data_y, estimator, n_boot=2000, seed=None,
                        alpha=0.05):
    """
    Resample rows of (X, y) with replacement and recompute `estimator`.

    `estimator(X, y)` must return a scalar. Draws on which it raises a
    numerical error are discarded and counted in n_failed.

    Returns
    -------
    dict with keys boot_estimates, se, ci_lo, ci_hi (percentile interval
    at level 1 - alpha), mean, n_failed.
    """
    rng = np.random.default_rng(seed)
    n = len(data_y)
    draws = []
    for _ in range(n_boot):
        rows = rng.integers(0, n, n)
        try:
            draws.append(float(estimator(data_X[rows], data_y[rows])))
        except (np.linalg.LinAlgError, ValueError):
            continue
    if not draws:
        raise ValueError("Every bootstrap replication failed")

    draws = np.asarray(draws)
    lo, hi = np.quantile(draws, [alpha / 2, 1 - alpha / 2])
    return dict(
        boot_estimates=draws,
        se=draws.std(),
        ci_lo=lo,
        ci_hi=hi,
        mean=draws.mean(),
        n_failed=n_boot - len(draws),
    )


def bootstrap_ols_slope(X, y, n_boot=2000, coef_idx=1, seed=None):
    """
    Bootstrap one OLS coefficient and set it beside the textbook answer.

    Returns the bootstrap_statistic keys (except mean and n_failed) plus
    beta_hat, analytic_se and analytic_ci, the normal 95% interval from
    the full-sample fit.
    """
    beta, se, _, _ = ols_fit(X, y)
    res = bootstrap_statistic(X, y, lambda Xb, yb: ols_fit(Xb, yb)[0][coef_idx],
                              n_boot=n_boot, seed=seed)
    z = stats.norm.ppf(0.975)
    b_j, se_j = beta[coef_idx], se[coef_idx]
    return dict(
        boot_estimates=res["boot_estimates"],
        se=res["se"],
        ci_lo=res["ci_lo"],
        ci_hi=res["ci_hi"],
        beta_hat=b_j,
        analytic_se=se_j,
        analytic_ci=[b_j - z * se_j, b_j + z * se_j],
    )


def unique_obs_fraction(n):
    """Expected share of distinct rows in one resample: 1 - (1 - 1/n)^n."""
    return 1 - (1 - 1 / n) ** n


def bootstraps(data, times=DEFAULT_N_BOOT, seed=None, strata=None):
    """
    Bootstrap resamples of a DataFrame.

    Parameters
    ----------
    data : DataFrame
    times : int
        Number of resamples.
    seed : int or None
    strata : str or None
        Column to resample within, so each resample keeps the stratum
        sizes of the original data.

    Returns
    -------
    list of dict with keys:
        id         : "Bootstrap001", ...
        analysis   : row positions drawn with replacement
        assessment : out-of-bag row positions
    """
    if times < 1:
        raise ValueError(f"times must be at least 1, got {times}")
    rng = np.random.default_rng(seed)
    n = len(data)
    if strata is None:
        groups = [np.arange(n)]
    else:
        if strata not in data.columns:
            raise ValueError(f"Strata column {strata!r} not found in data")
        codes = pd.factorize(data[strata])[0]
        groups = [np.flatnonzero(codes == g) for g in np.unique(codes)]

    width = max(3, len(str(times)))
    splits = []
    for b in range(times):
        idx = np.concatenate([rng.choice(g, len(g), replace=True) for g in groups])
        oob = np.setdiff1d(np.arange(n), idx)
        splits.append(dict(id=f"Bootstrap{b + 1:0{width}d}",
                           analysis=idx, assessment=oob))
    return splits


def bootstrap_models(data, fitter=fit_lm, times=DEFAULT_N_BOOT, seed=None,
                     strata=None, **fit_kwargs):
    """
    Refit a model on every bootstrap resample.

    Returns
    -------
    DataFrame stacking tidy(fit) of every replicate with an `id` column.
    Replicates where the fit fails on a numerical error are left out.
    """
    parts = []
    for split in bootstraps(data, times, seed=seed, strata=strata):
        sample = data.iloc[split["analysis"]]
        try:
            fit = fitter(sample, **fit_kwargs)
        except (np.linalg.LinAlgError, ValueError):
            continue
        table = tidy(fit, conf_int=False)
        table.insert(0, "id", split["id"])
        parts.append(table)
    if not parts:
        raise ValueError("Every bootstrap replication failed")
    return pd.concat(parts, ignore_index=True)


def bootstrap_intervals(boot_tidy, alpha=0.05, method="percentile",
                        estimates=None):
    """
    Per-term bootstrap summary.

    Parameters
    ----------
    boot_tidy : DataFrame
        Output of bootstrap_models.
    alpha : float
        1 - confidence level.
    method : "percentile", "normal" or "basic"
        percentile : quantiles of the replicates
        normal     : theta_hat -/+ z * SE_boot
        basic      : 2 * theta_hat - opposite quantiles
    estimates : DataFrame or None
        Full-sample tidy table (term, estimate). Required for "normal" and
        "basic"; for "percentile" the replicate mean is reported.

    Returns
    -------
    DataFrame with columns term, estimate, std_error, conf_low, conf_high,
    n_boot, in the order terms first appear in `boot_tidy`.
    """
    if method not in ("percentile", "normal", "basic"):
        raise ValueError(f"Unknown bootstrap interval method {method!r}")
    if method != "percentile" and estimates is None:
        raise ValueError(f"method={method!r} needs the full-sample estimates")
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")

    point = None
    if estimates is not None:
        point = estimates.set_index("term")["estimate"]

    rows = []
    for term, grp in boot_tidy.groupby("term", sort=False):
        reps = grp["estimate"].to_numpy(dtype=float)
        se = np.std(reps, ddof=1) if len(reps) > 1 else np.nan
        lo_q, hi_q = np.quantile(reps, [alpha / 2, 1 - alpha / 2])
        est = point[term] if point is not None else reps.mean()
        if method == "percentile":
            lo, hi = lo_q, hi_q
        elif method == "normal":
            z = stats.norm.ppf(1 - alpha / 2)
            lo, hi = est - z * se, est + z * se
        else:
            lo, hi = 2 * est - hi_q, 2 * est - lo_q
        rows.append(dict(term=term, estimate=est, std_error=se,
                         conf_low=lo, conf_high=hi, n_boot=len(reps)))
    return pd.DataFrame(rows)
