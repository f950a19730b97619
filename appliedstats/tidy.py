"""
Display-ready tables for fitted models.

Every fit dict carries a `kind` ("lm", "logit" or "gam"); the functions
here dispatch on it so the same three calls summarise any model:

    tidy(fit)     one row per coefficient
    glance(fit)   one row per model
    augment(fit)  one row per observation
"""

import numpy as np
import pandas as pd
from scipy import stats

from .linear import predict_lm, DEFAULT_CONF_LEVEL
from .logistic import predict_logit
from .gam import predict_gam, smooth_tests
from .diagnostics import leverage, cooks_distance

TIDY_COLUMNS = ["term", "estimate", "std_error", "statistic", "p_value",
                "conf_low", "conf_high"]


def _kind(fit):
    kind = fit.get("kind") if isinstance(fit, dict) else None
    if kind not in ("lm", "logit", "gam"):
        raise ValueError(f"Not a fitted model: kind={kind!r}")
    return kind


def _coef_table(terms, beta, se, dist, conf_int, conf_level):
    stat = beta / se
    if dist is None:
        p = 2 * stats.norm.sf(np.abs(stat))
        crit = stats.norm.ppf(1 - (1 - conf_level) / 2)
    else:
        p = 2 * stats.t.sf(np.abs(stat), dist)
        crit = stats.t.ppf(1 - (1 - conf_level) / 2, dist)
    table = pd.DataFrame(dict(
        term=terms, estimate=beta, std_error=se, statistic=stat, p_value=p,
    ))
    if conf_int:
        table["conf_low"] = beta - crit * se
        table["conf_high"] = beta + crit * se
    return table


def tidy(fit, conf_int=True, conf_level=DEFAULT_CONF_LEVEL, exponentiate=False):
    """
    Coefficient table.

    Linear models use t statistics on df_resid degrees of freedom, logit
    models use Wald z statistics. With exponentiate=True a logit table
    reports odds ratios (estimate and interval exponentiated, std_error
    left on the log-odds scale).

    For a GAM, the parametric rows are followed by one row per smooth term
    whose estimate is the term's effective degrees of freedom and whose
    statistic and p_value come from gam.smooth_tests.
    """
    kind = _kind(fit)
    if exponentiate and kind != "logit":
        raise ValueError("exponentiate=True only applies to logistic fits")

    if kind == "lm":
        return _coef_table(fit["terms"], fit["beta"], fit["se"],
                           fit["df_resid"], conf_int, conf_level)

    if kind == "logit":
        table = _coef_table(fit["terms"], fit["beta"], fit["se"], None,
                            conf_int, conf_level)
        if exponentiate:
            table["estimate"] = np.exp(table["estimate"])
            if conf_int:
                table["conf_low"] = np.exp(table["conf_low"])
                table["conf_high"] = np.exp(table["conf_high"])
        return table

    k = fit["n_param"]
    table = _coef_table(fit["terms"][:k], fit["beta"][:k], fit["se"][:k],
                        fit["df_resid"], conf_int, conf_level)
    smooth = smooth_tests(fit).rename(columns={"edf": "estimate"})
    smooth = smooth.drop(columns="ref_df")
    smooth["std_error"] = np.nan
    if conf_int:
        smooth["conf_low"] = np.nan
        smooth["conf_high"] = np.nan
    return pd.concat([table, smooth[table.columns]], ignore_index=True)


def glance(fit):
    """One-row model summary."""
    kind = _kind(fit)
    n = fit["n"]

    if kind == "logit":
        k = len(fit["beta"])
        return pd.DataFrame([dict(
            null_deviance=fit["null_deviance"],
            df_null=n - 1,
            log_lik=-fit["nll"],
            aic=fit["aic"],
            bic=fit["bic"],
            deviance=fit["deviance"],
            df_residual=n - k,
            nobs=n,
            converged=fit["converged"],
        )])

    y = fit["y"]
    rss = fit["residuals"] @ fit["residuals"]
    tss = np.sum((y - y.mean()) ** 2)
    r2 = 1 - rss / tss
    # Gaussian log-likelihood at the ML variance estimate
    log_lik = -0.5 * n * (np.log(2 * np.pi * rss / n) + 1)

    if kind == "gam":
        edf = fit["edf"]
        return pd.DataFrame([dict(
            r_squared=r2,
            adj_r_squared=1 - (1 - r2) * (n - 1) / (n - edf),
            sigma=np.sqrt(fit["sigma2"]),
            edf=edf,
            gcv=fit["gcv"],
            lam=fit["lam"],
            log_lik=log_lik,
            aic=-2 * log_lik + 2 * (edf + 1),
            nobs=n,
        )])

    k = len(fit["beta"])
    df_model = k - 1
    if df_model > 0:
        f_stat = ((tss - rss) / df_model) / fit["s2"]
        f_p = stats.f.sf(f_stat, df_model, fit["df_resid"])
    else:
        f_stat, f_p = np.nan, np.nan
    return pd.DataFrame([dict(
        r_squared=r2,
        adj_r_squared=1 - (1 - r2) * (n - 1) / fit["df_resid"],
        sigma=np.sqrt(fit["s2"]),
        statistic=f_stat,
        p_value=f_p,
        df=df_model,
        log_lik=log_lik,
        aic=-2 * log_lik + 2 * (k + 1),
        bic=-2 * log_lik + np.log(n) * (k + 1),
        nobs=n,
        df_residual=fit["df_resid"],
    )])


def augment(fit, data=None):
    """
    Observation-level table: the model rows of `data` plus .fitted and
    .resid. Linear fits also get .hat, .std_resid and .cooksd.

    Parameters
    ----------
    fit : dict
    data : DataFrame or None
        The data the model was fitted on. None returns only the model
        columns (outcome plus added columns).
    """
    kind = _kind(fit)
    if data is None:
        out = pd.DataFrame({fit["outcome"]: fit["y"]}, index=fit["index"])
    else:
        out = data.loc[fit["index"]].copy()
    out[".fitted"] = fit["fitted"]
    out[".resid"] = fit["residuals"]
    if kind == "lm":
        h = leverage(fit["X"])
        out[".hat"] = h
        out[".std_resid"] = fit["residuals"] / np.sqrt(fit["s2"] * (1 - h))
        out[".cooksd"] = cooks_distance(fit)
    return out


def predict(fit, newdata=None):
    """Predictions on the response scale for any fitted model."""
    kind = _kind(fit)
    if kind == "lm":
        return predict_lm(fit, newdata)
    if kind == "logit":
        return predict_logit(fit, newdata, type="response")
    return predict_gam(fit, newdata)
