"""
Logistic regression

Logit MLE via BFGS on a DataFrame, with Fisher-information standard
errors, deviance summaries, predictions, average marginal effects and a
classification table.
"""

import warnings

import numpy as np
import pandas as pd
from scipy.optimize import minimize

from .utils import design_matrix, check_rank


def logistic(z):
    """Logistic (sigmoid) CDF: 1 / (1 + exp(-z))."""
    return 1 / (1 + np.exp(-np.clip(z, -500, 500)))


def _nll_logit(b, X, y):
    """Negative log-likelihood for logit."""
    p = np.clip(logistic(X @ b), 1e-12, 1 - 1e-12)
    return -np.sum(y * np.log(p) + (1 - y) * np.log(1 - p))


def _grad_logit(b, X, y):
    return -X.T @ (y - logistic(X @ b))


def encode_binary(values, name="outcome"):
    """
    Map a two-valued outcome to 0/1.

    Booleans map False/True to 0/1, numeric 0/1 is kept, and any other
    two-level outcome treats the second sorted level as the event.

    Returns
    -------
    y : ndarray of float
    levels : list
        [reference level, event level]
    """
    s = pd.Series(values)
    levels = sorted(s.unique().tolist())
    if len(levels) > 2:
        raise ValueError(
            f"Logistic outcome {name!r} must have two levels, found {len(levels)}"
        )
    if len(levels) < 2:
        raise ValueError(f"Logistic outcome {name!r} has a single value: {levels}")
    if pd.api.types.is_bool_dtype(s):
        return s.to_numpy(dtype=float), [False, True]
    if pd.api.types.is_numeric_dtype(s) and set(levels) == {0, 1}:
        return s.to_numpy(dtype=float), [0, 1]
    return (s == levels[1]).to_numpy(dtype=float), levels


def fit_logit(data, outcome, predictors, start=None):
    """
    Logit MLE via BFGS optimization.

    Columns are rescaled by their standard deviation during optimization
    and the coefficients mapped back afterwards.

    Parameters
    ----------
    data : DataFrame
    outcome : str
        Binary outcome column (0/1, boolean or two-level categorical).
    predictors : list of str
    start : ndarray or None
        Starting values on the original scale. Defaults to zeros.

    Returns
    -------
    dict with keys:
        kind          : "logit"
        terms, beta, se, cov
        p_hat         : fitted probabilities
        nll           : negative log-likelihood at optimum
        deviance      : 2 * nll
        null_deviance : deviance of the intercept-only model
        aic, bic
        converged     : bool
        n, df_resid, X, y, index, outcome, predictors, levels,
        outcome_levels : [reference, event]
    """
    X, y_raw, terms, levels, index = design_matrix(data, predictors, outcome)
    y, outcome_levels = encode_binary(y_raw, outcome)
    n, k = X.shape
    if n <= k:
        raise ValueError(
            f"Need more rows than coefficients to fit {outcome!r}: n={n}, k={k}"
        )
    check_rank(X, terms)

    scale = X.std(axis=0)
    scale[scale == 0] = 1.0
    Xs = X / scale
    start_s = np.zeros(k) if start is None else np.asarray(start, dtype=float) * scale

    res = minimize(_nll_logit, start_s, args=(Xs, y), jac=_grad_logit,
                   method="BFGS")
    beta = res.x / scale
    converged = bool(res.success) or np.max(np.abs(res.jac)) < 1e-3
    p_hat = logistic(X @ beta)
    # fitted probabilities of exactly 0 or 1 mean the MLE does not exist
    separated = bool(np.any((p_hat < 1e-8) | (p_hat > 1 - 1e-8)))
    if separated:
        converged = False
        warnings.warn(
            f"Logit fit for {outcome!r} did not converge: fitted probabilities "
            "of 0 or 1 occurred (perfect separation)",
            RuntimeWarning,
        )
    elif not converged:
        warnings.warn(
            f"Logit fit for {outcome!r} did not converge: {res.message}",
            RuntimeWarning,
        )

    W = p_hat * (1 - p_hat)
    # Observed Fisher info: I(beta) = X' diag(p*(1-p)) X
    fisher = X.T @ (X * W[:, None])
    try:
        cov = np.linalg.inv(fisher)
        se = np.sqrt(np.diag(cov))
    except np.linalg.LinAlgError:
        cov = np.full((k, k), np.nan)
        se = np.full(k, np.nan)

    nll = _nll_logit(beta, X, y)
    p0 = np.mean(y)
    null_dev = -2 * np.sum(y * np.log(p0) + (1 - y) * np.log(1 - p0))

    return dict(
        kind="logit",
        terms=terms,
        beta=beta,
        se=se,
        cov=cov,
        p_hat=p_hat,
        fitted=p_hat,
        residuals=y - p_hat,
        nll=nll,
        deviance=2 * nll,
        null_deviance=null_dev,
        aic=2 * nll + 2 * k,
        bic=2 * nll + k * np.log(n),
        converged=converged,
        n=n,
        df_resid=n - k,
        X=X,
        y=y,
        index=index,
        outcome=outcome,
        predictors=list(predictors),
        levels=levels,
        outcome_levels=outcome_levels,
    )


def predict_logit(fit, newdata=None, type="response"):
    """
    Predictions from a logit fit.

    type="link" returns the linear predictor X @ beta, type="response"
    the probability of the event level.
    """
    if newdata is None:
        X = fit["X"]
    else:
        X = design_matrix(newdata, fit["predictors"], levels=fit["levels"])[0]
    eta = X @ fit["beta"]
    if type == "link":
        return eta
    if type == "response":
        return logistic(eta)
    raise ValueError(f"type must be 'response' or 'link', got {type!r}")


def logit_ame(X, beta, coef_idx=1):
    """
    Average marginal effect of column `coef_idx` on the event probability,
    mean over rows of beta_j * p_i * (1 - p_i).
    """
    p = logistic(X @ beta)
    return float(np.mean(p * (1 - p)) * beta[coef_idx])


def classification_table(fit, threshold=0.5, newdata=None):
    """
    Confusion counts and rates at a probability threshold.

    Returns
    -------
    dict with keys:
        tp, fp, tn, fn : counts
        accuracy, sensitivity, specificity : rates (NaN if undefined)
    """
    if newdata is None:
        y = fit["y"]
        p = fit["p_hat"]
    else:
        X, y_raw, _, _, _ = design_matrix(newdata, fit["predictors"],
                                          fit["outcome"], levels=fit["levels"])
        y = _encode_with_levels(y_raw, fit)
        p = logistic(X @ fit["beta"])
    pred = (p >= threshold).astype(float)

    tp = int(np.sum((pred == 1) & (y == 1)))
    tn = int(np.sum((pred == 0) & (y == 0)))
    fp = int(np.sum((pred == 1) & (y == 0)))
    fn = int(np.sum((pred == 0) & (y == 1)))
    pos, neg = tp + fn, tn + fp

    return dict(
        tp=tp, fp=fp, tn=tn, fn=fn,
        accuracy=(tp + tn) / len(y),
        sensitivity=tp / pos if pos else np.nan,
        specificity=tn / neg if neg else np.nan,
    )


def _encode_with_levels(values, fit):
    """Encode held-out outcomes against the levels seen at fit time."""
    ref, event = fit["outcome_levels"]
    s = pd.Series(values)
    unknown = set(s.unique().tolist()) - {ref, event}
    if unknown:
        raise ValueError(
            f"Outcome {fit['outcome']!r} has values not seen when fitting: "
            f"{sorted(map(str, unknown))}"
        )
    return (s == event).to_numpy(dtype=float)
