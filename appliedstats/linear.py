"""
Linear regression

Fits y = X*beta + epsilon by ordinary least squares on a DataFrame and
predicts from the fitted model with confidence or prediction intervals.
"""

import numpy as np
from scipy import stats

from .utils import design_matrix, check_rank

DEFAULT_CONF_LEVEL = 0.95


def fit_lm(data, outcome, predictors):
    """
    OLS fit of `outcome` on `predictors`.

    Parameters
    ----------
    data : DataFrame
    outcome : str
        Numeric outcome column.
    predictors : list of str
        Term names (see utils.design_matrix). An empty list fits the
        intercept-only model.

    Returns
    -------
    dict with keys:
        kind      : "lm"
        terms     : coefficient names
        beta      : coefficient vector
        se        : homoskedastic standard errors
        cov       : coefficient covariance  s2 * (X'X)^{-1}
        residuals : y - fitted
        fitted    : X @ beta
        s2        : estimated error variance  e'e / (n - k)
        n, df_resid
        X, y      : design matrix and outcome actually used
        index     : row labels of `data` used in the fit
        outcome, predictors, levels : needed to rebuild X on new data
    """
    X, y, terms, levels, index = design_matrix(data, predictors, outcome)
    y = np.asarray(y, dtype=float)
    n, k = X.shape
    if n <= k:
        raise ValueError(
            f"Need more rows than coefficients to fit {outcome!r}: n={n}, k={k}"
        )
    check_rank(X, terms)

    b = np.linalg.lstsq(X, y, rcond=None)[0]
    fitted = X @ b
    e = y - fitted
    s2 = (e @ e) / (n - k)
    cov = s2 * np.linalg.inv(X.T @ X)

    return dict(
        kind="lm",
        terms=terms,
        beta=b,
        se=np.sqrt(np.diag(cov)),
        cov=cov,
        residuals=e,
        fitted=fitted,
        s2=s2,
        n=n,
        df_resid=n - k,
        X=X,
        y=y,
        index=index,
        outcome=outcome,
        predictors=list(predictors),
        levels=levels,
    )


def predict_lm(fit, newdata=None, interval=None, conf_level=DEFAULT_CONF_LEVEL):
    """
    Predictions from a linear fit.

    Parameters
    ----------
    fit : dict
        Result of fit_lm.
    newdata : DataFrame or None
        Rows to predict; None means the fitting rows.
    interval : None, "confidence" or "prediction"
        Confidence intervals cover the conditional mean, prediction
        intervals add the residual variance for a new observation.
    conf_level : float

    Returns
    -------
    ndarray of predictions if interval is None, otherwise a dict with
    keys fit, lower, upper.
    """
    if newdata is None:
        X = fit["X"]
    else:
        X = design_matrix(newdata, fit["predictors"], levels=fit["levels"])[0]
    pred = X @ fit["beta"]
    if interval is None:
        return pred
    if interval not in ("confidence", "prediction"):
        raise ValueError(f"interval must be 'confidence' or 'prediction', got {interval!r}")

    var_mean = np.einsum("ij,jk,ik->i", X, fit["cov"], X)
    if interval == "prediction":
        var_mean = var_mean + fit["s2"]
    tcrit = stats.t.ppf(1 - (1 - conf_level) / 2, fit["df_resid"])
    half = tcrit * np.sqrt(var_mean)
    return dict(fit=pred, lower=pred - half, upper=pred + half)
