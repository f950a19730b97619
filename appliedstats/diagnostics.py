"""
Model diagnostics -- influence, heteroskedasticity, normality, collinearity

Implements leverage and Cook's distance, the Breusch-Pagan test,
HC1 (Huber-White) robust standard errors, residual normality tests and
variance inflation factors for linear fits.
"""

import numpy as np
import pandas as pd
from scipy import stats

from .utils import ols_fit


def leverage(X):
    """
    Diagonal of the hat matrix H = X (X'X)^{-1} X'.

    Parameters
    ----------
    X : ndarray, shape (n, k)

    Returns
    -------
    h : ndarray, shape (n,)
    """
    Q, _ = np.linalg.qr(X)
    return np.sum(Q ** 2, axis=1)


def cooks_distance(fit):
    """
    Cook's distance  D_i = e_i^2 / (k * s2) * h_i / (1 - h_i)^2.
    """
    X = fit["X"]
    k = X.shape[1]
    h = leverage(X)
    e = fit["residuals"]
    return (e ** 2 / (k * fit["s2"])) * h / (1 - h) ** 2


def studentized_residuals(fit):
    """
    Externally studentized residuals: each residual scaled by the error
    variance estimated without that observation.
    """
    X = fit["X"]
    n, k = X.shape
    h = leverage(X)
    e = fit["residuals"]
    s2_i = ((n - k) * fit["s2"] - e ** 2 / (1 - h)) / (n - k - 1)
    return e / np.sqrt(s2_i * (1 - h))


def breusch_pagan_test(X, residuals, alpha=0.05):
    """
    Breusch-Pagan test for heteroskedasticity.

    Regresses squared OLS residuals on X. Under H0 (homoskedasticity),
    the slopes of that auxiliary regression are jointly zero.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix used in the original regression (with constant).
    residuals : ndarray, shape (n,)
        OLS residuals.
    alpha : float

    Returns
    -------
    dict with keys:
        F_stat     : F-statistic for the auxiliary slopes
        p_value    : p-value (from F distribution)
        lm_stat    : Koenker LM statistic n * R^2
        lm_p_value : p-value (from chi-square with k-1 df)
        reject     : bool, True if p < alpha
    """
    n, k = X.shape
    if k < 2:
        raise ValueError("Breusch-Pagan needs at least one regressor besides the constant")
    esq = residuals ** 2
    _, _, u, _ = ols_fit(X, esq)
    tss = np.sum((esq - esq.mean()) ** 2)
    r2 = 1 - (u @ u) / tss
    F_stat = (r2 / (k - 1)) / ((1 - r2) / (n - k))
    p_value = stats.f.sf(F_stat, k - 1, n - k)
    lm_stat = n * r2
    lm_p = stats.chi2.sf(lm_stat, k - 1)

    return dict(F_stat=F_stat, p_value=p_value, lm_stat=lm_stat,
                lm_p_value=lm_p, reject=p_value < alpha)


def hc1_robust_se(X, residuals):
    """
    Heteroskedasticity-consistent (HC1, White with small-sample scaling)
    standard errors:

        V = n / (n - k) * (X'X)^{-1} X' diag(e^2) X (X'X)^{-1}
    """
    n, k = X.shape
    XtX_inv = np.linalg.inv(X.T @ X)
    sandwich = XtX_inv @ (X.T @ (X * (residuals ** 2)[:, None])) @ XtX_inv
    return np.sqrt(np.diag(sandwich) * n / (n - k))


def estimate_with_robust_se(X, y):
    """
    OLS on arrays, reported with classical and HC1 standard errors and
    the Breusch-Pagan test of the residuals.

    Returns
    -------
    dict with keys beta, se_classical, se_robust, residuals, bp_test.
    """
    beta, se, resid, _ = ols_fit(X, y)
    return dict(
        beta=beta,
        se_classical=se,
        se_robust=hc1_robust_se(X, resid),
        residuals=resid,
        bp_test=breusch_pagan_test(X, resid),
    )


def normality_test(residuals, alpha=0.05):
    """
    Test residual normality.

    Shapiro-Wilk up to 5000 observations, D'Agostino-Pearson beyond.

    Returns
    -------
    dict with keys: test, statistic, p_value, reject
    """
    residuals = np.asarray(residuals, dtype=float)
    if len(residuals) < 8:
        raise ValueError("Normality test needs at least 8 residuals")
    if len(residuals) <= 5000:
        name = "shapiro"
        stat, p = stats.shapiro(residuals)
    else:
        name = "dagostino"
        stat, p = stats.normaltest(residuals)
    return dict(test=name, statistic=float(stat), p_value=float(p),
                reject=p < alpha)


def vif(fit):
    """
    Variance inflation factor of every non-intercept column:
    VIF_j = 1 / (1 - R_j^2), where R_j^2 comes from regressing column j
    on the other columns.

    Returns
    -------
    DataFrame with columns term, vif.
    """
    X = fit["X"]
    terms = fit["terms"]
    rows = []
    for j, term in enumerate(terms):
        if term == "(Intercept)":
            continue
        others = np.delete(X, j, axis=1)
        xj = X[:, j]
        _, _, e, _ = ols_fit(others, xj)
        tss = np.sum((xj - xj.mean()) ** 2)
        r2 = 1 - (e @ e) / tss
        rows.append(dict(term=term, vif=1 / (1 - r2) if r2 < 1 else np.inf))
    return pd.DataFrame(rows, columns=["term", "vif"])


def influential_points(fit, threshold=None):
    """
    Observations whose Cook's distance exceeds `threshold` (default 4/n).

    Returns
    -------
    DataFrame indexed like the model rows with columns cooksd, hat,
    residual, sorted by decreasing cooksd.
    """
    d = cooks_distance(fit)
    if threshold is None:
        threshold = 4 / fit["n"]
    out = pd.DataFrame(dict(cooksd=d, hat=leverage(fit["X"]),
                            residual=fit["residuals"]), index=fit["index"])
    return out[out["cooksd"] > threshold].sort_values("cooksd", ascending=False)


def diagnose(fit):
    """
    Bundle the standard checks for a linear fit.

    Returns
    -------
    dict with keys:
        breusch_pagan : heteroskedasticity test
        normality     : residual normality test
        vif           : DataFrame of VIFs
        influential   : DataFrame of high-influence rows
        se_robust     : HC1 robust SEs aligned with fit["terms"]
    """
    if fit.get("kind") != "lm":
        raise ValueError("diagnose() applies to linear fits")
    X, e = fit["X"], fit["residuals"]
    return dict(
        breusch_pagan=breusch_pagan_test(X, e) if X.shape[1] > 1 else None,
        normality=normality_test(e),
        vif=vif(fit),
        influential=influential_points(fit),
        se_robust=pd.Series(hc1_robust_se(X, e), index=fit["terms"]),
    )
