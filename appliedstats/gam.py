"""
Generalized Additive Models -- penalized regression splines

Each smooth term s(x) is a cubic B-spline basis on equally spaced knots
with a second-order difference penalty (Eilers & Marx P-splines). All
smooths share one smoothing parameter lambda, chosen by generalized
cross-validation unless given.

    beta_hat = (X'X + lambda * S)^{-1} X'y
    edf      = tr[(X'X + lambda * S)^{-1} X'X]
    GCV      = n * RSS / (n - edf)^2
"""

import numpy as np
import pandas as pd
from scipy import stats
from scipy.interpolate import BSpline

from .utils import design_matrix, _term_columns

DEFAULT_N_KNOTS = 10
DEFAULT_DEGREE = 3
DEFAULT_LAM_GRID = np.logspace(-4, 6, 41)


def knot_sequence(x, n_knots=DEFAULT_N_KNOTS, degree=DEFAULT_DEGREE):
    """
    Equally spaced knots covering [min(x), max(x)] with `n_knots` segments.

    Returns
    -------
    ndarray, shape (n_knots + 2*degree + 1,)
    """
    x = np.asarray(x, dtype=float)
    lo, hi = np.min(x), np.max(x)
    if not hi > lo:
        raise ValueError("Cannot build a spline basis for a constant variable")
    h = (hi - lo) / n_knots
    return lo + h * np.arange(-degree, n_knots + degree + 1)


def bspline_basis(x, knots, degree=DEFAULT_DEGREE):
    """
    Evaluate every B-spline basis function at x.

    Outside the knot range the basis is extended linearly from the
    boundary so that predictions extrapolate as straight lines.

    Returns
    -------
    B : ndarray, shape (len(x), len(knots) - degree - 1)
    """
    x = np.asarray(x, dtype=float)
    nb = len(knots) - degree - 1
    spl = BSpline(knots, np.eye(nb), degree, extrapolate=True)
    inside = np.clip(x, knots[degree], knots[-degree - 1])
    B = spl(inside)
    outside = x != inside
    if np.any(outside):
        dB = spl.derivative()(inside[outside])
        B[outside] += dB * (x[outside] - inside[outside])[:, None]
    return B


def difference_penalty(nb, order=2):
    """`order`-th difference matrix D of nb coefficients; the penalty is D'D."""
    D = np.diff(np.eye(nb), n=order, axis=0)
    return D


def _smooth_columns(x, smooth):
    """Centered basis with the first column dropped."""
    B = bspline_basis(x, smooth["knots"], smooth["degree"])[:, 1:]
    return B - smooth["center"]


def _penalized_fit(X, y, S, lam):
    n = len(y)
    XtX = X.T @ X
    A_inv = np.linalg.inv(XtX + lam * S)
    beta = A_inv @ (X.T @ y)
    fitted = X @ beta
    e = y - fitted
    rss = e @ e
    F = A_inv @ XtX
    edf = np.trace(F)
    gcv = n * rss / (n - edf) ** 2
    return dict(beta=beta, fitted=fitted, residuals=e, rss=rss,
                A_inv=A_inv, F=F, edf=edf, gcv=gcv)


def fit_gam(data, outcome, smooth, linear=(), n_knots=DEFAULT_N_KNOTS,
            lam=None, lam_grid=None, degree=DEFAULT_DEGREE):
    """
    Gaussian additive model  y = X_lin*beta + sum_j s_j(x_j) + eps.

    Parameters
    ----------
    data : DataFrame
    outcome : str
    smooth : list of str
        Numeric columns entering as smooth functions.
    linear : list of str
        Parametric terms (see utils.design_matrix).
    n_knots : int
        Number of knot segments per smooth.
    lam : float or None
        Smoothing parameter. None selects it by GCV over `lam_grid`.
    lam_grid : array or None
        Candidate lambdas, default DEFAULT_LAM_GRID.
    degree : int
        Spline degree.

    Returns
    -------
    dict with keys:
        kind        : "gam"
        terms       : parametric names followed by basis names "s(x).j"
        beta, se, cov (Bayesian posterior covariance), fitted, residuals
        edf         : total effective degrees of freedom
        edf_terms   : {smooth term label: edf}
        lam, gcv, gcv_path (DataFrame of lam, gcv over the grid)
        sigma2      : RSS / (n - edf)
        smooths     : list of per-smooth dicts (term, label, knots,
                      center, degree, cols, range)
        n_param     : number of parametric columns
        n, df_resid, X, y, index, outcome, predictors, levels
    """
    smooth = list(smooth)
    linear = list(linear)
    if not smooth:
        raise ValueError("fit_gam needs at least one smooth term")
    missing = [c for c in smooth if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    used = smooth + [c for t in linear for c in _term_columns(t)] + [outcome]
    frame = data.dropna(subset=[c for c in used if c in data.columns])
    Xp, y, terms, levels, index = design_matrix(frame, linear, outcome)
    y = np.asarray(y, dtype=float)
    n = len(y)
    n_param = Xp.shape[1]

    blocks, smooths = [Xp], []
    col = n_param
    for term in smooth:
        x = frame[term].to_numpy(dtype=float)
        knots = knot_sequence(x, n_knots, degree)
        B = bspline_basis(x, knots, degree)[:, 1:]
        center = B.mean(axis=0)
        nb = B.shape[1]
        label = f"s({term})"
        smooths.append(dict(
            term=term, label=label, knots=knots, center=center,
            degree=degree, cols=slice(col, col + nb),
            range=(float(x.min()), float(x.max())),
        ))
        blocks.append(B - center)
        terms.extend(f"{label}.{j + 1}" for j in range(nb))
        col += nb

    X = np.column_stack(blocks)
    k = X.shape[1]
    if n <= n_param + 2 * len(smooth):
        raise ValueError(f"Too few rows ({n}) to fit {len(smooth)} smooth terms")

    S = np.zeros((k, k))
    for sm in smooths:
        nb = sm["cols"].stop - sm["cols"].start
        D = difference_penalty(nb + 1)[:, 1:]
        S[sm["cols"], sm["cols"]] = D.T @ D

    if lam is None:
        grid = DEFAULT_LAM_GRID if lam_grid is None else np.asarray(lam_grid, dtype=float)
        path = [_penalized_fit(X, y, S, g)["gcv"] for g in grid]
        lam = float(grid[int(np.argmin(path))])
        gcv_path = pd.DataFrame({"lam": grid, "gcv": path})
    else:
        gcv_path = None

    res = _penalized_fit(X, y, S, lam)
    edf = res["edf"]
    sigma2 = res["rss"] / (n - edf)
    cov = res["A_inv"] * sigma2
    F_diag = np.diag(res["F"])
    edf_terms = {sm["label"]: float(F_diag[sm["cols"]].sum()) for sm in smooths}

    return dict(
        kind="gam",
        terms=terms,
        beta=res["beta"],
        se=np.sqrt(np.diag(cov)),
        cov=cov,
        fitted=res["fitted"],
        residuals=res["residuals"],
        rss=res["rss"],
        edf=float(edf),
        edf_terms=edf_terms,
        lam=lam,
        gcv=float(res["gcv"]),
        gcv_path=gcv_path,
        sigma2=sigma2,
        smooths=smooths,
        n_param=n_param,
        n=n,
        df_resid=n - edf,
        X=X,
        y=y,
        index=index,
        outcome=outcome,
        predictors=linear,
        levels=levels,
    )


def gam_design(fit, newdata):
    """Rebuild the model matrix of a GAM fit on new rows."""
    cols = [sm["term"] for sm in fit["smooths"]]
    missing = [c for c in cols if c not in newdata.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")
    used = cols + [c for t in fit["predictors"] for c in _term_columns(t)]
    frame = newdata.dropna(subset=[c for c in used if c in newdata.columns])
    Xp = design_matrix(frame, fit["predictors"], levels=fit["levels"])[0]
    blocks = [Xp]
    for sm in fit["smooths"]:
        blocks.append(_smooth_columns(frame[sm["term"]].to_numpy(dtype=float), sm))
    return np.column_stack(blocks)


def predict_gam(fit, newdata=None, se_fit=False):
    """
    Predictions from a GAM fit.

    Returns
    -------
    ndarray of predictions, or a dict with keys fit and se when se_fit.
    """
    X = fit["X"] if newdata is None else gam_design(fit, newdata)
    pred = X @ fit["beta"]
    if not se_fit:
        return pred
    se = np.sqrt(np.einsum("ij,jk,ik->i", X, fit["cov"], X))
    return dict(fit=pred, se=se)


def _find_smooth(fit, term):
    for sm in fit["smooths"]:
        if term in (sm["term"], sm["label"]):
            return sm
    raise ValueError(f"No smooth term {term!r} in this fit")


def smooth_curve(fit, term, n_points=100):
    """
    Partial effect of one smooth over its observed range.

    Returns
    -------
    DataFrame with columns x, fit, se, lower, upper (fit +/- 2 se).
    """
    sm = _find_smooth(fit, term)
    x = np.linspace(sm["range"][0], sm["range"][1], n_points)
    B = _smooth_columns(x, sm)
    b = fit["beta"][sm["cols"]]
    V = fit["cov"][sm["cols"], sm["cols"]]
    est = B @ b
    se = np.sqrt(np.einsum("ij,jk,ik->i", B, V, B))
    return pd.DataFrame(dict(x=x, fit=est, se=se,
                             lower=est - 2 * se, upper=est + 2 * se))


def smooth_tests(fit):
    """
    Approximate significance of each smooth term.

    Wald statistic b' V^+ b divided by the term's edf, referred to an F
    distribution on (edf, n - edf) degrees of freedom.
    """
    rows = []
    for sm in fit["smooths"]:
        b = fit["beta"][sm["cols"]]
        V = fit["cov"][sm["cols"], sm["cols"]]
        edf = fit["edf_terms"][sm["label"]]
        ref_df = max(edf, 1.0)
        stat = (b @ np.linalg.pinv(V) @ b) / ref_df
        rows.append(dict(
            term=sm["label"],
            edf=edf,
            ref_df=ref_df,
            statistic=stat,
            p_value=stats.f.sf(stat, ref_df, fit["df_resid"]),
        ))
    return pd.DataFrame(rows)
