"""
Cross-validation for model selection

Splits a DataFrame into analysis (training) and assessment (held-out)
rows, refits candidate models on each analysis set and scores them on
the matching assessment set.
"""

import numpy as np
import pandas as pd

from .logistic import _encode_with_levels
from .tidy import predict

DEFAULT_N_FOLDS = 10


def crossv_kfold(data, k=5, seed=None):
    """
    K-fold splits: rows are shuffled and dealt into k disjoint test folds
    that together cover every row exactly once.

    Returns
    -------
    list of dict with keys id ("Fold1", ...), analysis, assessment
    (row positions).
    """
    n = len(data)
    if k < 2:
        raise ValueError(f"k must be at least 2, got {k}")
    if k > n:
        raise ValueError(f"k={k} exceeds the number of rows ({n})")
    rng = np.random.default_rng(seed)
    perm = rng.permutation(n)
    folds = np.array_split(perm, k)
    return [
        dict(id=f"Fold{i + 1}",
             analysis=np.sort(np.concatenate(folds[:i] + folds[i + 1:])),
             assessment=np.sort(fold))
        for i, fold in enumerate(folds)
    ]


def crossv_mc(data, n=100, test=0.2, seed=None):
    """
    Monte Carlo cross-validation: `n` independent random splits, each
    holding out a fraction `test` of the rows.

    Returns
    -------
    list of dict with keys id ("001", ...), analysis, assessment.
    """
    if not 0 < test < 1:
        raise ValueError(f"test must be in (0, 1), got {test}")
    if n < 1:
        raise ValueError(f"n must be at least 1, got {n}")
    rows = len(data)
    n_test = int(round(rows * test))
    if n_test < 1 or n_test >= rows:
        raise ValueError(f"test={test} leaves an empty split for {rows} rows")
    rng = np.random.default_rng(seed)
    width = max(3, len(str(n)))
    splits = []
    for i in range(n):
        perm = rng.permutation(rows)
        splits.append(dict(id=f"{i + 1:0{width}d}",
                           analysis=np.sort(perm[n_test:]),
                           assessment=np.sort(perm[:n_test])))
    return splits


def _observed(fit, data):
    """Outcome and predictions on rows of `data` with an observed outcome."""
    data = data.dropna(subset=[fit["outcome"]])
    pred = np.asarray(predict(fit, data), dtype=float)
    if len(pred) != len(data):
        raise ValueError("Held-out data has missing predictor values")
    return data[fit["outcome"]].to_numpy(), pred


def rmse(fit, data):
    """Root mean squared prediction error on `data`."""
    y, pred = _observed(fit, data)
    return float(np.sqrt(np.mean((y.astype(float) - pred) ** 2)))


def mae(fit, data):
    """Mean absolute prediction error on `data`."""
    y, pred = _observed(fit, data)
    return float(np.mean(np.abs(y.astype(float) - pred)))


def rsquare(fit, data):
    """Squared correlation between observed and predicted outcomes."""
    y, pred = _observed(fit, data)
    return float(np.corrcoef(y.astype(float), pred)[0, 1] ** 2)


def accuracy(fit, data, threshold=0.5):
    """Share of held-out rows classified correctly by a logit fit."""
    y_raw, p = _observed(fit, data)
    y = _encode_with_levels(y_raw, fit)
    return float(np.mean((p >= threshold) == (y == 1)))


def log_loss(fit, data):
    """Mean negative log-likelihood of a logit fit on `data`."""
    y_raw, p = _observed(fit, data)
    y = _encode_with_levels(y_raw, fit)
    p = np.clip(p, 1e-12, 1 - 1e-12)
    return float(-np.mean(y * np.log(p) + (1 - y) * np.log(1 - p)))


LOWER_IS_BETTER = {"rmse": True, "mae": True, "log_loss": True,
                   "rsquare": False, "accuracy": False}


def cross_validate(data, fitter, splits, metric=rmse, **fit_kwargs):
    """
    Fit on each split's analysis rows, score on its assessment rows.

    Returns
    -------
    DataFrame with columns id and the metric's name.
    """
    name = metric.__name__
    rows = []
    for split in splits:
        train = data.iloc[split["analysis"]]
        test = data.iloc[split["assessment"]]
        fit = fitter(train, **fit_kwargs)
        rows.append({"id": split["id"], name: metric(fit, test)})
    return pd.DataFrame(rows, columns=["id", name])


def compare_models(data, candidates, splits, metric=rmse):
    """
    Cross-validate several candidate models on the same splits.

    Parameters
    ----------
    data : DataFrame
    candidates : dict
        name -> (fitter, fit_kwargs)
    splits : list of split dicts (crossv_kfold, crossv_mc or bootstraps)
    metric : callable (fit, data) -> float

    Returns
    -------
    results : DataFrame
        Long table with columns model, id, value.
    summary : DataFrame
        model, mean, std_error, n_splits; best model first.
    """
    if not candidates:
        raise ValueError("No candidate models to compare")
    name = metric.__name__
    parts = []
    for model, (fitter, fit_kwargs) in candidates.items():
        res = cross_validate(data, fitter, splits, metric=metric, **fit_kwargs)
        res = res.rename(columns={name: "value"})
        res.insert(0, "model", model)
        parts.append(res)
    results = pd.concat(parts, ignore_index=True)

    summary = (results.groupby("model", sort=False)["value"]
               .agg(["mean", "std", "count"])
               .reset_index())
    summary["std_error"] = summary["std"] / np.sqrt(summary["count"])
    summary = summary.rename(columns={"count": "n_splits"})
    summary = summary[["model", "mean", "std_error", "n_splits"]]
    ascending = LOWER_IS_BETTER.get(name, True)
    summary = summary.sort_values("mean", ascending=ascending).reset_index(drop=True)
    return results, summary
