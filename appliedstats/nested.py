"""
Nested data modeling -- one model per subgroup

Splits a DataFrame by one or more grouping columns, fits the same model
to every group and stacks the per-group tidy/glance/augment tables. The
pooled alternative (one model with group interactions) is provided for
comparison.
"""

import warnings

import numpy as np
import pandas as pd

from .linear import fit_lm
from .tidy import tidy, glance, augment


def _as_list(by):
    return [by] if isinstance(by, str) else list(by)


def nest(data, by):
    """
    One row per group with the group's rows in a `data` column.

    Parameters
    ----------
    data : DataFrame
    by : str or list of str

    Returns
    -------
    DataFrame with the grouping column(s) and `data`, groups sorted.
    """
    by = _as_list(by)
    missing = [c for c in by if c not in data.columns]
    if missing:
        raise ValueError(f"Grouping columns not found in data: {missing}")
    rows = []
    for key, sub in data.groupby(by, sort=True, observed=True):
        key = key if isinstance(key, tuple) else (key,)
        row = dict(zip(by, key))
        row["data"] = sub.drop(columns=by)
        rows.append(row)
    return pd.DataFrame(rows, columns=by + ["data"])


def fit_nested(data, by, fitter=fit_lm, **fit_kwargs):
    """
    Fit `fitter(group_data, **fit_kwargs)` to every group.

    Groups that cannot be fitted (too few rows, singular design) are
    skipped with a UserWarning.

    Returns
    -------
    DataFrame with the grouping column(s), `model` (fit dict) and `n`.
    """
    by = _as_list(by)
    nested = nest(data, by)
    rows = []
    for _, row in nested.iterrows():
        key = {c: row[c] for c in by}
        try:
            fit = fitter(row["data"], **fit_kwargs)
        except (ValueError, np.linalg.LinAlgError) as e:
            warnings.warn(f"Skipping group {key}: {e}", UserWarning)
            continue
        rows.append(dict(key, model=fit, n=fit["n"]))
    if not rows:
        raise ValueError(f"No group of {by} could be fitted")
    return pd.DataFrame(rows, columns=by + ["model", "n"])


def _stack(nested, summarise):
    by = [c for c in nested.columns if c not in ("model", "n")]
    parts = []
    for _, row in nested.iterrows():
        table = summarise(row["model"]).reset_index(drop=True)
        for c in reversed(by):
            table.insert(0, c, row[c])
        parts.append(table)
    return pd.concat(parts, ignore_index=True)


def nested_tidy(nested, **tidy_kwargs):
    """Per-group coefficient tables stacked, group columns first."""
    return _stack(nested, lambda fit: tidy(fit, **tidy_kwargs))


def nested_glance(nested):
    """Per-group model summaries stacked, group columns first."""
    return _stack(nested, glance)


def nested_augment(nested):
    """Per-group fitted values and residuals stacked, group columns first."""
    return _stack(nested, augment)


def fit_interaction_model(data, by, outcome, predictors):
    """
    Pooled linear model with a separate intercept and slope per group:
    outcome ~ by + predictors + by:predictors.

    Its coefficients reproduce the nested fits' point estimates but share
    one residual variance across groups.
    """
    if not isinstance(by, str):
        raise ValueError("fit_interaction_model takes a single grouping column")
    predictors = list(predictors)
    terms = [by] + predictors + [f"{by}:{p}" for p in predictors]
    data = data.dropna(subset=[by]).copy()
    data[by] = data[by].astype(str)
    return fit_lm(data, outcome, terms)
