"""
Shared utility functions used across all model-fitting modules.

Besides the least-squares core, this module turns a DataFrame plus a list
of term names into a numeric design matrix, so that every estimator can be
called the same way: fit(data, outcome, predictors).
"""

import re

import numpy as np
import pandas as pd

POWER_TERM = re.compile(r"^I\(\s*(\w+)\s*\^\s*(\d+)\s*\)$")


def ols_fit(X, y):
    """
    Least squares on arrays.

    Returns
    -------
    b, se, e, s2 : coefficients, homoskedastic standard errors,
    residuals and the error variance e'e / (n - k).
    """
    n, k = X.shape
    b = np.linalg.lstsq(X, y, rcond=None)[0]
    e = y - X @ b
    s2 = (e @ e) / (n - k)
    se = np.sqrt(s2 * np.diag(np.linalg.inv(X.T @ X)))
    return b, se, e, s2


def add_const(x):
    """Design matrix with a leading column of ones; x may be 1-d or 2-d."""
    x = np.asarray(x, dtype=float)
    if x.ndim == 1:
        x = x[:, None]
    return np.hstack([np.ones((len(x), 1)), x])


def _is_numeric(series):
    return (pd.api.types.is_numeric_dtype(series)
            and not pd.api.types.is_bool_dtype(series))


def _term_columns(term):
    """Names of the data columns a term reads."""
    cols = []
    for part in term.split(":"):
        m = POWER_TERM.match(part.strip())
        cols.append(m.group(1) if m else part.strip())
    return cols


def _observed_levels(series):
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().unique().tolist())
        return [c for c in series.cat.categories if c in present]
    return sorted(series.dropna().unique().tolist())


def _expand_part(frame, part, levels):
    """
    Expand one factor of a term into (columns, names).

    Numeric columns pass through, power terms are raised, everything else
    is treatment-coded against its first level.
    """
    m = POWER_TERM.match(part)
    if m:
        col, power = m.group(1), int(m.group(2))
        if not _is_numeric(frame[col]):
            raise ValueError(f"Power term {part!r} needs a numeric column")
        return [frame[col].to_numpy(dtype=float) ** power], [part]

    s = frame[part]
    if _is_numeric(s) and part not in levels:
        return [s.to_numpy(dtype=float)], [part]

    if part not in levels:
        levels[part] = _observed_levels(s)
    known = levels[part]
    unseen = set(s.unique().tolist()) - set(known)
    if unseen:
        raise ValueError(
            f"Column {part!r} has levels not seen when fitting: {sorted(map(str, unseen))}"
        )
    cols = [(s == lev).to_numpy(dtype=float) for lev in known[1:]]
    names = [f"{part}{lev}" for lev in known[1:]]
    return cols, names


def design_matrix(data, predictors, outcome=None, intercept=True, levels=None):
    """
    Build a numeric design matrix from a DataFrame.

    Terms may be plain column names, interactions ``"a:b"`` or powers
    ``"I(x^2)"``. Non-numeric columns are dummy coded with the first level
    as reference. Rows with missing values in any used column are dropped.

    Parameters
    ----------
    data : DataFrame
    predictors : list of str
        Term names.
    outcome : str or None
        Outcome column; when given, ``y`` is returned as well.
    intercept : bool
        Prepend a column of ones named ``(Intercept)``.
    levels : dict or None
        Categorical levels recorded at fit time. Pass the fit's ``levels``
        to rebuild identical columns on new data.

    Returns
    -------
    X : ndarray, shape (n, k)
    y : ndarray, shape (n,) or None
    terms : list of str
        Column names of X.
    levels : dict
        Column -> list of levels for every dummy-coded column.
    index : Index
        Row labels of `data` that were kept.
    """
    predictors = list(predictors)
    used = []
    for term in predictors:
        for col in _term_columns(term):
            if col not in used:
                used.append(col)
    if outcome is not None and outcome not in used:
        used.append(outcome)

    missing = [c for c in used if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    frame = data[used].dropna()
    levels = dict(levels) if levels is not None else {}

    columns, terms = [], []
    if intercept:
        columns.append(np.ones(len(frame)))
        terms.append("(Intercept)")

    for term in predictors:
        parts = [p.strip() for p in term.split(":")]
        cols, names = _expand_part(frame, parts[0], levels)
        for part in parts[1:]:
            nxt_cols, nxt_names = _expand_part(frame, part, levels)
            cols = [a * b for a in cols for b in nxt_cols]
            names = [f"{a}:{b}" for a in names for b in nxt_names]
        columns.extend(cols)
        terms.extend(names)

    if columns:
        X = np.column_stack(columns)
    else:
        X = np.empty((len(frame), 0))
    y = None
    if outcome is not None:
        y = frame[outcome].to_numpy()
    return X, y, terms, levels, frame.index


def check_rank(X, terms):
    """
    Raise ValueError if the design matrix is rank deficient.

    The message names the columns that are linear combinations of the
    columns before them.
    """
    k = X.shape[1]
    if np.linalg.matrix_rank(X) == k:
        return
    aliased = []
    for j in range(1, k):
        if np.linalg.matrix_rank(X[:, :j + 1]) <= np.linalg.matrix_rank(X[:, :j]):
            aliased.append(terms[j])
    raise ValueError(f"Design matrix is rank deficient; aliased terms: {aliased}")
