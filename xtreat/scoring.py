"""
Univariate scoring of derived variables.

Every variable is scored alone against the outcome using its cross-frame
values: an F-test of the one-variable linear model gives the significance and
the squared correlation gives the effect size.
"""

from typing import List

import numpy as np
import pandas as pd
from sklearn.feature_selection import f_regression, r_regression

SCORE_COLUMNS = [
    "variable",
    "orig_variable",
    "code",
    "level",
    "rsq",
    "sig",
    "moves",
    "default_threshold",
    "recommended",
]


def _moves(vals: np.ndarray) -> bool:
    return bool(len(vals) > 0 and (vals != vals[0]).any())


def adaptive_thresholds(codes: pd.Series) -> pd.Series:
    """Per-variable significance threshold adjusted for its treatment code.

    A variable of code ``T`` gets ``1 / (n_codes * n_T)`` where ``n_codes`` is
    the number of distinct codes present and ``n_T`` the number of variables
    of code ``T``. Under pure noise each code then admits about
    ``1 / n_codes`` false positives, about one in total.

    Parameters
    ----------
    codes : pd.Series
        Treatment code of each variable.

    Returns
    -------
    pd.Series
        Threshold per variable, indexed like ``codes``.
    """
    counts = codes.value_counts()
    if len(counts) == 0:
        return pd.Series([], index=codes.index, dtype=float)
    per_code = 1.0 / (len(counts) * counts.astype(float))
    return codes.map(per_code).astype(float)


def score_variables(
    cross_frame: pd.DataFrame, y: np.ndarray, variables: List
) -> pd.DataFrame:
    """Score each derived variable against the outcome.

    Parameters
    ----------
    cross_frame : pd.DataFrame
        Out-of-fold values of the derived variables.
    y : np.ndarray
        Outcome (0/1 for classification).
    variables : list of DerivedVariable
        Descriptors, in output order; every name must be a cross-frame column.

    Returns
    -------
    pd.DataFrame
        One row per variable with columns ``SCORE_COLUMNS``.
    """
    y = np.asarray(y, dtype=float)
    names = [v.name for v in variables]
    moves = np.array([_moves(cross_frame[nm].values) for nm in names], dtype=bool)

    rsq = np.zeros(len(names))
    sig = np.ones(len(names))
    if moves.any():
        X = cross_frame[[nm for nm, m in zip(names, moves) if m]].values
        _, pvalues = f_regression(X, y, center=True)
        r = r_regression(X, y, center=True)
        sig[moves] = np.nan_to_num(pvalues, nan=1.0)
        rsq[moves] = np.nan_to_num(r ** 2, nan=0.0)

    score = pd.DataFrame(
        {
            "variable": names,
            "orig_variable": [v.orig_variable for v in variables],
            "code": [v.code for v in variables],
            "level": [v.level for v in variables],
            "rsq": rsq,
            "sig": sig,
            "moves": moves,
        }
    )
    score["default_threshold"] = adaptive_thresholds(score["code"])
    score["recommended"] = score["moves"] & (score["sig"] < score["default_threshold"])
    return score[SCORE_COLUMNS]


def scale_parameters(cross_frame: pd.DataFrame, y: np.ndarray) -> pd.DataFrame:
    """Mean and least-squares slope of the outcome on each variable.

    Used by ``prepare(scale=True)`` to express variables in outcome units.
    Non-moving variables get slope 0.0.
    """
    y = np.asarray(y, dtype=float)
    X = cross_frame.values
    means = X.mean(axis=0) if len(X) else np.zeros(X.shape[1])
    xc = X - means
    yc = y - y.mean()
    var = (xc ** 2).sum(axis=0)
    cov = (xc * yc[:, None]).sum(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        slope = np.where(var > 0, cov / var, 0.0)
    return pd.DataFrame(
        {"mean": means, "slope": slope}, index=cross_frame.columns
    )
