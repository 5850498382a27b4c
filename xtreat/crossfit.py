"""
Out-of-fold fitting for xtreat.

Builds the cross-frame columns of one treatment: for every fold, a fresh copy
of the treatment is fit on the rows outside the fold and applied to the rows
inside it, so no row's value comes from a fit that saw that row.
"""

from typing import Callable, Optional

import numpy as np
import pandas as pd
from sklearn.base import clone

from xtreat.encoders import Treatment
from xtreat.exceptions import InsufficientDataError
from xtreat.plan import FoldAssignment


def cross_fit_column(
    prototype: Treatment,
    x: pd.Series,
    y: np.ndarray,
    plan: FoldAssignment,
    production: Treatment,
    log: Optional[Callable[[str], None]] = None,
) -> pd.DataFrame:
    """Out-of-fold realisation of one treatment.

    Parameters
    ----------
    prototype : Treatment
        Treatment to clone per fold; its fitted state, if any, is ignored.
    x : pd.Series
        Raw column over all design rows.
    y : np.ndarray
        Outcome over all design rows.
    plan : FoldAssignment
        Fold assignment of the design rows.
    production : Treatment
        The same treatment fit on all design rows. Its ``names_`` are the
        output columns and fold outputs are aligned to it through
        :meth:`Treatment.apply_aligned`. Columns a fold fit does not produce
        are 0.0 for that fold's rows.
    log : callable, optional
        Receives a message whenever a fold falls back to the degenerate fit.

    Returns
    -------
    pd.DataFrame
        Frame indexed like ``x`` with columns ``production.names_``.
    """
    schema = list(production.names_)
    result = np.zeros((len(x), len(schema)), dtype=float)
    y = np.asarray(y)

    for fold_idx, (tr_idx, va_idx) in enumerate(plan.splits()):
        encoder = clone(prototype)
        x_tr = x.iloc[tr_idx]
        y_tr = y[tr_idx]
        try:
            encoder.fit(x_tr, y_tr)
        except InsufficientDataError as e:
            if log is not None:
                log(f"fold {fold_idx}: {e}; using global fallback")
            try:
                encoder.fit_degenerate(x_tr, y_tr)
            except NotImplementedError:
                continue

        fold_out = encoder.apply_aligned(x.iloc[va_idx], production)
        result[va_idx, :] = fold_out[schema].values

    return pd.DataFrame(result, index=x.index, columns=schema)
