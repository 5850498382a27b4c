"""
Column treatments for xtreat.

Each treatment maps one raw column to one or more numeric derived columns and
implements:
    - ``fit(x, y)`` → self (learn parameters from the fitting rows)
    - ``apply(x)`` → pd.DataFrame (derived columns for any rows)
    - ``fit_degenerate(x, y)`` → self (global fallback used when ``fit`` cannot)

Treatments never decide which rows they are fit on. The out-of-fold fitter
and the production path in :mod:`xtreat.core` both drive the same interface.
"""

from collections import Counter
from typing import Any, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator

from xtreat.exceptions import InsufficientDataError
from xtreat.utils import as_levels, as_numeric, is_bad, level_name

# Probabilities are kept this far from 0 and 1 before taking logits.
_RATE_EPS = 1e-6


def _logit(p):
    return np.log(p / (1.0 - p))


def _unique_names(names: List[str]) -> List[str]:
    seen = Counter()
    out = []
    for nm in names:
        seen[nm] += 1
        out.append(nm if seen[nm] == 1 else f"{nm}_{seen[nm] - 1}")
    return out


# ============================================================================
# BASE CLASS
# ============================================================================


class Treatment(BaseEstimator):
    """Base class for column treatments.

    Subclasses set the class attributes below and implement ``fit`` and
    ``apply``. Constructor arguments must be stored unchanged under their own
    names so that :func:`sklearn.base.clone` can produce unfitted copies.

    Attributes
    ----------
    code : str
        Treatment code, e.g. ``'catB'``.
    kinds : tuple of str
        Column kinds (``'numeric'``, ``'categorical'``) the treatment handles.
    outcome_kinds : tuple of str
        Outcome kinds (``'binary'``, ``'numeric'``) the treatment handles.
    needs_outcome : bool
        Whether ``fit`` looks at ``y``.
    """

    code: str = ""
    kinds: Tuple[str, ...] = ()
    outcome_kinds: Tuple[str, ...] = ("binary", "numeric")
    needs_outcome: bool = False

    def __init__(self, col: str):
        self.col = col

    @classmethod
    def from_config(cls, col: str, config) -> "Treatment":
        """Build an unfitted treatment for ``col`` from a :class:`TreatmentConfig`."""
        return cls(col)

    @classmethod
    def accepts(cls, x: pd.Series, kind: str, outcome_kind: str) -> bool:
        """Whether this treatment should be designed for column ``x``."""
        return kind in cls.kinds and outcome_kind in cls.outcome_kinds

    def fit(self, x: pd.Series, y: np.ndarray) -> "Treatment":
        """Learn parameters from the fitting rows.

        Parameters
        ----------
        x : pd.Series
            Raw column restricted to the fitting rows.
        y : np.ndarray
            Outcome on the same rows (0/1 for classification).

        Returns
        -------
        Treatment
            ``self``.
        """
        raise NotImplementedError

    def fit_degenerate(self, x: pd.Series, y: np.ndarray) -> "Treatment":
        """Fit the global fallback used when ``fit`` raised :class:`InsufficientDataError`."""
        raise NotImplementedError

    def apply(self, x: pd.Series) -> pd.DataFrame:
        """Produce derived columns for ``x``.

        Parameters
        ----------
        x : pd.Series
            Raw column.

        Returns
        -------
        pd.DataFrame
            One float column per entry of ``names_``, indexed like ``x``.
        """
        raise NotImplementedError

    def apply_aligned(self, x: pd.Series, reference: "Treatment") -> pd.DataFrame:
        """Apply this fit, laid out in the columns of ``reference``.

        Used by the out-of-fold fitter: ``reference`` is the production fit
        of the same treatment. Columns this fit does not produce are 0.0.
        """
        return self.apply(x).reindex(columns=reference.names_, fill_value=0.0)

    def outputs(self) -> List[Tuple[str, Optional[Any]]]:
        """``(name, level)`` for each derived column; ``level`` is None except for ``lev``."""
        return [(nm, None) for nm in self.names_]

    def _frame(self, values: np.ndarray, x: pd.Series) -> pd.DataFrame:
        return pd.DataFrame({self.names_[0]: values.astype(float)}, index=x.index)


# ============================================================================
# CLEAN NUMERIC
# ============================================================================


class CleanTreatment(Treatment):
    """Numeric column with missing/invalid entries imputed.

    Parameters
    ----------
    col : str
        Numeric column.
    imputation : str, float or callable
        ``'mean'``, ``'median'``, a constant, or ``f(values) -> float``
        applied to the non-missing fitting values.
    collar_prob : float
        If positive, values are clipped to the fitted ``collar_prob`` and
        ``1 - collar_prob`` quantiles.
    """

    code = "clean"
    kinds = ("numeric",)

    def __init__(self, col: str, imputation="mean", collar_prob: float = 0.0):
        super().__init__(col)
        self.imputation = imputation
        self.collar_prob = collar_prob

    @classmethod
    def from_config(cls, col, config):
        return cls(
            col,
            imputation=config.imputation_for(col),
            collar_prob=config.collar_prob,
        )

    def fit(self, x, y):
        vals = as_numeric(x)
        good = vals[~np.isnan(vals)]
        if len(good) == 0:
            raise InsufficientDataError(
                f"column '{self.col}' has no non-missing values to impute from"
            )

        imp = self.imputation
        if isinstance(imp, str) and imp == "mean":
            fill = good.mean()
        elif isinstance(imp, str) and imp == "median":
            fill = np.median(good)
        elif callable(imp):
            fill = imp(good)
        else:
            fill = imp
        self.fill_value_ = float(fill)
        if not np.isfinite(self.fill_value_):
            raise InsufficientDataError(
                f"imputation for column '{self.col}' produced {self.fill_value_}"
            )

        if self.collar_prob > 0:
            self.bounds_ = (
                float(np.quantile(good, self.collar_prob)),
                float(np.quantile(good, 1.0 - self.collar_prob)),
            )
        else:
            self.bounds_ = None
        self.names_ = [f"{self.col}_clean"]
        return self

    def fit_degenerate(self, x, y):
        self.fill_value_ = 0.0
        self.bounds_ = None
        self.names_ = [f"{self.col}_clean"]
        return self

    def apply(self, x):
        vals = as_numeric(x)
        vals[np.isnan(vals)] = self.fill_value_
        if self.bounds_ is not None:
            vals = np.clip(vals, self.bounds_[0], self.bounds_[1])
        return self._frame(vals, x)


# ============================================================================
# MISSING INDICATOR
# ============================================================================


class IsBadTreatment(Treatment):
    """1.0 where a numeric value was missing or invalid, else 0.0.

    Only designed for columns that have missing values in the design data.
    """

    code = "isBAD"
    kinds = ("numeric",)

    @classmethod
    def accepts(cls, x, kind, outcome_kind):
        return super().accepts(x, kind, outcome_kind) and bool(is_bad(x).any())

    def fit(self, x, y):
        self.names_ = [f"{self.col}_isBAD"]
        return self

    fit_degenerate = fit

    def apply(self, x):
        return self._frame(is_bad(x), x)


# ============================================================================
# LEVEL INDICATORS
# ============================================================================


class LevelTreatment(Treatment):
    """0/1 indicator per level whose frequency reaches ``min_fraction``.

    The missing token is a level like any other.

    Parameters
    ----------
    col : str
        Categorical column.
    min_fraction : float
        Minimum fraction of fitting rows a level must cover.
    """

    code = "lev"
    kinds = ("categorical",)

    def __init__(self, col: str, min_fraction: float = 0.02):
        super().__init__(col)
        self.min_fraction = min_fraction

    @classmethod
    def from_config(cls, col, config):
        return cls(col, min_fraction=config.min_fraction)

    def fit(self, x, y):
        levels = as_levels(x)
        if len(levels) == 0:
            raise InsufficientDataError(f"column '{self.col}' has no rows to fit")
        freq = levels.value_counts(normalize=True)
        self.known_levels_ = set(freq.index)
        self.levels_ = sorted(freq.index[(freq >= self.min_fraction).values])
        self.names_ = _unique_names([level_name(self.col, lv) for lv in self.levels_])
        return self

    def fit_degenerate(self, x, y):
        self.known_levels_ = set()
        self.levels_ = []
        self.names_ = []
        return self

    def outputs(self):
        return list(zip(self.names_, self.levels_))

    def apply(self, x):
        levels = as_levels(x).values
        data = {
            nm: (levels == lv).astype(float)
            for nm, lv in zip(self.names_, self.levels_)
        }
        return pd.DataFrame(data, index=x.index, columns=self.names_)

    def apply_aligned(self, x, reference):
        # Match by level; names can differ between fits when levels sanitise alike.
        levels = as_levels(x).values
        kept = set(self.levels_)
        data = {
            nm: (levels == lv).astype(float) if lv in kept else np.zeros(len(levels))
            for nm, lv in reference.outputs()
        }
        return pd.DataFrame(data, index=x.index, columns=reference.names_)


# ============================================================================
# PREVALENCE
# ============================================================================


class PrevalenceTreatment(Treatment):
    """Fraction of fitting rows sharing the row's level; 0.0 for unseen levels."""

    code = "catP"
    kinds = ("categorical",)

    def fit(self, x, y):
        levels = as_levels(x)
        if len(levels) == 0:
            raise InsufficientDataError(f"column '{self.col}' has no rows to fit")
        self.mapping_ = levels.value_counts(normalize=True).to_dict()
        self.known_levels_ = set(self.mapping_)
        self.names_ = [f"{self.col}_catP"]
        return self

    def fit_degenerate(self, x, y):
        self.mapping_ = {}
        self.known_levels_ = set()
        self.names_ = [f"{self.col}_catP"]
        return self

    def apply(self, x):
        vals = as_levels(x).map(self.mapping_).fillna(0.0)
        return self._frame(vals.values, x)


# ============================================================================
# TARGET ENCODING (BINARY OUTCOME)
# ============================================================================


class LogOddsTreatment(Treatment):
    """Smoothed per-level log-odds of the positive class, centered on the global log-odds.

    For a level with ``n`` rows of which ``s`` are positive, and global
    positive rate ``p``, the shrunk rate is ``(s + m * p) / (n + m)`` with
    ``m = smoothing``; the treatment value is ``logit(rate) - logit(p)``.
    Unseen levels score 0.0, i.e. the global log-odds.

    Parameters
    ----------
    col : str
        Categorical column.
    smoothing : float
        Pseudo-count pulling rare levels toward the global rate.
    """

    code = "catB"
    kinds = ("categorical",)
    outcome_kinds = ("binary",)
    needs_outcome = True

    def __init__(self, col: str, smoothing: float = 1.0):
        super().__init__(col)
        self.smoothing = smoothing

    @classmethod
    def from_config(cls, col, config):
        return cls(col, smoothing=config.catb_smoothing)

    def fit(self, x, y):
        levels = as_levels(x)
        y = np.asarray(y, dtype=float)
        if len(y) == 0:
            raise InsufficientDataError(f"column '{self.col}' has no rows to fit")
        p = y.mean()
        if p <= 0.0 or p >= 1.0:
            raise InsufficientDataError(
                f"outcome is constant on the rows used to fit '{self.col}_catB'"
            )

        stats = pd.Series(y, index=levels.values).groupby(level=0).agg(["sum", "count"])
        rate = (stats["sum"] + self.smoothing * p) / (stats["count"] + self.smoothing)
        rate = rate.clip(_RATE_EPS, 1.0 - _RATE_EPS)
        self.global_logit_ = float(_logit(p))
        self.mapping_ = (_logit(rate) - self.global_logit_).to_dict()
        self.known_levels_ = set(self.mapping_)
        self.names_ = [f"{self.col}_catB"]
        return self

    def fit_degenerate(self, x, y):
        self.global_logit_ = 0.0
        self.mapping_ = {}
        self.known_levels_ = set()
        self.names_ = [f"{self.col}_catB"]
        return self

    def apply(self, x):
        vals = as_levels(x).map(self.mapping_).fillna(0.0)
        return self._frame(vals.values, x)


# ============================================================================
# TARGET ENCODING (NUMERIC OUTCOME)
# ============================================================================


class MeanDeviationTreatment(Treatment):
    """Shrunk per-level outcome mean minus the global mean.

    Parameters
    ----------
    col : str
        Categorical column.
    smoothing : float
        Pseudo-count pulling rare levels toward the global mean.
    """

    code = "catN"
    kinds = ("categorical",)
    outcome_kinds = ("numeric",)
    needs_outcome = True

    def __init__(self, col: str, smoothing: float = 1.0):
        super().__init__(col)
        self.smoothing = smoothing

    @classmethod
    def from_config(cls, col, config):
        return cls(col, smoothing=config.catb_smoothing)

    def fit(self, x, y):
        levels = as_levels(x)
        y = np.asarray(y, dtype=float)
        if len(y) == 0:
            raise InsufficientDataError(f"column '{self.col}' has no rows to fit")
        self.global_mean_ = float(y.mean())
        stats = pd.Series(y, index=levels.values).groupby(level=0).agg(["mean", "count"])
        shrunk = (
            stats["count"] * stats["mean"] + self.smoothing * self.global_mean_
        ) / (stats["count"] + self.smoothing)
        self.mapping_ = (shrunk - self.global_mean_).to_dict()
        self.known_levels_ = set(self.mapping_)
        self.names_ = [f"{self.col}_catN"]
        return self

    def fit_degenerate(self, x, y):
        self.global_mean_ = 0.0
        self.mapping_ = {}
        self.known_levels_ = set()
        self.names_ = [f"{self.col}_catN"]
        return self

    def apply(self, x):
        vals = as_levels(x).map(self.mapping_).fillna(0.0)
        return self._frame(vals.values, x)


# ============================================================================
# REGISTRY
# ============================================================================


TREATMENT_REGISTRY = {
    cls.code: cls
    for cls in (
        CleanTreatment,
        IsBadTreatment,
        LevelTreatment,
        PrevalenceTreatment,
        LogOddsTreatment,
        MeanDeviationTreatment,
    )
}


def treatment_classes(config) -> List[Tuple[str, type]]:
    """Treatments enabled by ``config``, built-ins first, in registry order.

    Parameters
    ----------
    config : TreatmentConfig
        Validated configuration.

    Returns
    -------
    list of (str, type)
        ``(code, treatment_class)`` pairs.
    """
    registry = dict(TREATMENT_REGISTRY)
    registry.update(config.custom_encoders)
    if config.code_restriction is None:
        return list(registry.items())
    allowed = set(config.code_restriction)
    return [(code, cls) for code, cls in registry.items() if code in allowed]
